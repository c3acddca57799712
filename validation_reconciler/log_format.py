"""
Custom logging formats that carry reconciliation context in json logs
"""

# First Party
from alog import AlogJsonFormatter
import alog

log = alog.use_channel("LGFMT")


class ReconcilerJsonFormatter(AlogJsonFormatter):
    """Log format that extends AlogJsonFormatter with thread information, the
    id of the pass that produced the record and, when a record is logged with
    an object via extra={"resource": obj}, the coordinates of that object.
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceVersion",
        "resourceName",
        "resourceNamespace",
        "passId",
    ]

    def __init__(self, pass_id=None):
        super().__init__()
        self.pass_id = pass_id

    def format(self, record):
        pass_id = getattr(record, "pass_id", self.pass_id)
        if pass_id is not None:
            record.passId = pass_id

        if resource := getattr(record, "resource", None):
            if not isinstance(resource, dict):
                resource = getattr(resource, "definition", {})
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata", {})
            record.resourceVersion = metadata.get("resourceVersion")
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")

        return super().format(record)
