"""
Tests for the json log formatter
"""

# Standard
import logging

# Local
from validation_reconciler.cluster_object import ClusterObject
from validation_reconciler.log_format import ReconcilerJsonFormatter
from validation_reconciler.test_helpers.helpers import make_object

## Helpers #####################################################################


def make_record(**extra):
    record = logging.LogRecord(
        name="TEST",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Some message",
        args=None,
        exc_info=None,
    )
    for key, val in extra.items():
        setattr(record, key, val)
    return record


## Tests #######################################################################


def test_pass_id_from_record():
    """Make sure the pass id logged with the record is included"""
    record = make_record(pass_id="PASS123")
    output = ReconcilerJsonFormatter().format(record)
    assert record.passId == "PASS123"
    assert "PASS123" in output


def test_default_pass_id():
    """Make sure the formatter's own pass id is used when the record has none"""
    record = make_record()
    ReconcilerJsonFormatter(pass_id="DEFAULT").format(record)
    assert record.passId == "DEFAULT"


def test_resource_dict():
    """Make sure the coordinates of a logged object dict are included"""
    record = make_record(
        resource=make_object(name="foo", resource_version="3"),
    )
    output = ReconcilerJsonFormatter().format(record)
    assert record.kind == "ConfigMap"
    assert record.apiVersion == "v1"
    assert record.resourceName == "foo"
    assert record.resourceNamespace == "test"
    assert record.resourceVersion == "3"
    assert "foo" in output


def test_resource_object():
    """Make sure a ClusterObject can be logged as the resource"""
    record = make_record(resource=ClusterObject(make_object(name="bar")))
    ReconcilerJsonFormatter().format(record)
    assert record.resourceName == "bar"


def test_no_resource():
    """Make sure records without a resource are left alone"""
    record = make_record()
    ReconcilerJsonFormatter().format(record)
    assert not hasattr(record, "resourceName")
