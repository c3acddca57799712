"""
The ReconciliationEngine runs a single full pass over the cluster: it lists
every watched object, evaluates the ones whose revision changed since they were
last evaluated, and retracts the metrics of objects that disappeared.
"""

# Standard
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import base64
import threading
import uuid

# First Party
import alog

# Local
from . import config
from .cache import VersionedCache
from .cluster import ClusterClientBase, ResourceKind
from .cluster_object import ClusterObject
from .enumerator import ResourceEnumerator
from .evaluation import EvaluationRequest, EvaluatorBase
from .exceptions import (
    AggregateReconcileError,
    ClusterError,
    EvaluationError,
    NamespaceScopeError,
    ReconcilerError,
    TypeConversionError,
    append_error,
)
from .namespace_scope import NamespaceScopeBase
from .scheme import TypeScheme

log = alog.use_channel("RECON")


class EngineState(Enum):
    """The phases of a single pass"""

    IDLE = "Idle"
    ENUMERATING = "Enumerating"
    PROCESSING_CLUSTER_SCOPED = "ProcessingClusterScoped"
    PROCESSING_NAMESPACED = "ProcessingNamespaced"
    RECLAIMING_DELETED = "ReclaimingDeleted"


class ReconciliationEngine:  # pylint: disable=too-many-instance-attributes
    """The ReconciliationEngine owns the durable cache and the live set and
    drives one pass at a time. It is not safe to run two passes concurrently.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        cluster_client: ClusterClientBase,
        namespace_scope: NamespaceScopeBase,
        evaluator: EvaluatorBase,
        scheme: Optional[TypeScheme] = None,
        enumerator: Optional[ResourceEnumerator] = None,
        durable_cache: Optional[VersionedCache] = None,
        live_set: Optional[VersionedCache] = None,
        page_size: Optional[int] = None,
        list_retries: Optional[int] = None,
        shutdown: Optional[threading.Event] = None,
    ):
        """
        Args:
            cluster_client:  ClusterClientBase
                The client used for discovery and listing
            namespace_scope:  NamespaceScopeBase
                Supplies the watched namespaces and namespace uids
            evaluator:  EvaluatorBase
                The external evaluation engine
            scheme:  Optional[TypeScheme]
                The scheme used to convert objects to their typed form
            enumerator:  Optional[ResourceEnumerator]
                Override for the kind enumerator. By default one is built from
                the cluster client and the scheme.
            durable_cache:  Optional[VersionedCache]
                The cache of evaluated objects that persists across passes
            live_set:  Optional[VersionedCache]
                The set of objects observed during the current pass
            page_size:  Optional[int]
                Maximum items per list request. Defaults to the
                resources_per_list_query config value.
            list_retries:  Optional[int]
                Number of retries when listing a single kind fails.
                Defaults to the list_retries config value.
            shutdown:  Optional[threading.Event]
                When set, backoff waits are interrupted and no further
                retries are attempted
        """
        self._cluster_client = cluster_client
        self._namespace_scope = namespace_scope
        self._evaluator = evaluator
        self._scheme = scheme or TypeScheme()
        self._enumerator = enumerator or ResourceEnumerator(
            cluster_client, self._scheme
        )
        self.durable_cache = (
            durable_cache
            if durable_cache is not None
            else VersionedCache("durable_cache")
        )
        self.live_set = live_set if live_set is not None else VersionedCache("live_set")
        self.page_size = (
            page_size if page_size is not None else config.resources_per_list_query
        )
        self.list_retries = (
            list_retries if list_retries is not None else config.list_retries
        )
        self._shutdown = shutdown or threading.Event()

        self.state = EngineState.IDLE
        self.pass_count = 0
        self.pass_id = None

    ## Pass ####################################################################

    def reconcile_everything(self):
        """Run a single pass over every enumerated kind. However the pass ends,
        the live set is empty and the state is back to IDLE afterwards.

        Raises:
            ClusterError if the kinds to reconcile cannot be enumerated
            AggregateReconcileError if processing any kind or namespace failed
        """
        self.pass_count += 1
        self.pass_id = self.generate_pass_id()
        log.info(
            "Starting reconciliation pass %d",
            self.pass_count,
            extra={"pass_id": self.pass_id},
        )

        reclaimed = False
        try:
            self.state = EngineState.ENUMERATING
            try:
                cluster_scoped, namespaced = self._enumerator.enumerate()
            except ReconcilerError as err:
                raise ClusterError(
                    f"retrieving resources to reconcile: {err}"
                ) from err
            self._namespace_scope.reset_cache()

            errors = []
            self.state = EngineState.PROCESSING_CLUSTER_SCOPED
            for resource in cluster_scoped:
                try:
                    self.process_cluster_scoped_resources(resource)
                except ReconcilerError as err:
                    log.warning(
                        "Failed to process cluster scoped resources of type %s: %s",
                        resource,
                        err,
                        extra={"pass_id": self.pass_id},
                    )
                    append_error(errors, err)

            self.state = EngineState.PROCESSING_NAMESPACED
            try:
                self.process_namespaced_resources(namespaced)
            except ReconcilerError as err:
                log.warning(
                    "Failed to process namespaced resources: %s",
                    err,
                    extra={"pass_id": self.pass_id},
                )
                append_error(errors, err)

            self.state = EngineState.RECLAIMING_DELETED
            if errors:
                # Objects of a kind that failed to list are missing from the
                # live set, so diffing would report them as deleted
                log.info(
                    "Skipping deletion handling after %d errors",
                    len(errors),
                    extra={"pass_id": self.pass_id},
                )
                raise AggregateReconcileError(errors)
            self.handle_resource_deletions()
            reclaimed = True
        finally:
            if not reclaimed:
                self.live_set.drain()
            self.state = EngineState.IDLE

        log.info(
            "Finished reconciliation pass %d with %d cached objects",
            self.pass_count,
            len(self.durable_cache),
            extra={"pass_id": self.pass_id},
        )

    @staticmethod
    def generate_pass_id() -> str:
        """Generates a unique human readable id for a single pass

        Returns:
            id: str
                A unique base32 encoded id
        """
        base32_str = base64.b32encode(uuid.uuid4().bytes).decode("utf-8")
        return base32_str[:22]

    ## Cluster scoped ##########################################################

    def process_cluster_scoped_resources(self, resource: ResourceKind):
        """List and reconcile every object of a cluster scoped kind, retrying
        the whole listing with exponential backoff on failure. Objects that
        were evaluated before a failed attempt are skipped on the retry since
        they are already cached at their revision.
        """
        log.debug2("Processing cluster scoped kind %s", resource)
        self._run_with_backoff(
            lambda: self.paginated_list(resource, None, self.reconcile),
            f"listing {resource}",
        )

    ## Namespaced ##############################################################

    def process_namespaced_resources(self, resources: List[ResourceKind]):
        """Reconcile the namespaced kinds one namespace at a time. Objects in a
        namespace are grouped by their app label and each group is evaluated
        as one batch.

        NOTE: Unlike cluster scoped kinds, the first failing namespace aborts
            the remaining namespaces for this pass.

        Raises:
            NamespaceScopeError if the watched namespaces cannot be fetched
        """
        try:
            namespaces = self._namespace_scope.get_watch_namespaces()
        except ReconcilerError as err:
            raise NamespaceScopeError(f"getting watched namespaces: {err}") from err

        for namespace in namespaces:
            log.debug("Processing namespace [%s]", namespace.name)
            related_objects = self.group_app_objects(namespace.name, resources)
            for app_label, objects in related_objects.items():
                log.debug2(
                    "Reconciling %d objects with app label [%s] in [%s]",
                    len(objects),
                    app_label,
                    namespace.name,
                )
                self.reconcile_group(objects, namespace.name)

    def group_app_objects(
        self,
        namespace: str,
        resources: List[ResourceKind],
    ) -> Dict[str, List[ClusterObject]]:
        """List every namespaced kind in the namespace and group the objects
        that carry an app label by the label's value. Objects without an app
        label are dropped.
        """
        related_objects = {}
        for resource in resources:
            # Collect per kind so a retried listing cannot duplicate objects
            def _list_kind(resource=resource):
                listed = []
                self.paginated_list(resource, namespace, listed.append)
                return listed

            listed = self._run_with_backoff(
                _list_kind, f"listing {resource} in {namespace}"
            )
            for obj in listed:
                app_label = self.get_app_label(obj)
                if app_label is None:
                    log.debug4("Skipping unlabeled object %s", obj)
                    continue
                related_objects.setdefault(app_label, []).append(obj)
        return related_objects

    @staticmethod
    def get_app_label(obj: ClusterObject) -> Optional[str]:
        """Get the app label used to group related objects"""
        return obj.get_app_label()

    ## Listing #################################################################

    def paginated_list(
        self,
        resource: ResourceKind,
        namespace: Optional[str],
        handler: Callable[[ClusterObject], Any],
    ):
        """List every object of a kind, one page at a time, and hand each
        object to the handler as soon as its page arrives

        Args:
            resource:  ResourceKind
                The kind to list
            namespace:  Optional[str]
                The namespace to list in or None for every namespace
            handler:  Callable[[ClusterObject], Any]
                Called for each listed object. Errors abort the listing.
        """
        continue_token = None
        page_count = 0
        while True:
            page = self._cluster_client.list_page(
                resource,
                namespace=namespace,
                limit=self.page_size,
                continue_token=continue_token,
            )
            page_count += 1
            log.debug3(
                "Page %d of %s holds %d items", page_count, resource, len(page.items)
            )
            for item in page.items:
                try:
                    obj = ClusterObject(item)
                except AssertionError as err:
                    raise TypeConversionError(
                        f"reading item listed for {resource}: {err}"
                    ) from err
                handler(obj)
            if not page.continue_token:
                return
            continue_token = page.continue_token

    ## Evaluation ##############################################################

    def reconcile(self, obj: ClusterObject):
        """Evaluate a single object unless it was already evaluated at its
        current revision

        Raises:
            TypeLookupError, TypeConversionError if the typed form cannot be
                built
            EvaluationError if the evaluator fails
        """
        self.live_set.store_object(obj)
        if self.durable_cache.object_already_evaluated(obj):
            log.debug4("Skipping already evaluated object %s", obj)
            return

        request = EvaluationRequest.from_object(obj)
        if request.namespace:
            request.namespace_uid = self._namespace_scope.get_namespace_uid(
                request.namespace
            )
            if not request.namespace_uid:
                log.debug("Namespace UID not found for [%s]", request.namespace)

        typed_object = self._scheme.to_typed(obj)
        log.debug2(
            "Evaluating %s",
            obj,
            extra={"pass_id": self.pass_id, "resource": obj.definition},
        )
        outcome = self._evaluate(
            lambda: self._evaluator.evaluate_one(request, typed_object),
            f"evaluating {obj}",
        )
        self.durable_cache.store_object(obj, outcome)

    def reconcile_group(self, objects: List[ClusterObject], namespace: str):
        """Evaluate a group of related objects in one batch. Only objects not
        already evaluated at their current revision are sent and every one of
        them is cached with the shared outcome.
        """
        needs_evaluation = []
        for obj in objects:
            self.live_set.store_object(obj)
            if self.durable_cache.object_already_evaluated(obj):
                log.debug4("Skipping already evaluated object %s", obj)
                continue
            needs_evaluation.append(obj)

        if not needs_evaluation:
            log.debug3("Nothing to evaluate in group of %d objects", len(objects))
            return

        namespace_uid = self._namespace_scope.get_namespace_uid(namespace)
        if not namespace_uid:
            log.debug("Namespace UID not found for [%s]", namespace)
        typed_objects = [self._scheme.to_typed(obj) for obj in needs_evaluation]
        log.debug2(
            "Evaluating batch of %d objects in [%s]",
            len(typed_objects),
            namespace,
            extra={"pass_id": self.pass_id},
        )
        outcome = self._evaluate(
            lambda: self._evaluator.evaluate_batch(typed_objects, namespace_uid),
            f"evaluating batch of {len(typed_objects)} objects in {namespace}",
        )
        for obj in needs_evaluation:
            self.durable_cache.store_object(obj, outcome)

    ## Deletions ###############################################################

    def handle_resource_deletions(self):
        """Retract the metrics of every cached object that was not observed in
        this pass, evict it, then drain the live set for the next pass
        """
        deleted = self.durable_cache.difference(self.live_set)
        if deleted:
            log.info(
                "Reclaiming %d deleted objects",
                len(deleted),
                extra={"pass_id": self.pass_id},
            )
        for identity, entry in deleted:
            request = EvaluationRequest(
                kind=identity.kind,
                name=identity.name,
                namespace=identity.namespace,
                namespace_uid=self._namespace_scope.get_namespace_uid(
                    identity.namespace
                ),
                uid=entry.uid,
            )
            log.debug2("Retracting metrics for deleted object %s", identity)
            try:
                self._evaluator.retract_metrics(request.to_metric_labels())
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.warning(
                    "Failed to retract metrics for %s: %s",
                    identity,
                    err,
                    exc_info=True,
                )
            self.durable_cache.evict(identity)
        self.live_set.drain()

    ## Implementation Details ##################################################

    def _run_with_backoff(self, operation: Callable[[], Any], description: str):
        """Run the operation, retrying with exponential backoff on cluster
        errors until the retries are exhausted or shutdown is requested. Any
        other error (evaluation, type lookup or conversion) is not transient
        and is raised on the first attempt.
        """
        attempt = 0
        while True:
            try:
                return operation()
            except ClusterError as err:
                if attempt >= self.list_retries or self._shutdown.is_set():
                    raise
                backoff_duration = config.retry_backoff_base_seconds * (
                    config.retry_backoff_factor**attempt
                )
                attempt += 1
                log.debug2(
                    "Retry %d/%d %s in %fs: %s",
                    attempt,
                    self.list_retries,
                    description,
                    backoff_duration,
                    err,
                )
                if self._shutdown.wait(backoff_duration):
                    raise

    @staticmethod
    def _evaluate(evaluation: Callable[[], Any], description: str) -> Any:
        """Call out to the evaluator and wrap any failure in an
        EvaluationError
        """
        try:
            return evaluation()
        except EvaluationError:
            raise
        except Exception as err:  # pylint: disable=broad-exception-caught
            raise EvaluationError(f"{description}: {err}") from err
