"""
This module defines the contract with the external evaluation engine that runs
the actual validations against objects
"""

# Standard
from dataclasses import dataclass
from typing import Any, Dict, List, Type
import abc
import importlib

# First Party
import alog

# Local
from .cluster_object import ClusterObject

log = alog.use_channel("EVAL")


@dataclass
class EvaluationRequest:
    """The coordinates of a single object sent along with its typed form"""

    kind: str
    name: str
    namespace: str = ""
    namespace_uid: str = ""
    uid: str = ""

    @classmethod
    def from_object(cls, obj: ClusterObject) -> "EvaluationRequest":
        return cls(
            kind=obj.kind,
            name=obj.name,
            namespace=obj.namespace,
            uid=obj.uid,
        )

    def to_metric_labels(self) -> Dict[str, str]:
        """The labels identifying the metrics emitted for this object"""
        return {
            "kind": self.kind,
            "name": self.name,
            "namespace": self.namespace,
            "namespace_uid": self.namespace_uid,
            "uid": self.uid,
        }


class EvaluatorBase(abc.ABC):
    """Base class for the external evaluation engine. Implementations raise on
    failure; the outcomes they return are opaque to the reconciler.
    """

    @abc.abstractmethod
    def evaluate_one(self, request: EvaluationRequest, typed_object: Any) -> Any:
        """Evaluate a single object

        Args:
            request:  EvaluationRequest
                The coordinates of the object
            typed_object:  Any
                The typed representation of the object

        Returns:
            outcome:  Any
                The result of the evaluation
        """

    @abc.abstractmethod
    def evaluate_batch(self, typed_objects: List[Any], namespace_uid: str) -> Any:
        """Evaluate a group of related objects from one namespace together

        Args:
            typed_objects:  List[Any]
                The typed representations of the objects
            namespace_uid:  str
                The uid of the namespace holding the objects

        Returns:
            outcome:  Any
                A single result covering the whole group
        """

    @abc.abstractmethod
    def retract_metrics(self, labels: Dict[str, str]):
        """Drop any metrics emitted for an object that no longer exists"""


class LoggingEvaluator(EvaluatorBase):
    """Evaluator that only logs what it is asked to evaluate. Used when running
    dry without an evaluator module.
    """

    def evaluate_one(self, request: EvaluationRequest, typed_object: Any) -> Any:
        log.info("Evaluating %s %s/%s", request.kind, request.namespace, request.name)
        return {}

    def evaluate_batch(self, typed_objects: List[Any], namespace_uid: str) -> Any:
        log.info(
            "Evaluating batch of %d objects in namespace %s",
            len(typed_objects),
            namespace_uid,
        )
        return {}

    def retract_metrics(self, labels: Dict[str, str]):
        log.info("Retracting metrics for %s", labels)


def _is_evaluator_type(attr_val: Any) -> bool:
    """Determine if a given attribute value is a concrete evaluator type"""
    return (
        isinstance(attr_val, type)
        and issubclass(attr_val, EvaluatorBase)
        and attr_val is not EvaluatorBase
        and not getattr(attr_val, "__abstractmethods__", None)
    )


def get_evaluator_type(module_name: str) -> Type[EvaluatorBase]:
    """Import the given module and find the single evaluator type defined in it

    Raises:
        AssertionError if the module does not define exactly one evaluator
    """
    module = importlib.import_module(module_name)
    evaluator_types = [
        attr_val
        for attr_val in (getattr(module, attr) for attr in dir(module))
        if _is_evaluator_type(attr_val) and attr_val.__module__ == module.__name__
    ]
    log.debug2("Found evaluators in [%s]: %s", module_name, evaluator_types)
    assert evaluator_types, f"No evaluators found in [{module_name}]"
    assert (
        len(evaluator_types) == 1
    ), f"Multiple evaluators found in [{module_name}]: {evaluator_types}"
    return evaluator_types[0]


def load_evaluator(module_name: str) -> EvaluatorBase:
    """Construct the evaluator defined in the given module"""
    return get_evaluator_type(module_name)()
