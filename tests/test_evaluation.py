"""
Tests for the evaluator contract and evaluator loading
"""

# Standard
import sys
import types

# Third Party
import pytest

# Local
from validation_reconciler.cluster_object import ClusterObject
from validation_reconciler.evaluation import (
    EvaluationRequest,
    EvaluatorBase,
    LoggingEvaluator,
    get_evaluator_type,
    load_evaluator,
)
from validation_reconciler.test_helpers.helpers import RecordingEvaluator, make_object

## Sample Evaluator ############################################################


class SampleEvaluator(EvaluatorBase):
    """The one evaluator defined in this module"""

    def evaluate_one(self, request, typed_object):
        return {"name": request.name}

    def evaluate_batch(self, typed_objects, namespace_uid):
        return {"count": len(typed_objects)}

    def retract_metrics(self, labels):
        pass


## Tests #######################################################################


def test_request_from_object():
    """Make sure a request carries the coordinates of the object"""
    obj = ClusterObject(make_object(name="foo", uid="abc"))
    request = EvaluationRequest.from_object(obj)
    assert request == EvaluationRequest(
        kind="ConfigMap", name="foo", namespace="test", namespace_uid="", uid="abc"
    )


def test_request_metric_labels():
    """Make sure the metric labels identify the object"""
    request = EvaluationRequest(
        kind="ConfigMap", name="foo", namespace="test", namespace_uid="ns", uid="abc"
    )
    assert request.to_metric_labels() == {
        "kind": "ConfigMap",
        "name": "foo",
        "namespace": "test",
        "namespace_uid": "ns",
        "uid": "abc",
    }


def test_logging_evaluator():
    """Make sure the logging evaluator accepts every call"""
    evaluator = LoggingEvaluator()
    request = EvaluationRequest(kind="ConfigMap", name="foo")
    assert evaluator.evaluate_one(request, {}) == {}
    assert evaluator.evaluate_batch([{}, {}], "uid") == {}
    evaluator.retract_metrics(request.to_metric_labels())


def test_load_evaluator_from_module():
    """Make sure the single evaluator defined in a module is loaded. Imported
    evaluators do not count.
    """
    assert get_evaluator_type(__name__) is SampleEvaluator
    assert isinstance(load_evaluator(__name__), SampleEvaluator)


def test_load_evaluator_none_found():
    """Make sure a module without an evaluator is rejected"""
    with pytest.raises(AssertionError, match="No evaluators found"):
        get_evaluator_type("validation_reconciler.cache")


def test_load_evaluator_multiple_found(monkeypatch):
    """Make sure a module with more than one evaluator is rejected"""
    module = types.ModuleType("multi_evaluator_module")

    class FirstEvaluator(RecordingEvaluator):
        pass

    class SecondEvaluator(RecordingEvaluator):
        pass

    for evaluator_type in [FirstEvaluator, SecondEvaluator]:
        evaluator_type.__module__ = module.__name__
        setattr(module, evaluator_type.__name__, evaluator_type)

    monkeypatch.setitem(sys.modules, module.__name__, module)
    with pytest.raises(AssertionError, match="Multiple evaluators"):
        get_evaluator_type(module.__name__)


def test_load_evaluator_missing_module():
    """Make sure a bad module name raises an import error"""
    with pytest.raises(ImportError):
        load_evaluator("not.a.real.module")
