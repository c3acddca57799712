"""
Test the custom exceptions and assert functions
"""

# Third Party
import pytest

# Local
from validation_reconciler import exceptions


def test_assert_config_pass():
    """Make sure that no exception is throw by assert_config when it
    passes
    """
    exceptions.assert_config(True)


def test_assert_config_fail():
    """Make sure the right exception is thrown by assert_config when it
    fails
    """
    exception_msg = "error mesage"
    with pytest.raises(exceptions.ConfigError, match=exception_msg):
        exceptions.assert_config(False, exception_msg)


def test_assert_cluster_pass():
    """Make sure that no exception is throw by assert_cluster when it
    passes
    """
    exceptions.assert_cluster(True)


def test_assert_cluster_fail():
    """Make sure the right exception is thrown by assert_cluster when it
    fails
    """
    exception_msg = "error mesage"
    with pytest.raises(exceptions.ClusterError, match=exception_msg):
        exceptions.assert_cluster(False, exception_msg)


def test_exception_derived_from_base():
    """Make sure the derived classes are instances of the base class"""
    assert isinstance(exceptions.ReconcilerFatalError(), exceptions.ReconcilerError)
    assert isinstance(exceptions.ReconcilerExpectedError(), exceptions.ReconcilerError)


@pytest.mark.parametrize(
    "error_type",
    [
        exceptions.ConfigError,
        exceptions.ClusterError,
        exceptions.TypeLookupError,
        exceptions.TypeConversionError,
        exceptions.EvaluationError,
    ],
)
def test_fatal_errors(error_type):
    """Make sure the fatal error types report themselves as fatal"""
    err = error_type("boom")
    assert isinstance(err, exceptions.ReconcilerFatalError)
    assert err.is_fatal_error


def test_namespace_scope_error_is_expected():
    """Make sure a namespace listing failure is not fatal"""
    err = exceptions.NamespaceScopeError("boom")
    assert isinstance(err, exceptions.ReconcilerExpectedError)
    assert not err.is_fatal_error


def test_aggregate_error_message():
    """Make sure the aggregate error joins the messages of its errors"""
    err = exceptions.AggregateReconcileError(
        [exceptions.ClusterError("one"), exceptions.EvaluationError("two")]
    )
    assert str(err) == "one; two"
    assert len(err.errors) == 2
    assert err.is_fatal_error


def test_append_error_flattens_aggregates():
    """Make sure appending an aggregate keeps the list one level deep"""
    first = exceptions.ClusterError("one")
    nested = exceptions.AggregateReconcileError(
        [exceptions.ClusterError("two"), exceptions.ClusterError("three")]
    )
    errors = exceptions.append_error([], first)
    exceptions.append_error(errors, nested)
    assert [str(err) for err in errors] == ["one", "two", "three"]
