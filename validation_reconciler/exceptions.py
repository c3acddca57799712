"""
This module implements custom exceptions
"""

# Standard
from typing import List

## Base Error ##################################################################


class ReconcilerError(Exception):
    """Base class for all validation_reconciler exceptions"""

    def __init__(self, message: str, is_fatal_error: bool):
        """Construct with a flag indicating whether this is a fatal error. This
        will be a static property of all children.
        """
        super().__init__(message)
        self._is_fatal_error = is_fatal_error

    @property
    def is_fatal_error(self):
        """Property indicating whether or not this error should abort the
        current reconciliation pass
        """
        return self._is_fatal_error


## Fatal Errors ################################################################


class ReconcilerFatalError(ReconcilerError):
    """A ReconcilerFatalError is one that aborts the unit of work it happened
    in. The outer loop still retries on the next pass.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=True)


class ConfigError(ReconcilerFatalError):
    """Exception caused by invalid library or command line configuration"""


class ClusterError(ReconcilerFatalError):
    """Exception caused when a discovery or list operation against the cluster
    fails
    """


class TypeLookupError(ReconcilerFatalError):
    """Exception raised when a group/version/kind has no registered typed
    representation
    """


class TypeConversionError(ReconcilerFatalError):
    """Exception raised when an untyped object cannot be converted into its
    typed representation
    """


class EvaluationError(ReconcilerFatalError):
    """Exception raised when the external evaluator fails for an object or a
    batch of objects
    """


class AggregateReconcileError(ReconcilerFatalError):
    """Exception collecting every error raised during a single pass"""

    def __init__(self, errors: List[Exception]):
        self.errors = list(errors)
        super().__init__("; ".join(str(err) for err in self.errors))


## Expected Errors #############################################################


class ReconcilerExpectedError(ReconcilerError):
    """A ReconcilerExpectedError is one that indicates an expected failure
    condition that is expected to resolve in a subsequent pass.
    """

    def __init__(self, message: str = ""):
        super().__init__(message=message, is_fatal_error=False)


class NamespaceScopeError(ReconcilerExpectedError):
    """Exception raised when the set of watched namespaces cannot be fetched"""


## Assertions ##################################################################


def assert_config(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ConfigError. This should be
    used when validating values read from the library config or command line.
    """
    if not condition:
        raise ConfigError(message)


def assert_cluster(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ClusterError. This should
    be used when a cluster operation (such as listing a kind) does not return
    what is expected.
    """
    if not condition:
        raise ClusterError(message)


## Helpers #####################################################################


def append_error(errors: List[Exception], err: Exception) -> List[Exception]:
    """Append an error to an aggregate error list, flattening nested
    AggregateReconcileErrors so the list stays one level deep
    """
    if isinstance(err, AggregateReconcileError):
        errors.extend(err.errors)
    else:
        errors.append(err)
    return errors
