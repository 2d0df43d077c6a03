"""Exceptions raised by LoadFlow."""


class LoadFlowError(Exception):
    """Base error for load runner failures."""


class LoadConfigurationError(LoadFlowError, ValueError):
    """Raised when a scenario, tag or configuration is declared incorrectly."""


class DuplicateLoadTagError(LoadConfigurationError):
    """Raised when a second ordering tag is attached to the same function."""


class LoadRunnerTimeoutError(LoadFlowError, TimeoutError):
    """Raised when a worker or the result collector does not finish in time."""
