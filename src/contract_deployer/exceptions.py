"""Custom exception classes for contract-deployer library."""


class DeploymentError(Exception):
    """Base exception for deployment-related errors."""

    pass


class MissingArtifactError(DeploymentError, LookupError):
    """Raised when no compiled artifact exists for a declared source."""

    pass


class MissingDependencyError(DeploymentError, ValueError):
    """Raised when a component is materialized before one of its dependencies."""

    pass


class NoExistingAddressError(DeploymentError, ValueError):
    """Raised when a component should be reused but the manifest has no address for it."""

    pass


class ChainCallError(DeploymentError, RuntimeError):
    """Raised when a deploy, read or write against the chain fails."""

    pass


class InvalidOperationError(DeploymentError, ValueError):
    """Raised when an operation does not match any function in the target ABI."""

    pass


class NetworkNotFoundError(DeploymentError, ValueError):
    """Raised when requested network is not configured."""

    pass


class FeePeriodError(DeploymentError, ValueError):
    """Raised when fee periods can't safely be imported from one FeePool into another."""

    pass


class ArtifactSourceError(DeploymentError, FileNotFoundError):
    """Raised when the compiled artifact folder cannot be read."""

    pass


class UserDeclined(Exception):
    """
    Raised when an operator declines an interactive confirmation.

    Not a DeploymentError: declining is a clean cancellation, and everything
    persisted before it remains valid for the next run.
    """

    pass
