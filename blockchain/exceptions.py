"""
Deployer Exceptions
Error taxonomy for identity resolution and contract deployment
"""


class DeployerError(Exception):
    """Base exception for every deployment failure."""

    pass


class ConfigurationError(DeployerError, ValueError):
    """Raised when the endpoint URL, seed phrase or another setting is missing or malformed."""

    pass


class InvalidSeedPhrase(DeployerError, ValueError):
    """Raised when the mnemonic is not a valid BIP-39 word list."""

    pass


class EndpointUnreachable(DeployerError, ConnectionError):
    """Raised when the RPC node cannot be reached."""

    pass


class SigningError(DeployerError):
    """Raised when the signing identity cannot produce a valid signed transaction."""

    pass


class SubmissionRejected(DeployerError):
    """Raised when the node refuses the deployment (gas estimation, funds, validation)."""

    pass


class ConfirmationTimeout(DeployerError, TimeoutError):
    """Raised when the transaction is not confirmed within the configured timeout."""

    pass


class DeploymentReverted(DeployerError):
    """Raised when the creation transaction was mined but left no contract behind."""

    pass


class ArtifactError(DeployerError):
    """Base exception for compiled contract artifact problems."""

    pass


class ArtifactNotFoundError(ArtifactError, FileNotFoundError):
    """Raised when no compiled artifact matches the requested contract name."""

    pass


class InvalidArtifactError(ArtifactError, ValueError):
    """Raised when an artifact cannot be deployed as-is."""

    pass
