"""
Error taxonomy for Continuum.

Only MissingCredentialError, SettingsNotFoundError and unexpected
provider/storage faults are meant to reach the caller. Every other failure
mode is absorbed by the stage that owns it.
"""

from typing import Optional


class ContinuumError(Exception):
    """Base class for all pipeline errors."""
    pass


class MissingCredentialError(ContinuumError):
    """No provider key is configured, or the provider rejected the key."""

    def __init__(self, message: str = "Invalid or missing provider API key. Please configure it in Settings."):
        super().__init__(message)


class SettingsNotFoundError(ContinuumError):
    """The storage collaborator holds no runtime settings."""
    pass


class ProviderError(ContinuumError):
    """A language-model or embedding provider call failed."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class EmbeddingError(ProviderError):
    """Embedding call failed or returned vectors of the wrong size."""
    pass


class SafetyBlockError(ProviderError):
    """The provider refused the request on safety grounds."""
    pass


_AUTH_MARKERS = (
    "api_key",
    "api key",
    "unauthenticated",
    "permission_denied",
    "401",
    "403",
    "invalid x-api-key",
    "incorrect api key",
)


def is_auth_error(error: BaseException) -> bool:
    """Heuristic match for authentication-shaped provider errors."""
    if isinstance(error, MissingCredentialError):
        return True
    name = type(error).__name__.lower()
    if "authentication" in name or "permissiondenied" in name or "unauthenticated" in name:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _AUTH_MARKERS)
