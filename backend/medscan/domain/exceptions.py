"""
Domain Exceptions

Custom exceptions for the medicine identification domain.
Organized by collaborator (model, registry, ledger) and by pipeline outcome.
"""

from typing import Optional, Dict, Any


class DomainException(Exception):
    """
    Base exception for all domain-level errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details
        is_recoverable: Whether the operation can be retried
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        is_recoverable: bool = True
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.is_recoverable = is_recoverable

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "is_recoverable": self.is_recoverable,
        }


# =============================================================================
# Vision Model Exceptions
# =============================================================================

class ModelError(DomainException):
    """Base exception for vision-language model errors."""
    pass


class ModelTransportError(ModelError):
    """The model call failed in transit or the provider returned an error."""

    def __init__(
        self,
        message: str = "Vision model request failed",
        provider: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if provider:
            self.details["provider"] = provider


class ModelRateLimitError(ModelTransportError):
    """Provider rate limit exceeded."""

    def __init__(
        self,
        message: str = "Vision model rate limit exceeded",
        retry_after: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after:
            self.details["retry_after_seconds"] = retry_after


class ModelTimeoutError(ModelError):
    """The model call exceeded its deadline."""

    def __init__(
        self,
        timeout_seconds: float,
        message: Optional[str] = None,
        **kwargs
    ):
        message = message or f"Vision model did not respond within {timeout_seconds} seconds"
        super().__init__(message, **kwargs)
        self.details["timeout_seconds"] = timeout_seconds


class ModelConfigurationError(ModelError):
    """The model client cannot be constructed (missing key, missing package)."""

    def __init__(self, message: str = "Vision model is not configured", **kwargs):
        super().__init__(message, is_recoverable=False, **kwargs)


# =============================================================================
# Registry Exceptions
# =============================================================================

class RegistryError(DomainException):
    """Base exception for medicine registry errors."""
    pass


class RegistryStoreError(RegistryError):
    """The registry store could not be read."""

    def __init__(
        self,
        message: str = "Medicine registry is unavailable",
        **kwargs
    ):
        super().__init__(message, **kwargs)


# =============================================================================
# Token Ledger Exceptions
# =============================================================================

class LedgerError(DomainException):
    """Base exception for token ledger errors."""
    pass


class LedgerStoreError(LedgerError):
    """The ledger store failed to read or write an account."""

    def __init__(
        self,
        message: str = "Token ledger store failed",
        user_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if user_id:
            self.details["user_id"] = user_id


# =============================================================================
# Pipeline Exceptions
# =============================================================================

class PipelineError(DomainException):
    """Base exception for pipeline-level errors."""
    pass


class PipelineConfigurationError(PipelineError):
    """Pipeline is not properly configured."""

    def __init__(
        self,
        message: str = "Pipeline is not properly configured",
        missing_components: Optional[list] = None,
        **kwargs
    ):
        super().__init__(message, is_recoverable=False, **kwargs)
        if missing_components:
            self.details["missing_components"] = missing_components


class InsufficientTokensError(PipelineError):
    """The user does not hold enough tokens for an analysis."""

    def __init__(
        self,
        message: str = "Insufficient token. Please subscribe or redeem a referral code.",
        tokens_remaining: int = 0,
        **kwargs
    ):
        super().__init__(message, is_recoverable=False, **kwargs)
        self.tokens_remaining = tokens_remaining
        self.details["tokens_remaining"] = tokens_remaining


class ServiceUnavailableError(PipelineError):
    """A collaborator was unavailable before any work was committed."""

    def __init__(
        self,
        message: str = "Service temporarily unavailable. Please try again.",
        **kwargs
    ):
        super().__init__(message, **kwargs)


class AnalysisError(PipelineError):
    """A model call failed during the analysis."""

    def __init__(
        self,
        message: str = "Error during medicine analysis.",
        stage: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        if stage:
            self.details["stage"] = stage


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationError(DomainException):
    """Base exception for validation errors."""
    pass


class InvalidImageError(ValidationError):
    """Input image is invalid or corrupted."""

    def __init__(
        self,
        message: str = "Invalid or corrupted image",
        **kwargs
    ):
        super().__init__(message, is_recoverable=False, **kwargs)


class InvalidInputError(ValidationError):
    """Invalid input provided to a function or method."""

    def __init__(
        self,
        field: str,
        reason: str,
        **kwargs
    ):
        message = f"Invalid input for '{field}': {reason}"
        super().__init__(message, is_recoverable=False, **kwargs)
        self.details["field"] = field
        self.details["reason"] = reason
