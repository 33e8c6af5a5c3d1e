"""Custom exceptions for pass bundle production."""


class PassBundleError(Exception):
    """Base class for all pass bundle errors."""


class MissingFieldError(PassBundleError):
    """Raised when a required descriptor attribute is absent."""

    def __init__(self, field_name: str) -> None:
        super().__init__(f"{field_name} is required in a pass")
        self.field_name = field_name


class InvalidArgumentError(PassBundleError, ValueError):
    """Raised when a value lies outside a closed enumeration or is malformed."""


class PreconditionError(PassBundleError):
    """Raised when an accessor is used while the pass is in the wrong style state."""


class MissingConfigurationError(PassBundleError):
    """Raised when signing material or configuration is absent."""

    def __init__(self, message: str, setting: str | None = None) -> None:
        super().__init__(message)
        self.setting = setting


class PassValidationError(PassBundleError):
    """Raised when a pass violates a descriptor or bundle invariant."""


class TokenTooShortError(PassValidationError):
    """Raised when the authentication token is shorter than the platform minimum."""


class UnexpectedFieldError(PassValidationError):
    """Raised when an attribute is present without the attribute it is paired with."""

    def __init__(self, message: str, field_name: str) -> None:
        super().__init__(message)
        self.field_name = field_name


class MissingImageError(PassValidationError):
    """Raised when a required image is missing from the image set."""

    def __init__(self, image_type: str) -> None:
        super().__init__(f"Missing required image: {image_type}")
        self.image_type = image_type


class SigningError(PassBundleError):
    """Raised when the manifest cannot be signed.

    Attributes:
        status_code: HTTP status code from the signing service, if available.
        reason: Status text from the signing service, if available.
    """

    def __init__(self, message: str, status_code: int | None = None, reason: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
