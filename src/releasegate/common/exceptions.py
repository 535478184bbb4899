"""Releasegate exception hierarchy."""


class ReleasegateError(Exception):
    """Base exception for all Releasegate errors."""

    http_status = 500

    def __init__(self, message: str = "", code: str = "RELEASEGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def detail(self) -> dict[str, str]:
        """Body used when the error is returned over HTTP."""
        return {"error": self.message, "code": self.code}


class ConfigurationError(ReleasegateError):
    """Raised when a required setting is missing."""

    def __init__(self, message: str = "Service is not configured"):
        super().__init__(message, code="CONFIGURATION")


class UnauthenticatedError(ReleasegateError):
    """Raised when no signed-in customer is attached to the request."""

    http_status = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED")


class NotFoundError(ReleasegateError):
    """Raised when a license or release cannot be found."""

    http_status = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class LicenseNotFoundError(NotFoundError):
    def __init__(self, message: str = "License not found"):
        super().__init__(message)


class ReleaseNotFoundError(NotFoundError):
    def __init__(self, message: str = "Release not found"):
        super().__init__(message)


class ForbiddenError(ReleasegateError):
    """Raised when the caller is not allowed to access a resource."""

    http_status = 403

    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN"):
        super().__init__(message, code=code)


class EntitlementDeniedError(ForbiddenError):
    """Raised when the entitlement policy denies a release."""

    def __init__(self, message: str = "Release is not covered by your licenses"):
        super().__init__(message, code="ENTITLEMENT_DENIED")


class InvalidTokenError(ForbiddenError):
    """Raised for any download token failure. The reason is never exposed."""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message, code="INVALID_TOKEN")


class AuthorityUnavailableError(ReleasegateError):
    """Raised on transport errors or 5xx responses from an upstream service."""

    http_status = 503

    def __init__(self, message: str = "License authority unavailable"):
        super().__init__(message, code="AUTHORITY_UNAVAILABLE")


class ReleaseHostUnavailableError(AuthorityUnavailableError):
    def __init__(self, message: str = "Release host unavailable"):
        super().__init__(message)


class AssetUnavailableError(ReleasegateError):
    """Raised when neither asset URL could be fetched."""

    http_status = 502

    def __init__(self, message: str = "Failed to fetch release asset"):
        super().__init__(message, code="ASSET_UNAVAILABLE")
