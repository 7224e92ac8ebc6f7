class ServiceError(Exception):
    status = 400
    retryable = False

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class NotFound(ServiceError):
    status = 404

    def __init__(self, message="Resource not found", details=None):
        super().__init__("NOT_FOUND", message, details)


class InvalidState(ServiceError):
    """The entity moved on; the caller should refresh instead of retrying."""

    status = 409

    def __init__(self, message="Operation not allowed in the current state", details=None):
        super().__init__("INVALID_STATE", message, details)


class Conflict(ServiceError):
    status = 409

    def __init__(self, message="Conflicting resource exists", details=None):
        super().__init__("CONFLICT", message, details)


class AlreadySigned(ServiceError):
    status = 409

    def __init__(self, message="Contract already signed", details=None):
        super().__init__("ALREADY_SIGNED", message, details)


class ValidationError(ServiceError):
    status = 422

    def __init__(self, message="Validation failed", details=None):
        super().__init__("VALIDATION_ERROR", message, details)


class PermissionDenied(ServiceError):
    status = 403

    def __init__(self, message="Access denied", details=None):
        super().__init__("FORBIDDEN", message, details)


class AuthFailed(ServiceError):
    status = 401

    def __init__(self, message="Invalid credentials", details=None):
        super().__init__("AUTH_FAILED", message, details)


class Unavailable(ServiceError):
    status = 503
    retryable = True

    def __init__(self, message="Service temporarily unavailable", details=None):
        super().__init__("UNAVAILABLE", message, details)
