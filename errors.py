class ServiceError(ValueError):
    kind = "ServiceError"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "kind": self.kind, "message": self.message}


class InvalidInput(ServiceError):
    kind = "InvalidInput"
    status_code = 400
    default_message = "Invalid input"


class NotFound(ServiceError):
    """Record absent or owned by someone else; the two are indistinguishable."""

    kind = "NotFound"
    status_code = 404
    default_message = "Resource not found"


class Conflict(ServiceError):
    kind = "Conflict"
    status_code = 409
    default_message = "Conflict"


class Unauthorized(ServiceError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "User not authenticated"


class InsufficientProgress(InvalidInput):
    kind = "InsufficientProgress"
    default_message = "Cannot subtract more than current amount"
