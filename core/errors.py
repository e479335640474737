"""
Error Taxonomy - Typed Failures for Design Operations

Every failure an agent can report maps to exactly one of these classes.
Handlers raise them; the agent base converts them into error responses
carrying a machine-readable ``error_type`` so the API layer can pick the
HTTP status without parsing messages.

Kinds:
1. not_found        - design, folder, user or link does not resolve
2. invalid_input    - missing field, malformed id or link token
3. unauthorized     - requester lacks ownership/privilege
4. conflict         - delete attempted while a design is being edited
5. corrupt_payload  - imported design fails structural validation
6. storage_failure  - persistence error, reported without internals
"""


class DesignError(Exception):
    """Base class for all typed failures."""

    error_type = "storage_failure"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {
            "success": False,
            "error": self.message,
            "error_type": self.error_type
        }


class DesignNotFoundError(DesignError):
    error_type = "not_found"


class InvalidInputError(DesignError):
    error_type = "invalid_input"


class UnauthorizedError(DesignError):
    error_type = "unauthorized"


class DesignConflictError(DesignError):
    error_type = "conflict"


class CorruptPayloadError(DesignError):
    error_type = "corrupt_payload"


class StorageFailureError(DesignError):
    error_type = "storage_failure"

    def __init__(self, message: str = "Storage failure, please contact the administrator"):
        super().__init__(message)


# error_type -> HTTP status used by the REST gateway
HTTP_STATUS_BY_ERROR_TYPE = {
    DesignNotFoundError.error_type: 404,
    InvalidInputError.error_type: 400,
    UnauthorizedError.error_type: 403,
    DesignConflictError.error_type: 409,
    CorruptPayloadError.error_type: 422,
    StorageFailureError.error_type: 500,
}
