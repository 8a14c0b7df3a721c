"""Typed errors raised by the service layer.

Every error carries a machine-readable ``code`` and the HTTP status the API
answers with, so the blueprint maps them without inspecting messages::

    ServiceError
    +-- ValidationError        400  bad input, duplicate name, role already taken
    +-- AuthenticationError    401  unknown name, wrong password, inactive worker
    +-- PermissionDeniedError  403  actor may not perform the change
    +-- NotFoundError          404  unknown id, zero rows affected
    +-- ConflictError          409  blocked by a live reference or lost race
    +-- PersistenceError       500  datastore failure not otherwise classified
"""


class ServiceError(Exception):
    code = "SERVICE_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    code = "VALIDATION"
    status_code = 400


class PermissionDeniedError(ServiceError):
    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(ServiceError):
    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ServiceError):
    code = "CONFLICT"
    status_code = 409


class PersistenceError(ServiceError):
    code = "PERSISTENCE"
    status_code = 500


class AuthenticationError(ServiceError):
    code = "AUTHENTICATION"
    status_code = 401
