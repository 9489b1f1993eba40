"""
Domain error hierarchy.

Every error carries the HTTP status it maps to; ``fintrack.main`` renders
them as ``{"error": message}`` bodies.
"""


class FinanceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FinanceError):
    """Malformed or inconsistent input."""
    status_code = 400


class NotFoundError(FinanceError):
    """Referenced record is absent, soft-deleted or owned by someone else."""
    status_code = 404


class ConflictError(FinanceError):
    """Record would duplicate an existing one."""
    status_code = 409


class AuthError(FinanceError):
    status_code = 401


class InvalidAccountError(NotFoundError):
    pass


class InvalidCategoryError(ValidationError):
    pass


class SameAccountError(ValidationError):
    pass


class CategoryTypeMismatchError(ValidationError):
    pass


class NotDeletedError(ValidationError):
    pass


class TransferEditError(ValidationError):
    pass


class DuplicateActiveBudgetError(ConflictError):
    pass


class InvalidTokenError(AuthError):
    """Token present but malformed, tampered with or expired."""
    status_code = 403
