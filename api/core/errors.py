"""
Typed failures raised by the domain layer.

The HTTP layer maps these to responses (see `api/main.py`); services never
raise HTTPException themselves.
"""

from __future__ import annotations


class ServiceError(RuntimeError):
    pass


class ValidationError(ServiceError):
    """
    Input is malformed (not an email, empty required collection).
    """

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation error")


class NotFoundError(ServiceError):
    """
    A teacher/student that must exist does not. `missing` lists every absent email.
    """

    def __init__(self, message: str, *, missing: list[str] | None = None) -> None:
        self.missing = list(missing or [])
        super().__init__(message)


# Persistence failed: connectivity, timeouts or an unexpected constraint violation.
class StorageError(ServiceError):
    pass
