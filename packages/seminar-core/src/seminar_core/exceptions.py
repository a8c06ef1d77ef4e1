class SeminarError(Exception):
    """Base seminar core exception."""


class ValidationError(SeminarError):
    """Raised when a write body is missing required fields or carries invalid ones."""

    def __init__(self, fields: list[str], reason: str = "missing required fields") -> None:
        super().__init__(f"{reason}: {', '.join(fields)}")
        self.fields = fields


class NotFoundError(SeminarError):
    """Raised when the target seminar of a read, update or delete does not exist."""

    def __init__(self, seminar_id: str) -> None:
        super().__init__(f"seminar {seminar_id} not found")
        self.seminar_id = seminar_id


class ConflictError(SeminarError):
    """Raised when an ingested seminar id is already taken."""

    def __init__(self, seminar_id: str) -> None:
        super().__init__(f"seminar {seminar_id} already exists")
        self.seminar_id = seminar_id


class StoreFailureError(SeminarError):
    """Raised when the record store fails (I/O or constraint violation)."""
