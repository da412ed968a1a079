"""Typed errors raised by the domain layer and the persistence adapters.

Each carries the HTTP status the API answers with; see
``archiver.main.register_exception_handlers``.
"""


class ArchiveError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ArchiveError):
    """A required field is missing or malformed."""

    status_code = 400


class ConflictError(ArchiveError):
    """A uniqueness rule would be violated."""

    status_code = 400


class NotFoundError(ArchiveError):
    status_code = 404


class ConstraintError(ArchiveError):
    """A referential-integrity rule blocks the operation."""

    status_code = 400


class StorageError(ArchiveError):
    """The object store failed to store, read or remove a file."""

    status_code = 502


class UnknownError(ArchiveError):
    status_code = 500
