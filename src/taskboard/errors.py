"""
Error taxonomy shared by the record store and the request pipeline.

Every failure that reaches the error reporter is one of these (or an arbitrary
exception raised by a handler). The pipeline does not map kinds to distinct
HTTP statuses: all of them surface as a 500 response.
"""


class TaskboardError(Exception):
    """Base class for all application errors."""


class StorageError(TaskboardError):
    """The storage engine rejected an operation (I/O failure, constraint violation)."""


class NotFoundError(TaskboardError):
    """A referenced record does not exist."""


class ValidationError(TaskboardError):
    """Request input could not be decoded or coerced."""
