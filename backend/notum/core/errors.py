"""Exception hierarchy shared by the store, services and messaging layers."""

from __future__ import annotations

import builtins


class NotumError(Exception):
    """Base class for every error raised by Notum."""


class NotFoundError(NotumError):
    """An operation targeted an id that does not exist."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class NotATemplateError(NotumError):
    """A track used as a template source is not flagged as one."""

    def __init__(self, track_id: str) -> None:
        super().__init__(f"Track is not a template: {track_id}")
        self.track_id = track_id


class ConstraintViolationError(NotumError):
    """A uniqueness index rejected an insert or update."""


class NotOpenError(NotumError):
    """The entity store was used before ``open()`` or after ``close()``."""


class InvalidInputError(NotumError):
    """Malformed import bundle, unsupported file type or bad message payload."""


class RequestTimeoutError(NotumError, builtins.TimeoutError):
    """A cross-context request exceeded its deadline."""


class TransportError(NotumError):
    """The cross-context channel itself failed."""


class RemoteError(NotumError):
    """The processing worker reported a failure for a request."""

    def __init__(self, request_type: str, message: str) -> None:
        super().__init__(f"{request_type} failed: {message}")
        self.request_type = request_type


__all__ = [
    "NotumError",
    "NotFoundError",
    "NotATemplateError",
    "ConstraintViolationError",
    "NotOpenError",
    "InvalidInputError",
    "RequestTimeoutError",
    "TransportError",
    "RemoteError",
]
