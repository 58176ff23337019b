"""Domain error taxonomy.

Services raise these; routers and the exception handlers in ``main`` turn
them into responses. None of them is fatal to the process.
"""


class DomainError(Exception):
    """Base class for every error raised by the domain layer."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(DomainError):
    """A referenced user or event id does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found")
        self.entity = entity
        self.entity_id = entity_id


class EventFullError(DomainError):
    """The event has reached its capacity."""

    def __init__(self, event_id: str):
        super().__init__("Event is full")
        self.event_id = event_id


class EventClosedError(DomainError):
    """The event has already taken place and RSVPs to past events are disabled."""

    def __init__(self, event_id: str):
        super().__init__("Event has already taken place")
        self.event_id = event_id


class AlreadyExistsError(DomainError):
    """Store-level signal: the attendance pair is already present.

    Absorbed by the domain service into an idempotent success.
    """


class ValidationError(DomainError):
    """Malformed creation or update input."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class ConflictError(DomainError):
    """A uniqueness rule other than attendance was violated (e.g. email)."""


class ForbiddenError(DomainError):
    """The acting user may not perform this change."""


class ContentionError(DomainError):
    """A transient storage or lock conflict outlived the configured retries."""
