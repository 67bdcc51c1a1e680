class MedReminderError(Exception):
    """Base class for errors raised by the reminder backend."""


class ValidationError(MedReminderError):
    """Malformed profile or medicine input. Raised before anything is written."""


class InvalidTransitionError(ValidationError):
    """A change that would leave a terminal state (resolved dose, stopped medicine)."""


class NotFoundError(MedReminderError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id


class StorageError(MedReminderError):
    """The storage engine is unavailable or rejected the operation."""
