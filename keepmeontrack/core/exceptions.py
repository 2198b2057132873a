class TrackerError(Exception):
    """Base class for errors raised by the tracker core."""


class EntityNotFound(TrackerError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind.capitalize()} not found")


class StorageError(TrackerError):
    """The backing store rejected or failed an operation; nothing was applied."""


class InvalidInput(TrackerError):
    pass
