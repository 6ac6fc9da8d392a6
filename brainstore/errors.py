"""Error taxonomy shared by the stores, the generator and the HTTP layer."""


class BrainstoreError(Exception):
    """Base class for every error raised by brainstore."""


class StoreUnavailable(BrainstoreError):
    """The memory backend could not be reached or rejected the call."""


class NotInitialized(StoreUnavailable):
    """The memory store was used before ``initialize()`` completed."""


class GenerationFailed(BrainstoreError):
    """The external text generator errored; the turn is aborted."""


class PersistenceFailed(BrainstoreError):
    """A durable write (memory or conversation log) failed."""


class ValidationError(BrainstoreError):
    """A request is missing a required field."""
