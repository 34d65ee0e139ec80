"""Error taxonomy for the extraction pipeline."""


class MindsiftError(Exception):
    """Base class for all pipeline errors."""


class TranscriptionFailure(MindsiftError):
    """Speech-to-text returned nothing usable."""


class ExtractionFailure(MindsiftError):
    """The model call failed or returned unusable content for a whole dump."""


class ItemValidationFailure(MindsiftError):
    """One extracted item did not match the thought schema."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"item {index}: {reason}")
        self.index = index
        self.reason = reason


class PersistenceFailure(MindsiftError):
    """A storage write or read failed."""


class EmbeddingFailure(MindsiftError):
    """The embedding call failed."""
