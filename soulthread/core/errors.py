"""Exception hierarchy for the generation and delivery pipeline."""


class SoulThreadError(Exception):
    """Base class for pipeline errors."""


class InvalidRequestError(SoulThreadError):
    """A generation request is missing a required field."""


class NoContentAvailableError(SoulThreadError):
    """Neither live providers nor the curated dataset produced any items."""


class AIGenerationError(SoulThreadError):
    """The chat completions provider failed or is not configured."""

    def __init__(self, message: str, status: int = None) -> None:
        self.status = status
        super().__init__(message)


class StoreError(SoulThreadError):
    """A backing store could not be read or written."""

    def __init__(self, store_name: str, message: str) -> None:
        self.store_name = store_name
        super().__init__(f"[{store_name}] {message}")
