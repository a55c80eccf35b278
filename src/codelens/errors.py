"""Exception types for codelens.

Errors are split by where they are allowed to surface:
- InputError / BatchLimitError: caller input rejected before any network call
- ConfigurationError: missing or invalid configuration (e.g. absent credential)
- ContentSourceError: a collaborator failed to list or fetch repository content
- ResponseShapeError: model output could not be decoded (never leaves the normalizer)

Provider failures are defined next to the client in codelens.llm.client.
"""


class CodelensError(Exception):
    """Base class for all codelens errors."""

    pass


class InputError(CodelensError):
    """Raised when caller input is rejected before processing starts."""

    pass


class BatchLimitError(InputError):
    """Raised when a batch request exceeds the per-batch file cap."""

    def __init__(self, requested: int, limit: int) -> None:
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Too many files requested: {requested} (maximum {limit} per batch)"
        )


class ConfigurationError(CodelensError):
    """Raised when configuration required for analysis is missing or invalid."""

    pass


class ContentSourceError(CodelensError):
    """Raised when repository content cannot be listed or fetched."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        full_message = f"{message} ({path})" if path else message
        super().__init__(full_message)


class ResponseShapeError(CodelensError):
    """Raised when model output does not contain a decodable JSON object."""

    pass
