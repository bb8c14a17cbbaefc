"""Exceptions raised at the pipeline boundary."""


class EmptyInputError(ValueError):
    """Raised when input text is empty or whitespace-only."""

    def __init__(self, message: str = "Input text is empty"):
        super().__init__(message)
