"""LLM exception definitions.

Adapters translate SDK and HTTP failures into this hierarchy. The
disambiguation fallback catches all of it at its boundary.
"""


class LLMError(Exception):
    """Base exception for LLM operations."""

    pass


class ProviderError(LLMError):
    """Error from the LLM provider.

    Attributes:
        is_retryable: Whether this error can be retried.
        status_code: HTTP status code if applicable.
    """

    def __init__(
        self,
        message: str,
        is_retryable: bool = False,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable
        self.status_code = status_code


class ProviderTimeoutError(ProviderError):
    """The provider did not answer in time or could not be reached."""

    def __init__(self, message: str = "Provider request timed out") -> None:
        super().__init__(message, is_retryable=True)


class RateLimitError(ProviderError):
    """Rate limit exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, is_retryable=True, status_code=429)
        self.retry_after = retry_after


class AuthenticationError(ProviderError):
    """Invalid API key or authentication failed."""

    def __init__(self, message: str = "Authentication failed", status_code: int = 401) -> None:
        super().__init__(message, is_retryable=False, status_code=status_code)


class ContentPolicyError(ProviderError):
    """The prompt was refused under the provider's usage policies."""

    def __init__(self, message: str = "Content policy violation") -> None:
        super().__init__(message, is_retryable=False)


class ContextLengthError(ProviderError):
    """Prompt exceeds the model's context window."""

    def __init__(self, message: str, max_tokens: int | None = None) -> None:
        super().__init__(message, is_retryable=False)
        self.max_tokens = max_tokens


class UnsupportedProviderError(LLMError):
    """Requested provider is not supported."""

    pass


class StructuredOutputError(LLMError):
    """No valid structured block could be read from the generated text.

    Attributes:
        raw_output: The raw output that failed to parse.
    """

    def __init__(self, message: str, raw_output: str | None = None) -> None:
        super().__init__(message)
        self.raw_output = raw_output
