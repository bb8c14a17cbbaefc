"""Tests for LLM exception hierarchy."""

from vai.llm.exceptions import (
    AuthenticationError,
    ContentPolicyError,
    ContextLengthError,
    LLMError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    StructuredOutputError,
    UnsupportedProviderError,
)


class TestExceptionHierarchy:
    """Tests that every failure is catchable as LLMError."""

    def test_all_are_llm_errors(self):
        for error in (
            ProviderError("x"),
            ProviderTimeoutError(),
            RateLimitError(),
            AuthenticationError(),
            ContentPolicyError(),
            ContextLengthError("x"),
            UnsupportedProviderError("x"),
            StructuredOutputError("x"),
        ):
            assert isinstance(error, LLMError)

    def test_retryable_flags(self):
        """Test which provider errors are retryable."""
        assert ProviderTimeoutError().is_retryable
        assert RateLimitError().is_retryable
        assert not AuthenticationError().is_retryable
        assert not ContentPolicyError().is_retryable
        assert not ContextLengthError("too long").is_retryable
        assert not ProviderError("x").is_retryable


class TestExceptionAttributes:
    """Tests for exception attributes."""

    def test_rate_limit(self):
        error = RateLimitError(retry_after=5.0)

        assert error.retry_after == 5.0
        assert error.status_code == 429

    def test_authentication_status(self):
        assert AuthenticationError().status_code == 401
        assert AuthenticationError(status_code=403).status_code == 403

    def test_context_length(self):
        error = ContextLengthError("too long", max_tokens=8192)

        assert error.max_tokens == 8192
        assert str(error) == "too long"

    def test_structured_output_keeps_raw(self):
        error = StructuredOutputError("no json", raw_output="I think attack")

        assert error.raw_output == "I think attack"
