"""Claude (Anthropic) LLM provider."""

from ..base import LLMAuthError, LLMError, LLMProvider, LLMRateLimitError

_JSON_INSTRUCTION = "Respond with a single JSON object and nothing else."


class ClaudeProvider(LLMProvider):
    """Anthropic Claude provider."""

    provider_name = "claude"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.model = model or "claude-sonnet-4-6"

        if client:
            self.client = client
            return

        try:
            from anthropic import Anthropic
        except ImportError:
            raise LLMError("anthropic package not installed. Run: pip install anthropic")

        self.client = Anthropic(api_key=api_key)

    def _handle_error(self, e: Exception):
        from anthropic import APIError, AuthenticationError, RateLimitError

        if isinstance(e, AuthenticationError):
            raise LLMAuthError(f"Claude auth failed: {e}") from e
        if isinstance(e, RateLimitError):
            raise LLMRateLimitError(f"Claude rate limit: {e}") from e
        if isinstance(e, APIError):
            raise LLMError(f"Claude API error: {e}") from e
        raise LLMError(f"Claude error: {e}") from e

    def generate(
        self,
        messages: list[dict],
        system: str | None = None,
        max_tokens: int = 2000,
        json_mode: bool = False,
    ) -> str:
        # No native JSON mode; steer through the system prompt instead
        if json_mode:
            system = f"{system}\n\n{_JSON_INSTRUCTION}" if system else _JSON_INSTRUCTION

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        try:
            response = self.client.messages.create(**kwargs)
        except Exception as e:
            self._handle_error(e)

        return "".join(block.text for block in response.content if getattr(block, "text", None))
