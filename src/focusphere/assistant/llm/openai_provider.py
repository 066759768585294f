"""OpenAI chat-completions provider with model failover."""

import logging
import os
from collections.abc import Sequence

import openai

from focusphere.assistant.llm.provider import LLMError, LLMProvider
from focusphere.logging_utils import redact_secrets

logger = logging.getLogger(__name__)

# Errors after which the next model in the failover list is tried
FAILOVER_ERRORS = (
    openai.RateLimitError,
    openai.NotFoundError,
    openai.InternalServerError,
    openai.APIConnectionError,
)


def _retry_after_seconds(error: Exception) -> float | None:
    """Read the Retry-After header from an API error response, if any."""
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class OpenAILLMProvider(LLMProvider):
    """OpenAI provider that fails over across a list of models."""

    name = "openai"

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        fallback_models: Sequence[str] = (),
        temperature: float = 0.3,
        timeout: float = 30.0,
        client: openai.OpenAI | None = None,
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY env var)
            model: Preferred chat model
            fallback_models: Models tried in order when the preferred one fails over
            temperature: Sampling temperature
            timeout: Request timeout in seconds (default: 30)
            client: Pre-built client (used by tests)

        Raises:
            ValueError: If no API key is configured and no client is given
        """
        if client is None:
            api_key = api_key or os.environ.get("OPENAI_API_KEY")
            if not api_key:
                raise ValueError(
                    "OPENAI_API_KEY environment variable is required for OpenAI provider"
                )
            client = openai.OpenAI(api_key=api_key, timeout=timeout)

        self.client = client
        self.models = [model, *(m for m in fallback_models if m != model)]
        self.temperature = temperature
        self.timeout = timeout

        logger.info(
            "Initialized OpenAI LLM provider: models=%s, timeout=%s",
            ",".join(self.models),
            self.timeout,
        )

    def generate(self, prompt_text: str, system_instruction: str | None = None) -> str:
        """Generate a completion, trying each configured model in turn.

        Raises:
            LLMError: On a non-failover API error, or when every model failed over
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt_text})

        last_error: Exception | None = None
        retry_after: float | None = None

        for model in self.models:
            try:
                response = self.client.chat.completions.create(
                    model=model,
                    messages=messages,
                    temperature=self.temperature,
                    timeout=self.timeout,
                )
            except FAILOVER_ERRORS as e:
                logger.warning(
                    "Model %s unavailable (%s), trying next model: %s",
                    model,
                    type(e).__name__,
                    redact_secrets(str(e)),
                )
                last_error = e
                retry_after = _retry_after_seconds(e) or retry_after
                continue
            except openai.OpenAIError as e:
                logger.error("OpenAI request failed on %s: %s", model, redact_secrets(str(e)))
                raise LLMError(f"LLM request failed: {type(e).__name__}", model=model) from e

            content = response.choices[0].message.content if response.choices else None
            logger.info("Completion received from %s: length=%d", model, len(content or ""))
            return content or ""

        logger.error("All models exhausted: %s", ",".join(self.models))
        raise LLMError(
            "AI service unavailable",
            model=self.models[-1],
            retry_after_seconds=retry_after,
        ) from last_error
