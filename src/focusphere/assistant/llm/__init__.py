"""Language-model providers for the chat assistant."""

import logging

from focusphere.assistant.llm.provider import LLMError, LLMProvider
from focusphere.assistant.llm.stub_provider import StubLLMProvider
from focusphere.config import AssistantConfig

logger = logging.getLogger(__name__)

__all__ = ["LLMError", "LLMProvider", "StubLLMProvider", "get_llm_provider"]


def get_llm_provider(config: AssistantConfig) -> LLMProvider:
    """Get the configured LLM provider.

    Returns StubLLMProvider for ``llm_provider: stub`` and OpenAILLMProvider for
    ``llm_provider: openai``. If the OpenAI provider cannot be initialized
    (e.g. OPENAI_API_KEY unset) the stub is used and an error is logged.
    """
    if config.llm_provider == "openai":
        from focusphere.assistant.llm.openai_provider import OpenAILLMProvider

        try:
            return OpenAILLMProvider(
                model=config.llm_model,
                fallback_models=config.llm_fallback_models,
                temperature=config.llm_temperature,
                timeout=config.llm_timeout_seconds,
            )
        except ValueError as e:
            logger.error("Failed to initialize OpenAI LLM provider: %s", e)
            logger.warning("Falling back to stub LLM provider")
            return StubLLMProvider()

    return StubLLMProvider()
