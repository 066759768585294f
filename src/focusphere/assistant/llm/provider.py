"""Language-model provider interface."""

from abc import ABC, abstractmethod


class LLMError(Exception):
    """Raised when a completion cannot be produced (quota, network, model error)."""

    def __init__(
        self,
        message: str,
        model: str | None = None,
        retry_after_seconds: float | None = None,
    ) -> None:
        super().__init__(message)
        self.model = model
        self.retry_after_seconds = retry_after_seconds


class LLMProvider(ABC):
    """Abstract base class for text-completion providers."""

    name: str = "base"

    @abstractmethod
    def generate(self, prompt_text: str, system_instruction: str | None = None) -> str:
        """Generate a completion for a prompt.

        Args:
            prompt_text: Rendered user-side prompt
            system_instruction: Optional system instruction

        Returns:
            Completion text

        Raises:
            LLMError: If no completion could be produced
        """
        pass
