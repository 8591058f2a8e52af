"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod


class LLMInvokeError(Exception):
    """Raised by providers when a model call fails.

    `transient` tells the caller whether the same call may succeed on retry.
    """

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class LLMProvider(ABC):
    """Pluggable chat backend used by the step worker."""

    @abstractmethod
    def chat(self, system: str, prompt: str) -> str:
        """Send one system + user message pair and return the reply text.

        Raises:
            LLMInvokeError: If the model could not be invoked.
        """
