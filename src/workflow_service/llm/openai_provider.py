"""OpenAI LLM provider implementation."""

import logging

import openai
from openai import OpenAI

from workflow_service.config import ServiceSettings
from workflow_service.llm.provider import LLMInvokeError, LLMProvider

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIProvider(LLMProvider):
    """OpenAI chat completions provider."""

    def __init__(self, settings: ServiceSettings, client: OpenAI | None = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            settings: Service settings carrying the OpenAI credentials and model.
            client: Pre-built client, mainly for tests.

        Raises:
            ValueError: If no client is given and the API key is not set.
        """
        if client is None and not settings.openai_api_key:
            raise ValueError("OpenAI API key is required")

        self.client = client or OpenAI(api_key=settings.openai_api_key)
        self.model = settings.openai_model
        self.temperature = settings.openai_temperature

        logger.info(f"OpenAI provider initialized with model: {self.model}")

    def chat(self, system: str, prompt: str) -> str:
        logger.debug(f"Generating chat completion for prompt: {prompt[:100]}...")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
            )
        except _TRANSIENT_ERRORS as e:
            raise LLMInvokeError(f"OpenAI call failed: {e}", transient=True) from e
        except openai.OpenAIError as e:
            raise LLMInvokeError(f"OpenAI call failed: {e}", transient=False) from e

        content = response.choices[0].message.content or ""
        logger.debug(f"Generated {len(content)} characters")

        return content
