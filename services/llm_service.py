"""
LLM Service for handling language model API calls.
"""
import logging
from typing import Dict, Optional, Any
from dataclasses import dataclass

from openai import OpenAI

from config.settings import GenerationConfig


@dataclass
class LLMResponse:
    """LLM response wrapper."""
    content: str
    success: bool
    error: Optional[str] = None
    usage: Optional[Dict[str, Any]] = None
    model: Optional[str] = None
    exception: Optional[BaseException] = None


class LLMService:
    """Service for interacting with Language Models."""

    def __init__(self, generation_config: GenerationConfig):
        """Initialize LLM service.

        Args:
            generation_config: Supplies model name, API key, base URL and call defaults
        """
        self.model_name = generation_config.model
        self.api_key = generation_config.api_key
        self.base_url = generation_config.base_url
        self.max_tokens = generation_config.max_tokens
        self.temperature = generation_config.temperature
        self.timeout = generation_config.timeout

        client_kwargs = {}
        if self.api_key:
            client_kwargs["api_key"] = self.api_key
        if self.base_url:
            client_kwargs["base_url"] = self.base_url

        self.client = OpenAI(**client_kwargs)
        self.logger = logging.getLogger(__name__)

        self.logger.info(f"Initialized LLM service with model: {self.model_name}")

    def generate_completion(self, prompt: str, temperature: Optional[float] = None,
                            max_tokens: Optional[int] = None,
                            system_prompt: Optional[str] = None) -> LLMResponse:
        """Generate completion from LLM.

        Args:
            prompt: User prompt
            temperature: Sampling temperature, configured default if None
            max_tokens: Maximum tokens to generate, configured default if None
            system_prompt: Optional system prompt

        Returns:
            LLMResponse with generated content; ``success`` is False on API failure
        """
        try:
            messages = []

            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})

            messages.append({"role": "user", "content": prompt})

            self.logger.debug(f"Calling LLM with {len(messages)} messages")

            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=self.max_tokens if max_tokens is None else max_tokens,
                timeout=self.timeout
            )

            content = response.choices[0].message.content or ""
            usage = response.usage.model_dump() if response.usage else None

            self.logger.debug(f"LLM response received: {len(content)} characters")

            return LLMResponse(
                content=content,
                success=True,
                usage=usage,
                model=self.model_name
            )

        except Exception as e:
            self.logger.error(f"LLM API call failed: {e}")
            return LLMResponse(
                content="",
                success=False,
                error=str(e),
                exception=e
            )
