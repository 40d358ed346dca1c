"""
Embedding service for generating vector embeddings.
"""
import time
import logging
from typing import List

from openai import OpenAI

from config.settings import GenerationConfig

logger = logging.getLogger(__name__)


class EmbeddingService:
    """OpenAI embedding service."""

    def __init__(self, generation_config: GenerationConfig):
        """Initialize embedding service.

        Args:
            generation_config: Supplies the embedding model, API key and base URL
        """
        self.model = generation_config.embedding_model
        self.api_key = generation_config.api_key
        self.base_url = generation_config.base_url

        client_kwargs = {"timeout": generation_config.timeout}
        if self.api_key:
            client_kwargs["api_key"] = self.api_key
        if self.base_url:
            client_kwargs["base_url"] = self.base_url
        self.client = OpenAI(**client_kwargs)
        logger.info(f"Initialized OpenAI embedding client with model: {self.model}, base_url: {self.base_url}")

    def embed(self, text: str) -> List[float]:
        """Generate embedding for a single text."""
        start_time = time.time()

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text
            )
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise

        processing_time = time.time() - start_time
        logger.debug(f"Generated embedding for text (length: {len(text)}) in {processing_time:.3f}s")
        return list(response.data[0].embedding)

