"""
Unit tests for the OpenAI-backed LLM and embedding services.
"""
from unittest.mock import Mock, patch

import pytest

from config.settings import GenerationConfig
from services.embedding_service import EmbeddingService
from services.llm_service import LLMService, LLMResponse


class TestLLMResponse:
    """Test LLMResponse dataclass."""

    def test_llm_response_creation(self):
        response = LLMResponse(
            content="Test content",
            success=True,
            usage={"tokens": 100},
            model="test-model"
        )

        assert response.content == "Test content"
        assert response.success is True
        assert response.error is None
        assert response.exception is None


class TestLLMService:
    """Test LLMService class."""

    def setup_method(self):
        """Setup test fixtures."""
        self.config = GenerationConfig(
            model="test-model",
            api_key="test-key",
            base_url="https://test.api.com",
            max_tokens=1000,
            temperature=0.1
        )
        self.llm_service = LLMService(self.config)

    @patch('services.llm_service.OpenAI')
    def test_initialization(self, mock_openai):
        """Test LLM service initialization."""
        service = LLMService(self.config)

        assert service.model_name == "test-model"
        assert service.max_tokens == 1000
        mock_openai.assert_called_once_with(api_key="test-key", base_url="https://test.api.com")

    def test_generate_completion_success(self):
        """Test successful completion generation."""
        mock_response = Mock()
        mock_response.choices = [Mock()]
        mock_response.choices[0].message.content = '{"sql": "SELECT 1"}'
        mock_response.usage.model_dump.return_value = {"total_tokens": 50}

        self.llm_service.client.chat.completions.create = Mock(return_value=mock_response)

        response = self.llm_service.generate_completion(
            prompt="Test prompt",
            system_prompt="You are a SQL expert.",
            temperature=0.2,
            max_tokens=100
        )

        assert response.success is True
        assert response.content == '{"sql": "SELECT 1"}'
        assert response.usage == {"total_tokens": 50}
        assert response.model == "test-model"

        call_kwargs = self.llm_service.client.chat.completions.create.call_args.kwargs
        assert call_kwargs["temperature"] == 0.2
        assert call_kwargs["max_tokens"] == 100
        assert call_kwargs["messages"][0] == {"role": "system", "content": "You are a SQL expert."}
        assert call_kwargs["messages"][1] == {"role": "user", "content": "Test prompt"}

    def test_generate_completion_uses_configured_defaults(self):
        """Test temperature and max_tokens fall back to configuration."""
        mock_response = Mock()
        mock_response.choices = [Mock()]
        mock_response.choices[0].message.content = "ok"
        mock_response.usage = None

        self.llm_service.client.chat.completions.create = Mock(return_value=mock_response)

        self.llm_service.generate_completion("Test prompt")

        call_kwargs = self.llm_service.client.chat.completions.create.call_args.kwargs
        assert call_kwargs["temperature"] == 0.1
        assert call_kwargs["max_tokens"] == 1000
        assert len(call_kwargs["messages"]) == 1

    def test_generate_completion_failure(self):
        """Test completion generation failure is reported, not raised."""
        error = Exception("API error")
        self.llm_service.client.chat.completions.create = Mock(side_effect=error)

        response = self.llm_service.generate_completion("Test prompt")

        assert response.success is False
        assert response.content == ""
        assert response.error == "API error"
        assert response.exception is error


class TestEmbeddingService:
    """Test EmbeddingService class."""

    def setup_method(self):
        self.config = GenerationConfig(embedding_model="test-embedding", api_key="test-key")
        self.embedding_service = EmbeddingService(self.config)

    def test_embed(self):
        mock_response = Mock()
        mock_response.data = [Mock(embedding=[0.1, 0.2, 0.3])]
        self.embedding_service.client.embeddings.create = Mock(return_value=mock_response)

        embedding = self.embedding_service.embed("CREATE TABLE users (id int)")

        assert embedding == [0.1, 0.2, 0.3]
        self.embedding_service.client.embeddings.create.assert_called_once_with(
            model="test-embedding",
            input="CREATE TABLE users (id int)"
        )

    def test_embed_failure_propagates(self):
        self.embedding_service.client.embeddings.create = Mock(side_effect=RuntimeError("rate limited"))

        with pytest.raises(RuntimeError):
            self.embedding_service.embed("text")

