"""
Unit tests for GenerationService.
"""
import json
import math
import uuid
from datetime import datetime
from unittest.mock import Mock

import pytest

from config.settings import GenerationConfig
from services.generation_service import GenerationService, parse_sql_candidate
from services.llm_service import LLMResponse
from utils.errors import DimensionMismatchError, GenerationError, SchemaStoreError
from utils.models import SearchResult, VectorPayload


def make_search_result(content: str, score: float = 0.9) -> SearchResult:
    return SearchResult(id=str(uuid.uuid4()), score=score, payload=VectorPayload(content=content))


class TestParseSqlCandidate:
    """Test parsing of completion text."""

    def test_valid_response(self):
        candidate = parse_sql_candidate(
            '{"sql": "SELECT * FROM orders", "confidence": 0.85, "explanation": "All orders"}'
        )

        assert candidate.sql == "SELECT * FROM orders"
        assert candidate.confidence == 0.85
        assert candidate.explanation == "All orders"

    def test_confidence_is_not_clamped(self):
        candidate = parse_sql_candidate('{"sql": "SELECT 1", "confidence": 1.7, "explanation": ""}')

        assert candidate.confidence == 1.7

    def test_integer_confidence(self):
        candidate = parse_sql_candidate('{"sql": "SELECT 1", "confidence": 1, "explanation": ""}')

        assert candidate.confidence == 1.0

    def test_nan_confidence_passes_through(self):
        candidate = parse_sql_candidate('{"sql": "SELECT 1", "confidence": NaN, "explanation": ""}')

        assert math.isnan(candidate.confidence)

    @pytest.mark.parametrize("text", [
        "SELECT * FROM orders",
        '```json\n{"sql": "SELECT 1", "confidence": 0.9, "explanation": ""}\n```',
        '["SELECT 1", 0.9]',
        '{"sql": "SELECT 1", "confidence": 0.9}',
        '{"confidence": 0.9, "explanation": "no sql"}',
        '{"sql": null, "confidence": 0.9, "explanation": ""}',
        '{"sql": "SELECT 1", "confidence": "high", "explanation": ""}',
        '{"sql": "SELECT 1", "confidence": true, "explanation": ""}',
        "",
    ])
    def test_rejects_malformed_response(self, text):
        with pytest.raises(GenerationError):
            parse_sql_candidate(text)


class TestGenerationService:
    """Test GenerationService functionality."""

    def setup_method(self):
        """Set up test fixtures."""
        self.config = GenerationConfig(max_tokens=1000, temperature=0.1, top_k=5)
        self.mock_embedding_service = Mock()
        self.mock_embedding_service.embed.return_value = [0.1, 0.2, 0.3]
        self.mock_llm_service = Mock()
        self.mock_llm_service.generate_completion.return_value = LLMResponse(
            content=json.dumps({
                "sql": "SELECT COUNT(*) FROM users",
                "confidence": 0.92,
                "explanation": "Counts all users"
            }),
            success=True
        )
        self.mock_vector_index = Mock()
        self.mock_vector_index.search.return_value = [
            make_search_result("CREATE TABLE users (id int, name varchar(100))"),
            make_search_result("CREATE TABLE orders (id int, user_id int)", score=0.7),
        ]
        self.mock_schema_store = Mock()

        self.service = GenerationService(
            generation_config=self.config,
            embedding_service=self.mock_embedding_service,
            llm_service=self.mock_llm_service,
            vector_index=self.mock_vector_index,
            schema_store=self.mock_schema_store
        )

    def test_generate_sql_success(self):
        """Test the retrieve-then-complete flow."""
        candidate = self.service.generate_sql("How many users are there?")

        assert candidate.sql == "SELECT COUNT(*) FROM users"
        assert candidate.confidence == 0.92
        assert candidate.explanation == "Counts all users"

        self.mock_embedding_service.embed.assert_called_once_with("How many users are there?")
        self.mock_vector_index.search.assert_called_once_with([0.1, 0.2, 0.3], limit=5)

    def test_generate_sql_prompt_contains_ranked_context(self):
        """Test retrieved schema text is joined by blank lines in ranked order."""
        self.service.generate_sql("How many users are there?")

        call_kwargs = self.mock_llm_service.generate_completion.call_args.kwargs
        prompt = call_kwargs["prompt"]
        assert (
            "CREATE TABLE users (id int, name varchar(100))\n\nCREATE TABLE orders (id int, user_id int)"
            in prompt
        )
        assert "Question: How many users are there?" in prompt
        assert '"confidence"' in prompt
        assert "SQL expert" in call_kwargs["system_prompt"]
        assert call_kwargs["max_tokens"] == 1000
        assert call_kwargs["temperature"] == 0.1

    def test_generate_sql_without_context_still_completes(self):
        """Test an empty corpus still issues the completion call."""
        self.mock_vector_index.search.return_value = []

        candidate = self.service.generate_sql("How many users are there?")

        assert candidate.sql == "SELECT COUNT(*) FROM users"
        self.mock_llm_service.generate_completion.assert_called_once()
        assert "CREATE TABLE" not in self.mock_llm_service.generate_completion.call_args.kwargs["prompt"]

    def test_generate_sql_embedding_failure(self):
        error = RuntimeError("embedding endpoint down")
        self.mock_embedding_service.embed.side_effect = error

        with pytest.raises(GenerationError) as exc_info:
            self.service.generate_sql("question")

        assert exc_info.value.cause is error
        self.mock_llm_service.generate_completion.assert_not_called()

    def test_generate_sql_search_failure(self):
        self.mock_vector_index.search.side_effect = RuntimeError("milvus down")

        with pytest.raises(GenerationError, match="Vector search failed"):
            self.service.generate_sql("question")

    def test_generate_sql_completion_failure(self):
        error = Exception("API error")
        self.mock_llm_service.generate_completion.return_value = LLMResponse(
            content="", success=False, error="API error", exception=error
        )

        with pytest.raises(GenerationError) as exc_info:
            self.service.generate_sql("question")

        assert exc_info.value.cause is error

    def test_generate_sql_malformed_json(self):
        self.mock_llm_service.generate_completion.return_value = LLMResponse(
            content="Sure! SELECT * FROM users", success=True
        )

        with pytest.raises(GenerationError, match="Failed to parse"):
            self.service.generate_sql("question")

        # parsing failures are not retried at this layer
        assert self.mock_llm_service.generate_completion.call_count == 1

    def test_train_from_schema(self):
        """Test one record is upserted with schema metadata."""
        ddl = "CREATE TABLE users (id int)"

        self.service.train_from_schema(ddl)

        self.mock_embedding_service.embed.assert_called_once_with(ddl)
        records = self.mock_vector_index.upsert.call_args.args[0]
        assert len(records) == 1
        record = records[0]
        assert uuid.UUID(record.id)
        assert record.vector == [0.1, 0.2, 0.3]
        assert record.payload.content == ddl
        assert record.payload.metadata["type"] == "schema"
        assert datetime.fromisoformat(record.payload.metadata["timestamp"])

    def test_train_from_schema_generates_fresh_ids(self):
        """Test identical DDL trained twice yields two distinct records."""
        self.service.train_from_schema("CREATE TABLE users (id int)")
        self.service.train_from_schema("CREATE TABLE users (id int)")

        ids = [call.args[0][0].id for call in self.mock_vector_index.upsert.call_args_list]
        assert len(ids) == 2
        assert ids[0] != ids[1]

    def test_train_from_schema_embedding_failure(self):
        self.mock_embedding_service.embed.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(GenerationError):
            self.service.train_from_schema("CREATE TABLE users (id int)")

        self.mock_vector_index.upsert.assert_not_called()

    def test_train_from_schema_storage_failure(self):
        error = DimensionMismatchError(expected=1536, actual=3)
        self.mock_vector_index.upsert.side_effect = error

        with pytest.raises(GenerationError) as exc_info:
            self.service.train_from_schema("CREATE TABLE users (id int)")

        assert exc_info.value.cause is error

    def test_execute_query(self):
        self.mock_schema_store.query.return_value = [{"count": 3}]

        rows = self.service.execute_query("SELECT COUNT(*) AS count FROM users")

        assert rows == [{"count": 3}]
        self.mock_schema_store.query.assert_called_once_with("SELECT COUNT(*) AS count FROM users")

    def test_execute_query_failure_is_wrapped(self):
        error = SchemaStoreError("Query failed: table missing")
        self.mock_schema_store.query.side_effect = error

        with pytest.raises(GenerationError) as exc_info:
            self.service.execute_query("SELECT * FROM missing")

        assert exc_info.value.cause is error
