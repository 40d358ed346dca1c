"""
Retrieval-augmented SQL generation.

Bridges natural language and SQL: questions are embedded, matched against the
schema corpus in the vector index, and the retrieved DDL is handed to the LLM
together with the question. The same service performs the embed-and-store half
of training and runs generated SQL against the schema store.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from numbers import Real
from typing import Any, Dict, List

from config.settings import GenerationConfig
from services.embedding_service import EmbeddingService
from services.llm_service import LLMService
from storage.base import SchemaStore, VectorIndex
from utils.errors import GenerationError
from utils.models import SqlCandidate, VectorPayload, VectorRecord
from utils.prompts import get_sql_generation_prompt

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("sql", "confidence", "explanation")


def parse_sql_candidate(text: str) -> SqlCandidate:
    """Parse a completion into a SqlCandidate.

    The text must be a JSON object carrying ``sql``, ``confidence`` and
    ``explanation``. Confidence is returned as given, without clamping.

    Raises:
        GenerationError: if the text is not such an object
    """
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise GenerationError(f"Failed to parse AI response: {e}", e) from e

    if not isinstance(parsed, dict):
        raise GenerationError(f"AI response is not a JSON object: {text[:100]}")

    missing = [name for name in REQUIRED_FIELDS if name not in parsed]
    if missing:
        raise GenerationError(f"AI response is missing fields: {missing}")

    sql = parsed["sql"]
    confidence = parsed["confidence"]
    if not isinstance(sql, str):
        raise GenerationError(f"AI response field 'sql' is not a string: {sql!r}")
    if isinstance(confidence, bool) or not isinstance(confidence, Real):
        raise GenerationError(f"AI response field 'confidence' is not a number: {confidence!r}")

    return SqlCandidate(
        sql=sql,
        confidence=float(confidence),
        explanation=str(parsed["explanation"])
    )


class GenerationService:
    """Text-to-SQL generation over a vector-indexed schema corpus."""

    def __init__(self, generation_config: GenerationConfig,
                 embedding_service: EmbeddingService,
                 llm_service: LLMService,
                 vector_index: VectorIndex,
                 schema_store: SchemaStore):
        """Initialize generation service.

        Args:
            generation_config: Retrieval depth and completion parameters
            embedding_service: Embeds questions and DDL
            llm_service: Issues the completion call
            vector_index: Schema corpus to search and train into
            schema_store: Database that generated SQL runs against
        """
        self.config = generation_config
        self.embedding_service = embedding_service
        self.llm_service = llm_service
        self.vector_index = vector_index
        self.schema_store = schema_store

    def _embed(self, text: str) -> List[float]:
        try:
            return self.embedding_service.embed(text)
        except Exception as e:
            raise GenerationError(f"Failed to generate embedding: {e}", e) from e

    def retrieve_schema_context(self, question: str) -> str:
        """Schema text of the top-K most similar records, joined by blank lines."""
        question_embedding = self._embed(question)

        try:
            similar_schemas = self.vector_index.search(question_embedding, limit=self.config.top_k)
        except Exception as e:
            raise GenerationError(f"Vector search failed: {e}", e) from e

        logger.debug(f"Retrieved {len(similar_schemas)} schema records for question")
        return "\n\n".join(result.payload.content for result in similar_schemas)

    def generate_sql(self, question: str) -> SqlCandidate:
        """Generate a SQL candidate for a natural language question.

        Raises:
            GenerationError: on embedding, search or completion failure, or an
                unparseable completion
        """
        schema_context = self.retrieve_schema_context(question)
        if not schema_context:
            logger.warning("No schema context found, generating without it")

        system_prompt, prompt = get_sql_generation_prompt(
            question=question,
            schema_context=schema_context
        )

        response = self.llm_service.generate_completion(
            prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature
        )
        if not response.success:
            raise GenerationError(f"SQL generation failed: {response.error}", response.exception)

        candidate = parse_sql_candidate(response.content)
        logger.info(f"Generated SQL with confidence {candidate.confidence}: {candidate.sql[:100]}")
        return candidate

    def train_from_schema(self, ddl: str):
        """Embed one DDL string and store it as a new record.

        Not idempotent: every call stores a fresh record under a new id.

        Raises:
            GenerationError: wrapping the embedding or storage failure
        """
        embedding = self._embed(ddl)

        record = VectorRecord(
            id=str(uuid.uuid4()),
            vector=embedding,
            payload=VectorPayload(
                content=ddl,
                metadata={
                    "type": "schema",
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            )
        )

        try:
            self.vector_index.upsert([record])
        except Exception as e:
            raise GenerationError(f"Failed to store schema: {e}", e) from e

        logger.debug(f"Stored schema record {record.id}")

    def execute_query(self, sql: str) -> List[Dict[str, Any]]:
        """Run SQL against the schema store and return its rows."""
        try:
            return self.schema_store.query(sql)
        except Exception as e:
            raise GenerationError(f"Query execution failed: {e}", e) from e
