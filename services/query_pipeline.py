"""
Query pipeline: the per-question request/response cycle.

Built as a LangGraph workflow:

    generate -> check_confidence -> validate -> execute | skip_execution -> finish

Any node may raise, which ends the run; the exception reaches the caller of
``ask_question`` unchanged. The compiled graph and the frozen configuration are
the only state shared between calls, so one pipeline can serve concurrent
questions.
"""
import logging
import math
import time
from typing import Any, Dict, List, Optional, Tuple, TypedDict

from langgraph.graph import StateGraph, END

from config.settings import PipelineConfig
from services.generation_service import GenerationService
from storage.base import SchemaStore
from utils.errors import (
    InvalidSqlError,
    LowConfidenceError,
    QueryPipelineError,
    SchemaStoreError,
    ValidationUnavailableError,
)
from utils.models import QueryResult, SqlCandidate, ValidationOutcome

logger = logging.getLogger(__name__)


class QueryState(TypedDict, total=False):
    """Workflow state of one ask_question call."""
    question: str
    started_at: float
    stage: str
    candidate: Optional[SqlCandidate]
    results: List[Dict[str, Any]]
    execution_time: float


def passes_confidence_gate(confidence: float, min_confidence: float) -> bool:
    """Non-finite confidences never pass; out-of-range values are compared as given."""
    return math.isfinite(confidence) and confidence >= min_confidence


class QueryPipeline:
    """Generates, gates, validates and (unless dry-run) executes SQL for a question."""

    def __init__(self, pipeline_config: PipelineConfig,
                 generation_service: GenerationService,
                 schema_store: SchemaStore):
        """
        Args:
            pipeline_config: Confidence threshold and dry-run switch
            generation_service: Produces SQL candidates and executes SQL
            schema_store: Database used for EXPLAIN validation
        """
        self.config = pipeline_config
        self.generation_service = generation_service
        self.schema_store = schema_store
        self.workflow = self._create_workflow()

    def _create_workflow(self):
        workflow = StateGraph(QueryState)

        workflow.add_node("generate", self._generate_node)
        workflow.add_node("check_confidence", self._check_confidence_node)
        workflow.add_node("validate", self._validate_node)
        workflow.add_node("execute", self._execute_node)
        workflow.add_node("skip_execution", self._skip_execution_node)
        workflow.add_node("finish", self._finish_node)

        workflow.set_entry_point("generate")
        workflow.add_edge("generate", "check_confidence")
        workflow.add_edge("check_confidence", "validate")
        workflow.add_conditional_edges(
            "validate",
            self._route_execution,
            {
                "execute": "execute",
                "skip": "skip_execution"
            }
        )
        workflow.add_edge("execute", "finish")
        workflow.add_edge("skip_execution", "finish")
        workflow.add_edge("finish", END)

        return workflow.compile()

    # Workflow nodes

    def _generate_node(self, state: QueryState) -> Dict[str, Any]:
        try:
            candidate = self.generation_service.generate_sql(state["question"])
        except Exception as e:
            raise QueryPipelineError(f"SQL generation failed: {e}", e, stage="generate") from e
        return {"candidate": candidate, "stage": "generated"}

    def _check_confidence_node(self, state: QueryState) -> Dict[str, Any]:
        confidence = state["candidate"].confidence
        if not passes_confidence_gate(confidence, self.config.min_confidence):
            logger.info(f"Rejected SQL with confidence {confidence} < {self.config.min_confidence}")
            raise LowConfidenceError(confidence, self.config.min_confidence)
        return {"stage": "confidence_checked"}

    def _validate_node(self, state: QueryState) -> Dict[str, Any]:
        sql = state["candidate"].sql
        outcome, error = self._explain(sql)
        if outcome is ValidationOutcome.INVALID:
            raise InvalidSqlError(sql, error)
        if outcome is ValidationOutcome.UNAVAILABLE:
            raise ValidationUnavailableError(sql, error)
        return {"stage": "validated"}

    def _route_execution(self, state: QueryState) -> str:
        return "skip" if self.config.dry_run else "execute"

    def _execute_node(self, state: QueryState) -> Dict[str, Any]:
        try:
            results = self.generation_service.execute_query(state["candidate"].sql)
        except Exception as e:
            raise QueryPipelineError(f"Query execution failed: {e}", e, stage="execute") from e
        return {"results": results, "stage": "executed"}

    def _skip_execution_node(self, state: QueryState) -> Dict[str, Any]:
        logger.info("Dry run, skipping query execution")
        return {"results": [], "stage": "skipped"}

    def _finish_node(self, state: QueryState) -> Dict[str, Any]:
        return {"execution_time": time.time() - state["started_at"], "stage": "done"}

    # Public operations

    def ask_question(self, question: str) -> QueryResult:
        """Answer a natural language question.

        Raises:
            LowConfidenceError: candidate confidence below the configured minimum
            InvalidSqlError: the database rejected the generated SQL
            ValidationUnavailableError: the database could not be reached to validate
            QueryPipelineError: generation or execution failed (see ``stage``)
        """
        logger.info(f"Processing question: {question}")

        final_state = self.workflow.invoke({
            "question": question,
            "started_at": time.time(),
            "stage": "started"
        })

        candidate = final_state["candidate"]
        execution_time = final_state["execution_time"]
        logger.info(f"Question processed in {execution_time * 1000:.0f}ms")

        return QueryResult(
            question=question,
            sql=candidate.sql,
            confidence=candidate.confidence,
            explanation=candidate.explanation,
            results=list(final_state["results"]),
            execution_time=execution_time
        )

    def _explain(self, sql: str) -> Tuple[ValidationOutcome, Optional[BaseException]]:
        try:
            self.schema_store.query(f"EXPLAIN {sql}")
        except SchemaStoreError as e:
            if e.unavailable:
                return ValidationOutcome.UNAVAILABLE, e
            logger.info(f"SQL failed validation: {e}")
            return ValidationOutcome.INVALID, e
        except Exception as e:
            logger.info(f"SQL failed validation: {e}")
            return ValidationOutcome.INVALID, e
        return ValidationOutcome.VALID, None

    def check_sql(self, sql: str) -> ValidationOutcome:
        """Ask the database to plan ``sql`` without running it.

        Separates statements the database rejects (INVALID) from a database
        that could not be reached (UNAVAILABLE).
        """
        outcome, _ = self._explain(sql)
        return outcome

    def validate_sql(self, sql: str) -> bool:
        """True iff the database accepts ``EXPLAIN <sql>``; any failure is False."""
        return self.check_sql(sql) is ValidationOutcome.VALID

    def explain_query(self, sql: str) -> List[Dict[str, Any]]:
        """Execution plan rows from ``EXPLAIN ANALYZE``."""
        try:
            return self.schema_store.query(f"EXPLAIN ANALYZE {sql}")
        except Exception as e:
            raise QueryPipelineError(f"Query explanation failed: {e}", e, stage="explain") from e
