"""
Exception hierarchy for the Text2SQL core.

Every error keeps the exception that caused it on ``cause`` (and as
``__cause__`` via ``raise ... from``) so callers can tell which stage failed
and why.
"""
from typing import Optional


class Text2SQLError(Exception):
    """Base class for all Text2SQL errors."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class SchemaStoreError(Text2SQLError):
    """Relational database failure.

    ``unavailable`` is True when the database could not be reached at all,
    as opposed to the database rejecting a statement.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 unavailable: bool = False):
        super().__init__(message, cause)
        self.unavailable = unavailable


class VectorIndexError(Text2SQLError):
    """Vector database failure."""


class DimensionMismatchError(VectorIndexError):
    """Vector length differs from the collection's declared dimension."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class GenerationError(Text2SQLError):
    """Embedding, completion or response parsing failure."""


class TrainingError(Text2SQLError):
    """Failure during bulk schema ingestion."""


class QueryPipelineError(Text2SQLError):
    """Failure while answering a question.

    ``stage`` names the pipeline step that failed: ``generate``,
    ``check_confidence``, ``validate``, ``execute`` or ``explain``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None,
                 stage: str = ""):
        super().__init__(message, cause)
        self.stage = stage


class LowConfidenceError(QueryPipelineError):
    """Generated SQL was rejected by the confidence gate."""

    def __init__(self, confidence: float, min_confidence: float):
        super().__init__(
            f"Generated SQL has low confidence: {confidence}. Minimum required: {min_confidence}",
            stage="check_confidence",
        )
        self.confidence = confidence
        self.min_confidence = min_confidence


class InvalidSqlError(QueryPipelineError):
    """Generated SQL was rejected by the database's EXPLAIN check."""

    def __init__(self, sql: str, cause: Optional[BaseException] = None):
        super().__init__(f"Generated SQL is invalid: {sql}", cause, stage="validate")
        self.sql = sql


class ValidationUnavailableError(QueryPipelineError):
    """The database could not be reached to validate generated SQL."""

    def __init__(self, sql: str, cause: Optional[BaseException] = None):
        super().__init__(f"SQL validation unavailable: {cause}", cause, stage="validate")
        self.sql = sql
