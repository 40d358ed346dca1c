"""
Data models for the Text2SQL system.
"""
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Any


@dataclass
class VectorPayload:
    """Payload stored next to a vector: the original text plus metadata."""
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorRecord:
    """One entry of the vector index."""
    id: str
    vector: List[float]
    payload: VectorPayload


@dataclass
class SearchResult:
    """Search result from vector store, ranked by similarity."""
    id: str
    score: float
    payload: VectorPayload


@dataclass(frozen=True)
class SqlCandidate:
    """SQL proposed by the generation step for one question."""
    sql: str
    confidence: float
    explanation: str


@dataclass
class QueryResult:
    """Answer to a natural language question."""
    question: str
    sql: str
    confidence: float
    explanation: str
    results: List[Dict[str, Any]] = field(default_factory=list)
    execution_time: float = 0.0     # seconds

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ValidationOutcome(Enum):
    """Result of asking the database to EXPLAIN a statement."""
    VALID = "valid"
    INVALID = "invalid"             # the database rejected the statement
    UNAVAILABLE = "unavailable"     # the database could not be reached
