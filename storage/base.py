"""
Interfaces of the storage collaborators used by the Text2SQL services.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from utils.models import SearchResult, VectorRecord


class SchemaStore(ABC):
    """Relational database: schema introspection and query execution."""

    @abstractmethod
    def query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Run a statement and return its rows."""

    @abstractmethod
    def list_tables(self) -> List[str]:
        """Names of all tables, in discovery order."""

    @abstractmethod
    def render_table_ddl(self, table_name: str) -> str:
        """DDL-equivalent text describing one table."""

    @abstractmethod
    def close(self):
        """Release the underlying connection."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class VectorIndex(ABC):
    """Vector database holding one collection of schema embeddings."""

    @abstractmethod
    def ensure_collection(self, dimension: int):
        """Create the collection if it does not exist yet."""

    @abstractmethod
    def upsert(self, records: Sequence[VectorRecord]):
        """Insert or replace records by id."""

    @abstractmethod
    def search(self, vector: Sequence[float], limit: int = 10,
               filter: Optional[Dict[str, Any]] = None) -> List[SearchResult]:
        """Most similar records first."""

    @abstractmethod
    def delete_collection(self):
        """Drop the collection and everything in it."""

    @abstractmethod
    def close(self):
        """Release the underlying connection."""
