"""
Training service: bulk-populates the vector index with schema definitions.
"""
import logging
from typing import Sequence

from services.generation_service import GenerationService
from storage.base import SchemaStore, VectorIndex
from utils.errors import TrainingError

logger = logging.getLogger(__name__)

DEFAULT_VECTOR_SIZE = 1536


class TrainingService:
    """Feeds schema units to the generation service, one at a time and in order.

    The first failure aborts the remaining units; units stored before it stay
    stored. Callers that want continue-on-error call ``train_from_ddl`` per
    item and handle each ``TrainingError`` themselves.
    """

    def __init__(self, schema_store: SchemaStore, vector_index: VectorIndex,
                 generation_service: GenerationService,
                 vector_size: int = DEFAULT_VECTOR_SIZE):
        """Initialize training service.

        Args:
            schema_store: Source of table names and table DDL
            vector_index: Index whose collection is created on demand
            generation_service: Performs embed-and-store per schema unit
            vector_size: Embedding dimensionality of the collection
        """
        self.schema_store = schema_store
        self.vector_index = vector_index
        self.generation_service = generation_service
        self.vector_size = vector_size

    def _ensure_collection(self):
        try:
            self.vector_index.ensure_collection(self.vector_size)
        except Exception as e:
            raise TrainingError(f"Failed to create collection: {e}", e) from e

    def _train_schema(self, ddl: str):
        try:
            self.generation_service.train_from_schema(ddl)
        except Exception as e:
            raise TrainingError(f"Failed to train schema: {e}", e) from e

    def train_from_database(self):
        """Train on every table the schema store reports, in discovery order."""
        logger.info("Starting database schema training...")

        self._ensure_collection()

        try:
            tables = self.schema_store.list_tables()
        except Exception as e:
            raise TrainingError(f"Failed to get schema: {e}", e) from e

        logger.info(f"Found {len(tables)} tables to train on")

        for table in tables:
            logger.info(f"Training on table: {table}")
            try:
                ddl = self.schema_store.render_table_ddl(table)
            except Exception as e:
                raise TrainingError(f"Failed to get table schema for {table}: {e}", e) from e
            self._train_schema(ddl)

        logger.info("Database schema training completed")

    def train_from_ddl(self, ddl: str):
        """Train on a single DDL string."""
        logger.info("Training from provided DDL...")

        self._ensure_collection()
        self._train_schema(ddl)

        logger.info("DDL training completed")

    def train_from_ddl_array(self, ddls: Sequence[str]):
        """Train on each DDL string in input order."""
        ddls = list(ddls)
        logger.info(f"Training from {len(ddls)} DDL statements...")

        self._ensure_collection()

        for index, ddl in enumerate(ddls, 1):
            logger.info(f"Training DDL {index}/{len(ddls)}")
            self._train_schema(ddl)

        logger.info("DDL array training completed")
