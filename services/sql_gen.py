"""
SqlGen facade: composes configuration into the Text2SQL services.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from config.settings import Config
from services.embedding_service import EmbeddingService
from services.generation_service import GenerationService
from services.llm_service import LLMService
from services.query_pipeline import QueryPipeline
from services.training_service import TrainingService
from storage.base import SchemaStore, VectorIndex
from storage.mysql_adapter import MySQLSchemaStore
from storage.vector_store import MilvusVectorIndex
from utils.models import QueryResult, ValidationOutcome

logger = logging.getLogger(__name__)


class SqlGen:
    """Public entry point: ask questions, train the schema corpus, check SQL.

    Collaborators default to the MySQL, Milvus and OpenAI implementations
    built from ``config``; any of them can be passed in instead.
    """

    def __init__(self, config: Config,
                 schema_store: Optional[SchemaStore] = None,
                 vector_index: Optional[VectorIndex] = None,
                 embedding_service: Optional[EmbeddingService] = None,
                 llm_service: Optional[LLMService] = None):
        self.config = config
        self.schema_store = schema_store or MySQLSchemaStore(config.database_config)
        self.vector_index = vector_index or MilvusVectorIndex(config.vector_store_config)

        generation_config = config.generation_config
        self.generation_service = GenerationService(
            generation_config=generation_config,
            embedding_service=embedding_service or EmbeddingService(generation_config),
            llm_service=llm_service or LLMService(generation_config),
            vector_index=self.vector_index,
            schema_store=self.schema_store
        )
        self.training = TrainingService(
            schema_store=self.schema_store,
            vector_index=self.vector_index,
            generation_service=self.generation_service,
            vector_size=config.vector_store_config.dimension
        )
        self.pipeline = QueryPipeline(
            pipeline_config=config.pipeline_config,
            generation_service=self.generation_service,
            schema_store=self.schema_store
        )
        logger.info(
            f"SqlGen initialized: collection={config.vector_store_config.collection_name}, "
            f"min_confidence={config.pipeline_config.min_confidence}, dry_run={config.pipeline_config.dry_run}"
        )

    def ask(self, question: str) -> QueryResult:
        return self.pipeline.ask_question(question)

    def train_from_database(self):
        self.training.train_from_database()

    def train_from_ddl(self, ddl: str):
        self.training.train_from_ddl(ddl)

    def train_from_ddl_array(self, ddls: Sequence[str]):
        self.training.train_from_ddl_array(ddls)

    def validate_sql(self, sql: str) -> bool:
        return self.pipeline.validate_sql(sql)

    def check_sql(self, sql: str) -> ValidationOutcome:
        return self.pipeline.check_sql(sql)

    def explain_query(self, sql: str) -> List[Dict[str, Any]]:
        return self.pipeline.explain_query(sql)

    def reset_index(self):
        """Drop every trained schema record."""
        self.vector_index.delete_collection()

    def close(self):
        """Close database and vector index connections."""
        self.schema_store.close()
        self.vector_index.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_sql_gen(config: Optional[Config] = None, **collaborators) -> SqlGen:
    """Build a SqlGen, reading configuration from the environment if none is given."""
    return SqlGen(config or Config.from_env(), **collaborators)
