"""
Milvus vector index holding schema embeddings.
"""
import json
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from pymilvus import (
    connections,
    Collection,
    CollectionSchema,
    FieldSchema,
    DataType,
    utility
)

from config.settings import VectorStoreConfig
from storage.base import VectorIndex
from utils.errors import DimensionMismatchError, VectorIndexError
from utils.models import SearchResult, VectorPayload, VectorRecord
from utils.vectorization import as_embedding

logger = logging.getLogger(__name__)


def build_filter_expr(filter: Optional[Dict[str, Any]]) -> Optional[str]:
    """Turn an equality map over metadata keys into a Milvus boolean expression."""
    if not filter:
        return None
    conditions = [
        f'metadata[{json.dumps(key)}] == {json.dumps(value)}'
        for key, value in filter.items()
    ]
    return " and ".join(conditions)


class MilvusVectorIndex(VectorIndex):
    """Milvus-based vector index bound to one collection."""

    def __init__(self, vector_config: VectorStoreConfig):
        """
        Initialize Milvus vector index. The connection is opened lazily.

        Args:
            vector_config: Endpoint, collection and index parameters
        """
        self.config = vector_config
        self.collection_name = vector_config.collection_name
        self.dimension = vector_config.dimension
        # One alias per instance so several indexes can coexist in a process
        self.alias = f"{self.collection_name}-{uuid.uuid4().hex[:8]}"
        self.collection = None
        self._connected = False

    def _connect(self):
        """Connect to Milvus server."""
        if self._connected:
            return
        try:
            connect_kwargs = {"alias": self.alias, "uri": self.config.url}
            if self.config.api_key:
                connect_kwargs["token"] = self.config.api_key
            connections.connect(**connect_kwargs)
            self._connected = True
            logger.info(f"Connected to Milvus at {self.config.url}")
        except Exception as e:
            logger.error(f"Failed to connect to Milvus: {e}")
            raise VectorIndexError(f"Failed to connect to Milvus: {e}", e) from e

    def _existing_collection(self) -> Optional[Collection]:
        """Loaded handle on the collection, or None if it does not exist."""
        if self.collection is not None:
            return self.collection
        self._connect()
        if not utility.has_collection(self.collection_name, using=self.alias):
            return None
        collection = Collection(self.collection_name, using=self.alias)
        collection.load()
        self.collection = collection
        # Vectors are checked against the stored size, not the configured one
        stored_dimension = self._collection_dimension(collection)
        if stored_dimension is not None:
            self.dimension = stored_dimension
        return collection

    @staticmethod
    def _collection_dimension(collection: Collection) -> Optional[int]:
        for schema_field in collection.schema.fields:
            if schema_field.dtype == DataType.FLOAT_VECTOR:
                return int(schema_field.params.get("dim"))
        return None

    def ensure_collection(self, dimension: int):
        """Create collection if it doesn't exist.

        Args:
            dimension: Vector dimension of the collection

        Raises:
            DimensionMismatchError: if the collection exists with another dimension
        """
        if dimension <= 0:
            raise ValueError(f"Collection dimension must be positive, got {dimension}")

        try:
            existing = self._existing_collection()
        except VectorIndexError:
            raise
        except Exception as e:
            logger.error(f"Failed to open collection {self.collection_name}: {e}")
            raise VectorIndexError(f"Failed to create collection: {e}", e) from e

        if existing is not None:
            existing_dimension = self._collection_dimension(existing)
            if existing_dimension is not None and existing_dimension != dimension:
                raise DimensionMismatchError(expected=existing_dimension, actual=dimension)
            self.dimension = dimension
            logger.info(f"Using existing collection: {self.collection_name}")
            return

        try:
            fields = [
                FieldSchema(name="id", dtype=DataType.VARCHAR, max_length=64, is_primary=True),
                FieldSchema(name="vector", dtype=DataType.FLOAT_VECTOR, dim=dimension),
                FieldSchema(name="content", dtype=DataType.VARCHAR, max_length=65535),
                FieldSchema(name="metadata", dtype=DataType.JSON),
            ]
            schema = CollectionSchema(
                fields=fields,
                description="Text2SQL schema embeddings"
            )

            # Creating with an identical schema is a no-op if another writer won the race
            collection = Collection(
                name=self.collection_name,
                schema=schema,
                using=self.alias
            )

            index_params = {
                "metric_type": self.config.metric_type,
                "index_type": self.config.index_type,
                "params": {"nlist": self.config.nlist}
            }
            collection.create_index(
                field_name="vector",
                index_params=index_params
            )
            collection.load()
        except Exception as e:
            logger.error(f"Failed to create collection {self.collection_name}: {e}")
            raise VectorIndexError(f"Failed to create collection: {e}", e) from e

        self.collection = collection
        self.dimension = dimension
        logger.info(f"Created new collection: {self.collection_name} (dim={dimension})")

    def upsert(self, records: Sequence[VectorRecord]):
        """
        Insert or replace records by id.

        Args:
            records: Records whose vectors match the collection dimension

        Raises:
            DimensionMismatchError: before contacting Milvus, if any vector has the wrong length
        """
        if not records:
            return

        vectors = [as_embedding(record.vector, self.dimension) for record in records]

        try:
            collection = self._existing_collection()
        except VectorIndexError:
            raise
        except Exception as e:
            logger.error(f"Failed to open collection {self.collection_name}: {e}")
            raise VectorIndexError(f"Failed to upsert vectors: {e}", e) from e
        if collection is None:
            raise VectorIndexError(
                f"Collection {self.collection_name} does not exist; call ensure_collection first"
            )
        # The first open may have replaced the configured size with the stored one
        vectors = [as_embedding(vector, self.dimension) for vector in vectors]

        data = [
            [record.id for record in records],  # id
            vectors,  # vector
            [record.payload.content for record in records],  # content
            [record.payload.metadata for record in records],  # metadata
        ]

        try:
            collection.upsert(data)
            collection.flush()
        except Exception as e:
            logger.error(f"Failed to upsert {len(records)} vectors: {e}")
            raise VectorIndexError(f"Failed to upsert vectors: {e}", e) from e

        logger.debug(f"Upserted {len(records)} vectors into {self.collection_name}")

    def search(self, vector: Sequence[float], limit: int = 10,
               filter: Optional[Dict[str, Any]] = None) -> List[SearchResult]:
        """
        Search for similar vectors.

        Args:
            vector: Query vector
            limit: Maximum number of results to return
            filter: Optional equality conditions on metadata keys

        Returns:
            Search results, most similar first; empty if the collection does not exist
        """
        query_vector = as_embedding(vector, self.dimension)

        try:
            collection = self._existing_collection()
            if collection is None:
                logger.warning(f"Collection {self.collection_name} does not exist, nothing to search")
                return []

            query_vector = as_embedding(query_vector, self.dimension)

            search_params = {
                "metric_type": self.config.metric_type,
                "params": {"nprobe": 10}
            }

            results = collection.search(
                data=[query_vector],
                anns_field="vector",
                param=search_params,
                limit=limit,
                expr=build_filter_expr(filter),
                output_fields=["content", "metadata"]
            )
        except VectorIndexError:
            raise
        except Exception as e:
            logger.error(f"Failed to search vectors: {e}")
            raise VectorIndexError(f"Search failed: {e}", e) from e

        search_results = []
        for hits in results:
            for hit in hits:
                search_results.append(SearchResult(
                    id=str(hit.id),
                    score=hit.score,
                    payload=VectorPayload(
                        content=hit.entity.get("content") or "",
                        metadata=hit.entity.get("metadata") or {}
                    )
                ))

        logger.debug(f"Found {len(search_results)} similar vectors")
        return search_results

    def delete_collection(self):
        """Drop the collection; a later ensure_collection recreates it."""
        try:
            self._connect()
            if utility.has_collection(self.collection_name, using=self.alias):
                utility.drop_collection(self.collection_name, using=self.alias)
                logger.info(f"Dropped collection: {self.collection_name}")
        except VectorIndexError:
            raise
        except Exception as e:
            logger.error(f"Failed to delete collection {self.collection_name}: {e}")
            raise VectorIndexError(f"Failed to delete collection: {e}", e) from e
        finally:
            self.collection = None

    def count(self) -> int:
        """Number of records in the collection."""
        collection = self._existing_collection()
        return collection.num_entities if collection is not None else 0

    def close(self):
        """Close connection to Milvus."""
        if not self._connected:
            return
        try:
            if self.collection:
                self.collection.release()
            connections.disconnect(self.alias)
            logger.info("Disconnected from Milvus")
        except Exception as e:
            logger.error(f"Error closing Milvus connection: {e}")
        finally:
            self.collection = None
            self._connected = False
