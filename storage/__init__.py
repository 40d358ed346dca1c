"""
Data access layer for Text2SQL system.

This package contains:
- SchemaStore / VectorIndex: interfaces used by the services
- MySQLSchemaStore: schema introspection and query execution on MySQL
- MilvusVectorIndex: schema embedding storage and similarity search on Milvus
"""
