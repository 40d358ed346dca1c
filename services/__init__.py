"""
Core business services for Text2SQL system.

This package contains:
- EmbeddingService / LLMService: OpenAI embedding and completion calls
- GenerationService: retrieval-augmented SQL generation and schema storage
- TrainingService: bulk schema ingestion into the vector index
- QueryPipeline: confidence gate, EXPLAIN validation and execution
- SqlGen: facade composing the services from configuration
"""
