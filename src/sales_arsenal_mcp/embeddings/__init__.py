"""
Embeddings module for semantic arsenal search.

Generates vector embeddings with Vertex AI text embedding models.
"""

from .vertex_ai import (
    EmbeddingConfig,
    VertexAIEmbedder,
    build_document_text,
    resolve_credentials,
    to_vector_literal,
)

__all__ = [
    "VertexAIEmbedder",
    "EmbeddingConfig",
    "build_document_text",
    "resolve_credentials",
    "to_vector_literal",
]
