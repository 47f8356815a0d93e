from .embeddings import (
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerEmbeddingProvider,
    SimpleEmbeddingProvider,
    cosine_similarity,
    generate_embedding,
    generate_embeddings,
    get_embedding_provider,
)

__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "SimpleEmbeddingProvider",
    "cosine_similarity",
    "generate_embedding",
    "generate_embeddings",
    "get_embedding_provider",
]
