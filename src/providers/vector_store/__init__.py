"""Vector store provider implementations.

SQLiteVectorStore keeps chunks and their JSON-encoded vectors in a local
SQLite file and hands the full type-filtered candidate pool to the
Similarity Ranker (linear scan, sized for thousands of chunks).
"""

from src.providers.vector_store.sqlite_vector_store import SQLiteVectorStore

__all__ = ["SQLiteVectorStore"]
