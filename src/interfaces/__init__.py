"""Public interface definitions for the engine's collaborators.

Every external service (embedding API, storage, CMS, settings, scheduler)
is reached exclusively through the abstract base classes in this package.
Concrete adapters live in ``src/providers/`` and are wired together in
``src/main.py``; unit tests inject mocks or fakes instead.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    IVectorStoreProvider       →  SQLiteVectorStore
    ICacheProvider             →  MemoryCacheProvider
    IJobStore                  →  SQLiteJobStore
    IJobScheduler              →  TaskQueue (src/pipeline/task_queue.py)
    ISettingsSource            →  StaticSettingsSource
    IContentSource             →  supplied by the host application
"""

from src.interfaces.cache_provider import ICacheProvider
from src.interfaces.content_source import IContentSource
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.job_store import IJobScheduler, IJobStore
from src.interfaces.settings_source import EngineConfig, ISettingsSource, extract_ids
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "EngineConfig",
    "ICacheProvider",
    "IContentSource",
    "IEmbeddingProvider",
    "IJobScheduler",
    "IJobStore",
    "ISettingsSource",
    "IVectorStoreProvider",
    "extract_ids",
]
