"""Cache providers.

MemoryCacheProvider is a TTL cache used by the Retrieval Orchestrator to
absorb repeated identical queries for a few minutes.  It is process-local;
multi-worker deployments can swap in a shared backend implementing
ICacheProvider.
"""
