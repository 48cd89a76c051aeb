"""Multi-factor similarity ranking over the stored candidate pool.

Each candidate chunk is scored in three steps:

1. **Type-weighted cosine similarity** -- ``cosine(query, chunk) *
   type_weight``.  Candidates below the caller's threshold are dropped.
2. **Chunk relevance** -- a lexical signal independent of the vectors::

       0.4 * word_overlap + exact_phrase_bonus + 0.3 * semantic_bonus

   where the exact-phrase bonus is 0.3 when the whole query appears in the
   chunk and the semantic bonus counts shopping-concept synonyms (see
   :mod:`src.config.domain_knowledge`).
3. **Final score** -- ``0.7 * similarity + 0.3 * relevance``.

Ordering is by content-type priority first (settings > product >
post/page > variation/pdf/external_url > unknown) and by final score only
within one priority band.  A higher-priority result therefore always
precedes a lower-priority one, whatever their scores.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

import numpy as np
import structlog

from src.config.domain_knowledge import get_related_terms
from src.models.content import EmbeddingRecord, is_product_type, type_priority, type_weight
from src.models.retrieval import ScoredChunk

logger = structlog.get_logger(logger_name=__name__)

_WORD_PATTERN = re.compile(r"[a-z]+(?:['-][a-z]+)*")

_SIMILARITY_WEIGHT = 0.7
_RELEVANCE_WEIGHT = 0.3
_OVERLAP_WEIGHT = 0.4
_PHRASE_BONUS = 0.3
_SEMANTIC_WEIGHT = 0.3
_SEMANTIC_STEP = 0.2


# ---------------------------------------------------------------------------
# Scoring primitives
# ---------------------------------------------------------------------------

def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*, in ``[-1, 1]``.

    Returns 0.0 when either vector is empty, their lengths differ, or
    either norm is zero.
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    value = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, value))


def _words(text: str) -> list[str]:
    return _WORD_PATTERN.findall(text)


def semantic_relevance(query_words: Iterable[str], chunk: str) -> float:
    """+0.2 for every synonym present in *chunk*, per activated concept, capped at 1.0."""
    chunk = chunk.lower()
    score = 0.0
    for word in query_words:
        for related in get_related_terms(word):
            score += _SEMANTIC_STEP * sum(1 for term in related if term in chunk)
    return min(score, 1.0)


def chunk_relevance(query: str, chunk: str) -> float:
    """Lexical relevance of *chunk* to *query*; 0.0 for a query with no words."""
    query_lower = query.lower()
    chunk_lower = chunk.lower()
    query_words = _words(query_lower)
    if not query_words:
        return 0.0

    chunk_words = set(_words(chunk_lower))
    overlap = sum(1 for w in query_words if w in chunk_words) / len(query_words)
    phrase = _PHRASE_BONUS if query_lower.strip() and query_lower.strip() in chunk_lower else 0.0
    semantic = semantic_relevance(query_words, chunk_lower)

    return overlap * _OVERLAP_WEIGHT + phrase + semantic * _SEMANTIC_WEIGHT


# ---------------------------------------------------------------------------
# Ranker
# ---------------------------------------------------------------------------

class SimilarityRanker:
    """Scores, filters and orders candidate chunks for one query."""

    def rank(
        self,
        query: str,
        query_vector: Sequence[float],
        candidates: Iterable[EmbeddingRecord],
        threshold: float,
        limit: int | None = None,
    ) -> list[ScoredChunk]:
        """Return candidates passing *threshold*, priority-then-score ordered.

        Parameters
        ----------
        query:
            The raw query text, used for the lexical relevance signal.
        query_vector:
            Embedding of *query*.
        candidates:
            Stored rows to score.
        threshold:
            Minimum ``cosine * type_weight`` a candidate needs to survive.
        limit:
            Maximum number of results; ``None`` keeps all.
        """
        scored: list[ScoredChunk] = []
        examined = 0
        for record in candidates:
            examined += 1
            similarity = cosine_similarity(query_vector, record.vector) * type_weight(record.content_type)
            if similarity < threshold:
                continue
            relevance = chunk_relevance(query, record.chunk_text)
            scored.append(
                ScoredChunk(
                    content_type=record.content_type,
                    content_id=record.content_id,
                    chunk_text=record.chunk_text,
                    similarity=similarity,
                    relevance=relevance,
                    score=similarity * _SIMILARITY_WEIGHT + relevance * _RELEVANCE_WEIGHT,
                    priority=type_priority(record.content_type),
                    source_url=record.source_url,
                )
            )

        scored.sort(key=lambda c: (c.priority, c.score), reverse=True)
        if limit is not None:
            scored = scored[: max(limit, 0)]

        logger.debug(
            "ranking_complete",
            examined=examined,
            passed=len(scored),
            threshold=threshold,
        )
        return scored

    @staticmethod
    def product_ids(results: Iterable[ScoredChunk], excluded_ids: set[str] | None = None) -> list[int]:
        """Collapse ranked results to unique product ids, preserving rank order.

        Only product-family rows are kept; ids on *excluded_ids* and ids
        that are not integers are dropped.
        """
        excluded = {str(e) for e in (excluded_ids or set())}
        seen: set[int] = set()
        ids: list[int] = []
        for result in results:
            if not is_product_type(result.content_type) or result.content_id in excluded:
                continue
            try:
                product_id = int(result.content_id)
            except ValueError:
                continue
            if product_id in seen:
                continue
            seen.add(product_id)
            ids.append(product_id)
        return ids
