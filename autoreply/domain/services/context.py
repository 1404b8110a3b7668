from __future__ import annotations

from autoreply.domain.models import ResolvedContext
from autoreply.domain.services.chunking import DEFAULT_TARGET_CHARS, chunk_document
from autoreply.domain.services.ranking import rank_passages, tokenize

# Inject full memory up to this size (~750 tokens); retrieve above it.
DEFAULT_THRESHOLD = 3000
DEFAULT_TOP_K = 4

_JOIN = "\n\n"


def resolve_context(
    full_memory: str,
    query: str,
    threshold: int = DEFAULT_THRESHOLD,
    top_k: int = DEFAULT_TOP_K,
    chunk_size: int = DEFAULT_TARGET_CHARS,
    document_order: bool = False,
) -> ResolvedContext | None:
    """
    Pick the knowledge-base text to inject for a query.

    - empty memory          -> None (no knowledge-base section)
    - len <= threshold      -> memory unchanged, filtered=False
    - nothing to chunk      -> memory unchanged, filtered=False
    - query has no terms    -> first top_k passages in document order
    - otherwise             -> top_k passages by BM25 relevance

    Ranked passages come back in relevance order unless document_order=True,
    which re-sorts the selected subset by position in the document.
    """
    if not full_memory:
        return None
    if len(full_memory) <= threshold:
        return ResolvedContext(text=full_memory, filtered=False)

    passages = chunk_document(full_memory, chunk_size)
    if not passages:
        return ResolvedContext(text=full_memory, filtered=False)

    if not tokenize(query):
        head = passages[:top_k]
        return ResolvedContext(text=_JOIN.join(p.text for p in head), filtered=True)

    selected = [s.passage for s in rank_passages(query, passages)[:top_k]]
    if document_order:
        selected.sort(key=lambda p: p.ordinal)
    return ResolvedContext(text=_JOIN.join(p.text for p in selected), filtered=True)
