"""
Query Agent for Continuum
Hybrid keyword + semantic retrieval over stored narrative turns.
"""

import asyncio
import logging
import re
from typing import Dict, List, Optional, Sequence

from ..config import PipelineConfig
from ..core.similarity import cosine_similarity
from ..models import Turn
from ..services.embedding_providers import EmbeddingCache, EmbeddingProvider

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "is", "are", "was", "were", "be", "been", "being", "have", "has", "had", "do", "does", "did",
})

_PUNCTUATION = re.compile(r"[^\w\s]")


class QueryAgent:
    """
    Retrieval coordinator.

    Keyword matches come first and are never displaced by semantic matches;
    semantic results only fill in turns the keyword stage missed. The merged
    list never repeats a turn id and never exceeds the retrieval cap.
    """

    def __init__(
        self,
        embedding_provider: Optional[EmbeddingProvider] = None,
        config: Optional[PipelineConfig] = None,
        cache: Optional[EmbeddingCache] = None,
    ):
        self.embedding_provider = embedding_provider
        self.config = config or PipelineConfig()
        self.cache = cache

    async def retrieve(self, query: str, all_turns: Sequence[Turn]) -> List[Turn]:
        """Return turns relevant to the query, keyword matches first."""
        if not all_turns:
            return []

        preview = query[:50] + ("..." if len(query) > 50 else "")
        logger.info(f"[QueryAgent] Starting query for: \"{preview}\" over {len(all_turns)} turns")

        keyword_results = self.keyword_search(query, all_turns)
        logger.info(f"[QueryAgent] Keyword search returned: {len(keyword_results)} turns")

        semantic_results = await self.semantic_search(query, all_turns)
        logger.info(f"[QueryAgent] Semantic search returned: {len(semantic_results)} turns")

        combined = list(keyword_results)
        seen_ids = {turn.id for turn in combined}
        added = 0
        for turn in semantic_results:
            if turn.id not in seen_ids:
                combined.append(turn)
                seen_ids.add(turn.id)
                added += 1

        logger.info(f"[QueryAgent] Added {added} unique turns from semantic search")
        return combined[: self.config.retrieval_cap]

    def extract_keywords(self, query: str) -> List[str]:
        """Lowercased query terms minus stop words and short tokens, deduplicated."""
        words = _PUNCTUATION.sub(" ", query.lower()).split()
        keywords = [
            word for word in words
            if len(word) >= self.config.min_keyword_length and word not in STOP_WORDS
        ]
        return list(dict.fromkeys(keywords))

    def keyword_search(self, query: str, all_turns: Sequence[Turn]) -> List[Turn]:
        """Case-insensitive substring search, shortest matches first per keyword."""
        keywords = self.extract_keywords(query)
        if not keywords:
            return []

        if len(keywords) < self.config.few_keywords_threshold:
            per_keyword_cap = self.config.keyword_cap_few
        else:
            per_keyword_cap = self.config.keyword_cap_many

        lowered = [(turn, turn.content.lower()) for turn in all_turns]
        unique: Dict[str, Turn] = {}

        for keyword in keywords:
            matches = [turn for turn, content in lowered if keyword in content]
            # Shorter turns are presumed more specific
            matches.sort(key=lambda turn: len(turn.content))
            for turn in matches[:per_keyword_cap]:
                if turn.id not in unique:
                    unique[turn.id] = turn

        return list(unique.values())

    async def semantic_search(self, query: str, all_turns: Sequence[Turn]) -> List[Turn]:
        """
        Embedding similarity search. Any embedding failure degrades to an
        empty result so keyword matches alone carry the retrieval.
        """
        if self.embedding_provider is None or self.config.semantic_cap == 0:
            return []

        try:
            query_vector, turn_vectors = await asyncio.gather(
                self.embedding_provider.embed_single(query),
                self._embed_turns(all_turns),
            )
        except Exception as e:
            logger.warning(f"[QueryAgent] Semantic search failed, using keyword results only: {e}")
            return []

        scored = [
            (turn, cosine_similarity(query_vector, vector))
            for turn, vector in zip(all_turns, turn_vectors)
        ]
        relevant = [item for item in scored if item[1] > self.config.similarity_threshold]
        relevant.sort(key=lambda item: item[1], reverse=True)

        return [turn for turn, _ in relevant[: self.config.semantic_cap]]

    async def _embed_turns(self, all_turns: Sequence[Turn]) -> List[List[float]]:
        if self.cache is not None:
            return await self.cache.get_or_embed(
                self.embedding_provider,
                [(turn.id, turn.content) for turn in all_turns],
            )
        return await self.embedding_provider.embed([turn.content for turn in all_turns])
