"""
Content graph resolution with language and static fallback.

Resolution order for (node_id, language), first success wins:

1. cache entry "node:{node_id}:{language}"
2. source row for (node_id, language)
3. source row for (node_id, default_language), cached under the requested key too
4. static table for (node_id, language), then (node_id, default_language)
5. NotFound

Source failures are logged and treated as a miss. Static results are not
cached, so a recovered source is picked up on the next request.
"""

from __future__ import annotations

import logging

from ..models import ContentNode, Language, LetterContent
from ..sources.base import ContentSource, SourceUnavailable
from .base import NotFound
from .cache import ContentCache
from .normalizer import RowNormalizer
from .static_table import StaticFallbackTable

logger = logging.getLogger("interactive-letter")


DEFAULT_LANGUAGE = "en"
QUESTIONS_SHEET = "Questions"
LETTERS_SHEET = "Letter_Content"

NODE_KEY_PREFIX = "node:"
LETTER_KEY_PREFIX = "letter:"


def node_cache_key(node_id: str, language: str) -> str:
    return f"{NODE_KEY_PREFIX}{node_id}:{language}"


def letter_cache_key(question_id: str, language: str) -> str:
    return f"{LETTER_KEY_PREFIX}{question_id}:{language}"


class GraphResolver:
    """
    Resolves content nodes and letters through the fallback chain.

    The cache is injected so several resolvers (or the HTTP layer's cache
    admin endpoint) can share it.

    Attributes:
        source: External content source, or None when sheets are disabled
        static_table: Embedded fallback content
        cache: Shared content cache
        default_language: Language used when the requested one is missing
        root_node_id: Identifier of the questionnaire's entry node
    """

    def __init__(
        self,
        source: ContentSource | None,
        static_table: StaticFallbackTable,
        cache: ContentCache,
        default_language: str = DEFAULT_LANGUAGE,
        root_node_id: str | None = None,
        questions_sheet: str = QUESTIONS_SHEET,
        letters_sheet: str = LETTERS_SHEET,
        normalizer: RowNormalizer | None = None,
    ) -> None:
        self.source = source
        self.static_table = static_table
        self.cache = cache
        self.default_language = default_language
        self.root_node_id = root_node_id or static_table.root_node_id
        self.questions_sheet = questions_sheet
        self.letters_sheet = letters_sheet
        self.normalizer = normalizer or RowNormalizer()

    @property
    def languages(self) -> tuple[Language, ...]:
        return self.static_table.languages

    async def resolve(self, node_id: str, language: str) -> ContentNode:
        """
        Resolve one node.

        Args:
            node_id: Node identifier
            language: Requested language code

        Returns:
            The resolved ContentNode (possibly a default-language variant)

        Raises:
            NotFound: If no tier of the chain has the node
        """
        cached = self.cache.get(node_cache_key(node_id, language))
        if cached is not None:
            return cached

        graph = await self._load_graph()
        node = self._from_graph(graph, node_id, language)
        if node is not None:
            return node

        node = self._from_static(node_id, language)
        if node is not None:
            logger.info(f"Serving static fallback for ({node_id}, {language})")
            return node

        raise NotFound(node_id, language)

    async def resolve_all(self, language: str) -> dict[str, ContentNode]:
        """
        Resolve every known node for a language.

        Node ids are the union of the source's and the static table's,
        source first. Source results are cached per node.

        Returns:
            Mapping from node id to resolved node
        """
        graph = await self._load_graph()
        node_ids = dict.fromkeys(node_id for node_id, _ in graph)
        node_ids.update(dict.fromkeys(self.static_table.node_ids()))

        resolved: dict[str, ContentNode] = {}
        for node_id in node_ids:
            node = self._from_graph(graph, node_id, language) or self._from_static(node_id, language)
            if node is not None:
                resolved[node_id] = node
        return resolved

    async def resolve_letter(self, question_id: str, language: str) -> LetterContent:
        """
        Resolve the letter attached to a question.

        Order: cache, letters sheet (language, then default language),
        then the supplement text of the static node.

        Raises:
            NotFound: If no letter exists for the question
        """
        key = letter_cache_key(question_id, language)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        letters = await self._load_letters()
        letter = letters.get((question_id, language))
        if letter is not None:
            self.cache.set(key, letter)
            return letter

        if language != self.default_language:
            letter = letters.get((question_id, self.default_language))
            if letter is not None:
                self.cache.set(key, letter)
                self.cache.set(letter_cache_key(question_id, self.default_language), letter)
                return letter

        node = self._from_static(question_id, language)
        if node is not None and node.has_supplement:
            return LetterContent(
                question_id=question_id,
                language=node.language,
                body=node.supplement_body,
            )

        raise NotFound(question_id, language, kind="letter")

    def invalidate(self, pattern: str | None = None) -> int:
        """Invalidate cached content by substring, or all of it."""
        return self.cache.invalidate(pattern)

    def invalidate_sheet(self, sheet_name: str | None = None) -> int:
        """
        Invalidate the cache entries built from one sheet.

        The configured questions and letters sheets map to the "node:" and
        "letter:" key families (case-insensitive). Any other name is
        lower-cased and used as a substring pattern; None clears everything.

        Returns:
            Number of entries removed
        """
        if sheet_name is None:
            return self.cache.invalidate()
        name = sheet_name.strip().lower()
        if name == self.questions_sheet.lower():
            return self.cache.invalidate(NODE_KEY_PREFIX)
        if name == self.letters_sheet.lower():
            return self.cache.invalidate(LETTER_KEY_PREFIX)
        return self.cache.invalidate(name)

    def _from_graph(
        self,
        graph: dict[tuple[str, str], ContentNode],
        node_id: str,
        language: str,
    ) -> ContentNode | None:
        node = graph.get((node_id, language))
        if node is not None:
            self.cache.set(node_cache_key(node_id, language), node)
            return node

        if language != self.default_language:
            node = graph.get((node_id, self.default_language))
            if node is not None:
                logger.debug(
                    f"No '{language}' variant of '{node_id}', using '{self.default_language}'"
                )
                self.cache.set(node_cache_key(node_id, language), node)
                self.cache.set(node_cache_key(node_id, self.default_language), node)
                return node

        return None

    def _from_static(self, node_id: str, language: str) -> ContentNode | None:
        node = self.static_table.get(node_id, language)
        if node is None and language != self.default_language:
            node = self.static_table.get(node_id, self.default_language)
        return node

    async def _load_graph(self) -> dict[tuple[str, str], ContentNode]:
        if self.source is None:
            return {}
        try:
            rows = await self.source.fetch_rows(self.questions_sheet)
            return self.normalizer.normalize(rows)
        except SourceUnavailable as e:
            logger.warning(f"{self.source.name} unavailable, falling back: {e}")
        except TypeError as e:
            logger.warning(f"Malformed rows from {self.source.name}, falling back: {e}")
        return {}

    async def _load_letters(self) -> dict[tuple[str, str], LetterContent]:
        if self.source is None:
            return {}
        try:
            rows = await self.source.fetch_rows(self.letters_sheet)
            return self.normalizer.normalize_letters(rows)
        except SourceUnavailable as e:
            logger.warning(f"{self.source.name} unavailable for letters: {e}")
        except TypeError as e:
            logger.warning(f"Malformed letter rows from {self.source.name}: {e}")
        return {}


__all__ = [
    "GraphResolver",
    "node_cache_key",
    "letter_cache_key",
    "DEFAULT_LANGUAGE",
    "QUESTIONS_SHEET",
    "LETTERS_SHEET",
    "NODE_KEY_PREFIX",
    "LETTER_KEY_PREFIX",
]
