"""
Embedded fallback content, loaded from YAML.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from ..models import ContentNode, Language
from .normalizer import RowNormalizer

logger = logging.getLogger("interactive-letter")

DEFAULT_FALLBACK_PATH = Path(__file__).resolve().parent.parent / "data" / "fallback_content.yaml"


class StaticFallbackTable:
    """Read-only table of content nodes shipped with the package.

    Used when the spreadsheet is unreachable, disabled, or missing a node.
    The table always covers the root node in every language it lists.

    Example:
        >>> table = StaticFallbackTable.default()
        >>> table.get("home", "fa").title
        'به تجربه تعاملی ما خوش آمدید'
    """

    def __init__(
        self,
        nodes: dict[tuple[str, str], ContentNode] | None = None,
        languages: list[Language] | None = None,
        root_node_id: str = "home",
    ) -> None:
        self._nodes: dict[tuple[str, str], ContentNode] = dict(nodes or {})
        self._languages: tuple[Language, ...] = tuple(languages or ())
        self.root_node_id = root_node_id

    @classmethod
    def load_yaml(cls, path: Path, normalizer: RowNormalizer | None = None) -> StaticFallbackTable:
        """Load a fallback table from a YAML file.

        Expected YAML format:
            root: home
            languages:
              - {code: en, name: English, native_name: English}
            nodes:
              - id: home
                language: en
                title: Welcome
                options:
                  - {id: a, text: Services, nextQuestion: services}

        Node rows go through the same RowNormalizer as sheet rows.

        Raises:
            FileNotFoundError: If the YAML file doesn't exist
            yaml.YAMLError: If the YAML is malformed
            ValueError: If required keys are missing or the root node is not
                covered in every listed language
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not data or "nodes" not in data:
            raise ValueError("Fallback YAML must contain a 'nodes' key")

        normalizer = normalizer or RowNormalizer()
        nodes = normalizer.normalize(data["nodes"])
        languages = [Language(**entry) for entry in data.get("languages", [])]
        root = str(data.get("root", "home"))

        missing = [lang.code for lang in languages if (root, lang.code) not in nodes]
        if missing:
            raise ValueError(f"Fallback table lacks root node '{root}' for: {', '.join(missing)}")

        return cls(nodes=nodes, languages=languages, root_node_id=root)

    @classmethod
    def default(cls) -> StaticFallbackTable:
        """Load the table bundled with the package."""
        return cls.load_yaml(DEFAULT_FALLBACK_PATH)

    def get(self, node_id: str, language: str) -> ContentNode | None:
        """Return the exact (node_id, language) variant, or None."""
        return self._nodes.get((node_id, language))

    def node_ids(self) -> list[str]:
        """Node identifiers in table order, without duplicates."""
        return list(dict.fromkeys(node_id for node_id, _ in self._nodes))

    @property
    def languages(self) -> tuple[Language, ...]:
        return self._languages

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)


def warn_on_uncovered_root(table: StaticFallbackTable, root_node_id: str) -> bool:
    """Warn when a configured root differs from the table's checked root.

    Only the table's own root is verified to exist in every language at
    load time, so another root may have no static fallback.

    Returns:
        True if a warning was logged
    """
    if root_node_id == table.root_node_id:
        return False
    missing = [lang.code for lang in table.languages if (root_node_id, lang.code) not in table]
    logger.warning(
        f"Configured root node '{root_node_id}' differs from the fallback root "
        f"'{table.root_node_id}'; static fallback is missing it for: "
        f"{', '.join(missing) or 'none'}"
    )
    return True


__all__ = [
    "StaticFallbackTable",
    "warn_on_uncovered_root",
    "DEFAULT_FALLBACK_PATH",
]
