"""
Row normalization: loosely-typed spreadsheet rows to typed content nodes.

Every field read is fallible. A bad field falls back to its default, a bad
row is skipped on its own, and only input that is not a sequence of rows at
all is rejected.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..models import ContentNode, LetterContent, Option, RawRecord, SubQuestion
from .base import MalformedRecord

logger = logging.getLogger("interactive-letter")


TRUE_TOKEN = "TRUE"

# Column aliases, first non-empty wins. Older sheets use the letter-specific names.
ID_COLUMNS = ("id",)
LANGUAGE_COLUMNS = ("language",)
TITLE_COLUMNS = ("title",)
BODY_COLUMNS = ("body", "question", "content")
OPTIONS_COLUMNS = ("options",)
SUB_QUESTION_COLUMNS = ("subQuestion", "secondaryOptions")
SUPPLEMENT_FLAG_COLUMNS = ("hasSupplement", "hasLetter")
SUPPLEMENT_BODY_COLUMNS = ("supplementBody", "letterContent")
LETTER_ID_COLUMNS = ("questionId", "id")
LETTER_BODY_COLUMNS = ("content", "letterContent", "body")


def _first(record: Mapping[str, Any], columns: tuple[str, ...]) -> Any:
    for column in columns:
        value = record.get(column)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(record: Mapping[str, Any], columns: tuple[str, ...]) -> str:
    value = _first(record, columns)
    return "" if value is None else str(value).strip()


def _flag(record: Mapping[str, Any], columns: tuple[str, ...]) -> bool:
    """Only a real True or the sheet's TRUE token count as true."""
    value = _first(record, columns)
    if value is True:
        return True
    return isinstance(value, str) and value.strip() == TRUE_TOKEN


def _decode(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _option(entry: Any) -> Option | None:
    if not isinstance(entry, Mapping):
        return None
    option_id = str(entry.get("id") or "").strip()
    target = entry.get("nextQuestion") or entry.get("nextNodeId") or entry.get("next_node_id")
    if not option_id or not target:
        return None
    label = entry.get("text") or entry.get("label") or ""
    return Option(id=option_id, label=str(label), next_node_id=str(target).strip())


def _option_list(value: Any) -> tuple[Option, ...]:
    """Decode a serialized option list.

    Raises:
        MalformedRecord: If the value is not a JSON list
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return ()
    try:
        decoded = _decode(value)
    except json.JSONDecodeError as e:
        raise MalformedRecord(f"options are not valid JSON: {e}") from None
    if not isinstance(decoded, list):
        raise MalformedRecord(f"options must be a list, got {type(decoded).__name__}")

    options: list[Option] = []
    for entry in decoded:
        option = _option(entry)
        if option is None:
            logger.debug(f"Dropping option without id or target: {entry!r}")
            continue
        options.append(option)
    return tuple(options)


class RowNormalizer:
    """Converts raw sheet records into ContentNode and LetterContent values.

    Stateless; one instance can be shared freely.

    Example:
        >>> nodes = RowNormalizer().normalize([
        ...     {"id": "home", "language": "en", "title": "Welcome",
        ...      "options": '[{"id": "a", "text": "Go", "nextQuestion": "services"}]'},
        ... ])
        >>> nodes[("home", "en")].options[0].next_node_id
        'services'
    """

    def normalize(self, raw_records: Iterable[RawRecord]) -> dict[tuple[str, str], ContentNode]:
        """Normalize a batch of question rows.

        A later row for the same (id, language) replaces an earlier one.

        Args:
            raw_records: Rows as returned by a content source

        Returns:
            Mapping from (id, language) to ContentNode

        Raises:
            TypeError: If raw_records is not an iterable of records
        """
        nodes: dict[tuple[str, str], ContentNode] = {}
        for index, record in enumerate(self._iterate(raw_records)):
            try:
                node = self.normalize_record(record)
            except MalformedRecord as e:
                logger.warning(f"Skipping question row {index}: {e}")
                continue
            if node.key in nodes:
                logger.debug(f"Row {index} replaces earlier row for {node.key}")
            nodes[node.key] = node
        return nodes

    def normalize_record(self, record: Any) -> ContentNode:
        """Normalize one question row.

        Option lists that fail to parse become empty; the rest of the row is
        still used.

        Raises:
            MalformedRecord: If the row is not a mapping or lacks id/language
        """
        if not isinstance(record, Mapping):
            raise MalformedRecord(f"expected a mapping, got {type(record).__name__}")

        node_id = _text(record, ID_COLUMNS)
        language = _text(record, LANGUAGE_COLUMNS)
        if not node_id or not language:
            raise MalformedRecord("row is missing 'id' or 'language'")

        try:
            options = _option_list(_first(record, OPTIONS_COLUMNS))
        except MalformedRecord as e:
            logger.warning(f"Node ({node_id}, {language}): {e}; using no options")
            options = ()

        return ContentNode(
            id=node_id,
            language=language,
            title=_text(record, TITLE_COLUMNS),
            body=_text(record, BODY_COLUMNS),
            has_supplement=_flag(record, SUPPLEMENT_FLAG_COLUMNS),
            supplement_body=_text(record, SUPPLEMENT_BODY_COLUMNS),
            options=options,
            sub_question=self._sub_question(record, node_id, language),
        )

    def _sub_question(self, record: Mapping[str, Any], node_id: str, language: str) -> SubQuestion | None:
        raw = _first(record, SUB_QUESTION_COLUMNS)
        if raw is None:
            return None
        try:
            decoded = _decode(raw)
            if isinstance(decoded, list):
                # Bare option list without its own prompt
                return SubQuestion(options=_option_list(decoded))
            if not isinstance(decoded, Mapping):
                raise MalformedRecord(f"subQuestion must be an object, got {type(decoded).__name__}")
            prompt = decoded.get("question") or decoded.get("prompt") or ""
            return SubQuestion(prompt=str(prompt), options=_option_list(decoded.get("options")))
        except (json.JSONDecodeError, MalformedRecord) as e:
            logger.warning(f"Node ({node_id}, {language}): unusable subQuestion ({e})")
            return None

    def normalize_letters(self, raw_records: Iterable[RawRecord]) -> dict[tuple[str, str], LetterContent]:
        """Normalize a batch of letter rows, keyed by (questionId, language).

        Raises:
            TypeError: If raw_records is not an iterable of records
        """
        letters: dict[tuple[str, str], LetterContent] = {}
        for index, record in enumerate(self._iterate(raw_records)):
            if not isinstance(record, Mapping):
                logger.warning(f"Skipping letter row {index}: not a mapping")
                continue
            question_id = _text(record, LETTER_ID_COLUMNS)
            language = _text(record, LANGUAGE_COLUMNS)
            if not question_id or not language:
                logger.warning(f"Skipping letter row {index}: missing 'questionId' or 'language'")
                continue
            skip = {*LETTER_ID_COLUMNS, *LANGUAGE_COLUMNS}
            letters[(question_id, language)] = LetterContent(
                question_id=question_id,
                language=language,
                body=_text(record, LETTER_BODY_COLUMNS),
                fields={
                    str(k): "" if v is None else str(v)
                    for k, v in record.items()
                    if k not in skip
                },
            )
        return letters

    @staticmethod
    def _iterate(raw_records: Any) -> Iterable[Any]:
        if raw_records is None or isinstance(raw_records, (str, bytes, Mapping)):
            raise TypeError(
                f"Expected an iterable of records, got {type(raw_records).__name__}"
            )
        try:
            return iter(raw_records)
        except TypeError:
            raise TypeError(
                f"Expected an iterable of records, got {type(raw_records).__name__}"
            ) from None


__all__ = [
    "RowNormalizer",
    "TRUE_TOKEN",
]
