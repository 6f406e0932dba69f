"""
Pytest configuration and fixtures for interactive-letter tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path to allow importing interactive_letter
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from interactive_letter.content import ContentCache, GraphResolver, StaticFallbackTable  # noqa: E402
from interactive_letter.sources.base import ContentSource, SourceUnavailable  # noqa: E402


# Configure anyio to only use asyncio (not trio)
@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource(ContentSource):
    """In-memory content source that records every fetch."""

    def __init__(self, sheets: dict | None = None, fail: bool = False) -> None:
        self.sheets = sheets or {}
        self.fail = fail
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "Fake source"

    async def fetch_rows(self, sheet_name: str) -> list[dict]:
        self.calls.append(sheet_name)
        if self.fail:
            raise SourceUnavailable("sheet service is down")
        return list(self.sheets.get(sheet_name, []))


QUESTION_ROWS = [
    {
        "id": "home",
        "language": "en",
        "title": "Welcome (sheet)",
        "question": "Where to?",
        "options": '[{"id": "a", "text": "Services", "nextQuestion": "services"},'
                   ' {"id": "b", "text": "Broken", "nextQuestion": "nowhere"}]',
        "hasLetter": "FALSE",
    },
    {
        "id": "home",
        "language": "ar",
        "title": "مرحبا (sheet)",
        "question": "إلى أين؟",
        "options": '[{"id": "a", "text": "خدمات", "nextQuestion": "services"}]',
    },
    {
        "id": "services",
        "language": "en",
        "title": "Services (sheet)",
        "content": "What we do.",
        "hasLetter": "TRUE",
        "letterContent": "Thanks for reading.",
        "options": "",
        "subQuestion": '{"question": "Which one?", "options": [{"id": "web", "text": "Web", "nextQuestion": "web-details"}]}',
    },
]

LETTER_ROWS = [
    {"questionId": "services", "language": "en", "content": "Dear visitor", "signature": "The team"},
    {"questionId": "services", "language": "fa", "content": "بازدیدکننده گرامی"},
]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_source():
    """Factory for FakeSource instances with custom sheets."""
    return FakeSource


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource({"Questions": QUESTION_ROWS, "Letter_Content": LETTER_ROWS})


@pytest.fixture
def static_table() -> StaticFallbackTable:
    return StaticFallbackTable.default()


@pytest.fixture
def cache(clock: FakeClock) -> ContentCache:
    return ContentCache(ttl=300, clock=clock)


@pytest.fixture
def resolver(fake_source: FakeSource, static_table: StaticFallbackTable, cache: ContentCache) -> GraphResolver:
    return GraphResolver(source=fake_source, static_table=static_table, cache=cache)
