"""
Tests for RowNormalizer.

Tests cover:
- Well-formed question rows
- Column aliases used by older sheets
- Tolerant parsing of options and sub-questions
- Row skipping and duplicate handling
- Letter rows
"""

import pytest

from interactive_letter.content import MalformedRecord, RowNormalizer
from interactive_letter.models import ContentNode, Option


@pytest.fixture
def normalizer() -> RowNormalizer:
    return RowNormalizer()


# ============================================================================
# Question Rows
# ============================================================================


class TestNormalizeRecord:
    """Test single-row normalization."""

    def test_full_row(self, normalizer):
        node = normalizer.normalize_record({
            "id": "home",
            "language": "en",
            "title": "Welcome",
            "question": "Where to?",
            "options": '[{"id": "a", "text": "Services", "nextQuestion": "services"}]',
            "hasLetter": "TRUE",
            "letterContent": "Dear reader",
        })

        assert isinstance(node, ContentNode)
        assert node.key == ("home", "en")
        assert node.title == "Welcome"
        assert node.body == "Where to?"
        assert node.has_supplement is True
        assert node.supplement_body == "Dear reader"
        assert node.options == (Option(id="a", label="Services", next_node_id="services"),)
        assert node.sub_question is None

    def test_minimal_row_defaults(self, normalizer):
        node = normalizer.normalize_record({"id": "leaf", "language": "fa"})

        assert node.title == ""
        assert node.body == ""
        assert node.has_supplement is False
        assert node.options == ()
        assert node.secondary_options is None
        assert node.active_choice is None

    def test_body_falls_back_to_content_column(self, normalizer):
        node = normalizer.normalize_record({"id": "x", "language": "en", "content": "Text"})
        assert node.body == "Text"

    def test_option_list_already_decoded(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x",
            "language": "en",
            "options": [{"id": "a", "label": "Go", "nextNodeId": "y"}],
        })
        assert node.options[0].label == "Go"
        assert node.options[0].next_node_id == "y"

    @pytest.mark.parametrize("flag,expected", [
        ("TRUE", True),
        (" TRUE ", True),
        ("true", False),
        (" True ", False),
        (True, True),
        ("FALSE", False),
        ("yes", False),
        ("1", False),
        (1, False),
        ("", False),
        (None, False),
    ])
    def test_supplement_flag(self, normalizer, flag, expected):
        node = normalizer.normalize_record({"id": "x", "language": "en", "hasLetter": flag})
        assert node.has_supplement is expected

    def test_missing_id_raises(self, normalizer):
        with pytest.raises(MalformedRecord):
            normalizer.normalize_record({"language": "en"})

    def test_blank_language_raises(self, normalizer):
        with pytest.raises(MalformedRecord):
            normalizer.normalize_record({"id": "x", "language": "  "})

    def test_non_mapping_raises(self, normalizer):
        with pytest.raises(MalformedRecord):
            normalizer.normalize_record(["home", "en"])


class TestOptionParsing:
    """Options that fail to parse never abort the row."""

    def test_invalid_json_gives_empty_options(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x", "language": "en", "title": "Kept", "options": "[not json",
        })
        assert node.options == ()
        assert node.title == "Kept"

    def test_non_list_json_gives_empty_options(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x", "language": "en", "options": '{"id": "a"}',
        })
        assert node.options == ()

    def test_options_missing_id_or_target_are_dropped(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x",
            "language": "en",
            "options": '[{"id": "a", "text": "ok", "nextQuestion": "y"},'
                       ' {"text": "no id", "nextQuestion": "y"},'
                       ' {"id": "c", "text": "no target"},'
                       ' "garbage"]',
        })
        assert [o.id for o in node.options] == ["a"]

    def test_dangling_target_is_kept(self, normalizer):
        """Targets are not checked against the node set."""
        node = normalizer.normalize_record({
            "id": "x",
            "language": "en",
            "options": '[{"id": "a", "text": "ok", "nextQuestion": "does-not-exist"}]',
        })
        assert node.options[0].next_node_id == "does-not-exist"


class TestSubQuestion:
    """Test sub-question parsing."""

    def test_sub_question_object(self, normalizer):
        node = normalizer.normalize_record({
            "id": "services",
            "language": "en",
            "subQuestion": '{"question": "Which?", "options": '
                           '[{"id": "web", "text": "Web", "nextQuestion": "web-details"}]}',
        })

        assert node.sub_question.prompt == "Which?"
        assert node.secondary_options[0].id == "web"
        choice = node.active_choice
        assert choice.kind == "secondary"
        assert choice.prompt == "Which?"

    def test_bare_option_list(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x",
            "language": "en",
            "secondaryOptions": '[{"id": "s", "text": "S", "nextQuestion": "y"}]',
        })
        assert node.sub_question.prompt == ""
        assert node.secondary_options[0].next_node_id == "y"

    def test_unparsable_sub_question_is_dropped(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x", "language": "en", "subQuestion": "{broken",
        })
        assert node.sub_question is None

    def test_primary_options_win_over_secondary(self, normalizer):
        node = normalizer.normalize_record({
            "id": "x",
            "language": "en",
            "question": "Main?",
            "options": '[{"id": "p", "text": "P", "nextQuestion": "y"}]',
            "subQuestion": '{"question": "Sub?", "options": [{"id": "s", "text": "S", "nextQuestion": "z"}]}',
        })
        choice = node.active_choice
        assert choice.kind == "primary"
        assert choice.prompt == "Main?"
        assert [o.id for o in choice.options] == ["p"]


# ============================================================================
# Batch Normalization
# ============================================================================


class TestNormalizeBatch:
    """Test normalize() over many rows."""

    def test_bad_rows_are_skipped(self, normalizer):
        nodes = normalizer.normalize([
            {"id": "home", "language": "en"},
            {"language": "en"},
            "not a row",
            {"id": "home", "language": "fa"},
        ])
        assert set(nodes) == {("home", "en"), ("home", "fa")}

    def test_malformed_options_isolated_to_one_row(self, normalizer):
        nodes = normalizer.normalize([
            {"id": "bad", "language": "en", "options": "[{oops"},
            {"id": "good", "language": "en",
             "options": '[{"id": "a", "text": "A", "nextQuestion": "x"}]'},
        ])

        assert nodes[("bad", "en")].options == ()
        assert nodes[("good", "en")].options[0].id == "a"

    def test_later_duplicate_wins(self, normalizer):
        nodes = normalizer.normalize([
            {"id": "home", "language": "en", "title": "First"},
            {"id": "home", "language": "en", "title": "Second"},
        ])
        assert len(nodes) == 1
        assert nodes[("home", "en")].title == "Second"

    def test_empty_input(self, normalizer):
        assert normalizer.normalize([]) == {}

    @pytest.mark.parametrize("bad", [None, "rows", b"rows", {"id": "home"}, 42])
    def test_non_sequence_input_raises_type_error(self, normalizer, bad):
        with pytest.raises(TypeError):
            normalizer.normalize(bad)

    def test_generator_input(self, normalizer):
        rows = ({"id": f"n{i}", "language": "en"} for i in range(3))
        assert len(normalizer.normalize(rows)) == 3


# ============================================================================
# Letter Rows
# ============================================================================


class TestNormalizeLetters:
    """Test letter sheet normalization."""

    def test_letter_rows(self, normalizer):
        letters = normalizer.normalize_letters([
            {"questionId": "services", "language": "en", "content": "Dear visitor", "signature": "Team"},
            {"questionId": "services", "language": "fa", "content": "سلام", "extra": None},
        ])

        en = letters[("services", "en")]
        assert en.body == "Dear visitor"
        assert en.fields == {"content": "Dear visitor", "signature": "Team"}
        assert letters[("services", "fa")].fields["extra"] == ""

    def test_letter_id_alias(self, normalizer):
        letters = normalizer.normalize_letters([{"id": "contact", "language": "ar", "body": "..."}])
        assert ("contact", "ar") in letters

    def test_incomplete_letter_rows_skipped(self, normalizer):
        letters = normalizer.normalize_letters([
            {"questionId": "services"},
            {"language": "en"},
            ["list"],
        ])
        assert letters == {}

    def test_non_sequence_raises(self, normalizer):
        with pytest.raises(TypeError):
            normalizer.normalize_letters(None)
