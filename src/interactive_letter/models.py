"""
Data models for the interactive letter content graph.

Nodes, options and letters are immutable once built. Resolution only ever
selects an existing node, it never edits one in place.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _FrozenModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class Option(_FrozenModel):
    """One selectable edge from a node to another node."""

    id: str = Field(description="Option identifier, unique within its option list")
    label: str = Field(default="", description="Display text for the option")
    next_node_id: str = Field(description="Identifier of the target node (not validated)")


class SubQuestion(_FrozenModel):
    """A secondary prompt carried by a node, with its own option list."""

    prompt: str = Field(default="", description="Prompt shown above the secondary options")
    options: tuple[Option, ...] = Field(default=(), description="Secondary option list")


class ChoiceSet(_FrozenModel):
    """The option list a node exposes for navigation.

    Attributes:
        kind: "primary" for the node's own options, "secondary" for its sub-question
        prompt: Prompt text associated with the options
        options: The options to choose from
    """

    kind: Literal["primary", "secondary"]
    prompt: str = ""
    options: tuple[Option, ...] = ()


class ContentNode(_FrozenModel):
    """One addressable unit of branching content.

    The pair (id, language) is the true key: the same id exists once per
    language it has been translated into.
    """

    id: str = Field(description="Stable node identifier")
    language: str = Field(description="Language code of this variant")
    title: str = Field(default="", description="Display title")
    body: str = Field(default="", description="Main question or content text")
    has_supplement: bool = Field(default=False, description="Whether a letter supplement is attached")
    supplement_body: str = Field(default="", description="Letter text, meaningful only with has_supplement")
    options: tuple[Option, ...] = Field(default=(), description="Primary option list")
    sub_question: SubQuestion | None = Field(default=None, description="Optional secondary prompt")

    @property
    def key(self) -> tuple[str, str]:
        return (self.id, self.language)

    @property
    def secondary_options(self) -> tuple[Option, ...] | None:
        """Options of the sub-question, or None when the node has none."""
        if self.sub_question is None:
            return None
        return self.sub_question.options

    @property
    def active_choice(self) -> ChoiceSet | None:
        """Return the option list offered to the user.

        The primary list wins when it is non-empty; otherwise the
        sub-question's list is used. Nodes with neither are leaves.
        """
        if self.options:
            return ChoiceSet(kind="primary", prompt=self.body, options=self.options)
        if self.sub_question is not None and self.sub_question.options:
            return ChoiceSet(
                kind="secondary",
                prompt=self.sub_question.prompt,
                options=self.sub_question.options,
            )
        return None


class LetterContent(_FrozenModel):
    """Letter text attached to a question, from the letter content sheet."""

    question_id: str = Field(description="Node identifier the letter belongs to")
    language: str = Field(description="Language code of this letter")
    body: str = Field(default="", description="Letter text")
    fields: dict[str, str] = Field(default_factory=dict, description="Remaining raw columns")


class Language(_FrozenModel):
    """A language the questionnaire can be read in."""

    code: str
    name: str
    native_name: str


class NavigationResult(_FrozenModel):
    """Outcome of following an option from a node.

    next_node is None when the destination could not be resolved; the
    caller decides whether to stay on the current node.
    """

    from_node_id: str
    selected_option: Option
    next_node_id: str
    next_node: ContentNode | None = None


RawRecord = dict[str, Any]


__all__ = [
    "Option",
    "SubQuestion",
    "ChoiceSet",
    "ContentNode",
    "LetterContent",
    "Language",
    "NavigationResult",
    "RawRecord",
]
