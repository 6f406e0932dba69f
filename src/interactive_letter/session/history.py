"""
View state machine and traversal history for one questionnaire session.

States:
- ENTRY: before the visitor has identified themselves
- LANGUAGE_SELECT: identified, waiting for a language
- NODE: reading a node, with the stack of nodes visited before it

The history only ever changes by one step at a time: push on forward
navigation, pop on "go back", cleared on return to the root node.
"""

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from shortuuid import random

logger = logging.getLogger("interactive-letter")


class ViewKind(str, Enum):
    """Which screen of the questionnaire a session is on."""
    ENTRY = "entry"
    LANGUAGE_SELECT = "language_select"
    NODE = "node"


class InvalidTransition(Exception):
    """Raised when a transition is not allowed from the current view."""


class ViewState(BaseModel):
    """Immutable snapshot of a session's view.

    Two states are equal when kind, language, current node and history
    all match, so a forward step followed by go_back() compares equal to
    the starting state.
    """

    model_config = ConfigDict(frozen=True)

    kind: ViewKind = Field(default=ViewKind.ENTRY, description="Current screen")
    language: Optional[str] = Field(default=None, description="Chosen language code")
    current: Optional[str] = Field(default=None, description="Node being displayed")
    history: tuple[str, ...] = Field(default=(), description="Previously visited node ids, oldest first")


class ViewStateMachine:
    """Pure transition functions over ViewState.

    Every method returns a new state and never mutates its input.
    """

    def __init__(self, root_node_id: str = "home") -> None:
        self.root_node_id = root_node_id

    def initial(self) -> ViewState:
        return ViewState()

    def identify(self, state: ViewState) -> ViewState:
        """Entry -> LanguageSelect once identification is accepted."""
        self._require(state, ViewKind.ENTRY, "identify")
        return ViewState(kind=ViewKind.LANGUAGE_SELECT)

    def choose_language(self, state: ViewState, language: str) -> ViewState:
        """LanguageSelect -> Node(root, [])."""
        self._require(state, ViewKind.LANGUAGE_SELECT, "choose a language")
        return ViewState(kind=ViewKind.NODE, language=language, current=self.root_node_id)

    def advance(self, state: ViewState, next_node_id: str) -> ViewState:
        """Node(n, h) -> Node(n', h + [n])."""
        self._require(state, ViewKind.NODE, "select an option")
        return state.model_copy(update={
            "current": next_node_id,
            "history": (*state.history, state.current),
        })

    def go_back(self, state: ViewState) -> ViewState:
        """Node(n, h) -> Node(last(h), h[:-1]), or Node(root, []) when h is empty."""
        self._require(state, ViewKind.NODE, "go back")
        if not state.history:
            return self.return_to_root(state)
        return state.model_copy(update={
            "current": state.history[-1],
            "history": state.history[:-1],
        })

    def return_to_root(self, state: ViewState) -> ViewState:
        """Node(...) -> Node(root, []), discarding history."""
        self._require(state, ViewKind.NODE, "return to the start")
        return state.model_copy(update={"current": self.root_node_id, "history": ()})

    @staticmethod
    def _require(state: ViewState, kind: ViewKind, action: str) -> None:
        if state.kind != kind:
            raise InvalidTransition(
                f"Cannot {action} from the '{state.kind.value}' view"
            )


class TraversalSession:
    """
    One visitor's walk through the questionnaire.

    Transitions are applied under a lock, each computed from the state
    left by the previous one. No merging: the last applied transition
    defines the state.

    Attributes:
        session_id: Short unique identifier
        machine: Transition functions
        created_at: Creation timestamp
        identification: Identifier accepted at the entry view, if any
    """

    def __init__(self, session_id: str, machine: ViewStateMachine) -> None:
        self.session_id = session_id
        self.machine = machine
        self.created_at = datetime.now()
        self.identification: Optional[str] = None
        self._state = machine.initial()
        self._lock = threading.Lock()

    @property
    def state(self) -> ViewState:
        with self._lock:
            return self._state

    def identify(self, identification: str) -> ViewState:
        state = self._apply(self.machine.identify)
        self.identification = identification
        return state

    def choose_language(self, language: str) -> ViewState:
        return self._apply(lambda s: self.machine.choose_language(s, language))

    def advance(self, next_node_id: str) -> ViewState:
        return self._apply(lambda s: self.machine.advance(s, next_node_id))

    def go_back(self) -> ViewState:
        return self._apply(self.machine.go_back)

    def return_to_root(self) -> ViewState:
        return self._apply(self.machine.return_to_root)

    def _apply(self, transition: Callable[[ViewState], ViewState]) -> ViewState:
        with self._lock:
            self._state = transition(self._state)
            logger.debug(
                f"Session {self.session_id}: {self._state.kind.value} "
                f"current={self._state.current} depth={len(self._state.history)}"
            )
            return self._state


class SessionRegistry:
    """Holds active traversal sessions by id."""

    def __init__(self, root_node_id: str = "home") -> None:
        self.machine = ViewStateMachine(root_node_id)
        self._sessions: dict[str, TraversalSession] = {}
        self._lock = threading.Lock()

    def create(self) -> TraversalSession:
        session = TraversalSession(random(length=8), self.machine)
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info(f"Started session {session.session_id}")
        return session

    def get(self, session_id: str) -> TraversalSession:
        """Return a session.

        Raises:
            KeyError: If the session does not exist
        """
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Unknown session '{session_id}'")
        return session

    def end(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"Ended session {session_id}")
        return removed is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = [
    "ViewKind",
    "ViewState",
    "ViewStateMachine",
    "InvalidTransition",
    "TraversalSession",
    "SessionRegistry",
]
