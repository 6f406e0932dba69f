"""
Tests for the view state machine, traversal sessions and the session registry.
"""

import threading

import pytest

from interactive_letter.session import (
    InvalidTransition,
    SessionRegistry,
    TraversalSession,
    ViewKind,
    ViewState,
    ViewStateMachine,
)


@pytest.fixture
def machine() -> ViewStateMachine:
    return ViewStateMachine("home")


@pytest.fixture
def at_root(machine) -> ViewState:
    return machine.choose_language(machine.identify(machine.initial()), "fa")


# ============================================================================
# State Machine
# ============================================================================


class TestViewStateMachine:
    """Test pure transitions."""

    def test_initial_state(self, machine):
        state = machine.initial()
        assert state.kind == ViewKind.ENTRY
        assert state.current is None
        assert state.history == ()

    def test_identify_then_language(self, machine, at_root):
        assert machine.identify(machine.initial()).kind == ViewKind.LANGUAGE_SELECT
        assert at_root == ViewState(kind=ViewKind.NODE, language="fa", current="home", history=())

    def test_advance_pushes_history(self, machine, at_root):
        state = machine.advance(machine.advance(at_root, "services"), "web-details")

        assert state.current == "web-details"
        assert state.history == ("home", "services")
        assert state.language == "fa"

    def test_advance_then_back_is_identity(self, machine, at_root):
        step = machine.advance(at_root, "services")
        deeper = machine.advance(step, "contact")

        assert machine.go_back(deeper) == step
        assert machine.go_back(step) == at_root

    def test_go_back_with_empty_history_goes_to_root(self, machine, at_root):
        assert machine.go_back(at_root) == at_root

    def test_return_to_root_clears_history(self, machine, at_root):
        state = machine.advance(machine.advance(at_root, "a"), "b")
        home = machine.return_to_root(state)

        assert home.current == "home"
        assert home.history == ()
        assert home.language == "fa"

    def test_transitions_do_not_mutate(self, machine, at_root):
        machine.advance(at_root, "services")
        assert at_root.history == ()

    def test_state_is_frozen(self, at_root):
        with pytest.raises(Exception):
            at_root.current = "elsewhere"

    @pytest.mark.parametrize("transition", [
        lambda m, s: m.advance(s, "x"),
        lambda m, s: m.go_back(s),
        lambda m, s: m.return_to_root(s),
        lambda m, s: m.choose_language(s, "en"),
    ])
    def test_invalid_from_entry(self, machine, transition):
        with pytest.raises(InvalidTransition):
            transition(machine, machine.initial())

    def test_cannot_identify_twice(self, machine):
        with pytest.raises(InvalidTransition, match="language_select"):
            machine.identify(machine.identify(machine.initial()))

    def test_custom_root(self):
        machine = ViewStateMachine("start")
        state = machine.choose_language(machine.identify(machine.initial()), "en")
        assert state.current == "start"


# ============================================================================
# Sessions
# ============================================================================


class TestTraversalSession:
    """Test a single session's applied transitions."""

    def test_walk(self, machine):
        session = TraversalSession("abc", machine)

        session.identify("+100")
        session.choose_language("en")
        session.advance("services")
        session.advance("web-details")
        state = session.go_back()

        assert session.identification == "+100"
        assert state.current == "services"
        assert state.history == ("home",)
        assert session.state == state

    def test_failed_transition_keeps_state(self, machine):
        session = TraversalSession("abc", machine)
        with pytest.raises(InvalidTransition):
            session.advance("services")
        assert session.state.kind == ViewKind.ENTRY

    def test_concurrent_advances_are_serialized(self, machine):
        session = TraversalSession("abc", machine)
        session.identify("+1")
        session.choose_language("en")

        threads = [threading.Thread(target=session.advance, args=(f"n{i}",)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(session.state.history) == 20


class TestSessionRegistry:
    """Test session bookkeeping."""

    def test_create_and_get(self):
        registry = SessionRegistry()
        session = registry.create()

        assert len(session.session_id) == 8
        assert registry.get(session.session_id) is session
        assert len(registry) == 1

    def test_unique_ids(self):
        registry = SessionRegistry()
        ids = {registry.create().session_id for _ in range(50)}
        assert len(ids) == 50

    def test_unknown_session(self):
        with pytest.raises(KeyError, match="Unknown session"):
            SessionRegistry().get("nope")

    def test_end(self):
        registry = SessionRegistry()
        session = registry.create()

        assert registry.end(session.session_id) is True
        assert registry.end(session.session_id) is False
        assert len(registry) == 0

    def test_root_passed_to_machine(self):
        registry = SessionRegistry(root_node_id="start")
        assert registry.machine.root_node_id == "start"
