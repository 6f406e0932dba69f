"""
Visitor sessions: identification, view state and traversal history.
"""

from .history import (
    InvalidTransition,
    SessionRegistry,
    TraversalSession,
    ViewKind,
    ViewState,
    ViewStateMachine,
)
from .identification import IdentificationLog, IdentificationRecord

__all__ = [
    "ViewKind",
    "ViewState",
    "ViewStateMachine",
    "InvalidTransition",
    "TraversalSession",
    "SessionRegistry",
    "IdentificationLog",
    "IdentificationRecord",
]
