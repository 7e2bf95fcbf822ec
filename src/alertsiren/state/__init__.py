"""State layer.

This package is the single source of truth for which alert types are on,
how a fresh observation changes that, and when reminder cues are due.
"""

from alertsiren.state.events import Transition, TransitionKind
from alertsiren.state.policy import AlertTypePolicy
from alertsiren.state.reconcile import AlertCues, Notifier, Reconciler
from alertsiren.state.repeat import RepeatScheduler, RepeatSettings
from alertsiren.state.store import PersistedState, StateStore

__all__ = [
    "AlertCues",
    "AlertTypePolicy",
    "Notifier",
    "PersistedState",
    "Reconciler",
    "RepeatScheduler",
    "RepeatSettings",
    "StateStore",
    "Transition",
    "TransitionKind",
]
