"""alertsiren - Poll an alert API and announce alert changes with audio cues."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("alertsiren")
except PackageNotFoundError:
    __version__ = "0+local"
from alertsiren.config import AlertConfig
from alertsiren.exceptions import (
    AlertConfigError,
    AlertSirenError,
    AlertStateError,
    AlertTransportError,
)
from alertsiren.models import Alert, AlertObservation, Region
from alertsiren.monitor import AlertMonitor
from alertsiren.state import (
    AlertCues,
    AlertTypePolicy,
    PersistedState,
    Reconciler,
    RepeatScheduler,
    RepeatSettings,
    StateStore,
    Transition,
    TransitionKind,
)

__all__ = [
    "__version__",
    "Alert",
    "AlertConfig",
    "AlertConfigError",
    "AlertCues",
    "AlertMonitor",
    "AlertObservation",
    "AlertSirenError",
    "AlertStateError",
    "AlertTransportError",
    "AlertTypePolicy",
    "PersistedState",
    "Reconciler",
    "Region",
    "RepeatScheduler",
    "RepeatSettings",
    "StateStore",
    "Transition",
    "TransitionKind",
]
