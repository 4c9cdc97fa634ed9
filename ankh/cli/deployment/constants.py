"""Deployment constants and the operation modes.

This module centralizes the magic strings used throughout the templating
and execution pipeline.
"""

from __future__ import annotations

from enum import Enum

DEFAULT_ANKH_FILE = "ankh.yaml"

# Placeholder tag used by modes that template charts without deploying them
UNSET_TAG_VALUE = "__ankh_tag_value_unset___"

# Rollback only concerns ReplicaSet-owning objects
ROLLBACK_FILTERS: tuple[str, ...] = ("deployment", "statefulset")

WORKLOAD_KINDS: tuple[str, ...] = ("deployment", "statefulset")

DEFAULT_EXEC_COMMAND: tuple[str, ...] = ("/bin/sh",)

DEFAULT_LOG_TAIL = 10

# Filenames inside a chart that hold values keyed by environment class / resource profile
CHART_VALUES_FILE = "ankh-values.yaml"
CHART_RESOURCE_PROFILES_FILE = "ankh-resource-profiles.yaml"

HTTP_TIMEOUT = 30.0


class Mode(str, Enum):
    """The operation an invocation performs, fixed before rendering."""

    TEMPLATE = "template"
    APPLY = "apply"
    DIFF = "diff"
    ROLLBACK = "rollback"
    GET = "get"
    PODS = "pods"
    LOGS = "logs"
    EXEC = "exec"
    EXPLAIN = "explain"
    LINT = "lint"

    @property
    def is_read_only(self) -> bool:
        """Modes that template charts without needing a real image tag."""
        return self in _READ_ONLY_MODES

    @property
    def action(self) -> str:
        """Log prefix describing what the mode does to a chart."""
        return _ACTIONS[self]


_READ_ONLY_MODES = frozenset(
    {Mode.EXPLAIN, Mode.ROLLBACK, Mode.GET, Mode.PODS, Mode.EXEC, Mode.LOGS}
)

_ACTIONS = {
    Mode.APPLY: "Applying chart",
    Mode.ROLLBACK: "Rolling back Deployment/StatefulSet from chart",
    Mode.DIFF: "Diffing objects from chart",
    Mode.EXEC: "Exec'ing on pods from chart",
    Mode.EXPLAIN: "Explaining",
    Mode.GET: "Getting objects from chart",
    Mode.PODS: "Getting pods for Deployment/StatefulSet from chart",
    Mode.TEMPLATE: "Templating",
    Mode.LINT: "Linting",
    Mode.LOGS: "Getting logs for pods from chart",
}
