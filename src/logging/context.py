# src/logging/context.py
"""Contextual logging support: attach project_id, agent and step to records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set once per project run, then per agent phase / section.
_project_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "project_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Snapshot of the current logging context."""

    project_id: str | None = None
    agent: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        project_id=_project_id.get(),
        agent=_agent.get(),
        step=_step.get(),
    )


def set_project_context(project_id: str) -> None:
    """Bind every subsequent record in this task to a project."""
    _project_id.set(project_id)


def set_agent_context(agent: str, step: str | None = None) -> None:
    """Bind records to an agent (architect, writer, ...) and optional step."""
    _agent.set(agent)
    _step.set(step)


def clear_context() -> None:
    _project_id.set(None)
    _agent.set(None)
    _step.set(None)
