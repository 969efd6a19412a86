# src/tracking/progress.py
"""In-memory per-project progress registry.

Tracks the coarse pipeline phase, the status of each logical agent and a
rolling log, for polling-based status displays. The state is advisory:
every mutator quietly does nothing when the project, agent or value is
unknown, so a late update racing a ``clear`` never raises. Durable
progress lives in the checkpoint store, not here.
"""

from __future__ import annotations

import logging
import math
import time
from datetime import datetime
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from docforge.tracking.models import AGENT_IDS, PHASES, AgentProgress, LogEntry, ProgressState

logger = logging.getLogger(__name__)

LOG_CAP = 100

ProgressListener = Callable[[str, dict[str, Any]], None]


class ProgressTracker:
    """Registry of ProgressState keyed by project_id.

    Args:
        clock: Returns epoch seconds (injectable for tests).
        log_cap: Maximum log entries kept per project.
    """

    def __init__(self, clock: Callable[[], float] = time.time, log_cap: int = LOG_CAP) -> None:
        self._clock = clock
        self._log_cap = log_cap
        self._states: dict[str, ProgressState] = {}
        self._listeners: list[ProgressListener] = []

    def init(self, project_id: str) -> ProgressState:
        """Create fresh state for ``project_id``, replacing any previous one."""
        now = self._now_ms()
        state = ProgressState(
            phase="initializing",
            agents={agent: AgentProgress() for agent in AGENT_IDS},
            started_at=now,
            updated_at=now,
        )
        self._states[project_id] = state
        return state

    def get(self, project_id: str) -> ProgressState | None:
        return self._states.get(project_id)

    def project_ids(self) -> list[str]:
        return list(self._states)

    def update_agent(
        self, project_id: str, agent_id: str, fields: Mapping[str, Any],
    ) -> None:
        """Merge ``fields`` into one agent's record."""
        state = self._states.get(project_id)
        if state is None or agent_id not in state.agents:
            logger.debug("update_agent ignored: %s/%s unknown", project_id, agent_id)
            return

        now = self._now_ms()
        merged = state.agents[agent_id].model_dump()
        merged.update(fields)
        merged["updated_at"] = now
        try:
            state.agents[agent_id] = AgentProgress.model_validate(merged)
        except ValidationError as e:
            logger.debug("update_agent ignored invalid fields for %s: %s", agent_id, e)
            return
        state.updated_at = now

        self._emit(project_id, {
            "type": "agent_update",
            "phase": state.phase,
            "agents": {k: v.model_dump() for k, v in state.agents.items()},
        })

    def add_log(self, project_id: str, entry: Mapping[str, Any] | str) -> None:
        """Append a log entry stamped with epoch-ms and HH:MM:SS time."""
        state = self._states.get(project_id)
        if state is None:
            return

        now = self._now_ms()
        payload = {"message": entry} if isinstance(entry, str) else dict(entry)
        payload["timestamp"] = now
        payload["time"] = datetime.fromtimestamp(now / 1000).strftime("%H:%M:%S")
        try:
            log = LogEntry.model_validate(payload)
        except ValidationError as e:
            logger.debug("add_log ignored invalid entry: %s", e)
            return

        state.logs.append(log)
        if len(state.logs) > self._log_cap:
            del state.logs[: len(state.logs) - self._log_cap]
        state.updated_at = now

        self._emit(project_id, {
            "type": "log",
            "phase": state.phase,
            "log": log.model_dump(),
        })

    def update_phase(self, project_id: str, phase: str) -> None:
        state = self._states.get(project_id)
        if state is None:
            return
        if phase not in PHASES:
            logger.debug("update_phase ignored unknown phase %r", phase)
            return

        state.phase = phase  # type: ignore[assignment]
        state.updated_at = self._now_ms()

        self._emit(project_id, {
            "type": "phase_update",
            "phase": state.phase,
            "agents": {k: v.model_dump() for k, v in state.agents.items()},
        })

    def calculate_overall_progress(self, project_id: str) -> int:
        """Mean agent progress rounded half-up; 0 for unknown projects."""
        state = self._states.get(project_id)
        if state is None or not state.agents:
            return 0
        mean = sum(a.progress for a in state.agents.values()) / len(state.agents)
        return int(math.floor(mean + 0.5))

    def clear(self, project_id: str) -> None:
        self._states.pop(project_id, None)

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register a push listener; returns a function that unsubscribes it.

        Listeners receive ``(project_id, event)`` where event carries a
        ``type`` of agent_update, log or phase_update.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --- Internal helpers ---

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _emit(self, project_id: str, event: dict[str, Any]) -> None:
        if not self._listeners:
            return
        state = self._states.get(project_id)
        event["overall_progress"] = self.calculate_overall_progress(project_id)
        event["updated_at"] = state.updated_at if state else self._now_ms()
        for listener in list(self._listeners):
            try:
                listener(project_id, event)
            except Exception:
                logger.exception("Progress listener failed for %s", project_id)
