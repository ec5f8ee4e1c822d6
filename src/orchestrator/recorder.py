"""Append-only, per-run timeline of human-readable execution steps."""
from __future__ import annotations

import threading

from src.core.contracts.steps import AgentStep, FinishReason


class StepRecorder:
    """Owned by the application; passed explicitly to orchestrator, executor and workers.

    Appends within one run are atomic and keep timestamps monotonic. Runs
    have independent locks, so concurrent runs never wait on each other.
    """

    def __init__(self) -> None:
        self._steps: dict[str, list[AgentStep]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, run_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(run_id)
            if lock is None:
                lock = self._locks[run_id] = threading.Lock()
                self._steps.setdefault(run_id, [])
            return lock

    def add_step(
        self,
        run_id: str,
        human_action: str,
        text: str = "",
        finish_reason: FinishReason | None = "complete",
    ) -> AgentStep:
        step = AgentStep(run_id=run_id, human_action=human_action, text=text, finish_reason=finish_reason)
        with self._lock_for(run_id):
            timeline = self._steps.setdefault(run_id, [])
            if timeline and step.timestamp < timeline[-1].timestamp:
                step = step.model_copy(update={"timestamp": timeline[-1].timestamp})
            timeline.append(step)
        return step

    def get_steps(self, run_id: str) -> list[AgentStep]:
        with self._registry_lock:
            return list(self._steps.get(run_id, ()))

    def clear_steps(self, run_id: str) -> None:
        lock = self._lock_for(run_id)
        with lock, self._registry_lock:
            self._steps.pop(run_id, None)
            self._locks.pop(run_id, None)

    def run_ids(self) -> list[str]:
        with self._registry_lock:
            return [rid for rid, steps in self._steps.items() if steps]
