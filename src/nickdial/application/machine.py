"""
The resolution state machine, kept as standard XState JSON (id, initial,
states with on: { EVENT: target }) so it opens in Stately Studio, and run with
xstate-python.

A session only ever changes state through ResolutionMachine.next_state, which
raises UndefinedTransition instead of silently staying put.
"""

import json
import os
from functools import lru_cache
from pathlib import Path

from xstate.machine import Machine

IDLE = "idle"
STORE_LOOKUP = "store_lookup"
PERMISSION_CHECK = "permission_check"
DIRECTORY_QUERY = "directory_query"
ZERO_RESULT = "zero_result"
ONE_RESULT = "one_result"
MANY_RESULT = "many_result"
AWAITING_MANUAL_PICK = "awaiting_manual_pick"
AWAITING_CHOICE = "awaiting_choice"
RESOLVED = "resolved"
FAILED = "failed"
CANCELLED = "cancelled"

TERMINAL_STATES = frozenset({RESOLVED, FAILED, CANCELLED})


class UndefinedTransition(RuntimeError):
    def __init__(self, state: str, event: str) -> None:
        super().__init__(f"No transition for {event} from {state}")
        self.state = state
        self.event = event


class ResolutionMachine:
    """A checked resolution machine definition."""

    def __init__(self, config: dict) -> None:
        states = config.get("states")
        if config.get("initial") != IDLE or not isinstance(states, dict):
            raise ValueError(f"Machine must start in '{IDLE}' and define 'states'")
        for name in TERMINAL_STATES:
            if name not in states:
                raise ValueError(f"Machine is missing state '{name}'")
            if states[name].get("on"):
                raise ValueError(f"Terminal state '{name}' must not accept events")
        for name, node in states.items():
            for event, target in node.get("on", {}).items():
                if target not in states:
                    raise ValueError(f"{name} --{event}--> unknown state '{target}'")
        self.config = config
        self._machine = Machine(config)

    @property
    def states(self) -> frozenset[str]:
        return frozenset(self.config["states"])

    def events(self, state: str) -> frozenset[str]:
        """Events accepted in state."""
        return frozenset(self.config["states"].get(state, {}).get("on", {}))

    def next_state(self, state: str, event: str) -> str:
        if event not in self.events(state):
            raise UndefinedTransition(state, event)
        current = self._machine.state_from(state)
        return self._machine.transition(current, event).value


def get_machine_path() -> Path:
    path = os.environ.get("RESOLUTION_MACHINE_PATH", "").strip()
    if path:
        return Path(path).resolve()
    return Path(__file__).resolve().parent / "resolution_machine.json"


def load_machine(path: Path | None = None) -> ResolutionMachine:
    path = path or get_machine_path()
    return ResolutionMachine(json.loads(path.read_text(encoding="utf-8")))


@lru_cache(maxsize=None)
def _load_cached(path: Path) -> ResolutionMachine:
    return load_machine(path)


def get_machine() -> ResolutionMachine:
    """The machine at get_machine_path(), loaded once per path."""
    return _load_cached(get_machine_path())
