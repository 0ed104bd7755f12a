import yaml
from pathlib import Path
from transitions import Machine
from transitions.extensions import LockedMachine


class YamlFSM:
    """
    Finite State Machine whose states and transitions are loaded from YAML.
    Subclasses pick the definition file and the machine class.
    """

    definition = None
    machine_class = Machine

    def __init__(self, config_path=None, callbacks=None):
        """
        :param config_path: Optional path overriding the packaged YAML definition.
        :param callbacks: Optional dict of callbacks for state entry actions.
                          Example: {"on_enter_running": some_function}
        """
        self.config_path = Path(config_path) if config_path else Path(__file__).parent / self.definition
        self.callbacks = callbacks or {}

        with open(self.config_path, "r") as f:
            fsm_config = yaml.safe_load(f)

        states = fsm_config.get("states", [])
        transitions = fsm_config.get("transitions", [])
        initial = fsm_config.get("initial", "idle")

        # Register and validate callbacks before the machine binds them
        for name, func in self.callbacks.items():
            if not callable(func):
                raise ValueError(f"Callback '{name}' must be callable, got {type(func)}")
            if not name.startswith("on_"):
                raise ValueError(f"Callback name '{name}' should start with 'on_' (e.g., 'on_enter_running')")
            setattr(self, name, func)

        self.machine = self.machine_class(
            model=self,
            states=states,
            transitions=transitions,
            initial=initial,
            auto_transitions=False,
        )

    def can(self, trigger: str) -> bool:
        """True if `trigger` is valid from the current state."""
        return trigger in self.machine.get_triggers(self.state)


class SweepFSM(YamlFSM):
    """
    Controller-level machine: idle -> running -> ready.

    Cancel arrives from the presentation thread while the worker thread
    drives finish/fail, so transitions are serialised with a lock.
    """

    definition = "sweep_states.yaml"
    machine_class = LockedMachine


class CaptureFSM(YamlFSM):
    """Per-cell capture cycle: request -> await payload -> decode, ending done or cancelled."""

    definition = "capture_states.yaml"
