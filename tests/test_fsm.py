import pytest
from transitions import MachineError

from framesweep.fsm import CaptureFSM, SweepFSM


def test_sweep_machine_lifecycle():
    fsm = SweepFSM()
    assert fsm.state == "idle"

    fsm.start()
    assert fsm.state == "running"
    assert fsm.can("cancel")

    fsm.cancel()
    assert fsm.state == "ready"
    assert not fsm.can("cancel")

    fsm.start()
    fsm.fail()
    assert fsm.state == "ready"


def test_sweep_machine_rejects_finish_from_idle():
    with pytest.raises(MachineError):
        SweepFSM().finish()


def test_capture_machine_cell_cycle():
    fsm = CaptureFSM()
    fsm.request()
    fsm.sent()
    fsm.received()
    fsm.cell_done()
    assert fsm.state == "idle"

    fsm.request()
    fsm.cell_done()   # failed before a payload arrived
    fsm.finish()
    assert fsm.state == "done"

    fsm.reset()
    fsm.cancel()
    assert fsm.state == "cancelled"


def test_capture_machine_cannot_decode_without_payload():
    fsm = CaptureFSM()
    fsm.request()
    with pytest.raises(MachineError):
        fsm.received()


def test_callbacks_must_be_callable():
    with pytest.raises(ValueError, match="callable"):
        SweepFSM(callbacks={"on_enter_running": "not callable"})


def test_callbacks_must_use_on_prefix():
    with pytest.raises(ValueError, match="on_"):
        SweepFSM(callbacks={"enter_running": lambda: None})


def test_custom_definition_file(tmp_path):
    path = tmp_path / "states.yaml"
    path.write_text(
        "initial: idle\n"
        "states: [idle, running, ready]\n"
        "transitions:\n"
        "  - {trigger: start, source: idle, dest: running}\n"
    )
    fsm = SweepFSM(config_path=path)
    fsm.start()
    assert fsm.state == "running"
    assert not fsm.can("finish")
