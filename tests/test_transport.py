import threading

import cv2
import numpy as np
import pytest

from framesweep.camera.settings import CaptureSettings
from framesweep.errors import TransportError, TransportTimeoutError
from framesweep.pipeline.grid import GridCell
from framesweep.transport import ReplayTransport, SimulatedTransport


def settings(gain=0, shutter=4, auto=False):
    return CaptureSettings.for_cell(GridCell(0, 0, gain, shutter), auto_exposure=auto)


class TestSubscriptions:

    def test_subscription_receives_published_payload(self, scripted_transport):
        transport = scripted_transport([b"payload"])
        with transport.subscribe() as sub:
            assert transport.listener_count == 1
            transport.send(settings())
            assert sub.get(timeout=0.1) == b"payload"
        assert transport.listener_count == 0

    def test_leaving_the_block_unsubscribes_even_on_error(self, scripted_transport):
        transport = scripted_transport([None])
        with pytest.raises(TransportTimeoutError):
            with transport.subscribe() as sub:
                transport.send(settings())
                sub.get(timeout=0.01)
        assert transport.listener_count == 0

    def test_payload_without_listener_is_dropped(self, scripted_transport):
        transport = scripted_transport([b"late"])
        transport.send(settings())  # nobody listening

        with transport.subscribe() as sub:
            with pytest.raises(TransportTimeoutError):
                sub.get(timeout=0.01)

    def test_published_error_is_raised_as_transport_error(self, scripted_transport):
        transport = scripted_transport([])
        with transport.subscribe() as sub:
            transport._publish_error(OSError("link lost"))
            with pytest.raises(TransportError, match="link lost"):
                sub.get(timeout=0.1)

    def test_closed_subscription_refuses_reads(self, scripted_transport):
        transport = scripted_transport([])
        sub = transport.subscribe()
        sub.close()
        sub.close()
        with pytest.raises(TransportError):
            sub.get(timeout=0.01)
        assert transport.listener_count == 0

    def test_payload_stream_unsubscribes_when_closed(self, scripted_transport):
        transport = scripted_transport([b"a", b"b"])
        stream = transport.payloads()

        publisher = threading.Timer(0.05, lambda: transport._publish(b"first"))
        publisher.start()
        assert next(stream) == b"first"
        assert transport.listener_count == 1

        stream.close()
        assert transport.listener_count == 0


class TestSimulatedTransport:

    def test_longer_exposure_is_brighter(self):
        dark = SimulatedTransport.brightness(settings(shutter=4))
        bright = SimulatedTransport.brightness(settings(shutter=16343))
        brighter = SimulatedTransport.brightness(settings(gain=248, shutter=2048))
        assert dark < brighter
        assert dark < bright

    def test_auto_exposure_targets_profile_exposure(self):
        value = SimulatedTransport.brightness(settings(auto=True))
        assert value == round(255 * 0.18 ** (1 / 2.2))

    def test_render_produces_decodable_jpeg(self):
        transport = SimulatedTransport(frame_size=(40, 20))
        data = transport.render(settings(shutter=2048))
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert image.shape == (20, 40, 3)

    def test_send_publishes_after_latency(self):
        transport = SimulatedTransport(latency=0.02)
        with transport.subscribe() as sub:
            transport.send(settings())
            assert sub.get(timeout=1.0).startswith(b"\xff\xd8")
        transport.close()

    def test_finished_timers_are_not_kept(self):
        transport = SimulatedTransport(latency=0.01)
        with transport.subscribe() as sub:
            for _ in range(3):
                transport.send(settings())
                sub.get(timeout=1.0)
                for timer in transport._timers:
                    timer.join(timeout=1.0)

        assert len(transport._timers) == 1
        transport.close()

    def test_fault_injection(self):
        transport = SimulatedTransport(drop=[0], corrupt=[1], fail_send=[2])
        with transport.subscribe() as sub:
            transport.send(settings())
            with pytest.raises(TransportTimeoutError):
                sub.get(timeout=0.01)

            transport.send(settings())
            assert not sub.get(timeout=0.1).startswith(b"\xff\xd8")

            with pytest.raises(TransportError):
                transport.send(settings())
        assert len(transport.sent) == 3


class TestReplayTransport:

    def test_replays_directory_in_sorted_order(self, tmp_path, make_jpeg):
        (tmp_path / "b.jpg").write_bytes(make_jpeg(value=200))
        (tmp_path / "a.jpg").write_bytes(make_jpeg(value=10))
        (tmp_path / "notes.txt").write_text("ignored")

        transport = ReplayTransport(tmp_path)
        assert transport.remaining == 2

        with transport.subscribe() as sub:
            transport.send(settings())
            first = sub.get(timeout=0.1)
        assert first == (tmp_path / "a.jpg").read_bytes()

    def test_exhausted_replay_fails_send(self):
        transport = ReplayTransport([b"only"])
        transport.send(settings())
        with pytest.raises(TransportError):
            transport.send(settings())

    def test_missing_directory(self, tmp_path):
        with pytest.raises(TransportError):
            ReplayTransport(tmp_path / "missing")

    def test_empty_directory(self, tmp_path):
        with pytest.raises(TransportError):
            ReplayTransport(tmp_path)
