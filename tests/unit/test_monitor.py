"""
Unit tests for the monitoring loop: start transition, cycles and the
non-overlapping schedule.
"""
import asyncio

import pytest

from conftest import FakeCamera, FakeEngine, FakeSound, Scheduler, at_distance, det, unit
from presence_alarm.errors import CameraError, EngineError
from presence_alarm.guard.alarm import ALARM_MESSAGE, AUDIO_BLOCKED_HINT, AUDIO_OK_SUFFIX, AlarmGate
from presence_alarm.guard.enrollment import Enrollment
from presence_alarm.guard.events import CLICK, KEYDOWN, InputDispatcher, InputEvent
from presence_alarm.guard.monitor import MONITORING_STARTED, NEED_ENROLLMENT_NOTICE, MonitoringLoop
from presence_alarm.guard.presence import CycleVerdict, MonitoringSession, PresenceClassifier
from presence_alarm.recognize.types import MaskState


class Harness:
    def __init__(self, store, display, results=None, camera=None, enrolled=True):
        if enrolled:
            store.append(MaskState.NO_MASK, unit(0))
        self.display = display
        self.sound = FakeSound()
        self.session = MonitoringSession()
        self.engine = FakeEngine(results)
        self.camera = camera or FakeCamera()
        self.dispatcher = InputDispatcher()
        self.enrollment = Enrollment(store, self.engine, display)
        self.enrollment.reload()
        self.scheduler = Scheduler()
        self.gate = AlarmGate(self.session, display, self.sound, call_later=self.scheduler)
        self.loop = MonitoringLoop(
            camera=self.camera,
            engine=self.engine,
            enrollment=self.enrollment,
            session=self.session,
            classifier=PresenceClassifier(),
            gate=self.gate,
            display=display,
            dispatcher=self.dispatcher,
            cycle_delay=0.001,
        )


class TestStart:
    def test_refused_without_enrollment(self, store, display):
        h = Harness(store, display, enrolled=False)
        assert h.loop.start() is False
        assert h.session.active is False
        assert display.notices == [NEED_ENROLLMENT_NOTICE]
        assert h.sound.calls == []
        assert h.dispatcher.listeners(CLICK) == []

    def test_start_unlocks_audio_and_attaches_gate(self, store, display):
        h = Harness(store, display)
        assert h.loop.start() is True
        assert h.session.active is True
        assert h.sound.calls == ["rewind", "play", "pause"]
        assert display.status == MONITORING_STARTED + AUDIO_OK_SUFFIX
        assert display.rendered == [MONITORING_STARTED + AUDIO_OK_SUFFIX]
        assert h.dispatcher.listeners(KEYDOWN) == [h.gate.on_input_event]

    def test_audio_failure_does_not_block_start(self, store, display):
        h = Harness(store, display)
        h.gate.sound = FakeSound(fail_play=True)
        assert h.loop.start() is True
        assert h.session.active is True

    def test_second_start_is_noop(self, store, display):
        h = Harness(store, display)
        h.loop.start()
        h.loop.start()
        assert len(h.dispatcher.listeners(CLICK)) == 1
        assert h.sound.calls.count("play") == 1


class TestCycle:
    @pytest.mark.asyncio
    async def test_owner_cycle(self, store, display):
        h = Harness(store, display, results=[[det(at_distance(unit(0), 0.3))]])
        h.loop.start()
        result = await h.loop.cycle()
        assert result.verdict == CycleVerdict.OWNER_PRESENT
        assert h.session.owner_absent is False
        assert display.status == "Owner confirmed..."
        assert display.renders == 2
        assert display.pumps == 1

    @pytest.mark.asyncio
    async def test_engine_error_counts_as_no_face(self, store, display):
        h = Harness(store, display, results=[EngineError("boom", "Face detection failed.")])
        h.loop.start()
        result = await h.loop.cycle()
        assert h.session.consecutive_no_face_frames == 1
        assert h.session.owner_absent is True
        assert result.verdict == CycleVerdict.OWNER_ABSENT
        assert display.status == "Owner absent [Face detection failed.]"

    @pytest.mark.asyncio
    async def test_camera_error_counts_as_no_face(self, store, display):
        camera = FakeCamera(error=CameraError("gone", "Camera error: failed to read a frame."))
        h = Harness(store, display, camera=camera)
        h.loop.start()
        for _ in range(10):
            result = await h.loop.cycle()
        assert result.verdict == CycleVerdict.NO_FACE_TIMEOUT
        assert h.session.owner_absent is True
        assert h.engine.calls == 0

    @pytest.mark.asyncio
    async def test_input_during_pump_fires_alarm_when_absent(self, store, display):
        h = Harness(store, display, results=[[]])
        h.loop.start()
        display.on_pump = lambda: h.dispatcher.dispatch(InputEvent(KEYDOWN, key=32))
        await h.loop.cycle()
        assert h.gate.fired_count == 1

    @pytest.mark.asyncio
    async def test_alarm_status_reaches_the_screen(self, store, display):
        h = Harness(store, display, results=[[], [], []])
        h.loop.start()
        display.on_pump = lambda: h.dispatcher.dispatch(InputEvent(KEYDOWN, key=32))
        for _ in range(3):
            await h.loop.cycle()
        assert h.gate.fired_count == 3
        assert display.rendered[1] == "Owner absent"
        assert display.rendered[2:] == [ALARM_MESSAGE, ALARM_MESSAGE]
        assert display.status_alarm is True

    @pytest.mark.asyncio
    async def test_verdict_status_resumes_after_overlay(self, store, display):
        h = Harness(store, display, results=[[], [det(unit(0))]])
        h.loop.start()
        display.on_pump = lambda: h.dispatcher.dispatch(InputEvent(CLICK))
        await h.loop.cycle()
        display.on_pump = None
        h.scheduler.run_all()
        await h.loop.cycle()
        assert display.rendered[-1] == "Owner confirmed..."
        assert display.status_alarm is False

    @pytest.mark.asyncio
    async def test_blocked_audio_stays_visible(self, store, display):
        h = Harness(store, display, results=[[det(unit(0))], []])
        h.gate.sound = FakeSound(fail_play=True)
        h.loop.start()
        await h.loop.cycle()
        await h.loop.cycle()
        assert len(display.rendered) == 3
        assert all(s.endswith(AUDIO_BLOCKED_HINT) for s in display.rendered)
        assert display.rendered[1] == "Owner confirmed..." + AUDIO_BLOCKED_HINT

    @pytest.mark.asyncio
    async def test_audio_hint_cleared_once_playback_works(self, store, display):
        h = Harness(store, display, results=[[], [det(unit(0))]])
        h.gate.sound = FakeSound(fail_play=True)
        h.loop.start()
        h.gate.sound.fail_play = False
        display.on_pump = lambda: h.dispatcher.dispatch(InputEvent(CLICK))
        await h.loop.cycle()
        display.on_pump = None
        h.scheduler.run_all()
        await h.loop.cycle()
        assert h.gate.audio_ok is True
        assert display.rendered[-1] == "Owner confirmed..."


class TestRun:
    @pytest.mark.asyncio
    async def test_run_does_nothing_before_start(self, store, display):
        h = Harness(store, display)
        await h.loop.run()
        assert h.loop.cycles == 0

    @pytest.mark.asyncio
    async def test_run_repeats_cycles_while_active(self, store, display):
        h = Harness(store, display)
        h.loop.start()

        def stop_after_three():
            if display.pumps >= 3:
                h.session.active = False

        display.on_pump = stop_after_three
        await asyncio.wait_for(h.loop.run(), timeout=2.0)
        assert h.loop.cycles == 3
        assert h.engine.calls == 3

    @pytest.mark.asyncio
    async def test_input_mid_cycle_sees_previous_verdict(self, store, display):
        h = Harness(store, display)
        h.loop.start()
        h.session.owner_absent = True

        gate_open = asyncio.Event()
        entered = asyncio.Event()

        async def slow_detect(frame):
            entered.set()
            await gate_open.wait()
            return [det(unit(0))]

        h.engine.detect = slow_detect
        task = asyncio.ensure_future(h.loop.cycle())
        await entered.wait()

        # engine still pending: the previous "absent" verdict applies
        assert h.gate.on_input_event(InputEvent(CLICK)) is True

        gate_open.set()
        await task
        assert h.session.owner_absent is False
        assert h.gate.on_input_event(InputEvent(CLICK)) is False
