# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from typing import Any

import pytest

import voice.reducer as reducer_mod
from constants import UNSUPPORTED_TEXT, WAKE_ACK_TEXT
from adapters.speech.base import Recognizer, Synthesizer
from errors import TransientRecognitionError, UnsupportedPlatformError
from orchestrator.channel import CommandChannel
from voice.enums.mode import VoiceMode
from voice.events import RecognitionEnded, TranscriptReceived, VoiceEventType
from voice.runtime import VoiceRuntime
from voice.signals import VoiceSignalType


class FakeRecognizer(Recognizer):
    def __init__(self, *, supported: bool = True, fail_start: bool = False) -> None:
        self._supported = supported
        self.fail_start = fail_start
        self.starts = 0
        self.stops = 0

    @property
    def supported(self) -> bool:
        return self._supported

    async def start(self) -> None:
        self.starts += 1
        if self.fail_start:
            raise RuntimeError("microphone busy")

    async def stop(self) -> None:
        self.stops += 1


class FakeSynthesizer(Synthesizer):
    def __init__(self) -> None:
        self.ready = asyncio.Event()
        self.ready.set()
        self.spoken: list[tuple[int, str]] = []
        self.cancels = 0

    async def wait_until_ready(self) -> None:
        await self.ready.wait()

    async def speak(self, *, utterance_id: int, text: str) -> None:
        self.spoken.append((utterance_id, text))

    async def cancel(self) -> None:
        self.cancels += 1


def transcript(text: str) -> TranscriptReceived:
    return TranscriptReceived(ts_ms=0, event_type=VoiceEventType.TRANSCRIPT, text=text)


def test_unsupported_platform_reported_once_and_never_started():
    notices: list[dict[str, Any]] = []
    recognizer = FakeRecognizer(supported=False)

    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(
            recognizer=recognizer,
            synthesizer=FakeSynthesizer(),
            notify=notices.append,
        )
        await runtime.start()
        await runtime.start()
        return runtime

    runtime = asyncio.run(scenario())

    assert recognizer.starts == 0
    assert runtime.state.mode is VoiceMode.DISABLED
    errors = [n for n in notices if n["type"] == "NOTICE"]
    assert errors == [{"type": "NOTICE", "level": "error", "message": UNSUPPORTED_TEXT}]


def test_missing_synthesizer_counts_as_unsupported():
    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(recognizer=FakeRecognizer(), synthesizer=None)
        await runtime.start()
        return runtime

    runtime = asyncio.run(scenario())

    assert runtime.state.supported is False


def test_start_begins_recognition_and_reports_state():
    notices: list[dict[str, Any]] = []
    recognizer = FakeRecognizer()

    async def scenario() -> None:
        runtime = VoiceRuntime(
            recognizer=recognizer,
            synthesizer=FakeSynthesizer(),
            notify=notices.append,
        )
        await runtime.start()
        await runtime.stop()

    asyncio.run(scenario())

    assert recognizer.starts == 1
    assert {"type": "STATE", "mode": "listening", "armed": False} in notices


def test_wake_phrase_publishes_signal_and_speaks_ack():
    channel = CommandChannel()
    synthesizer = FakeSynthesizer()

    async def scenario() -> Any:
        runtime = VoiceRuntime(
            recognizer=FakeRecognizer(),
            synthesizer=synthesizer,
            channel=channel,
        )
        await runtime.start()
        await runtime.handle_event(transcript("Jarvis"))
        signal = await asyncio.wait_for(channel.receive(), timeout=1)
        await asyncio.sleep(0.01)
        await runtime.stop()
        return signal

    signal = asyncio.run(scenario())

    assert signal.signal is VoiceSignalType.WAKE
    assert synthesizer.spoken == [(1, WAKE_ACK_TEXT)]


def test_superseded_speech_is_dropped_while_waiting_for_voices():
    synthesizer = FakeSynthesizer()
    synthesizer.ready.clear()

    async def scenario() -> None:
        runtime = VoiceRuntime(recognizer=FakeRecognizer(), synthesizer=synthesizer)
        await runtime.start()
        await runtime.say("first")
        await runtime.say("second")
        synthesizer.ready.set()
        await asyncio.sleep(0.01)
        await runtime.stop()

    asyncio.run(scenario())

    assert synthesizer.spoken == [(2, "second")]


def test_stop_keyword_retires_pending_acknowledgement():
    synthesizer = FakeSynthesizer()
    synthesizer.ready.clear()

    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(recognizer=FakeRecognizer(), synthesizer=synthesizer)
        await runtime.start()
        await runtime.handle_event(transcript("jarvis"))
        await runtime.handle_event(transcript("stop"))
        synthesizer.ready.set()
        await asyncio.sleep(0.01)
        await runtime.stop()
        return runtime

    runtime = asyncio.run(scenario())

    assert synthesizer.spoken == []
    assert runtime.state.armed is False


def test_recognizer_start_failure_halts_recognition():
    recognizer = FakeRecognizer(fail_start=True)

    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(recognizer=recognizer, synthesizer=FakeSynthesizer())
        await runtime.start()
        return runtime

    runtime = asyncio.run(scenario())

    assert recognizer.starts == 1
    assert runtime.state.halted is True
    assert runtime.state.last_error == "start-failed"


def test_recognition_end_restarts_after_backoff():
    recognizer = FakeRecognizer()

    async def scenario() -> None:
        runtime = VoiceRuntime(recognizer=recognizer, synthesizer=FakeSynthesizer())
        await runtime.start()
        await runtime.handle_event(
            RecognitionEnded(ts_ms=0, event_type=VoiceEventType.RECOGNITION_ENDED)
        )
        assert recognizer.starts == 1
        await asyncio.sleep(0.9)
        await runtime.stop()

    asyncio.run(scenario())

    assert recognizer.starts == 2


def test_stop_cancels_pending_restart():
    recognizer = FakeRecognizer()

    async def scenario() -> None:
        runtime = VoiceRuntime(recognizer=recognizer, synthesizer=FakeSynthesizer())
        await runtime.start()
        await runtime.handle_event(
            RecognitionEnded(ts_ms=0, event_type=VoiceEventType.RECOGNITION_ENDED)
        )
        await runtime.stop()
        await asyncio.sleep(0.9)

    asyncio.run(scenario())

    assert recognizer.starts == 1


class RaisingRecognizer(FakeRecognizer):
    def __init__(self, exc: Exception) -> None:
        super().__init__()
        self.exc = exc

    async def start(self) -> None:
        self.starts += 1
        raise self.exc


def test_recognizer_reporting_unsupported_disables_voice():
    notices: list[dict[str, Any]] = []

    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(
            recognizer=RaisingRecognizer(UnsupportedPlatformError("no api")),
            synthesizer=FakeSynthesizer(),
            notify=notices.append,
        )
        await runtime.start()
        return runtime

    runtime = asyncio.run(scenario())

    assert runtime.state.supported is False
    assert runtime.state.mode is VoiceMode.DISABLED
    assert [n["message"] for n in notices if n["type"] == "NOTICE"] == [UNSUPPORTED_TEXT]


def test_transient_start_failure_schedules_retry():
    recognizer = RaisingRecognizer(TransientRecognitionError("network"))

    async def scenario() -> VoiceRuntime:
        runtime = VoiceRuntime(recognizer=recognizer, synthesizer=FakeSynthesizer())
        await runtime.start()
        state = runtime.state
        await runtime.stop()
        return state

    state = asyncio.run(scenario())

    assert state.halted is False
    assert state.restart_attempt.attempt == 1


def test_question_disarms_after_grace_timer(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(reducer_mod, "ARM_GRACE_DELAY_MS", 50)
    channel = CommandChannel()

    async def scenario() -> tuple[VoiceMode, VoiceMode, Any]:
        runtime = VoiceRuntime(
            recognizer=FakeRecognizer(),
            synthesizer=FakeSynthesizer(),
            channel=channel,
        )
        await runtime.start()
        await runtime.handle_event(transcript("jarvis"))
        await runtime.handle_event(transcript("what is a generator"))
        right_after = runtime.state.mode
        await asyncio.sleep(0.2)
        later = runtime.state.mode
        await runtime.stop()
        await channel.receive()
        return right_after, later, await channel.receive()

    right_after, later, question = asyncio.run(scenario())

    assert right_after is VoiceMode.ACTIVE
    assert later is VoiceMode.LISTENING
    assert question.signal is VoiceSignalType.QUESTION
    assert question.text == "what is a generator"
