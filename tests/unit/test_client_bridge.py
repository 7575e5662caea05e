# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from typing import Any

import pytest

import adapters.speech.client_bridge as bridge_mod
from adapters.speech.client_bridge import ClientRecognizer, ClientSynthesizer, ControlOutbox
from errors import UnsupportedPlatformError


def test_outbox_drains_in_order_once():
    outbox = ControlOutbox()
    outbox.enqueue({"type": "A"})
    outbox.enqueue({"type": "B"})

    assert [m["type"] for m in outbox.drain()] == ["A", "B"]
    assert outbox.drain() == ()


def test_outbox_wait_pending_wakes_on_enqueue():
    outbox = ControlOutbox()

    async def scenario() -> tuple[dict[str, Any], ...]:
        waiter = asyncio.create_task(outbox.wait_pending())
        await asyncio.sleep(0)
        assert not waiter.done()
        outbox.enqueue({"type": "PING"})
        await asyncio.wait_for(waiter, timeout=1)
        return outbox.drain()

    assert asyncio.run(scenario()) == ({"type": "PING"},)


def test_recognizer_commands_become_control_messages():
    outbox = ControlOutbox()
    recognizer = ClientRecognizer(outbox)

    asyncio.run(recognizer.start())
    asyncio.run(recognizer.stop())

    messages = outbox.drain()
    assert messages[0]["type"] == "START_RECOGNITION"
    assert messages[0]["continuous"] is True
    assert messages[1] == {"type": "STOP_RECOGNITION"}


def test_unsupported_recognizer_refuses_to_start():
    outbox = ControlOutbox()
    recognizer = ClientRecognizer(outbox)
    recognizer.mark_unsupported()

    with pytest.raises(UnsupportedPlatformError):
        asyncio.run(recognizer.start())

    assert recognizer.supported is False
    assert outbox.drain() == ()


def test_synthesizer_speak_carries_utterance_and_voice_settings():
    outbox = ControlOutbox()
    synthesizer = ClientSynthesizer(outbox)

    asyncio.run(synthesizer.speak(utterance_id=4, text="Got it."))
    asyncio.run(synthesizer.cancel())

    speak, cancel = outbox.drain()
    assert speak["type"] == "SPEAK"
    assert speak["utterance_id"] == 4
    assert speak["text"] == "Got it."
    assert speak["lang"] == bridge_mod.SPEECH_LANGUAGE
    assert isinstance(speak["voice_hints"], list)
    assert cancel == {"type": "CANCEL_SPEECH"}


def test_wait_until_ready_returns_once_voices_reported():
    synthesizer = ClientSynthesizer(ControlOutbox())

    async def scenario() -> None:
        waiter = asyncio.create_task(synthesizer.wait_until_ready())
        await asyncio.sleep(0.05)
        assert not waiter.done()
        synthesizer.mark_voices_ready()
        await asyncio.wait_for(waiter, timeout=1)

    asyncio.run(scenario())


def test_wait_until_ready_gives_up_after_timeout(monkeypatch: pytest.MonkeyPatch):
    emitted: list[dict[str, Any]] = []
    monkeypatch.setattr(bridge_mod, "VOICES_WAIT_TIMEOUT_MS", 200)
    monkeypatch.setattr(bridge_mod, "log_event", emitted.append)
    synthesizer = ClientSynthesizer(ControlOutbox())

    asyncio.run(asyncio.wait_for(synthesizer.wait_until_ready(), timeout=2))

    assert emitted[0]["event_type"] == "VOICES_WAIT_TIMED_OUT"
