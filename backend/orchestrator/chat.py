"""
Chat/debug orchestrator.

Responsibilities:
- Validate user input
- Build mode-specific prompts
- Call the completion gateway (one call at a time)
- Parse responses into blocks and persist sessions
- Record chat history
- Queue (or push) user-visible notices
- Consume voice signals from the command channel and drive voice feedback

Non-responsibilities:
- No transport (HTTP / WebSocket)
- No retries: a failed request is resubmitted by the user
"""

from __future__ import annotations

from collections import deque
from typing import Any, Awaitable, Callable

from adapters.llm.base import CompletionGateway, ImagePayload
from adapters.llm.prompts import PROMPT_VERSION, build_prompt
from constants import (
    AUTH_FAILURE_NOTICE,
    BUSY_NOTICE,
    DEFAULT_GENERATE_FRAMEWORK,
    EMPTY_INPUT_NOTICE,
    FAILURE_NOTICE,
)
from errors import GatewayError, InputValidationError, SubmissionInProgressError
from observability.logger import log_event, now_ms
from orchestrator.channel import CommandChannel
from parsing.markdown_blocks import parse
from store.history import HistoryRecord, HistoryRepository, safe_add
from store.session_store import Session, SessionMode, SessionStore
from voice.signals import VoiceSignal, VoiceSignalType


Speaker = Callable[[str], Awaitable[None]]
AnswerHook = Callable[[str, str], None]


class ChatOrchestrator:
    """
    One orchestrator per client view.

    Concurrency:
    - At most one gateway call is in flight. A second submission while
      one is pending is rejected with SubmissionInProgressError.
    - After close(), a late gateway response is ignored: nothing is
      persisted and handle() returns None.
    """

    def __init__(
        self,
        *,
        gateway: CompletionGateway,
        store: SessionStore,
        history: HistoryRepository | None = None,
        channel: CommandChannel | None = None,
        speak: Speaker | None = None,
        notify: Callable[[dict[str, Any]], None] | None = None,
        framework: str = DEFAULT_GENERATE_FRAMEWORK,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._history = history or HistoryRepository()
        self._channel = channel or CommandChannel()
        self._speak = speak
        self._notify = notify
        self._framework = framework
        self._in_flight = False
        self._closed = False
        self._notices: deque[dict[str, Any]] = deque()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def channel(self) -> CommandChannel:
        """Channel voice components publish signals to."""
        return self._channel

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def history(self) -> HistoryRepository:
        return self._history

    @property
    def busy(self) -> bool:
        return self._in_flight

    def attach_speaker(self, speak: Speaker | None) -> None:
        """Attach (or detach) the voice feedback hook."""
        self._speak = speak

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def handle(
        self,
        input_text: str,
        mode: SessionMode,
        image: ImagePayload | None = None,
    ) -> Session | None:
        """
        Run one debug / generate / explain request.

        Steps:
        1. Reject empty input (image-only generation is allowed)
        2. Build the mode prompt, input wrapped in a fenced block
        3. One gateway call
        4. Parse the response into blocks
        5. Create, persist and return the session

        Raises:
            InputValidationError: empty input, no gateway call made
            SubmissionInProgressError: a request is already pending
            GatewayError: remote call failed; nothing persisted
        """
        mode = SessionMode(mode)
        has_image = image is not None and mode is SessionMode.GENERATE

        if not input_text.strip() and not has_image:
            self._notice("error", EMPTY_INPUT_NOTICE)
            raise InputValidationError("empty input")

        prompt = build_prompt(
            mode, input_text, has_image=has_image, framework=self._framework
        )

        text = await self._complete(
            prompt,
            image if has_image else None,
            details={"mode": mode.value, "has_image": has_image},
        )
        if text is None:
            return None

        blocks = parse(text)
        session = Session(
            id=self._store.next_id(),
            title=self._store.next_title(mode),
            input_text=input_text,
            mode=mode,
            blocks=blocks,
        )
        self._store.save(session)

        self._notice("success", f"{mode.label} complete!")
        log_event({
            "ts_ms": now_ms(),
            "event_type": "SESSION_CREATED",
            "session_id": session.id,
            "mode": mode.value,
            "blocks": len(blocks),
            "prompt_version": PROMPT_VERSION,
        })
        return session

    async def ask(
        self,
        question: str,
        username: str,
        *,
        from_voice: bool = False,
    ) -> str | None:
        """
        Answer a chat question and record it in the user's history.

        The question is sent to the gateway as-is. Voice questions get
        their answer read aloud through the speaker hook.
        """
        if not question.strip():
            raise InputValidationError("empty question")

        text = await self._complete(
            question, None, details={"chat": True, "from_voice": from_voice}
        )
        if text is None:
            return None

        safe_add(
            self._history,
            HistoryRecord(username=username, question=question, response=text),
        )

        if from_voice and self._speak is not None:
            await self._speak(text)

        return text

    async def run_channel(
        self,
        username: str,
        *,
        on_answer: AnswerHook | None = None,
    ) -> None:
        """
        Consume voice signals until the channel closes.

        QUESTION signals are answered via ask(); failures were already
        surfaced as notices and do not stop the loop.
        """
        async for signal in self._channel:
            await self._on_voice_signal(signal, username, on_answer)

    def close(self) -> None:
        """Detach from the view. Late responses become no-ops."""
        self._closed = True
        self._channel.close()

    def drain_notices(self) -> tuple[dict[str, Any], ...]:
        """Atomically drain pending user-visible notices (FIFO)."""
        if not self._notices:
            return ()
        out = tuple(self._notices)
        self._notices.clear()
        return out

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _complete(
        self,
        prompt: str,
        image: ImagePayload | None,
        *,
        details: dict[str, Any],
    ) -> str | None:
        """Single gated gateway call. Returns None if closed meanwhile."""
        if self._in_flight:
            self._notice("warning", BUSY_NOTICE)
            raise SubmissionInProgressError("a request is already in progress")

        self._in_flight = True
        try:
            text = await self._gateway.generate(prompt, image)
        except GatewayError as exc:
            self._notice("error", AUTH_FAILURE_NOTICE if exc.auth_failure else FAILURE_NOTICE)
            log_event({
                "ts_ms": now_ms(),
                "event_type": "GATEWAY_FAILED",
                "reason": exc.reason,
                "auth_failure": exc.auth_failure,
                "details": details,
            })
            raise
        finally:
            self._in_flight = False

        if self._closed:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "LATE_RESPONSE_IGNORED",
                "details": details,
            })
            return None
        return text

    async def _on_voice_signal(
        self,
        signal: VoiceSignal,
        username: str,
        on_answer: AnswerHook | None,
    ) -> None:
        if signal.signal is VoiceSignalType.WAKE:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "VOICE_WAKE_RECEIVED",
                "username": username,
            })
            return

        try:
            answer = await self.ask(signal.text, username, from_voice=True)
        except (InputValidationError, SubmissionInProgressError, GatewayError) as exc:
            log_event({
                "ts_ms": now_ms(),
                "event_type": "VOICE_QUESTION_FAILED",
                "username": username,
                "exception": type(exc).__name__,
                "message": str(exc),
            })
            return

        if answer is not None and on_answer is not None:
            on_answer(signal.text, answer)

    def _notice(self, level: str, message: str) -> None:
        if self._closed:
            return
        notice = {"type": "NOTICE", "level": level, "message": message}
        # Push transports get notices immediately; others drain them
        if self._notify is not None:
            self._notify(notice)
        else:
            self._notices.append(notice)
