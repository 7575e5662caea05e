"""
Command channel between the voice runtime and the orchestrator.

The voice runtime publishes; the orchestrator consumes. Neither side
holds a reference to the other, so their lifecycles can start and stop
in any order.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from voice.signals import VoiceSignal


class ChannelClosed(Exception):
    """Raised by receive() once the channel is closed and drained."""


class CommandChannel:
    """
    Unbounded FIFO of voice signals.

    publish() never blocks and is safe to call from reducer command
    execution. Signals published after close() are dropped.
    """

    _CLOSE = object()

    def __init__(self) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, signal: VoiceSignal) -> bool:
        """Enqueue a signal. Returns False if the channel is closed."""
        if self._closed:
            return False
        self._queue.put_nowait(signal)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(self._CLOSE)

    async def receive(self) -> VoiceSignal:
        item = await self._queue.get()
        if item is self._CLOSE:
            # Keep the sentinel so other consumers also observe closure
            self._queue.put_nowait(self._CLOSE)
            raise ChannelClosed()
        assert isinstance(item, VoiceSignal)
        return item

    async def __aiter__(self) -> AsyncIterator[VoiceSignal]:
        while True:
            try:
                yield await self.receive()
            except ChannelClosed:
                return
