"""In-process message bus for calls that cross execution contexts.

Envelopes are ``{"type": ..., "data": ...}`` mappings. Each is validated
against the closed set of message kinds before reaching its listener, and the
sender always receives either the listener's success payload or an
``{"error": message}`` payload.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping

from notum.core.errors import InvalidInputError, RequestTimeoutError, TransportError
from notum.core.logging import get_logger
from notum.core.metrics import OPERATION_COUNT
from notum.models.messages import parse_message

logger = get_logger(__name__)

Listener = Callable[[Any], Awaitable[dict[str, Any]]]


class MessageBus:
    def __init__(self, timeout: float | None = None) -> None:
        self.timeout = timeout
        self._listeners: dict[str, Listener] = {}
        self._inbox: asyncio.Queue | None = None
        self._pump: asyncio.Task | None = None
        self._dispatching: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._pump is not None

    def add_listener(self, message_type: str, listener: Listener) -> None:
        self._listeners[message_type] = listener

    def remove_listener(self, message_type: str) -> None:
        self._listeners.pop(message_type, None)

    async def start(self) -> None:
        if self.is_running:
            return
        self._inbox = asyncio.Queue()
        self._pump = asyncio.create_task(self._run(self._inbox))

    async def stop(self) -> None:
        if self._pump is None:
            return
        self._pump.cancel()
        await asyncio.gather(self._pump, return_exceptions=True)
        for task in list(self._dispatching):
            task.cancel()
        await asyncio.gather(*self._dispatching, return_exceptions=True)
        inbox = self._inbox
        while inbox is not None and not inbox.empty():
            _, future = inbox.get_nowait()
            if not future.done():
                future.set_exception(TransportError("Message bus stopped"))
        self._pump = None
        self._inbox = None

    async def send(self, message_type: str, data: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Deliver one message and wait for its response payload."""
        if self._inbox is None:
            raise TransportError("Message bus is not running")
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        envelope = {"type": message_type, "data": dict(data) if data is not None else {}}
        await self._inbox.put((envelope, future))
        if self.timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            raise RequestTimeoutError(f"{message_type} message timed out after {self.timeout}s") from None

    async def dispatch(self, envelope: Any) -> dict[str, Any]:
        """Validate an envelope and run its listener, folding failures into ``{"error": ...}``."""
        try:
            message = parse_message(envelope)
        except InvalidInputError as exc:
            return {"error": str(exc)}
        listener = self._listeners.get(message.type)
        if listener is None:
            return {"error": f"No listener for message type {message.type}"}
        try:
            result = await listener(message.data)
        except Exception as exc:
            logger.warning("Handling %s failed: %s", message.type, exc, exc_info=True)
            return {"error": str(exc)}
        OPERATION_COUNT.labels("bus", message.type).inc()
        return result

    async def _run(self, inbox: asyncio.Queue) -> None:
        while True:
            envelope, future = await inbox.get()
            if not self._listeners:
                future.set_exception(TransportError("No listener is registered on the message bus"))
                continue
            task = asyncio.create_task(self._deliver(envelope, future))
            self._dispatching.add(task)
            task.add_done_callback(self._dispatching.discard)

    async def _deliver(self, envelope: Mapping[str, Any], future: asyncio.Future) -> None:
        try:
            result = await self.dispatch(envelope)
        except asyncio.CancelledError:
            if not future.done():
                future.set_exception(TransportError("Message bus stopped"))
            raise
        if not future.done():
            future.set_result(result)


__all__ = ["Listener", "MessageBus"]
