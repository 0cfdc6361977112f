"""Processing worker and the request/response bridge that talks to it.

The worker runs in its own task and only sees request envelopes arriving on a
queue; CPU-bound handlers execute in the default thread executor so the event
loop stays responsive. The bridge tags every request with a correlation id and
waits for the matching response under a fixed deadline.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Mapping

from notum.core.errors import RemoteError, RequestTimeoutError, TransportError
from notum.core.logging import get_logger
from notum.core.metrics import PENDING_WORKER_REQUESTS, WORKER_REQUESTS
from notum.messaging import processing
from notum.models.messages import WorkerResponse, parse_worker_request
from notum.utils.ids import new_id

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

WorkerHandler = Callable[[Any], Any]


def default_handlers() -> dict[str, WorkerHandler]:
    return {
        "ANALYZE_CONTENT": lambda data: processing.analyze_content(data.content),
        "EXTRACT_KEYWORDS": lambda data: processing.extract_keywords(data.text, data.max_keywords),
        "GENERATE_SUMMARY": lambda data: processing.generate_summary(data.text, data.max_length),
        "CALCULATE_READABILITY": lambda data: processing.calculate_readability(data.text),
        "PROCESS_MARKDOWN": lambda data: processing.render_tracks_markdown(data.tracks, data.resources),
    }


class ProcessingWorker:
    """Answers worker requests read from a queue, echoing each correlation id."""

    def __init__(self, handlers: Mapping[str, WorkerHandler] | None = None) -> None:
        self.handlers = dict(handlers) if handlers is not None else default_handlers()

    async def serve(self, requests: asyncio.Queue, responses: asyncio.Queue) -> None:
        """Consume requests until a ``None`` sentinel arrives."""
        in_flight: set[asyncio.Task] = set()
        try:
            while True:
                request = await requests.get()
                if request is None:
                    break
                task = asyncio.create_task(self._answer(request, responses))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
        finally:
            for task in in_flight:
                task.cancel()

    async def _answer(self, request: Any, responses: asyncio.Queue) -> None:
        handler = self.handlers.get(request.type)
        if handler is None:
            await responses.put(WorkerResponse(id=request.id, type=request.type, error=f"Unknown request type: {request.type}"))
            return
        loop = asyncio.get_running_loop()
        try:
            data = await loop.run_in_executor(None, handler, request.data)
        except Exception as exc:
            logger.warning("Worker request %s (%s) failed: %s", request.id, request.type, exc, exc_info=True)
            await responses.put(WorkerResponse(id=request.id, type=request.type, error=str(exc)))
            return
        await responses.put(WorkerResponse(id=request.id, type=request.type, data=data))


class WorkerBridge:
    """Caller side of the worker protocol."""

    def __init__(self, worker: ProcessingWorker | None = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.worker = worker or ProcessingWorker()
        self.timeout = timeout
        self._pending: dict[str, asyncio.Future] = {}
        self._requests: asyncio.Queue | None = None
        self._responses: asyncio.Queue | None = None
        self._worker_task: asyncio.Task | None = None
        self._reader_task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def start(self) -> None:
        if self.is_running:
            return
        self._requests = asyncio.Queue()
        self._responses = asyncio.Queue()
        self._worker_task = asyncio.create_task(self.worker.serve(self._requests, self._responses))
        self._reader_task = asyncio.create_task(self._read_responses(self._responses))
        logger.debug("Processing worker started")

    async def stop(self) -> None:
        if not self.is_running:
            return
        if self._requests is not None:
            await self._requests.put(None)
        for task in (self._worker_task, self._reader_task):
            task.cancel()
        await asyncio.gather(self._worker_task, self._reader_task, return_exceptions=True)
        for request_id, future in list(self._pending.items()):
            if not future.done():
                future.set_exception(TransportError(f"Processing worker stopped before answering {request_id}"))
        self._pending.clear()
        PENDING_WORKER_REQUESTS.set(0)
        self._worker_task = self._reader_task = None
        self._requests = self._responses = None
        logger.debug("Processing worker stopped")

    async def send_message(self, type: str, data: Mapping[str, Any] | None = None) -> Any:
        """Send one request and wait for its response.

        Raises ``RequestTimeoutError`` when no response arrives within the
        deadline and ``RemoteError`` when the worker reports a failure.
        """
        if not self.is_running or self._requests is None:
            raise TransportError("Processing worker is not running")
        request_id = new_id("req")
        request = parse_worker_request({"id": request_id, "type": type, "data": dict(data or {})})
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        PENDING_WORKER_REQUESTS.set(len(self._pending))
        await self._requests.put(request)
        try:
            response: WorkerResponse = await asyncio.wait_for(future, self.timeout)
        except asyncio.TimeoutError:
            WORKER_REQUESTS.labels(type, "timeout").inc()
            raise RequestTimeoutError(f"{type} request {request_id} timed out after {self.timeout}s") from None
        finally:
            self._pending.pop(request_id, None)
            PENDING_WORKER_REQUESTS.set(len(self._pending))
        if response.error is not None:
            WORKER_REQUESTS.labels(type, "error").inc()
            raise RemoteError(type, response.error)
        WORKER_REQUESTS.labels(type, "ok").inc()
        return response.data

    async def _read_responses(self, responses: asyncio.Queue) -> None:
        while True:
            response: WorkerResponse = await responses.get()
            future = self._pending.get(response.id)
            if future is None or future.done():
                logger.debug("Discarding response for unknown request %s", response.id)
                continue
            future.set_result(response)


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "ProcessingWorker", "WorkerBridge", "default_handlers"]
