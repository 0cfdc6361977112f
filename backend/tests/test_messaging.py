"""Tests for the processing worker, the worker bridge and the message bus."""

from __future__ import annotations

import asyncio
import time

import pytest
import pytest_asyncio

from notum.container import Notum
from notum.core.config import Settings
from notum.core.errors import InvalidInputError, RemoteError, RequestTimeoutError, TransportError
from notum.messaging import processing
from notum.messaging.bus import MessageBus
from notum.messaging.worker import ProcessingWorker, WorkerBridge


def test_analyze_content() -> None:
    result = processing.analyze_content("Hello world. This is fine.\n\nSecond paragraph here.")
    assert result["wordCount"] == 8
    assert result["sentenceCount"] == 3
    assert result["paragraphCount"] == 2
    assert result["readingTimeMinutes"] == 1
    assert result["difficulty"] == "medium"
    assert processing.analyze_content("I am ok. So is he.")["difficulty"] == "easy"


def test_extract_keywords_skips_stop_words_and_short_words() -> None:
    keywords = processing.extract_keywords("Python python PYTHON snake, snake! code and the with", max_keywords=2)
    assert [k["word"] for k in keywords] == ["python", "snake"]
    assert keywords[0]["count"] == 3
    assert keywords[0]["relevance"] == pytest.approx(0.5)
    assert processing.extract_keywords("the and with") == []


def test_generate_summary_short_text_is_returned_whole() -> None:
    assert processing.generate_summary("Just one sentence here.") == "Just one sentence here."
    long_text = "A fairly short sentence here. " * 2 + "Another different sentence now. " * 3
    summary = processing.generate_summary(long_text, max_length=40)
    assert len(summary) <= 40
    assert summary.endswith("...")


def test_calculate_readability() -> None:
    result = processing.calculate_readability("The cat sat on the mat.")
    assert result["fleschScore"] == 116
    assert result["level"] == "Very Easy"
    assert processing.calculate_readability("")["fleschScore"] == 0


def test_render_tracks_markdown() -> None:
    files = processing.render_tracks_markdown(
        [
            {
                "name": "Go basics",
                "description": "d",
                "objective": "o",
                "prerequisites": ["CLI"],
                "resources": ["r1", "gone"],
                "milestones": [
                    {"name": "Second", "order": 1, "completed": False, "description": ""},
                    {"name": "First", "order": 0, "completed": True, "description": "done"},
                ],
            }
        ],
        {"r1": {"title": "Tour", "url": "https://go.dev/tour"}},
    )
    content = files["Go_basics.md"]
    assert "- CLI" in content
    assert content.index("### 1. First [x]") < content.index("### 2. Second [ ]")
    assert "1. [Tour](https://go.dev/tour)" in content


async def test_worker_bridge_round_trip() -> None:
    bridge = WorkerBridge()
    await bridge.start()
    try:
        result = await bridge.send_message("CALCULATE_READABILITY", {"text": "The cat sat on the mat."})
        keywords = await bridge.send_message("EXTRACT_KEYWORDS", {"text": "graph graph theory", "maxKeywords": 1})
    finally:
        await bridge.stop()
    assert result["level"] == "Very Easy"
    assert keywords == [{"word": "graph", "count": 2, "relevance": pytest.approx(2 / 3)}]


async def test_worker_bridge_rejects_unknown_requests() -> None:
    bridge = WorkerBridge()
    await bridge.start()
    try:
        with pytest.raises(InvalidInputError):
            await bridge.send_message("TRANSLATE", {"text": "hola"})
    finally:
        await bridge.stop()


async def test_worker_bridge_times_out_and_discards_request() -> None:
    worker = ProcessingWorker({"ANALYZE_CONTENT": lambda data: time.sleep(0.3)})
    bridge = WorkerBridge(worker, timeout=0.05)
    await bridge.start()
    try:
        with pytest.raises(RequestTimeoutError):
            await bridge.send_message("ANALYZE_CONTENT", {"content": "slow"})
        assert bridge.pending_count == 0
    finally:
        await bridge.stop()


async def test_worker_errors_surface_as_remote_errors() -> None:
    def explode(data):
        raise ValueError("boom")

    bridge = WorkerBridge(ProcessingWorker({"ANALYZE_CONTENT": explode}))
    await bridge.start()
    try:
        with pytest.raises(RemoteError, match="boom"):
            await bridge.send_message("ANALYZE_CONTENT", {"content": "x"})
    finally:
        await bridge.stop()


async def test_worker_bridge_requires_start() -> None:
    with pytest.raises(TransportError):
        await WorkerBridge().send_message("ANALYZE_CONTENT", {"content": "x"})


async def test_bus_requires_running_and_listener() -> None:
    bus = MessageBus()
    with pytest.raises(TransportError):
        await bus.send("GET_DUE_FLASHCARDS")
    await bus.start()
    try:
        with pytest.raises(TransportError):
            await bus.send("GET_DUE_FLASHCARDS")
    finally:
        await bus.stop()


async def test_bus_folds_failures_into_error_payloads() -> None:
    bus = MessageBus()

    async def failing(data):
        raise RuntimeError("handler failed")

    bus.add_listener("GET_DUE_FLASHCARDS", failing)
    await bus.start()
    try:
        assert await bus.send("GET_DUE_FLASHCARDS") == {"error": "handler failed"}
        assert "error" in await bus.send("NOT_A_MESSAGE", {})
        assert "error" in await bus.send("REVIEW_FLASHCARD", {"flashcardId": "x"})
        assert "error" in await bus.send("ADD_TO_TRACK", {"resourceId": "r", "trackId": "t"})
    finally:
        await bus.stop()


async def test_bus_timeout() -> None:
    bus = MessageBus(timeout=0.05)

    async def slow(data):
        await asyncio.sleep(1)
        return {"success": True}

    bus.add_listener("GET_DUE_FLASHCARDS", slow)
    await bus.start()
    try:
        with pytest.raises(RequestTimeoutError):
            await bus.send("GET_DUE_FLASHCARDS")
    finally:
        await bus.stop()



async def test_stop_fails_in_flight_requests_and_allows_restart() -> None:
    bus = MessageBus()
    release = asyncio.Event()

    async def blocked(data):
        await release.wait()
        return {"success": True}

    bus.add_listener("GET_DUE_FLASHCARDS", blocked)
    await bus.start()
    pending = asyncio.create_task(bus.send("GET_DUE_FLASHCARDS"))
    await asyncio.sleep(0.01)
    await bus.stop()
    await bus.stop()
    with pytest.raises(TransportError):
        await pending
    with pytest.raises(TransportError):
        await bus.send("GET_DUE_FLASHCARDS")

    release.set()
    await bus.start()
    try:
        assert await bus.send("GET_DUE_FLASHCARDS") == {"success": True}
    finally:
        await bus.stop()

    bridge = WorkerBridge()
    await bridge.start()
    await bridge.stop()
    await bridge.stop()
    with pytest.raises(TransportError):
        await bridge.send_message("ANALYZE_CONTENT", {"content": "x"})
    await bridge.start()
    try:
        assert (await bridge.send_message("ANALYZE_CONTENT", {"content": "one two"}))["wordCount"] == 2
    finally:
        await bridge.stop()

@pytest_asyncio.fixture
async def notum(tmp_path) -> Notum:
    settings = Settings(db_path=tmp_path / "bus.db", seed_default_templates=False)
    async with Notum(settings) as instance:
        yield instance


async def test_capture_messages(notum: Notum) -> None:
    saved = await notum.bus.send(
        "SAVE_RESOURCE", {"type": "page", "url": "https://a.example", "title": "A", "content": "text"}
    )
    assert saved["success"] is True

    position = {"startOffset": 0, "endOffset": 4, "selector": "p"}
    highlighted = await notum.bus.send(
        "SAVE_HIGHLIGHT",
        {"url": "https://new.example", "title": "New", "text": "snip", "context": "a snip b", "position": position},
    )
    assert highlighted["success"] is True
    created = await notum.resources.get_resource(highlighted["resourceId"])
    assert created.url == "https://new.example"
    assert created.type == "page"

    again = await notum.bus.send(
        "SAVE_HIGHLIGHT",
        {"url": "https://a.example", "title": "A", "text": "t", "context": "c", "position": position},
    )
    assert again["resourceId"] == saved["resourceId"]

    track = await notum.tracks.create_track("T")
    assert await notum.bus.send("ADD_TO_TRACK", {"resourceId": saved["resourceId"], "trackId": track.id}) == {
        "success": True
    }
    assert (await notum.tracks.get_track(track.id)).resources == [saved["resourceId"]]
    missing = await notum.bus.send("ADD_TO_TRACK", {"resourceId": saved["resourceId"], "trackId": "nope"})
    assert "not found" in missing["error"]


async def test_review_and_data_messages(notum: Notum) -> None:
    card = await notum.flashcards.create_flashcard("r1", "Q", "A")
    due = await notum.bus.send("GET_DUE_FLASHCARDS")
    assert [c["id"] for c in due["flashcards"]] == [card.id]

    reviewed = await notum.bus.send("REVIEW_FLASHCARD", {"flashcardId": card.id, "correct": False})
    assert reviewed["flashcard"]["reviewCount"] == 1
    assert "error" in await notum.bus.send("REVIEW_FLASHCARD", {"flashcardId": "missing", "correct": True})

    exported = await notum.bus.send("EXPORT_DATA", {})
    assert exported["data"]["version"] == "1.0.0"
    imported = await notum.bus.send("IMPORT_DATA", {"exportData": exported["data"]})
    assert imported["report"]["tracks"]["imported"] == 0
    assert "error" in await notum.bus.send("IMPORT_DATA", {"exportData": {"version": 1}})
