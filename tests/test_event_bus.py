"""Tests for the event bus."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent

from smart_file_sorter.events import DomainEvent, EventBus, FileCreated, FileModified, FileSorted
from smart_file_sorter.watcher import VaultEventHandler


class Recorder:
    def __init__(self):
        self.events = []

    async def handle(self, event):
        self.events.append(event)

    def handle_sync(self, event):
        self.events.append(event)


class TestEventBus:

    @pytest.mark.asyncio
    async def test_publish_to_subscribers(self):
        bus = EventBus()
        recorder = Recorder()
        bus.subscribe(FileCreated, recorder.handle)

        event = FileCreated(path="a.md")
        await bus.publish(event)
        await bus.publish(FileModified(path="a.md"))

        assert recorder.events == [event]

    @pytest.mark.asyncio
    async def test_sync_handlers(self):
        bus = EventBus()
        recorder = Recorder()
        bus.subscribe(FileModified, recorder.handle_sync)

        await bus.publish(FileModified(path="a.md"))

        assert len(recorder.events) == 1

    @pytest.mark.asyncio
    async def test_base_class_subscription(self):
        bus = EventBus()
        recorder = Recorder()
        bus.subscribe(DomainEvent, recorder.handle)

        await bus.publish(FileCreated(path="a.md"))
        await bus.publish(FileSorted(path="B/a.md", from_path="a.md", rule_name="r"))

        assert len(recorder.events) == 2

    @pytest.mark.asyncio
    async def test_handler_errors_are_isolated(self):
        bus = EventBus()
        recorder = Recorder()

        async def failing(event):
            raise RuntimeError("boom")

        bus.subscribe(FileCreated, failing)
        bus.subscribe(FileCreated, recorder.handle)

        await bus.publish(FileCreated(path="a.md"))

        assert len(recorder.events) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe(self):
        bus = EventBus()
        recorder = Recorder()
        bus.subscribe(FileCreated, recorder.handle)
        bus.unsubscribe(FileCreated, recorder.handle)

        await bus.publish(FileCreated(path="a.md"))

        assert recorder.events == []

    @pytest.mark.asyncio
    async def test_dead_subscribers_are_dropped(self):
        bus = EventBus()
        recorder = Recorder()
        bus.subscribe(FileCreated, recorder.handle)
        del recorder

        await bus.publish(FileCreated(path="a.md"))

    @pytest.mark.asyncio
    async def test_event_store(self):
        bus = EventBus(max_events_in_memory=2)
        for name in ("a.md", "b.md", "c.md"):
            await bus.publish(FileCreated(path=name))

        assert [e.path for e in bus.get_events()] == ["b.md", "c.md"]
        assert bus.get_events(event_type=FileSorted) == []

        bus.clear()
        assert bus.get_events() == []


class TestFileEvents:

    def test_to_dict(self):
        event = FileSorted(path="Done/a.md", from_path="Inbox/a.md", rule_name="Done")
        data = event.to_dict()

        assert data["event_type"] == "FileSorted"
        assert data["event_id"].startswith("evt_")
        assert data["data"] == {"path": "Done/a.md", "from_path": "Inbox/a.md", "rule_name": "Done"}


class TestVaultEventHandler:
    """Watchdog events become bus events."""

    @pytest.mark.asyncio
    async def test_created_and_modified(self, tmp_path):
        bus = EventBus()
        handler = VaultEventHandler(tmp_path, bus, asyncio.get_running_loop())

        handler.on_created(FileCreatedEvent(str(tmp_path / "Inbox" / "a.md")))
        handler.on_modified(FileModifiedEvent(str(tmp_path / "a.md")))
        await asyncio.sleep(0.05)

        [created] = bus.get_events(event_type=FileCreated)
        [modified] = bus.get_events(event_type=FileModified)
        assert created.path == "Inbox/a.md"
        assert modified.path == "a.md"

    @pytest.mark.asyncio
    async def test_hidden_directory_and_outside_paths_are_ignored(self, tmp_path):
        bus = EventBus()
        handler = VaultEventHandler(tmp_path / "vault", bus, asyncio.get_running_loop())

        handler.on_created(DirCreatedEvent(str(tmp_path / "vault" / "Inbox")))
        handler.on_created(FileCreatedEvent(str(tmp_path / "vault" / ".obsidian" / "x.md")))
        handler.on_created(FileCreatedEvent(str(tmp_path / "elsewhere.md")))
        await asyncio.sleep(0.05)

        assert bus.get_events() == []

    @pytest.mark.asyncio
    async def test_publish_failure_is_logged(self, tmp_path, caplog):
        bus = EventBus()
        bus.publish = AsyncMock(side_effect=RuntimeError("bus closed"))
        handler = VaultEventHandler(tmp_path, bus, asyncio.get_running_loop())

        with caplog.at_level(logging.ERROR):
            handler.on_created(FileCreatedEvent(str(tmp_path / "a.md")))
            await asyncio.sleep(0.05)

        assert "Error publishing file event: bus closed" in caplog.text
