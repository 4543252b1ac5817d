import pytest
from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from screener.core.models import EventKind
from screener.core.watcher import DirectoryObserver, ScreenshotEventHandler
from screener.errors import SubscriptionFailed


@pytest.fixture
def events():
    return []


@pytest.fixture
def handler(tmp_path, events):
    return ScreenshotEventHandler(lambda path, kind, ts: events.append((path, kind)), str(tmp_path))


def test_created_and_modified_map_to_source_path(handler, events, tmp_path):
    path = str(tmp_path / "a.png")
    handler.on_created(FileCreatedEvent(path))
    handler.on_modified(FileModifiedEvent(path))

    assert events == [(path, EventKind.CREATED), (path, EventKind.MODIFIED)]


def test_move_reports_destination_only(handler, events, tmp_path):
    source = str(tmp_path / ".tmp-capture")
    dest = str(tmp_path / "Screenshot.png")
    handler.on_moved(FileMovedEvent(source, dest))

    assert events == [(dest, EventKind.RENAMED)]


def test_move_out_of_directory_is_ignored(handler, events, tmp_path):
    handler.on_moved(FileMovedEvent(str(tmp_path / "a.png"), str(tmp_path.parent / "a.png")))
    assert events == []


def test_directory_and_nested_events_are_ignored(handler, events, tmp_path):
    handler.on_created(DirCreatedEvent(str(tmp_path / "folder")))
    handler.on_created(FileCreatedEvent(str(tmp_path / "folder" / "a.png")))
    assert events == []


def test_bytes_paths_are_decoded(handler, events, tmp_path):
    path = str(tmp_path / "a.png")
    handler.on_created(FileCreatedEvent(path.encode()))
    assert events == [(path, EventKind.CREATED)]


class BrokenObserver:
    def schedule(self, handler, path, recursive=False):
        raise OSError("inotify watch limit reached")

    def start(self):
        pass

    def stop(self):
        pass


class RecordingObserver:
    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


def test_subscription_failure_is_raised(tmp_path):
    source = DirectoryObserver(str(tmp_path), lambda *args: None, observer_factory=BrokenObserver)

    with pytest.raises(SubscriptionFailed) as info:
        source.start()
    assert isinstance(info.value.cause, OSError)
    assert not source.running


def test_observer_is_scheduled_non_recursively(tmp_path):
    observer = RecordingObserver()
    source = DirectoryObserver(str(tmp_path), lambda *args: None, observer_factory=lambda: observer)

    source.start()
    assert source.running
    assert observer.scheduled == [(str(tmp_path), False)]
    assert observer.started

    source.stop(wait=True)
    assert observer.stopped
    assert not source.running
    source.stop()


def test_real_observer_delivers_file_events(tmp_path):
    import threading

    seen = threading.Event()
    paths = []

    def sink(path, kind, ts):
        paths.append(path)
        seen.set()

    source = DirectoryObserver(str(tmp_path), sink)
    source.start()
    try:
        (tmp_path / "shot.png").write_bytes(b"x" * 10)
        assert seen.wait(5.0)
    finally:
        source.stop(wait=True)

    assert str(tmp_path / "shot.png") in paths
