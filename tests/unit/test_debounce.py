import pytest

from screener.core.debounce import Debouncer, is_image_candidate
from screener.core.models import CandidateTable, EventKind
from screener.core.scheduler import Scheduler


@pytest.fixture
def settled():
    return []


@pytest.fixture
def debouncer(clock, settled):
    return Debouncer(Scheduler(clock), CandidateTable(), on_settled=settled.append,
                     delay=0.5, validator=lambda path: True)


@pytest.mark.parametrize("path, accepted", [
    ("/shots/a.png", True),
    ("/shots/a.JPG", True),
    ("/shots/a.jpeg", True),
    ("/shots/a.tiff", True),
    ("/shots/.a.png", False),
    ("/shots/a.txt", False),
    ("/shots/noext", False),
])
def test_is_image_candidate(path, accepted):
    assert is_image_candidate(path) is accepted


def test_burst_collapses_into_one_settle(clock, debouncer, settled):
    for _ in range(5):
        assert debouncer.on_event("/shots/a.png", EventKind.MODIFIED) is True
        clock.advance(0.2)
        debouncer.scheduler.run_due()

    assert settled == []
    assert debouncer.pending("/shots/a.png")

    clock.advance(0.5)
    debouncer.scheduler.run_due()
    assert settled == ["/shots/a.png"]
    assert not debouncer.pending("/shots/a.png")
    assert debouncer.scheduler.pending() == 0


def test_one_timer_per_path(clock, debouncer):
    debouncer.on_event("/shots/a.png", EventKind.CREATED)
    debouncer.on_event("/shots/a.png", EventKind.MODIFIED)
    debouncer.on_event("/shots/b.png", EventKind.CREATED)
    assert debouncer.scheduler.pending() == 2


def test_rejected_events_create_no_state(debouncer):
    assert debouncer.on_event("/shots/notes.txt", EventKind.CREATED) is False
    assert debouncer.on_event("/shots/.hidden.png", EventKind.CREATED) is False
    assert len(debouncer.table) == 0


def test_vanished_file_is_dropped_silently(clock, settled):
    table = CandidateTable()
    debouncer = Debouncer(Scheduler(clock), table, on_settled=settled.append,
                          delay=0.5, validator=lambda path: False)
    debouncer.on_event("/shots/a.png", EventKind.CREATED)

    clock.advance(1)
    debouncer.scheduler.run_due()
    assert settled == []
    assert "/shots/a.png" not in table


def test_revalidates_against_the_filesystem(clock, settled, screenshot):
    debouncer = Debouncer(Scheduler(clock), CandidateTable(), on_settled=settled.append, delay=0.5)
    path = str(screenshot)
    debouncer.on_event(path, EventKind.CREATED)
    screenshot.unlink()

    clock.advance(1)
    debouncer.scheduler.run_due()
    assert settled == []


def test_cancel_all(clock, debouncer, settled):
    debouncer.on_event("/shots/a.png", EventKind.CREATED)
    debouncer.on_event("/shots/b.png", EventKind.CREATED)
    debouncer.cancel_all()

    clock.advance(1)
    debouncer.scheduler.run_due()
    assert settled == []


def test_custom_extensions(clock, settled):
    debouncer = Debouncer(Scheduler(clock), CandidateTable(), on_settled=settled.append,
                          extensions=[".WEBP"], validator=lambda path: True)
    assert debouncer.on_event("/shots/a.webp", EventKind.CREATED) is True
    assert debouncer.on_event("/shots/a.png", EventKind.CREATED) is False
