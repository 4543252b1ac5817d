import os
import threading
import time

import pytest

from screener.core.models import EventKind, RenameOutcome
from screener.core.pipeline import WatchPipeline


def drive(pipeline, clock, seconds, step=0.05):
    """Advance the fake clock in small steps, handling work after each one."""
    pipeline.process_pending()
    elapsed = 0.0
    while elapsed < seconds:
        clock.advance(step)
        elapsed += step
        pipeline.process_pending()


@pytest.fixture
def results():
    return []


@pytest.fixture
def pipeline(classifier, clock, executor, results):
    return WatchPipeline(classifier, clock=clock, executor=executor, on_result=results.append)


def test_new_screenshot_is_renamed_once(pipeline, clock, screenshot, classifier, results):
    path = str(screenshot)
    pipeline.post_event(path, EventKind.CREATED)
    pipeline.post_event(path, EventKind.MODIFIED)
    drive(pipeline, clock, 2.0)

    target = str(screenshot.parent / "Login_Error_404_Page.png")
    assert classifier.calls == [path]
    [record] = results
    assert record.outcome is RenameOutcome.RENAMED
    assert record.final_path == target
    assert os.path.exists(target)
    assert len(pipeline.candidates) == 0
    assert pipeline.coordinator.in_flight == set()


def test_rename_echo_is_suppressed(pipeline, clock, screenshot, classifier, results):
    pipeline.post_event(str(screenshot))
    drive(pipeline, clock, 2.0)
    target = results[0].final_path

    # The watcher reports our own rename as a move onto the new name
    pipeline.post_event(target, EventKind.RENAMED)
    drive(pipeline, clock, 2.0)

    assert len(classifier.calls) == 1
    assert len(results) == 1
    assert target not in pipeline.ledger
    assert len(pipeline.candidates) == 0


def test_echo_after_ttl_is_processed_again(pipeline, clock, screenshot, results):
    pipeline.post_event(str(screenshot))
    drive(pipeline, clock, 2.0)
    target = results[0].final_path

    clock.advance(pipeline.ledger.ttl)
    pipeline.post_event(target, EventKind.MODIFIED)
    drive(pipeline, clock, 2.0)

    # Same description again: the name already matches
    assert results[-1].outcome is RenameOutcome.UNCHANGED


def test_ignored_files_never_reach_classifier(pipeline, clock, tmp_path, classifier):
    notes = tmp_path / "notes.txt"
    notes.write_text("hello")
    hidden = tmp_path / ".hidden.png"
    hidden.write_bytes(b"x" * 10)

    pipeline.post_event(str(notes))
    pipeline.post_event(str(hidden))
    drive(pipeline, clock, 2.0)

    assert classifier.calls == []
    assert len(pipeline.candidates) == 0


def test_file_still_being_written_waits_for_stable_size(clock, executor, classifier, results, screenshot):
    sizes = iter([0, 100, 300, 300])
    pipeline = WatchPipeline(classifier, clock=clock, executor=executor, on_result=results.append,
                             size_reader=lambda path: next(sizes))
    pipeline.post_event(str(screenshot))

    drive(pipeline, clock, 1.0)
    assert classifier.calls == []

    drive(pipeline, clock, 1.0)
    assert len(classifier.calls) == 1


def test_classifier_failure_leaves_file(clock, executor, failing_classifier, results, screenshot):
    pipeline = WatchPipeline(failing_classifier, clock=clock, executor=executor, on_result=results.append)
    pipeline.post_event(str(screenshot))
    drive(pipeline, clock, 2.0)

    [record] = results
    assert record.outcome is RenameOutcome.CLASSIFIER_FAILED
    assert screenshot.exists()


def test_listener_errors_do_not_stop_processing(clock, executor, classifier, screenshot):
    def explode(record):
        raise RuntimeError("listener bug")

    pipeline = WatchPipeline(classifier, clock=clock, executor=executor, on_result=explode)
    pipeline.post_event(str(screenshot))
    drive(pipeline, clock, 2.0)

    assert len(classifier.calls) == 1
    assert not screenshot.exists()


def test_stop_without_thread_tears_down_inline(pipeline, clock, screenshot, executor):
    pipeline.post_event(str(screenshot))
    drive(pipeline, clock, 0.6)
    assert len(pipeline.candidates) == 1

    pipeline.stop()
    assert executor.shut_down
    assert len(pipeline.candidates) == 0
    assert pipeline.scheduler.next_delay() is None

    pipeline.post_event(str(screenshot))
    assert pipeline.process_pending() == 0


def test_threaded_pipeline_end_to_end(classifier, screenshot):
    done = threading.Event()
    records = []

    def collect(record):
        records.append(record)
        done.set()

    pipeline = WatchPipeline(classifier, debounce_delay=0.05, poll_interval=0.02,
                             on_result=collect)
    pipeline.start()
    try:
        pipeline.post_event(str(screenshot), EventKind.CREATED)
        assert done.wait(5.0)
    finally:
        pipeline.stop(wait=True, timeout=5.0)

    assert records[0].outcome is RenameOutcome.RENAMED
    assert not pipeline.running


def test_concurrent_events_for_one_file_classify_once(classifier, screenshot):
    done = threading.Event()
    records = []

    def collect(record):
        records.append(record)
        done.set()

    path = str(screenshot)
    pipeline = WatchPipeline(classifier, debounce_delay=0.5, poll_interval=0.02,
                             on_result=collect)

    def burst():
        for _ in range(200):
            pipeline.post_event(path, EventKind.MODIFIED)

    pipeline.start()
    try:
        writers = [threading.Thread(target=burst) for _ in range(8)]
        for writer in writers:
            writer.start()
        for writer in writers:
            writer.join()
        assert done.wait(5.0)
        # Nothing else may follow the single rename
        time.sleep(0.5)
    finally:
        pipeline.stop(wait=True, timeout=5.0)

    assert classifier.calls == [path]
    [record] = records
    assert record.outcome is RenameOutcome.RENAMED
    assert os.path.exists(record.final_path)
