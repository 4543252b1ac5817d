import json
import logging

from screener.utils.logger import PipelineLogger, StructuredFormatter


def test_structured_formatter_includes_extra_fields():
    record = logging.LogRecord("screener", logging.INFO, __file__, 10, "Rename %s", ("renamed",), None)
    record.extra_data = {"file_path": "/shots/a.png", "event_type": "rename_result"}

    data = json.loads(StructuredFormatter().format(record))
    assert data["message"] == "Rename renamed"
    assert data["level"] == "INFO"
    assert data["file_path"] == "/shots/a.png"
    assert data["event_type"] == "rename_result"


def test_rename_result_levels(tmp_path, caplog):
    log = PipelineLogger("screener.test-levels", log_dir=tmp_path)
    with caplog.at_level(logging.DEBUG, logger="screener.test-levels"):
        log.rename_result("/a.png", "/b.png", "collision", "b")
        log.rename_result("/a.png", "/a.png", "io_error", "b", error="disk full")

    levels = [r.levelno for r in caplog.records]
    assert levels == [logging.INFO, logging.ERROR]
    assert (tmp_path / "screener.log").exists()
