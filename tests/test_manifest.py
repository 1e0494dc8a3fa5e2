"""Tests for the JSON run report."""

import json
from pathlib import Path

from takeout_organizer.manifest import SCHEMA_VERSION, RunReport
from takeout_organizer.models import DuplicateGroup, MediaItem, ProcessingStatus


def _item(name, status=ProcessingStatus.COMPLETED, error=None, folder=""):
    return MediaItem(
        id=name,
        original_path=Path("/staging") / name,
        filename=name,
        extension=Path(name).suffix,
        source_folder=folder,
        year_path=Path("/out/2021") / name if status == ProcessingStatus.COMPLETED else None,
        status=status,
        error=error,
    )


def test_finalize_writes_report(context):
    ok = _item("a.jpg", folder="Trip")
    bad = _item("b.jpg", status=ProcessingStatus.FAILED, error="Permission denied")
    context.files = {ok.id: ok, bad.id: bad}
    context.stats.processed_files = 1
    context.stats.failed_files = 1

    report = RunReport("takeout-organizer_20260101_120000", context)
    report.record_duplicates({"a.jpg": DuplicateGroup("a.jpg", [ok, _item("a(1).jpg")])})
    path = report.finalize()

    assert path == context.log_dir / "takeout-organizer_20260101_120000.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["schema_version"] == SCHEMA_VERSION
    assert data["run_id"] == "takeout-organizer_20260101_120000"
    assert data["directories"]["output"] == str(context.output_dir)
    assert data["stats"]["processed_files"] == 1
    assert data["stats"]["failed_files"] == 1
    assert data["duplicate_groups"] == {"a.jpg": ["a.jpg", "a(1).jpg"]}

    items = {entry["filename"]: entry for entry in data["items"]}
    assert items["a.jpg"]["status"] == "completed"
    assert items["a.jpg"]["source_folder"] == "Trip"
    assert items["a.jpg"]["year_path"] == str(Path("/out/2021/a.jpg"))
    assert "error" not in items["a.jpg"]
    assert items["b.jpg"]["status"] == "failed"
    assert items["b.jpg"]["error"] == "Permission denied"
    assert items["b.jpg"]["year_path"] is None


def test_explicit_log_dir(context, tmp_path):
    path = RunReport("run", context).finalize(tmp_path / "reports")
    assert path == tmp_path / "reports" / "run.json"
    assert json.loads(path.read_text())["items"] == []


def test_errors_lists_items_with_errors(context):
    context.files = {
        "a": _item("a.jpg"),
        "b": _item("b.jpg", error="EXIF write failed: boom"),
    }
    assert RunReport("run", context).errors() == [("b.jpg", "EXIF write failed: boom")]
