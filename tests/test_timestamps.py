"""Tests for filesystem timestamp setting."""

import os
from pathlib import Path

import pytest

from conftest import JPEG_BYTES, TS_2021
from takeout_organizer.models import MediaItem, ProcessingStatus, SidecarMetadata
from takeout_organizer.timestamps import (
    TimestampSetter,
    same_inode,
    set_item_timestamps,
    set_timestamps,
)


def _placed(tmp_path, link=True, taken=TS_2021):
    year_path = tmp_path / "2021" / "a.jpg"
    album_path = tmp_path / "Trip" / "a.jpg"
    year_path.parent.mkdir()
    album_path.parent.mkdir()
    year_path.write_bytes(JPEG_BYTES)
    if link:
        os.link(year_path, album_path)
    else:
        album_path.write_bytes(JPEG_BYTES)

    metadata = None
    if taken is not None:
        metadata = SidecarMetadata.model_validate(
            {"title": "a.jpg", "photoTakenTime": {"timestamp": str(taken)}}
        )
    return MediaItem(
        id="a",
        original_path=tmp_path / "staging" / "a.jpg",
        filename="a.jpg",
        extension=".jpg",
        metadata=metadata,
        year_path=year_path,
        album_path=album_path,
        status=ProcessingStatus.COMPLETED,
    )


def _spy_utime(monkeypatch):
    calls = []
    real = os.utime

    def spy(path, times=None, **kwargs):
        calls.append(Path(path))
        return real(path, times, **kwargs)

    monkeypatch.setattr(os, "utime", spy)
    return calls


class TestSameInode:
    def test_hard_link(self, tmp_path):
        item = _placed(tmp_path, link=True)
        assert same_inode(item.year_path, item.album_path)

    def test_copy(self, tmp_path):
        item = _placed(tmp_path, link=False)
        assert not same_inode(item.year_path, item.album_path)

    def test_missing_or_none(self, tmp_path):
        assert not same_inode(None, tmp_path)
        assert not same_inode(tmp_path / "x", tmp_path / "y")


class TestSetItemTimestamps:
    def test_hard_link_stamped_once(self, tmp_path, monkeypatch):
        item = _placed(tmp_path, link=True)
        calls = _spy_utime(monkeypatch)
        set_item_timestamps(item)
        assert calls == [item.year_path]
        assert item.album_path.stat().st_mtime == TS_2021

    def test_copy_stamped_twice(self, tmp_path, monkeypatch):
        item = _placed(tmp_path, link=False)
        calls = _spy_utime(monkeypatch)
        set_item_timestamps(item)
        assert calls == [item.year_path, item.album_path]
        assert item.year_path.stat().st_mtime == TS_2021
        assert item.album_path.stat().st_mtime == TS_2021
        assert item.album_path.stat().st_atime == TS_2021

    def test_no_timestamp(self, tmp_path):
        item = _placed(tmp_path, taken=None)
        item.year_path = None
        item.album_path = None
        with pytest.raises(ValueError):
            set_item_timestamps(item)


def test_failure_counted(context, tmp_path):
    item = _placed(tmp_path)
    item.year_path.unlink()
    item.album_path.unlink()

    TimestampSetter(context).apply(item)

    assert context.stats.timestamp_failures == 1
    assert item.error.startswith("Timestamp update failed")


def test_set_timestamps_only_completed(context, tmp_path):
    (tmp_path / "one").mkdir()
    (tmp_path / "two").mkdir()
    done = _placed(tmp_path / "one")
    failed = _placed(tmp_path / "two")
    failed.id = "b"
    failed.status = ProcessingStatus.FAILED
    context.files = {done.id: done, failed.id: failed}

    set_timestamps(context)

    assert done.year_path.stat().st_mtime == TS_2021
    assert failed.year_path.stat().st_mtime != TS_2021
    assert context.stats.timestamp_failures == 0
