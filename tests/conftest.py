"""Shared test fixtures."""

import json
import os
from dataclasses import replace
from pathlib import Path

import pytest

from takeout_organizer.config import OrganizerConfig
from takeout_organizer.models import ProcessingContext

JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 100
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 100
TIFF_BYTES = b"II*\x00" + b"\x00" * 100
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 100

# 2021-01-01T00:00:00Z
TS_2021 = 1609459200


@pytest.fixture
def make_config(tmp_path: Path):
    """Factory fixture for an OrganizerConfig rooted in tmp_path.

    Keyword overrides are per group, e.g. processing={"concurrency": 2}.
    """

    def _make(**groups):
        config = OrganizerConfig()
        config = replace(
            config,
            input=replace(config.input, archive_dir="input"),
            output=replace(config.output, staging_dir="staging", output_dir="out"),
            logging=replace(config.logging, console=False, file=False, log_dir="logs"),
        )
        for name, values in groups.items():
            config = replace(config, **{name: replace(getattr(config, name), **values)})
        return config

    return _make


@pytest.fixture
def make_context(tmp_path: Path, make_config):
    """Factory fixture for a ProcessingContext with its directories created."""

    def _make(**groups):
        context = ProcessingContext.from_config(make_config(**groups), cwd=tmp_path)
        context.input_dir.mkdir(parents=True, exist_ok=True)
        context.media_root.mkdir(parents=True, exist_ok=True)
        context.output_dir.mkdir(parents=True, exist_ok=True)
        return context

    return _make


@pytest.fixture
def context(make_context) -> ProcessingContext:
    return make_context()


@pytest.fixture
def write_media():
    """Write a media file (and optional JSON sidecar) under a root directory."""

    def _write(root: Path, relpath: str, data: bytes = JPEG_BYTES,
               sidecar=None, mtime=None) -> Path:
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        if sidecar is not None:
            sidecar_path = path.with_name(path.name + ".json")
            sidecar_path.write_text(json.dumps(sidecar), encoding="utf-8")
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


def sidecar(title="photo.jpg", taken=None, created=None, **extra) -> dict:
    """Build a sidecar document in the exported JSON layout."""
    doc = {"title": title, "description": extra.pop("description", "")}
    if taken is not None:
        doc["photoTakenTime"] = {"timestamp": str(taken), "formatted": ""}
    if created is not None:
        doc["creationTime"] = {"timestamp": str(created), "formatted": ""}
    doc.update(extra)
    return doc


@pytest.fixture
def make_sidecar():
    return sidecar
