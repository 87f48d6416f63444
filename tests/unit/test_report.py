import json
import re
from pathlib import Path

import pytest

from screenshot_verify.capture.report import (
    REPORT_KEYS,
    STATUS_INVALID,
    STATUS_READY,
    ReportBuilder,
)
from screenshot_verify.core.errors import ArtifactInvalid
from screenshot_verify.utils.config import Settings


def _file(tmp_path: Path, size: int) -> Path:
    p = tmp_path / f"shot-{size}.png"
    p.write_bytes(b"\x89" * size)
    return p


def test_ready_report_has_fixed_shape(tmp_path: Path):
    shot = _file(tmp_path, 4096)
    report = ReportBuilder(Settings()).build(shot, "Check the header")

    data = json.loads(report.to_json())
    assert tuple(data) == REPORT_KEYS
    assert data["screenshot"] == str(shot)
    assert data["prompt"] == "Check the header"
    assert data["file_size"] == 4096
    assert data["status"] == STATUS_READY
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\dZ", data["timestamp"])
    assert report.ok


def test_threshold_is_inclusive(tmp_path: Path):
    assert ReportBuilder(Settings()).build(_file(tmp_path, 1000), "p").ok


def test_undersized_artifact_is_flagged_invalid(tmp_path: Path):
    with pytest.raises(ArtifactInvalid, match=r"too small \(999 bytes\)") as exc:
        ReportBuilder(Settings()).build(_file(tmp_path, 999), "p")

    report = exc.value.report
    assert report is not None
    assert report.status == STATUS_INVALID
    assert report.file_size == 999
    assert not report.ok


def test_threshold_comes_from_settings(tmp_path: Path):
    with pytest.raises(ArtifactInvalid):
        ReportBuilder(Settings(MIN_SCREENSHOT_BYTES=5000)).build(_file(tmp_path, 4096), "p")


def test_missing_artifact(tmp_path: Path):
    with pytest.raises(ArtifactInvalid, match="not found") as exc:
        ReportBuilder(Settings()).build(tmp_path / "nope.png", "p")
    assert exc.value.report is None


def test_write_creates_parent_dirs(tmp_path: Path):
    builder = ReportBuilder(Settings())
    report = builder.build(_file(tmp_path, 2000), "p")
    out = builder.write(report, tmp_path / "reports" / "r.json")
    assert json.loads(out.read_text(encoding="utf-8")) == report.to_dict()
