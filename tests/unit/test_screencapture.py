import sys
import subprocess
import time
from pathlib import Path

import pytest
from pydantic import ValidationError

from screenshot_verify.capture import screencapture
from screenshot_verify.capture.screencapture import (
    CaptureRequest,
    ScreenCapturer,
    build_args,
    human_size,
)
from screenshot_verify.core.errors import CaptureFailed, DependencyMissing
from screenshot_verify.utils.config import Settings, get_settings

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")


def test_build_args_file_mode_puts_output_last(tmp_path: Path):
    req = CaptureRequest(output=tmp_path / "a.png", interactive=True, window_only=True, no_shadow=True)
    assert build_args(req) == ["-i", "-w", "-o", "-x", str(tmp_path / "a.png")]


def test_build_args_plain_capture_is_silent():
    req = CaptureRequest(output=Path("shot.png"))
    assert build_args(req) == ["-x", "shot.png"]


def test_build_args_clipboard_drops_output_path():
    req = CaptureRequest(output=Path("temp.png"), clipboard=True)
    assert build_args(req) == ["-c", "-x"]


def test_output_required_unless_clipboard():
    with pytest.raises(ValidationError, match="Output file required"):
        CaptureRequest()
    assert CaptureRequest(clipboard=True).output is None


def test_negative_delay_rejected():
    with pytest.raises(ValidationError):
        CaptureRequest(output=Path("x.png"), delay=-1)


@pytest.mark.parametrize(
    "size, expected",
    [(0, "0B"), (999, "999B"), (2048, "2.0K"), (5 * 1024 * 1024, "5.0M")],
)
def test_human_size(size, expected):
    assert human_size(size) == expected


@posix_only
def test_delay_is_waited_before_invoking_utility(tmp_path: Path, monkeypatch, fake_screencapture):
    events = []
    monkeypatch.setattr(screencapture, "sleep_seconds", lambda s: events.append(("sleep", s)))

    def runner(cmd, **kwargs):
        events.append(("run", cmd[1:]))
        return subprocess.CompletedProcess(cmd, 0, "", "")

    out = tmp_path / "out" / "shot.png"
    ScreenCapturer(get_settings(), runner=runner).capture(CaptureRequest(output=out, delay=3))

    assert events == [("sleep", 3), ("run", ["-x", str(out)])]
    # parent directory is created up front
    assert out.parent.is_dir()


@posix_only
def test_zero_delay_does_not_sleep(tmp_path: Path, monkeypatch, fake_screencapture):
    slept = []
    monkeypatch.setattr(screencapture, "sleep_seconds", slept.append)
    ScreenCapturer(get_settings()).capture(CaptureRequest(output=tmp_path / "s.png"))
    assert slept == []


@posix_only
def test_real_delay_elapses(tmp_path: Path, fake_screencapture):
    start = time.monotonic()
    ScreenCapturer(get_settings()).capture(CaptureRequest(output=tmp_path / "s.png", delay=1))
    assert time.monotonic() - start >= 1.0


@posix_only
def test_capture_writes_file_and_reports_size(tmp_path: Path, fake_screencapture, noise_png: Path):
    out = tmp_path / "nested" / "dir" / "shot.png"
    result = ScreenCapturer(get_settings()).capture(CaptureRequest(output=out))

    assert out.read_bytes() == noise_png.read_bytes()
    assert result.path == out
    assert result.clipboard is False
    assert result.size_bytes == noise_png.stat().st_size
    assert (result.width, result.height) == (64, 64)
    assert result.ts.endswith("Z")
    assert fake_screencapture.read_text().split() == ["-x", str(out)]


@posix_only
def test_clipboard_capture(fake_screencapture):
    result = ScreenCapturer(get_settings()).capture(CaptureRequest(clipboard=True))
    assert result.clipboard is True
    assert result.path is None
    assert fake_screencapture.read_text().split() == ["-c", "-x"]


@posix_only
def test_non_zero_exit_raises_capture_failed(tmp_path: Path, monkeypatch, fake_screencapture):
    monkeypatch.setenv("FAKE_SHOT_EXIT", "1")
    with pytest.raises(CaptureFailed) as exc:
        ScreenCapturer(get_settings()).capture(CaptureRequest(output=tmp_path / "s.png"))
    assert exc.value.returncode == 1
    assert "could not create image" in exc.value.stderr
    assert not (tmp_path / "s.png").exists()


def test_missing_utility_raises_dependency_missing(tmp_path: Path):
    settings = Settings(SCREENCAPTURE_BIN=str(tmp_path / "no-such-screencapture"))
    calls = []
    capturer = ScreenCapturer(settings, runner=lambda *a, **k: calls.append(a))
    with pytest.raises(DependencyMissing, match="requires macOS"):
        capturer.capture(CaptureRequest(output=tmp_path / "s.png"))
    assert calls == []
