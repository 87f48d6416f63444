import stat
import textwrap
from pathlib import Path

import pytest
from PIL import Image

from screenshot_verify.utils.config import get_settings


FAKE_SCREENCAPTURE = textwrap.dedent(
    """\
    #!/bin/sh
    printf '%s\\n' "$*" >> "$FAKE_SHOT_LOG"
    if [ "${FAKE_SHOT_EXIT:-0}" != "0" ]; then
      echo "could not create image from display" >&2
      exit "$FAKE_SHOT_EXIT"
    fi
    for last; do :; done
    case "$last" in
      -*) exit 0 ;;
    esac
    cp "$FAKE_SHOT_SOURCE" "$last"
    """
)


@pytest.fixture(autouse=True)
def fresh_settings(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("SCREENSHOT_DIR", str(tmp_path / "shots"))
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def noise_png(tmp_path: Path) -> Path:
    """A real PNG comfortably above the 1000 byte threshold."""
    p = tmp_path / "noise.png"
    Image.effect_noise((64, 64), 64).save(p)
    return p


@pytest.fixture
def tiny_png(tmp_path: Path) -> Path:
    p = tmp_path / "tiny.png"
    Image.new("RGB", (4, 4), "black").save(p)
    return p


@pytest.fixture
def fake_screencapture(tmp_path: Path, monkeypatch, noise_png: Path):
    """
    Executable stand-in for macOS `screencapture`: logs its arguments and
    copies FAKE_SHOT_SOURCE to the last argument. Set FAKE_SHOT_EXIT to fail.
    Returns the path of the argument log.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "screencapture"
    script.write_text(FAKE_SCREENCAPTURE, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    calls = tmp_path / "calls.log"
    monkeypatch.setenv("SCREENCAPTURE_BIN", str(script))
    monkeypatch.setenv("FAKE_SHOT_LOG", str(calls))
    monkeypatch.setenv("FAKE_SHOT_SOURCE", str(noise_png))
    monkeypatch.delenv("FAKE_SHOT_EXIT", raising=False)
    get_settings.cache_clear()
    return calls
