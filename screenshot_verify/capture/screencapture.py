# screenshot_verify/capture/screencapture.py
from __future__ import annotations

"""screencapture wrapper
-----------------------
Validates capture flags, turns them into arguments for the macOS
`screencapture` utility and runs it once. Returns a structured result with
the artifact's size and dimensions.
"""

import shutil
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PIL import Image
from pydantic import BaseModel, Field, model_validator

from screenshot_verify.core.errors import CaptureFailed, DependencyMissing
from screenshot_verify.utils.config import Settings, get_settings
from screenshot_verify.utils.logger import get_logger
from screenshot_verify.utils.timing import measure, sleep_seconds


Runner = Callable[..., subprocess.CompletedProcess]


class CaptureRequest(BaseModel):
    output: Optional[Path] = Field(default=None, description="Image path; ignored in clipboard mode")
    delay: int = Field(default=0, ge=0, description="Seconds to wait before capturing")
    interactive: bool = False
    window_only: bool = False
    no_shadow: bool = False
    clipboard: bool = False

    @model_validator(mode="after")
    def _output_unless_clipboard(self) -> "CaptureRequest":
        if self.output is None and not self.clipboard:
            raise ValueError("Output file required (or use --clipboard)")
        return self

    @property
    def writes_file(self) -> bool:
        return not self.clipboard


@dataclass
class CaptureResult:
    path: Optional[Path]
    clipboard: bool
    size_bytes: int
    width: int
    height: int
    ts: str              # ISO timestamp


def build_args(req: CaptureRequest) -> List[str]:
    """Ordered flags for `screencapture`; the output path goes last."""
    args: List[str] = []
    if req.interactive:
        args.append("-i")
    if req.window_only:
        args.append("-w")
    if req.no_shadow:
        args.append("-o")
    if req.clipboard:
        args.append("-c")
    # no shutter sound
    args.append("-x")
    if req.writes_file:
        args.append(str(req.output))
    return args


def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G"):
        if size < 1024 or unit == "G":
            return f"{int(size)}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{num_bytes}B"


class ScreenCapturer:
    """
    Runs the platform screenshot utility.
    - One synchronous invocation per capture, no retries.
    - Non-zero exit raises CaptureFailed.
    """

    def __init__(self, settings: Optional[Settings] = None, runner: Runner = subprocess.run):
        self.settings = settings or get_settings()
        self.runner = runner
        self.log = get_logger(__name__)

    # ----------- Public API -----------

    def check_dependencies(self) -> str:
        exe = shutil.which(self.settings.SCREENCAPTURE_BIN)
        if not exe:
            raise DependencyMissing(
                f"{self.settings.SCREENCAPTURE_BIN} not found. This tool requires macOS."
            )
        return exe

    @measure("screencapture")
    def capture(self, req: CaptureRequest) -> CaptureResult:
        exe = self.check_dependencies()

        if req.clipboard and req.output is not None:
            self.log.warning(f"Clipboard mode: ignoring output path {req.output}")
        if req.no_shadow and not req.window_only:
            self.log.warning("--no-shadow only has an effect together with --window")
        if req.writes_file:
            req.output.parent.mkdir(parents=True, exist_ok=True)

        self.log.info("Capturing screenshot...")
        if req.delay > 0:
            self.log.info(f"Waiting {req.delay} seconds...")
            sleep_seconds(req.delay)

        cmd = [exe, *build_args(req)]
        self.log.debug(f"Running: {' '.join(cmd)}")
        proc = self.runner(cmd, capture_output=True, text=True)
        if proc.returncode != 0:
            stderr = (proc.stderr or "").strip()
            detail = f": {stderr}" if stderr else ""
            raise CaptureFailed(
                f"Screenshot capture failed (exit {proc.returncode}){detail}",
                returncode=proc.returncode,
                stderr=stderr,
            )

        if req.clipboard:
            self.log.info("Screenshot copied to clipboard")
            return CaptureResult(path=None, clipboard=True, size_bytes=0, width=0, height=0, ts=self._ts())

        out = req.output
        size = out.stat().st_size if out.is_file() else 0
        w, h = self._image_size(out)
        self.log.info(f"Screenshot saved to: {out}")
        if out.is_file():
            dims = f" ({w}x{h})" if w and h else ""
            self.log.info(f"File size: {human_size(size)}{dims}")
        return CaptureResult(path=out, clipboard=False, size_bytes=size, width=w, height=h, ts=self._ts())

    # ----------- Internals -----------

    def _image_size(self, path: Path) -> Tuple[int, int]:
        try:
            with Image.open(path) as im:
                return im.width, im.height
        except (OSError, ValueError) as e:
            self.log.debug(f"Could not read image dimensions: {e!r}")
            return (0, 0)

    @staticmethod
    def _ts() -> str:
        return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
