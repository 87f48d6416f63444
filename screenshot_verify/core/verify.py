from __future__ import annotations

"""Verification workflow
-----------------------
Launches the target app in the background, waits, captures the screen,
stops the app and builds the report. Cleanup of the screenshot artifact is
handled by `artifact_cleanup`, which also covers SIGINT/SIGTERM.
"""

import os
import signal
import subprocess
import time
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from pydantic import BaseModel, Field, field_validator

from screenshot_verify.capture.report import ReportBuilder, VerificationReport
from screenshot_verify.capture.screencapture import CaptureRequest, ScreenCapturer
from screenshot_verify.core.errors import CaptureFailed, ScreenshotVerifyError
from screenshot_verify.utils.config import DEFAULT_PROMPT, Settings, get_settings
from screenshot_verify.utils.logger import get_logger, log_with_context
from screenshot_verify.utils.timing import now_ms, sleep_ms, sleep_seconds


class Phase(str, Enum):
    idle = "idle"
    launching = "launching"
    waiting = "waiting"
    capturing = "capturing"
    terminating = "terminating"
    reporting = "reporting"
    done = "done"
    failed = "failed"


class VerifyRequest(BaseModel):
    app_cmd: str = Field(..., description="Shell command that starts the app")
    wait: float = Field(default=1.0, ge=0, description="Seconds before the screenshot")
    prompt: str = Field(default=DEFAULT_PROMPT)
    output: Optional[Path] = Field(default=None, description="Report file; stdout when unset")
    screenshot: Path
    keep: bool = False
    verbose: bool = False

    @field_validator("app_cmd")
    @classmethod
    def _cmd_non_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("App command required (--app)")
        return v


@contextmanager
def artifact_cleanup(path: Path, *, keep: bool = False) -> Iterator[Path]:
    """
    Remove `path` on exit unless `keep` is set, whatever way the block ends.
    SIGTERM is turned into SystemExit while inside the block so the removal
    still runs; SIGINT already surfaces as KeyboardInterrupt.
    """
    log = get_logger(__name__)

    def _on_sigterm(signum, frame):
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        yield path
    finally:
        # None means the old handler was not set from Python
        signal.signal(signal.SIGTERM, signal.SIG_DFL if previous is None else previous)
        if not keep and path.is_file():
            log.info(f"Cleaning up screenshot: {path}")
            try:
                path.unlink()
            except OSError as e:
                log.warning(f"Could not remove screenshot {path}: {e}")


class Verifier:
    """
    Runs one verification: launch -> wait -> capture -> terminate -> report.
    `history` records every phase entered, in order.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        capturer: Optional[ScreenCapturer] = None,
        reports: Optional[ReportBuilder] = None,
        sleep: Callable[[float], None] = sleep_seconds,
    ):
        self.settings = settings or get_settings()
        self.capturer = capturer or ScreenCapturer(self.settings)
        self.reports = reports or ReportBuilder(self.settings)
        self.sleep = sleep
        self.log = get_logger(__name__)
        self.phase = Phase.idle
        self.history: List[Phase] = [Phase.idle]

    def _enter(self, phase: Phase) -> None:
        self.phase = phase
        self.history.append(phase)
        self.log.debug(f"phase -> {phase.value}")

    # ---------- process lifecycle ----------

    def launch(self, cmd: str, verbose: bool = False) -> subprocess.Popen:
        self.log.info(f"Launching app: {cmd}")
        sink = None if verbose else subprocess.DEVNULL
        return subprocess.Popen(
            cmd,
            shell=True,
            stdout=sink,
            stderr=sink,
            start_new_session=True,
        )

    def terminate(self, proc: subprocess.Popen) -> None:
        """
        Best effort: SIGTERM the app's process group, then SIGKILL whatever is
        left of the group after TERMINATE_TIMEOUT_SECONDS. Never raises.

        The launching shell may exit before the app it started, so the group,
        not `proc`, decides whether the app is gone.
        """
        try:
            os.killpg(proc.pid, signal.SIGTERM)
        except OSError:
            proc.poll()
            return

        if self._group_exited(proc, self.settings.TERMINATE_TIMEOUT_SECONDS):
            return

        self.log.warning(f"App group {proc.pid} still alive after SIGTERM; sending SIGKILL")
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except OSError:
            pass
        try:
            proc.wait(timeout=self.settings.TERMINATE_TIMEOUT_SECONDS)
        except subprocess.TimeoutExpired:
            pass

    @staticmethod
    def _group_exited(proc: subprocess.Popen, timeout: float) -> bool:
        deadline = now_ms() + int(timeout * 1000)
        while True:
            # reap the shell so it does not keep the group alive as a zombie
            proc.poll()
            try:
                os.killpg(proc.pid, 0)
            except ProcessLookupError:
                return True
            except OSError:
                return False
            if now_ms() >= deadline:
                return False
            sleep_ms(50)

    # ---------- workflow ----------

    def run(self, req: VerifyRequest) -> VerificationReport:
        self.capturer.check_dependencies()

        self._enter(Phase.launching)
        proc = self.launch(req.app_cmd, verbose=req.verbose)
        app_log = log_with_context(self.log, app_pid=proc.pid)
        app_log.info(f"App PID: {proc.pid}")

        try:
            self._enter(Phase.waiting)
            self.log.info(f"Waiting {req.wait:g}s for app to initialize...")
            self.sleep(req.wait)

            self._enter(Phase.capturing)
            self.capturer.capture(CaptureRequest(output=req.screenshot))
            if not req.screenshot.is_file():
                raise CaptureFailed("Screenshot capture failed")
            self.log.info(f"Screenshot captured: {req.screenshot}")
        except BaseException:
            # capture errors and interrupts alike
            self.terminate(proc)
            self._enter(Phase.failed)
            raise

        self._enter(Phase.terminating)
        self.terminate(proc)
        app_log.info("App stopped")

        self._enter(Phase.reporting)
        self.log.info("Preparing screenshot for vision model analysis...")
        try:
            report = self.reports.build(req.screenshot, req.prompt)
        except ScreenshotVerifyError:
            self._enter(Phase.failed)
            raise

        self._enter(Phase.done)
        return report


def default_screenshot_path(settings: Optional[Settings] = None) -> Path:
    s = settings or get_settings()
    return s.default_screenshot_path(int(time.time()))
