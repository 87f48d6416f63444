# screenshot_verify/core/errors.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from screenshot_verify.capture.report import VerificationReport


class ScreenshotVerifyError(RuntimeError):
    """Base class for errors that end a command with exit status 1."""


class DependencyMissing(ScreenshotVerifyError):
    pass


class CaptureFailed(ScreenshotVerifyError):
    def __init__(self, message: str, *, returncode: Optional[int] = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class ArtifactInvalid(ScreenshotVerifyError):
    """Screenshot missing or too small to be a real image."""

    def __init__(self, message: str, *, report: Optional["VerificationReport"] = None) -> None:
        super().__init__(message)
        self.report = report


class ReleaseError(ScreenshotVerifyError):
    pass
