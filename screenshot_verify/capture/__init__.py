"""
Capture package for screenshot-verify.
Wraps the platform screenshot utility and builds verification reports.
"""

from .screencapture import CaptureRequest, CaptureResult, ScreenCapturer, build_args
from .report import ReportBuilder, VerificationReport

__all__ = [
    "CaptureRequest",
    "CaptureResult",
    "ScreenCapturer",
    "build_args",
    "ReportBuilder",
    "VerificationReport",
]
