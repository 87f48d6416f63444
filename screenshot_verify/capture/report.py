# screenshot_verify/capture/report.py
from __future__ import annotations

"""Verification report
---------------------
Fixed-shape JSON record describing a screenshot that still has to be analyzed
by a vision model. Also holds the crude size check used to reject corrupt
captures.
"""

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from screenshot_verify.core.errors import ArtifactInvalid
from screenshot_verify.utils.config import Settings, get_settings
from screenshot_verify.utils.logger import get_logger


STATUS_READY = "ready_for_analysis"
STATUS_INVALID = "invalid"

REPORT_KEYS = ("screenshot", "prompt", "file_size", "timestamp", "status", "note")


@dataclass
class VerificationReport:
    screenshot: str
    prompt: str
    file_size: int
    timestamp: str
    status: str
    note: str

    @property
    def ok(self) -> bool:
        return self.status == STATUS_READY

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


def utc_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%SZ")


class ReportBuilder:
    """Checks the artifact and builds/writes the report."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.log = get_logger(__name__)

    def build(self, screenshot: Path, prompt: str) -> VerificationReport:
        """
        Raises ArtifactInvalid when the file is missing, or when it is below
        MIN_SCREENSHOT_BYTES (the error then carries an `invalid` report).
        """
        if not screenshot.is_file():
            raise ArtifactInvalid(f"Screenshot file not found: {screenshot}")

        size = screenshot.stat().st_size
        min_bytes = self.settings.MIN_SCREENSHOT_BYTES
        if size < min_bytes:
            message = f"Screenshot file is too small ({size} bytes) - likely invalid"
            report = VerificationReport(
                screenshot=str(screenshot),
                prompt=prompt,
                file_size=size,
                timestamp=utc_timestamp(),
                status=STATUS_INVALID,
                note=f"{message}; expected at least {min_bytes} bytes",
            )
            raise ArtifactInvalid(message, report=report)

        return VerificationReport(
            screenshot=str(screenshot),
            prompt=prompt,
            file_size=size,
            timestamp=utc_timestamp(),
            status=STATUS_READY,
            note=self.settings.REPORT_NOTE,
        )

    def write(self, report: VerificationReport, output: Path) -> Path:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report.to_json() + "\n", encoding="utf-8")
        self.log.info(f"Analysis saved to: {output}")
        return output
