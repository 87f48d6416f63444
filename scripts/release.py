# scripts/release.py
"""
Bump the project version, commit, tag and optionally publish.
Run: python scripts/release.py [major|minor|patch]
"""

import sys
from pathlib import Path

import click

from screenshot_verify.core.errors import ScreenshotVerifyError
from screenshot_verify.core.release import Releaser
from screenshot_verify.utils.logger import get_logger

ROOT = Path(__file__).resolve().parent.parent


def main():
    log = get_logger(__name__)
    kind = sys.argv[1] if len(sys.argv) > 1 else "patch"
    releaser = Releaser(ROOT, confirm=lambda prompt: click.confirm(prompt, default=False))
    try:
        releaser.release(kind)
    except ScreenshotVerifyError as e:
        log.error(str(e))
        sys.exit(1)

if __name__ == "__main__":
    main()
