from __future__ import annotations

"""Release automation
--------------------
Semantic version bumps for the project: reads VERSION, mirrors the new value
into the metadata files that carry a copy, then commits, tags and optionally
pushes and publishes a GitHub release.
"""

import json
import re
import shutil
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from screenshot_verify.core.errors import ReleaseError
from screenshot_verify.utils.config import Settings, get_settings
from screenshot_verify.utils.logger import get_logger


_VERSION_RE = re.compile(r"^v?(\d+)\.(\d+)\.(\d+)$")


class BumpType(str, Enum):
    major = "major"
    minor = "minor"
    patch = "patch"


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> "Version":
        m = _VERSION_RE.match(text.strip())
        if not m:
            raise ReleaseError(f"Invalid version string: {text.strip()!r} (expected MAJOR.MINOR.PATCH)")
        return cls(*(int(g) for g in m.groups()))

    def bump(self, kind: BumpType | str) -> "Version":
        try:
            kind = BumpType(kind)
        except ValueError:
            raise ReleaseError(f"Invalid bump type: {kind} (use: major, minor, patch)") from None
        if kind is BumpType.major:
            return Version(self.major + 1, 0, 0)
        if kind is BumpType.minor:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    @property
    def tag(self) -> str:
        return f"v{self}"

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# ---------- mirror files ----------

def _sub_line(pattern: str, replacement: str) -> Callable[[str, Version], str]:
    rx = re.compile(pattern, re.MULTILINE)

    def update(text: str, version: Version) -> str:
        return rx.sub(replacement.format(version=version), text, count=1)

    return update


def _update_manifest(text: str, version: Version) -> str:
    data = json.loads(text)
    data["version"] = str(version)
    return json.dumps(data, indent=2) + "\n"


# relative path -> updater(text, version) -> new text
MIRROR_FILES = {
    "SKILL.md": _sub_line(r"^version: .*$", "version: {version}"),
    ".install-manifest.json": _update_manifest,
    "pyproject.toml": _sub_line(r'^version = ".*"$', 'version = "{version}"'),
    "screenshot_verify/__init__.py": _sub_line(r'^__version__ = ".*"$', '__version__ = "{version}"'),
}


class Releaser:
    """
    Bumps, commits, tags and publishes a release of the repository at `root`.
    Confirmations go through `confirm(prompt) -> bool`; without one every
    prompt is declined unless `assume_yes` is passed to `release`.
    """

    def __init__(
        self,
        root: Path,
        settings: Optional[Settings] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        confirm: Optional[Callable[[str], bool]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ):
        self.root = root
        self.settings = settings or get_settings()
        self.runner = runner
        self.confirm = confirm
        self.which = which
        self.log = get_logger(__name__)

    @property
    def version_file(self) -> Path:
        p = self.settings.VERSION_FILE
        return p if p.is_absolute() else self.root / p

    def current_version(self) -> Version:
        if not self.version_file.is_file():
            raise ReleaseError(f"Version file not found: {self.version_file}")
        return Version.parse(self.version_file.read_text(encoding="utf-8"))

    # ---------- helpers ----------

    def _ask(self, prompt: str, assume_yes: bool) -> bool:
        if assume_yes:
            return True
        if self.confirm is None:
            return False
        return bool(self.confirm(prompt))

    def _run(self, cmd: Sequence[str]) -> str:
        self.log.debug(f"Running: {' '.join(cmd)}")
        proc = self.runner(list(cmd), cwd=str(self.root), capture_output=True, text=True)
        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()
            raise ReleaseError(f"{' '.join(cmd)} failed (exit {proc.returncode}): {detail}")
        return proc.stdout or ""

    def write_version(self, version: Version, touched: Optional[List[Path]] = None) -> List[Path]:
        """
        Write VERSION and every mirror file that exists. Paths are appended to
        `touched` as soon as they are written, so a caller still knows what
        changed when a later write fails.
        """
        touched = [] if touched is None else touched
        self.version_file.write_text(f"{version}\n", encoding="utf-8")
        self.log.info("Updated VERSION file")
        touched.append(self.version_file)

        for rel, update in MIRROR_FILES.items():
            path = self.root / rel
            if not path.is_file():
                continue
            try:
                new_text = update(path.read_text(encoding="utf-8"), version)
            except json.JSONDecodeError as e:
                raise ReleaseError(f"Cannot update {rel}: {e}") from e
            path.write_text(new_text, encoding="utf-8")
            self.log.info(f"Updated {rel}")
            touched.append(path)
        return touched

    def commit_version(self, version: Version) -> List[Path]:
        """Rewrite the version files, stage them by absolute path and commit."""
        touched: List[Path] = []
        try:
            self.write_version(version, touched)
            self._run(["git", "add", *(str(p) for p in touched)])
            self._run(["git", "commit", "-m", f"chore(release): bump version to {version.tag}"])
        except (ReleaseError, OSError) as e:
            changed = ", ".join(str(p) for p in touched) or "none"
            raise ReleaseError(
                f"{version.tag} was not committed: {e}. Files already rewritten: {changed}"
            ) from e
        return touched

    # ---------- workflow ----------

    def release(self, kind: BumpType | str = BumpType.patch, *, assume_yes: bool = False, dry_run: bool = False) -> Version:
        current = self.current_version()
        self.log.info(f"Current version: {current}")
        new = current.bump(kind)
        self.log.info(f"New version: {new}")

        if dry_run:
            return new

        if not self._ask(f"Release {new.tag}?", assume_yes):
            raise ReleaseError("Release cancelled")

        dirty = self._run(["git", "status", "--porcelain"]).strip()
        if dirty:
            self.log.warning("Uncommitted changes detected")
            for line in dirty.splitlines():
                self.log.warning(f"  {line}")
            if not self._ask("Continue anyway?", assume_yes):
                raise ReleaseError("Release cancelled")

        self.commit_version(new)
        self._run(["git", "tag", "-a", new.tag, "-m", f"Release {new.tag}"])
        self.log.info(f"Version bumped to {new.tag}")
        self.log.info(f"Tagged commit with {new.tag}")

        if self._ask(f"Push to {self.settings.RELEASE_REMOTE}?", assume_yes):
            self.publish(new)

        self.log.info(f"Release complete: {new.tag}")
        return new

    def publish(self, version: Version) -> None:
        remote = self.settings.RELEASE_REMOTE
        self._run(["git", "push", remote, self.settings.RELEASE_BRANCH])
        self._run(["git", "push", remote, version.tag])
        self.log.info(f"Pushed to {remote}")

        if self.which("gh"):
            self.log.info("Creating GitHub release...")
            self._run([
                "gh", "release", "create", version.tag,
                "--title", version.tag,
                "--notes", f"Release {version.tag}",
                "--latest",
            ])
            self.log.info("GitHub release created")
        else:
            self.log.warning("gh CLI not found - create the GitHub release manually")
