# screenshot_verify/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
`capture` wraps the platform screenshot utility, `verify` runs the
launch/wait/capture/report workflow, `release` bumps and tags versions and
`config` prints the effective settings.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from screenshot_verify import __version__
from screenshot_verify.capture.report import ReportBuilder, VerificationReport
from screenshot_verify.capture.screencapture import CaptureRequest, ScreenCapturer
from screenshot_verify.core.errors import ArtifactInvalid, ScreenshotVerifyError
from screenshot_verify.core.release import BumpType, Releaser
from screenshot_verify.core.verify import (
    Verifier,
    VerifyRequest,
    artifact_cleanup,
    default_screenshot_path,
)
from screenshot_verify.utils.config import get_settings
from screenshot_verify.utils.logger import get_logger, bind, unbind, set_log_level


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _validation_message(err: ValidationError) -> str:
    first = err.errors()[0]
    msg = first.get("msg", str(err))
    return msg.removeprefix("Value error, ")


def _fail(err: Exception) -> None:
    click.echo(f"Error: {err}", err=True)
    sys.exit(1)


def _emit_report(report: VerificationReport, output: Optional[Path]) -> None:
    if output:
        ReportBuilder().write(report, output)
    else:
        click.echo(report.to_json())


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(version=__version__, prog_name="screenshot-verify")
def cli(log_level: Optional[str]):
    # Initialize settings + logger once at process start
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    _echo_json(get_settings().model_dump(mode="json"))


@cli.command("capture")
@click.argument("output", required=False, type=click.Path(dir_okay=False))
@click.option("-d", "--delay", type=click.IntRange(min=0), default=0, show_default=True,
              help="Wait SECONDS before capturing")
@click.option("-i", "--interactive", is_flag=True, help="User selects area/window")
@click.option("-w", "--window", "window_only", is_flag=True, help="Capture window only (no desktop)")
@click.option("-s", "--no-shadow", is_flag=True, help="Omit window shadow (only with -w)")
@click.option("-c", "--clipboard", is_flag=True, help="Copy to clipboard instead of saving")
def cmd_capture(
    output: Optional[str],
    delay: int,
    interactive: bool,
    window_only: bool,
    no_shadow: bool,
    clipboard: bool,
):
    """
    Capture a screenshot.

    Examples:
      screenshot-verify capture screenshot.png -d 2
      screenshot-verify capture screenshot.png -w -s
      screenshot-verify capture -c
    """
    try:
        req = CaptureRequest(
            output=Path(output).expanduser() if output else None,
            delay=delay,
            interactive=interactive,
            window_only=window_only,
            no_shadow=no_shadow,
            clipboard=clipboard,
        )
    except ValidationError as e:
        raise click.UsageError(_validation_message(e))

    try:
        result = ScreenCapturer(get_settings()).capture(req)
    except ScreenshotVerifyError as e:
        _fail(e)

    click.echo("clipboard" if result.clipboard else str(result.path))


@cli.command("verify")
@click.option("-a", "--app", "app_cmd", required=True, help='Command to launch the TUI app (e.g. "bun dev")')
@click.option("-w", "--wait", type=click.FloatRange(min=0), default=None,
              help="Seconds to wait before the screenshot [default: DEFAULT_WAIT_SECONDS]")
@click.option("-p", "--prompt", default=None, help="Analysis prompt for the vision model")
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Save the report to FILE (JSON) instead of stdout")
@click.option("-s", "--screenshot", type=click.Path(dir_okay=False), default=None,
              help="Path for the screenshot [default: <tmpdir>/tui-screenshot-<epoch>.png]")
@click.option("-k", "--keep", is_flag=True, help="Keep the screenshot after the run")
@click.option("-v", "--verbose", is_flag=True, help="Show app output and debug logs")
def cmd_verify(
    app_cmd: str,
    wait: Optional[float],
    prompt: Optional[str],
    output: Optional[str],
    screenshot: Optional[str],
    keep: bool,
    verbose: bool,
):
    """
    Launch an app, wait, capture the screen and emit a report for analysis.

    Examples:
      screenshot-verify verify --app "bun dev" --wait 2
      screenshot-verify verify --app "python app.py" -p "Check the empty state" -o report.json
      screenshot-verify verify --app "bun dev" --keep --screenshot ~/Desktop/tui.png
    """
    settings = get_settings()
    log = get_logger(__name__)
    if verbose:
        set_log_level("DEBUG")

    try:
        req = VerifyRequest(
            app_cmd=app_cmd,
            wait=settings.DEFAULT_WAIT_SECONDS if wait is None else wait,
            prompt=settings.DEFAULT_PROMPT if prompt is None else prompt,
            output=Path(output).expanduser() if output else None,
            screenshot=Path(screenshot).expanduser() if screenshot else default_screenshot_path(settings),
            keep=keep,
            verbose=verbose,
        )
    except ValidationError as e:
        raise click.UsageError(_validation_message(e))

    bind(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"))
    try:
        with artifact_cleanup(req.screenshot, keep=req.keep):
            try:
                report = Verifier(settings).run(req)
            except ArtifactInvalid as e:
                if e.report is not None:
                    _emit_report(e.report, req.output)
                raise
            _emit_report(report, req.output)
        log.info("Verification complete")
    except ScreenshotVerifyError as e:
        _fail(e)
    finally:
        unbind("run_id")


@cli.command("release")
@click.argument("bump", type=click.Choice([b.value for b in BumpType]), default=BumpType.patch.value, required=False)
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Answer yes to every confirmation")
@click.option("--dry-run", is_flag=True, help="Only print the next version")
@click.option("--root", type=click.Path(file_okay=False, exists=True), default=".", show_default=True,
              help="Repository root holding the VERSION file")
def cmd_release(bump: str, assume_yes: bool, dry_run: bool, root: str):
    """Bump the version (major|minor|patch), commit, tag and optionally publish."""
    releaser = Releaser(
        Path(root).resolve(),
        settings=get_settings(),
        confirm=lambda prompt: click.confirm(prompt, default=False),
    )
    try:
        new = releaser.release(bump, assume_yes=assume_yes, dry_run=dry_run)
    except ScreenshotVerifyError as e:
        _fail(e)

    click.echo(str(new))


def main() -> None:
    cli(prog_name="screenshot-verify")


if __name__ == "__main__":
    main()
