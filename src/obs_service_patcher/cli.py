"""CLI adapter for ``obs_service_patcher`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the patch flow as an interactively launched command: users double-click
or run ``obs-service-patcher patch`` and read a per-installation summary
before the window closes.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_locate` – prints detected ``services.json`` paths as JSON.
* :func:`cli_patch` – runs :func:`obs_service_patcher.core.run_patch` and
  renders the summary.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. It renders the result values returned
by the composition root and never reaches into adapter internals.
``lib_cli_exit_tools`` centralises the exit code strategy.
"""

from __future__ import annotations

import json
import logging
import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.official_list import RefreshResult
from .adapters.path_locators.default import DefaultPathLocator
from .application.patch import PatchResult, PatchStatus
from .core import RunReport, RunStatus, run_patch
from .domain.errors import PatcherError
from .observability import get_logger
from .settings import PatcherSettings, load_settings

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "obs_service_patcher"
_VERBOSE_HANDLER_NAME: Final[str] = "obs_service_patcher.verbose"

EXIT_MESSAGE: Final[str] = "Press the Enter key or close this window."
ELEVATION_HINT: Final[str] = (
    "⛔️ Please try running the program as an Administrator (or with sudo) to patch protected installations"
)

_PATCH_LINES: Final[dict[PatchStatus, str]] = {
    PatchStatus.PATCHED: "✅ Patched services file: {path}",
    PatchStatus.ALREADY_PRESENT: "✅ {service} already exists in: {path}",
    PatchStatus.READ_FAILED: "⛔️ Could not read {path}: {error}",
    PatchStatus.DECODE_FAILED: "⛔️ Malformed services file {path}: {error}",
    PatchStatus.ENCODE_FAILED: "⛔️ Could not re-encode {path}: {error}",
    PatchStatus.WRITE_FAILED: "⛔️ Failed to patch file {path}: {error}",
}


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` for bare checkouts."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Add the Glimesh RTMP service to local OBS installations",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message="obs_service_patcher version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("locate", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--platform", default=None, help="Override auto-detected platform (e.g. linux, darwin, windows)")
@click.option(
    "--extra-dir",
    "extra_dirs",
    multiple=True,
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    help="Additional rtmp-services directory to probe (repeatable)",
)
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
def cli_locate(platform: Optional[str], extra_dirs: Sequence[Path], indent: int) -> None:
    """Print the ``services.json`` files that would be patched as a JSON array."""

    settings = _settings(extra_dirs=extra_dirs)
    locator = DefaultPathLocator(platform=_normalize_platform(platform), extra_dirs=settings.extra_dirs)
    payload = [{"label": install.label, "path": str(install.services_file)} for install in locator.locate()]
    click.echo(json.dumps(payload, indent=indent, ensure_ascii=False))


@cli.command("patch", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--url", default=None, help="Descriptor URL (defaults to the published Glimesh service)")
@click.option("--timeout", type=float, default=None, help="HTTP timeout in seconds")
@click.option("--platform", default=None, help="Override auto-detected platform (e.g. linux, darwin, windows)")
@click.option(
    "--extra-dir",
    "extra_dirs",
    multiple=True,
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    help="Additional rtmp-services directory to probe (repeatable)",
)
@click.option(
    "--refresh-official/--no-refresh-official",
    default=False,
    show_default=True,
    help="Download the upstream services list as services2.json before patching",
)
@click.option(
    "--pause/--no-pause",
    default=True,
    show_default=True,
    help="Wait for Enter before exiting when attached to a terminal",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Print structured log events to stderr")
@click.pass_context
def cli_patch(
    ctx: click.Context,
    url: Optional[str],
    timeout: Optional[float],
    platform: Optional[str],
    extra_dirs: Sequence[Path],
    refresh_official: bool,
    pause: bool,
    verbose: bool,
) -> None:
    """Inject the service descriptor into every detected services.json.

    Exit status is ``0`` when every file is patched (or already was) and when
    no installation exists, ``1`` when any file failed or the descriptor could
    not be retrieved.
    """

    if verbose:
        _enable_verbose_logging()
    settings = _settings(url=url, timeout=timeout, extra_dirs=extra_dirs)
    try:
        report = run_patch(
            settings,
            refresh_official=refresh_official,
            platform=_normalize_platform(platform),
        )
    except PatcherError as exc:
        click.echo(f"⛔️ {exc}", err=True)
        click.echo("OBS Service Patcher Failed!")
        _finish(ctx, pause, 1)
        return

    _render_report(report, settings)
    if report.status is RunStatus.PARTIAL_FAILURE:
        click.echo(ELEVATION_HINT)
        click.echo("OBS Service Patcher finished with errors.")
        _finish(ctx, pause, 1)
        return
    click.echo("OBS Service Patcher Completed!")
    _finish(ctx, pause, 0)


def _settings(
    *,
    url: Optional[str] = None,
    timeout: Optional[float] = None,
    extra_dirs: Sequence[Path] = (),
) -> PatcherSettings:
    """Combine environment settings with command-line overrides."""

    try:
        base = load_settings()
        combined = tuple(base.extra_dirs) + tuple(extra_dirs)
        return base.with_overrides(descriptor_url=url, timeout=timeout, extra_dirs=combined or None)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _render_report(report: RunReport, settings: PatcherSettings) -> None:
    if report.status is RunStatus.NOTHING_TO_DO:
        click.echo("🔍 No OBS installations found, nothing to do.")
        return
    if report.service is not None:
        click.echo(f"💽 Downloaded {report.service.name} service definition from {settings.descriptor_url}")
    click.echo("")
    for install in report.installations:
        click.echo(f"🔍 Detected {install.label} at: {install.directory}")
    if report.refreshes:
        click.echo("")
        for refresh in report.refreshes:
            click.echo(_refresh_line(refresh))
    click.echo("")
    service_name = report.service.name if report.service is not None else "Service"
    for result in report.results:
        click.echo(_patch_line(result, service_name))
    click.echo("")


def _patch_line(result: PatchResult, service_name: str) -> str:
    return _PATCH_LINES[result.status].format(path=result.path, service=service_name, error=result.error)


def _refresh_line(result: RefreshResult) -> str:
    if result.ok:
        return f"💽 Downloaded fresh services file from {result.source_url}"
    return f"⛔️ Could not refresh {result.target}: {result.error}"


def _finish(ctx: click.Context, pause: bool, code: int) -> None:
    """Keep the window open for interactive users, then exit with *code*."""

    if pause:
        click.pause(EXIT_MESSAGE)
    if code:
        ctx.exit(code)


def _enable_verbose_logging() -> None:
    """Attach a single handler writing to the current ``sys.stderr``.

    A handler left by an earlier invocation is replaced, since ``sys.stderr``
    may have been redirected in the meantime.
    """

    logger = get_logger()
    for existing in [h for h in logger.handlers if h.get_name() == _VERBOSE_HANDLER_NAME]:
        logger.removeHandler(existing)
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_VERBOSE_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s %(context)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def _normalize_platform(platform: Optional[str]) -> Optional[str]:
    """Return a locator-friendly platform identifier or ``None``."""

    if platform is None:
        return None
    alias = platform.strip().lower()
    if not alias:
        return None
    mapping = {
        "linux": "linux",
        "posix": "linux",
        "darwin": "darwin",
        "mac": "darwin",
        "macos": "darwin",
        "win": "win32",
        "win32": "win32",
        "windows": "win32",
    }
    try:
        return mapping[alias]
    except KeyError as exc:
        raise click.BadParameter(
            "Platform must be one of: linux, posix, darwin, mac, macos, win, win32, windows.",
            param_hint="--platform",
        ) from exc


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DISTRIBUTION,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
