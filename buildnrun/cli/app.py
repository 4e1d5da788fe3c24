"""Main Typer application for the ``buildnrun`` command.

Entry point: ``buildnrun`` (configured via pyproject.toml [project.scripts]).

Options before the first positional argument configure the watcher and the
build; everything from the first positional argument on (or after ``--``)
is handed to the executable untouched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from buildnrun import __description__, __version__
from buildnrun.config import Settings
from buildnrun.core.build_invoker import BuildDriverError, BuildInvoker
from buildnrun.core.event_source import EventSource, EventSourceError
from buildnrun.core.ignore import IgnoreMatcher
from buildnrun.core.manifest import ConfigurationError, resolve_binary_name
from buildnrun.core.supervision_loop import SupervisionLoop
from buildnrun.core.supervisor import ProcessSupervisor
from buildnrun.models.config import ColorMode, WatchConfig
from buildnrun.monitor.renderer import StatusRenderer

logger = logging.getLogger(__name__)

err_console = Console(stderr=True)

app = typer.Typer(
    name="buildnrun",
    help=__description__ + ".",
    rich_markup_mode="rich",
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"buildnrun {__version__}")
        raise typer.Exit()


def _configure_logging(level: str, quiet: bool) -> None:
    """Route log records through Rich on stderr."""
    logging.basicConfig(
        level=logging.WARNING if quiet else level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _ignore_patterns(target_dir: Path, root: Path) -> list[str]:
    """Built-in ignore patterns: the build output directory and git metadata."""
    patterns = [".git/"]
    if target_dir.is_absolute():
        try:
            target_dir = target_dir.relative_to(root)
        except ValueError:
            return patterns
    rel = target_dir.as_posix().strip("/")
    if rel and rel != ".":
        patterns.append(f"/{rel}/")
    return patterns


def run_watcher(config: WatchConfig, settings: Settings) -> None:
    """Set up the components and run the supervision loop forever."""
    root = Path.cwd()
    matcher = IgnoreMatcher.from_root(
        root,
        extra_patterns=_ignore_patterns(config.effective_target_dir(), root),
    )
    logger.debug("Ignore rules loaded from: %s", ", ".join(matcher.sources) or "(none)")

    source = EventSource(
        config.effective_watch_roots(),
        debounce=settings.debounce_seconds,
        queue_size=settings.event_queue_size,
        poll_interval=settings.receive_poll_seconds,
    )
    with source:
        loop = SupervisionLoop(
            config,
            source,
            BuildInvoker(settings.build_driver),
            ProcessSupervisor(),
            matcher,
            renderer=StatusRenderer(err_console, quiet=config.quiet),
        )
        loop.run()


@app.command(
    context_settings={
        "allow_interspersed_args": False,
        "help_option_names": ["-h", "--help"],
    },
)
def watch_cmd(
    run_args: Optional[List[str]] = typer.Argument(
        None, help="Arguments passed to the executable."
    ),
    watch: Optional[List[Path]] = typer.Option(
        None, "--watch", "-w", help="Directory to watch (repeatable). Defaults to '.'."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only report failures; also passed to the build."
    ),
    bin_name: Optional[str] = typer.Option(
        None, "--bin", "-b", help="Binary to build and run. Defaults to the manifest's binary."
    ),
    package: Optional[str] = typer.Option(None, "--package", "-p", help="Package to build."),
    jobs: Optional[int] = typer.Option(
        None, "--jobs", "-j", min=1, help="Number of parallel build jobs."
    ),
    release: bool = typer.Option(
        False, "--release", "-r", help="Build with the release profile."
    ),
    profile: Optional[str] = typer.Option(None, "--profile", help="Build with the given profile."),
    features: Optional[List[str]] = typer.Option(
        None, "--features", "-F", help="Feature to activate (repeatable)."
    ),
    all_features: bool = typer.Option(
        False, "--all-features", help="Activate all available features."
    ),
    no_default_features: bool = typer.Option(
        False, "--no-default-features", help="Do not activate the default feature."
    ),
    target: Optional[str] = typer.Option(
        None, "--target", "--triple", help="Build for the target triple."
    ),
    target_dir: Optional[Path] = typer.Option(
        None, "--target-dir", help="Directory for generated artifacts. Defaults to 'target'."
    ),
    manifest_path: Optional[Path] = typer.Option(
        None, "--manifest-path", help="Path to Cargo.toml."
    ),
    message_format: Optional[str] = typer.Option(
        None, "--message-format", help="Error format passed to the build."
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Build verbosity (repeatable)."
    ),
    color: Optional[ColorMode] = typer.Option(
        None, "--color", case_sensitive=False, help="Coloring of build output."
    ),
    frozen: bool = typer.Option(False, "--frozen", help="Require Cargo.lock and cache are up to date."),
    locked: bool = typer.Option(False, "--locked", help="Require Cargo.lock is up to date."),
    offline: bool = typer.Option(False, "--offline", help="Run without accessing the network."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the version and exit.",
    ),
) -> None:
    """Rebuild the binary on every change and restart it after each successful build."""
    try:
        settings = Settings()
        _configure_logging(settings.log_level, quiet)
        binary_name = bin_name or resolve_binary_name(manifest_path)
        config = WatchConfig(
            watch_roots=watch or [],
            quiet=quiet,
            binary_name=binary_name,
            package=package,
            jobs=jobs,
            release_mode=release,
            profile=profile,
            features=features or [],
            all_features=all_features,
            no_default_features=no_default_features,
            target_triple=target,
            target_dir=target_dir,
            manifest_path=manifest_path,
            message_format=message_format,
            verbose=verbose,
            color=color,
            frozen=frozen,
            locked=locked,
            offline=offline,
            run_args=run_args or [],
        )
    except ConfigurationError as exc:
        err_console.print(f"[bold red]Configuration error:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except ValidationError as exc:
        err_console.print(f"[bold red]Invalid configuration:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    try:
        run_watcher(config, settings)
    except (BuildDriverError, EventSourceError) as exc:
        err_console.print(f"[bold red]Fatal:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        raise typer.Exit(code=130)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
