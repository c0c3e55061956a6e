"""Main CLI application for Opus."""

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, cast

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from opus import __version__
from opus.config.schemas import INTEGRITY_LEVELS, IntegrityLevel
from opus.core.installer import DISABLE_ENV, OperationResult, OpusInstaller, is_disabled
from opus.core.ledger import LedgerManager
from opus.core.package import Package
from opus.core.project import Project
from opus.errors import ConfigurationError, OpusError
from opus.host.console import ConsoleIO
from opus.host.local import LocalRepository

# Create the main Typer app
app = typer.Typer(
    name="opus",
    help="Copy files declared by installed packages into your project and keep them reconciled",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the opus package
logger = logging.getLogger("opus")

PathOption = Annotated[
    Path | None,
    typer.Option(
        "--path",
        "-p",
        help="Project directory",
    ),
]


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2=DEBUG, 3+=DEBUG with source paths
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}", highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}", highlight=False)


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}", highlight=False)


def get_project(path: Path | None = None) -> Project:
    """Get the current project, raising an error if not found."""
    try:
        return Project.load(path)
    except FileNotFoundError as e:
        print_error(str(e))
        print_error("Run 'opus init' to create a new project")
        raise typer.Exit(1) from e
    except ConfigurationError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_packages(repository: LocalRepository) -> list[Package]:
    """List installed packages, exiting if a manifest is unreadable."""
    try:
        return repository.get_packages()
    except OpusError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_package(repository: LocalRepository, name: str) -> Package:
    """Look up an installed package, raising an error if not found."""
    package = next((p for p in get_packages(repository) if p.name == name), None)
    if package is None:
        print_error(f"Package not installed: {name}")
        raise typer.Exit(1)
    return package


def report(result: OperationResult) -> None:
    """Print the outcome of a single hook."""
    if result.skipped:
        console.print(f"[dim]{result.message}[/dim]", highlight=False)
        return
    print_success(result.message)
    for warning in result.warnings:
        print_warning(f"  {warning}")


def run_batch(
    project: Project,
    repository: LocalRepository,
    operations: list[tuple[str, Callable[[OpusInstaller], OperationResult]]],
) -> None:
    """Run hooks inside one installer activation.

    A failing package is reported and the batch moves on; the command
    exits with status 1 if any package failed.
    """
    failed = False
    try:
        with OpusInstaller(project, repository, ConsoleIO(console)) as installer:
            for name, operation in operations:
                try:
                    report(operation(installer))
                except OpusError as e:
                    failed = True
                    print_error(f"Failed to process {name}: {e}")
    except OpusError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if failed:
        raise typer.Exit(1)


def check_enabled() -> bool:
    """Report and return False when Opus is disabled through the environment."""
    if is_disabled():
        print_warning(f"Opus is disabled ({DISABLE_ENV} is set), nothing to do")
        return False
    return True


@app.callback()
def callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug, -vvv trace)",
        ),
    ] = 0,
) -> None:
    """Opus - package file installer with conflict-aware reconciliation."""
    setup_logging(verbose)


@app.command()
def version() -> None:
    """Show the Opus version."""
    console.print(f"opus {__version__}")


@app.command()
def init(
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Project name (defaults to directory name)",
        ),
    ] = None,
    integrity: Annotated[
        str,
        typer.Option(
            "--integrity",
            "-i",
            help="Integrity level: low, medium or high",
        ),
    ] = "medium",
    path: PathOption = None,
) -> None:
    """Initialize a new Opus project.

    Creates an opus.yaml manifest with the plugin enabled.
    """
    path = Path.cwd() if path is None else path.resolve()

    if not path.exists():
        print_error(f"Directory does not exist: {path}")
        raise typer.Exit(1)

    level = integrity.lower()
    if level not in INTEGRITY_LEVELS:
        print_error(f"Unknown integrity level: {integrity}")
        raise typer.Exit(1)

    try:
        project = Project.init(path, name or path.name, integrity=cast(IntegrityLevel, level))
    except FileExistsError as e:
        print_error(f"Project already initialized in {path}")
        raise typer.Exit(1) from e

    print_success(f"Initialized Opus project {project.name}")
    console.print(f"  Created: {path / 'opus.yaml'}")


@app.command()
def install(
    packages: Annotated[
        list[str] | None,
        typer.Argument(help="Installed packages to copy files from (all when omitted)"),
    ] = None,
    path: PathOption = None,
) -> None:
    """Copy files from installed packages into the project."""
    if not check_enabled():
        return

    project = get_project(path)
    repository = LocalRepository(project.vendor_dir)

    if packages:
        selected = [get_package(repository, name) for name in packages]
    else:
        selected = get_packages(repository)

    if not selected:
        console.print("No packages to install")
        return

    console.print(f"Installing files from {len(selected)} package(s)...")
    run_batch(
        project,
        repository,
        [(p.name, lambda installer, p=p: installer.install(p)) for p in selected],
    )


@app.command()
def update(
    package: Annotated[
        str,
        typer.Argument(help="Installed package to update"),
    ],
    previous: Annotated[
        Path | None,
        typer.Option(
            "--from",
            "-f",
            help="Root of the previously installed version (defaults to the installed one)",
        ),
    ] = None,
    path: PathOption = None,
) -> None:
    """Reconcile the project after a package was updated.

    Paths only the previous version owned are removed; changed files are
    copied or offered for conflict resolution.
    """
    if not check_enabled():
        return

    project = get_project(path)
    repository = LocalRepository(project.vendor_dir)
    target = get_package(repository, package)

    if previous is None:
        initial = target
    else:
        try:
            initial = Package.load(previous)
        except (FileNotFoundError, ConfigurationError) as e:
            print_error(str(e))
            raise typer.Exit(1) from e

    run_batch(
        project,
        repository,
        [(target.name, lambda installer: installer.update(initial, target))],
    )


@app.command()
def uninstall(
    packages: Annotated[
        list[str],
        typer.Argument(help="Packages whose files should be removed"),
    ],
    path: PathOption = None,
) -> None:
    """Remove files copied from packages, keeping anything still claimed."""
    if not check_enabled():
        return

    project = get_project(path)
    repository = LocalRepository(project.vendor_dir)
    selected = [get_package(repository, name) for name in packages]

    run_batch(
        project,
        repository,
        [(p.name, lambda installer, p=p: installer.uninstall(p)) for p in selected],
    )


@app.command("map")
def show_map(
    owner: Annotated[
        str | None,
        typer.Argument(help="Only show paths claimed by this package"),
    ] = None,
    path: PathOption = None,
) -> None:
    """Show the paths tracked in opus.map."""
    project = get_project(path)
    manager = LedgerManager(project.root)

    try:
        ledger = manager.load()
    except OpusError as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    rows = [
        (key, sorted(owners))
        for key, owners in sorted(ledger.owners.items())
        if owner is None or owner in owners
    ]

    if not rows:
        console.print("No paths tracked by Opus")
        return

    table = Table(title="Installation Map")
    table.add_column("Path", style="cyan", no_wrap=True)
    table.add_column("Owners", style="green")
    table.add_column("Checksum", style="dim", overflow="fold")

    for key, owners in rows:
        table.add_row(key, ", ".join(owners), ledger.get_checksum(key) or "")

    console.print(table)
    console.print(f"\n[dim]Total: {len(rows)} path(s)[/dim]")


if __name__ == "__main__":
    app()
