"""codelens CLI interface.

Commands:
- analyze: Review local source files
- files: List analyzable files in a repository
- batch: Review several files from a repository
- check: Validate provider and GitHub availability
- init: Write a default configuration file

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log lines
- --version: Show version and exit

Exit codes:
    0: Completed, nothing to report
    1: Error or rejected request
    2: Completed with findings or skipped files
"""

import json
from pathlib import Path
from typing import Annotated, Any

import typer

from codelens import __version__
from codelens.config import CodelensConfig, create_default_config, load_config
from codelens.errors import CodelensError, ConfigurationError, ContentSourceError, InputError
from codelens.language import classify
from codelens.models.batch import BatchReport
from codelens.models.repository import RepoRef
from codelens.models.result import AnalysisResult
from codelens.sources.base import ContentSource
from codelens.sources.github import GitHubContentSource
from codelens.sources.local import LocalDirectorySource
from codelens.utils.logging import configure_from_cli, get_logger

# Files per analyze call, matching the upload limit of the web flow
MAX_ANALYZE_FILES = 10

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 2

app = typer.Typer(
    name="codelens",
    help="LLM-backed code review for files and repositories",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: CodelensConfig | None = None
_logger = get_logger("codelens.cli")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"codelens {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output with timestamps"),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress info messages (warnings and errors only)"),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option("--ci", help="Emit log lines as JSON"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """codelens - structured code review from a language model."""
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
        if _config.config_path:
            _logger.debug("Loaded config from: %s", _config.config_path)
    except FileNotFoundError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_ERROR)
    except ValueError as e:
        _logger.error("Failed to load config: %s", e)
        raise typer.Exit(EXIT_ERROR)


def _get_config() -> CodelensConfig:
    return _config if _config is not None else CodelensConfig()


def _build_source(config: CodelensConfig, local: Path | None) -> ContentSource:
    if local is not None:
        return LocalDirectorySource(local)
    return GitHubContentSource(
        token=config.github.token,
        timeout=config.github.timeout,
        api_base=config.github.api_base,
    )


def _parse_repo(repo: str, ref: str | None) -> RepoRef:
    try:
        return RepoRef.parse(repo, ref=ref)
    except InputError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_ERROR)


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2))


def _print_result(label: str, language: str, result: AnalysisResult) -> None:
    """Print one file's result in human-readable form."""
    summary = result.summary
    typer.echo(f"\n{label} ({language})")
    typer.echo(
        f"  {summary.total_errors} errors "
        f"({summary.critical_errors} critical, {summary.high_errors} high, "
        f"{summary.medium_errors} medium, {summary.low_errors} low), "
        f"{summary.warnings} suggestions, quality: {summary.code_quality}"
    )

    for error in result.errors:
        typer.echo(
            f"  {label}:{error.line}:{error.column} "
            f"[{error.severity}/{error.level}] {error.type}: {error.message}"
        )

    for suggestion in result.suggestions:
        location = f"line {suggestion.line}" if suggestion.line else "file"
        typer.echo(f"  suggestion ({location}): {suggestion.message}")
        typer.echo(f"    fix: {suggestion.fix}")


def _print_report(report: BatchReport) -> None:
    for item in report.results:
        _print_result(item.path, item.language, item.result)

    if report.skipped_files:
        typer.echo("\nSkipped files:")
        for skipped in report.skipped_files:
            typer.echo(f"  {skipped.path}: {skipped.reason}")

    stats = report.stats
    totals = report.aggregate_metrics
    typer.echo(
        f"\n{report.repository}: {stats.analyzed_files} analyzed "
        f"({stats.files_with_errors} with errors), {stats.failed_analysis} skipped, "
        f"{totals.total_errors} errors in {report.processing_time:.1f}s"
    )


# =============================================================================
# analyze command
# =============================================================================


@app.command()
def analyze(
    files: Annotated[
        list[Path],
        typer.Argument(help="Source files to review", exists=True, dir_okay=False),
    ],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Review local source files.

    Exit codes:
        0: No findings
        1: Error (configuration, unreadable or rejected file)
        2: Findings reported
    """
    from codelens.service import create_service

    if len(files) > MAX_ANALYZE_FILES:
        _logger.error("Too many files: %d (maximum %d per call)", len(files), MAX_ANALYZE_FILES)
        raise typer.Exit(EXIT_ERROR)

    try:
        service = create_service(_get_config())
    except ConfigurationError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_ERROR)

    outputs: list[dict[str, Any]] = []
    failed = False
    has_findings = False

    with service:
        for path in files:
            try:
                source_text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                _logger.error("Could not read %s: %s", path, e)
                failed = True
                continue

            try:
                result = service.analyze_one(source_text, path.name)
            except InputError as e:
                _logger.error(str(e))
                failed = True
                continue

            language = classify(path.name).language
            has_findings = has_findings or result.has_errors

            if json_output:
                outputs.append({"filename": str(path), "language": language, **result.to_dict()})
            else:
                _print_result(str(path), language, result)

    if json_output:
        _echo_json(outputs)

    if failed:
        raise typer.Exit(EXIT_ERROR)
    raise typer.Exit(EXIT_FINDINGS if has_findings else EXIT_OK)


# =============================================================================
# files command
# =============================================================================


@app.command()
def files(
    repo: Annotated[str, typer.Argument(help="Repository as owner/repo or GitHub URL")],
    ref: Annotated[
        str | None,
        typer.Option("--ref", help="Branch, tag, or commit (default branch if omitted)"),
    ] = None,
    local: Annotated[
        Path | None,
        typer.Option(
            "--local",
            help="Read files from a local checkout instead of GitHub",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """List analyzable files in a repository."""
    from codelens.service import select_analyzable_files

    config = _get_config()
    repo_ref = _parse_repo(repo, ref)

    try:
        source = _build_source(config, local)
        listing = select_analyzable_files(
            source.list_files(repo_ref),
            max_file_size=config.analysis.max_file_size,
            max_listed_files=config.analysis.max_listed_files,
        )
    except ContentSourceError as e:
        _logger.error("Failed to list repository files: %s", e)
        raise typer.Exit(EXIT_ERROR)

    if json_output:
        _echo_json({"repository": repo_ref.full_name, "files": [f.to_dict() for f in listing]})
        return

    for item in listing:
        typer.echo(f"{item.path}\t{item.language}\t{item.size}")
    _logger.info("%d analyzable files in %s", len(listing), repo_ref.full_name)


# =============================================================================
# batch command
# =============================================================================


@app.command()
def batch(
    repo: Annotated[str, typer.Argument(help="Repository as owner/repo or GitHub URL")],
    paths: Annotated[list[str], typer.Argument(help="Repository-relative file paths")],
    ref: Annotated[
        str | None,
        typer.Option("--ref", help="Branch, tag, or commit (default branch if omitted)"),
    ] = None,
    local: Annotated[
        Path | None,
        typer.Option(
            "--local",
            help="Read files from a local checkout instead of GitHub",
            exists=True,
            file_okay=False,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
) -> None:
    """Review several files from one repository.

    Exit codes:
        0: All files analyzed, no findings
        1: Request rejected or configuration error
        2: Findings reported or files skipped
    """
    from codelens.service import create_service

    config = _get_config()
    repo_ref = _parse_repo(repo, ref)

    try:
        source = _build_source(config, local)
        with create_service(config, source=source) as service:
            report = service.analyze_batch(repo_ref, paths)
    except CodelensError as e:
        _logger.error(str(e))
        raise typer.Exit(EXIT_ERROR)

    if json_output:
        _echo_json(report.to_dict())
    else:
        _print_report(report)

    if report.stats.files_with_errors or report.stats.failed_analysis:
        raise typer.Exit(EXIT_FINDINGS)
    raise typer.Exit(EXIT_OK)


# =============================================================================
# check command
# =============================================================================


@app.command()
def check(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as JSON"),
    ] = False,
    github: Annotated[
        bool,
        typer.Option("--github", help="Also check GitHub API reachability"),
    ] = False,
    offline: Annotated[
        bool,
        typer.Option("--offline", help="Skip the live provider call"),
    ] = False,
) -> None:
    """Validate that analysis can run.

    Exit codes:
        0: All checks passed
        1: A required check failed
        2: Only optional checks failed (warnings)
    """
    from codelens.utils.preflight import PreflightChecker

    config = _get_config()
    result = PreflightChecker().check_all(
        config.llm,
        check_github=github,
        github_api_base=config.github.api_base,
        github_token=config.github.token,
        connectivity=not offline,
    )

    if json_output:
        _echo_json(result.to_dict())
    else:
        typer.echo("\nPreflight Check Results\n")
        for item in result.checks:
            status = "ok  " if item.available else "FAIL"
            version_str = f" ({item.version})" if item.version else ""
            required_str = "required" if item.required else "optional"
            typer.echo(f"  [{status}] {item.name}{version_str} [{required_str}]")
            if item.message:
                typer.echo(f"         {item.message}")
        typer.echo()

    if result.errors:
        if not json_output:
            typer.echo("Preflight check FAILED")
            for error in result.errors:
                typer.echo(f"  - {error}")
        raise typer.Exit(EXIT_ERROR)

    if result.warnings:
        if not json_output:
            typer.echo("Preflight check passed with WARNINGS")
            for warning in result.warnings:
                typer.echo(f"  - {warning}")
        raise typer.Exit(EXIT_FINDINGS)

    if not json_output:
        typer.echo("All preflight checks passed")
    raise typer.Exit(EXIT_OK)


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite existing config"),
    ] = False,
) -> None:
    """Write a default configuration to .codelens/config.yaml."""
    config_dir = Path(".codelens")
    config_file = config_dir / "config.yaml"

    if config_file.exists() and not force:
        _logger.error("Config already exists: %s", config_file)
        _logger.info("Use --force to overwrite")
        raise typer.Exit(EXIT_ERROR)

    config_dir.mkdir(exist_ok=True)
    config_file.write_text(create_default_config(), encoding="utf-8")

    typer.echo(f"Created {config_file}")
    typer.echo("Set GEMINI_API_KEY (or ANTHROPIC_API_KEY with provider: claude) to start.")


if __name__ == "__main__":
    app()
