"""Service boundary for file and repository analysis.

AnalysisService is what outer surfaces (CLI, HTTP handlers) call. It wires
the single-file pipeline, the batch analyzer, and the content source
together, and records each completed analysis in the history store.
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import PurePosixPath
from typing import Any

from codelens.batch import BatchAnalyzer, FixedDelayPacer
from codelens.cache import AnalysisCache, CacheSweeper
from codelens.config import CodelensConfig
from codelens.history import AnalysisRecorder, JsonHistoryRecorder
from codelens.language import detect_language, is_supported
from codelens.llm.client import create_client
from codelens.models.batch import BatchReport, FileAnalysis
from codelens.models.record import AnalysisRecord
from codelens.models.repository import FileMeta, RepoRef
from codelens.models.result import AnalysisResult
from codelens.pipeline import DEFAULT_MAX_FILE_SIZE, AnalysisPipeline
from codelens.sources.base import ContentSource, RemoteFile
from codelens.sources.github import GitHubContentSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_LISTED_FILES = 1000


def select_analyzable_files(
    remote_files: Iterable[RemoteFile],
    max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    max_listed_files: int = DEFAULT_MAX_LISTED_FILES,
) -> list[FileMeta]:
    """Filter a repository listing down to files worth analyzing.

    Keeps supported file types outside dependency and build directories
    that are no larger than max_file_size.

    Returns:
        Files sorted by path, at most max_listed_files
    """
    files = [
        FileMeta(path=f.path, size=f.size, language=detect_language(f.path))
        for f in remote_files
        if is_supported(f.path) and f.size <= max_file_size
    ]
    files.sort(key=lambda f: f.path)

    if len(files) > max_listed_files:
        logger.info("Listing first %d of %d analyzable files", max_listed_files, len(files))
        files = files[:max_listed_files]

    return files


class AnalysisService:
    """Entry point for analyses.

    Attributes:
        pipeline: Single-file pipeline
        batch: Batch analyzer
        source: Content source for repository operations
        recorder: History recorder (None disables recording)
        max_listed_files: Cap on list_repo_files results
        sweeper: Background cache sweeper, run between start() and close()

    Usable as a context manager:

        with create_service(config) as service:
            service.analyze_one(source_text, "app.py")
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        batch: BatchAnalyzer,
        source: ContentSource,
        recorder: AnalysisRecorder | None = None,
        max_listed_files: int = DEFAULT_MAX_LISTED_FILES,
        sweeper: CacheSweeper | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.batch = batch
        self.source = source
        self.recorder = recorder
        self.max_listed_files = max_listed_files
        self.sweeper = sweeper

    def start(self) -> None:
        """Start background cache maintenance."""
        if self.sweeper is not None:
            self.sweeper.start()

    def close(self) -> None:
        """Stop background cache maintenance."""
        if self.sweeper is not None:
            self.sweeper.stop()

    def __enter__(self) -> "AnalysisService":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def analyze_one(self, source_text: str, filename: str) -> AnalysisResult:
        """Analyze one file and record it.

        Raises:
            InputError: If the source is empty or too large
        """
        result = self.pipeline.analyze_one(source_text, filename)

        name = PurePosixPath(filename).name or filename
        self._record(
            AnalysisRecord.from_results(
                "file",
                [
                    FileAnalysis(
                        path=filename,
                        filename=name,
                        language=detect_language(filename),
                        result=result,
                    )
                ],
            )
        )
        return result

    def analyze_batch(self, repo_ref: RepoRef, file_paths: Sequence[str]) -> BatchReport:
        """Analyze several repository files and record the batch.

        Raises:
            InputError: If the request is missing the repository or paths
            BatchLimitError: If too many paths are requested
        """
        report = self.batch.analyze_batch(repo_ref, file_paths)
        self._record(
            AnalysisRecord.from_results(
                "repository",
                report.results,
                repository_name=report.repository,
                branch=report.branch,
            )
        )
        return report

    def list_repo_files(self, repo_ref: RepoRef) -> list[FileMeta]:
        """List analyzable files in a repository.

        Returns:
            Files sorted by path, at most max_listed_files

        Raises:
            ContentSourceError: If the listing fails
        """
        return select_analyzable_files(
            self.source.list_files(repo_ref),
            max_file_size=self.pipeline.max_file_size,
            max_listed_files=self.max_listed_files,
        )

    def cache_status(self) -> dict[str, Any]:
        """Describe the result cache (size, limits, one record per entry)."""
        return self.pipeline.cache.status()

    def cache_analytics(self) -> dict[str, Any]:
        """Summarize cached results by language."""
        return self.pipeline.cache.analytics()

    def clear_cache(self) -> int:
        """Drop every cached result.

        Returns:
            Number of entries removed
        """
        return self.pipeline.cache.clear()

    def _record(self, record: AnalysisRecord) -> None:
        """Hand a record to the recorder; failures never reach the caller."""
        if self.recorder is None:
            return
        try:
            self.recorder.record_analysis(record)
        except Exception as e:
            logger.warning("Failed to record analysis history: %s", e)


def create_service(
    config: CodelensConfig,
    source: ContentSource | None = None,
    recorder: AnalysisRecorder | None = None,
) -> AnalysisService:
    """Build an AnalysisService from configuration.

    Args:
        config: Loaded configuration
        source: Content source (GitHub by default)
        recorder: History recorder (JSON history file by default when enabled)

    Returns:
        Ready-to-use AnalysisService

    Raises:
        ConfigurationError: If the provider credential is missing
    """
    client = create_client(config.llm)
    cache = AnalysisCache(
        ttl_seconds=config.cache.ttl_seconds,
        max_entries=config.cache.max_entries,
    )
    pipeline = AnalysisPipeline(
        client,
        cache,
        max_file_size=config.analysis.max_file_size,
    )

    if source is None:
        source = GitHubContentSource(
            token=config.github.token,
            timeout=config.github.timeout,
            api_base=config.github.api_base,
        )

    batch = BatchAnalyzer(
        pipeline,
        source,
        pacer=FixedDelayPacer(config.analysis.pacing_delay),
        max_files=config.analysis.max_batch_files,
        max_file_size=config.analysis.max_file_size,
    )

    if recorder is None and config.history.enabled:
        recorder = JsonHistoryRecorder(config.history.path)

    return AnalysisService(
        pipeline,
        batch,
        source,
        recorder=recorder,
        max_listed_files=config.analysis.max_listed_files,
        sweeper=CacheSweeper(cache, interval_seconds=config.cache.sweep_interval),
    )
