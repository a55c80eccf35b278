"""Multi-file batch analysis.

A batch reads up to max_files paths from one repository and analyzes them
one at a time. A file that cannot be fetched or decoded, is empty, or is too
large is recorded as skipped and the batch moves on. A pacer waits between
files to stay under provider rate limits.
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from pathlib import PurePosixPath

from codelens.errors import BatchLimitError, ContentSourceError, InputError
from codelens.language import classify
from codelens.models.batch import (
    AggregateMetrics,
    BatchReport,
    BatchStats,
    FileAnalysis,
    SkippedFile,
)
from codelens.models.repository import RepoRef
from codelens.pipeline import DEFAULT_MAX_FILE_SIZE, AnalysisPipeline
from codelens.sources.base import ContentSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_BATCH_FILES = 20
DEFAULT_PACING_DELAY = 0.2


# =============================================================================
# Pacing
# =============================================================================


class Pacer(ABC):
    """Decides how long to wait between consecutive generation calls."""

    @abstractmethod
    def wait(self) -> None:
        """Block until the next call may start."""
        pass


class FixedDelayPacer(Pacer):
    """Waits a fixed delay between calls."""

    def __init__(
        self,
        delay_seconds: float = DEFAULT_PACING_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if delay_seconds < 0:
            raise ValueError(f"delay_seconds cannot be negative. Got: {delay_seconds}")
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def wait(self) -> None:
        if self.delay_seconds:
            self._sleep(self.delay_seconds)


class NullPacer(Pacer):
    """Never waits."""

    def wait(self) -> None:
        pass


# =============================================================================
# Batch analyzer
# =============================================================================


class BatchAnalyzer:
    """Analyzes a list of repository files sequentially.

    Per-file failures never abort the batch. The report lists analyzed files
    in request order and skipped files with the reason they were skipped.
    """

    def __init__(
        self,
        pipeline: AnalysisPipeline,
        source: ContentSource,
        pacer: Pacer | None = None,
        max_files: int = DEFAULT_MAX_BATCH_FILES,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
    ) -> None:
        """Initialize the batch analyzer.

        Args:
            pipeline: Single-file pipeline
            source: Repository content source
            pacer: Wait strategy between files (FixedDelayPacer by default)
            max_files: Maximum number of paths per batch
            max_file_size: Maximum file size in bytes
        """
        self.pipeline = pipeline
        self.source = source
        self.pacer = pacer if pacer is not None else FixedDelayPacer()
        self.max_files = max_files
        self.max_file_size = max_file_size

    def validate_request(self, repo_ref: RepoRef | None, file_paths: Sequence[str]) -> None:
        """Check batch preconditions before any fetch or generation call.

        Raises:
            InputError: If the repository or paths are missing
            BatchLimitError: If more than max_files paths are requested
        """
        if repo_ref is None:
            raise InputError("Repository is required")
        if not file_paths:
            raise InputError("At least one file path is required")
        if len(file_paths) > self.max_files:
            raise BatchLimitError(len(file_paths), self.max_files)

    def analyze_batch(self, repo_ref: RepoRef, file_paths: Sequence[str]) -> BatchReport:
        """Analyze several files from one repository.

        Args:
            repo_ref: Repository (and optional branch) to read from
            file_paths: Repository-relative paths, analyzed in order

        Returns:
            BatchReport with per-file results, skipped files, and totals

        Raises:
            InputError: If the request fails validation
            BatchLimitError: If too many paths are requested
        """
        self.validate_request(repo_ref, file_paths)

        start = time.perf_counter()
        logger.info("Starting batch of %d files from %s", len(file_paths), repo_ref)

        results: list[FileAnalysis] = []
        skipped: list[SkippedFile] = []

        for index, path in enumerate(file_paths):
            if index > 0:
                self.pacer.wait()

            analysis = self._analyze_path(repo_ref, path, skipped)
            if analysis is not None:
                results.append(analysis)

        with_errors = sum(1 for r in results if r.result.has_errors)
        stats = BatchStats(
            analyzed_files=len(results),
            files_with_errors=with_errors,
            files_without_errors=len(results) - with_errors,
            failed_analysis=len(skipped),
        )

        report = BatchReport(
            repository=repo_ref.full_name,
            branch=repo_ref.ref,
            results=tuple(results),
            skipped_files=tuple(skipped),
            stats=stats,
            aggregate_metrics=AggregateMetrics.from_summaries(
                r.result.summary for r in results
            ),
            processing_time=time.perf_counter() - start,
        )

        logger.info(
            "Batch complete: %d analyzed, %d skipped in %.2fs",
            stats.analyzed_files,
            stats.failed_analysis,
            report.processing_time,
        )
        return report

    def _analyze_path(
        self,
        repo_ref: RepoRef,
        path: str,
        skipped: list[SkippedFile],
    ) -> FileAnalysis | None:
        """Fetch and analyze one path, appending to skipped on failure."""

        def skip(reason: str) -> None:
            logger.warning("Skipping %s: %s", path, reason)
            skipped.append(SkippedFile(path=path, reason=reason))

        try:
            content = self.source.fetch_file_content(repo_ref, path)
        except ContentSourceError as e:
            skip(f"Failed to fetch file content: {e}")
            return None

        if len(content) > self.max_file_size:
            skip(f"File too large ({len(content)} bytes, maximum {self.max_file_size})")
            return None

        try:
            source_text = content.decode("utf-8")
        except UnicodeDecodeError:
            skip("File is not valid UTF-8 text")
            return None

        if not source_text.strip():
            skip("File is empty")
            return None

        filename = PurePosixPath(path).name
        try:
            result = self.pipeline.analyze_one(source_text, filename)
        except InputError as e:
            skip(str(e))
            return None
        except Exception as e:
            logger.exception("Analysis of %s failed unexpectedly", path)
            skip(f"Analysis failed: {e}")
            return None

        return FileAnalysis(
            path=path,
            filename=filename,
            language=classify(filename).language,
            result=result,
        )
