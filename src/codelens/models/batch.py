"""Batch analysis entities.

- FileAnalysis: One analyzed file and its result
- SkippedFile: A file the batch could not analyze, with the reason
- BatchStats: File counts for the batch
- AggregateMetrics: Per-file summaries summed field by field
- BatchReport: Everything above for one batch call
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from codelens.models.result import AnalysisResult, Summary, empty_level_counts


@dataclass
class FileAnalysis:
    """Analysis result for one file of a batch.

    Attributes:
        path: Repository-relative path
        filename: Base name used for language detection and the cache key
        language: Detected language label
        result: Normalized analysis result
    """

    path: str
    filename: str
    language: str
    result: AnalysisResult

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "path": self.path,
            "filename": self.filename,
            "language": self.language,
            **self.result.to_dict(),
        }


@dataclass
class SkippedFile:
    """File that was not analyzed (fetch failure, oversized, empty)."""

    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {"path": self.path, "reason": self.reason}


@dataclass
class BatchStats:
    """File counts for a batch.

    files_with_errors + files_without_errors == analyzed_files.
    """

    analyzed_files: int = 0
    files_with_errors: int = 0
    files_without_errors: int = 0
    failed_analysis: int = 0

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for serialization."""
        return {
            "analyzedFiles": self.analyzed_files,
            "filesWithErrors": self.files_with_errors,
            "filesWithoutErrors": self.files_without_errors,
            "failedAnalysis": self.failed_analysis,
        }


@dataclass
class AggregateMetrics:
    """Field-wise sum of per-file summaries."""

    total_errors: int = 0
    critical_errors: int = 0
    high_errors: int = 0
    medium_errors: int = 0
    low_errors: int = 0
    warnings: int = 0
    errors_by_level: dict[str, int] = field(default_factory=empty_level_counts)
    errors_by_type: dict[str, int] = field(default_factory=dict)

    def add(self, summary: Summary) -> None:
        """Add one file's summary to the totals."""
        self.total_errors += summary.total_errors
        self.critical_errors += summary.critical_errors
        self.high_errors += summary.high_errors
        self.medium_errors += summary.medium_errors
        self.low_errors += summary.low_errors
        self.warnings += summary.warnings
        for level, count in summary.errors_by_level.items():
            self.errors_by_level[level] = self.errors_by_level.get(level, 0) + count
        for error_type, count in summary.errors_by_type.items():
            self.errors_by_type[error_type] = self.errors_by_type.get(error_type, 0) + count

    @classmethod
    def from_summaries(cls, summaries: Iterable[Summary]) -> "AggregateMetrics":
        """Sum an iterable of summaries."""
        metrics = cls()
        for summary in summaries:
            metrics.add(summary)
        return metrics

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "totalErrors": self.total_errors,
            "criticalErrors": self.critical_errors,
            "highErrors": self.high_errors,
            "mediumErrors": self.medium_errors,
            "lowErrors": self.low_errors,
            "warnings": self.warnings,
            "errorsByLevel": dict(self.errors_by_level),
            "errorsByType": dict(self.errors_by_type),
        }


@dataclass(frozen=True)
class BatchReport:
    """Aggregated report for a batch of files.

    Created once per batch call and not modified afterwards.

    Attributes:
        repository: "owner/repo" of the analyzed repository
        branch: Branch or commit the files were read from (None for default)
        results: Analyzed files in request order
        skipped_files: Files that could not be analyzed
        stats: File counts
        aggregate_metrics: Summed summaries of all analyzed files
        processing_time: Wall time of the batch in seconds
    """

    repository: str
    branch: str | None
    results: tuple[FileAnalysis, ...]
    skipped_files: tuple[SkippedFile, ...]
    stats: BatchStats
    aggregate_metrics: AggregateMetrics
    processing_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "repository": self.repository,
            "branch": self.branch,
            "results": [r.to_dict() for r in self.results],
            "skippedFiles": [s.to_dict() for s in self.skipped_files],
            "stats": self.stats.to_dict(),
            "aggregateMetrics": self.aggregate_metrics.to_dict(),
            "processingTime": round(self.processing_time, 3),
        }
