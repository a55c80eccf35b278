"""Analysis history record.

AnalysisRecord is the summary handed to the persistence collaborator after an
analysis completes. It carries counts only, never source text.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from codelens.models.batch import FileAnalysis


@dataclass
class AnalysisRecord:
    """Summary of one analysis run for the history store.

    Attributes:
        analysis_type: "file" or "repository"
        repository_name: "owner/repo" for repository analyses
        file_count: Number of analyzed files
        total_errors: Sum of findings across files
        critical_errors: Findings with severity critical
        high_errors: Findings with severity high
        medium_errors: Findings with severity medium
        low_errors: Findings with severity low
        analysis_data: Per-file breakdown (filename, error count, language)
        timestamp: Record creation time (UTC)
    """

    analysis_type: str
    file_count: int
    total_errors: int = 0
    critical_errors: int = 0
    high_errors: int = 0
    medium_errors: int = 0
    low_errors: int = 0
    repository_name: str | None = None
    analysis_data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Ensure timestamp is timezone-aware UTC."""
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=UTC)

    @classmethod
    def from_results(
        cls,
        analysis_type: str,
        files: Sequence[FileAnalysis],
        repository_name: str | None = None,
        branch: str | None = None,
    ) -> "AnalysisRecord":
        """Build a record from analyzed files.

        Args:
            analysis_type: "file" or "repository"
            files: Analyzed files
            repository_name: Repository for repository analyses
            branch: Branch the files were read from

        Returns:
            AnalysisRecord with summed severity counts
        """
        summaries = [f.result.summary for f in files]
        return cls(
            analysis_type=analysis_type,
            repository_name=repository_name,
            file_count=len(files),
            total_errors=sum(s.total_errors for s in summaries),
            critical_errors=sum(s.critical_errors for s in summaries),
            high_errors=sum(s.high_errors for s in summaries),
            medium_errors=sum(s.medium_errors for s in summaries),
            low_errors=sum(s.low_errors for s in summaries),
            analysis_data={
                "repository": repository_name,
                "branch": branch,
                "results": [
                    {
                        "filename": f.filename,
                        "errors": len(f.result.errors),
                        "language": f.language,
                    }
                    for f in files
                ],
            },
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "analysis_type": self.analysis_type,
            "repository_name": self.repository_name,
            "file_count": self.file_count,
            "total_errors": self.total_errors,
            "critical_errors": self.critical_errors,
            "high_errors": self.high_errors,
            "medium_errors": self.medium_errors,
            "low_errors": self.low_errors,
            "analysis_data": self.analysis_data,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalysisRecord":
        """Create an AnalysisRecord from its serialized form."""
        return cls(
            analysis_type=str(data.get("analysis_type", "file")),
            repository_name=data.get("repository_name"),
            file_count=int(data.get("file_count", 0)),
            total_errors=int(data.get("total_errors", 0)),
            critical_errors=int(data.get("critical_errors", 0)),
            high_errors=int(data.get("high_errors", 0)),
            medium_errors=int(data.get("medium_errors", 0)),
            low_errors=int(data.get("low_errors", 0)),
            analysis_data=dict(data.get("analysis_data") or {}),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
