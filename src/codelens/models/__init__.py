"""codelens data models.

This module exports the core entities used throughout the application:
- AnalysisResult: Validated report for one file (findings, suggestions, metrics, summary)
- Finding / Suggestion: Individual report items
- BatchReport: Aggregated report for a batch of files
- RepoRef / FileMeta: Repository reference and listed file
- AnalysisRecord: History record handed to the persistence collaborator
- LLMConfig: Generation provider configuration
"""

from codelens.models.batch import (
    AggregateMetrics,
    BatchReport,
    BatchStats,
    FileAnalysis,
    SkippedFile,
)
from codelens.models.llm_config import VALID_PROVIDERS, LLMConfig
from codelens.models.record import AnalysisRecord
from codelens.models.repository import FileMeta, RepoRef
from codelens.models.result import (
    LEVELS,
    SEVERITIES,
    AnalysisResult,
    CodeMetrics,
    Finding,
    Suggestion,
    Summary,
)

__all__ = [
    "AggregateMetrics",
    "AnalysisRecord",
    "AnalysisResult",
    "BatchReport",
    "BatchStats",
    "CodeMetrics",
    "FileAnalysis",
    "FileMeta",
    "Finding",
    "LEVELS",
    "LLMConfig",
    "RepoRef",
    "SEVERITIES",
    "SkippedFile",
    "Suggestion",
    "Summary",
    "VALID_PROVIDERS",
]
