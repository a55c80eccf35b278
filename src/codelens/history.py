"""Analysis history persistence.

After each analysis the service hands an AnalysisRecord to a recorder.
Recording is fire-and-forget: failures are logged by the caller and never
change the analysis outcome.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from codelens.models.record import AnalysisRecord

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_PATH = Path(".codelens") / "analysis_history.json"


class AnalysisRecorder(ABC):
    """Interface for storing analysis records."""

    @abstractmethod
    def record_analysis(self, record: AnalysisRecord) -> None:
        """Persist one record.

        Args:
            record: Summary of a completed analysis
        """
        pass


class JsonHistoryRecorder(AnalysisRecorder):
    """Stores records newest-first in a JSON file."""

    def __init__(self, path: Path | str = DEFAULT_HISTORY_PATH, max_records: int = 1000) -> None:
        """Initialize the recorder.

        Args:
            path: History file location
            max_records: Oldest records beyond this count are dropped
        """
        self.path = Path(path)
        self.max_records = max_records

    def load_history(self) -> list[AnalysisRecord]:
        """Load stored records.

        Returns:
            Records, newest first (empty if the file is missing or unreadable)
        """
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [AnalysisRecord.from_dict(item) for item in data.get("records", [])]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Failed to load analysis history: %s", e)
            return []

    def record_analysis(self, record: AnalysisRecord) -> None:
        history = self.load_history()
        history.insert(0, record)
        del history[self.max_records :]

        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"records": [r.to_dict() for r in history]}
        # The history file is only ever replaced whole
        staging = self.path.with_name(self.path.name + ".tmp")
        staging.write_text(json.dumps(data, indent=2), encoding="utf-8")
        staging.replace(self.path)
        logger.debug(
            "Saved %s analysis record (%d files) to %s",
            record.analysis_type,
            record.file_count,
            self.path,
        )
