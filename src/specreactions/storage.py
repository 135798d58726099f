"""File-based issue dataset storage using JSON format."""

import json
import os
from pathlib import Path

from specreactions.models import IssueRecord


class IssuesStorage:
    """JSON artifact holding the collected issue records.

    The whole dataset is written in one go, replacing any previous file.

    Attributes:
        data_path: Path to the JSON file.
    """

    def __init__(self, data_path: Path):
        """Initialize storage with path to data file.

        Args:
            data_path: Path to the JSON file for storing issues.
        """
        self.data_path = Path(data_path)

    def read(self) -> list[dict]:
        """Load an existing dataset.

        Returns:
            Issue objects as stored, or an empty list if there is no file.
        """
        if not self.data_path.exists():
            return []

        with open(self.data_path, encoding="utf-8") as f:
            return json.load(f)

    def write(self, records: list[IssueRecord]) -> int:
        """Write records as a pretty-printed JSON array.

        The data goes to a temporary file next to the target which is then
        moved into place, so readers never see a partial file.

        Args:
            records: Issue records in dataset order.

        Returns:
            Number of records written.
        """
        text = json.dumps([r.to_dict() for r in records], indent=2, ensure_ascii=False) + "\n"

        self.data_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.data_path.with_name(f".{self.data_path.name}.tmp")
        try:
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, self.data_path)
        finally:
            tmp_path.unlink(missing_ok=True)

        return len(records)
