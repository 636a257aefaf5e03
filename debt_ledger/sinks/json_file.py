"""JSON file sink for exporting reports and views."""

import json
import logging
from pathlib import Path
from typing import Any

from debt_ledger.sinks.serialization import to_json_dict

logger = logging.getLogger(__name__)


class JsonFileSink:
    """Output views and reports to JSON files."""

    def __init__(self, output_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file sink.

        Parameters
        ----------
        output_dir : str | Path
            Directory to write JSON files.
        pretty : bool
            Pretty-print JSON output.
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def write_batch(self, entity_type: str, records: list[Any]) -> Path:
        """Write a list of records to ``<entity_type>.json``."""
        data = [to_json_dict(record) for record in records]
        path = self._dump(entity_type, data)
        self._counts[entity_type] = len(records)
        return path

    def write_report(self, name: str, report: Any) -> Path:
        """Write a single object to ``<name>.json``."""
        path = self._dump(name, to_json_dict(report))
        self._counts[name] = 1
        return path

    def close(self) -> None:
        """Log a summary of written files."""
        logger.info("JSON files written to: %s", self.output_dir)
        for entity_type, count in self._counts.items():
            logger.info("  %s: %d records", entity_type, count)

    def _dump(self, name: str, data: Any) -> Path:
        file_path = self.output_dir / f"{name}.json"
        with open(file_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            else:
                json.dump(data, f, ensure_ascii=False, default=str)
        return file_path
