#!/usr/bin/env python3
"""CSV report output for inventory data."""

import csv
from pathlib import Path
from typing import Dict, List, Any, Optional
from runner_ami.core import constants
from runner_ami.utils.logger import setup_logger


class CSVReportGenerator:
    """Simple CSV report generator."""

    def __init__(self, output_dir: str = "results"):
        """Initialize the CSV report generator."""
        self.output_dir = output_dir
        self.logger = setup_logger(__name__, "report_generator.log")
        self._ensure_output_dir()

    def _ensure_output_dir(self) -> None:
        """Ensure the output directory exists."""
        Path(self.output_dir).mkdir(parents=True, exist_ok=True)

    def generate_report(
        self,
        data: List[Dict[str, Any]],
        filename: str,
        fieldnames: Optional[List[str]] = None,
    ) -> Optional[Path]:
        """Generate a CSV report and return its path (None when there is no data)."""
        if not data:
            self.logger.warning(f"No data provided for report {filename}")
            return None

        if not filename.endswith(constants.DEFAULT_REPORT_EXTENSION):
            filename = f"{filename}{constants.DEFAULT_REPORT_EXTENSION}"

        output_path = Path(self.output_dir) / filename

        # Get fieldnames - use provided order or first row's order
        if fieldnames is None:
            fieldnames = list(data[0].keys())
            for item in data[1:]:
                fieldnames.extend(k for k in item if k not in fieldnames)

        with open(output_path, "w", newline="", encoding="utf-8") as csvfile:
            writer = csv.DictWriter(csvfile, fieldnames=fieldnames)
            writer.writeheader()
            writer.writerows(data)

        self.logger.info(f"CSV report generated: {output_path} ({len(data)} records)")
        return output_path
