"""Report Writer Module - Save run reports as JSON files."""

import json
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..core.types import RunReport


class JSONReportWriter:
    """Write run reports in JSON format."""

    extension = "json"

    def __init__(self, output_dir: Optional[str] = None, indent: int = 2):
        """Initialize the writer.

        Args:
            output_dir: Directory to save reports (default: current directory)
            indent: JSON indentation level
        """
        self.output_dir = Path(output_dir) if output_dir else Path.cwd()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.indent = indent

    def generate(self, report: RunReport) -> bytes:
        json_str = json.dumps(report.to_dict(), indent=self.indent, ensure_ascii=False)
        return json_str.encode("utf-8")

    def generate_filename(
        self,
        diamond_name: str,
        timestamp: Optional[datetime] = None,
        run_number: Optional[int] = None,
    ) -> str:
        """Generate a filename for the report.

        Args:
            diamond_name: Name of the monitored diamond
            timestamp: Timestamp for the report (default: now)
            run_number: Run number when monitoring continuously

        Returns:
            Generated filename
        """
        ts = timestamp or datetime.now()
        ts_str = ts.strftime("%Y%m%d_%H%M%S")
        safe_name = "".join(c if c.isalnum() else "_" for c in diamond_name)
        suffix = f"_run{run_number}" if run_number is not None else ""
        return f"monitoring_{safe_name}_{ts_str}{suffix}.{self.extension}"

    def save(
        self,
        report: RunReport,
        filename: Optional[str] = None,
        run_number: Optional[int] = None,
    ) -> str:
        """Generate and save the report to a file.

        Args:
            report: Report to save
            filename: Custom filename (default: auto-generated)
            run_number: Run number used in the generated filename

        Returns:
            Path to the saved report
        """
        content = self.generate(report)

        if not filename:
            filename = self.generate_filename(report.diamond.name, report.timestamp, run_number)

        output_path = self.output_dir / filename

        with open(output_path, "wb") as f:
            f.write(content)

        return str(output_path)
