"""
ReportStore Class - Handles file I/O operations

This module persists flushed error reports as JSONL.
"""

import json
import os
from typing import Iterable, List

from models.data_models import ErrorReport, HealthStatus
from services.parser import ReportParser


class ReportStore:
    """
    Manages the report file.
    Responsibilities:
    - Append flushed reports
    - Read stored lines and reports back
    - Provide file statistics
    """

    def __init__(self, file_path: str):
        self.file_path = file_path

    def append_reports(self, reports: Iterable[ErrorReport]) -> int:
        """Append reports as JSON lines, returns the number written"""
        self._ensure_parent_dir()

        written = 0
        with open(self.file_path, "a", encoding="utf-8") as f:
            for report in reports:
                f.write(json.dumps(ReportParser.report_to_dict(report), ensure_ascii=False) + "\n")
                written += 1
        return written

    def read_lines(self) -> Iterable[str]:
        """Iterator over raw lines in the report file"""
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        yield line
        except FileNotFoundError:
            return

    def load_reports(self) -> List[ErrorReport]:
        """Stored reports in file order; unreadable lines are skipped"""
        reports: List[ErrorReport] = []

        for line in self.read_lines():
            raw = ReportParser.parse_json(line)
            if raw:
                report = ReportParser.report_from_dict(raw)
                if report:
                    reports.append(report)

        return reports

    def stat(self) -> HealthStatus:
        """Get file statistics"""
        exists = os.path.exists(self.file_path)
        size_bytes = os.path.getsize(self.file_path) if exists else 0
        total_lines = sum(1 for _ in self.read_lines()) if exists else 0

        return HealthStatus(
            status="ok",
            store_exists=exists,
            path=os.path.abspath(self.file_path),
            size_bytes=size_bytes,
            total_lines=total_lines,
        )

    def _ensure_parent_dir(self) -> None:
        """Create parent directories if needed"""
        os.makedirs(os.path.dirname(os.path.abspath(self.file_path)), exist_ok=True)
