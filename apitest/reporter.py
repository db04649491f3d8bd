from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from colorama import Fore, Style, init

from apitest.runner import RequestReport, RunSummary


@dataclass
class ReportEntry:
    name: str
    passed: bool
    message: str
    details: List[str]


class Reporter:
    def __init__(self, use_color: bool = True, title: Optional[str] = None) -> None:
        if use_color:
            init(autoreset=True)
        self.use_color = use_color
        self.title = title
        self.entries: List[ReportEntry] = []

    def add_report(self, report: RequestReport) -> None:
        status_display = report.status_code if report.status_code is not None else "ERR"
        message = f"{report.method} {report.url} - HTTP {status_display}, {report.duration_seconds * 1000:.1f}ms"
        if report.fields_skipped:
            message += ", field checks skipped (non-JSON response)"

        details: List[str] = []
        for failure in report.failures:
            label = failure.selector if failure.rule == "status" else f"{failure.selector} [{failure.rule}]"
            details.append(f"{label}: {failure.message}")
        if report.error:
            details.append(report.error)

        self.entries.append(
            ReportEntry(name=report.name, passed=report.passed, message=message, details=details)
        )

    def add_summary(self, summary: RunSummary) -> None:
        for report in summary.reports:
            self.add_report(report)

    @property
    def has_failures(self) -> bool:
        return any(not entry.passed for entry in self.entries)

    def render(self, use_color: Optional[bool] = None) -> str:
        colored = self.use_color if use_color is None else use_color
        lines = ["========== TEST REPORT =========="]
        if self.title:
            lines.append(self.title)

        for entry in self.entries:
            marker = "[PASS]" if entry.passed else "[FAIL]"
            if colored:
                color = Fore.GREEN if entry.passed else Fore.RED
                marker = f"{color}{marker}{Style.RESET_ALL}"
            lines.append(f"{marker} {entry.name}: {entry.message}")
            lines.extend(f"    - {detail}" for detail in entry.details)

        failed_count = sum(1 for entry in self.entries if not entry.passed)
        lines.append("==================================")
        lines.append(f"Summary: total={len(self.entries)}, failed={failed_count}")
        return "\n".join(lines)

    def print(self) -> None:
        print(self.render())

    def write(self, path: str | Path) -> None:
        output_path = Path(path)
        output_path.write_text(self.render(use_color=False), encoding="utf-8")
