"""
probe/health - Composable checks for the Riverbed probe.

Each module exposes a run_check(session, cfg) function that returns one
CheckResult. check_riverbed.py runs them in order and stops at the first
result that is not OK.

Usage:
    from probe.health import CheckResult, Severity
    from probe.health.device import run_check as device_check
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Severity(IntEnum):
    """Plugin states. The value is the process exit code."""

    OK = 0
    WARNING = 1
    ERROR = 2
    UNKNOWN = 3


@dataclass(frozen=True)
class CheckResult:
    name: str
    severity: Severity
    message: str = ""
    metrics: str = ""

    @property
    def passed(self) -> bool:
        return self.severity is Severity.OK

    def __str__(self) -> str:
        line = f"[{self.severity.name}] {self.name}"
        if self.message:
            line += f": {self.message}"
        return line
