"""
Plugin result — monitoring plugin output and exit status.

Rendered layout (Nagios plugin conventions):

    <service output>

    **ERRORS**
    * <error>

    **DETAILED INFO**
    <long service output>

    <branding>

     | 'label'=value;;;; 'label'=value;;;;
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from check_reboot.core.models.state import ServiceState

EOL = "\n"

_PERFDATA_LABEL = re.compile(r"^[^'=]+$")


@dataclass(frozen=True)
class PerformanceData:
    """A single performance data metric."""

    label: str
    value: str

    def __post_init__(self) -> None:
        if not _PERFDATA_LABEL.match(self.label):
            raise ValueError(f"Invalid performance data label: {self.label!r}")

    def render(self) -> str:
        return f"'{self.label}'={self.value};;;;"


@dataclass
class PluginResult:
    """Everything a check run reports back to the monitoring system."""

    state: ServiceState = ServiceState.UNKNOWN
    service_output: str = ""
    long_output: str = ""
    errors: list[str] = field(default_factory=list)
    perfdata: list[PerformanceData] = field(default_factory=list)
    branding: str = ""

    @property
    def exit_code(self) -> int:
        return self.state.exit_code

    def add_error(self, *errors: object) -> None:
        self.errors.extend(str(e) for e in errors)

    def add_perfdata(self, label: str, value: object) -> None:
        self.perfdata.append(PerformanceData(label=label, value=str(value)))

    def render(self) -> str:
        """The complete plugin output text."""
        out = [self.service_output]

        if self.errors:
            out.append(EOL + EOL + "**ERRORS**" + EOL)
            out.append(EOL.join(f"* {e}" for e in self.errors))

        if self.long_output:
            out.append(EOL + EOL + "**DETAILED INFO**" + EOL)
            out.append(self.long_output.rstrip(EOL))

        if self.branding:
            out.append(EOL + EOL + self.branding)

        if self.perfdata:
            out.append(EOL + EOL + " | " + " ".join(p.render() for p in self.perfdata))

        return "".join(out) + EOL

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "state": self.state.label,
            "exit_code": self.exit_code,
            "service_output": self.service_output,
            "long_output": self.long_output,
            "errors": list(self.errors),
            "perfdata": {p.label: p.value for p in self.perfdata},
        }
