# gridsuite/dsa/contracts/report.py
"""
Hierarchical execution report.

Engines append nodes while they run; the orchestrator enriches the tree once
the computation is over and forwards it to the report server. A tree belongs to
exactly one job and is only touched by one thread at a time: the engine thread
while running, the job's worker afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from string import Template
from typing import Any, Iterator, Optional

SEVERITY_KEY = "reportSeverity"


class Severity(str, Enum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


@dataclass
class ReportNode:
    """
    One line of the report, with its sub-lines.

    ``message_template`` uses ``${name}`` placeholders filled from ``values``.
    """

    message_key: str
    message_template: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    children: list["ReportNode"] = field(default_factory=list)

    @classmethod
    def root(cls, message_key: str, message_template: str = "", **values: Any) -> "ReportNode":
        return cls(message_key=message_key, message_template=message_template, values=dict(values))

    def add_child(
        self,
        message_key: str,
        message_template: str = "",
        severity: Optional[Severity] = None,
        **values: Any,
    ) -> "ReportNode":
        if severity is not None:
            values[SEVERITY_KEY] = severity.value
        child = ReportNode(message_key=message_key, message_template=message_template, values=values)
        self.children.append(child)
        return child

    @property
    def severity(self) -> Optional[Severity]:
        raw = self.values.get(SEVERITY_KEY)
        return Severity(raw) if raw is not None else None

    @property
    def message(self) -> str:
        return Template(self.message_template).safe_substitute(
            {k: v for k, v in self.values.items() if k != SEVERITY_KEY}
        )

    def walk(self) -> Iterator["ReportNode"]:
        """Depth-first traversal, self included."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageKey": self.message_key,
            "messageTemplate": self.message_template,
            "values": dict(self.values),
            "children": [c.to_dict() for c in self.children],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportNode":
        return cls(
            message_key=data["messageKey"],
            message_template=data.get("messageTemplate", ""),
            values=dict(data.get("values") or {}),
            children=[cls.from_dict(c) for c in data.get("children") or []],
        )
