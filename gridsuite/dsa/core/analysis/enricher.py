# gridsuite/dsa/core/analysis/enricher.py
"""
Report enrichment (post-run).

For every post-contingency result, find the engine's subtree for that
contingency and append a status line plus one line per limit violation. Only
children are added; engine nodes are never modified. Lines already present are
not added twice, so enriching twice is the same as enriching once.
"""
from __future__ import annotations

import logging
import re
from typing import Optional, Pattern

from gridsuite.dsa.contracts.analysis import LimitViolation, PostContingencyResult, SecurityAnalysisResult
from gridsuite.dsa.contracts.report import SEVERITY_KEY, ReportNode, Severity

logger = logging.getLogger(__name__)

CONTINGENCY_KEY_PATTERN = re.compile(r"contingency", re.IGNORECASE)
CONTINGENCY_ID_VALUE = "contingencyId"

STATUS_KEY = "dsa.contingencyStatus"
STATUS_TEMPLATE = "Contingency ${contingencyId}: computation status ${status}"
VIOLATION_KEY = "dsa.limitViolation"
VIOLATION_TEMPLATE = "${subjectId}: ${limitType} limit ${limitName} = ${limit}, value = ${value}"

_INJECTED_KEYS = {STATUS_KEY, VIOLATION_KEY}


def contingency_id_pattern(contingency_id: str) -> Pattern[str]:
    return re.compile(rf"(?<![\w.-]){re.escape(contingency_id)}(?![\w.-])")


class ReportEnricher:
    def __init__(self, key_pattern: Pattern[str] = CONTINGENCY_KEY_PATTERN) -> None:
        self._key_pattern = key_pattern

    def enrich(self, root: ReportNode, result: SecurityAnalysisResult) -> int:
        """Annotate ``root`` in place. Returns the number of contingency subtrees found."""
        found = 0
        for post in result.post_contingency_results:
            node = self.find_contingency_node(root, post.contingency_id)
            if node is None:
                logger.debug("No report subtree for contingency %s", post.contingency_id)
                continue
            self._annotate(node, post)
            found += 1
        return found

    def find_contingency_node(self, root: ReportNode, contingency_id: str) -> Optional[ReportNode]:
        id_pattern = contingency_id_pattern(contingency_id)
        for node in root.walk():
            if node.message_key in _INJECTED_KEYS or not self._key_pattern.search(node.message_key):
                continue
            value = node.values.get(CONTINGENCY_ID_VALUE)
            text = str(value) if value is not None else node.message
            if id_pattern.search(text):
                return node
        return None

    def _annotate(self, node: ReportNode, post: PostContingencyResult) -> None:
        severity = Severity.INFO if post.status.converged else Severity.WARN
        lines = [
            (
                STATUS_KEY,
                STATUS_TEMPLATE,
                severity,
                {"contingencyId": post.contingency_id, "status": post.status.value},
            )
        ]
        lines.extend(
            (VIOLATION_KEY, VIOLATION_TEMPLATE, Severity.WARN, _violation_values(v))
            for v in post.limit_violations
        )

        existing = {(c.message_key, c.message) for c in node.children}
        for key, template, line_severity, values in lines:
            candidate = ReportNode(key, template, {**values, SEVERITY_KEY: line_severity.value})
            if (key, candidate.message) in existing:
                continue
            node.add_child(key, template, line_severity, **values)


def _violation_values(violation: LimitViolation) -> dict[str, object]:
    return {
        "subjectId": violation.subject_id,
        "limitType": violation.limit_type,
        "limitName": violation.limit_name or "",
        "limit": violation.limit,
        "value": violation.value,
    }
