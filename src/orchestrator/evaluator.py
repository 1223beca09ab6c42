"""
Heuristic check that a generated reply is fit to show the user.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List


@dataclass
class EvalResult:
    """Result of answer evaluation."""

    is_usable: bool
    problems: List[str]
    confidence: float


_MIN_ANSWER_LEN = 2
_ERROR_SHAPED = re.compile(
    r"^\s*(error\b|internal server error|\{\s*\"error\"|null\s*$|undefined\s*$|none\s*$)",
    re.I,
)
_TEMPLATE_LEAK = re.compile(r"\{events_context\}|=== (?:EVENTS|Previous Conversation)")


class AnswerEvaluator:
    """Rejects empty, error-shaped, or template-leaking replies."""

    def evaluate(self, query: str, answer: str) -> EvalResult:
        problems: List[str] = []
        text = (answer or "").strip()
        if len(text) < _MIN_ANSWER_LEN:
            problems.append("empty_answer")
        elif _ERROR_SHAPED.match(text):
            problems.append("error_shaped")
        if _TEMPLATE_LEAK.search(text):
            problems.append("template_leak")
        confidence = 1.0 - 0.5 * len(problems)
        return EvalResult(
            is_usable=not problems,
            problems=problems,
            confidence=max(0.0, confidence),
        )
