from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from arkctl.config import FAQ_URL
from arkctl.diagnostics.base import SuggestionRule, SuggestionSink
from arkctl.diagnostics.rules import SUGGESTION_RULES

logger = logging.getLogger(__name__)


def print_to_console(line: str) -> None:
    print(f"[Suggestion] {line}")


def collect_error_lines(
    error: Optional[BaseException] = None, subprocess_output: Optional[Sequence[str]] = None
) -> List[str]:
    """Error message lines first, then raw subprocess output (falls back to `error.output_lines`)."""
    lines: List[str] = []
    if error is not None:
        lines.extend(str(error).split("\n"))
    if subprocess_output:
        lines.extend(subprocess_output)
    elif error is not None:
        lines.extend(getattr(error, "output_lines", None) or [])
    return lines


def print_suggestions(
    error: Optional[BaseException] = None,
    subprocess_output: Optional[Sequence[str]] = None,
    *,
    sink: Optional[SuggestionSink] = None,
    rules: Sequence[SuggestionRule] = SUGGESTION_RULES,
    faq_url: str = FAQ_URL,
) -> Optional[str]:
    """
    Emit the first matching rule's hints, then always the FAQ hint.

    Determinism goals:
    - rules are evaluated in priority order; at most one fires
    - never raises (a broken rule or sink is logged and skipped)

    Returns the id of the rule that fired, if any.
    """
    emit = sink or print_to_console
    lines = collect_error_lines(error, subprocess_output)

    matched: Optional[str] = None
    for rule in rules:
        try:
            if rule.apply(lines, emit):
                matched = rule.rule_id
                break
        except Exception as e:
            logger.warning(f"Suggestion rule {rule.rule_id} failed: {e}")

    if matched:
        logger.debug(f"Suggestion rule matched: {matched}")
    try:
        emit("you can go to faq for more help at " + faq_url)
    except Exception as e:
        logger.warning(f"Suggestion sink failed: {e}")
    return matched
