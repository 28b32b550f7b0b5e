"""Deterministic operator suggestions for failed container calls and deploy subprocesses.

- rules are pure predicates over the collected error/output lines
- the rule list is fixed, ordered configuration (first match wins)
- a generic FAQ hint always closes the session
"""

from .base import SuggestionRule, SuggestionSink
from .engine import collect_error_lines, print_suggestions
from .rules import SUGGESTION_RULES

__all__ = ["SuggestionRule", "SuggestionSink", "SUGGESTION_RULES", "collect_error_lines", "print_suggestions"]
