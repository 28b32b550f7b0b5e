from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

SuggestionSink = Callable[[str], None]


@dataclass(frozen=True)
class SuggestionRule:
    """A known failure signature mapped to operator guidance.

    Rules are deterministic and side-effect-only: when the predicate matches the full
    line sequence, every hint is sent to the sink in order.
    """

    rule_id: str
    """Stable identifier (e.g. 'base_not_started')"""

    predicate: Callable[[Sequence[str]], bool]
    """Matches against the whole ordered line sequence, not a single line"""

    hints: Tuple[str, ...]
    """Hint lines emitted when the predicate matches"""

    def apply(self, lines: Sequence[str], sink: SuggestionSink) -> bool:
        if not self.predicate(lines):
            return False
        for hint in self.hints:
            sink(hint)
        return True
