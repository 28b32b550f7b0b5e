"""Plain-text rendering of container state (health snapshot, installed biz list).

Rendering is deterministic and keeps wire field names as delivered.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, List, Sequence, Union

from arkctl.core.models import BizRuntimeState, HealthSnapshot, TunnelProbe


def _section(title: str, body: Any) -> str:
    text = body if isinstance(body, str) else json.dumps(body, indent=4, ensure_ascii=False)
    return f"[{title}] {text}"


def render_health(result: Union[HealthSnapshot, TunnelProbe]) -> str:
    if isinstance(result, TunnelProbe):
        # Tunnel output is unstructured; show it as captured.
        return _section("QueryHealth", result.stdout.strip())
    wire = result.to_wire()["healthData"]
    return "\n".join(
        [
            _section("QueryHealth", "SUCCESS"),
            _section("JVM", wire["jvm"]),
            _section("CPU", wire["cpu"]),
            _section("MasterBiz", wire["masterBizInfo"]),
        ]
    )


def _format_change_time(epoch_millis: int) -> str:
    if not epoch_millis:
        return "N/A"
    dt = datetime.fromtimestamp(epoch_millis / 1000.0, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


def render_biz_list(states: Sequence[BizRuntimeState]) -> str:
    if not states:
        return "no biz installed"
    lines: List[str] = []
    for s in states:
        ctx_path = s.web_context_path or "-"
        lines.append(f"{s.name}:{s.version} {s.state} webContextPath={ctx_path}")
        for rec in s.state_history:
            reason = f" ({rec.reason})" if rec.reason else ""
            lines.append(f"  {_format_change_time(rec.change_time)} {rec.state}{reason}")
    return "\n".join(lines)
