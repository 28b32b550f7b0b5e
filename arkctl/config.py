from __future__ import annotations

import os
from dataclasses import dataclass

FAQ_URL = "https://koupleless.io/en/docs/faq/faq/"


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class ArkSettings:
    # Per-request timeout for the direct HTTP path (seconds).
    request_timeout_seconds: float = 30.0
    # Executable used for the exec tunnel.
    kubectl_bin: str = "kubectl"
    # How often in-flight calls check the cancel token.
    poll_interval_seconds: float = 0.05
    faq_url: str = FAQ_URL


def load_settings() -> ArkSettings:
    return ArkSettings(
        request_timeout_seconds=_env_float("ARKCTL_REQUEST_TIMEOUT_SECONDS", 30.0),
        kubectl_bin=(os.getenv("ARKCTL_KUBECTL_BIN") or "").strip() or "kubectl",
        poll_interval_seconds=_env_float("ARKCTL_POLL_INTERVAL_SECONDS", 0.05),
    )
