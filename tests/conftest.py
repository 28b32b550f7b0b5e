"""
Pytest config.

Local imports like `import arkctl` and `from dev.mock_ark_container import create_app`
rely on the repo root being on sys.path; pin that here so a global `pytest` entrypoint
collects reliably without an editable install.
"""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()


@pytest.fixture
def ark_container() -> Iterator[Callable[..., Any]]:
    """
    Start mock ark containers on ephemeral ports.

    Usage:
        server = ark_container({"installBiz": {...}})
        server.port, server.app.config["RECEIVED"]
    """
    from werkzeug.serving import make_server

    from dev.mock_ark_container import create_app

    started: List[Any] = []

    def _start(responses: Optional[Dict[str, Any]] = None, *, delay_seconds: float = 0.0):
        app = create_app(responses, delay_seconds=delay_seconds)
        server = make_server("127.0.0.1", 0, app, threaded=True)
        server.app = app  # type: ignore[attr-defined]
        server.port = server.server_port  # type: ignore[attr-defined]
        t = threading.Thread(target=server.serve_forever, daemon=True)
        t.start()
        started.append(server)
        return server

    yield _start

    for server in started:
        server.shutdown()
        server.server_close()


@pytest.fixture
def free_port() -> int:
    """A port with nothing listening on it."""
    import socket

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]
