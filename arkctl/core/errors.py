"""Error taxonomy for container calls.

Every error keeps the full diagnostic text; callers can hand `str(err)` and
`err.output_lines` to the suggestion engine.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class ArkClientError(Exception):
    def __init__(self, message: str, *, output_lines: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.output_lines: List[str] = list(output_lines or [])


class TransportError(ArkClientError):
    """The call never reached the container or did not complete (refused, DNS, timeout, cancel)."""


class DecodeError(ArkClientError):
    """The reply body did not match the expected envelope shape."""


class RemoteOperationError(ArkClientError):
    """The container answered but signaled non-success."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        envelope: Optional[Dict[str, Any]] = None,
        output_lines: Optional[Sequence[str]] = None,
    ) -> None:
        super().__init__(message, output_lines=output_lines)
        self.code = code
        self.envelope = envelope


class TunnelExecError(ArkClientError):
    """The exec-tunnel subprocess failed to start or exited abnormally."""

    def __init__(
        self,
        message: str,
        *,
        returncode: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message, output_lines=[*stderr.splitlines(), *stdout.splitlines()])
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class UnsupportedOperationError(ArkClientError):
    """The operation cannot be carried over the transport the coordinate selects."""
