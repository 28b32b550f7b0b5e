"""Transports for reaching an ark container.

Two paths with different fidelity:
- HttpTransport (local / vm coordinates): direct POST, full JSON body back.
- KubectlExecTransport (pod coordinates): `kubectl exec ... curl` inside the pod; only the
  captured text is available, so the result is a text-classified TunnelProbe.

They intentionally do not share one interface.
"""

from __future__ import annotations

import logging
import socket
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3 import HTTPConnectionPool, PoolManager

from arkctl.config import ArkSettings, load_settings
from arkctl.core.context import CallContext
from arkctl.core.errors import TransportError, TunnelExecError
from arkctl.core.models import ClusterCoordinate, LocalCoordinate, RuntimeCoordinate, TunnelProbe, VMCoordinate

logger = logging.getLogger(__name__)

TUNNEL_SUCCESS_TOKEN = "SUCCESS"


@dataclass(frozen=True)
class HttpReply:
    status_code: int
    text: str


def build_url(coordinate: Union[LocalCoordinate, VMCoordinate], operation: str) -> str:
    host = coordinate.coordinate()
    if ":" in host and not host.startswith("["):
        # IPv6 literal
        host = f"[{host}]"
    return f"http://{host}:{coordinate.resolved_port()}/{operation}"


class _ConnectionTracker:
    """Remembers every urllib3 connection a call opens so a cancel can tear them down."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: List[Any] = []
        self._aborted = False

    def add(self, conn: Any) -> None:
        with self._lock:
            if self._aborted:
                # Not connected yet; refusing it ends the worker's request immediately.
                raise ConnectionAbortedError("call was cancelled")
            self._connections.append(conn)

    def abort_all(self) -> None:
        with self._lock:
            self._aborted = True
            conns = list(self._connections)
        for conn in conns:
            _abort_connection(conn)


def _abort_connection(conn: Any) -> None:
    # shutdown() wakes a recv() blocked in the worker thread; close() alone does not.
    sock = getattr(conn, "sock", None)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    conn.close()


class _TrackedHTTPConnectionPool(HTTPConnectionPool):
    tracker: Optional[_ConnectionTracker] = None

    def _new_conn(self):
        conn = super()._new_conn()
        if self.tracker is not None:
            self.tracker.add(conn)
        return conn


class _TrackingPoolManager(PoolManager):
    def __init__(self, *args: Any, tracker: _ConnectionTracker, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.pool_classes_by_scheme = dict(self.pool_classes_by_scheme, http=_TrackedHTTPConnectionPool)
        self._tracker = tracker

    def _new_pool(self, scheme, host, port, request_context=None):
        pool = super()._new_pool(scheme, host, port, request_context=request_context)
        if isinstance(pool, _TrackedHTTPConnectionPool):
            pool.tracker = self._tracker
        return pool


class _CancellableAdapter(HTTPAdapter):
    def __init__(self, tracker: _ConnectionTracker) -> None:
        self.tracker = tracker
        super().__init__()

    def init_poolmanager(self, connections, maxsize, block=False, **pool_kwargs):
        self._pool_connections = connections
        self._pool_maxsize = maxsize
        self._pool_block = block
        self.poolmanager = _TrackingPoolManager(
            num_pools=connections, maxsize=maxsize, block=block, tracker=self.tracker, **pool_kwargs
        )


class HttpTransport:
    def __init__(self, settings: Optional[ArkSettings] = None) -> None:
        self.settings = settings or load_settings()

    def invoke(
        self,
        operation: str,
        coordinate: Union[LocalCoordinate, VMCoordinate],
        body: Dict[str, Any],
        ctx: CallContext,
    ) -> HttpReply:
        """
        POST `body` to `operation` and return the raw reply.

        The request runs on a worker thread so the caller can observe cancellation. A
        cancelled call shuts down the in-flight socket, which unblocks the worker, and
        returns immediately.
        """
        url = build_url(coordinate, operation)
        done_reason = ctx.err()
        if done_reason:
            raise TransportError(f'Post "{url}": {done_reason}')

        timeout = self.settings.request_timeout_seconds
        rem = ctx.remaining()
        if rem is not None:
            timeout = min(timeout, max(rem, 0.001))

        logger.debug(f"ark http call: POST {url}")
        tracker = _ConnectionTracker()
        session = requests.Session()
        session.mount("http://", _CancellableAdapter(tracker))
        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ark-http")
        try:
            fut = pool.submit(session.post, url, json=body, timeout=timeout)
            while True:
                done, _ = wait_futures([fut], timeout=self.settings.poll_interval_seconds)
                if done:
                    break
                done_reason = ctx.err()
                if done_reason:
                    tracker.abort_all()
                    raise TransportError(f'Post "{url}": {done_reason}')
            try:
                resp = fut.result()
            except requests.exceptions.RequestException as e:
                # Keep the library's diagnostic verbatim; it names the address and the cause.
                raise TransportError(str(e)) from e
            return HttpReply(status_code=resp.status_code, text=resp.text)
        finally:
            session.close()
            pool.shutdown(wait=False)


def build_exec_command(
    coordinate: ClusterCoordinate, operation: str, *, kubectl_bin: str = "kubectl"
) -> List[str]:
    return [
        kubectl_bin,
        "-n",
        coordinate.namespace,
        "exec",
        coordinate.pod_name,
        "--",
        "curl",
        "-X",
        "POST",
        f"http://127.0.0.1:{coordinate.resolved_port()}/{operation}",
    ]


class KubectlExecTransport:
    def __init__(self, settings: Optional[ArkSettings] = None) -> None:
        self.settings = settings or load_settings()

    def probe(self, operation: str, coordinate: ClusterCoordinate, ctx: CallContext) -> TunnelProbe:
        """
        Run the operation inside the pod and classify captured stdout by the SUCCESS token.

        Raises:
            TunnelExecError: kubectl could not be started, or exited non-zero without SUCCESS.
            TransportError: the context was cancelled or hit its deadline (process is killed).
        """
        cmd = build_exec_command(coordinate, operation, kubectl_bin=self.settings.kubectl_bin)
        done_reason = ctx.err()
        if done_reason:
            raise TransportError(f"{' '.join(cmd)}: {done_reason}")

        logger.debug(f"ark tunnel call: {' '.join(cmd)}")
        try:
            proc = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            raise TunnelExecError(f"failed to start {cmd[0]}: {e}") from e

        # Popen's context manager closes the pipes and waits on every exit path.
        with proc:
            try:
                stdout, stderr = self._drain(proc, ctx, cmd)
            except BaseException:
                if proc.poll() is None:
                    proc.kill()
                    proc.communicate()
                raise

        returncode = proc.returncode
        succeeded = TUNNEL_SUCCESS_TOKEN in (stdout or "")
        if not succeeded and returncode != 0:
            raise TunnelExecError(
                f"{' '.join(cmd)} exited with code {returncode}",
                returncode=returncode,
                stdout=stdout or "",
                stderr=stderr or "",
            )
        return TunnelProbe(
            operation=operation,
            command=cmd,
            returncode=returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            succeeded=succeeded,
        )

    def _drain(self, proc: subprocess.Popen, ctx: CallContext, cmd: List[str]):
        # communicate() reads both pipes fully; a timeout slice lets us check the context.
        while True:
            try:
                return proc.communicate(timeout=self.settings.poll_interval_seconds)
            except subprocess.TimeoutExpired:
                done_reason = ctx.err()
                if done_reason:
                    proc.kill()
                    proc.communicate()
                    raise TransportError(f"{' '.join(cmd)}: {done_reason}")


class TransportSelector:
    def __init__(
        self,
        *,
        http: Optional[HttpTransport] = None,
        tunnel: Optional[KubectlExecTransport] = None,
        settings: Optional[ArkSettings] = None,
    ) -> None:
        settings = settings or load_settings()
        self.http = http or HttpTransport(settings)
        self.tunnel = tunnel or KubectlExecTransport(settings)

    def select(self, coordinate: RuntimeCoordinate) -> Union[HttpTransport, KubectlExecTransport]:
        if isinstance(coordinate, ClusterCoordinate):
            return self.tunnel
        if isinstance(coordinate, (LocalCoordinate, VMCoordinate)):
            return self.http
        raise TypeError(f"unknown runtime coordinate: {coordinate!r}")
