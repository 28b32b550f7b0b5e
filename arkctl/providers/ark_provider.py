"""Ark container client: install, uninstall, enumerate and health-check biz modules."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Union, runtime_checkable

from arkctl.config import ArkSettings, load_settings
from arkctl.core.context import CallContext, background
from arkctl.core.envelope import Outcome, classify, classify_uninstall, decode_envelope
from arkctl.core.errors import RemoteOperationError, UnsupportedOperationError
from arkctl.core.models import (
    BizRuntimeState,
    HealthPayload,
    HealthSnapshot,
    InstallBizRequest,
    InstallResult,
    OperationOutcome,
    ResponseEnvelope,
    RuntimeCoordinate,
    TunnelProbe,
    UninstallBizRequest,
    UninstallResult,
)
from arkctl.providers.transport import HttpTransport, KubectlExecTransport, TransportSelector

logger = logging.getLogger(__name__)

OP_INSTALL = "installBiz"
OP_UNINSTALL = "uninstallBiz"
OP_QUERY_ALL = "queryAllBiz"
OP_HEALTH = "health"


@runtime_checkable
class ArkProvider(Protocol):
    def install_biz(self, request: InstallBizRequest, ctx: Optional[CallContext] = None) -> InstallResult: ...

    def uninstall_biz(self, request: UninstallBizRequest, ctx: Optional[CallContext] = None) -> UninstallResult: ...

    def query_all_biz(
        self, target: RuntimeCoordinate, ctx: Optional[CallContext] = None
    ) -> List[BizRuntimeState]: ...

    def health(
        self, target: RuntimeCoordinate, ctx: Optional[CallContext] = None
    ) -> Union[HealthSnapshot, TunnelProbe]: ...


class DefaultArkProvider:
    """
    Stateless client; one instance can serve concurrent calls to independent containers.

    No retries: every failure is raised to the caller exactly once.
    """

    def __init__(
        self,
        *,
        settings: Optional[ArkSettings] = None,
        transports: Optional[TransportSelector] = None,
    ) -> None:
        self.settings = settings or load_settings()
        self.transports = transports or TransportSelector(settings=self.settings)

    def install_biz(self, request: InstallBizRequest, ctx: Optional[CallContext] = None) -> InstallResult:
        envelope = self._call(OP_INSTALL, request.target, request.to_wire(), OperationOutcome, ctx)
        try:
            classify(envelope, action="install biz")
        except RemoteOperationError:
            logger.warning(f"installBiz {request.biz.name}:{request.biz.version} failed: {envelope.code}")
            raise
        logger.info(f"installBiz {request.biz.name}:{request.biz.version} on {request.target.coordinate()}: ok")
        return InstallResult(code=envelope.code, message=envelope.message, outcome=envelope.data)

    def uninstall_biz(self, request: UninstallBizRequest, ctx: Optional[CallContext] = None) -> UninstallResult:
        envelope = self._call(OP_UNINSTALL, request.target, request.to_wire(), OperationOutcome, ctx)
        try:
            outcome = classify_uninstall(envelope)
        except RemoteOperationError:
            logger.warning(f"uninstallBiz {request.biz.name}:{request.biz.version} failed: {envelope.code}")
            raise
        if outcome is Outcome.IDEMPOTENT_NOOP:
            logger.info(f"uninstallBiz {request.biz.name}:{request.biz.version}: biz not installed, nothing to do")
        return UninstallResult(
            code=envelope.code,
            message=envelope.message,
            outcome=envelope.data,
            already_absent=outcome is Outcome.IDEMPOTENT_NOOP,
        )

    def query_all_biz(self, target: RuntimeCoordinate, ctx: Optional[CallContext] = None) -> List[BizRuntimeState]:
        envelope = self._call(OP_QUERY_ALL, target, {}, List[BizRuntimeState], ctx)
        classify(envelope, action="query all biz")
        return list(envelope.data or [])

    def health(
        self, target: RuntimeCoordinate, ctx: Optional[CallContext] = None
    ) -> Union[HealthSnapshot, TunnelProbe]:
        ctx = ctx or background()
        transport = self.transports.select(target)
        if isinstance(transport, KubectlExecTransport):
            probe = transport.probe(OP_HEALTH, target, ctx)  # type: ignore[arg-type]
            if not probe.succeeded:
                logger.warning(f"health query via tunnel on {target.coordinate()} did not report SUCCESS")
                raise RemoteOperationError("health status query failed", output_lines=probe.output_lines)
            return probe
        envelope = self._call(OP_HEALTH, target, {}, HealthPayload, ctx)
        classify(envelope, action="health check")
        return HealthSnapshot.from_payload(envelope.data)

    def _call(
        self,
        operation: str,
        target: RuntimeCoordinate,
        body: Dict[str, Any],
        payload_type: Any,
        ctx: Optional[CallContext],
    ) -> ResponseEnvelope:
        transport = self.transports.select(target)
        if not isinstance(transport, HttpTransport):
            raise UnsupportedOperationError(
                f"{operation} is not supported for {type(target).__name__} ({target.coordinate()}); "
                "only health queries can run through the exec tunnel"
            )
        reply = transport.invoke(operation, target, body, ctx or background())  # type: ignore[arg-type]
        return decode_envelope(reply.text, payload_type, operation=operation)


def get_ark_provider(settings: Optional[ArkSettings] = None) -> ArkProvider:
    """Seam for swapping provider implementations later."""
    return DefaultArkProvider(settings=settings)


def install_biz(request: InstallBizRequest, ctx: Optional[CallContext] = None) -> InstallResult:
    return get_ark_provider().install_biz(request, ctx)


def uninstall_biz(request: UninstallBizRequest, ctx: Optional[CallContext] = None) -> UninstallResult:
    return get_ark_provider().uninstall_biz(request, ctx)


def query_all_biz(target: RuntimeCoordinate, ctx: Optional[CallContext] = None) -> List[BizRuntimeState]:
    return get_ark_provider().query_all_biz(target, ctx)


def health(target: RuntimeCoordinate, ctx: Optional[CallContext] = None) -> Union[HealthSnapshot, TunnelProbe]:
    return get_ark_provider().health(target, ctx)
