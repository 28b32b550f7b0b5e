"""Canonical data models for talking to an ark container.

Everything here is request/response scoped: built per call, discarded after.

Design note:
- Wire field names are owned by the container (camelCase, and for health metrics
  free-form names such as "free (%)"). Models keep python names internally and
  map back through aliases, except for metric dicts which are kept verbatim.
"""

from __future__ import annotations

import json
from abc import abstractmethod
from enum import Enum
from typing import Any, Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_ARK_PORT = 1238

T = TypeVar("T")


class BaseModelFrozen(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class BaseModelWire(BaseModel):
    # Payloads decoded from the container; tolerate fields newer servers add.
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        # Java containers send null for unset strings/lists; treat it like an absent field.
        if v is not None or info.field_name is None:
            return v
        field = cls.model_fields[info.field_name]
        if field.is_required():
            return v
        return field.get_default(call_default_factory=True)


# --- Coordinates -------------------------------------------------------------


class _CoordinateBase(BaseModelFrozen):
    port: Optional[int] = None

    def resolved_port(self) -> int:
        return DEFAULT_ARK_PORT if self.port is None else self.port

    @abstractmethod
    def coordinate(self) -> str:
        """Host, VM address, or `namespace/pod`."""

    def to_wire(self) -> Dict[str, Any]:
        return {
            "runType": self.run_type,  # type: ignore[attr-defined]
            "coordinate": self.coordinate(),
            "port": self.resolved_port(),
        }


class LocalCoordinate(_CoordinateBase):
    run_type: Literal["local"] = "local"
    host: str = "127.0.0.1"

    def coordinate(self) -> str:
        return self.host


class VMCoordinate(_CoordinateBase):
    run_type: Literal["vm"] = "vm"
    address: str

    def coordinate(self) -> str:
        return self.address


class ClusterCoordinate(_CoordinateBase):
    run_type: Literal["pod"] = "pod"
    namespace: str = "default"
    pod_name: str

    def coordinate(self) -> str:
        return f"{self.namespace}/{self.pod_name}"


RuntimeCoordinate = Union[LocalCoordinate, VMCoordinate, ClusterCoordinate]


def parse_pod_ref(ref: str, *, port: Optional[int] = None) -> ClusterCoordinate:
    """Build a cluster coordinate from `namespace/pod` or a bare pod name."""
    ref = (ref or "").strip()
    if not ref:
        raise ValueError("pod reference must not be empty")
    if "/" in ref:
        namespace, pod_name = ref.split("/", 1)
        return ClusterCoordinate(namespace=namespace or "default", pod_name=pod_name, port=port)
    return ClusterCoordinate(pod_name=ref, port=port)


# --- Requests ----------------------------------------------------------------


class InstallType(str, Enum):
    FILESYSTEM = "filesystem"
    HTTP = "http"


class BizIdentity(BaseModelFrozen):
    name: str
    version: str
    source_location: str = ""

    def to_wire(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        if self.name:
            out["bizName"] = self.name
        if self.version:
            out["bizVersion"] = self.version
        if self.source_location:
            out["bizUrl"] = self.source_location
        return out


class InstallBizRequest(BaseModelFrozen):
    biz: BizIdentity
    target: RuntimeCoordinate = Field(discriminator="run_type")
    install_type: InstallType = InstallType.FILESYSTEM
    # Only used for filesystem installs; the container picks {tmp}/arkBiz/ when unset.
    biz_home_dir: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return {
            "bizModel": self.biz.to_wire(),
            "targetContainer": self.target.to_wire(),
            "installType": self.install_type.value,
            "bizHomeDir": self.biz_home_dir,
        }


class UninstallBizRequest(BaseModelFrozen):
    biz: BizIdentity
    target: RuntimeCoordinate = Field(discriminator="run_type")

    def to_wire(self) -> Dict[str, Any]:
        return {
            "bizModel": self.biz.to_wire(),
            "targetContainer": self.target.to_wire(),
        }


# --- Envelope and payloads -----------------------------------------------------


class ResponseEnvelope(BaseModel, Generic[T]):
    """Generic success/failure wrapper returned by every container operation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    data: Optional[T] = None
    message: str = ""
    error_stack_trace: Optional[str] = Field(default=None, alias="errorStackTrace")

    @field_validator("message", mode="before")
    @classmethod
    def _null_message_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    def is_success(self) -> bool:
        return self.code == "SUCCESS"

    def render(self) -> str:
        """Deterministic full rendering (used verbatim in error messages)."""
        return json.dumps(self.model_dump(mode="json", by_alias=True), ensure_ascii=False)


class OperationOutcome(BaseModelWire):
    """Install/uninstall payload. Its `code` is a sub-code, independent of the envelope code."""

    code: str = ""
    message: str = ""
    elapsed_space: int = Field(default=0, alias="elapsedSpace")
    biz_infos: List[Any] = Field(default_factory=list, alias="bizInfos")


class BizStateRecord(BaseModelWire):
    change_time: int = Field(default=0, alias="changeTime")
    state: str = ""
    reason: str = ""
    message: str = ""


class BizRuntimeState(BaseModelWire):
    name: str = Field(default="", alias="bizName")
    version: str = Field(default="", alias="bizVersion")
    # Opaque: ACTIVATED, DEACTIVATED, RESOLVED, BROKEN, ... kept verbatim.
    state: str = Field(default="", alias="bizState")
    main_class: str = Field(default="", alias="mainClass")
    web_context_path: str = Field(default="", alias="webContextPath")
    state_history: List[BizStateRecord] = Field(default_factory=list, alias="bizStateRecords")


class MasterBizInfo(BaseModelWire):
    name: str = Field(default="", alias="bizName")
    state: str = Field(default="", alias="bizState")
    version: str = Field(default="", alias="bizVersion")
    web_context_path: str = Field(default="", alias="webContextPath")


class HealthData(BaseModelWire):
    # Metric names are server-controlled ("free (%)", "run time(s)", ...); keep them as-is.
    jvm: Dict[str, Any] = Field(default_factory=dict)
    cpu: Dict[str, Any] = Field(default_factory=dict)
    master_biz_info: MasterBizInfo = Field(default_factory=MasterBizInfo, alias="masterBizInfo")


class HealthPayload(BaseModelWire):
    health_data: HealthData = Field(default_factory=HealthData, alias="healthData")


# --- Results -------------------------------------------------------------------


class InstallResult(BaseModelFrozen):
    code: str
    message: str = ""
    outcome: Optional[OperationOutcome] = None


class UninstallResult(BaseModelFrozen):
    code: str
    message: str = ""
    outcome: Optional[OperationOutcome] = None
    # True when the container reported the biz as already absent.
    already_absent: bool = False


class HealthSnapshot(BaseModelFrozen):
    jvm_metrics: Dict[str, Any] = Field(default_factory=dict)
    cpu_metrics: Dict[str, Any] = Field(default_factory=dict)
    master_biz_info: MasterBizInfo = Field(default_factory=MasterBizInfo)

    @classmethod
    def from_payload(cls, payload: Optional[HealthPayload]) -> "HealthSnapshot":
        data = payload.health_data if payload is not None else HealthData()
        return cls(jvm_metrics=dict(data.jvm), cpu_metrics=dict(data.cpu), master_biz_info=data.master_biz_info)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "healthData": {
                "jvm": dict(self.jvm_metrics),
                "cpu": dict(self.cpu_metrics),
                "masterBizInfo": self.master_biz_info.model_dump(by_alias=True),
            }
        }


class TunnelProbe(BaseModelFrozen):
    """Text-classified result of the exec tunnel. Carries no structured envelope."""

    operation: str
    command: List[str] = Field(default_factory=list)
    returncode: int
    stdout: str = ""
    stderr: str = ""
    succeeded: bool

    @property
    def output_lines(self) -> List[str]:
        return [*self.stderr.splitlines(), *self.stdout.splitlines()]
