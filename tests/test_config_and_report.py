from __future__ import annotations

import json

from arkctl.config import ArkSettings, load_settings
from arkctl.core.models import BizRuntimeState, BizStateRecord, HealthSnapshot, MasterBizInfo, TunnelProbe
from arkctl.report import render_biz_list, render_health


def test_load_settings_defaults(monkeypatch) -> None:
    for name in ("ARKCTL_REQUEST_TIMEOUT_SECONDS", "ARKCTL_KUBECTL_BIN", "ARKCTL_POLL_INTERVAL_SECONDS"):
        monkeypatch.delenv(name, raising=False)
    assert load_settings() == ArkSettings()


def test_load_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ARKCTL_REQUEST_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("ARKCTL_KUBECTL_BIN", "/opt/bin/kubectl")
    monkeypatch.setenv("ARKCTL_POLL_INTERVAL_SECONDS", "not-a-number")
    s = load_settings()
    assert s.request_timeout_seconds == 2.5
    assert s.kubectl_bin == "/opt/bin/kubectl"
    assert s.poll_interval_seconds == 0.05


def test_render_health_keeps_wire_names() -> None:
    snap = HealthSnapshot(
        jvm_metrics={"max non heap memory(M)": -9.5367431640625e-7},
        cpu_metrics={"free (%)": 82.5},
        master_biz_info=MasterBizInfo(bizName="base", bizState="ACTIVATED", bizVersion="1.0.0", webContextPath="/"),
    )
    text = render_health(snap)
    assert text.splitlines()[0] == "[QueryHealth] SUCCESS"
    assert '"free (%)": 82.5' in text
    assert '"max non heap memory(M)": -9.5367431640625e-07' in text
    assert "[MasterBiz] " + json.dumps(
        {"bizName": "base", "bizState": "ACTIVATED", "bizVersion": "1.0.0", "webContextPath": "/"}, indent=4
    ) in text


def test_render_health_for_tunnel_probe_shows_raw_output() -> None:
    probe = TunnelProbe(operation="health", returncode=0, stdout='{"code":"SUCCESS"}\n', succeeded=True)
    assert render_health(probe) == '[QueryHealth] {"code":"SUCCESS"}'


def test_render_biz_list() -> None:
    states = [
        BizRuntimeState(
            bizName="biz1",
            bizVersion="1.0",
            bizState="ACTIVATED",
            webContextPath="biz1",
            bizStateRecords=[BizStateRecord(changeTime=0, state="RESOLVED"), BizStateRecord(changeTime=1700000000000, state="ACTIVATED", reason="INSTALL_SUCCEED")],
        )
    ]
    assert render_biz_list(states) == "\n".join(
        [
            "biz1:1.0 ACTIVATED webContextPath=biz1",
            "  N/A RESOLVED",
            "  2023-11-14T22:13:20Z ACTIVATED (INSTALL_SUCCEED)",
        ]
    )
    assert render_biz_list([]) == "no biz installed"
