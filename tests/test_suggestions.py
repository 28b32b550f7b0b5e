"""Unit tests for the suggestion engine and its rule library."""

from __future__ import annotations

from typing import List

from arkctl.config import FAQ_URL
from arkctl.core.errors import TransportError, TunnelExecError
from arkctl.diagnostics import SUGGESTION_RULES, SuggestionRule, collect_error_lines, print_suggestions
from arkctl.diagnostics.rules import (
    ACTUATOR_AUTOCONFIGURATION_MISSING,
    APPLICATION_NAME_MISSING,
    BASE_NOT_STARTED,
    JVM_INIT_FAILED,
    MAVEN_EXECUTABLE_NOT_FOUND,
    MAVEN_VERSION_TOO_LOW,
    WEB_CONTEXT_PATH_CONFLICT,
)

FAQ_HINT = "you can go to faq for more help at " + FAQ_URL


def _run(error=None, output=None) -> List[str]:
    out: List[str] = []
    print_suggestions(error, output, sink=out.append)
    return out


def test_rule_order_is_fixed() -> None:
    assert [r.rule_id for r in SUGGESTION_RULES] == [
        "base_not_started",
        "maven_executable_not_found",
        "maven_version_too_low",
        "web_context_path_conflict",
        "application_name_missing",
        "actuator_autoconfiguration_missing",
        "jvm_init_failed",
    ]
    assert isinstance(SUGGESTION_RULES, tuple)


def test_unmatched_text_yields_only_faq_hint() -> None:
    assert _run(RuntimeError("something unexpected happened")) == [FAQ_HINT]
    assert _run() == [FAQ_HINT]


def test_priority_order_fires_first_rule_once_then_faq() -> None:
    err = RuntimeError(
        'Post "http://127.0.0.1:1238/installBiz": dial tcp 127.0.0.1:1238: connect: connection refused'
    )
    output = ['exec: "mvn": executable file not found in $PATH']
    assert _run(err, output) == ["ensure target base is running", FAQ_HINT]


def test_base_not_started_matches_requests_diagnostic() -> None:
    err = TransportError(
        "HTTPConnectionPool(host='127.0.0.1', port=1238): Max retries exceeded with url: /installBiz "
        "(Caused by NewConnectionError('<urllib3.connection.HTTPConnection object at 0x7f>: "
        "Failed to establish a new connection: [Errno 111] Connection refused'))"
    )
    assert _run(err) == ["ensure target base is running", FAQ_HINT]


def test_base_not_started_requires_install_operation() -> None:
    lines = ['Post "http://127.0.0.1:1238/health": dial tcp 127.0.0.1:1238: connect: connection refused']
    assert not BASE_NOT_STARTED.predicate(lines)


def test_maven_rules() -> None:
    assert MAVEN_EXECUTABLE_NOT_FOUND.predicate(["[Errno 2] No such file or directory: 'mvn'"])
    assert MAVEN_VERSION_TOO_LOW.predicate(
        ["[ERROR] Error injecting: private org.eclipse.aether.spi.log.Logger org.apache.maven..."]
    )
    assert _run(output=["com.google.inject.ProvisionException: Unable to provision, see the following errors"]) == [
        "your maven is outdated, update it to 3.6.1 or higher version",
        FAQ_HINT,
    ]


def test_web_context_path_conflict_needs_ordering() -> None:
    ordered = [
        "org.springframework.context.ApplicationContextException: Unable to start web server",
        "Caused by: java.lang.IllegalArgumentException: Child name [/biz1] is not unique",
    ]
    assert WEB_CONTEXT_PATH_CONFLICT.predicate(ordered)
    assert not WEB_CONTEXT_PATH_CONFLICT.predicate(list(reversed(ordered)))
    assert _run(output=ordered) == [
        "another installed biz module has the same webContextPath as yours",
        "change your <webContextPath> in pom.xml or uninstall another biz module",
        FAQ_HINT,
    ]


def test_single_line_spring_rules() -> None:
    assert APPLICATION_NAME_MISSING.predicate(["IllegalStateException: spring.application.name must be configured"])
    assert ACTUATOR_AUTOCONFIGURATION_MISSING.predicate(
        [
            "The following classes could not be excluded because they are not auto-configuration classes: "
            "- org.springframework.boot.actuate.autoconfigure.startup.StartupEndpointAutoConfiguration"
        ]
    )
    assert not ACTUATOR_AUTOCONFIGURATION_MISSING.predicate(
        [
            "The following classes could not be excluded because they are not auto-configuration classes",
            "org.springframework.boot.actuate.autoconfigure.startup.StartupEndpointAutoConfiguration",
        ]
    )
    assert JVM_INIT_FAILED.predicate(["Error occurred during initialization of VM"])


def test_collect_error_lines_splits_message_and_appends_output() -> None:
    err = RuntimeError("first\nsecond")
    assert collect_error_lines(err, ["out1"]) == ["first", "second", "out1"]


def test_collect_error_lines_falls_back_to_error_output_lines() -> None:
    err = TunnelExecError("kubectl exited with code 1", returncode=1, stderr="Error occurred during initialization of VM\n")
    assert collect_error_lines(err) == ["kubectl exited with code 1", "Error occurred during initialization of VM"]
    assert _run(err) == ["check your jvm starting parameters", FAQ_HINT]


def test_engine_never_raises_on_broken_rule_or_sink() -> None:
    def _boom(_lines):
        raise ValueError("bad rule")

    broken = SuggestionRule(rule_id="broken", predicate=_boom, hints=("never",))
    out: List[str] = []
    assert print_suggestions(RuntimeError("Error occurred during initialization of VM"), sink=out.append, rules=(broken, JVM_INIT_FAILED)) == "jvm_init_failed"
    assert out == ["check your jvm starting parameters", FAQ_HINT]

    def _bad_sink(_line: str) -> None:
        raise OSError("closed")

    assert print_suggestions(RuntimeError("x"), sink=_bad_sink) is None


def test_default_sink_prints(capsys) -> None:
    print_suggestions(RuntimeError("nothing"))
    assert capsys.readouterr().out == f"[Suggestion] {FAQ_HINT}\n"
