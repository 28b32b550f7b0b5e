"""Known deploy/install failure signatures (ordered suggestion rule library).

Order is priority: the engine stops at the first rule that matches.

Adding a rule:
1. Write a predicate over the full line sequence
2. Define a SuggestionRule
3. Append it to SUGGESTION_RULES (never reorder existing entries)
"""

from __future__ import annotations

from typing import Sequence

from arkctl.diagnostics.base import SuggestionRule


def _any_line_contains(lines: Sequence[str], *fragments: str) -> bool:
    return any(fragment in line for line in lines for fragment in fragments)


def _ends_with_connection_refused(line: str) -> bool:
    # Go style: `... connect: connection refused`
    # requests/urllib3 style: `... [Errno 111] Connection refused'))`
    tail = line.rstrip().rstrip("'\")").lower()
    return tail.endswith("connection refused")


def _base_not_started(lines: Sequence[str]) -> bool:
    return any("installBiz" in line and _ends_with_connection_refused(line) for line in lines)


def _maven_executable_not_found(lines: Sequence[str]) -> bool:
    return _any_line_contains(
        lines,
        'exec: "mvn": executable file not found',
        "No such file or directory: 'mvn'",
    )


MAVEN_TOO_OLD_FRAGMENTS = (
    "Unable to parse configuration of mojo com.alipay.sofa:sofa-ark-maven-plugin",
    "com.google.inject.ProvisionException: Unable to provision",
    "Error injecting: private org.eclipse.aether.spi.log.Logger",
    "Can not set org.eclipse.aether.spi.log.Logger field",
)


def _maven_version_too_low(lines: Sequence[str]) -> bool:
    return _any_line_contains(lines, *MAVEN_TOO_OLD_FRAGMENTS)


def _web_context_path_conflict(lines: Sequence[str]) -> bool:
    # "Child name ... is not unique" only counts at or after the web server start failure.
    web_server_failed = False
    for line in lines:
        if "Unable to start web server" in line:
            web_server_failed = True
        if web_server_failed and "Child name" in line and "is not unique" in line:
            return True
    return False


def _application_name_missing(lines: Sequence[str]) -> bool:
    return _any_line_contains(lines, "spring.application.name must be configured")


def _actuator_autoconfiguration_missing(lines: Sequence[str]) -> bool:
    return any(
        "The following classes could not be excluded because they are not auto-configuration classes" in line
        and "org.springframework.boot.actuate.autoconfigure.startup.StartupEndpointAutoConfiguration" in line
        for line in lines
    )


def _jvm_init_failed(lines: Sequence[str]) -> bool:
    return _any_line_contains(lines, "Error occurred during initialization of VM")


BASE_NOT_STARTED = SuggestionRule(
    rule_id="base_not_started",
    predicate=_base_not_started,
    hints=("ensure target base is running",),
)

MAVEN_EXECUTABLE_NOT_FOUND = SuggestionRule(
    rule_id="maven_executable_not_found",
    predicate=_maven_executable_not_found,
    hints=("install latest maven or just put mvn executable path into your $PATH",),
)

MAVEN_VERSION_TOO_LOW = SuggestionRule(
    rule_id="maven_version_too_low",
    predicate=_maven_version_too_low,
    hints=("your maven is outdated, update it to 3.6.1 or higher version",),
)

WEB_CONTEXT_PATH_CONFLICT = SuggestionRule(
    rule_id="web_context_path_conflict",
    predicate=_web_context_path_conflict,
    hints=(
        "another installed biz module has the same webContextPath as yours",
        "change your <webContextPath> in pom.xml or uninstall another biz module",
    ),
)

APPLICATION_NAME_MISSING = SuggestionRule(
    rule_id="application_name_missing",
    predicate=_application_name_missing,
    hints=('add "spring.application.name" config into your application.properties',),
)

ACTUATOR_AUTOCONFIGURATION_MISSING = SuggestionRule(
    rule_id="actuator_autoconfiguration_missing",
    predicate=_actuator_autoconfiguration_missing,
    hints=("import spring-boot-actuator-autoconfiguration artifact in your pom.xml file",),
)

JVM_INIT_FAILED = SuggestionRule(
    rule_id="jvm_init_failed",
    predicate=_jvm_init_failed,
    hints=("check your jvm starting parameters",),
)

SUGGESTION_RULES = (
    BASE_NOT_STARTED,
    MAVEN_EXECUTABLE_NOT_FOUND,
    MAVEN_VERSION_TOO_LOW,
    WEB_CONTEXT_PATH_CONFLICT,
    APPLICATION_NAME_MISSING,
    ACTUATOR_AUTOCONFIGURATION_MISSING,
    JVM_INIT_FAILED,
)
