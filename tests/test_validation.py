from __future__ import annotations

import shutil

import allure
import pytest

from runwarden.errors import ValidationError
from runwarden.validation import (
    APPLICATION_NOT_EXECUTABLE,
    APPLICATION_NOT_FOUND,
    NO_APPLICATION_PATH,
    SUSPECTED_INJECTION,
    collect_validation_errors,
    resolve_application_path,
    validate_application,
)

pytestmark = [
    allure.epic("Execution"),
    allure.feature("Application Path Validation"),
]


@pytest.mark.parametrize("application_path", [None, "", "   "])
def test_missing_application_path(application_path: str | None) -> None:
    with pytest.raises(ValidationError, match=NO_APPLICATION_PATH) as error_info:
        validate_application(application_path, protect_against_injection=True)

    assert error_info.value.errors == [NO_APPLICATION_PATH]


def test_nonexistent_path_is_reported_as_not_found() -> None:
    errors = collect_validation_errors("/kjsdfhgjkgsjk", protect_against_injection=True)

    assert errors == [APPLICATION_NOT_FOUND]


def test_path_without_execute_permission(shell_script) -> None:
    path = shell_script("echo hi", executable=False)

    with pytest.raises(ValidationError) as error_info:
        validate_application(str(path), protect_against_injection=True)

    assert str(error_info.value) == APPLICATION_NOT_EXECUTABLE


def test_directory_is_not_executable(tmp_path) -> None:
    errors = collect_validation_errors(str(tmp_path), protect_against_injection=True)

    assert errors == [APPLICATION_NOT_EXECUTABLE]


def test_space_in_path_is_suspected_injection_even_when_executable(shell_script) -> None:
    path = shell_script("echo hi", name="my script.sh")

    errors = collect_validation_errors(str(path), protect_against_injection=True)

    assert errors == [SUSPECTED_INJECTION]
    validate_application(str(path), protect_against_injection=False)


def test_existence_checks_run_without_injection_protection(shell_script) -> None:
    not_executable = shell_script("echo hi", name="plain.sh", executable=False)

    assert collect_validation_errors("/kjsdfhgjkgsjk", protect_against_injection=False) == [
        APPLICATION_NOT_FOUND
    ]
    assert collect_validation_errors(str(not_executable), protect_against_injection=False) == [
        APPLICATION_NOT_EXECUTABLE
    ]
    assert collect_validation_errors("/no such/binary", protect_against_injection=False) == [
        APPLICATION_NOT_FOUND
    ]


def test_all_failures_are_aggregated_into_one_message() -> None:
    with pytest.raises(ValidationError) as error_info:
        validate_application("/no such/binary", protect_against_injection=True)

    assert error_info.value.errors == [APPLICATION_NOT_FOUND, SUSPECTED_INJECTION]
    assert str(error_info.value) == f"{APPLICATION_NOT_FOUND}, {SUSPECTED_INJECTION}"


@pytest.mark.parametrize("marker", [";", "|", "&", "$", "`", ">"])
def test_shell_metacharacters_are_suspected_injection(marker: str) -> None:
    errors = collect_validation_errors(f"/bin/true{marker}", protect_against_injection=True)

    assert SUSPECTED_INJECTION in errors


def test_valid_executable_passes(shell_script) -> None:
    path = shell_script("echo hi")

    assert collect_validation_errors(str(path), protect_against_injection=True) == []


def test_bare_command_name_resolves_through_path() -> None:
    expected = shutil.which("echo")
    assert expected is not None

    assert resolve_application_path("echo") == expected
    assert collect_validation_errors("echo", protect_against_injection=True) == []


def test_unknown_bare_command_is_not_found() -> None:
    errors = collect_validation_errors("definitely-not-a-command-xyz", protect_against_injection=True)

    assert errors == [APPLICATION_NOT_FOUND]
