"""Tests for the library error taxonomy."""

import pytest

from ratewindow.core.errors import (
    AppError,
    InvalidSpecError,
    StoreAppError,
    StoreRaceError,
    StoreUnavailableError,
    ValidationAppError,
)


def test_app_error_str_is_message() -> None:
    error = AppError(code="x", message="something failed")

    assert str(error) == "something failed"
    assert error.details is None


@pytest.mark.parametrize(
    ("error_cls", "parents"),
    [
        (InvalidSpecError, (ValidationAppError, AppError)),
        (StoreUnavailableError, (StoreAppError, AppError)),
        (StoreRaceError, (StoreAppError, AppError)),
    ],
)
def test_error_hierarchy(error_cls: type, parents: tuple[type, ...]) -> None:
    error = error_cls(code="c", message="m")

    for parent in parents:
        assert isinstance(error, parent)


def test_store_errors_are_distinct_from_validation_errors() -> None:
    error = StoreUnavailableError(code="store_unavailable", message="down", details={"operation": "increment"})

    assert not isinstance(error, ValidationAppError)
    assert error.details["operation"] == "increment"

    with pytest.raises(StoreAppError):
        raise error
