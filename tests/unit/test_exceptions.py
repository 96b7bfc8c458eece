import pytest

from order_insights.domain.exceptions import (
    CacheError,
    DataIntegrityWarning,
    DependencyError,
    InsightsError,
    ValidationError,
    error_response,
)


def test_message_includes_context():
    error = DependencyError("Event store timed out", context={"path": "/v1/events/query"})

    assert str(error) == "Event store timed out | context={'path': '/v1/events/query'}"
    assert error.message == "Event store timed out"


def test_default_messages_are_used_when_omitted():
    assert CacheError().message == "Cache unavailable"
    assert DataIntegrityWarning().code == "DATA_INTEGRITY"


def test_validation_error_carries_field():
    error = ValidationError("end_date must not be before start_date", field="end_date")

    assert error.field == "end_date"
    assert error.context["field"] == "end_date"
    assert isinstance(error, InsightsError)


@pytest.mark.parametrize(
    "error, status, code",
    [
        (ValidationError("bad", field="filter"), 400, "VALIDATION_ERROR"),
        (DependencyError(), 503, "DEPENDENCY_UNAVAILABLE"),
        (CacheError(), 503, "CACHE_UNAVAILABLE"),
        (InsightsError(), 500, "INTERNAL_ERROR"),
        (RuntimeError("kaboom"), 500, "INTERNAL_ERROR"),
    ],
)
def test_error_response_maps_taxonomy(error, status, code):
    response = error_response(error)

    assert response.status == status
    assert response.code == code


def test_validation_response_is_precise_and_dependency_response_is_generic():
    validation = error_response(ValidationError("limit must be between 1 and 100", field="limit"))
    dependency = error_response(
        DependencyError("SQLite event store query failed", context={"db_path": "/srv/x.db"})
    )

    assert validation.message == "limit must be between 1 and 100"
    assert validation.field == "limit"
    assert "try again" in dependency.message
    assert "/srv/x.db" not in dependency.message
    assert dependency.field is None
