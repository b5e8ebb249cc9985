from __future__ import annotations

from sandbook.adapters.api_errors import ApiClientError, ApiError, ApiServerError, ApiTimeoutError
from sandbook.domain.errors import NetworkError, SubmissionError
from sandbook.domain.ports import UseCaseError
from sandbook.usecases.error_mapping import map_api_error


def test_timeout_maps_to_network_error() -> None:
    err = map_api_error(ApiTimeoutError("t", context="GET x"), default_code="X")

    assert isinstance(err, NetworkError)
    assert err.code == "REQUEST_TIMEOUT"
    assert err.message == "Request timed out. Check connection."


def test_client_error_on_read_is_network_error() -> None:
    err = map_api_error(ApiClientError("ctx", status=404, hint="No such district"), default_code="X")

    assert isinstance(err, NetworkError)
    assert err.code == "NOT_FOUND"
    assert err.message == "Not found: No such district"
    assert err.meta == {"status": 404}


def test_client_error_on_mutation_is_submission_error() -> None:
    err = map_api_error(
        ApiClientError("ctx", status=400, payload={"vehicle_no": ["Invalid format"]}),
        default_code="SAVE_FAILED",
        mutation=True,
    )

    assert isinstance(err, SubmissionError)
    assert err.code == "INVALID_PARAMS"
    assert err.message == "Invalid parameters: vehicle_no=Invalid format"


def test_auth_and_other_client_statuses() -> None:
    assert map_api_error(ApiClientError("c", status=403), default_code="X").code == "AUTH_FAILED"
    conflict = map_api_error(ApiClientError("c", status=409), default_code="X", mutation=True)
    assert conflict.code == "REQUEST_FAILED"
    assert conflict.message == "Request failed (HTTP 409)."


def test_server_error_is_never_a_submission_error() -> None:
    err = map_api_error(ApiServerError("c", status=503), default_code="X", mutation=True)

    assert type(err) is NetworkError
    assert err.code == "SERVER_ERROR"


def test_generic_api_error_and_unknown_exceptions() -> None:
    assert map_api_error(ApiError("bad json"), default_code="X").code == "API_ERROR"

    unknown = map_api_error(RuntimeError(""), default_code="START_FAILED", default_message="nope")
    assert type(unknown) is UseCaseError
    assert (unknown.code, unknown.message) == ("START_FAILED", "nope")


def test_use_case_errors_pass_through() -> None:
    original = SubmissionError("X", "y")
    assert map_api_error(original, default_code="Z") is original
