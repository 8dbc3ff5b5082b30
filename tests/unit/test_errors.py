"""Unit tests for error types and envelope parsing."""
import pytest

from bizberry_sdk.services.errors import (
    APIError,
    AuthError,
    BackendError,
    BizberryError,
    ErrorInfo,
    ErrorKind,
    TransportError,
)


def test_from_envelope_scalar_detail():
    envelope = {
        "detail": {"type": "AuthError", "code": "token_too_old", "message": "Too old", "loc": ["header"]},
        "event_id": "evt-9",
    }

    info = ErrorInfo.from_envelope(envelope, url="/widgets", method="get", params={"a": 1}, status=403)

    assert info.method == "GET"
    assert info.status == 403
    assert info.type == "AuthError"
    assert info.code == "token_too_old"
    assert info.message == "Too old"
    assert info.event_id == "evt-9"
    assert info.loc == ["header"]
    assert info.details is None
    assert info.params == {"a": 1}


def test_from_envelope_single_element_list_is_scalar():
    info = ErrorInfo.from_envelope({"detail": [{"type": "AuthError", "code": "x"}]})

    assert info.type == "AuthError"
    assert info.details is None


def test_from_envelope_keeps_multiple_details():
    details = [{"msg": "first", "type": "value_error"}, {"msg": "second", "type": "value_error"}]

    info = ErrorInfo.from_envelope({"detail": details}, status=422)

    assert info.details == details
    assert info.message == "first"


def test_from_envelope_string_detail():
    info = ErrorInfo.from_envelope({"detail": "Not Found"}, status=404)

    assert info.message == "Not Found"
    assert info.type is None


@pytest.mark.parametrize("envelope", [None, {}, [], "oops"])
def test_from_envelope_tolerates_garbage(envelope):
    info = ErrorInfo.from_envelope(envelope, status=500)

    assert info.status == 500
    assert info.code is None


def test_from_envelope_stringifies_numeric_codes():
    assert ErrorInfo.from_envelope({"detail": {"code": 17}}).code == "17"


@pytest.mark.parametrize(
    "error_class,kind",
    [(AuthError, ErrorKind.AUTH), (TransportError, ErrorKind.TRANSPORT), (BackendError, ErrorKind.BACKEND)],
)
def test_error_kinds(error_class, kind):
    error = error_class("boom", ErrorInfo(status=500))

    assert error.kind is kind
    assert isinstance(error, APIError)
    assert isinstance(error, BizberryError)


def test_api_error_defaults():
    error = APIError()

    assert error.code == "-1"
    assert error.message == "Unknown error occurred"
    assert error.params == {}


def test_api_error_message_falls_back_to_type():
    assert APIError(info=ErrorInfo(type="IntegrityError")).message == "IntegrityError"


def test_api_error_str_describes_call():
    error = BackendError(
        "Duplicate",
        ErrorInfo(url="https://api.test/widgets", method="POST", params={"b": 2, "a": 1}, status=409, code="dup"),
    )

    assert str(error) == (
        'bizberry API call failed: POST https://api.test/widgets {"a": 1, "b": 2} - 409 Duplicate (code dup)'
    )
