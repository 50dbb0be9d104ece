"""Tests for error classification and diagnostics."""

import pytest
import requests
from botocore.exceptions import ClientError

from scaleway_provider.state import Severity, diagnostics_from_error, has_error, warning
from scaleway_provider.utils.errors import (
    ErrorKind,
    FatalError,
    NotFoundError,
    ResponseError,
    ValidationError,
    error_handler,
    is_conflict,
    is_fatal,
    is_forbidden,
    is_not_found,
    is_precondition,
    is_quota_exceeded,
    is_transient,
    is_validation,
    kind_of,
)

PREDICATES = {
    ErrorKind.NOT_FOUND: is_not_found,
    ErrorKind.FORBIDDEN: is_forbidden,
    ErrorKind.CONFLICT: is_conflict,
    ErrorKind.PRECONDITION: is_precondition,
    ErrorKind.TRANSIENT: is_transient,
    ErrorKind.QUOTA_EXCEEDED: is_quota_exceeded,
    ErrorKind.VALIDATION: is_validation,
    ErrorKind.FATAL: is_fatal,
}


def s3_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "Operation",
    )


class TestResponseError:
    @pytest.mark.parametrize("status,kind", [
        (404, ErrorKind.NOT_FOUND),
        (403, ErrorKind.FORBIDDEN),
        (409, ErrorKind.CONFLICT),
        (412, ErrorKind.PRECONDITION),
        (429, ErrorKind.TRANSIENT),
        (503, ErrorKind.TRANSIENT),
        (400, ErrorKind.VALIDATION),
        (418, ErrorKind.FATAL),
    ])
    def test_status(self, status, kind):
        assert kind_of(ResponseError(status, "boom")) == kind

    def test_error_type_wins_over_status(self):
        assert kind_of(ResponseError(409, "busy", error_type="transient_state")) == ErrorKind.CONFLICT
        assert kind_of(ResponseError(403, "quota", error_type="quotas_exceeded")) == ErrorKind.QUOTA_EXCEEDED
        assert kind_of(ResponseError(400, "precondition", error_type="precondition_failed")) == ErrorKind.PRECONDITION

    def test_from_response(self):
        response = requests.Response()
        response.status_code = 404
        response._content = b'{"message": "resource is not found", "type": "not_found", "resource": "instance"}'
        response.headers["X-Request-Id"] = "abc"

        err = ResponseError.from_response(response)
        assert err.kind == ErrorKind.NOT_FOUND
        assert err.resource == "instance"
        assert err.context.request_id == "abc"
        assert "404 not_found" in str(err)

    def test_retry_after_is_transient(self):
        response = requests.Response()
        response.status_code = 403
        response._content = b'{"message": "rate limited"}'
        response.headers["Retry-After"] = "30"

        err = ResponseError.from_response(response)
        assert err.kind == ErrorKind.TRANSIENT
        assert err.retry_after == "30"
        assert kind_of(ResponseError(400, "slow down", retry_after="5")) == ErrorKind.TRANSIENT


class TestKindOf:
    @pytest.mark.parametrize("code,status,kind", [
        ("NoSuchBucket", 404, ErrorKind.NOT_FOUND),
        ("AccessDenied", 403, ErrorKind.FORBIDDEN),
        ("BucketNotEmpty", 409, ErrorKind.CONFLICT),
        ("SlowDown", 503, ErrorKind.TRANSIENT),
        ("SomethingNew", 404, ErrorKind.NOT_FOUND),
    ])
    def test_s3_codes(self, code, status, kind):
        assert kind_of(s3_error(code, status)) == kind

    def test_s3_retry_after_is_transient(self):
        err = ClientError(
            {
                "Error": {"Code": "SomethingNew", "Message": "later"},
                "ResponseMetadata": {"HTTPStatusCode": 400, "HTTPHeaders": {"retry-after": "10"}},
            },
            "PutObject",
        )
        assert kind_of(err) == ErrorKind.TRANSIENT
        assert kind_of(s3_error("SomethingNew", 400)) == ErrorKind.VALIDATION

    def test_http_error_retry_after_is_transient(self):
        response = requests.Response()
        response.status_code = 404
        response.headers["Retry-After"] = "1"
        assert kind_of(requests.HTTPError(response=response)) == ErrorKind.TRANSIENT

    def test_network_errors_are_transient(self):
        assert kind_of(requests.ConnectionError("reset")) == ErrorKind.TRANSIENT
        assert kind_of(TimeoutError()) == ErrorKind.TRANSIENT

    def test_unknown_is_fatal(self):
        assert kind_of(RuntimeError("?")) == ErrorKind.FATAL

    def test_none(self):
        assert kind_of(None) is None
        assert not is_not_found(None)

    @pytest.mark.parametrize("err", [
        ResponseError(404, "x"),
        ResponseError(403, "x"),
        ResponseError(409, "x"),
        ResponseError(500, "x"),
        s3_error("NoSuchKey", 404),
        ValidationError("x"),
        RuntimeError("x"),
    ])
    def test_predicates_are_mutually_exclusive(self, err):
        matching = [kind for kind, predicate in PREDICATES.items() if predicate(err)]
        assert matching == [kind_of(err)]


class TestErrorHandler:
    def test_s3_error_is_wrapped(self):
        err = error_handler.handle_exception(s3_error("NoSuchBucket", 404))
        assert isinstance(err, NotFoundError)
        assert "NoSuchBucket" in err.message

    def test_provider_error_is_returned_as_is(self):
        original = FatalError("boom")
        assert error_handler.handle_exception(original) is original


class TestDiagnostics:
    def test_attribute_path_is_kept(self):
        diags = diagnostics_from_error(ValidationError("bad size", attribute="volume_size_in_gb"))
        assert len(diags) == 1
        assert diags[0].severity == Severity.ERROR
        assert diags[0].attribute_path == "volume_size_in_gb"
        assert has_error(diags)

    def test_suggestions_become_detail(self):
        diags = diagnostics_from_error(FatalError("boom", suggestions=["retry", "check"]))
        assert diags[0].detail == "retry\ncheck"

    def test_warnings_are_not_errors(self):
        assert not has_error([warning("careful")])
