"""Tests for success/failure classification of HTTP exchanges."""

import httpx
import pytest

from workflowy_api.client.status_classifier import (
    ConfirmationMode,
    HttpExchange,
    Outcome,
    classify_exchange,
)
from workflowy_api.models import (
    AuthenticationError,
    HttpFailure,
    MalformedResponse,
    NodeNotFoundError,
    RateLimitError,
    RequestTimeoutError,
    StatusNotOk,
    TransportFailure,
    UnexpectedShape,
)

CONFIRMED = ConfirmationMode.STATUS_OK_BODY


def exchange(status=200, body="", **kwargs):
    return HttpExchange(status_code=status, body=body, **kwargs)


class TestStatusOkBody:
    @pytest.mark.parametrize("status", ["ok", "OK", "Ok"])
    def test_ok_in_any_case_is_confirmed(self, status):
        result = classify_exchange(exchange(body=f'{{"status": "{status}"}}'), "delete_node", CONFIRMED)
        assert result.outcome is Outcome.SUCCESS_CONFIRMED
        assert result.ok
        assert result.to_error() is None

    @pytest.mark.parametrize("status", ["pending", "failed", ""])
    def test_other_status_is_not_ok(self, status):
        result = classify_exchange(exchange(body=f'{{"status": "{status}"}}'), "delete_node", CONFIRMED)
        assert result.outcome is Outcome.STATUS_NOT_OK
        with pytest.raises(StatusNotOk) as info:
            result.raise_for_failure()
        assert info.value.status_code == 200
        assert info.value.operation == "delete_node"

    def test_non_string_status_is_not_ok(self):
        result = classify_exchange(exchange(body='{"status": true}'), "move_node", CONFIRMED)
        assert result.outcome is Outcome.STATUS_NOT_OK

    def test_missing_status_is_unexpected_shape(self):
        result = classify_exchange(exchange(body="{}"), "complete_node", CONFIRMED)
        assert result.outcome is Outcome.UNEXPECTED_SHAPE
        assert isinstance(result.to_error(), UnexpectedShape)

    def test_json_array_is_unexpected_shape(self):
        result = classify_exchange(exchange(body='["ok"]'), "complete_node", CONFIRMED)
        assert result.outcome is Outcome.UNEXPECTED_SHAPE

    @pytest.mark.parametrize("body", ["", "OK", "<html>oops</html>"])
    def test_non_json_is_malformed(self, body):
        result = classify_exchange(exchange(body=body), "update_node", CONFIRMED)
        assert result.outcome is Outcome.MALFORMED_RESPONSE
        error = result.to_error()
        assert isinstance(error, MalformedResponse)
        assert error.raw_body == body


class TestHttpStatusMode:
    def test_2xx_succeeds_without_looking_at_body(self):
        result = classify_exchange(exchange(status=201, body="not json"), "create_node")
        assert result.outcome is Outcome.SUCCESS
        assert result.raw_body == "not json"

    def test_non_2xx_fails_in_both_modes(self):
        for mode in ConfirmationMode:
            result = classify_exchange(exchange(status=500, body="boom"), "get_node", mode)
            assert result.outcome is Outcome.HTTP_FAILURE
            assert result.status_code == 500


class TestFailures:
    def test_transport_error_reports_status_zero(self):
        result = classify_exchange(
            HttpExchange(status_code=0, transport_error="connection refused"), "get_node"
        )
        assert result.outcome is Outcome.TRANSPORT_FAILURE
        error = result.to_error()
        assert type(error) is TransportFailure
        assert error.status_code == 0
        assert error.detail == "connection refused"

    def test_timeout_is_a_transport_failure(self):
        result = classify_exchange(
            HttpExchange(status_code=0, transport_error="timed out", timed_out=True), "get_node"
        )
        error = result.to_error()
        assert isinstance(error, RequestTimeoutError)
        assert isinstance(error, TransportFailure)

    def test_404_keeps_json_detail_and_node_id(self):
        result = classify_exchange(
            exchange(
                status=404,
                body='{"detail": "not found"}',
                reason="Not Found",
                path="/nodes/abc/complete",
                node_id="abc",
            ),
            "get_node",
        )
        error = result.to_error()
        assert isinstance(error, NodeNotFoundError)
        assert error.status_code == 404
        assert error.node_id == "abc"
        assert error.detail == {"detail": "not found"}
        assert "not found" in str(error)

    def test_plain_text_error_body_is_kept(self):
        error = classify_exchange(exchange(status=502, body="Bad gateway"), "get_node").to_error()
        assert type(error) is HttpFailure
        assert error.detail == "Bad gateway"

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures(self, status):
        error = classify_exchange(exchange(status=status, body=""), "get_node").to_error()
        assert isinstance(error, AuthenticationError)
        assert isinstance(error, HttpFailure)
        assert error.detail is None

    def test_rate_limit_reads_retry_after(self):
        error = classify_exchange(
            exchange(status=429, body="", headers=httpx.Headers({"retry-after": "7"})), "list_nodes"
        ).to_error()
        assert isinstance(error, RateLimitError)
        assert error.retry_after == 7
        assert error.details["retry_after"] == 7

    def test_404_without_addressed_node(self):
        error = classify_exchange(exchange(status=404, body="", path="/nodes-export"), "export_nodes").to_error()
        assert isinstance(error, NodeNotFoundError)
        assert error.node_id is None

    def test_rate_limit_without_retry_after(self):
        error = classify_exchange(exchange(status=429, body=""), "list_nodes").to_error()
        assert isinstance(error, RateLimitError)
        assert error.retry_after is None
