"""Tests for the traffic API client with a mocked HTTP session."""

from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from telraam_collector.client import TelraamApiError, TelraamClient
from telraam_collector.models import DateRange


@pytest.fixture
def date_range():
    return DateRange(
        start=datetime(2024, 6, 1, tzinfo=timezone.utc),
        end=datetime(2024, 6, 8, 12, 30, tzinfo=timezone.utc),
    )


@pytest.fixture
def session():
    s = mock.Mock(spec=requests.Session)
    s.headers = {}
    return s


@pytest.fixture(autouse=True)
def no_sleep():
    """Skip real backoff delays."""
    with mock.patch("telraam_collector.client.time.sleep") as sleep:
        yield sleep


def make_response(status_code=200, payload=None, reason="OK"):
    response = mock.Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.reason = reason
    response.text = "" if payload is None else str(payload)
    response.json.return_value = payload
    return response


def make_client(session, **kwargs):
    return TelraamClient("https://api.example.test/", "secret", session=session, **kwargs)


def test_client_requires_api_key(session):
    """Test missing API key is rejected."""
    with pytest.raises(ValueError):
        TelraamClient("https://api.example.test", "", session=session)


def test_client_sets_headers(session):
    """Test API key header is configured on the session."""
    make_client(session)

    assert session.headers["X-Api-Key"] == "secret"
    assert session.headers["Content-Type"] == "application/json"


def test_fetch_traffic_data_request_shape(session, date_range):
    """Test the report request body and URL."""
    report = [{"date": "2024-06-01T00:00:00.000Z", "car": 3}]
    session.post.return_value = make_response(payload={"report": report})

    data = make_client(session).fetch_traffic_data("9000008311", date_range)

    assert data == report
    session.post.assert_called_once()
    args, kwargs = session.post.call_args
    assert args[0] == "https://api.example.test/v1/reports/traffic"
    assert kwargs["json"] == {
        "level": "segments",
        "format": "per-hour",
        "id": "9000008311",
        "time_start": "2024-06-01 00:00:00Z",
        "time_end": "2024-06-08 12:30:00Z",
    }


def test_fetch_missing_report_returns_empty(session, date_range):
    """Test a response without a report yields no readings."""
    session.post.return_value = make_response(payload={"status_code": 200})

    assert make_client(session).fetch_traffic_data("1", date_range) == []


@pytest.mark.parametrize("report", [["oops"], {"date": "2024-06-01T00:00:00.000Z"}, "text"])
def test_fetch_malformed_report_raises(session, date_range, report):
    """Test a report that is not a list of objects is an API error."""
    session.post.return_value = make_response(payload={"report": report})

    with pytest.raises(TelraamApiError, match="Malformed report"):
        make_client(session).fetch_traffic_data("1", date_range)


def test_retries_server_errors_then_succeeds(session, date_range, no_sleep):
    """Test 5xx responses are retried with exponential backoff."""
    session.post.side_effect = [
        make_response(503, reason="Service Unavailable"),
        make_response(500, reason="Internal Server Error"),
        make_response(payload={"report": [{"date": "2024-06-01T00:00:00.000Z"}]}),
    ]

    data = make_client(session, max_retries=3, initial_backoff_sec=2).fetch_traffic_data(
        "1", date_range
    )

    assert len(data) == 1
    assert session.post.call_count == 3
    assert [c.args[0] for c in no_sleep.call_args_list] == [2, 4]


def test_retries_network_errors_until_exhausted(session, date_range):
    """Test connection errors raise TelraamApiError after max retries."""
    session.post.side_effect = requests.ConnectionError("offline")

    with pytest.raises(TelraamApiError) as exc_info:
        make_client(session, max_retries=2).fetch_traffic_data("1", date_range)

    assert session.post.call_count == 2
    assert exc_info.value.status_code is None


def test_client_error_fails_fast(session, date_range):
    """Test 4xx responses other than 429 are not retried."""
    session.post.return_value = make_response(403, payload={"message": "Forbidden"}, reason="Forbidden")

    with pytest.raises(TelraamApiError) as exc_info:
        make_client(session, max_retries=5).fetch_traffic_data("1", date_range)

    assert session.post.call_count == 1
    assert exc_info.value.status_code == 403


def test_rate_limit_is_retried(session, date_range):
    """Test 429 is treated as retryable."""
    session.post.side_effect = [
        make_response(429, reason="Too Many Requests"),
        make_response(payload={"report": []}),
    ]

    assert make_client(session).fetch_traffic_data("1", date_range) == []
    assert session.post.call_count == 2


def test_backoff_is_capped(session, date_range, no_sleep):
    """Test backoff never exceeds max_backoff_sec."""
    session.post.side_effect = requests.Timeout("slow")

    with pytest.raises(TelraamApiError):
        make_client(
            session, max_retries=4, initial_backoff_sec=5, max_backoff_sec=8
        ).fetch_traffic_data("1", date_range)

    assert [c.args[0] for c in no_sleep.call_args_list] == [5, 8, 8]
