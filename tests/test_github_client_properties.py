"""Tests for the remote commit source client.

Feature: commit-sync
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests
from hypothesis import given, settings
from hypothesis import strategies as st

from commitsync.exceptions import FetchError
from commitsync.ingestion.github_client import GitHubClient, format_since

from conftest import raw_commit


def make_response(status_code: int = 200, payload=None, invalid_json: bool = False) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value: line 1 column 1")
    else:
        response.json.return_value = payload
    return response


def make_client(session: MagicMock, max_retries: int = 0) -> GitHubClient:
    session.headers = {}
    return GitHubClient(
        base_url="https://api.github.com/",
        repository="apple/swift",
        max_retries=max_retries,
        session=session,
    )


class TestRequestShape:
    """The fetch asks for one page of commits since the watermark."""

    def test_query_parameters(self):
        session = MagicMock()
        session.get.return_value = make_response(payload=[raw_commit("a1")])
        client = make_client(session)

        payload = client.fetch_commits(datetime(2020, 1, 1, 0, 0, 1, tzinfo=timezone.utc))

        assert payload == [raw_commit("a1")]
        session.get.assert_called_once_with(
            "https://api.github.com/repos/apple/swift/commits",
            params={"per_page": 100, "since": "2020-01-01T00:00:01Z"},
            timeout=30.0,
        )
        assert session.headers["Accept"] == "application/vnd.github+json"

    @given(
        st.datetimes(
            min_value=datetime(1970, 1, 2),
            max_value=datetime(2100, 1, 1),
            timezones=st.just(timezone.utc),
        )
    )
    @settings(max_examples=100)
    def test_since_format_round_trips(self, since: datetime):
        formatted = format_since(since)

        assert formatted.endswith("Z")
        assert datetime.fromisoformat(formatted.replace("Z", "+00:00")) == since

    def test_since_converted_to_utc(self):
        local = datetime(2020, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

        assert format_since(local) == "2020-01-01T00:00:00Z"


class TestFetchFailures:
    """Every transport or payload problem becomes a FetchError."""

    @pytest.mark.parametrize("status_code", [301, 403, 404, 422, 500, 503])
    def test_non_2xx_status(self, status_code: int):
        session = MagicMock()
        session.get.return_value = make_response(status_code=status_code, payload=[])
        client = make_client(session)

        with pytest.raises(FetchError, match=str(status_code)):
            client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

    def test_invalid_json(self):
        session = MagicMock()
        session.get.return_value = make_response(invalid_json=True)
        client = make_client(session)

        with pytest.raises(FetchError, match="not valid JSON"):
            client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

    @pytest.mark.parametrize("payload", [{"message": "API rate limit exceeded"}, "text", None, 3])
    def test_payload_not_an_array(self, payload):
        session = MagicMock()
        session.get.return_value = make_response(payload=payload)
        client = make_client(session)

        with pytest.raises(FetchError, match="Expected a JSON array"):
            client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

    def test_transport_error(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("connection refused")
        client = make_client(session)

        with pytest.raises(FetchError, match="connection refused"):
            client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

        assert session.get.call_count == 1

    def test_timeout_retried_then_succeeds(self):
        session = MagicMock()
        session.get.side_effect = [
            requests.exceptions.Timeout("read timed out"),
            make_response(payload=[raw_commit("a1")]),
        ]
        client = make_client(session, max_retries=2)

        with patch("commitsync.utils.retry.time.sleep") as sleep:
            payload = client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

        assert [item["sha"] for item in payload] == ["a1"]
        assert session.get.call_count == 2
        sleep.assert_called_once_with(1.0)

    def test_retries_exhausted(self):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.Timeout("read timed out")
        client = make_client(session, max_retries=2)

        with patch("commitsync.utils.retry.time.sleep"):
            with pytest.raises(FetchError):
                client.fetch_commits(datetime(2020, 1, 1, tzinfo=timezone.utc))

        assert session.get.call_count == 3
