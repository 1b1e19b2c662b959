"""Unit tests for core.job_client: the create/poll client.

The remote service is simulated with ``httpx.MockTransport``; sleeping and
the clock are replaced by :class:`FakeClock` so polling runs instantly.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, List

import httpx
import pytest

from conftest import POLL_URL, PREDICTIONS_URL
from core.job_client import JobClient
from util.errors import (
    JobContractError,
    JobFailedError,
    JobNotConfiguredError,
    JobRemoteError,
    JobTimeoutError,
    JobTransportError,
)


def _prediction(status: str, **extra: Any) -> dict:
    body = {"id": "job-1", "status": status, "urls": {"get": POLL_URL}}
    body.update(extra)
    return body


class ScriptedRemote:
    """MockTransport handler returning queued responses and recording requests."""

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0)
        if callable(item):
            return item(request)
        return item

    @property
    def polls(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]


def _client(remote: Callable, clock, token: str | None = "test-token") -> JobClient:
    return JobClient(
        token,
        PREDICTIONS_URL,
        transport=httpx.MockTransport(remote),
        sleep=clock.sleep,
        clock=clock,
    )


def _run(client: JobClient, **kwargs: Any):
    kwargs.setdefault("poll_interval_ms", 10)
    kwargs.setdefault("timeout_ms", 1000)
    return asyncio.run(client.submit_and_await("owner/model", {"image": "x"}, **kwargs))


class TestSuccess:
    def test_polls_until_succeeded_and_returns_first_output(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(200, json=_prediction("processing")),
                httpx.Response(
                    200, json=_prediction("succeeded", output=["https://out/1.png", "https://out/2.png"])
                ),
            ]
        )
        result = _run(_client(remote, fake_clock))

        assert result == "https://out/1.png"
        assert len(remote.polls) == 2
        assert fake_clock.sleeps == [0.01, 0.01]

    def test_create_request_shape_and_auth(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(200, json=_prediction("succeeded", output=["u"])),
            ]
        )
        _run(_client(remote, fake_clock))

        create, poll = remote.requests
        assert create.method == "POST"
        assert str(create.url) == PREDICTIONS_URL
        assert create.headers["Authorization"] == "Token test-token"
        assert create.headers["Content-Type"] == "application/json"
        assert json.loads(create.content) == {"version": "owner/model", "input": {"image": "x"}}
        assert str(poll.url) == POLL_URL
        assert poll.headers["Authorization"] == "Token test-token"

    def test_scalar_output_is_treated_as_single_element(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("processing")),
                httpx.Response(200, json=_prediction("succeeded", output="normal")),
            ]
        )
        assert _run(_client(remote, fake_clock)) == "normal"

    def test_unknown_status_counts_as_pending(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("warming_up")),
                httpx.Response(200, json=_prediction("succeeded", output=["u"])),
            ]
        )
        assert _run(_client(remote, fake_clock)) == "u"
        assert len(remote.polls) == 1


class TestStartFailures:
    def test_missing_token_fails_before_any_request(self, fake_clock):
        remote = ScriptedRemote([])
        with pytest.raises(JobNotConfiguredError, match="not configured"):
            _run(_client(remote, fake_clock, token=None))
        assert remote.requests == []

    def test_non_2xx_create_carries_status_and_body(self, fake_clock):
        remote = ScriptedRemote([httpx.Response(422, text="invalid version")])
        with pytest.raises(JobTransportError) as info:
            _run(_client(remote, fake_clock))

        assert info.value.phase == "start"
        assert info.value.status_code == 422
        assert "invalid version" in str(info.value)
        assert "start failed" in str(info.value)

    def test_error_field_in_2xx_create_is_fatal_and_never_polls(self, fake_clock):
        remote = ScriptedRemote(
            [httpx.Response(201, json=_prediction("starting", error="bad input"))]
        )
        with pytest.raises(JobRemoteError, match="bad input"):
            _run(_client(remote, fake_clock))
        assert remote.polls == []

    def test_missing_poll_location_is_a_contract_violation(self, fake_clock):
        remote = ScriptedRemote(
            [httpx.Response(201, json={"id": "job-1", "status": "starting"})]
        )
        with pytest.raises(JobContractError, match="GET URL"):
            _run(_client(remote, fake_clock))
        assert remote.polls == []

    def test_non_json_body_is_a_contract_violation(self, fake_clock):
        remote = ScriptedRemote([httpx.Response(200, text="<html>gateway</html>")])
        with pytest.raises(JobContractError):
            _run(_client(remote, fake_clock))

    def test_connection_error_surfaces_as_transport_error(self, fake_clock):
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        remote = ScriptedRemote([boom])
        with pytest.raises(JobTransportError) as info:
            _run(_client(remote, fake_clock))

        assert info.value.status_code is None
        assert isinstance(info.value.__cause__, httpx.ConnectError)


class TestPollFailures:
    def test_non_2xx_poll_fails_immediately(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(503, text="unavailable"),
            ]
        )
        with pytest.raises(JobTransportError) as info:
            _run(_client(remote, fake_clock))

        assert info.value.phase == "poll"
        assert info.value.status_code == 503
        assert len(remote.polls) == 1

    def test_error_field_mid_flight_fails_regardless_of_status(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(200, json=_prediction("processing", error="CUDA out of memory")),
            ]
        )
        with pytest.raises(JobRemoteError, match="during polling: CUDA out of memory"):
            _run(_client(remote, fake_clock))

    @pytest.mark.parametrize("status", ["succeeded", "failed", "canceled"])
    def test_error_field_with_terminal_status_is_a_remote_error(self, fake_clock, status):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(
                    200, json=_prediction(status, output=["https://out.test/x.png"], error="NSFW")
                ),
            ]
        )
        with pytest.raises(JobRemoteError, match="during polling: NSFW"):
            _run(_client(remote, fake_clock))
        assert len(remote.polls) == 1

    def test_succeeded_with_empty_output_is_a_failure(self, fake_clock):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(200, json=_prediction("succeeded", output=[])),
            ]
        )
        with pytest.raises(JobFailedError) as info:
            _run(_client(remote, fake_clock))
        assert info.value.status == "succeeded"

    @pytest.mark.parametrize("status", ["failed", "canceled"])
    def test_terminal_non_success_statuses_fail(self, fake_clock, status):
        remote = ScriptedRemote(
            [
                httpx.Response(201, json=_prediction("starting")),
                httpx.Response(200, json=_prediction(status)),
            ]
        )
        with pytest.raises(JobFailedError, match=f"Status: {status}"):
            _run(_client(remote, fake_clock))

    def test_terminal_status_on_create_skips_polling(self, fake_clock):
        remote = ScriptedRemote([httpx.Response(201, json=_prediction("canceled"))])
        with pytest.raises(JobFailedError):
            _run(_client(remote, fake_clock))
        assert remote.polls == []
        assert fake_clock.sleeps == []


class TestTimeout:
    def test_times_out_and_stops_polling(self, fake_clock):
        def processing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_prediction("processing"))

        remote = ScriptedRemote(
            [httpx.Response(201, json=_prediction("starting"))] + [processing] * 20
        )
        with pytest.raises(JobTimeoutError, match="timed out"):
            _run(_client(remote, fake_clock), poll_interval_ms=10, timeout_ms=55)

        # Checks at t=0,10,...,50ms pass, t=60ms trips: six polls then stop.
        assert len(remote.polls) == 6
        assert fake_clock.now == pytest.approx(0.06)
