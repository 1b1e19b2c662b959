# core/job_client.py
import asyncio
import logging
import time
from typing import Any, Dict, Optional
import httpx
from pydantic import ValidationError
from core.entities import JobHandle, JobRequest, PipelineConfig
from model.job import Prediction
from util.enums import JobStatus
from util.errors import (
    JobContractError,
    JobFailedError,
    JobNotConfiguredError,
    JobRemoteError,
    JobTimeoutError,
    JobTransportError,
)
from util.functions import clip_text
from util.timing import timed
from util.types import ClockFn, JobParameters, SleepFn

logger = logging.getLogger(__name__)


class JobClient:
    """
    Runs one remote prediction to completion: create, poll until terminal, return
    the first output reference. No retries; every failure surfaces as a JobError.

    Each call opens its own HTTP client, so instances hold only read-only
    configuration and are safe to share across requests.
    """

    def __init__(
        self,
        api_token: Optional[str],
        predictions_url: str,
        http_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFn = asyncio.sleep,
        clock: ClockFn = time.monotonic,
    ) -> None:
        self._token = api_token
        self._url = predictions_url
        self._http_timeout = http_timeout
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: PipelineConfig, **kwargs: Any) -> "JobClient":
        return cls(
            config.api_token,
            config.predictions_url,
            http_timeout=config.http_timeout_seconds,
            **kwargs,
        )

    @property
    def configured(self) -> bool:
        return bool(self._token)

    def _headers(self, with_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Token {self._token}"}
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    async def submit_and_await(
        self,
        model_identifier: str,
        parameters: JobParameters,
        poll_interval_ms: int = 1000,
        timeout_ms: int = 120000,
    ) -> Any:
        if not self.configured:
            raise JobNotConfiguredError()

        request = JobRequest(model_identifier, parameters)
        logger.info("job.start model=%s input=%s", model_identifier, dict(request.parameters))

        with timed(logger, "job.run", model=model_identifier):
            async with httpx.AsyncClient(
                timeout=self._http_timeout, transport=self._transport
            ) as client:
                started = self._clock()
                prediction = await self._start(client, request)
                handle = self._handle_for(prediction)
                logger.debug("job.created id=%s status=%s", handle.id, prediction.status)

                while not JobStatus.is_terminal(prediction.status):
                    # Checked before sleeping, so the last sleep may overshoot slightly.
                    if (self._clock() - started) * 1000 > timeout_ms:
                        logger.error("job.timeout id=%s ms=%d", handle.id, timeout_ms)
                        raise JobTimeoutError(timeout_ms)
                    await self._sleep(poll_interval_ms / 1000)
                    prediction = await self._poll(client, handle)
                    logger.debug("job.poll id=%s status=%s", handle.id, prediction.status)

            return self._first_output(prediction)

    async def _start(self, client: httpx.AsyncClient, request: JobRequest) -> Prediction:
        prediction = await self._send(
            client, "start", "POST", self._url, json=request.body(),
            headers=self._headers(with_body=True),
        )
        if prediction.error:
            logger.error("job.start.remote_error err=%s", prediction.error)
            raise JobRemoteError(prediction.error)
        return prediction

    async def _poll(self, client: httpx.AsyncClient, handle: JobHandle) -> Prediction:
        prediction = await self._send(
            client, "poll", "GET", handle.poll_location, headers=self._headers()
        )
        # The service can report errors mid-flight under any status.
        if prediction.error:
            logger.error("job.poll.remote_error id=%s err=%s", handle.id, prediction.error)
            raise JobRemoteError(prediction.error, during_poll=True)
        return prediction

    async def _send(
        self, client: httpx.AsyncClient, phase: str, method: str, url: str, **kwargs: Any
    ) -> Prediction:
        try:
            res = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error("job.%s.request_error err=%s", phase, type(e).__name__)
            raise JobTransportError(phase, None, type(e).__name__) from e

        if not res.is_success:
            body = clip_text(res.text)
            logger.error("job.%s.bad_status status=%d body=%s", phase, res.status_code, body)
            raise JobTransportError(phase, res.status_code, res.reason_phrase, body)

        try:
            return Prediction.model_validate(res.json())
        except (ValueError, ValidationError) as e:
            raise JobContractError(
                f"Replicate API returned an unreadable {phase} response."
            ) from e

    @staticmethod
    def _handle_for(prediction: Prediction) -> JobHandle:
        if not prediction.poll_location:
            raise JobContractError("Replicate API did not return a GET URL for polling.")
        return JobHandle(id=prediction.id, poll_location=prediction.poll_location)

    @staticmethod
    def _first_output(prediction: Prediction) -> Any:
        if prediction.status == JobStatus.SUCCEEDED.value and prediction.output:
            logger.info("job.succeeded output=%s", prediction.output[0])
            return prediction.output[0]
        raise JobFailedError(prediction.status, prediction.error)
