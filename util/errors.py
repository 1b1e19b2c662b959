from fastapi import HTTPException, status


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)


class JobError(RuntimeError):
    """Base class for failures of a single remote prediction job."""


class JobNotConfiguredError(JobError):
    def __init__(self) -> None:
        super().__init__("Replicate API token is not configured.")


class JobTransportError(JobError):
    """Non-2xx response (or a failed request) while starting or polling a job."""

    def __init__(
        self, phase: str, status_code: int | None, reason: str, body: str = ""
    ) -> None:
        self.phase = phase
        self.status_code = status_code
        self.body = body
        detail = f"{reason} - {body}" if body else reason
        if status_code is not None:
            detail = f"({status_code}) {detail}"
        super().__init__(f"Replicate API {phase} failed: {detail}")


class JobRemoteError(JobError):
    """The service reported an application error inside a 2xx response."""

    def __init__(self, remote_message: str, during_poll: bool = False) -> None:
        self.remote_message = remote_message
        where = " during polling" if during_poll else ""
        super().__init__(f"Replicate API returned an error{where}: {remote_message}")


class JobContractError(JobError):
    """An expected field is absent from an otherwise well-formed response."""


class JobTimeoutError(JobError):
    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"Replicate API polling timed out after {timeout_ms}ms.")


class JobFailedError(JobError):
    def __init__(self, status: str | None, remote_message: str | None) -> None:
        self.status = status
        self.remote_message = remote_message
        super().__init__(
            "Replicate API call failed or was canceled. "
            f"Status: {status}. Error: {remote_message or 'None'}"
        )


class SafetyExhaustedError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("Safe output not possible after multiple attempts.")


class ArtifactStoreError(RuntimeError):
    """The final artifact could not be materialized."""


class PipelineError(RuntimeError):
    """Single wrapped failure of a pipeline run; keeps the partial audit trail."""

    def __init__(self, message: str, steps_completed: list[str]) -> None:
        super().__init__(message)
        self.message = message
        self.steps_completed = list(steps_completed)
