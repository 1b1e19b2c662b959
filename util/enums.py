from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    BOLD = "\033[1m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class JobStatus(str, Enum):
    STARTING = "starting"
    QUEUED = "queued"
    PROCESSING = "processing"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @classmethod
    def is_terminal(cls, value: str | None) -> bool:
        # Unknown or missing values count as pending.
        return value in TERMINAL_JOB_STATUSES


TERMINAL_JOB_STATUSES = frozenset(
    {JobStatus.SUCCEEDED.value, JobStatus.FAILED.value, JobStatus.CANCELED.value}
)


class SafetyVerdict(str, Enum):
    NORMAL = "normal"
    FLAGGED = "nsfw"


class StageKind(str, Enum):
    PREPROCESS = "preprocess"
    GENERATE = "generate"
    CLASSIFY = "classify"
    REMEDIATE = "remediate"


class MaskRegion(str, Enum):
    TORSO = "torso"
    LOWER_FACE = "lower_face"


class ErrorInfo(NamedTuple):
    message: str
    http_status: int


class ErrorMessage(Enum):
    MISSING_SOURCES = ErrorInfo(
        "Both momUrl and dadUrl are required.", status.HTTP_400_BAD_REQUEST
    )
    INVALID_BODY = ErrorInfo("Request body must be a JSON object.", status.HTTP_400_BAD_REQUEST)
    METHOD_NOT_ALLOWED = ErrorInfo("Method not allowed", status.HTTP_405_METHOD_NOT_ALLOWED)
    INTERNAL_ERROR = ErrorInfo("An unknown error occurred", status.HTTP_500_INTERNAL_SERVER_ERROR)
