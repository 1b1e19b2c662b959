from typing import Any
from pydantic import BaseModel, ConfigDict, field_validator


class PredictionUrls(BaseModel):
    model_config = ConfigDict(extra="ignore")

    get: str | None = None


class Prediction(BaseModel):
    """
    Remote prediction payload, as returned by both create and poll calls.
    Unknown fields are ignored; `status` is kept as a raw string so new remote
    states are treated as pending instead of failing validation.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    status: str | None = None
    urls: PredictionUrls | None = None
    output: list[Any] | None = None
    error: str | None = None

    @field_validator("output", mode="before")
    @classmethod
    def _wrap_scalar_output(cls, v: Any) -> Any:
        # Classifier models answer with a bare string instead of a list.
        if v is None or isinstance(v, list):
            return v
        return [v]

    @field_validator("error", mode="before")
    @classmethod
    def _stringify_error(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return v if isinstance(v, str) else str(v)

    @property
    def poll_location(self) -> str | None:
        return self.urls.get if self.urls else None
