from pydantic import BaseModel, Field
from util.constants import SUCCESS_MESSAGE


class GenerateBabyRequest(BaseModel):
    # Optional at the schema level so a missing field yields our 400 envelope.
    momUrl: str | None = None
    dadUrl: str | None = None


class GenerateBabyResponse(BaseModel):
    babyUrl: str
    success: bool = True
    stepsCompleted: list[str] = Field(default_factory=list)
    message: str = SUCCESS_MESSAGE


class ErrorResponse(BaseModel):
    error: str
    success: bool = False
    stepsCompleted: list[str] | None = None


class HealthResponse(BaseModel):
    ok: bool
