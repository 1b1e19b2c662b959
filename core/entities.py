from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, List, Mapping, Optional
from util.enums import MaskRegion, SafetyVerdict


@dataclass(frozen=True)
class JobRequest:
    """
    One remote model invocation. `parameters` is frozen into a read-only view.
    """

    model_identifier: str
    parameters: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "parameters", MappingProxyType(dict(self.parameters))
        )

    def body(self) -> dict:
        return {"version": self.model_identifier, "input": dict(self.parameters)}


@dataclass(frozen=True)
class JobHandle:
    id: Optional[str]
    poll_location: str


@dataclass(frozen=True)
class Classification:
    verdict: SafetyVerdict
    raw_label: Any
    unexpected: bool = False  # label outside {"normal", "nsfw"}


@dataclass
class PipelineRun:
    source_a: str  # mom
    source_b: str  # dad, replaced by the preprocessed image when that succeeds
    steps_completed: List[str] = field(default_factory=list)
    composite_artifact: Optional[str] = None
    current_artifact: Optional[str] = None

    def record(self, label: str) -> None:
        # Append-only audit trail.
        self.steps_completed.append(label)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Process-wide, read-only configuration handed to JobClient and SafetyPipeline.
    """

    api_token: Optional[str]
    predictions_url: str
    baby_model: str
    inpaint_model: str
    nsfw_model: str
    torso_mask_url: str
    lower_face_mask_url: str
    hosting_base_url: str
    poll_interval_ms: int = 1000
    timeout_ms: int = 120000
    http_timeout_seconds: float = 30.0
    artifact_store: str = "passthrough"
    artifact_dir: str = "generated"

    @property
    def configured(self) -> bool:
        return bool(self.api_token)

    def mask_url(self, region: MaskRegion) -> str:
        if region is MaskRegion.TORSO:
            return self.torso_mask_url
        return self.lower_face_mask_url

    @classmethod
    def from_settings(cls, s) -> "PipelineConfig":
        return cls(
            api_token=s.REPLICATE_API_TOKEN,
            predictions_url=s.REPLICATE_API_URL,
            baby_model=s.BABY_MODEL_VERSION,
            inpaint_model=s.INPAINT_MODEL_VERSION,
            nsfw_model=s.NSFW_MODEL_VERSION,
            torso_mask_url=s.BABY_TORSO_RECT_MASK,
            lower_face_mask_url=s.LOWER_FACE_RECT_MASK,
            hosting_base_url=s.HOSTING_BASE_URL,
            poll_interval_ms=s.POLL_INTERVAL_MS,
            timeout_ms=s.POLL_TIMEOUT_MS,
            http_timeout_seconds=s.HTTP_TIMEOUT_SECONDS,
            artifact_store=s.ARTIFACT_STORE,
            artifact_dir=s.ARTIFACT_DIR,
        )
