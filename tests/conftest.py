"""Shared pytest fixtures: scripted collaborators for the job client, the
safety pipeline and the HTTP layer. No test touches the network."""

import logging
from typing import Any, Callable, Dict, List

import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from controller.controller_dependencies import get_generation_service
from core.entities import PipelineConfig
from core.safety_pipeline import SafetyPipeline, build_stages
from main import app
from service.generation_service import GenerationService
from util.errors import ArtifactStoreError

PREDICTIONS_URL = "https://api.test/v1/predictions"
POLL_URL = "https://api.test/v1/predictions/job-1"
HOSTING_BASE_URL = "https://host.test"
MOM_URL = "https://img.test/mom.jpg"
DAD_URL = "https://img.test/dad.jpg"


class FakeClock:
    """Monotonic clock that only moves when the code under test sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedJobClient:
    """Stands in for JobClient; answers per model from a queue.

    Queue items that are exceptions are raised, everything else is returned.
    """

    def __init__(self, script: Dict[str, List[Any]], configured: bool = True) -> None:
        self.script = {k: list(v) for k, v in script.items()}
        self.configured = configured
        self.calls: List[tuple] = []

    async def submit_and_await(
        self,
        model_identifier: str,
        parameters: Dict[str, Any],
        poll_interval_ms: int = 1000,
        timeout_ms: int = 120000,
    ) -> Any:
        self.calls.append((model_identifier, dict(parameters)))
        queue = self.script.get(model_identifier) or []
        if not queue:
            raise AssertionError(f"unexpected call to {model_identifier}")
        item = queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def calls_for(self, model_identifier: str) -> List[Dict[str, Any]]:
        return [p for m, p in self.calls if m == model_identifier]


class RecordingStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: List[tuple] = []

    async def save(self, artifact_url: str, filename: str) -> str:
        if self.fail:
            raise ArtifactStoreError("Failed to download image: Not Found")
        self.saved.append((artifact_url, filename))
        return f"{HOSTING_BASE_URL}/generated/{filename}"


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    """Configuration with short polling knobs and fixed test URLs."""
    return PipelineConfig(
        api_token="test-token",
        predictions_url=PREDICTIONS_URL,
        baby_model="baby-model",
        inpaint_model="inpaint-model",
        nsfw_model="nsfw-model",
        torso_mask_url="https://host.test/masks/baby-torso-rect.png",
        lower_face_mask_url="https://host.test/masks/lower-face-rect.png",
        hosting_base_url=HOSTING_BASE_URL,
        poll_interval_ms=10,
        timeout_ms=1000,
    )


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_pipeline(
    pipeline_config: PipelineConfig, store: RecordingStore
) -> Callable[..., SafetyPipeline]:
    """Factory: build a SafetyPipeline around a scripted client."""

    def _make(client: ScriptedJobClient, artifact_store=None) -> SafetyPipeline:
        return SafetyPipeline(
            client, pipeline_config, artifact_store or store, build_stages(settings)
        )

    return _make


@pytest.fixture
def api_client(make_pipeline):
    """Factory: TestClient whose generation service runs on a scripted client.

    Returns (TestClient, ScriptedJobClient).
    """

    def _make(script: Dict[str, List[Any]], configured: bool = True):
        job_client = ScriptedJobClient(script, configured=configured)
        service = GenerationService(make_pipeline(job_client))
        app.dependency_overrides[get_generation_service] = lambda: service
        return TestClient(app), job_client

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def fresh_logging(monkeypatch):
    """Let init_logger run again, then put the root logger back as it was.

    Yields:
        The root logger.
    """
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    monkeypatch.setattr(root, "_safe_baby_inited", False, raising=False)
    try:
        yield root
    finally:
        for h in list(root.handlers):
            if h not in saved_handlers:
                root.removeHandler(h)
                h.close()
        for h in saved_handlers:
            if h not in root.handlers:
                root.addHandler(h)
        root.setLevel(saved_level)
