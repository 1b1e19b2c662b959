from config.settings import settings
from core.entities import PipelineConfig
from core.job_client import JobClient
from core.safety_pipeline import SafetyPipeline, build_stages
from repository.artifact_repository import build_artifact_store
from service.generation_service import GenerationService


def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_settings(settings)


def get_generation_service() -> GenerationService:
    _config = get_pipeline_config()
    _client = JobClient.from_config(_config)
    _store = build_artifact_store(_config)
    _pipeline = SafetyPipeline(_client, _config, _store, build_stages(settings))
    _service = GenerationService(_pipeline)
    return _service
