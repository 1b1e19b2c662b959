import logging
from core.safety_pipeline import SafetyPipeline
from model.api import GenerateBabyRequest, GenerateBabyResponse
from util.enums import ErrorMessage
from util.errors import AppError

logger = logging.getLogger(__name__)


class GenerationService:
    """
    Turns one HTTP request into one pipeline run. Holds no per-request state.
    """

    def __init__(self, pipeline: SafetyPipeline) -> None:
        self._pipeline = pipeline

    async def generate(self, payload: GenerateBabyRequest) -> GenerateBabyResponse:
        mom_url = (payload.momUrl or "").strip()
        dad_url = (payload.dadUrl or "").strip()
        if not mom_url or not dad_url:
            logger.warning("generate.rejected mom=%s dad=%s", bool(mom_url), bool(dad_url))
            raise AppError(
                ErrorMessage.MISSING_SOURCES.value.message,
                ErrorMessage.MISSING_SOURCES.value.http_status,
            )

        logger.info("generate.request mom=%s dad=%s", mom_url, dad_url)
        # PipelineError propagates to the app-level handler with the partial trail.
        run = await self._pipeline.run(mom_url, dad_url)
        return GenerateBabyResponse(
            babyUrl=run.current_artifact, stepsCompleted=run.steps_completed
        )
