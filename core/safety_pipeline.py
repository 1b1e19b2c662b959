# core/safety_pipeline.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple
from core.entities import Classification, PipelineConfig, PipelineRun
from core.job_client import JobClient
from repository.artifact_repository import ArtifactStore
from util.enums import MaskRegion, SafetyVerdict, StageKind
from util.errors import JobNotConfiguredError, PipelineError, SafetyExhaustedError
from util.functions import artifact_filename, classification_label
from util.timing import timed

logger = logging.getLogger(__name__)

FINALIZE = "finalize"
FAIL = "fail"
HOSTING_LABEL = "image_hosting"

GENERATION_STEPS = 50
GENERATION_GUIDANCE = 15
INPAINT_STEPS = 50
INPAINT_GUIDANCE = 7.5

_KNOWN_LABELS = frozenset(v.value for v in SafetyVerdict)


@dataclass(frozen=True)
class StageSpec:
    """
    One row of the stage table. `id` doubles as the audit label.

    Non-classify stages continue to `next`. Classify stages finalize on a normal
    verdict and go to `on_flagged` otherwise, or fail when it is None.
    """

    id: str
    kind: StageKind
    next: Optional[str] = None
    on_flagged: Optional[str] = None
    prompt: str = ""
    negative_prompt: str = ""
    mask: Optional[MaskRegion] = None


def build_stages(s) -> Tuple[StageSpec, ...]:
    """
    The fixed remediation sequence: at most two inpainting attempts, each
    starting from the generated composite, each followed by a classification.
    """
    return (
        StageSpec(
            "dad_preprocessing",
            StageKind.PREPROCESS,
            next="baby_generation",
            prompt=s.BEARD_REMOVAL_PROMPT,
            negative_prompt=s.BEARD_REMOVAL_NEGATIVE_PROMPT,
            mask=MaskRegion.LOWER_FACE,
        ),
        StageSpec("baby_generation", StageKind.GENERATE, next="nsfw_check_1"),
        StageSpec("nsfw_check_1", StageKind.CLASSIFY, on_flagged="clothing_inpainting"),
        StageSpec(
            "clothing_inpainting",
            StageKind.REMEDIATE,
            next="nsfw_check_2",
            prompt=s.CLOTHING_PROMPT,
            negative_prompt=s.CLOTHING_NEGATIVE_PROMPT,
            mask=MaskRegion.TORSO,
        ),
        StageSpec(
            "nsfw_check_2", StageKind.CLASSIFY, on_flagged="clothing_inpainting_retry"
        ),
        StageSpec(
            "clothing_inpainting_retry",
            StageKind.REMEDIATE,
            next="nsfw_check_3",
            prompt=s.CLOTHING_RETRY_PROMPT,
            negative_prompt=s.CLOTHING_RETRY_NEGATIVE_PROMPT,
            mask=MaskRegion.TORSO,
        ),
        StageSpec("nsfw_check_3", StageKind.CLASSIFY, on_flagged=None),
    )


def transition(stage: StageSpec, verdict: Optional[SafetyVerdict] = None) -> str:
    """Next stage id, FINALIZE or FAIL. Pure; no I/O."""
    if stage.kind is StageKind.CLASSIFY:
        if verdict is SafetyVerdict.NORMAL:
            return FINALIZE
        return stage.on_flagged or FAIL
    return stage.next or FINALIZE


def validate_stages(stages: Sequence[StageSpec]) -> Dict[str, StageSpec]:
    """
    Index the table by id and reject tables that could loop or dangle.
    Following `next`/`on_flagged` from the first stage must visit each stage at most once.
    """
    if not stages:
        raise ValueError("stage table is empty")
    by_id: Dict[str, StageSpec] = {}
    for st in stages:
        if st.id in by_id:
            raise ValueError(f"duplicate stage id: {st.id}")
        by_id[st.id] = st

    seen = set()
    current: Optional[StageSpec] = stages[0]
    while current is not None:
        if current.id in seen:
            raise ValueError(f"stage table loops at: {current.id}")
        seen.add(current.id)
        target = current.on_flagged if current.kind is StageKind.CLASSIFY else current.next
        if target is None:
            current = None
        elif target not in by_id:
            raise ValueError(f"stage {current.id} points to unknown stage {target}")
        else:
            current = by_id[target]

    if not any(st.kind is StageKind.GENERATE for st in stages):
        raise ValueError("stage table has no generate stage")
    return by_id


class SafetyPipeline:
    def __init__(
        self,
        client: JobClient,
        config: PipelineConfig,
        store: ArtifactStore,
        stages: Sequence[StageSpec],
    ) -> None:
        self._client = client
        self._config = config
        self._store = store
        self._stages = tuple(stages)
        self._by_id = validate_stages(self._stages)

    async def run(self, source_a: str, source_b: str) -> PipelineRun:
        """
        Drive one request through the stage table and hand the final artifact
        to the store. Every failure comes out as a PipelineError carrying the
        steps completed so far.
        """
        run = PipelineRun(source_a=source_a, source_b=source_b)
        try:
            with timed(logger, "pipeline.run"):
                if not self._client.configured:
                    raise JobNotConfiguredError()
                await self._drive(run)
                await self._finalize(run)
        except Exception as e:
            logger.error("pipeline.failed steps=%s err=%s", run.steps_completed, e)
            raise PipelineError(
                f"Safety pipeline failed: {e}", run.steps_completed
            ) from e
        logger.info("pipeline.ok steps=%s url=%s", run.steps_completed, run.current_artifact)
        return run

    async def _drive(self, run: PipelineRun) -> None:
        stage = self._stages[0]
        while True:
            verdict = await self._execute(stage, run)
            target = transition(stage, verdict)
            if target == FINALIZE:
                return
            if target == FAIL:
                raise SafetyExhaustedError()
            logger.info("pipeline.transition from=%s to=%s", stage.id, target)
            stage = self._by_id[target]

    async def _execute(self, stage: StageSpec, run: PipelineRun) -> Optional[SafetyVerdict]:
        if stage.kind is StageKind.PREPROCESS:
            try:
                run.source_b = await self._inpaint(run.source_b, stage)
            except Exception as e:
                # Best-effort: keep the original input.
                logger.warning(
                    "pipeline.stage.skipped stage=%s err=%s", stage.id, e, exc_info=True
                )
                return None
            run.record(stage.id)
            return None

        if stage.kind is StageKind.GENERATE:
            out = await self._submit(
                self._config.baby_model,
                {
                    "image": run.source_a,
                    "image2": run.source_b,
                    "num_inference_steps": GENERATION_STEPS,
                    "guidance_scale": GENERATION_GUIDANCE,
                },
            )
            run.composite_artifact = run.current_artifact = out
            run.record(stage.id)
            return None

        if stage.kind is StageKind.REMEDIATE:
            # Always from the generated composite, never from a previous edit.
            run.current_artifact = await self._inpaint(run.composite_artifact, stage)
            run.record(stage.id)
            return None

        result = await self.classify(run.current_artifact)
        run.record(classification_label(stage.id, result.verdict.value))
        return result.verdict

    async def classify(self, image_url: str) -> Classification:
        raw = await self._submit(self._config.nsfw_model, {"image": image_url})
        verdict = SafetyVerdict.NORMAL if raw == SafetyVerdict.NORMAL.value else SafetyVerdict.FLAGGED
        unexpected = not isinstance(raw, str) or raw not in _KNOWN_LABELS
        if unexpected:
            logger.warning("pipeline.classify.unexpected_label label=%r treated_as=%s", raw, verdict.value)
        else:
            logger.info("pipeline.classify image=%s verdict=%s", image_url, verdict.value)
        return Classification(verdict=verdict, raw_label=raw, unexpected=unexpected)

    async def _inpaint(self, image_url: Optional[str], stage: StageSpec) -> Any:
        return await self._submit(
            self._config.inpaint_model,
            {
                "image": image_url,
                "mask": self._config.mask_url(stage.mask or MaskRegion.TORSO),
                "prompt": stage.prompt,
                "negative_prompt": stage.negative_prompt,
                "num_inference_steps": INPAINT_STEPS,
                "guidance_scale": INPAINT_GUIDANCE,
            },
        )

    async def _submit(self, model: str, parameters: Dict[str, Any]) -> Any:
        return await self._client.submit_and_await(
            model,
            parameters,
            poll_interval_ms=self._config.poll_interval_ms,
            timeout_ms=self._config.timeout_ms,
        )

    async def _finalize(self, run: PipelineRun) -> None:
        filename = artifact_filename()
        run.current_artifact = await self._store.save(run.current_artifact, filename)
        run.record(HOSTING_LABEL)
