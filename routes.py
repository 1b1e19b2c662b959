import os
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from controller.generation_controller import generation_router
from core.entities import PipelineConfig
from util.constants import ExternalURIs


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(generation_router)


def register_artifact_files(app: FastAPI, config: PipelineConfig) -> None:
    """Serve the directory artifact store under /generated when it is enabled."""
    if (config.artifact_store or "").lower() != "directory":
        return
    os.makedirs(config.artifact_dir, exist_ok=True)
    app.mount(
        ExternalURIs.GENERATED_PREFIX,
        StaticFiles(directory=config.artifact_dir),
        name="generated",
    )
