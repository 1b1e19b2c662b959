import logging
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color, ErrorMessage
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from fastapi.responses import JSONResponse
from model.api import ErrorResponse, HealthResponse
from core.entities import PipelineConfig
from util.constants import InternalURIs
from util.errors import AppError, PipelineError
from util.logger import init_logger

logger = logging.getLogger(__name__)


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    init_logger()
    print(f"{Color.GREEN}Initializing...{Color.RESET}")
    if not settings.REPLICATE_API_TOKEN:
        logger.warning("REPLICATE_API_TOKEN is not set. Replicate API calls will fail.")
    print(f"{Color.BLUE}Server Started{Color.RESET}")
    try:
        yield
    finally:
        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=False,  # keeps a literal "*" origin
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.get(InternalURIs.HEALTHZ, response_model=HealthResponse)
async def healthz():
    return HealthResponse(ok=True)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError):
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorResponse(
            error=exc.message or ErrorMessage.INTERNAL_ERROR.value.message,
            stepsCompleted=exc.steps_completed,
        ),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return _error(exc.status_code, ErrorResponse(error=str(exc.detail)))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("request.invalid path=%s errors=%d", request.url.path, len(exc.errors()))
    return _error(
        ErrorMessage.INVALID_BODY.value.http_status,
        ErrorResponse(error=ErrorMessage.INVALID_BODY.value.message),
    )


@app.exception_handler(405)
async def method_not_allowed_handler(request: Request, exc):
    return _error(
        ErrorMessage.METHOD_NOT_ALLOWED.value.http_status,
        ErrorResponse(error=ErrorMessage.METHOD_NOT_ALLOWED.value.message),
    )


routes.register_routes(app)
routes.register_artifact_files(app, PipelineConfig.from_settings(settings))

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
