from fastapi import APIRouter, Depends, Response, status
from controller.controller_dependencies import get_generation_service
from model.api import ErrorResponse, GenerateBabyRequest, GenerateBabyResponse
from service.generation_service import GenerationService
from util.constants import InternalURIs

generation_router = APIRouter()


@generation_router.options(InternalURIs.GENERATE_BABY)
async def generate_baby_preflight() -> Response:
    # Browsers' CORS preflight is answered by the middleware; this covers bare OPTIONS.
    return Response(status_code=status.HTTP_200_OK)


@generation_router.post(
    InternalURIs.GENERATE_BABY,
    response_model=GenerateBabyResponse,
    status_code=status.HTTP_200_OK,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def generate_baby(
    payload: GenerateBabyRequest,
    service: GenerationService = Depends(get_generation_service),
) -> GenerateBabyResponse:
    return await service.generate(payload)
