from fastapi import APIRouter, Request

from app.core.dependencies import AppSettings, ImageService
from .generate_image_schema import GenerateImageRequest, GenerateImageResponse

router = APIRouter()


@router.post("/generate-image", response_model=GenerateImageResponse)
async def generate_image(
    request: GenerateImageRequest,
    http_request: Request,
    service: ImageService,
    settings: AppSettings,
):
    """Illustrate a single page prompt."""
    style = request.illustrationStyle or settings.default_illustration_style
    image_reference = await service.generate_illustration(
        request.prompt,
        style,
        request.characterDescription,
        reference_image=request.referenceImage,
        should_abort=http_request.is_disconnected,
    )
    return GenerateImageResponse(imageReference=image_reference, illustrationStyle=style)
