from fastapi import APIRouter, Request

from app.core.dependencies import AppSettings, CharacterService, ImageService
from .generate_character_schema import GenerateCharacterRequest, GenerateCharacterResponse

router = APIRouter()

PORTRAIT_PROMPT = (
    "Character sheet portrait of the main character of a children's book: "
    "a friendly child standing and smiling at the viewer, full body, plain light background."
)


@router.post("/generate-character", response_model=GenerateCharacterResponse)
async def generate_character(
    request: GenerateCharacterRequest,
    http_request: Request,
    character_service: CharacterService,
    image_service: ImageService,
    settings: AppSettings,
):
    """Describe the child in the photo, optionally with a portrait illustration."""
    character = await character_service.describe_character(request.childPhoto)

    style = request.illustrationStyle or settings.default_illustration_style
    image_reference = None
    if request.includePortrait:
        image_reference = await image_service.generate_illustration(
            PORTRAIT_PROMPT,
            style,
            character.text,
            should_abort=http_request.is_disconnected,
        )

    return GenerateCharacterResponse(
        characterDescription=character.text,
        illustrationStyle=style,
        imageReference=image_reference,
    )
