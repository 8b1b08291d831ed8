import logging
from typing import Optional

import openai

from app.core.config import Settings
from app.core.errors import InvalidInput, translate_openai_error
from app.utils.image_processing import normalize_reference_image
from .generate_character_schema import CharacterDescription

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_WORDS = 60

FALLBACK_DESCRIPTION = (
    "A cheerful young child with a warm smile, bright curious eyes "
    "and neatly brushed hair, wearing comfortable colorful clothes."
)

DESCRIBE_INSTRUCTION = f"""Describe the child in this photo for a children's book illustrator.
Write one concise paragraph of at most {MAX_DESCRIPTION_WORDS} words covering:
- hair color, length and style
- eye color and shape
- skin tone
- face shape
- distinguishing features (freckles, glasses, dimples, missing teeth, etc.)

Only describe stable physical appearance that can be repeated in every illustration.
Do not mention clothing brands, background, emotions or the photo itself.
Do not guess the child's name or identity."""


class GenerateCharacter:
    def __init__(self, client: openai.AsyncOpenAI, settings: Settings):
        self.client = client
        self.settings = settings

    async def describe_character(self, photo: Optional[str]) -> CharacterDescription:
        """Turn a child's photo into a reusable appearance description."""
        if not photo or not photo.strip():
            raise InvalidInput("childPhoto is required")

        try:
            _, data_url = normalize_reference_image(photo)
        except ValueError as e:
            raise InvalidInput("childPhoto is not a readable image", detail=str(e))

        description = await self.get_openai_response(data_url)
        if not description:
            logger.warning("Vision model returned an empty description, using fallback")
            description = FALLBACK_DESCRIPTION

        return CharacterDescription(text=description)

    async def get_openai_response(self, data_url: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.settings.vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": DESCRIBE_INSTRUCTION},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
                temperature=0.2,
                max_tokens=200,
            )
        except openai.OpenAIError as e:
            logger.error(f"Character description request failed: {str(e)}")
            raise translate_openai_error(e, "character description")

        if not completion.choices:
            return ""
        content = completion.choices[0].message.content
        return content.strip() if content else ""
