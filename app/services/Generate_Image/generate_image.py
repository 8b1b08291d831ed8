import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

import openai
import requests

from app.core.config import Settings
from app.core.errors import (
    InvalidInput,
    PersistenceFailure,
    RequestAborted,
    UpstreamMalformed,
    translate_openai_error,
)
from app.utils.image_processing import (
    detect_image_format,
    download_image,
    normalize_reference_image,
    to_data_url,
)
from app.utils.image_storage import ImageStorage

logger = logging.getLogger(__name__)

AbortCheck = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class UrlImage:
    url: str


@dataclass(frozen=True)
class InlineImage:
    data: bytes


GeneratedImage = Union[UrlImage, InlineImage]


def extract_generated_image(response) -> GeneratedImage:
    """Pull the first image out of an images API response, whichever shape it has."""
    data = getattr(response, "data", None) or []
    if not data:
        raise UpstreamMalformed("No image returned by the AI")

    item = data[0]
    url = getattr(item, "url", None)
    if url:
        return UrlImage(url=url)

    b64_data = getattr(item, "b64_json", None)
    if b64_data:
        try:
            return InlineImage(data=base64.b64decode(b64_data))
        except (binascii.Error, ValueError) as e:
            raise UpstreamMalformed("The AI returned an undecodable image payload", detail=str(e))

    raise UpstreamMalformed("No image returned by the AI")


class GenerateImage:
    def __init__(self, client: openai.AsyncOpenAI, settings: Settings, storage: ImageStorage):
        self.client = client
        self.settings = settings
        self.storage = storage

    async def generate_illustration(
        self,
        prompt: str,
        style: Optional[str] = None,
        character_description: Optional[str] = None,
        reference_image: Optional[str] = None,
        should_abort: Optional[AbortCheck] = None,
    ) -> str:
        """Illustrate one prompt and return an image reference for the caller.

        Not idempotent: every call produces a new image and, in stored mode,
        a new file.
        """
        if not prompt or not prompt.strip():
            raise InvalidInput("prompt is required")

        style = style or self.settings.default_illustration_style

        reference_bytes = None
        if reference_image:
            try:
                reference_bytes, _ = normalize_reference_image(reference_image)
            except ValueError as e:
                raise InvalidInput("referenceImage is not a readable image", detail=str(e))

        enhanced_prompt = self.create_prompt(
            prompt.strip(), style, character_description, has_reference=reference_bytes is not None
        )
        if should_abort is not None and await should_abort():
            raise RequestAborted("Client disconnected before the illustration was requested")

        generated = await self.get_openai_response(enhanced_prompt, reference_bytes)
        return await self.to_image_reference(generated, should_abort)

    def create_prompt(
        self,
        prompt: str,
        style: str,
        character_description: Optional[str] = None,
        has_reference: bool = False,
    ) -> str:
        consistency = ""
        if character_description:
            consistency += f"\nMain character appearance, keep it exactly consistent: {character_description.strip()}"
        if has_reference:
            consistency += (
                "\nThe main character's face, hair, eyes and skin tone must exactly match the reference image."
            )

        return f"""
Children's storybook illustration in {style} style.
{prompt}{consistency}
Style: Professional children's book illustration, warm friendly colors, soft lighting, high quality, child-friendly, whimsical and gentle.
Do not include any text, letters, words, captions, signatures, logos, watermarks or brand marks in the image.
""".strip()

    async def get_openai_response(self, prompt: str, reference_bytes: Optional[bytes] = None) -> GeneratedImage:
        params = {
            "model": self.settings.image_model,
            "prompt": prompt,
            "size": self.settings.image_size,
            "n": 1,
        }
        if self.settings.upstream_supports_response_format:
            params["response_format"] = self.settings.image_response_format

        try:
            if reference_bytes is not None:
                response = await self.client.images.edit(
                    image=("reference.png", reference_bytes, "image/png"), **params
                )
            else:
                response = await self.client.images.generate(**params)
        except openai.OpenAIError as e:
            logger.error(f"Image generation request failed: {str(e)}")
            raise translate_openai_error(e, "image generation")

        return extract_generated_image(response)

    async def to_image_reference(
        self, generated: GeneratedImage, should_abort: Optional[AbortCheck] = None
    ) -> str:
        """Normalize either response shape into a /generated/ path or a data URL."""
        if isinstance(generated, UrlImage):
            try:
                image_bytes = await asyncio.to_thread(
                    download_image, generated.url, self.settings.upstream_timeout
                )
            except requests.RequestException as e:
                # the provider URL carries a signature, keep it out of the detail
                logger.error(f"Downloading generated image failed: {type(e).__name__}")
                raise PersistenceFailure(
                    "The illustration was generated but could not be downloaded",
                    detail=type(e).__name__,
                )
        else:
            image_bytes = generated.data

        if detect_image_format(image_bytes) is None:
            raise UpstreamMalformed("The AI returned data that is not an image")

        if should_abort is not None and await should_abort():
            raise RequestAborted("Client disconnected before the illustration was delivered")

        if self.settings.image_return_mode == "inline":
            return to_data_url(image_bytes)

        try:
            return await asyncio.to_thread(self.storage.save, image_bytes)
        except OSError as e:
            logger.error(f"Writing generated image failed: {str(e)}")
            raise PersistenceFailure(
                "The illustration was generated but could not be stored", detail=str(e)
            )
