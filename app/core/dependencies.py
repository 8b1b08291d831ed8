"""FastAPI dependency injection for settings, the provider client and services.

The OpenAI client and Settings are built once in the app lifespan and kept on
``app.state``; every service is constructed per request around them.
"""

from typing import Annotated

import openai
from fastapi import Depends, Request

from app.core.config import Settings
from app.services.Create_Book.create_book import CreateBook
from app.services.Generate_Character.generate_character import GenerateCharacter
from app.services.Generate_Image.generate_image import GenerateImage
from app.services.Generate_Story.generate_story import GenerateStory
from app.utils.image_storage import ImageStorage


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_openai_client(request: Request) -> openai.AsyncOpenAI:
    return request.app.state.openai_client


AppSettings = Annotated[Settings, Depends(get_settings)]
OpenAIClient = Annotated[openai.AsyncOpenAI, Depends(get_openai_client)]


def get_image_storage(settings: AppSettings) -> ImageStorage:
    return ImageStorage(settings.generated_dir, settings.generated_url_prefix)


def get_story_service(client: OpenAIClient, settings: AppSettings) -> GenerateStory:
    return GenerateStory(client, settings)


def get_character_service(client: OpenAIClient, settings: AppSettings) -> GenerateCharacter:
    return GenerateCharacter(client, settings)


def get_image_service(
    client: OpenAIClient,
    settings: AppSettings,
    storage: Annotated[ImageStorage, Depends(get_image_storage)],
) -> GenerateImage:
    return GenerateImage(client, settings, storage)


StoryService = Annotated[GenerateStory, Depends(get_story_service)]
CharacterService = Annotated[GenerateCharacter, Depends(get_character_service)]
ImageService = Annotated[GenerateImage, Depends(get_image_service)]


def get_create_book_service(
    story_service: StoryService,
    character_service: CharacterService,
    image_service: ImageService,
    settings: AppSettings,
) -> CreateBook:
    return CreateBook(story_service, character_service, image_service, settings)


CreateBookService = Annotated[CreateBook, Depends(get_create_book_service)]
