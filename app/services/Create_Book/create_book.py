"""Book assembly: character description, story, then optional page illustrations."""

import asyncio
import logging
import time
import uuid
from typing import List, Optional

from app.core.config import Settings
from app.core.errors import BookEngineError, RequestAborted, UpstreamThrottled
from app.core.logging import book_logger
from app.services.Generate_Character.generate_character import GenerateCharacter
from app.services.Generate_Image.generate_image import AbortCheck, GenerateImage
from app.services.Generate_Story.generate_story import GenerateStory
from app.services.Generate_Story.generate_story_schema import Book, BookRequest
from .create_book_schema import CreateBookResponse

logger = logging.getLogger(__name__)


class CreateBook:
    def __init__(
        self,
        story_service: GenerateStory,
        character_service: GenerateCharacter,
        image_service: GenerateImage,
        settings: Settings,
    ):
        self.story_service = story_service
        self.character_service = character_service
        self.image_service = image_service
        self.settings = settings

    async def create_book(
        self,
        request: BookRequest,
        should_abort: Optional[AbortCheck] = None,
        request_id: Optional[str] = None,
    ) -> CreateBookResponse:
        request_id = request_id or uuid.uuid4().hex[:8]
        stage = "character"

        try:
            character_description = request.characterDescription
            if not character_description and request.childPhoto:
                started = time.monotonic()
                book_logger.stage_started(request_id, stage)
                character = await self.character_service.describe_character(request.childPhoto)
                character_description = character.text
                book_logger.stage_completed(request_id, stage, time.monotonic() - started)

            stage = "story"
            started = time.monotonic()
            book_logger.stage_started(request_id, stage)
            book = await self.story_service.generate_story(request, character_description)
            book_logger.stage_completed(request_id, stage, time.monotonic() - started)

            failed_pages = []
            illustrate = request.illustrate
            if illustrate is None:
                illustrate = self.settings.illustrate_on_create
            if illustrate:
                stage = "illustrations"
                started = time.monotonic()
                book_logger.stage_started(request_id, stage)
                failed_pages = await self.illustrate_pages(
                    book, character_description, should_abort, request_id
                )
                book_logger.stage_completed(request_id, stage, time.monotonic() - started)
        except BookEngineError as e:
            book_logger.book_failed(request_id, e, stage)
            raise

        return CreateBookResponse(
            title=book.title,
            subtitle=book.subtitle,
            illustrationStyle=book.illustrationStyle,
            language=request.language,
            characterDescription=character_description,
            pages=book.pages,
            failedPages=failed_pages,
        )

    async def illustrate_pages(
        self,
        book: Book,
        character_description: Optional[str],
        should_abort: Optional[AbortCheck],
        request_id: str,
    ) -> List[int]:
        """Fill in imageReference for every page, at most N provider calls at a time.

        A page that fails is left without an image and its number returned.
        Throttling or a client disconnect cancels the remaining pages and
        propagates.
        """
        semaphore = asyncio.Semaphore(self.settings.max_concurrent_illustrations)

        async def illustrate_page(page) -> Optional[int]:
            async with semaphore:
                try:
                    page.imageReference = await self.image_service.generate_illustration(
                        page.imagePrompt,
                        book.illustrationStyle,
                        character_description,
                        should_abort=should_abort,
                    )
                    return None
                except (UpstreamThrottled, RequestAborted):
                    raise
                except BookEngineError as e:
                    book_logger.page_failed(request_id, page.pageNumber, e)
                    return page.pageNumber

        tasks = [asyncio.create_task(illustrate_page(page)) for page in book.pages]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return sorted(page_number for page_number in results if page_number is not None)
