from fastapi import APIRouter, Request

from app.core.dependencies import CreateBookService
from app.services.Generate_Story.generate_story_schema import BookRequest
from .create_book_schema import CreateBookResponse

router = APIRouter()


@router.post("/create-book", response_model=CreateBookResponse)
async def create_book(request: BookRequest, http_request: Request, service: CreateBookService):
    """Generate a 10-page book; illustrations are included when ``illustrate`` is on."""
    return await service.create_book(request, should_abort=http_request.is_disconnected)
