from pydantic import BaseModel, Field
from typing import List, Optional

from app.services.Generate_Story.generate_story_schema import BookPage


class CreateBookResponse(BaseModel):
    status: str = "ok"
    title: str
    subtitle: str
    illustrationStyle: str
    language: str
    characterDescription: Optional[str] = None
    pages: List[BookPage] = Field(description="Exactly 10 pages, numbered from 1")
    failedPages: List[int] = Field(
        default_factory=list,
        description="Pages whose illustration could not be generated; their imageReference is null",
    )
