from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional

from app.core.config import DEFAULT_LANGUAGE


class BookRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    childName: str = Field(
        min_length=1,
        max_length=80,
        validation_alias=AliasChoices("childName", "child_name"),
        description="Name of the child who stars in the book",
    )
    age: int = Field(gt=0, strict=True, description="Child's age in years")
    storyTheme: str = Field(
        min_length=1,
        max_length=500,
        validation_alias=AliasChoices("storyTheme", "story_theme", "story_type"),
        description="What the story should be about",
    )
    illustrationStyle: Optional[str] = Field(
        default=None,
        max_length=80,
        validation_alias=AliasChoices("illustrationStyle", "illustration_style", "image_style"),
        description="Visual style applied to every illustration prompt",
    )
    language: str = Field(default=DEFAULT_LANGUAGE, min_length=1, max_length=40)
    traits: List[str] = Field(default_factory=list, description="Personality traits of the child")
    characterDescription: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Appearance summary from /generate-character, reused across pages",
    )
    childPhoto: Optional[str] = Field(
        default=None,
        description="Base64 or data URL photo; described once when no characterDescription is given",
    )
    illustrate: Optional[bool] = Field(
        default=None,
        description="Generate every page illustration as part of book creation",
    )


class BookPage(BaseModel):
    pageNumber: int = Field(ge=1)
    text: str
    imagePrompt: str
    imageReference: Optional[str] = Field(
        default=None,
        description="Relative /generated/ path or inline data URL, null until illustrated",
    )


class Book(BaseModel):
    title: str
    subtitle: str
    illustrationStyle: str
    pages: List[BookPage]
