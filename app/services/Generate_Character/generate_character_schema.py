from pydantic import AliasChoices, BaseModel, Field
from typing import Optional


class CharacterDescription(BaseModel):
    text: str


class GenerateCharacterRequest(BaseModel):
    childPhoto: str = Field(
        min_length=1,
        validation_alias=AliasChoices("childPhoto", "child_photo"),
        description="Base64 string or data URL of the child's photo",
    )
    illustrationStyle: Optional[str] = Field(
        default=None,
        max_length=80,
        validation_alias=AliasChoices("illustrationStyle", "illustration_style", "image_style"),
    )
    includePortrait: bool = Field(
        default=False,
        description="Also illustrate a portrait of the character in the chosen style",
    )


class GenerateCharacterResponse(BaseModel):
    status: str = "ok"
    characterDescription: str
    illustrationStyle: Optional[str] = None
    imageReference: Optional[str] = None
