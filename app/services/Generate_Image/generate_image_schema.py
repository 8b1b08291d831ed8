from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Optional


class GenerateImageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    prompt: str = Field(min_length=1, max_length=2000, description="What the illustration should show")
    illustrationStyle: Optional[str] = Field(
        default=None,
        max_length=80,
        validation_alias=AliasChoices("illustrationStyle", "illustration_style", "image_style"),
    )
    characterDescription: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Appearance summary used to keep the main character consistent",
    )
    referenceImage: Optional[str] = Field(
        default=None,
        description="Base64 or data URL image to keep the character consistent with (requires an edit-capable IMAGE_MODEL)",
    )


class GenerateImageResponse(BaseModel):
    status: str = "ok"
    imageReference: str = Field(description="Relative /generated/ path or inline data URL, depending on IMAGE_RETURN_MODE")
    illustrationStyle: str
