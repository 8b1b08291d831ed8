"""Runtime configuration.

Values come from the process environment (optionally seeded from a .env file)
and are read once at startup into an immutable Settings object that is passed
explicitly to every service.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_ILLUSTRATION_STYLE = "Soft Storybook"
DEFAULT_LANGUAGE = "English"
BOOK_PAGE_COUNT = 10
MAX_PAGE_WORDS = 80

IMAGE_RETURN_MODES = ("stored", "inline")
IMAGE_RESPONSE_FORMATS = ("url", "b64_json")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    text_model: str = "gpt-4o-mini"
    vision_model: str = "gpt-4o-mini"
    image_model: str = "dall-e-3"
    image_size: str = "1024x1024"
    image_response_format: str = "url"
    image_return_mode: str = "stored"
    generated_dir: Path = Path("generated")
    generated_url_prefix: str = "/generated"
    upstream_timeout: float = 60.0
    max_concurrent_illustrations: int = 3
    illustrate_on_create: bool = False
    story_temperature: float = 0.8
    default_illustration_style: str = DEFAULT_ILLUSTRATION_STYLE
    log_json: bool = False
    log_level: str = "INFO"
    port: int = 3000

    def __post_init__(self):
        if self.image_return_mode not in IMAGE_RETURN_MODES:
            raise ValueError(
                f"IMAGE_RETURN_MODE must be one of {IMAGE_RETURN_MODES}, got {self.image_return_mode!r}"
            )
        if self.image_response_format not in IMAGE_RESPONSE_FORMATS:
            raise ValueError(
                f"IMAGE_RESPONSE_FORMAT must be one of {IMAGE_RESPONSE_FORMATS}, got {self.image_response_format!r}"
            )
        if self.max_concurrent_illustrations < 1:
            raise ValueError("MAX_CONCURRENT_ILLUSTRATIONS must be at least 1")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables, loading .env first."""
        if dotenv:
            load_dotenv()

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            text_model=os.getenv("TEXT_MODEL", cls.text_model),
            vision_model=os.getenv("VISION_MODEL", cls.vision_model),
            image_model=os.getenv("IMAGE_MODEL", cls.image_model),
            image_size=os.getenv("IMAGE_SIZE", cls.image_size),
            image_response_format=os.getenv("IMAGE_RESPONSE_FORMAT", cls.image_response_format).lower(),
            image_return_mode=os.getenv("IMAGE_RETURN_MODE", cls.image_return_mode).lower(),
            generated_dir=Path(os.getenv("GENERATED_DIR", "generated")),
            upstream_timeout=_env_float("UPSTREAM_TIMEOUT", cls.upstream_timeout),
            max_concurrent_illustrations=_env_int(
                "MAX_CONCURRENT_ILLUSTRATIONS", cls.max_concurrent_illustrations
            ),
            illustrate_on_create=_env_bool("ILLUSTRATE_ON_CREATE", cls.illustrate_on_create),
            story_temperature=_env_float("STORY_TEMPERATURE", cls.story_temperature),
            default_illustration_style=os.getenv(
                "DEFAULT_ILLUSTRATION_STYLE", DEFAULT_ILLUSTRATION_STYLE
            ),
            log_json=_env_bool("LOG_JSON", cls.log_json),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
            port=_env_int("PORT", cls.port),
        )

    @property
    def upstream_supports_response_format(self) -> bool:
        # gpt-image-* models always answer with b64_json and reject the parameter
        return self.image_model.startswith("dall-e")
