import json
import logging
from typing import List, Optional

import openai

from app.core.config import BOOK_PAGE_COUNT, MAX_PAGE_WORDS, Settings
from app.core.errors import UpstreamMalformed, translate_openai_error
from .generate_story_schema import Book, BookPage, BookRequest

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "My Magical Story"
DEFAULT_SUBTITLE = "A personalized adventure"
DEFAULT_TRAITS = "kind and curious"

SYSTEM_PROMPT = (
    "You are a children's book author and illustrator assistant. "
    "You always answer with a single valid JSON object and nothing else."
)


class GenerateStory:
    def __init__(self, client: openai.AsyncOpenAI, settings: Settings):
        self.client = client
        self.settings = settings

    async def generate_story(
        self, request: BookRequest, character_description: Optional[str] = None
    ) -> Book:
        """Write a 10-page book for the request.

        Raises UpstreamMalformed when the model output cannot be turned into
        exactly ten usable pages, and the translated provider error otherwise.
        """
        style = request.illustrationStyle or self.settings.default_illustration_style
        prompt = self.create_prompt(request, style, character_description)
        response_content = await self.get_openai_response(prompt)
        return self.parse_book(response_content, style)

    def create_prompt(
        self, request: BookRequest, style: str, character_description: Optional[str] = None
    ) -> str:
        traits = ", ".join(t for t in request.traits if t.strip()) or DEFAULT_TRAITS

        continuity = ""
        if character_description:
            continuity = f"""
Character appearance (keep it IDENTICAL in every imagePrompt):
{character_description}
Every imagePrompt must describe {request.childName} with exactly these features so the illustrations stay visually consistent from page to page.
"""

        return f"""Write a magical children's picture book.

Child Information:
- Name: {request.childName}
- Age: {request.age}
- Personality traits: {traits}
- Story theme: {request.storyTheme}
- Illustration style: {style}
- Language: {request.language}
{continuity}
Requirements:
1. Write the title, subtitle and every page text in {request.language}
2. The story MUST have exactly {BOOK_PAGE_COUNT} pages, no more and no fewer
3. Each page text is at most {MAX_PAGE_WORDS} words
4. {request.childName} is the main character; the tone is warm, gentle and appropriate for a {request.age}-year-old
5. The story has a clear beginning, middle and end and closes with a gentle life lesson
6. Each imagePrompt is written in ENGLISH, 1-3 sentences, describing scene, characters, setting and mood in the {style} style
7. Never mention brand names, logos, trademarks or written text in an imagePrompt

Output Format:
Return a JSON object with exactly these fields:
{{
  "title": "short catchy book title",
  "subtitle": "one-line subtitle",
  "pages": [
    {{"text": "story text for page 1", "imagePrompt": "illustration description for page 1"}},
    ...
    {{"text": "story text for page {BOOK_PAGE_COUNT}", "imagePrompt": "illustration description for page {BOOK_PAGE_COUNT}"}}
  ]
}}

Generate the complete book now in valid JSON format only."""

    async def get_openai_response(self, prompt: str) -> str:
        try:
            completion = await self.client.chat.completions.create(
                model=self.settings.text_model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.settings.story_temperature,
                max_tokens=4000,
                response_format={"type": "json_object"},
            )
        except openai.OpenAIError as e:
            logger.error(f"Story generation request failed: {str(e)}")
            raise translate_openai_error(e, "story generation")

        if not completion.choices or not completion.choices[0].message.content:
            raise UpstreamMalformed("The AI returned an empty story")

        return completion.choices[0].message.content.strip()

    def parse_book(self, response_content: str, style: str) -> Book:
        try:
            response_data = json.loads(response_content)
        except json.JSONDecodeError as e:
            raise UpstreamMalformed("The AI returned a story that is not valid JSON", detail=str(e))

        if not isinstance(response_data, dict):
            raise UpstreamMalformed(
                f"The AI returned a {type(response_data).__name__} instead of a JSON object"
            )

        raw_pages = response_data.get("pages")
        if not isinstance(raw_pages, list):
            raise UpstreamMalformed("The AI response has no pages array")

        if len(raw_pages) != BOOK_PAGE_COUNT:
            raise UpstreamMalformed(
                f"Page count mismatch: expected {BOOK_PAGE_COUNT} pages, got {len(raw_pages)}"
            )

        pages = self.normalize_pages(raw_pages)

        return Book(
            title=_clean(response_data.get("title")) or DEFAULT_TITLE,
            subtitle=_clean(response_data.get("subtitle")) or DEFAULT_SUBTITLE,
            illustrationStyle=style,
            pages=pages,
        )

    def normalize_pages(self, raw_pages: list) -> List[BookPage]:
        pages = []
        for index, raw_page in enumerate(raw_pages, start=1):
            if not isinstance(raw_page, dict):
                raise UpstreamMalformed(f"Page {index} is not a JSON object")

            text = _clean(raw_page.get("text"))
            image_prompt = _clean(raw_page.get("imagePrompt", raw_page.get("image_prompt")))
            if not text:
                raise UpstreamMalformed(f"Page {index} has no text")
            if not image_prompt:
                raise UpstreamMalformed(f"Page {index} has no imagePrompt")

            word_count = len(text.split())
            if word_count > MAX_PAGE_WORDS:
                logger.warning(f"Page {index} has {word_count} words (limit {MAX_PAGE_WORDS})")

            pages.append(BookPage(pageNumber=index, text=text, imagePrompt=image_prompt))
        return pages


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""
