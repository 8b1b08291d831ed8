"""Unit tests for the story generator."""

import json

import pytest

from app.core.errors import GenerationFailed, UpstreamMalformed, UpstreamThrottled, UpstreamUnavailable
from app.services.Generate_Story.generate_story import DEFAULT_SUBTITLE, DEFAULT_TITLE, GenerateStory
from app.services.Generate_Story.generate_story_schema import BookRequest


@pytest.fixture
def book_request():
    return BookRequest(childName="Mia", age=5, storyTheme="ocean adventure")


@pytest.fixture
def service(fake_openai, settings):
    return GenerateStory(fake_openai, settings)


class TestGenerateStory:
    @pytest.mark.asyncio
    async def test_returns_ten_pages_numbered_by_position(self, service, book_request):
        book = await service.generate_story(book_request)

        assert len(book.pages) == 10
        assert [page.pageNumber for page in book.pages] == list(range(1, 11))
        assert book.title == "Mia and the Ocean"
        assert book.subtitle == "A splashy adventure"

    @pytest.mark.asyncio
    async def test_pages_are_trimmed_and_not_illustrated(self, service, book_request):
        book = await service.generate_story(book_request)

        first = book.pages[0]
        assert first.text == "Mia swims to reef number 1."
        assert first.imagePrompt == "A girl swimming past coral reef 1"
        assert all(page.imageReference is None for page in book.pages)

    @pytest.mark.asyncio
    async def test_default_style_applied_when_absent(self, service, book_request):
        book = await service.generate_story(book_request)
        assert book.illustrationStyle == "Soft Storybook"

    @pytest.mark.asyncio
    async def test_missing_title_and_subtitle_fall_back(self, service, fake_openai, book_request, helpers):
        payload = json.loads(helpers.story_payload())
        del payload["title"]
        payload["subtitle"] = "   "
        fake_openai.chat.completions.create.return_value = helpers.completion(json.dumps(payload))

        book = await service.generate_story(book_request)

        assert book.title == DEFAULT_TITLE
        assert book.subtitle == DEFAULT_SUBTITLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page_count", [0, 9, 11, 12])
    async def test_wrong_page_count_is_rejected_not_truncated(
        self, service, fake_openai, book_request, helpers, page_count
    ):
        fake_openai.chat.completions.create.return_value = helpers.completion(
            helpers.story_payload(page_count=page_count)
        )

        with pytest.raises(UpstreamMalformed) as exc_info:
            await service.generate_story(book_request)

        assert "expected 10 pages" in exc_info.value.message
        assert f"got {page_count}" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["not json at all", "[1, 2, 3]", '{"title": "x"}', '{"pages": "ten"}'])
    async def test_unusable_payloads_are_malformed(self, service, fake_openai, book_request, helpers, content):
        fake_openai.chat.completions.create.return_value = helpers.completion(content)

        with pytest.raises(UpstreamMalformed):
            await service.generate_story(book_request)

    @pytest.mark.asyncio
    async def test_empty_completion_is_malformed(self, service, fake_openai, book_request, helpers):
        fake_openai.chat.completions.create.return_value = helpers.completion(None)

        with pytest.raises(UpstreamMalformed):
            await service.generate_story(book_request)

    @pytest.mark.asyncio
    async def test_blank_page_text_is_malformed(self, service, fake_openai, book_request, helpers):
        payload = json.loads(helpers.story_payload())
        payload["pages"][4]["text"] = "   "
        fake_openai.chat.completions.create.return_value = helpers.completion(json.dumps(payload))

        with pytest.raises(UpstreamMalformed, match="Page 5 has no text"):
            await service.generate_story(book_request)

    @pytest.mark.asyncio
    async def test_snake_case_image_prompt_accepted(self, service, fake_openai, book_request, helpers):
        payload = json.loads(helpers.story_payload())
        for page in payload["pages"]:
            page["image_prompt"] = page.pop("imagePrompt")
        fake_openai.chat.completions.create.return_value = helpers.completion(json.dumps(payload))

        book = await service.generate_story(book_request)

        assert book.pages[9].imagePrompt == "A girl swimming past coral reef 10"

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_throttled(self, service, fake_openai, book_request, helpers):
        fake_openai.chat.completions.create.side_effect = helpers.rate_limit_error()

        with pytest.raises(UpstreamThrottled):
            await service.generate_story(book_request)

    @pytest.mark.asyncio
    async def test_quota_exhaustion_has_billing_message(self, service, fake_openai, book_request, helpers):
        fake_openai.chat.completions.create.side_effect = helpers.rate_limit_error(
            code="insufficient_quota", message="You exceeded your current quota"
        )

        with pytest.raises(UpstreamThrottled) as exc_info:
            await service.generate_story(book_request)

        assert "billing" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout_maps_to_unavailable(self, service, fake_openai, book_request, helpers):
        fake_openai.chat.completions.create.side_effect = helpers.timeout_error()

        with pytest.raises(UpstreamUnavailable):
            await service.generate_story(book_request)

    @pytest.mark.asyncio
    async def test_other_provider_errors_are_generic_failures(self, service, fake_openai, book_request):
        import openai

        fake_openai.chat.completions.create.side_effect = openai.OpenAIError("boom with sk-abcdefghijklmnop")

        with pytest.raises(GenerationFailed) as exc_info:
            await service.generate_story(book_request)

        assert "sk-abcdefghijklmnop" not in exc_info.value.detail


class TestStoryPrompt:
    @pytest.mark.asyncio
    async def test_request_uses_json_mode_and_temperature(self, service, fake_openai, book_request):
        await service.generate_story(book_request)

        kwargs = fake_openai.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] > 0
        assert [m["role"] for m in kwargs["messages"]] == ["system", "user"]

    def test_prompt_states_constraints(self, service):
        request = BookRequest(
            childName="Noa", age=6, storyTheme="space", language="Hebrew", traits=["brave", "funny"]
        )
        prompt = service.create_prompt(request, "Watercolor")

        assert "exactly 10 pages" in prompt
        assert "at most 80 words" in prompt
        assert "brand names" in prompt
        assert "Hebrew" in prompt
        assert "brave, funny" in prompt
        assert "Watercolor" in prompt
        assert "Character appearance" not in prompt

    def test_prompt_defaults_traits(self, service, book_request):
        prompt = service.create_prompt(book_request, "Soft Storybook")
        assert "kind and curious" in prompt

    def test_prompt_threads_character_description(self, service, book_request):
        prompt = service.create_prompt(book_request, "Soft Storybook", "curly red hair and green eyes")

        assert "curly red hair and green eyes" in prompt
        assert "visually consistent" in prompt
