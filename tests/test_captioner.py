"""
Unit tests for the product metadata captioner.
"""

from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest
from openai import OpenAI

from asset_importer.config import Settings
from asset_importer.core.llm.captioner import (
    MAX_NAME_LENGTH,
    Captioner,
    fallback_metadata,
    parse_metadata,
)


def _completion(content):
    message = MagicMock()
    message.content = content
    choice = MagicMock()
    choice.message = message
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def mock_llm_client():
    """Create mock OpenAI client."""
    return MagicMock(spec=OpenAI)


@pytest.fixture
def cfg():
    return Settings(_env_file=None, openai_api_key="sk-test")


class TestParseMetadata:

    def test_plain_json(self):
        meta = parse_metadata('{"name": "Retro Font", "description": "A font.", "keywords": ["retro", "font"]}')

        assert meta.name == "Retro Font"
        assert meta.keywords == ["retro", "font"]
        assert meta.fallback is False

    def test_code_fenced_json(self):
        meta = parse_metadata('```json\n{"name": "A", "description": "B", "keywords": []}\n```')

        assert meta.name == "A"

    def test_json_embedded_in_text(self):
        meta = parse_metadata('Sure! {"name": "A", "description": "B"} Hope that helps.')

        assert meta.description == "B"
        assert meta.keywords == []

    def test_keywords_as_string(self):
        meta = parse_metadata('{"name": "A", "description": "B", "keywords": "x, y,,z"}')

        assert meta.keywords == ["x", "y", "z"]

    def test_name_truncated(self):
        meta = parse_metadata('{"name": "%s", "description": "B"}' % ("n" * 120))

        assert len(meta.name) == MAX_NAME_LENGTH

    @pytest.mark.parametrize("content", [None, "", "no json here", "[1, 2]", '{"name": "A"}', '{"description": "B"}'])
    def test_malformed(self, content):
        with pytest.raises(ValueError):
            parse_metadata(content)


class TestFallbackMetadata:

    def test_derived_from_filename(self):
        meta = fallback_metadata("summer_beach-poster.zip", "Posters")

        assert meta.name == "Summer Beach Poster"
        assert meta.description == "High-quality posters product: summer_beach-poster.zip"
        assert meta.keywords == ["posters", "summer", "beach", "poster"]
        assert meta.fallback is True


class TestCaptioner:

    def test_no_api_key_means_unavailable(self):
        captioner = Captioner(Settings(_env_file=None, openai_api_key=None))

        assert captioner.is_available is False

    def test_client_built_with_http_client(self, cfg):
        with patch("asset_importer.core.llm.captioner.OpenAI") as mock_openai:
            with patch("asset_importer.core.llm.captioner.httpx.Client") as mock_http:
                captioner = Captioner(cfg)

        assert captioner.is_available
        mock_http.assert_called_once_with(verify=True, timeout=cfg.openai_timeout)
        assert mock_openai.call_args.kwargs["max_retries"] == cfg.openai_max_retries

    @pytest.mark.asyncio
    async def test_caption_uses_llm_response(self, cfg, mock_llm_client):
        mock_llm_client.chat = MagicMock()
        mock_llm_client.chat.completions.create.return_value = _completion(
            '{"name": "Retro Font", "description": "A retro font.", "keywords": ["retro"]}'
        )
        captioner = Captioner(cfg, client=mock_llm_client)

        meta = await captioner.caption("https://cdn.test/images/retro.jpg", "retro.zip", "Fonts")

        assert meta.name == "Retro Font"
        assert meta.fallback is False
        kwargs = mock_llm_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == cfg.openai_model
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 500
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "retro.zip" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back(self, cfg, mock_llm_client):
        mock_llm_client.chat = MagicMock()
        mock_llm_client.chat.completions.create.return_value = _completion("I cannot help with that.")
        captioner = Captioner(cfg, client=mock_llm_client)

        meta = await captioner.caption("https://x/a.jpg", "retro_font.zip", "Fonts")

        assert meta.fallback is True
        assert meta.name == "Retro Font"

    @pytest.mark.asyncio
    async def test_provider_error_falls_back(self, cfg, mock_llm_client):
        mock_llm_client.chat = MagicMock()
        mock_llm_client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", "https://api.test/v1/chat/completions")
        )
        captioner = Captioner(cfg, client=mock_llm_client)

        meta = await captioner.caption("https://x/a.jpg", "a.zip", "Fonts")

        assert meta.fallback is True

    @pytest.mark.asyncio
    async def test_unavailable_captioner_returns_fallback(self):
        captioner = Captioner(Settings(_env_file=None, openai_api_key=None))

        meta = await captioner.caption("https://x/a.jpg", "a.zip", "Fonts")

        assert meta.fallback is True
        assert meta.keywords[0] == "fonts"

    @pytest.mark.asyncio
    async def test_empty_choices_fall_back(self, cfg, mock_llm_client):
        response = MagicMock()
        response.choices = []
        mock_llm_client.chat = MagicMock()
        mock_llm_client.chat.completions.create.return_value = response
        captioner = Captioner(cfg, client=mock_llm_client)

        meta = await captioner.caption("https://x/a.jpg", "retro_font.zip", "Fonts")

        assert meta.fallback is True
        assert meta.name == "Retro Font"

    @pytest.mark.asyncio
    async def test_missing_message_falls_back(self, cfg, mock_llm_client):
        response = MagicMock()
        response.choices = [MagicMock(message=None)]
        mock_llm_client.chat = MagicMock()
        mock_llm_client.chat.completions.create.return_value = response
        captioner = Captioner(cfg, client=mock_llm_client)

        meta = await captioner.caption("https://x/a.jpg", "retro_font.zip", "Fonts")

        assert meta.fallback is True
