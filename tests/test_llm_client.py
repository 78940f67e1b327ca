from unittest.mock import MagicMock, patch

import pytest

from config import Config
from utils.errors import UpstreamServiceError
from utils.llm_client import (
    DEFAULT_MODEL,
    chat_completion,
    openrouter_chat,
    resolve_model,
    strip_code_fence,
    try_parse_json,
)


class TestResolveModel:
    def test_known_models(self):
        assert resolve_model("chatgpt") == ("openai", "gpt-4o-mini")
        assert resolve_model("gemini") == ("openrouter", "google/gemini-2.0-flash-exp:free")
        assert resolve_model("deepseek") == ("openrouter", "deepseek/deepseek-chat")

    def test_case_and_whitespace_are_ignored(self):
        assert resolve_model("  DeepSeek ") == ("openrouter", "deepseek/deepseek-chat")

    @pytest.mark.parametrize("name", [None, "", "claude", "gpt-5"])
    def test_unknown_falls_back_to_default(self, name):
        assert resolve_model(name) == DEFAULT_MODEL


class TestJsonParsing:
    def test_strip_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strip_bare_fence(self):
        assert strip_code_fence('```\n[1, 2]\n```') == "[1, 2]"

    def test_plain_text_untouched(self):
        assert strip_code_fence('{"a": 1}') == '{"a": 1}'

    def test_parse_fenced_object(self):
        assert try_parse_json('Here you go:\n```json\n{"overallScore": 81}\n```') == {"overallScore": 81}

    def test_parse_object_embedded_in_prose(self):
        text = 'Sure! {"questions": [{"question": "Why Flask?"}]} Hope this helps.'
        assert try_parse_json(text) == {"questions": [{"question": "Why Flask?"}]}

    @pytest.mark.parametrize("text", [None, "", "   ", "I cannot help with that.", "{not json}"])
    def test_unparseable_returns_none(self, text):
        assert try_parse_json(text) is None


class TestChatCompletion:
    def test_missing_key_raises_upstream_error(self, monkeypatch):
        monkeypatch.setattr(Config, "OPENAI_API_KEY", None)
        with pytest.raises(UpstreamServiceError) as exc:
            chat_completion("hello", model_name="chatgpt")
        assert "OPENAI_API_KEY" in exc.value.details

    @patch("utils.llm_client.OpenAI")
    def test_openrouter_models_use_base_url(self, mock_openai):
        client = mock_openai.return_value
        client.chat.completions.create.return_value.choices = [
            MagicMock(message=MagicMock(content='{"ok": true}'))
        ]

        assert chat_completion("hi", model_name="gemini", temperature=0.3, max_tokens=10) == '{"ok": true}'

        kwargs = mock_openai.call_args.kwargs
        assert kwargs["base_url"] == Config.OPENROUTER_BASE_URL
        assert kwargs["api_key"] == "test-openrouter-key"
        sent = client.chat.completions.create.call_args.kwargs
        assert sent["model"] == "google/gemini-2.0-flash-exp:free"
        assert sent["temperature"] == 0.3

    @patch("utils.llm_client.OpenAI")
    def test_provider_exception_is_wrapped(self, mock_openai):
        mock_openai.return_value.chat.completions.create.side_effect = RuntimeError("quota exceeded")
        with pytest.raises(UpstreamServiceError) as exc:
            chat_completion("hi")
        assert exc.value.details == "quota exceeded"


class TestOpenRouterChat:
    @patch("utils.llm_client.requests.post")
    def test_returns_trimmed_content(self, mock_post):
        mock_post.return_value.ok = True
        mock_post.return_value.json.return_value = {"choices": [{"message": {"content": "  Tell me more.  "}}]}
        assert openrouter_chat([{"role": "user", "content": "x"}]) == "Tell me more."

    @patch("utils.llm_client.requests.post")
    def test_http_error_raises(self, mock_post):
        mock_post.return_value.ok = False
        mock_post.return_value.status_code = 429
        mock_post.return_value.text = "rate limited"
        with pytest.raises(UpstreamServiceError):
            openrouter_chat([{"role": "user", "content": "x"}])
