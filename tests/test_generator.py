"""Tests for the OpenAI-backed content generator."""

from unittest.mock import AsyncMock
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest
from returns.result import Failure
from returns.result import Success

from genmr.connection_pool import HTTPResponse
from genmr.generator import CHATGPT_MODELS
from genmr.generator import GeneratedContent
from genmr.generator import OpenAIGenerator
from genmr.generator import is_chatgpt_alias
from genmr.generator import normalize_model
from genmr.generator import parse_ai_response
from genmr.prompt import default_prompt_options


def completion(content: str) -> Success[HTTPResponse]:
    """Chat completion response with a single choice."""
    return Success(
        HTTPResponse(status_code=200, text="", json_data={"choices": [{"message": {"content": content}}]})
    )


def session_returning(**methods: object) -> MagicMock:
    """PooledSession stand-in."""
    session = MagicMock()
    session.get = AsyncMock(return_value=methods.get("get"))
    session.post = AsyncMock(return_value=methods.get("post"))
    session.close = AsyncMock()
    return session


class TestModelHelpers:
    """Tests for model names and aliases."""

    @pytest.mark.parametrize("name", ["GPT-4o", "gpt-4o", " gpt-4O-MINI "])
    def test_normalize_model(self, name: str) -> None:
        """Test model names resolve case-insensitively to their canonical spelling."""
        result = normalize_model(name)
        assert isinstance(result, Success)
        assert result.unwrap() in CHATGPT_MODELS
        assert result.unwrap() == name.strip().lower()

    def test_normalize_unknown_model(self) -> None:
        """Test unsupported models list the supported ones."""
        result = normalize_model("llama-3")
        assert isinstance(result, Failure)
        assert "gpt-3.5-turbo" in result.failure()

    @pytest.mark.parametrize("alias", ["ChatGPT", "openai", "GPT", "gpt-3.5", "gpt-4", "gpt-4o"])
    def test_chatgpt_aliases(self, alias: str) -> None:
        """Test accepted LLM aliases."""
        assert is_chatgpt_alias(alias)

    def test_unknown_alias(self) -> None:
        """Test other LLM names are rejected."""
        assert not is_chatgpt_alias("claude")


class TestParseAiResponse:
    """Tests for splitting the completion."""

    def test_title_and_description(self) -> None:
        """Test first line is the title and the rest is the description."""
        assert parse_ai_response("  Add login\n\n## Summary\nStuff\n") == ("Add login", "## Summary\nStuff")

    def test_title_only(self) -> None:
        """Test a single line yields an empty description."""
        assert parse_ai_response("Just a title") == ("Just a title", "")


class TestOpenAIGenerator:
    """Tests for completion and generation."""

    @pytest.mark.asyncio
    async def test_complete_posts_chat_request(self) -> None:
        """Test the chat completion payload."""
        session = session_returning(post=completion(" Title\nBody "))
        generator = OpenAIGenerator("sk-test", "gpt-4o", session=session)

        result = await generator.complete("prompt text")

        assert result == Success("Title\nBody")
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["json_body"]["model"] == "gpt-4o"
        assert kwargs["json_body"]["messages"][1] == {"role": "user", "content": "prompt text"}
        assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}

    @pytest.mark.asyncio
    async def test_complete_without_token(self) -> None:
        """Test a missing token fails before any request."""
        session = session_returning()
        result = await OpenAIGenerator("", session=session).complete("p")

        assert result == Failure("OpenAI token is required")
        session.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_complete_unsupported_model(self) -> None:
        """Test an unknown configured model fails before any request."""
        result = await OpenAIGenerator("sk", "davinci", session=session_returning()).complete("p")
        assert isinstance(result, Failure)
        assert "Unsupported model 'davinci'" in result.failure()

    @pytest.mark.asyncio
    async def test_complete_api_error(self) -> None:
        """Test an error status is reported with its body."""
        session = session_returning(post=Success(HTTPResponse(status_code=429, text="Rate limited")))
        result = await OpenAIGenerator("sk", session=session).complete("p")
        assert result == Failure("OpenAI API error (429): Rate limited")

    @pytest.mark.asyncio
    async def test_complete_no_choices(self) -> None:
        """Test an empty choice list is a Failure."""
        session = session_returning(post=Success(HTTPResponse(status_code=200, text="", json_data={"choices": []})))
        result = await OpenAIGenerator("sk", session=session).complete("p")
        assert result == Failure("No response generated from ChatGPT")

    @pytest.mark.asyncio
    async def test_complete_transport_failure(self) -> None:
        """Test transport errors are wrapped."""
        session = session_returning(post=Failure("Network error: down"))
        result = await OpenAIGenerator("sk", session=session).complete("p")
        assert result == Failure("Failed to generate merge request with ChatGPT: Network error: down")

    @pytest.mark.asyncio
    async def test_generate(self) -> None:
        """Test generation validates git, builds the prompt and parses the reply."""
        session = session_returning(post=completion("Add login\n## Summary\nAdds login"))
        generator = OpenAIGenerator("sk", "gpt-4o", session=session)
        options = default_prompt_options()

        with (
            patch("genmr.git_utils.validate_git_context", return_value=Success(None)),
            patch("genmr.generator.build_prompt", return_value="PROMPT") as mock_build,
        ):
            result = await generator.generate("feature", "main", "PROJ-1", options)

        assert result == Success(
            GeneratedContent(
                title="Add login",
                description="## Summary\nAdds login",
                model="gpt-4o",
                prompt_options=options,
            )
        )
        mock_build.assert_called_once_with("feature", "main", "PROJ-1", options)

    @pytest.mark.asyncio
    async def test_generate_git_validation_failure(self) -> None:
        """Test invalid git context stops before calling the API."""
        session = session_returning()
        generator = OpenAIGenerator("sk", session=session)

        with patch("genmr.git_utils.validate_git_context", return_value=Failure("Git validation failed: no branch")):
            result = await generator.generate("feature", "main", "", default_prompt_options())

        assert result == Failure("Git validation failed: no branch")
        session.post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generate_empty_reply(self) -> None:
        """Test an empty completion is a Failure."""
        generator = OpenAIGenerator("sk", session=session_returning(post=completion("   ")))

        with (
            patch("genmr.git_utils.validate_git_context", return_value=Success(None)),
            patch("genmr.generator.build_prompt", return_value="PROMPT"),
        ):
            result = await generator.generate("feature", "main", "", default_prompt_options())

        assert result == Failure("ChatGPT returned an empty response")

    @pytest.mark.asyncio
    async def test_validate_token(self) -> None:
        """Test token validation lists models."""
        session = session_returning(get=Success(HTTPResponse(status_code=200, text="{}")))
        assert await OpenAIGenerator("sk", session=session).validate_token() == Success(None)
        assert session.get.call_args.args[0] == "https://api.openai.com/v1/models"

    @pytest.mark.asyncio
    async def test_validate_token_rejected(self) -> None:
        """Test a rejected token is a Failure."""
        session = session_returning(get=Success(HTTPResponse(status_code=401, text="bad key")))
        assert await OpenAIGenerator("sk", session=session).validate_token() == Failure("Invalid token: 401 - bad key")
