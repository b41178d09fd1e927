"""AI content generation for request titles and descriptions.

The workflow talks to a ``ContentGenerator``; ``OpenAIGenerator`` is the
implementation backed by the OpenAI chat completions API.
"""

import logging
from dataclasses import dataclass
from typing import Any
from typing import Protocol

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from genmr import git_utils
from genmr.config import DEFAULT_OPENAI_MODEL
from genmr.connection_pool import PooledSession
from genmr.prompt import PromptOptions
from genmr.prompt import build_prompt


logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1"
AI_MODEL_NAME = "ChatGPT"

CHATGPT_MODELS: tuple[str, ...] = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4.1",
    "gpt-4.1-mini",
    "gpt-4-turbo",
    "gpt-3.5-turbo",
)

CHATGPT_ALIASES = frozenset({"chatgpt", "openai", "gpt", "gpt-3.5", "gpt-4", "gpt-4o"})

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates professional merge request titles "
    "and descriptions based on git changes and context."
)


@dataclass(frozen=True, slots=True)
class GeneratedContent:
    """Title and description produced by one generation call."""

    title: str
    description: str
    model: str
    ai_model: str = AI_MODEL_NAME
    prompt_options: PromptOptions | None = None


class ContentGenerator(Protocol):
    """Produces request content from branch context."""

    async def generate(
        self,
        source_branch: str,
        target_branch: str,
        jira_tickets: str,
        options: PromptOptions,
    ) -> Result[GeneratedContent, str]:
        """Generate a title and description."""
        ...


def normalize_model(model_name: str) -> Result[str, str]:
    """Resolve a model name case-insensitively to its canonical spelling."""
    normalized = model_name.strip().lower()
    for model in CHATGPT_MODELS:
        if model.lower() == normalized:
            return Success(model)
    return Failure(f"Unsupported model '{model_name}'. Supported: {', '.join(CHATGPT_MODELS)}")


def is_chatgpt_alias(llm: str) -> bool:
    """Check whether an LLM name refers to ChatGPT."""
    return llm.strip().lower() in CHATGPT_ALIASES


def parse_ai_response(text: str) -> tuple[str, str]:
    """Split a response into title (first line) and description (the rest)."""
    lines = text.strip().split("\n")
    title = lines[0].strip()
    description = "\n".join(lines[1:]).strip()
    return title, description


def _extract_message(data: dict[str, Any]) -> Result[str, str]:
    choices = data.get("choices") or []
    if not choices:
        return Failure("No response generated from ChatGPT")
    content = choices[0].get("message", {}).get("content") or ""
    return Success(content.strip())


class OpenAIGenerator:
    """Content generator backed by OpenAI chat completions."""

    def __init__(
        self,
        token: str,
        model: str = DEFAULT_OPENAI_MODEL,
        session: PooledSession | None = None,
        api_url: str = OPENAI_API_URL,
    ) -> None:
        """Initialize generator with an API token and model."""
        self.token = token
        self.model = model
        self.api_url = api_url.rstrip("/")
        self._session = session

    def _get_session(self) -> PooledSession:
        if self._session is None:
            self._session = PooledSession()
        return self._session

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    async def complete(self, prompt: str) -> Result[str, str]:
        """Send a prompt and return the raw completion text."""
        if not self.token:
            return Failure("OpenAI token is required")
        if self.model not in CHATGPT_MODELS:
            return Failure(f"Unsupported model '{self.model}'. Supported: {', '.join(CHATGPT_MODELS)}")

        result = await self._get_session().post(
            f"{self.api_url}/chat/completions",
            json_body={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "max_tokens": 1024,
                "temperature": 0.7,
            },
            headers=self._headers(),
        )
        if isinstance(result, Failure):
            return Failure(f"Failed to generate merge request with ChatGPT: {result.failure()}")

        response = result.unwrap()
        if not response.is_success:
            return Failure(f"OpenAI API error ({response.status_code}): {response.text}")
        return _extract_message(response.json_data or {})

    async def generate(
        self,
        source_branch: str,
        target_branch: str,
        jira_tickets: str,
        options: PromptOptions,
    ) -> Result[GeneratedContent, str]:
        """Generate a title and description for the branch pair."""
        validation = git_utils.validate_git_context(source_branch, target_branch)
        if isinstance(validation, Failure):
            return validation

        prompt = build_prompt(source_branch, target_branch, jira_tickets, options)
        logger.debug("Prompt length: %d characters", len(prompt))

        completion = await self.complete(prompt)
        if isinstance(completion, Failure):
            return completion

        title, description = parse_ai_response(completion.unwrap())
        if not title:
            return Failure("ChatGPT returned an empty response")

        return Success(
            GeneratedContent(
                title=title,
                description=description,
                model=self.model,
                prompt_options=options,
            )
        )

    async def validate_token(self) -> Result[None, str]:
        """Check the token with a lightweight models listing."""
        result = await self._get_session().get(f"{self.api_url}/models", headers=self._headers())
        if isinstance(result, Failure):
            return result
        response = result.unwrap()
        if not response.is_success:
            return Failure(f"Invalid token: {response.status_code} - {response.text}")
        return Success(None)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
