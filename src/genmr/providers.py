"""Repository providers for GitHub pull requests and GitLab merge requests.

Both adapters expose the same minimal capability the workflow needs:
look up the open request for a branch pair, create one, or update one. They
differ only in endpoints, field names and HTTP verbs, so the workflow is
written against ``RepositoryProvider`` and never checks which one it has.

Classes:
    RemoteRequest: An open pull/merge request as observed on the remote
    RepositoryProvider: Protocol implemented by both adapters
    GitHubProvider: GitHub REST v3 adapter
    GitLabProvider: GitLab REST v4 adapter
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from typing import Protocol
from urllib.parse import quote

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from genmr.config import DEFAULT_GITLAB_HOST
from genmr.config import GenMRConfig
from genmr.connection_pool import HTTPResponse
from genmr.connection_pool import PooledSession


logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


@dataclass(frozen=True, slots=True)
class RemoteRequest:
    """Pull/merge request as returned by the provider.

    ``id`` is the number users see (GitHub ``number``, GitLab ``iid``).
    """

    id: int
    title: str
    description: str
    url: str
    state: str


class RepositoryProvider(Protocol):
    """Minimal hosting-provider capability used by the workflow."""

    request_label: str

    async def find_existing_request(
        self, repository: str, source_branch: str, target_branch: str
    ) -> Result[RemoteRequest | None, str]:
        """Find the open request between two branches, None when there is none."""
        ...

    async def create_request(
        self, repository: str, source_branch: str, target_branch: str, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Open a new request."""
        ...

    async def update_request(
        self, repository: str, request_id: int, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Replace the title and description of an existing request."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...


class _RestProvider:
    """Shared plumbing for the REST adapters."""

    platform_name = ""

    def __init__(self, token: str, session: PooledSession | None = None) -> None:
        if not token:
            msg = f"Missing required {self.platform_name} token"
            raise ValueError(msg)
        self.token = token
        self._session = session

    def _headers(self) -> dict[str, str]:
        raise NotImplementedError

    def _get_session(self) -> PooledSession:
        if self._session is None:
            self._session = PooledSession()
        return self._session

    def _handle_api_response[T](
        self, result: Result[HTTPResponse, str], transform_fn: Callable[[Any], T]
    ) -> Result[T, str]:
        """Handle API response with consistent error handling."""
        if isinstance(result, Failure):
            return result

        response = result.unwrap()
        if not response.is_success:
            return Failure(f"{self.platform_name} API error ({response.status_code}): {response.text}")

        try:
            return Success(transform_fn(response.json_data))
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            return Failure(f"Unexpected {self.platform_name} API response: {e}")

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()


class GitHubProvider(_RestProvider):
    """GitHub pull request adapter."""

    platform_name = "GitHub"
    request_label = "pull request"

    def __init__(self, token: str, session: PooledSession | None = None, api_url: str = GITHUB_API_URL) -> None:
        """Initialize GitHub provider."""
        super().__init__(token, session)
        self.api_url = api_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github+json",
        }

    @staticmethod
    def _to_request(data: dict[str, Any]) -> RemoteRequest:
        return RemoteRequest(
            id=int(data["number"]),
            title=data.get("title") or "",
            description=data.get("body") or "",
            url=data.get("html_url") or "",
            state=data.get("state") or "",
        )

    async def validate_token(self) -> Result[str, str]:
        """Check the token and return the authenticated login."""
        result = await self._get_session().get(f"{self.api_url}/user", headers=self._headers())
        return self._handle_api_response(result, lambda data: str(data["login"]))

    async def find_existing_request(
        self, repository: str, source_branch: str, target_branch: str
    ) -> Result[RemoteRequest | None, str]:
        """Find the open pull request from source_branch into target_branch."""
        owner = repository.split("/")[0]
        result = await self._get_session().get(
            f"{self.api_url}/repos/{repository}/pulls",
            headers=self._headers(),
            params={"state": "open", "head": f"{owner}:{source_branch}", "base": target_branch},
        )

        def _first_match(pulls: list[dict[str, Any]]) -> RemoteRequest | None:
            for pull in pulls:
                head = (pull.get("head") or {}).get("ref", source_branch)
                base = (pull.get("base") or {}).get("ref", target_branch)
                if head == source_branch and base == target_branch:
                    return self._to_request(pull)
            return None

        return self._handle_api_response(result, _first_match)

    async def create_request(
        self, repository: str, source_branch: str, target_branch: str, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Open a pull request."""
        result = await self._get_session().post(
            f"{self.api_url}/repos/{repository}/pulls",
            json_body={"head": source_branch, "base": target_branch, "title": title, "body": description},
            headers=self._headers(),
        )
        return self._handle_api_response(result, self._to_request)

    async def update_request(
        self, repository: str, request_id: int, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Update an existing pull request by number."""
        result = await self._get_session().patch(
            f"{self.api_url}/repos/{repository}/pulls/{request_id}",
            json_body={"title": title, "body": description},
            headers=self._headers(),
        )
        return self._handle_api_response(result, self._to_request)


class GitLabProvider(_RestProvider):
    """GitLab merge request adapter."""

    platform_name = "GitLab"
    request_label = "merge request"

    def __init__(self, token: str, host: str = DEFAULT_GITLAB_HOST, session: PooledSession | None = None) -> None:
        """Initialize GitLab provider for a host such as gitlab.com."""
        super().__init__(token, session)
        base_url = host if host.startswith(("http://", "https://")) else f"https://{host}"
        self.api_url = f"{base_url.rstrip('/')}/api/v4"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    def _project_url(self, repository: str) -> str:
        return f"{self.api_url}/projects/{quote(repository, safe='')}"

    @staticmethod
    def _to_request(data: dict[str, Any]) -> RemoteRequest:
        return RemoteRequest(
            id=int(data["iid"]),
            title=data.get("title") or "",
            description=data.get("description") or "",
            url=data.get("web_url") or "",
            state=data.get("state") or "",
        )

    async def validate_token(self) -> Result[str, str]:
        """Check the token and return the authenticated username."""
        result = await self._get_session().get(f"{self.api_url}/user", headers=self._headers())
        return self._handle_api_response(result, lambda data: str(data["username"]))

    async def find_existing_request(
        self, repository: str, source_branch: str, target_branch: str
    ) -> Result[RemoteRequest | None, str]:
        """Find the opened merge request from source_branch into target_branch."""
        result = await self._get_session().get(
            f"{self._project_url(repository)}/merge_requests",
            headers=self._headers(),
            params={"state": "opened", "source_branch": source_branch, "target_branch": target_branch},
        )
        return self._handle_api_response(result, lambda mrs: self._to_request(mrs[0]) if mrs else None)

    async def create_request(
        self, repository: str, source_branch: str, target_branch: str, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Open a merge request."""
        result = await self._get_session().post(
            f"{self._project_url(repository)}/merge_requests",
            json_body={
                "source_branch": source_branch,
                "target_branch": target_branch,
                "title": title,
                "description": description,
            },
            headers=self._headers(),
        )
        return self._handle_api_response(result, self._to_request)

    async def update_request(
        self, repository: str, request_id: int, title: str, description: str
    ) -> Result[RemoteRequest, str]:
        """Update an existing merge request by iid."""
        result = await self._get_session().put(
            f"{self._project_url(repository)}/merge_requests/{request_id}",
            json_body={"title": title, "description": description},
            headers=self._headers(),
        )
        return self._handle_api_response(result, self._to_request)


def create_provider(platform: str, config: GenMRConfig) -> Result[GitHubProvider | GitLabProvider, str]:
    """Build the provider for a platform from configuration."""
    if platform == "github":
        if not config.github_token:
            return Failure("GitHub token not found in configuration. Run 'gen-pr --create-token' first.")
        return Success(GitHubProvider(config.github_token))
    if platform == "gitlab":
        if not config.gitlab_token:
            return Failure("GitLab token not found in configuration. Run 'gen-mr --create-token' first.")
        return Success(GitLabProvider(config.gitlab_token, host=config.gitlab_host))
    return Failure(f"Unsupported platform: {platform}")
