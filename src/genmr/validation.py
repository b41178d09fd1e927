"""Validation performed before the workflow engine starts.

The engine only accepts already-validated input: resolved branches that are
pushed and in sync with their upstream, a repository on the expected
platform, and a configuration that holds the tokens the run needs.
"""

import logging
from dataclasses import dataclass

from returns.result import Failure
from returns.result import Result
from returns.result import Success

from genmr import git_utils
from genmr.config import GenMRConfig
from genmr.git_utils import RepositoryInfo
from genmr.workflow import WorkflowRequest


logger = logging.getLogger(__name__)

_TOOL_FOR_PLATFORM = {"github": "gen-pr", "gitlab": "gen-mr"}
_PLATFORM_NAMES = {"github": "GitHub", "gitlab": "GitLab"}


@dataclass(frozen=True, slots=True)
class BranchArguments:
    """Positional arguments after resolving the implicit source branch."""

    source_branch: str
    target_branch: str
    jira_tickets: str = ""


@dataclass(frozen=True, slots=True)
class BranchSync:
    """A local branch verified to match its upstream."""

    local_branch: str
    remote_branch: str
    upstream_remote: str
    commit_sha: str


def resolve_branch_arguments(positional: tuple[str, ...]) -> Result[BranchArguments, str]:
    """Map positionals to branches.

    ``TARGET`` alone uses the current branch as source;
    ``SOURCE TARGET [JIRA]`` is explicit.
    """
    if not positional:
        return Failure(
            "Missing required arguments. Provide <sourceBranch> <targetBranch> "
            "or just <targetBranch> to use current branch as source"
        )

    if len(positional) == 1:
        current = git_utils.get_current_branch()
        if isinstance(current, Failure):
            return Failure(f"Unable to determine current branch automatically: {current.failure()}")
        return Success(BranchArguments(source_branch=current.unwrap(), target_branch=positional[0]))

    jira_index = 2
    jira_tickets = positional[jira_index] if len(positional) > jira_index else ""
    return Success(BranchArguments(positional[0], positional[1], jira_tickets))


def validate_config(config: GenMRConfig, platform: str) -> Result[GenMRConfig, str]:
    """Check the tokens needed to generate and publish on a platform."""
    tool = _TOOL_FOR_PLATFORM[platform]
    token = config.github_token if platform == "github" else config.gitlab_token
    if not token:
        return Failure(
            f"{_PLATFORM_NAMES[platform]} token not found in configuration. "
            f"Run '{tool} --create-token' to set up your token."
        )
    if not config.openai_token:
        return Failure(f"OpenAI token not found in configuration. Run '{tool} --create-ai-token ChatGPT'.")
    return Success(config)


def validate_repository(platform: str, remote_name: str) -> Result[RepositoryInfo, str]:
    """Detect the repository from a remote and check it is on the expected platform."""
    detected = git_utils.get_repository_from_remote(remote_name)
    if isinstance(detected, Failure):
        return Failure(
            f"{detected.failure()}. Make sure you're in a git repository with a '{remote_name}' remote configured."
        )

    repo = detected.unwrap()
    if repo.platform == platform:
        return Success(repo)

    if repo.platform in _TOOL_FOR_PLATFORM:
        return Failure(
            f"{_PLATFORM_NAMES[repo.platform]} repository detected ({repo.full_name} on {repo.hostname}). "
            f"For {_PLATFORM_NAMES[repo.platform]} repositories, use {_TOOL_FOR_PLATFORM[repo.platform]} instead."
        )
    return Failure(
        f"Unknown repository type detected (host: {repo.hostname}). "
        f"{_TOOL_FOR_PLATFORM[platform]} supports {_PLATFORM_NAMES[platform]} repositories only."
    )


def validate_branch_sync(local_branch: str, default_remote: str) -> Result[BranchSync, str]:
    """Require a pushed branch that is neither ahead of nor behind its upstream."""
    upstream_result = git_utils.get_upstream_ref(local_branch)
    if isinstance(upstream_result, Failure):
        return upstream_result

    upstream_ref = upstream_result.unwrap()
    if not upstream_ref:
        return Failure(
            f"Branch '{local_branch}' has no upstream tracking branch. "
            f"Push it first with: git push -u {default_remote} {local_branch}"
        )

    upstream_remote, remote_branch = git_utils.split_upstream_ref(upstream_ref)

    fetched = git_utils.fetch_remote(upstream_remote)
    if isinstance(fetched, Failure):
        return fetched

    counts_result = git_utils.get_ahead_behind(upstream_ref, local_branch)
    if isinstance(counts_result, Failure):
        return counts_result
    counts = counts_result.unwrap()

    if counts.ahead > 0 and counts.behind > 0:
        return Failure(
            f"Local branch '{local_branch}' and remote '{upstream_ref}' have diverged "
            f"(local ahead by {counts.ahead}, behind by {counts.behind}). "
            "Sync your branch (e.g., git pull --rebase && git push)."
        )
    if counts.ahead > 0:
        return Failure(
            f"Local branch '{local_branch}' is ahead of '{upstream_ref}' by {counts.ahead} commit(s). "
            "Push your commits first (git push)."
        )
    if counts.behind > 0:
        return Failure(
            f"Local branch '{local_branch}' is behind '{upstream_ref}' by {counts.behind} commit(s). "
            "Update your branch first (e.g., git pull --rebase)."
        )

    return git_utils.get_commit_sha(local_branch).map(
        lambda sha: BranchSync(
            local_branch=local_branch,
            remote_branch=remote_branch,
            upstream_remote=upstream_remote,
            commit_sha=sha,
        )
    )


def build_workflow_request(
    branches: BranchArguments, repository: RepositoryInfo, remote_name: str
) -> Result[WorkflowRequest, str]:
    """Validate both branches against their upstreams and assemble the engine input."""
    source_result = validate_branch_sync(branches.source_branch, remote_name)
    if isinstance(source_result, Failure):
        return source_result
    target_result = validate_branch_sync(branches.target_branch, remote_name)
    if isinstance(target_result, Failure):
        return target_result

    source, target = source_result.unwrap(), target_result.unwrap()
    if source.commit_sha == target.commit_sha:
        return Failure("Source and target branches at the same commit")

    logger.debug("Remote branches: %s -> %s", source.remote_branch, target.remote_branch)
    return Success(
        WorkflowRequest(
            source_branch=branches.source_branch,
            target_branch=branches.target_branch,
            repository=repository.full_name,
            jira_tickets=branches.jira_tickets,
            remote_source_branch=source.remote_branch,
            remote_target_branch=target.remote_branch,
            remote_name=source.upstream_remote,
        )
    )
