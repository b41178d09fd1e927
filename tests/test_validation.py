"""Tests for pre-workflow validation."""

from collections.abc import Iterator
from unittest.mock import patch

import pytest
from returns.result import Failure
from returns.result import Success

from genmr.config import GenMRConfig
from genmr.git_utils import AheadBehind
from genmr.git_utils import RepositoryInfo
from genmr.validation import BranchArguments
from genmr.validation import BranchSync
from genmr.validation import build_workflow_request
from genmr.validation import resolve_branch_arguments
from genmr.validation import validate_branch_sync
from genmr.validation import validate_config
from genmr.validation import validate_repository
from genmr.workflow import WorkflowRequest


GITHUB_REPO = RepositoryInfo(platform="github", hostname="github.com", full_name="acme/web", owner="acme", name="web")
GITLAB_REPO = RepositoryInfo(platform="gitlab", hostname="gitlab.com", full_name="acme/web", owner="acme", name="web")


class TestResolveBranchArguments:
    """Tests for positional argument handling."""

    def test_no_arguments(self) -> None:
        """Test missing positionals are rejected."""
        result = resolve_branch_arguments(())
        assert isinstance(result, Failure)
        assert "Missing required arguments" in result.failure()

    def test_target_only_uses_current_branch(self) -> None:
        """Test a single positional is the target and the current branch is the source."""
        with patch("genmr.git_utils.get_current_branch", return_value=Success("feature")):
            assert resolve_branch_arguments(("main",)) == Success(BranchArguments("feature", "main"))

    def test_target_only_without_current_branch(self) -> None:
        """Test a detached HEAD with a single positional is rejected."""
        with patch("genmr.git_utils.get_current_branch", return_value=Failure("Could not determine current branch")):
            result = resolve_branch_arguments(("main",))

        assert result == Failure("Unable to determine current branch automatically: Could not determine current branch")

    def test_explicit_branches_and_jira(self) -> None:
        """Test source, target and JIRA tickets."""
        assert resolve_branch_arguments(("feature", "main", "PROJ-1")) == Success(
            BranchArguments("feature", "main", "PROJ-1")
        )

    def test_explicit_branches_without_jira(self) -> None:
        """Test JIRA tickets default to empty."""
        assert resolve_branch_arguments(("feature", "main")) == Success(BranchArguments("feature", "main", ""))


class TestValidateConfig:
    """Tests for token presence checks."""

    def test_github_complete(self) -> None:
        """Test a complete GitHub configuration passes."""
        config = GenMRConfig(github_token="gh", openai_token="sk")
        assert validate_config(config, "github") == Success(config)

    def test_missing_platform_token(self) -> None:
        """Test the platform token is checked first."""
        result = validate_config(GenMRConfig(openai_token="sk"), "gitlab")
        assert isinstance(result, Failure)
        assert result.failure().startswith("GitLab token not found")
        assert "gen-mr --create-token" in result.failure()

    def test_missing_openai_token(self) -> None:
        """Test the OpenAI token is required."""
        result = validate_config(GenMRConfig(github_token="gh"), "github")
        assert result == Failure("OpenAI token not found in configuration. Run 'gen-pr --create-ai-token ChatGPT'.")


class TestValidateRepository:
    """Tests for platform detection checks."""

    def test_matching_platform(self) -> None:
        """Test a GitHub remote passes for gen-pr."""
        with patch("genmr.git_utils.get_repository_from_remote", return_value=Success(GITHUB_REPO)):
            assert validate_repository("github", "origin") == Success(GITHUB_REPO)

    def test_wrong_platform_suggests_other_tool(self) -> None:
        """Test a GitLab remote under gen-pr points at gen-mr."""
        with patch("genmr.git_utils.get_repository_from_remote", return_value=Success(GITLAB_REPO)):
            result = validate_repository("github", "origin")

        assert isinstance(result, Failure)
        assert "GitLab repository detected (acme/web on gitlab.com)" in result.failure()
        assert "use gen-mr instead" in result.failure()

    def test_unknown_platform(self) -> None:
        """Test an unknown host is rejected."""
        other = RepositoryInfo(platform="unknown", hostname="bitbucket.org", full_name="a/b", owner="a", name="b")
        with patch("genmr.git_utils.get_repository_from_remote", return_value=Success(other)):
            result = validate_repository("gitlab", "origin")

        assert isinstance(result, Failure)
        assert "Unknown repository type detected (host: bitbucket.org)" in result.failure()

    def test_detection_failure(self) -> None:
        """Test detection errors mention the remote."""
        with patch("genmr.git_utils.get_repository_from_remote", return_value=Failure("no remote")):
            result = validate_repository("github", "upstream")

        assert isinstance(result, Failure)
        assert "'upstream' remote configured" in result.failure()


class TestValidateBranchSync:
    """Tests for upstream synchronization checks."""

    @pytest.fixture(autouse=True)
    def _fetch(self) -> Iterator[None]:
        with patch("genmr.git_utils.fetch_remote", return_value=Success(None)):
            yield

    def test_in_sync(self) -> None:
        """Test a synchronized branch yields its upstream details."""
        with (
            patch("genmr.git_utils.get_upstream_ref", return_value=Success("origin/feature-remote")),
            patch("genmr.git_utils.get_ahead_behind", return_value=Success(AheadBehind(0, 0))),
            patch("genmr.git_utils.get_commit_sha", return_value=Success("abc123")),
        ):
            result = validate_branch_sync("feature", "origin")

        assert result == Success(
            BranchSync(
                local_branch="feature",
                remote_branch="feature-remote",
                upstream_remote="origin",
                commit_sha="abc123",
            )
        )

    def test_no_upstream(self) -> None:
        """Test an unpushed branch suggests git push -u."""
        with patch("genmr.git_utils.get_upstream_ref", return_value=Success(None)):
            result = validate_branch_sync("feature", "origin")

        assert isinstance(result, Failure)
        assert "git push -u origin feature" in result.failure()

    @pytest.mark.parametrize(
        ("counts", "expected"),
        [
            (AheadBehind(ahead=2, behind=0), "is ahead of 'origin/feature' by 2 commit(s)"),
            (AheadBehind(ahead=0, behind=3), "is behind 'origin/feature' by 3 commit(s)"),
            (AheadBehind(ahead=1, behind=1), "have diverged (local ahead by 1, behind by 1)"),
        ],
    )
    def test_out_of_sync(self, counts: AheadBehind, expected: str) -> None:
        """Test ahead, behind and diverged branches are rejected with guidance."""
        with (
            patch("genmr.git_utils.get_upstream_ref", return_value=Success("origin/feature")),
            patch("genmr.git_utils.get_ahead_behind", return_value=Success(counts)),
        ):
            result = validate_branch_sync("feature", "origin")

        assert isinstance(result, Failure)
        assert expected in result.failure()

    def test_fetch_failure(self) -> None:
        """Test a failed fetch stops validation."""
        with (
            patch("genmr.git_utils.get_upstream_ref", return_value=Success("origin/feature")),
            patch("genmr.git_utils.fetch_remote", return_value=Failure("Command failed: git fetch origin")),
        ):
            assert validate_branch_sync("feature", "origin") == Failure("Command failed: git fetch origin")


class TestBuildWorkflowRequest:
    """Tests for assembling the engine input."""

    def test_builds_request_with_remote_names(self) -> None:
        """Test both branches are validated and tracked names recorded."""
        syncs = {
            "feature": Success(BranchSync("feature", "feature-remote", "upstream", "aaa")),
            "main": Success(BranchSync("main", "main", "upstream", "bbb")),
        }
        with patch("genmr.validation.validate_branch_sync", side_effect=lambda branch, _remote: syncs[branch]):
            result = build_workflow_request(BranchArguments("feature", "main", "PROJ-1"), GITHUB_REPO, "origin")

        assert result == Success(
            WorkflowRequest(
                source_branch="feature",
                target_branch="main",
                repository="acme/web",
                jira_tickets="PROJ-1",
                remote_source_branch="feature-remote",
                remote_target_branch="main",
                remote_name="upstream",
            )
        )

    def test_same_commit_rejected(self) -> None:
        """Test source and target at the same commit are rejected."""
        syncs = {
            "feature": Success(BranchSync("feature", "feature", "origin", "same")),
            "main": Success(BranchSync("main", "main", "origin", "same")),
        }
        with patch("genmr.validation.validate_branch_sync", side_effect=lambda branch, _remote: syncs[branch]):
            result = build_workflow_request(BranchArguments("feature", "main"), GITHUB_REPO, "origin")

        assert result == Failure("Source and target branches at the same commit")

    def test_source_failure_short_circuits(self) -> None:
        """Test a failing source check stops before the target check."""
        with patch("genmr.validation.validate_branch_sync", return_value=Failure("not pushed")) as mock_sync:
            result = build_workflow_request(BranchArguments("feature", "main"), GITHUB_REPO, "origin")

        assert result == Failure("not pushed")
        mock_sync.assert_called_once_with("feature", "origin")
