"""Git plumbing used to build prompts and resolve the repository.

Every command goes through ``run_command`` and comes back as a ``Result``;
nothing in here raises for a failing git invocation.
"""

import logging
import re
import subprocess
from dataclasses import dataclass

from returns.result import Failure
from returns.result import Result
from returns.result import Success


logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    """Repository identity parsed from a git remote URL."""

    platform: str
    hostname: str
    full_name: str
    owner: str
    name: str
    remote_url: str = ""


@dataclass(frozen=True, slots=True)
class AheadBehind:
    """Commit counts of a local branch relative to its upstream."""

    ahead: int
    behind: int


# -----------------------------
# Command Execution (Impure but Isolated)
# -----------------------------


def run_command(
    cmd: list[str],
    check: bool = True,
    timeout: int = 30,
) -> Result[subprocess.CompletedProcess[str], str]:
    """Execute command and return result."""
    logger.debug("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            check=check,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
        return Success(result)
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or str(e)
        return Failure(f"Command failed: {' '.join(cmd)}: {detail}")
    except subprocess.TimeoutExpired:
        return Failure(f"Command timed out: {' '.join(cmd)}")
    except OSError as e:
        return Failure(f"Failed to run {cmd[0]}: {e}")


def _stdout(proc: subprocess.CompletedProcess[str]) -> str:
    return proc.stdout.strip()


def _lines(proc: subprocess.CompletedProcess[str]) -> tuple[str, ...]:
    return tuple(line for line in proc.stdout.strip().split("\n") if line)


# -----------------------------
# Branch Context
# -----------------------------


def assert_git_repo() -> Result[None, str]:
    """Verify we're in a git repository."""
    return run_command(["git", "rev-parse", "--git-dir"]).map(lambda _: None)


def _extract_branch(proc: subprocess.CompletedProcess[str]) -> Result[str, str]:
    branch = proc.stdout.strip()
    return Success(branch) if branch else Failure("Could not determine current branch")


def get_current_branch() -> Result[str, str]:
    """Get current git branch."""
    return run_command(["git", "branch", "--show-current"]).bind(_extract_branch)


def validate_git_context(source_branch: str, target_branch: str) -> Result[None, str]:
    """Verify the repository and both branches exist."""
    return (
        assert_git_repo()
        .bind(lambda _: run_command(["git", "rev-parse", "--verify", source_branch]))
        .bind(lambda _: run_command(["git", "rev-parse", "--verify", target_branch]))
        .map(lambda _: None)
        .alt(lambda error: f"Git validation failed: {error}")
    )


def get_git_diff(source_branch: str, target_branch: str) -> Result[str, str]:
    """Get the diff introduced by source_branch since it forked from target_branch."""
    return run_command(["git", "diff", f"{target_branch}...{source_branch}"]).map(_stdout)


def get_commit_messages(source_branch: str, target_branch: str) -> Result[tuple[str, ...], str]:
    """Get commit subjects on source_branch that are not on target_branch."""
    return run_command(["git", "log", f"{target_branch}..{source_branch}", "--pretty=format:%s"]).map(_lines)


def get_changed_files(source_branch: str, target_branch: str) -> Result[tuple[str, ...], str]:
    """Get paths changed on source_branch since it forked from target_branch."""
    return run_command(["git", "diff", "--name-only", f"{target_branch}...{source_branch}"]).map(_lines)


def get_commit_sha(branch: str) -> Result[str, str]:
    """Resolve a branch to its commit SHA."""
    return run_command(["git", "rev-parse", branch]).map(_stdout)


# -----------------------------
# Upstream Tracking
# -----------------------------


def get_upstream_ref(branch: str) -> Result[str | None, str]:
    """Get the upstream ref (e.g. ``origin/feature``), None when untracked."""
    result = run_command(
        ["git", "rev-parse", "--abbrev-ref", "--symbolic-full-name", f"{branch}@{{upstream}}"],
        check=False,
    )
    return result.map(lambda proc: (proc.stdout.strip() or None) if proc.returncode == 0 else None)


def fetch_remote(remote_name: str) -> Result[None, str]:
    """Fetch a remote so ahead/behind counts are current."""
    return run_command(["git", "fetch", remote_name], timeout=120).map(lambda _: None)


def _parse_ahead_behind(proc: subprocess.CompletedProcess[str]) -> Result[AheadBehind, str]:
    parts = proc.stdout.split()
    expected_parts = 2
    if len(parts) != expected_parts:
        return Failure(f"Unexpected rev-list output: {proc.stdout.strip()!r}")
    try:
        behind, ahead = (int(part) for part in parts)
    except ValueError:
        return Failure(f"Unexpected rev-list output: {proc.stdout.strip()!r}")
    return Success(AheadBehind(ahead=ahead, behind=behind))


def get_ahead_behind(upstream_ref: str, local_branch: str) -> Result[AheadBehind, str]:
    """Count commits the local branch is ahead of / behind its upstream."""
    return run_command(
        ["git", "rev-list", "--left-right", "--count", f"{upstream_ref}...{local_branch}"]
    ).bind(_parse_ahead_behind)


def split_upstream_ref(upstream_ref: str) -> tuple[str, str]:
    """Split ``remote/branch/with/slashes`` into remote and branch name."""
    remote, _, branch = upstream_ref.partition("/")
    return remote, branch


# -----------------------------
# Repository Detection
# -----------------------------


def get_remote_url(remote_name: str = DEFAULT_REMOTE) -> Result[str, str]:
    """Get the URL configured for a remote."""
    return run_command(["git", "config", "--get", f"remote.{remote_name}.url"]).map(_stdout)


def detect_repo_type(hostname: str) -> str:
    """Classify a host as 'github', 'gitlab' or 'unknown'."""
    lower_hostname = hostname.lower()
    if lower_hostname == "github.com":
        return "github"
    if "gitlab" in lower_hostname:
        return "gitlab"
    return "unknown"


_SSH_REMOTE = re.compile(r"^(?:ssh://)?git@([^:/]+)[:/](.+)$")
_HTTPS_REMOTE = re.compile(r"^https?://(?:[^@/]+@)?([^/]+)/(.+)$")


def parse_repo_from_remote(remote_url: str) -> Result[RepositoryInfo, str]:
    """Parse SSH (``git@host:owner/repo``) and HTTPS remote URLs."""
    clean_url = remote_url.strip().removesuffix("/").removesuffix(".git")

    match = _SSH_REMOTE.match(clean_url) or _HTTPS_REMOTE.match(clean_url)
    if not match:
        return Failure(f"Unable to parse repository URL: {remote_url}")

    hostname, repo_path = match.group(1), match.group(2)
    parts = repo_path.split("/")
    min_parts = 2
    if len(parts) < min_parts:
        return Failure(f"Unable to parse repository URL: {remote_url}")

    return Success(
        RepositoryInfo(
            platform=detect_repo_type(hostname),
            hostname=hostname,
            full_name=repo_path,
            owner=parts[0],
            name=parts[-1],
            remote_url=remote_url,
        )
    )


def get_repository_from_remote(remote_name: str = DEFAULT_REMOTE) -> Result[RepositoryInfo, str]:
    """Detect the hosting platform and repository path from a git remote."""
    return (
        get_remote_url(remote_name)
        .bind(parse_repo_from_remote)
        .alt(lambda error: f"Failed to detect repository from remote '{remote_name}': {error}")
    )


def format_branch_display(local: str, remote_name: str | None, remote_branch: str | None) -> str:
    """Format a branch for display, showing the tracked remote branch when it differs."""
    if remote_name and remote_branch and remote_branch != local:
        return f"{local} ({remote_name}/{remote_branch})"
    if remote_name and remote_name != DEFAULT_REMOTE:
        return f"{local} ({remote_name}/{local})"
    return local
