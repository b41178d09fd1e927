"""Prompt construction for AI-generated request titles and descriptions."""

import logging
from dataclasses import dataclass
from dataclasses import replace

from returns.result import Failure

from genmr import git_utils


logger = logging.getLogger(__name__)

RESPONSE_INSTRUCTIONS = """Please provide:
1. A concise, descriptive title for the merge request. In title do not use markdown
2. A detailed description that includes:
   - Summary of changes
   - Purpose/motivation for the changes
   - Any breaking changes or important notes
   - List of affected files
      - List of updated files (if any)
      - List of added files (if any)
      - List of deleted files (if any)
   - Testing considerations (if applicable)

Description, should use markdown formatting.
Every part should be clearly defined and separated.
Use markdown headers for each section.

Format the response with the title on the first line, followed by the description on subsequent lines.
"""


@dataclass(frozen=True, slots=True)
class PreviousResult:
    """Title and description used to seed a regeneration."""

    title: str
    description: str


@dataclass(frozen=True, slots=True)
class PromptOptions:
    """Immutable prompt configuration.

    Attributes:
        include_git_diff: Embed the (truncated) diff
        include_commit_messages: Embed commit subjects
        include_changed_files: Embed the changed file list
        max_diff_lines: Diff lines kept before truncation
        additional_instructions: Free-text user instructions
        previous_result: Prior title/description to improve upon
    """

    include_git_diff: bool = True
    include_commit_messages: bool = True
    include_changed_files: bool = True
    max_diff_lines: int = 1000
    additional_instructions: str = ""
    previous_result: PreviousResult | None = None

    def seeded(self, previous_result: PreviousResult, additional_instructions: str) -> "PromptOptions":
        """Copy of these options carrying a seed and user instructions."""
        return replace(self, previous_result=previous_result, additional_instructions=additional_instructions)


def default_prompt_options(
    include_git_diff: bool = True,
    include_commit_messages: bool = True,
    include_changed_files: bool = True,
    max_diff_lines: int = 100,
) -> PromptOptions:
    """Prompt options used when nothing more specific is known."""
    return PromptOptions(
        include_git_diff=include_git_diff,
        include_commit_messages=include_commit_messages,
        include_changed_files=include_changed_files,
        max_diff_lines=max_diff_lines,
    )


def _format_list(label: str, items: tuple[str, ...], empty_text: str) -> str:
    if not items:
        return f"\n\n{label}: {empty_text}"
    bullets = "\n".join(f"- {item}" for item in items)
    return f"\n\n{label}:\n{bullets}"


def _format_diff(diff: str, max_diff_lines: int) -> str:
    if not diff:
        return "\n\nCode changes: No code changes found."
    diff_lines = diff.split("\n")
    truncated = "\n".join(diff_lines[:max_diff_lines])
    section = f"\n\nCode changes (showing first {max_diff_lines} lines):\n```diff\n{truncated}\n```"
    if len(diff_lines) > max_diff_lines:
        section += "\n... (diff truncated for brevity)"
    return section


def build_git_context(source_branch: str, target_branch: str, options: PromptOptions) -> str:
    """Collect the git sections of the prompt.

    A failing git command only drops its own section.
    """
    context = ""

    if options.include_commit_messages:
        commits = git_utils.get_commit_messages(source_branch, target_branch)
        if isinstance(commits, Failure):
            logger.warning("Could not gather commit messages: %s", commits.failure())
        else:
            context += _format_list("Commit messages", commits.unwrap(), "No commit messages found.")

    if options.include_changed_files:
        files = git_utils.get_changed_files(source_branch, target_branch)
        if isinstance(files, Failure):
            logger.warning("Could not gather changed files: %s", files.failure())
        else:
            context += _format_list("Changed files", files.unwrap(), "No changed files found.")

    if options.include_git_diff:
        diff = git_utils.get_git_diff(source_branch, target_branch)
        if isinstance(diff, Failure):
            logger.warning("Could not gather git diff: %s", diff.failure())
        else:
            context += _format_diff(diff.unwrap(), options.max_diff_lines)

    return context


def build_prompt(
    source_branch: str,
    target_branch: str,
    jira_tickets: str = "",
    options: PromptOptions | None = None,
) -> str:
    """Build the full prompt for generating a request title and description."""
    opts = options or PromptOptions()

    prompt = (
        "Generate a professional merge request title and description for merging "
        f"'{source_branch}' into '{target_branch}'."
    )

    if opts.previous_result is not None:
        prompt += "\n\nPrevious merge request details:"
        prompt += f"\nTitle: {opts.previous_result.title}"
        prompt += f"\nDescription: {opts.previous_result.description}"
        prompt += "\nPlease improve upon this previous version."

    if opts.additional_instructions.strip():
        prompt += f"\n\nAdditional instructions from user:\n{opts.additional_instructions}"

    if jira_tickets.strip():
        prompt += f"\n\nRelated JIRA tickets: {jira_tickets}"

    prompt += build_git_context(source_branch, target_branch, opts)
    prompt += f"\n\n{RESPONSE_INSTRUCTIONS}"
    return prompt
