"""External editor bridge.

Opens the user's configured editor on a temporary file and returns what was
saved. Also holds the buffer formats exchanged with the editor: the
instruction template used for seeded regeneration and the combined
title/description buffer used for editing a draft.
"""

import asyncio
import contextlib
import logging
import shlex
import tempfile
import time
from pathlib import Path
from typing import Protocol

import aiofiles
from returns.result import Failure
from returns.result import Result
from returns.result import Success


logger = logging.getLogger(__name__)

NO_EDITOR_MESSAGE = (
    "No editor configured. Run 'gen-pr --configure-editor' or 'gen-mr --configure-editor' to set up an editor."
)

INSTRUCTIONS_TEMPLATE = """# Additional Instructions for Merge Request Generation
#
# Lines starting with '#' are comments and will be ignored.
# Add any additional instructions below to customize the merge request.
# If you don't need any additional instructions, save and close this file.
#
# Examples:
# - Focus on security aspects
# - Emphasize performance improvements
# - Mention specific testing requirements
# - Add context about architectural decisions
#
# Your instructions:

"""

DESCRIPTION_SEPARATOR = "<!-- gen-mr: title above, description below this line -->"


class EditorBridge(Protocol):
    """Edits text in an external editor."""

    @property
    def is_configured(self) -> bool:
        """Whether an editor command is available."""
        ...

    async def edit_buffer(self, initial_text: str, file_extension: str = ".md") -> Result[str, str]:
        """Open the editor on initial_text and return the saved text."""
        ...


def build_editor_command(editor_command: str, file_path: Path) -> str:
    """Expand ``{file}``/``{line}`` placeholders, appending the file when absent."""
    quoted = shlex.quote(str(file_path))
    command = editor_command.replace("{line}", "1")
    if "{file}" in command:
        return command.replace("{file}", quoted)
    return f"{command} {quoted}"


class ExternalEditor:
    """Editor bridge running a shell command on a temp file."""

    def __init__(self, editor_command: str | None) -> None:
        """Initialize with the configured command, None when not configured."""
        self.editor_command = (editor_command or "").strip() or None

    @property
    def is_configured(self) -> bool:
        """Whether an editor command is available."""
        return self.editor_command is not None

    async def edit_buffer(self, initial_text: str, file_extension: str = ".md") -> Result[str, str]:
        """Open the editor on initial_text and return the saved text."""
        if self.editor_command is None:
            return Failure(NO_EDITOR_MESSAGE)

        temp_path = Path(tempfile.gettempdir()) / f"gen-mr-edit-{time.time_ns()}{file_extension}"
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(initial_text)

            command = build_editor_command(self.editor_command, temp_path)
            logger.debug("Launching editor: %s", command)
            process = await asyncio.create_subprocess_shell(command)
            return_code = await process.wait()
            if return_code != 0:
                return Failure(f"Editor exited with code {return_code}")

            async with aiofiles.open(temp_path, encoding="utf-8") as f:
                return Success(await f.read())

        except OSError as e:
            return Failure(f"Failed to start editor: {e}")
        finally:
            with contextlib.suppress(OSError):
                temp_path.unlink()


# -----------------------------
# Buffer Formats
# -----------------------------


def strip_comment_lines(text: str) -> str:
    """Drop lines whose first non-whitespace character is '#', then trim padding."""
    kept = [line for line in text.split("\n") if not line.strip().startswith("#")]
    return "\n".join(kept).strip()


def encode_request_buffer(title: str, description: str) -> str:
    """Join title and description into one editable buffer."""
    return f"{title}\n{DESCRIPTION_SEPARATOR}\n{description}\n"


def decode_request_buffer(text: str) -> Result[tuple[str, str], str]:
    """Split an edited buffer back into title and description.

    Without the separator line the first non-empty line is the title and the
    rest is the description.
    """
    lines = text.split("\n")
    if DESCRIPTION_SEPARATOR in (line.strip() for line in lines):
        index = next(i for i, line in enumerate(lines) if line.strip() == DESCRIPTION_SEPARATOR)
        title = " ".join(line.strip() for line in lines[:index] if line.strip())
        description = "\n".join(lines[index + 1 :]).strip()
    else:
        stripped = text.strip().split("\n")
        title = stripped[0].strip()
        description = "\n".join(stripped[1:]).strip()

    if not title:
        return Failure("Title cannot be empty")
    return Success((title, description))


async def edit_request_content(
    editor: EditorBridge, title: str, description: str
) -> Result[tuple[str, str], str]:
    """Edit a title/description pair through one editor buffer."""
    edited = await editor.edit_buffer(encode_request_buffer(title, description), ".md")
    return edited.bind(decode_request_buffer)


async def collect_instructions(editor: EditorBridge) -> Result[str, str]:
    """Ask the user for free-text instructions via the instruction template."""
    edited = await editor.edit_buffer(INSTRUCTIONS_TEMPLATE, ".txt")
    return edited.map(strip_comment_lines)
