"""Command-line entry points ``gen-pr`` and ``gen-mr``.

Both commands share one implementation parameterized by platform. Setup
flags (tokens, model, editor, config display) are handled first; the first
one given runs and the command exits. Otherwise the positionals are
validated and the interactive workflow runs.
"""

import asyncio
import logging
import shutil
import sys
from collections.abc import Callable
from dataclasses import dataclass

import click
from returns.result import Failure
from returns.result import Result

from genmr import __version__
from genmr.config import DEFAULT_GITLAB_HOST
from genmr.config import GenMRConfig
from genmr.config import format_config
from genmr.config import get_global_config_path
from genmr.config import load_config
from genmr.config import load_config_file
from genmr.config import load_raw_config
from genmr.config import save_config_value
from genmr.editor import ExternalEditor
from genmr.generator import CHATGPT_MODELS
from genmr.generator import OpenAIGenerator
from genmr.generator import is_chatgpt_alias
from genmr.generator import normalize_model
from genmr.git_utils import DEFAULT_REMOTE
from genmr.providers import GitHubProvider
from genmr.providers import GitLabProvider
from genmr.providers import create_provider
from genmr.validation import build_workflow_request
from genmr.validation import resolve_branch_arguments
from genmr.validation import validate_config
from genmr.validation import validate_repository
from genmr.workflow import run_workflow


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
GITHUB_TOKEN_URL = "https://github.com/settings/tokens/new?scopes=repo&description=gen-pr-cli-tool"
OPENAI_TOKEN_URL = "https://platform.openai.com/api-keys"


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Per-command settings."""

    name: str
    platform: str
    platform_name: str
    request_label: str


GEN_PR = ToolSpec(name="gen-pr", platform="github", platform_name="GitHub", request_label="pull request")
GEN_MR = ToolSpec(name="gen-mr", platform="gitlab", platform_name="GitLab", request_label="merge request")


def configure_logging(verbose: bool) -> None:
    """Route diagnostics to stderr; DEBUG for the package when verbose."""
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    logging.getLogger("genmr").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _unwrap_or_exit[T](result: Result[T, str], prefix: str = "") -> T:
    if isinstance(result, Failure):
        raise click.ClickException(f"{prefix}{result.failure()}")
    return result.unwrap()


def _scope_text(is_global: bool) -> str:
    return "globally" if is_global else "locally"


def _prompt_token(label: str) -> str:
    token = str(click.prompt(f"📋 Paste your {label} token here", default="", show_default=False, hide_input=True))
    if not token.strip():
        raise click.ClickException("No token provided")
    return token.strip()


# -----------------------------
# Setup Flags
# -----------------------------


async def _validate_platform_token(tool: ToolSpec, token: str, host: str) -> Result[str, str]:
    provider = GitHubProvider(token) if tool.platform == "github" else GitLabProvider(token, host=host)
    try:
        return await provider.validate_token()
    finally:
        await provider.close()


def configure_platform_token(tool: ToolSpec, is_global: bool) -> None:
    """Prompt for, validate and store the GitHub or GitLab token."""
    click.echo(f"\n🔗 {tool.platform_name} Personal Access Token Setup")
    click.echo("=" * 40)

    host = DEFAULT_GITLAB_HOST
    if tool.platform == "gitlab":
        host = str(click.prompt("🌐 GitLab host", default=DEFAULT_GITLAB_HOST)).strip() or DEFAULT_GITLAB_HOST
        click.echo(
            f"\n📋 Please visit: https://{host}/-/user_settings/personal_access_tokens?name=gen-mr-cli-tool&scopes=api"
        )
        click.echo("📝 Required scopes: api")
    else:
        click.echo(f"\n📋 Please visit: {GITHUB_TOKEN_URL}")
        click.echo("📝 Required scopes: repo")
    click.echo("⚠️  Note: The token will only be shown once!\n")

    token = _prompt_token(tool.platform_name)
    click.echo("🔍 Validating token...")
    user = _unwrap_or_exit(asyncio.run(_validate_platform_token(tool, token, host)), "Token validation failed: ")
    click.echo(f"✅ Token validated! Hello, {user}!")

    key = "githubToken" if tool.platform == "github" else "gitlabToken"
    _unwrap_or_exit(save_config_value(key, token, is_global))
    if tool.platform == "gitlab":
        _unwrap_or_exit(save_config_value("gitlabHost", host, is_global))

    click.echo(f"💾 Token saved {_scope_text(is_global)}!")
    click.echo(f"🎉 You're all set! You can now use {tool.name} to create {tool.request_label}s.\n")


async def _validate_openai_token(token: str) -> Result[None, str]:
    generator = OpenAIGenerator(token)
    try:
        return await generator.validate_token()
    finally:
        await generator.close()


def configure_ai_token(llm: str, is_global: bool) -> None:
    """Prompt for, validate and store the token of a supported LLM."""
    if not is_chatgpt_alias(llm):
        raise click.ClickException(f"Unsupported LLM '{llm}'. Supported: ChatGPT")

    click.echo("\n🤖 ChatGPT (OpenAI) API Token Setup")
    click.echo("=" * 40)
    click.echo(f"📋 Create a key at: {OPENAI_TOKEN_URL}\n")

    token = _prompt_token("OpenAI")
    click.echo("🔍 Validating token...")
    _unwrap_or_exit(asyncio.run(_validate_openai_token(token)), "Token validation failed: ")
    click.echo("✅ Token validated!")

    _unwrap_or_exit(save_config_value("openaiToken", token, is_global))
    click.echo(f"💾 OpenAI token saved {_scope_text(is_global)}!")


def configure_editor(is_global: bool) -> None:
    """Prompt for and store the editor command."""
    click.echo("\n✏️  Editor Configuration")
    click.echo("=" * 40)
    click.echo("Examples: 'code --wait', 'vim', 'nano', 'subl -w {file}'")
    click.echo("Use {file} and {line} placeholders to control argument order.\n")

    command = str(click.prompt("Editor command", default="", show_default=False)).strip()
    if not command:
        raise click.ClickException("No editor command provided")

    executable = command.split()[0]
    if shutil.which(executable) is None:
        click.echo(f"⚠️  Warning: '{executable}' was not found on PATH")

    _unwrap_or_exit(save_config_value("editorCommand", command, is_global))
    click.echo(f"💾 Editor command saved {_scope_text(is_global)}: {command}")


def set_model(model_name: str, is_global: bool) -> None:
    """Store the ChatGPT model to use."""
    result = normalize_model(model_name)
    if isinstance(result, Failure):
        click.echo(f"ℹ️  Supported models: {', '.join(CHATGPT_MODELS)}")
        raise click.ClickException(f"Failed to set model: {result.failure()}")

    model = result.unwrap()
    _unwrap_or_exit(save_config_value("openaiModel", model, is_global))
    click.echo(f"✅ ChatGPT model set to {model} ({_scope_text(is_global)})")


def show_config(tool: ToolSpec, is_global: bool) -> None:
    """Print the effective, or global-only, configuration with tokens masked."""
    if is_global:
        path = get_global_config_path()
        result = load_config_file(path) if path.exists() else Failure(f"No global config at {path}")
        heading = "Global configuration"
    else:
        result = load_raw_config()
        heading = "Effective configuration"

    if isinstance(result, Failure):
        click.echo(f"ℹ️  {result.failure()}")
        click.echo(f"💡 Run '{tool.name} --create-token' to get started.")
        return

    click.echo(f"⚙️  {heading}:")
    click.echo(format_config(result.unwrap()))


# -----------------------------
# Workflow
# -----------------------------


async def _run_workflow_async(tool: ToolSpec, config: GenMRConfig, positional: tuple[str, ...], remote: str) -> int:
    branches = _unwrap_or_exit(resolve_branch_arguments(positional))
    repository = _unwrap_or_exit(validate_repository(tool.platform, remote))
    request = _unwrap_or_exit(build_workflow_request(branches, repository, remote))
    logger.debug("Running workflow for %s: %s -> %s", request.repository, request.source_branch, request.target_branch)

    provider = _unwrap_or_exit(create_provider(tool.platform, config))
    generator = OpenAIGenerator(config.openai_token or "", config.openai_model)
    editor = ExternalEditor(config.editor_command)
    try:
        outcome = await run_workflow(request, provider, generator, editor)
    finally:
        await provider.close()
        await generator.close()

    logger.debug("Workflow finished: %s", outcome.value)
    return outcome.exit_code


def run_tool(tool: ToolSpec, positional: tuple[str, ...], remote: str) -> int:
    """Validate inputs and run the interactive workflow; returns the exit code."""
    loaded = load_config()
    if isinstance(loaded, Failure):
        raise click.ClickException(f"{loaded.failure()}. Run '{tool.name} --create-token' to set up your token.")
    config = _unwrap_or_exit(validate_config(loaded.unwrap(), tool.platform))

    try:
        return asyncio.run(_run_workflow_async(tool, config, positional, remote))
    except click.Abort:
        raise
    except (OSError, RuntimeError, ValueError) as e:
        logger.debug("Workflow error", exc_info=True)
        click.echo(f"❌ Workflow error: {e}", err=True)
        return 1


# -----------------------------
# Commands
# -----------------------------


def _help_text(tool: ToolSpec) -> str:
    return (
        f"Generate a {tool.request_label} title and description with AI and create or update it on "
        f"{tool.platform_name}.\n\n"
        "With a single TARGET the current branch is used as SOURCE.\n\n"
        "\b\nExamples:\n"
        f"  {tool.name} main\n"
        f"  {tool.name} feature/login main PROJ-123\n"
        f"  {tool.name} --create-token --global"
    )


def make_command(tool: ToolSpec) -> click.Command:
    """Build the click command for one tool."""

    @click.command(name=tool.name, help=_help_text(tool), context_settings={"help_option_names": ["-h", "--help"]})
    @click.version_option(version=__version__, prog_name=tool.name)
    @click.argument("positional", nargs=-1, metavar="[SOURCE] TARGET [JIRA]")
    @click.option("--remote", default=DEFAULT_REMOTE, show_default=True, help="Remote used for repository detection")
    @click.option("--create-token", is_flag=True, help=f"Set up the {tool.platform_name} token")
    @click.option("--create-ai-token", metavar="LLM", help="Set up an AI provider token (ChatGPT)")
    @click.option("--use-model", metavar="MODEL", help="Choose the ChatGPT model")
    @click.option("--configure-editor", "configure_editor_flag", is_flag=True, help="Set the editor command")
    @click.option("--show-config", "show_config_flag", is_flag=True, help="Show configuration with tokens masked")
    @click.option("--global", "-g", "is_global", is_flag=True, help="Use the global config instead of the local one")
    @click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
    def command(
        positional: tuple[str, ...],
        remote: str,
        create_token: bool,
        create_ai_token: str | None,
        use_model: str | None,
        configure_editor_flag: bool,
        show_config_flag: bool,
        is_global: bool,
        verbose: bool,
    ) -> None:
        configure_logging(verbose)

        setup_actions: list[tuple[object, Callable[[], None]]] = [
            (create_token, lambda: configure_platform_token(tool, is_global)),
            (create_ai_token, lambda: configure_ai_token(create_ai_token or "", is_global)),
            (configure_editor_flag, lambda: configure_editor(is_global)),
            (use_model, lambda: set_model(use_model or "", is_global)),
            (show_config_flag, lambda: show_config(tool, is_global)),
        ]
        for requested, action in setup_actions:
            if requested:
                action()
                return

        sys.exit(run_tool(tool, positional, remote))

    return command


gen_pr = make_command(GEN_PR)
gen_mr = make_command(GEN_MR)
