"""Interactive pull/merge request workflow.

Drives one run from lookup to the final provider call:

1. Reconciliation gate: look for an open request on the same branch pair and,
   when one exists, let the user regenerate it fresh, regenerate it seeded
   with their own instructions, or cancel.
2. Initial generation: produce the first draft. It becomes both the live
   draft and the snapshot that rollback returns to.
3. Review loop: save, edit, regenerate with instructions, roll back, or
   cancel until a terminal choice is made.
4. Finalization: create or update the remote request exactly once.

All state for a run lives in ``ReviewSession``; all terminal I/O goes through
a ``Console``. With fake collaborators the engine is a pure function of its
inputs and the scripted answers, which is how the tests drive it.
"""

import logging
from dataclasses import dataclass
from dataclasses import replace
from enum import Enum
from typing import Protocol

import click
from returns.result import Failure
from returns.result import Result
from returns.result import Success

from genmr.editor import EditorBridge
from genmr.editor import collect_instructions
from genmr.editor import edit_request_content
from genmr.generator import ContentGenerator
from genmr.generator import GeneratedContent
from genmr.git_utils import format_branch_display
from genmr.prompt import PreviousResult
from genmr.prompt import PromptOptions
from genmr.prompt import default_prompt_options
from genmr.providers import RemoteRequest
from genmr.providers import RepositoryProvider


logger = logging.getLogger(__name__)

RULE_WIDTH = 60
MENU_RULE_WIDTH = 50


class Console(Protocol):
    """Line-oriented terminal I/O."""

    def echo(self, message: str = "") -> None:
        """Print a line."""
        ...

    def prompt(self, text: str) -> str:
        """Read one line of input; empty string when the user just presses enter."""
        ...


class ClickConsole:
    """Console backed by click."""

    def echo(self, message: str = "") -> None:
        """Print a line."""
        click.echo(message)

    def prompt(self, text: str) -> str:
        """Read one line of input."""
        return str(click.prompt(text, default="", show_default=False, prompt_suffix=""))


class WorkflowOutcome(Enum):
    """Terminal states of a workflow run."""

    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        """Process exit code for this outcome."""
        return 0 if self in (WorkflowOutcome.SAVED, WorkflowOutcome.CANCELLED) else 1


class GateChoice(Enum):
    """Choices offered when a request already exists."""

    FRESH = "1"
    SEEDED = "2"
    CANCEL = "3"


class MenuAction(Enum):
    """Actions of the review loop."""

    SAVE = "save"
    EDIT = "edit"
    REGENERATE = "regenerate"
    ROLLBACK = "rollback"
    CANCEL = "cancel"


@dataclass(frozen=True, slots=True)
class MenuEntry:
    """One numbered line of the review menu."""

    key: str
    action: MenuAction
    label: str


def review_menu(has_changes: bool, request_label: str = "merge request") -> tuple[MenuEntry, ...]:
    """Build the review menu; rollback is only listed once something changed."""
    actions = [
        (MenuAction.SAVE, f"💾 Save/Update this {request_label}"),
        (MenuAction.EDIT, "✏️  Edit title and description"),
        (MenuAction.REGENERATE, "🔄 Regenerate with additional instructions"),
    ]
    if has_changes:
        actions.append((MenuAction.ROLLBACK, "↩️  Rollback to original version"))
    actions.append((MenuAction.CANCEL, "❌ Cancel (exit without saving)"))
    return tuple(MenuEntry(str(number), action, label) for number, (action, label) in enumerate(actions, start=1))


@dataclass(frozen=True, slots=True)
class WorkflowRequest:
    """Validated inputs of one run.

    ``source_branch``/``target_branch`` are local names used for git context;
    the ``remote_*`` names are the tracked branches used for provider calls.
    """

    source_branch: str
    target_branch: str
    repository: str
    jira_tickets: str = ""
    remote_source_branch: str | None = None
    remote_target_branch: str | None = None
    remote_name: str | None = None

    @property
    def provider_source_branch(self) -> str:
        """Source branch name as known to the remote."""
        return self.remote_source_branch or self.source_branch

    @property
    def provider_target_branch(self) -> str:
        """Target branch name as known to the remote."""
        return self.remote_target_branch or self.target_branch


@dataclass(frozen=True, slots=True)
class RequestDraft:
    """Title and description being reviewed."""

    title: str
    description: str
    source_model: str
    prompt_options: PromptOptions | None = None

    @classmethod
    def from_generated(cls, content: GeneratedContent) -> "RequestDraft":
        """Create a draft from a generation result."""
        return cls(
            title=content.title,
            description=content.description,
            source_model=f"{content.ai_model} ({content.model})",
            prompt_options=content.prompt_options,
        )

    def with_content(self, title: str, description: str) -> "RequestDraft":
        """Copy with new title and description."""
        return replace(self, title=title, description=description)


@dataclass(slots=True)
class ReviewSession:
    """Mutable state of the review loop.

    ``original`` is the snapshot taken right after initial generation and is
    never reassigned. ``current`` is the one live draft.
    """

    original: RequestDraft
    current: RequestDraft
    existing_request: RemoteRequest | None = None
    has_changes: bool = False

    @classmethod
    def start(cls, draft: RequestDraft, existing_request: RemoteRequest | None) -> "ReviewSession":
        """Begin a session from the initial draft."""
        return cls(original=draft, current=replace(draft), existing_request=existing_request)

    def apply(self, draft: RequestDraft) -> None:
        """Replace the live draft after an edit or regeneration."""
        self.current = draft
        self.has_changes = True

    def rollback(self) -> None:
        """Restore the live draft to a copy of the snapshot."""
        self.current = replace(self.original)
        self.has_changes = False


class RequestWorkflow:
    """Workflow engine bound to its collaborators."""

    def __init__(
        self,
        provider: RepositoryProvider,
        generator: ContentGenerator,
        editor: EditorBridge,
        console: Console | None = None,
    ) -> None:
        """Bind the engine to a provider, generator, editor and console."""
        self.provider = provider
        self.generator = generator
        self.editor = editor
        self.console = console or ClickConsole()
        self.label = provider.request_label

    async def run(self, request: WorkflowRequest) -> WorkflowOutcome:
        """Run the workflow to a terminal outcome."""
        existing = await self._find_existing(request)

        if existing is not None:
            self._show_existing(request, existing)
            choice = self._ask_gate_choice()
            if choice is GateChoice.CANCEL:
                self.console.echo(f"❌ Operation cancelled. Existing {self.label} will remain unchanged.")
                return WorkflowOutcome.CANCELLED
        else:
            choice = GateChoice.FRESH

        draft_result = await self._initial_draft(request, existing, choice)
        if isinstance(draft_result, Failure):
            logger.error("Initial %s generation failed: %s", self.label, draft_result.failure())
            self.console.echo(f"❌ Failed to generate {self.label}: {draft_result.failure()}")
            return WorkflowOutcome.FAILED

        session = ReviewSession.start(draft_result.unwrap(), existing)
        action_text = "Updated" if existing is not None else "Generated"
        self.console.echo("\n" + "=" * RULE_WIDTH)
        self.console.echo(f"📝 {action_text} {self.label.title()}")
        self.console.echo("=" * RULE_WIDTH)
        self.console.echo(f"\n🏷️  Title: {session.current.title}")
        self.console.echo(f"\n📄 Description:\n{session.current.description}")
        self.console.echo(f"\n🤖 Generated using: {session.current.source_model}")
        self.console.echo("=" * RULE_WIDTH)

        return await self._review(session, request)

    # -----------------------------
    # Reconciliation Gate
    # -----------------------------

    async def _find_existing(self, request: WorkflowRequest) -> RemoteRequest | None:
        self.console.echo(f"🔍 Checking for existing {self.label}s...")
        result = await self.provider.find_existing_request(
            request.repository, request.provider_source_branch, request.provider_target_branch
        )
        if isinstance(result, Failure):
            logger.warning("Existing %s lookup failed: %s", self.label, result.failure())
            self.console.echo(f"⚠️  Warning: Could not check for existing {self.label}s: {result.failure()}")
            return None
        return result.unwrap()

    def _show_existing(self, request: WorkflowRequest, existing: RemoteRequest) -> None:
        source = format_branch_display(request.source_branch, request.remote_name, request.remote_source_branch)
        target = format_branch_display(request.target_branch, request.remote_name, request.remote_target_branch)
        self.console.echo(f"📋 Found existing {self.label}:")
        self.console.echo(f"🔍 Source → target: {source} → {target}")
        self.console.echo(f"   URL: {existing.url}")
        self.console.echo(f"   Status: {existing.state}")
        self.console.echo(f"   Title: {existing.title}")
        self.console.echo(f"   Description:\n{existing.description}")
        self.console.echo()

    def _ask_gate_choice(self) -> GateChoice:
        self.console.echo("What would you like to do?")
        self.console.echo(f"1. 🔄 Regenerate {self.label} (fresh generation)")
        self.console.echo(f"2. 🔄 Regenerate existing {self.label} with additional instructions")
        self.console.echo("3. ❌ Cancel")

        valid = {choice.value: choice for choice in GateChoice}
        while True:
            answer = self.console.prompt("Choose an option (1-3): ").strip()
            if answer in valid:
                return valid[answer]
            self.console.echo("❌ Invalid option. Please choose 1-3.")

    # -----------------------------
    # Generation
    # -----------------------------

    async def _initial_draft(
        self, request: WorkflowRequest, existing: RemoteRequest | None, choice: GateChoice
    ) -> Result[RequestDraft, str]:
        options = default_prompt_options()

        if choice is GateChoice.SEEDED and existing is not None:
            self.console.echo(f"🔄 Will regenerate existing {self.label} with additional instructions...")
            seeded = await self._generate_seeded(
                request, PreviousResult(title=existing.title, description=existing.description), options
            )
            if isinstance(seeded, Success):
                return seeded.map(RequestDraft.from_generated)
            logger.info("Seeded generation failed, falling back to fresh: %s", seeded.failure())
            self.console.echo(f"❌ Failed to regenerate with instructions: {seeded.failure()}")
            self.console.echo("💡 Falling back to fresh generation...")
        elif existing is not None:
            self.console.echo("🔄 Will regenerate with fresh content...")
        else:
            self.console.echo(f"🔍 Generating AI-powered {self.label}...")

        return (await self._generate_fresh(request, options)).map(RequestDraft.from_generated)

    async def _generate_fresh(self, request: WorkflowRequest, options: PromptOptions) -> Result[GeneratedContent, str]:
        source = format_branch_display(request.source_branch, request.remote_name, request.remote_source_branch)
        target = format_branch_display(request.target_branch, request.remote_name, request.remote_target_branch)
        self.console.echo(f"🔍 Generating {self.label} for {source} → {target}")
        if request.jira_tickets:
            self.console.echo(f"🎫 Including JIRA tickets: {request.jira_tickets}")

        result = await self.generator.generate(
            request.source_branch, request.target_branch, request.jira_tickets, options
        )
        if isinstance(result, Success):
            content = result.unwrap()
            self.console.echo(f"✅ Generated {self.label} using {content.ai_model} ({content.model})")
        return result

    async def _generate_seeded(
        self, request: WorkflowRequest, previous: PreviousResult, options: PromptOptions
    ) -> Result[GeneratedContent, str]:
        self.console.echo("🚀 Opening editor for additional instructions...")
        instructions = await collect_instructions(self.editor)
        if isinstance(instructions, Failure):
            return instructions

        self.console.echo("🔄 Regenerating with additional instructions...")
        return await self.generator.generate(
            request.source_branch,
            request.target_branch,
            request.jira_tickets,
            options.seeded(previous, instructions.unwrap()),
        )

    # -----------------------------
    # Review Loop
    # -----------------------------

    async def _review(self, session: ReviewSession, request: WorkflowRequest) -> WorkflowOutcome:
        while True:
            menu = review_menu(session.has_changes, self.label)
            action = self._ask_menu_action(menu)

            if action is None:
                self.console.echo(f"❌ Invalid option. Please choose 1-{len(menu)}.")
            elif action is MenuAction.SAVE:
                return await self._save(session, request)
            elif action is MenuAction.EDIT:
                await self._edit(session)
            elif action is MenuAction.REGENERATE:
                await self._regenerate(session, request)
            elif action is MenuAction.ROLLBACK:
                session.rollback()
                self.console.echo("↩️ Rolled back to original version")
                self._show_current(session.current)
            elif action is MenuAction.CANCEL:
                self.console.echo("❌ Operation cancelled. Exiting without saving.")
                return WorkflowOutcome.CANCELLED

    def _ask_menu_action(self, menu: tuple[MenuEntry, ...]) -> MenuAction | None:
        self.console.echo("\n" + "=" * MENU_RULE_WIDTH)
        self.console.echo("📋 What would you like to do?")
        self.console.echo("=" * MENU_RULE_WIDTH)
        for entry in menu:
            self.console.echo(f"{entry.key}. {entry.label}")
        self.console.echo("=" * MENU_RULE_WIDTH)

        answer = self.console.prompt(f"Choose an option (1-{len(menu)}): ").strip()
        return next((entry.action for entry in menu if entry.key == answer), None)

    async def _edit(self, session: ReviewSession) -> None:
        if not self.editor.is_configured:
            self._edit_manually(session)
            return

        self.console.echo("🚀 Opening editor...")
        result = await edit_request_content(self.editor, session.current.title, session.current.description)
        if isinstance(result, Failure):
            logger.info("Editor failed, falling back to manual input: %s", result.failure())
            self.console.echo(f"❌ Editor error: {result.failure()}")
            self.console.echo("💡 Falling back to manual input")
            self._edit_manually(session)
            return

        title, description = result.unwrap()
        session.apply(session.current.with_content(title, description))
        self.console.echo("✅ Content updated from editor")
        self._show_current(session.current)

    def _edit_manually(self, session: ReviewSession) -> None:
        title = self.console.prompt("New Title: ").strip()
        self.console.echo("New Description (finish with an empty line):")
        lines: list[str] = []
        while line := self.console.prompt(""):
            lines.append(line)

        session.apply(
            session.current.with_content(
                title or session.current.title,
                "\n".join(lines) if lines else session.current.description,
            )
        )
        self.console.echo("✅ Content updated manually")
        self._show_current(session.current)

    async def _regenerate(self, session: ReviewSession, request: WorkflowRequest) -> None:
        previous = PreviousResult(title=session.current.title, description=session.current.description)
        options = session.current.prompt_options or default_prompt_options()

        result = await self._generate_seeded(request, previous, options)
        if isinstance(result, Failure):
            logger.info("Regeneration failed: %s", result.failure())
            self.console.echo(f"❌ Failed to regenerate: {result.failure()}")
            self.console.echo("💡 Continuing with current content...")
            return

        session.apply(RequestDraft.from_generated(result.unwrap()))
        self._show_draft(f"🔄 Regenerated {self.label.title()}", session.current)

    # -----------------------------
    # Finalization
    # -----------------------------

    async def _save(self, session: ReviewSession, request: WorkflowRequest) -> WorkflowOutcome:
        draft = session.current
        existing = session.existing_request

        if existing is not None:
            action_text = "update"
            self.console.echo(f"💾 Updating {self.label} #{existing.id}...")
            result = await self.provider.update_request(
                request.repository, existing.id, draft.title, draft.description
            )
        else:
            action_text = "create"
            self.console.echo(f"💾 Creating {self.label}...")
            result = await self.provider.create_request(
                request.repository,
                request.provider_source_branch,
                request.provider_target_branch,
                draft.title,
                draft.description,
            )

        if isinstance(result, Failure):
            logger.error("Failed to %s %s: %s", action_text, self.label, result.failure())
            self.console.echo(f"❌ Failed to {action_text} {self.label}: {result.failure()}")
            return WorkflowOutcome.SAVE_FAILED

        self.console.echo(f"✅ {self.label.capitalize()} {action_text}d: {result.unwrap().url}")
        return WorkflowOutcome.SAVED

    # -----------------------------
    # Display
    # -----------------------------

    def _show_draft(self, heading: str, draft: RequestDraft) -> None:
        self.console.echo("\n" + "=" * RULE_WIDTH)
        self.console.echo(heading)
        self.console.echo("=" * RULE_WIDTH)
        self._show_current(draft)

    def _show_current(self, draft: RequestDraft) -> None:
        self.console.echo(f"\n🏷️  Title: {draft.title}")
        self.console.echo(f"\n📄 Description:\n{draft.description}")
        self.console.echo("=" * RULE_WIDTH)


async def run_workflow(
    request: WorkflowRequest,
    provider: RepositoryProvider,
    generator: ContentGenerator,
    editor: EditorBridge,
    console: Console | None = None,
) -> WorkflowOutcome:
    """Run one interactive workflow and return its outcome."""
    return await RequestWorkflow(provider, generator, editor, console).run(request)
