"""Interactive prompts used by ``beans configure --interactive``.

Invalid answers are re-asked a bounded number of times before giving up.
"""

from __future__ import annotations

from pathlib import Path

from rich.prompt import Prompt

from .errors import PromptAbortedError
from .git import list_branches
from .modules import MkosiKernelModule
from .utils import console, print_warning

MAX_ATTEMPTS = 5

YES_ANSWERS = ("y", "yes", "")
NO_ANSWERS = ("n", "no")


def confirm(question: str, max_attempts: int = MAX_ATTEMPTS) -> bool:
    """Ask a yes/no question; an empty answer means yes.

    Raises:
        PromptAbortedError: After *max_attempts* unrecognised answers.
    """
    for _ in range(max_attempts):
        answer = Prompt.ask(f"{question} [Y/n]", console=console, default="", show_default=False)
        answer = answer.strip().lower()
        if answer in YES_ANSWERS:
            return True
        if answer in NO_ANSWERS:
            return False
        print_warning("Please answer 'y' or 'n'.")
    raise PromptAbortedError(f"No valid answer after {max_attempts} attempts: {question}")


def choose(question: str, choices: list[str], max_attempts: int = MAX_ATTEMPTS) -> str:
    """Ask for one of *choices*.

    Raises:
        PromptAbortedError: After *max_attempts* answers outside *choices*.
    """
    for _ in range(max_attempts):
        answer = Prompt.ask(question, console=console).strip()
        if answer in choices:
            return answer
        print_warning(f"Choose one of: {', '.join(choices)}")
    raise PromptAbortedError(f"No valid choice after {max_attempts} attempts: {question}")


async def prompt_module_selection(module_name: str, source_path: Path) -> tuple[bool, str | None]:
    """Ask whether to add *module_name* and which ref its bean branch starts from.

    Returns:
        ``(include, base_ref)``; ``base_ref`` is ``None`` for the source's HEAD.
    """
    console.print(f"\n[bold]--- setting up {module_name} module ---[/bold]")
    if not confirm("Would you like to configure this module?"):
        return False, None

    console.print(await list_branches(source_path))
    base_ref = Prompt.ask(
        "Which branch should the bean start from? (empty for HEAD)",
        console=console,
        default="",
        show_default=False,
    ).strip()
    return True, base_ref or None


def prompt_profile(module: MkosiKernelModule) -> str | None:
    """Ask which mkosi profile the bean should build with, if any."""
    profiles = module.available_profiles()
    if not profiles:
        return None
    if not confirm("Would you like to set a specific mkosi profile?"):
        return None

    for profile in profiles:
        console.print(f"  {profile}")
    return choose("Which profile?", profiles)
