"""Interactive confirmation capability.

Operations that need operator input take a ``Confirm`` or ``Ask`` callable
instead of reading the terminal directly, so tests can pass plain lambdas.

Usage:
    from registry_ops.prompts import typed_yes_confirm

    if not confirm("Are you sure? (yes/NO): "):
        raise UserDeclinedError("Restore cancelled")
"""

from typing import Callable

from registry_ops.console import console

Confirm = Callable[[str], bool]
Ask = Callable[[str], str]


def is_typed_yes(reply: str) -> bool:
    """True when the reply is the word "yes" in any letter case."""
    return reply.strip().lower() == "yes"


def is_yes_short(reply: str) -> bool:
    """True when the reply starts with y or Y."""
    return reply.strip()[:1].lower() == "y"


def console_ask(prompt: str) -> str:
    return console.input(prompt)


def typed_yes_confirm(prompt: str) -> bool:
    """Destructive-action confirmation: requires typing "yes"."""
    return is_typed_yes(console_ask(prompt))


def short_yes_confirm(prompt: str) -> bool:
    """Default-no confirmation: any reply starting with y is affirmative."""
    return is_yes_short(console_ask(prompt))
