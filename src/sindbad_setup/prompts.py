"""
Confirmation providers for interactive update prompts.
"""

from typing import Callable, Iterable

import click

# Receives the question, returns True to proceed
ConfirmationProvider = Callable[[str], bool]


def interactive_confirm(question: str) -> bool:
    """
    Ask on stdin; blocks until a line arrives. An empty answer or EOF
    means no. Ctrl-C is re-raised as KeyboardInterrupt so it cancels the
    whole run.
    """
    try:
        return click.confirm(f"   ❓ {question}", default=False)
    except click.Abort as e:
        # click raises Abort for both Ctrl-C and EOF
        if isinstance(e.__context__, KeyboardInterrupt):
            raise KeyboardInterrupt from None
        return False


def always(answer: bool) -> ConfirmationProvider:
    """Provider that answers every question the same way."""

    def confirm(question: str) -> bool:
        return answer

    return confirm


def scripted(answers: Iterable[bool]) -> ConfirmationProvider:
    """Provider that replays answers in order, then answers no."""
    remaining = iter(answers)

    def confirm(question: str) -> bool:
        return next(remaining, False)

    return confirm
