"""
Shared CLI utilities for common command-line patterns.

This module provides the confirmation prompt and logging setup used by the
teardown scripts.
"""

import logging
from enum import Enum
from typing import Optional

MAX_PROMPT_ATTEMPTS = 3

_YES_ANSWERS = {"y", "yes"}
_NO_ANSWERS = {"n", "no"}


class ConfirmationAnswer(Enum):
    """Recognised answers to a yes/no prompt."""

    YES = "yes"
    NO = "no"
    DEFAULT = "default"


def parse_confirmation(response: str) -> Optional[ConfirmationAnswer]:
    """
    Map raw prompt input to a ConfirmationAnswer.

    Args:
        response: Text typed by the user

    Returns:
        ConfirmationAnswer for 'y'/'yes', 'n'/'no' (any case) and empty input,
        or None when the input is not recognised.
    """
    normalized = response.strip().lower()
    if not normalized:
        return ConfirmationAnswer.DEFAULT
    if normalized in _YES_ANSWERS:
        return ConfirmationAnswer.YES
    if normalized in _NO_ANSWERS:
        return ConfirmationAnswer.NO
    return None


def confirm_action(message, skip_prompt=False, default=False):
    """
    Prompt user to confirm an action with an explicit yes/no answer.

    Args:
        message: Prompt message to display to the user
        skip_prompt: If True, skip confirmation and return True
        default: Result used when the user just presses Enter

    Returns:
        bool: True if user confirmed or prompt was skipped, False otherwise

    Unrecognised answers re-prompt up to MAX_PROMPT_ATTEMPTS times and then
    count as a refusal. End of input also counts as a refusal.

    Examples:
        if confirm_action("Delete VPC vpc-123 (y/n)? "):
            delete_vpc()

        if confirm_action("Continue?", skip_prompt=not config.interactive):
            continue_operation()
    """
    if skip_prompt:
        return True

    for _ in range(MAX_PROMPT_ATTEMPTS):
        try:
            response = input(message)
        except EOFError:
            print("\nConfirmation not received.")
            return False

        answer = parse_confirmation(response)
        if answer is ConfirmationAnswer.YES:
            return True
        if answer is ConfirmationAnswer.NO:
            return False
        if answer is ConfirmationAnswer.DEFAULT:
            return default
        print("Please answer 'y' or 'n'.")

    return False


def configure_logging(verbose=False):
    """Configure root logging for a CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(message)s",
    )
