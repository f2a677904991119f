# SPDX-FileCopyrightText: 2025 - Canonical Ltd
# SPDX-License-Identifier: Apache-2.0

"""Interactive questions asked while planning.

Questions wrap rich prompts with validation: a validation function raises
ValueError with a description of the problem and the question is asked again
until a valid answer is given.
"""

import logging
from typing import Any, Callable

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt

LOG = logging.getLogger(__name__)

ValidationFunction = Callable[[Any], None]


class Question:
    """A question asked to the operator."""

    def __init__(
        self,
        question: str,
        default_value: Any = None,
        choices: list[str] | None = None,
        validation_function: ValidationFunction | None = None,
        description: str | None = None,
        console: Console | None = None,
        show_hint: bool = False,
    ):
        """Setup question.

        :param question: the question to ask the operator
        :param default_value: answer used when the operator just hits enter
        :param choices: list of valid answers
        :param validation_function: raises ValueError on an invalid answer
        :param description: hint displayed before the question if requested
        :param console: the console to prompt on
        :param show_hint: whether to display the description
        """
        self.question = question
        self.default_value = default_value
        self.choices = choices
        self.validation_function = validation_function
        self.description = description
        self.console = console
        self.show_hint = show_hint

    def question_function(self, prompt: str, default: Any) -> Any:
        raise NotImplementedError

    def validate(self, answer: Any) -> None:
        """Validate an answer, raising ValueError when it is not acceptable."""
        if self.choices is not None and answer not in self.choices:
            raise ValueError(
                f"{answer!r} is not one of: {', '.join(self.choices)}"
            )
        if self.validation_function is not None:
            self.validation_function(answer)

    def print(self, message: str) -> None:
        if self.console is not None:
            self.console.print(message)
        else:
            Console().print(message)

    def ask(self) -> Any:
        """Ask the question until a valid answer is given.

        :return: the validated answer
        """
        if self.show_hint and self.description:
            self.print(f"[dim]{self.description}[/dim]")
        default = ... if self.default_value is None else self.default_value
        while True:
            answer = self.question_function(self.question, default)
            try:
                self.validate(answer)
            except ValueError as e:
                LOG.debug(f"Invalid answer to {self.question!r}: {e}")
                self.print(f"[red]Invalid value:[/red] {e}")
                continue
            return answer


class PromptQuestion(Question):
    """Ask the operator for a free-form string.

    Empty answers are rejected unless allow_empty is set.
    """

    def __init__(self, question: str, allow_empty: bool = False, **kwargs):
        super().__init__(question, **kwargs)
        self.allow_empty = allow_empty

    def question_function(self, prompt: str, default: Any) -> str:
        return Prompt.ask(
            prompt,
            default=default,
            choices=self.choices,
            console=self.console,
        )

    def validate(self, answer: Any) -> None:
        """Reject empty answers before any other validation."""
        if not answer and not self.allow_empty:
            raise ValueError("An answer is required")
        super().validate(answer)


class PasswordPromptQuestion(PromptQuestion):
    """Ask the operator for a secret without echoing it.

    With confirm set, the secret is asked twice and must match.
    """

    def __init__(self, question: str, confirm: bool = True, **kwargs):
        super().__init__(question, **kwargs)
        self.confirm = confirm

    def question_function(self, prompt: str, default: Any) -> str:
        return Prompt.ask(prompt, password=True, console=self.console)

    def ask(self) -> str:
        """Ask for the secret, and again for confirmation when needed."""
        while True:
            password = super().ask()
            if not self.confirm:
                return password
            again = Prompt.ask("Again", password=True, console=self.console)
            if again == password:
                return password
            self.print("[red]Passwords do not match, please try again.[/red]")


class ConfirmQuestion(Question):
    """Ask the operator a yes/no question."""

    def question_function(self, prompt: str, default: Any) -> bool:
        return Confirm.ask(prompt, default=default, console=self.console)


class IntPromptQuestion(Question):
    """Ask the operator for an integer within optional bounds."""

    def __init__(
        self,
        question: str,
        min_value: int | None = None,
        max_value: int | None = None,
        **kwargs,
    ):
        super().__init__(question, **kwargs)
        self.min_value = min_value
        self.max_value = max_value

    def question_function(self, prompt: str, default: Any) -> int:
        return IntPrompt.ask(prompt, default=default, console=self.console)

    def validate(self, answer: Any) -> None:
        """Enforce the configured bounds."""
        if self.min_value is not None and answer < self.min_value:
            raise ValueError(f"Minimum value is {self.min_value}")
        if self.max_value is not None and answer > self.max_value:
            raise ValueError(f"Maximum value is {self.max_value}")
        super().validate(answer)
