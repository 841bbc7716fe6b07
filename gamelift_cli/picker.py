from __future__ import annotations

import sys
from typing import Protocol, Sequence, TextIO

import questionary

from .cli_shared import AmbiguousInputError, NoCandidatesError


class Picker(Protocol):
    def pick(self, labels: Sequence[str], prompt: str) -> int:
        """Return the index of the chosen label; raise AmbiguousInputError on cancel."""
        ...


def prompt_index(
    count: int,
    prompt: str,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    """Read an index in [0, count) from a line-oriented stream.

    Unparsable or out-of-range input asks again; the loop has no retry cap and
    only ends on a valid index or end of input.
    """
    if count <= 0:
        raise NoCandidatesError("nothing to choose from")
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stderr
    while True:
        stdout.write(f"{prompt}[0-{count - 1}] ")
        stdout.flush()
        line = stdin.readline()
        if not line:
            raise AmbiguousInputError("input closed before a valid selection was made")
        try:
            index = int(line.strip())
        except ValueError:
            continue
        if 0 <= index < count:
            return index


class FuzzyPicker:
    """Filter-as-you-type selection over labels (questionary select + search)."""

    def pick(self, labels: Sequence[str], prompt: str) -> int:
        if not labels:
            raise NoCandidatesError("nothing to choose from")
        choices = [questionary.Choice(title=label, value=i) for i, label in enumerate(labels)]
        answer = questionary.select(
            prompt,
            choices=choices,
            use_search_filter=True,
            use_jk_keys=False,
        ).ask()
        if answer is None:
            raise AmbiguousInputError("selection cancelled")
        return int(answer)


class NumberedPicker:
    def __init__(self, *, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self.stdin = stdin
        self.stdout = stdout

    def pick(self, labels: Sequence[str], prompt: str) -> int:
        if not labels:
            raise NoCandidatesError("nothing to choose from")
        out = self.stdout or sys.stderr
        for i, label in enumerate(labels):
            out.write(f"[{i}] {label}\n")
        return prompt_index(len(labels), prompt, stdin=self.stdin, stdout=self.stdout)


def default_picker(*, plain: bool) -> Picker:
    if plain:
        return NumberedPicker()
    return FuzzyPicker()
