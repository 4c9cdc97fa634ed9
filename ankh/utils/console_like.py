from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class Prompter(Protocol):
    """Interactive input used while resolving versions, tags and pods."""

    def select_one(self, options: Sequence[str], prompt: str) -> str: ...

    def prompt_text(self, default: str, prompt: str) -> str: ...
