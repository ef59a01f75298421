"""Conversation state for SCOUT.

A ``ChatSession`` owns everything one conversation mutates: the ordered
turns that form the prompt context, the fingerprints of tool calls already
executed, the display settings and the running token count. The
conversation loop owns the session and lends it to the dispatcher and the
paginator, which append turns to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any

from scout.config import Config


class Role(str, Enum):
    """Speaker of a turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """A single conversational turn."""

    role: Role
    content: str

    def to_message(self) -> dict[str, str]:
        """Convert turn to an OpenAI-style chat message."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Settings:
    """Display and generation switches, replaced as a whole on update."""

    streaming: bool = False
    enable_cot: bool = False
    show_thinking: bool = True

    @classmethod
    def from_config(cls, config: Config) -> Settings:
        """Create settings from the persisted configuration."""
        return cls(
            streaming=config.streaming,
            enable_cot=config.enable_cot,
            show_thinking=config.show_thinking,
        )

    def updated(self, **changes: Any) -> Settings:
        """Return a copy with ``changes`` applied.

        Every key and value is checked before anything is applied, so an
        invalid update leaves no partial result.

        Raises:
            ValueError: If a key is unknown or a value is not a bool
        """
        known = {f.name for f in fields(self)}
        for key, value in changes.items():
            if key not in known:
                raise ValueError(f"Unknown setting: {key}")
            if not isinstance(value, bool):
                raise ValueError(f"Setting {key} must be a boolean")
        return replace(self, **changes)


class ExecutedCallSet:
    """Fingerprints of tool calls already executed in this conversation."""

    def __init__(self) -> None:
        self._fingerprints: set[str] = set()

    def add(self, fingerprint: str) -> bool:
        """Record a fingerprint.

        Returns:
            True if the fingerprint is new, False if it was already recorded
        """
        if fingerprint in self._fingerprints:
            return False
        self._fingerprints.add(fingerprint)
        return True

    def clear(self) -> None:
        self._fingerprints.clear()

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._fingerprints

    def __len__(self) -> int:
        return len(self._fingerprints)


@dataclass
class ChatSession:
    """Mutable state of one conversation."""

    system_prompt: str
    settings: Settings = field(default_factory=Settings)
    turns: list[Turn] = field(default_factory=list)
    executed: ExecutedCallSet = field(default_factory=ExecutedCallSet)
    total_tokens: int = 0
    tool_calls: int = 0

    def __post_init__(self) -> None:
        if not self.turns:
            self.turns = [Turn(Role.SYSTEM, self.system_prompt)]

    def append(self, role: Role, content: str) -> Turn:
        """Append a turn to the conversation.

        Raises:
            ValueError: If a second system turn is appended
        """
        if role is Role.SYSTEM:
            raise ValueError("The system turn is fixed at the start of the conversation")
        turn = Turn(role, content)
        self.turns.append(turn)
        return turn

    def window(self, size: int) -> list[Turn]:
        """Get the system turn plus the ``size`` most recent turns."""
        system, rest = self.turns[0], self.turns[1:]
        if size <= 0:
            return [system]
        return [system, *rest[-size:]]

    def last_user_message(self) -> str:
        """Get the content of the most recent user turn, or ''."""
        for turn in reversed(self.turns):
            if turn.role is Role.USER:
                return turn.content
        return ""

    def update_settings(self, **changes: Any) -> Settings:
        """Replace the settings with an updated copy."""
        self.settings = self.settings.updated(**changes)
        return self.settings

    def reset(self) -> None:
        """Reset to a fresh conversation with only the system turn."""
        self.turns = [Turn(Role.SYSTEM, self.system_prompt)]
        self.executed.clear()
        self.total_tokens = 0
        self.tool_calls = 0
