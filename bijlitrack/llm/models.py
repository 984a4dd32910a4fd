"""
Conversation and request models for the assistant.

This module provides:
- Message roles, target languages and request modes
- Immutable conversation messages and the transcript reducer
- The JSON request body sent to the assistant endpoint
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

RTL_PATTERN = re.compile(r"[\u0600-\u06FF]")


class MessageRole(Enum):
    """Roles that appear in the chat transcript."""
    USER = "user"
    ASSISTANT = "assistant"


class TargetLanguage(Enum):
    """Languages the translate mode can produce."""
    ENGLISH = "en"
    URDU = "ur"

    @property
    def display_name(self) -> str:
        return "English" if self is TargetLanguage.ENGLISH else "Urdu"

    def toggled(self) -> TargetLanguage:
        if self is TargetLanguage.ENGLISH:
            return TargetLanguage.URDU
        return TargetLanguage.ENGLISH


@dataclass(frozen=True)
class ConversationMessage:
    """A single chat message."""
    role: MessageRole
    content: str

    @property
    def direction(self) -> Literal["rtl", "ltr"]:
        """Text direction, right-to-left when the text contains Arabic script."""
        return "rtl" if RTL_PATTERN.search(self.content) else "ltr"

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class Transcript:
    """
    Ordered, append-only chat history.

    Every change returns a new transcript; the streaming reply grows by
    replacing the last message with an updated copy.
    """
    messages: tuple[ConversationMessage, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)

    def __getitem__(self, index: int) -> ConversationMessage:
        return self.messages[index]

    @property
    def last(self) -> ConversationMessage | None:
        return self.messages[-1] if self.messages else None

    def append(self, message: ConversationMessage) -> Transcript:
        return Transcript(self.messages + (message,))

    def replace_last_content(self, content: str) -> Transcript:
        if not self.messages:
            raise ValueError("Cannot update the last message of an empty transcript")
        last = self.messages[-1]
        updated = ConversationMessage(role=last.role, content=content)
        return Transcript(self.messages[:-1] + (updated,))

    def to_payload(self) -> list[dict[str, str]]:
        return [message.to_payload() for message in self.messages]


@dataclass(frozen=True)
class ChatMode:
    """Free-form assistant conversation."""

    @property
    def type(self) -> Literal["chat"]:
        return "chat"

    @property
    def target_language(self) -> None:
        return None


@dataclass(frozen=True)
class TranslateMode:
    """One-shot translation into ``target_language``."""
    target_language: TargetLanguage

    @property
    def type(self) -> Literal["translate"]:
        return "translate"


RequestMode = ChatMode | TranslateMode


def build_mode(
    mode_type: str,
    target_language: TargetLanguage | str | None = None,
) -> RequestMode:
    """Build a request mode, enforcing that only translate carries a language.

    Raises:
        ValueError: If the mode type or language is unknown, or the language
            is given for chat / missing for translate.
    """
    if mode_type == "chat":
        if target_language is not None:
            raise ValueError("Chat mode does not take a target language")
        return ChatMode()

    if mode_type == "translate":
        if target_language is None:
            raise ValueError("Translate mode requires a target language")
        return TranslateMode(TargetLanguage(target_language))

    raise ValueError(f"Unknown request mode '{mode_type}'")


class WireMessage(BaseModel):
    """A message as it travels over HTTP."""
    role: Literal["user", "assistant"]
    content: str


class AssistantRequest(BaseModel):
    """JSON body posted to the assistant endpoint."""
    model_config = ConfigDict(populate_by_name=True)

    messages: list[WireMessage]
    type: Literal["chat", "translate"] = "chat"
    target_language: Literal["en", "ur"] | None = Field(
        default=None, alias="targetLanguage"
    )

    @classmethod
    def from_transcript(
        cls, transcript: Transcript, mode: RequestMode
    ) -> AssistantRequest:
        language = mode.target_language
        return cls(
            messages=[WireMessage(**m) for m in transcript.to_payload()],
            type=mode.type,
            target_language=language.value if language else None,
        )

    def to_json_body(self) -> dict[str, Any]:
        """Serialize with ``targetLanguage`` only present in translate mode."""
        return self.model_dump(by_alias=True, exclude_none=True)
