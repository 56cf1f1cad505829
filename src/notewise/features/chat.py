"""ChatSession — multi-turn chat rendered as a single transcript prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from notewise.exceptions import NotewiseError

if TYPE_CHECKING:
    from notewise.providers._protocol import ModelProvider

logger = logging.getLogger(__name__)

ERROR_REPLY = "Sorry, I encountered an error while processing your request."


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: Literal["user", "assistant"]
    content: str


class ChatSession:
    """Keeps the conversation and sends it as ``role: content`` lines.

    A failed completion is logged and answered with :data:`ERROR_REPLY`;
    the failed turn is not added to the history.
    """

    def __init__(self, provider: ModelProvider) -> None:
        self._provider = provider
        self.messages: list[ChatMessage] = []

    def format_prompt(self) -> str:
        return "\n".join(f"{m.role}: {m.content}" for m in self.messages)

    async def send(self, message: str) -> str | None:
        """Send *message*; returns the reply, or None for blank input."""
        text = message.strip()
        if not text:
            return None
        self.messages.append(ChatMessage("user", text))
        try:
            reply = await self._provider.complete(self.format_prompt())
        except NotewiseError as exc:
            logger.error("Error generating chat response: %s", exc)
            return ERROR_REPLY
        self.messages.append(ChatMessage("assistant", reply))
        return reply

    def reset(self) -> None:
        self.messages.clear()
