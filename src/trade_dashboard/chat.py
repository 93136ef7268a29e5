from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from trade_dashboard.api.client import BackendClient
from trade_dashboard.api.errors import BackendError, ResultShapeError

PROCESSING_ERROR = "Sorry, I encountered an error processing your request."
CONNECTION_ERROR = "Sorry, I couldn't connect to the server. Please try again."

SUGGESTIONS = (
    "Show my recent trades",
    "What's my win rate?",
    "Find my best performing trades",
    "Export all winning trades to CSV",
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str
    tool_calls: list[Mapping[str, Any]] = field(default_factory=list)

    def to_history(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content, "tool_calls": list(self.tool_calls)}


class ChatSession:
    def __init__(
        self,
        client: BackendClient,
        account: Callable[[], str | None],
        on_trades_updated: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._account = account
        self._on_trades_updated = on_trades_updated
        self._messages: list[ChatMessage] = []

    @property
    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def send(self, text: str) -> ChatMessage | None:
        message = text.strip()
        if not message:
            return None

        history = [item.to_history() for item in self._messages]
        self._messages.append(ChatMessage(role="user", content=message))

        try:
            reply = self._client.chat(message, self._account(), history)
        except ResultShapeError as exc:
            logger.warning("chat reply unreadable: %s", exc)
            return self._append_assistant(PROCESSING_ERROR)
        except BackendError as exc:
            logger.warning("chat request failed: %s", exc)
            return self._append_assistant(CONNECTION_ERROR)

        if not reply.response:
            return self._append_assistant(PROCESSING_ERROR)

        answer = self._append_assistant(reply.response, reply.tool_calls)
        if reply.modifies_trades and self._on_trades_updated is not None:
            self._on_trades_updated()
        return answer

    def reset(self) -> None:
        self._messages.clear()

    def _append_assistant(
        self, content: str, tool_calls: list[Mapping[str, Any]] | None = None
    ) -> ChatMessage:
        answer = ChatMessage(role="assistant", content=content, tool_calls=list(tool_calls or []))
        self._messages.append(answer)
        return answer
