"""
Client-side chat cache.

Keeps the last known snapshot of a chat on disk so a client can still show
history when the server is unreachable. The server is always authoritative:
a successful fetch replaces whatever the cache holds, and nothing enters the
cache that the server has not acknowledged or pushed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import httpx

from livechat.core.logger import logger

CURRENT_CHAT_KEY = "current_chat_id"


class LocalChatCache:
    """JSON file store: {"current_chat_id": ..., "chats": {chat_id: snapshot}}."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable chat cache {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)

    def current_chat_id(self) -> Optional[str]:
        return self._read().get(CURRENT_CHAT_KEY)

    def set_current_chat_id(self, chat_id: Optional[str]) -> None:
        data = self._read()
        if chat_id is None:
            data.pop(CURRENT_CHAT_KEY, None)
        else:
            data[CURRENT_CHAT_KEY] = chat_id
        self._write(data)

    def load(self, chat_id: str) -> Optional[dict[str, Any]]:
        return self._read().get("chats", {}).get(chat_id)

    def save(self, chat_id: str, snapshot: dict[str, Any]) -> None:
        data = self._read()
        data.setdefault("chats", {})[chat_id] = snapshot
        self._write(data)

    def forget(self, chat_id: str) -> None:
        data = self._read()
        data.get("chats", {}).pop(chat_id, None)
        if data.get(CURRENT_CHAT_KEY) == chat_id:
            data.pop(CURRENT_CHAT_KEY, None)
        self._write(data)


@dataclass
class ChatView:
    """What the client renders. degraded=True means cached, read-only."""

    chat_id: str
    snapshot: dict[str, Any]
    degraded: bool = False

    @property
    def messages(self) -> list[dict[str, Any]]:
        return self.snapshot.get("messages", [])

    @property
    def can_send(self) -> bool:
        return not self.degraded and self.snapshot.get("status") != "closed"


class ChatCacheReconciler:
    """Reconcile the local cache with the chat API and pushed frames."""

    def __init__(self, http: httpx.AsyncClient, cache: LocalChatCache, api_prefix: str = "/api") -> None:
        self._http = http
        self._cache = cache
        self._prefix = api_prefix.rstrip("/")
        self.view: Optional[ChatView] = None

    async def open_chat(self, name: Optional[str] = None, email: Optional[str] = None) -> ChatView:
        """
        Resume the cached chat if there is one, otherwise start a new one.

        Raises httpx errors only when a new chat has to be created and the
        server cannot be reached; the caller can offer a retry.
        """
        chat_id = self._cache.current_chat_id()
        if chat_id:
            try:
                response = await self._http.get(f"{self._prefix}/chats/{chat_id}")
            except httpx.TransportError as e:
                cached = self._cache.load(chat_id)
                logger.info(f"Chat {chat_id} unreachable ({e}); using cached copy")
                self.view = ChatView(chat_id, cached or {"id": chat_id, "messages": []}, degraded=True)
                return self.view
            if response.status_code == httpx.codes.NOT_FOUND:
                self._cache.forget(chat_id)
            else:
                response.raise_for_status()
                return self._adopt(response.json())

        response = await self._http.post(
            f"{self._prefix}/chats",
            json={"name": name, "email": email},
        )
        response.raise_for_status()
        new_id = response.json()["id"]
        self._cache.set_current_chat_id(new_id)
        fetched = await self._http.get(f"{self._prefix}/chats/{new_id}")
        fetched.raise_for_status()
        return self._adopt(fetched.json())

    def _adopt(self, snapshot: dict[str, Any]) -> ChatView:
        """Server snapshot wins over anything cached."""
        chat_id = snapshot["id"]
        self._cache.save(chat_id, snapshot)
        self._cache.set_current_chat_id(chat_id)
        self.view = ChatView(chat_id, snapshot, degraded=False)
        return self.view

    def apply_frame(self, frame: dict[str, Any] | str) -> None:
        """Mirror a pushed frame into the view and the cache."""
        if isinstance(frame, str):
            try:
                frame = json.loads(frame)
            except ValueError:
                return
        if not isinstance(frame, dict) or self.view is None:
            return

        kind = frame.get("type")
        if kind == "init" and isinstance(frame.get("chat"), dict):
            if frame["chat"].get("id") == self.view.chat_id:
                self._adopt(frame["chat"])
            return
        if kind == "message" and isinstance(frame.get("message"), dict):
            self._append(frame["message"])
        elif kind == "assigned":
            self._patch(assignedAdmin=frame.get("assignedAdmin"))
        elif kind == "status" and frame.get("status") in ("open", "closed"):
            self._patch(status=frame["status"])
        elif kind == "deleted" and frame.get("chatId") == self.view.chat_id:
            self._cache.forget(self.view.chat_id)
            self.view = None

    async def send_message(self, text: str) -> dict[str, Any]:
        """Post a message over HTTP and mirror the acknowledged copy."""
        if self.view is None or not self.view.can_send:
            raise RuntimeError("No writable chat is open")
        response = await self._http.post(
            f"{self._prefix}/chats/{self.view.chat_id}/message",
            json={"text": text, "from": "user"},
        )
        response.raise_for_status()
        message = response.json()["message"]
        self._append(message)
        return message

    def _append(self, message: dict[str, Any]) -> None:
        # The HTTP ack and the broadcast both deliver our own messages
        messages = self.view.snapshot.setdefault("messages", [])
        seq = message.get("seq")
        if seq is not None and any(m.get("seq") == seq for m in messages):
            return
        messages.append(message)
        messages.sort(key=lambda m: m.get("seq") or 0)
        self._persist()

    def _patch(self, **fields: Any) -> None:
        self.view.snapshot.update(fields)
        self._persist()

    def _persist(self) -> None:
        if not self.view.degraded:
            self._cache.save(self.view.chat_id, self.view.snapshot)
