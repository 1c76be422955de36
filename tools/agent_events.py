"""
Ereignisprotokoll des externen Agenten (JSON-Lines auf stdout).

Jede Zeile wird zuerst als Ereignis mit `type`-Feld gelesen; alles andere gilt
als reine Textzeile. Der Renderer setzt die Ereignisfolge in Konsolenzeilen um
und hat keinen Einfluss auf Erfolg oder Misserfolg eines Laufs.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

TOOL_ARGS_PREVIEW = 120


class AgentEventKind(str, Enum):
    AGENT_START = "agent_start"
    AGENT_END = "agent_end"
    TURN_START = "turn_start"
    TURN_END = "turn_end"
    MESSAGE_START = "message_start"
    MESSAGE_UPDATE = "message_update"
    MESSAGE_END = "message_end"
    TOOL_EXECUTION_START = "tool_execution_start"
    TOOL_EXECUTION_END = "tool_execution_end"
    TEXT = "text"


_KNOWN_TYPES = {kind.value for kind in AgentEventKind if kind is not AgentEventKind.TEXT}


@dataclass
class AgentEvent:
    kind: AgentEventKind
    payload: Dict[str, Any] = field(default_factory=dict)
    raw: str = ""


def parse_event_line(line: str) -> AgentEvent:
    stripped = line.rstrip("\r\n")
    try:
        data = json.loads(stripped)
    except json.JSONDecodeError:
        return AgentEvent(AgentEventKind.TEXT, raw=stripped)
    if not isinstance(data, dict) or data.get("type") not in _KNOWN_TYPES:
        return AgentEvent(AgentEventKind.TEXT, raw=stripped)
    return AgentEvent(AgentEventKind(data["type"]), payload=data, raw=stripped)


def _message_role(payload: Dict[str, Any]) -> Optional[str]:
    message = payload.get("message")
    if isinstance(message, dict):
        role = message.get("role")
        return role if isinstance(role, str) else None
    return None


def _message_text(payload: Dict[str, Any]) -> Optional[str]:
    message = payload.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return None
    parts = [
        block.get("text", "")
        for block in content
        if isinstance(block, dict) and block.get("type") == "text" and isinstance(block.get("text"), str)
    ]
    return "".join(parts)


def _text_delta(payload: Dict[str, Any]) -> Optional[str]:
    update = payload.get("assistantMessageEvent")
    if isinstance(update, dict) and update.get("type") == "text_delta":
        delta = update.get("delta")
        if isinstance(delta, str):
            return delta
    return None


def _preview(value: Any, limit: int = TOOL_ARGS_PREVIEW) -> str:
    if value is None:
        return ""
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    text = " ".join(text.split())
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class EventRenderer:
    """Wandelt Agenten-Ereignisse in Anzeigezeilen um."""

    def __init__(self) -> None:
        self.assistant_text = ""
        self.turns = 0
        self._pending = ""

    def _surface(self, new_text: str) -> List[str]:
        self._pending += new_text
        if "\n" not in self._pending:
            return []
        *complete, self._pending = self._pending.split("\n")
        return [line for line in complete if line.strip()]

    def flush(self) -> List[str]:
        rest, self._pending = self._pending, ""
        return [rest] if rest.strip() else []

    def _update_assistant_text(self, payload: Dict[str, Any]) -> List[str]:
        role = _message_role(payload)
        if role is not None and role != "assistant":
            return []
        full = _message_text(payload)
        if full is not None and full.startswith(self.assistant_text):
            new_text = full[len(self.assistant_text):]
            self.assistant_text = full
            return self._surface(new_text)
        delta = _text_delta(payload)
        if delta:
            self.assistant_text += delta
            return self._surface(delta)
        return []

    def feed(self, event: AgentEvent) -> List[str]:
        kind = event.kind
        payload = event.payload
        if kind is AgentEventKind.TEXT:
            return [event.raw] if event.raw.strip() else []
        if kind is AgentEventKind.AGENT_START:
            return ["Agent gestartet"]
        if kind is AgentEventKind.AGENT_END:
            return self.flush() + ["Agent beendet"]
        if kind is AgentEventKind.TURN_START:
            self.turns += 1
            return [f"--- Runde {self.turns} ---"]
        if kind is AgentEventKind.TURN_END:
            return self.flush()
        if kind is AgentEventKind.MESSAGE_START:
            lines = self.flush()
            if _message_role(payload) in (None, "assistant"):
                self.assistant_text = ""
            return lines
        if kind is AgentEventKind.MESSAGE_UPDATE:
            return self._update_assistant_text(payload)
        if kind is AgentEventKind.MESSAGE_END:
            return self._update_assistant_text(payload) + self.flush()
        if kind is AgentEventKind.TOOL_EXECUTION_START:
            name = payload.get("toolName") or "tool"
            return self.flush() + [f"> {name} {_preview(payload.get('args'))}".rstrip()]
        if kind is AgentEventKind.TOOL_EXECUTION_END:
            name = payload.get("toolName") or "tool"
            status = "fehlgeschlagen" if payload.get("isError") else "fertig"
            return [f"< {name} {status}"]
        return []


def render_events(events: Iterable[AgentEvent]) -> List[str]:
    renderer = EventRenderer()
    lines: List[str] = []
    for event in events:
        lines.extend(renderer.feed(event))
    lines.extend(renderer.flush())
    return lines


__all__ = ["AgentEvent", "AgentEventKind", "EventRenderer", "parse_event_line", "render_events"]
