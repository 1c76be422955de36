"""
Tests for agent event parsing and rendering.
"""

import json

from tools.agent_events import AgentEventKind, EventRenderer, parse_event_line, render_events


def _line(**payload):
    return json.dumps(payload)


def _update(text, role="assistant"):
    return parse_event_line(
        _line(type="message_update", message={"role": role, "content": [{"type": "text", "text": text}]})
    )


def _delta(delta):
    return parse_event_line(
        _line(type="message_update", assistantMessageEvent={"type": "text_delta", "delta": delta})
    )


class TestParseEventLine:
    def test_known_event(self):
        event = parse_event_line(_line(type="agent_start") + "\n")

        assert event.kind is AgentEventKind.AGENT_START
        assert event.payload == {"type": "agent_start"}

    def test_plain_text_falls_back(self):
        event = parse_event_line("Lade Datei ...\n")

        assert event.kind is AgentEventKind.TEXT
        assert event.raw == "Lade Datei ..."

    def test_unknown_type_is_text(self):
        event = parse_event_line(_line(type="something_else"))

        assert event.kind is AgentEventKind.TEXT

    def test_json_without_object_is_text(self):
        assert parse_event_line("[1, 2]").kind is AgentEventKind.TEXT
        assert parse_event_line("42").kind is AgentEventKind.TEXT


class TestEventRenderer:
    def test_full_message_updates_surface_only_new_text(self):
        renderer = EventRenderer()
        renderer.feed(parse_event_line(_line(type="message_start", message={"role": "assistant"})))

        first = renderer.feed(_update("Ich lese "))
        second = renderer.feed(_update("Ich lese die Datei.\nDann "))
        third = renderer.feed(_update("Ich lese die Datei.\nDann schreibe ich.\n"))

        assert first == []
        assert second == ["Ich lese die Datei."]
        assert third == ["Dann schreibe ich."]
        assert renderer.assistant_text == "Ich lese die Datei.\nDann schreibe ich.\n"

    def test_text_deltas_accumulate(self):
        renderer = EventRenderer()

        lines = []
        for chunk in ["Hal", "lo\nWe", "lt"]:
            lines.extend(renderer.feed(_delta(chunk)))
        lines.extend(renderer.feed(parse_event_line(_line(type="message_end"))))

        assert lines == ["Hallo", "Welt"]
        assert renderer.assistant_text == "Hallo\nWelt"

    def test_message_start_resets_assistant_text(self):
        renderer = EventRenderer()
        renderer.feed(_update("Erste Nachricht\n"))
        renderer.feed(parse_event_line(_line(type="message_start", message={"role": "assistant"})))

        assert renderer.assistant_text == ""
        assert renderer.feed(_update("Zweite\n")) == ["Zweite"]

    def test_user_messages_are_not_rendered(self):
        renderer = EventRenderer()

        assert renderer.feed(_update("Prompt-Text\n", role="user")) == []
        assert renderer.assistant_text == ""

    def test_tool_events(self):
        renderer = EventRenderer()

        start = renderer.feed(
            parse_event_line(_line(type="tool_execution_start", toolName="write", args={"path": "/tmp/out.json"}))
        )
        end = renderer.feed(parse_event_line(_line(type="tool_execution_end", toolName="write", isError=True)))

        assert start == ['> write {"path": "/tmp/out.json"}']
        assert end == ["< write fehlgeschlagen"]

    def test_long_tool_args_are_truncated(self):
        renderer = EventRenderer()

        (line,) = renderer.feed(
            parse_event_line(_line(type="tool_execution_start", toolName="bash", args={"command": "x" * 500}))
        )

        assert len(line) < 140
        assert line.endswith("...")

    def test_turns_are_counted(self):
        lines = render_events(
            [
                parse_event_line(_line(type="agent_start")),
                parse_event_line(_line(type="turn_start")),
                parse_event_line(_line(type="turn_end")),
                parse_event_line(_line(type="turn_start")),
                parse_event_line(_line(type="agent_end")),
            ]
        )

        assert lines == ["Agent gestartet", "--- Runde 1 ---", "--- Runde 2 ---", "Agent beendet"]

    def test_render_events_flushes_partial_line(self):
        lines = render_events([_delta("ohne Zeilenende")])

        assert lines == ["ohne Zeilenende"]

    def test_plain_text_passes_through(self):
        assert render_events([parse_event_line("Warnung: langsam")]) == ["Warnung: langsam"]
