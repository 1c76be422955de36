"""
Startet den externen Agenten als Subprozess und verfolgt seine Ausgabe live.

Der Prompt wird ueber eine Datei uebergeben: entweder als Pfad in einem
Kommando-Argument (Platzhalter `{prompt_file}`) oder, ohne Platzhalter, als
stdin des Kindprozesses. Es wird keine Shell verwendet.

Ob ein Lauf erfolgreich war, haengt ausschliesslich vom Exit-Code ab; die
Ereignisse auf stdout dienen nur der Anzeige.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from tools.agent_events import EventRenderer, parse_event_line
from tools.run_log import console

PROMPT_PLACEHOLDER = "{prompt_file}"
STREAM_LIMIT = 16 * 1024 * 1024


class AgentProcessError(RuntimeError):
    """Basisklasse fuer fehlgeschlagene Agenten-Aufrufe."""


class ProcessSpawnError(AgentProcessError):
    pass


class ProcessExitError(AgentProcessError):
    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"Agent beendet mit Exit-Code {returncode}")


class ProcessTimeoutError(AgentProcessError):
    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Agent nach {timeout:.0f}s abgebrochen (Timeout)")


class ProcessOutputError(AgentProcessError):
    """Ausgabe des Agenten nicht lesbar (z. B. Zeile laenger als `STREAM_LIMIT`)."""


@dataclass
class AgentRun:
    returncode: int
    duration: float
    lines: int
    assistant_text: str


def build_command(command: Sequence[str], prompt_file: Path) -> tuple[List[str], bool]:
    """Setzt den Prompt-Pfad ein; liefert (argv, prompt_via_stdin)."""
    argv = [part.replace(PROMPT_PLACEHOLDER, str(prompt_file)) for part in command]
    via_stdin = not any(PROMPT_PLACEHOLDER in part for part in command)
    return argv, via_stdin


def _default_echo(line: str) -> None:
    console(line, tag="pi")


async def _pump_stdout(
    stream: asyncio.StreamReader, renderer: EventRenderer, echo: Callable[[str], None]
) -> int:
    count = 0
    while True:
        raw = await stream.readline()
        if not raw:
            break
        line = raw.decode("utf-8", errors="replace")
        if not line.strip():
            continue
        count += 1
        for text in renderer.feed(parse_event_line(line)):
            echo(text)
    for text in renderer.flush():
        echo(text)
    return count


async def _pump_stderr(stream: asyncio.StreamReader, echo: Callable[[str], None]) -> None:
    while True:
        raw = await stream.readline()
        if not raw:
            break
        line = raw.decode("utf-8", errors="replace").rstrip()
        if line:
            echo(line)


async def _terminate(proc: asyncio.subprocess.Process, *tasks: asyncio.Task) -> None:
    if proc.returncode is None:
        proc.kill()
    await proc.wait()
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def run_agent(
    prompt_file: Path,
    *,
    command: Sequence[str],
    timeout: float,
    cwd: Optional[Path] = None,
    echo: Callable[[str], None] = _default_echo,
) -> AgentRun:
    """
    Fuehrt den Agenten einmal aus.

    Raises:
        ProcessSpawnError: Programm nicht gefunden bzw. nicht ausfuehrbar.
        ProcessExitError: Exit-Code ungleich 0.
        ProcessTimeoutError: Laufzeit ueberschreitet `timeout`.
    """
    argv, via_stdin = build_command(command, prompt_file)
    if not argv:
        raise ProcessSpawnError("Kein Agenten-Kommando konfiguriert")
    stdin_handle = prompt_file.open("rb") if via_stdin else None
    started = time.monotonic()
    try:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=stdin_handle if stdin_handle is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd) if cwd else None,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            raise ProcessSpawnError(f"Agent '{argv[0]}' konnte nicht gestartet werden: {exc}") from exc
    finally:
        if stdin_handle is not None:
            stdin_handle.close()

    renderer = EventRenderer()
    assert proc.stdout is not None and proc.stderr is not None
    stdout_task = asyncio.create_task(_pump_stdout(proc.stdout, renderer, echo))
    stderr_task = asyncio.create_task(_pump_stderr(proc.stderr, echo))
    try:
        await asyncio.wait_for(
            asyncio.gather(stdout_task, stderr_task, proc.wait()), timeout=timeout
        )
    except asyncio.TimeoutError:
        await _terminate(proc, stdout_task, stderr_task)
        raise ProcessTimeoutError(timeout) from None
    except ValueError as exc:
        await _terminate(proc, stdout_task, stderr_task)
        raise ProcessOutputError(f"Agenten-Ausgabe nicht lesbar: {exc}") from exc

    duration = time.monotonic() - started
    if proc.returncode != 0:
        raise ProcessExitError(proc.returncode)
    return AgentRun(
        returncode=proc.returncode,
        duration=duration,
        lines=stdout_task.result(),
        assistant_text=renderer.assistant_text,
    )


__all__ = [
    "AgentProcessError",
    "AgentRun",
    "PROMPT_PLACEHOLDER",
    "ProcessExitError",
    "ProcessOutputError",
    "ProcessSpawnError",
    "ProcessTimeoutError",
    "build_command",
    "run_agent",
]
