from __future__ import annotations

from typing import Dict, List, Optional
from pathlib import Path
from urllib.parse import urlparse
import socket
import uuid

import typer
from rich.console import Console
from rich.markdown import Markdown
import httpx

from .config import CONFIG
from .stream_state import StreamingMessage, StreamingToolCall, StreamState, stream_message


app = typer.Typer()
console = Console()
trace_console = Console(stderr=True)


def network_available(url: str) -> bool:
    """False when the orchestrator host cannot even be resolved."""
    host = urlparse(url).hostname or "localhost"
    try:
        socket.getaddrinfo(host, None)
    except OSError:
        return False
    return True


def print_tool(call: StreamingToolCall) -> None:
    if call.status == "executing":
        trace_console.print(f"[tool] {call.tool_name} {call.params}", style="dim")
    elif call.status == "complete":
        trace_console.print(f"[tool] {call.tool_name} -> ok", style="dim")
    else:
        trace_console.print(f"[tool] {call.tool_name} -> {call.error}", style="yellow")


def render(message: StreamingMessage, streamed: bool) -> None:
    if not streamed and message.content:
        console.print(Markdown(message.content))
    console.print()
    if message.tool_calls:
        names = ", ".join(c["toolName"] for c in message.tool_calls)
        trace_console.print(f"Used tools: {names}", style="dim")
    if message.error:
        trace_console.print(message.error.message, style="bold red")
        if message.error.details:
            trace_console.print(message.error.details, style="dim")


@app.command()
def cli(
    prompt_str: Optional[str] = typer.Option(
        None, "--prompt", help="A travel question to send to the orchestrator."
    ),
    language: str = typer.Option("en", "--language", "-l", help="Response language (en, de, fr, it)."),
    voice: bool = typer.Option(False, "--voice", help="Ask for short, speakable answers."),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Append answers to a Markdown file."
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Keep asking follow-ups in the same session."
    ),
) -> None:
    url = f"{CONFIG.orchestrator_url}/api/llm/stream"
    session_id = f"session-{uuid.uuid4()}"
    history: List[Dict[str, str]] = []

    def run_once(one_prompt: str) -> StreamingMessage:
        streamed = False

        def on_flush(text: str) -> None:
            nonlocal streamed
            streamed = True
            console.print(text, end="")

        state = StreamState(on_flush=on_flush, on_tool=print_tool)
        payload = {
            "message": one_prompt,
            "history": history,
            "context": {"language": language, "voiceEnabled": voice},
            "sessionId": session_id,
        }
        with httpx.Client() as client:
            message = stream_message(
                client, url, payload, state, online=lambda: network_available(CONFIG.orchestrator_url)
            )
        render(message, streamed)

        history.append({"role": "user", "content": one_prompt})
        history.append({"role": "assistant", "content": message.content})
        if output_file and message.content:
            try:
                output_file.parent.mkdir(parents=True, exist_ok=True)
                with output_file.open("a", encoding="utf-8") as f:
                    if f.tell() > 0:
                        f.write("\n\n---\n\n")
                    f.write(message.content)
            except OSError as e:
                trace_console.print(f"Failed to write file: {e}", style="bold red")
        return message

    initial_prompt = prompt_str
    if not initial_prompt and not interactive:
        try:
            initial_prompt = typer.prompt("Ask about Swiss travel (e.g., 'Trains from Zurich to Bern tomorrow at 9am')")
        except (EOFError, KeyboardInterrupt):
            raise typer.Exit(code=1)
        if not (initial_prompt and initial_prompt.strip()):
            console.print("No input provided.", style="bold red")
            raise typer.Exit(code=1)

    if initial_prompt:
        run_once(initial_prompt.strip())

    if interactive:
        while True:
            try:
                user_in = typer.prompt("Ask a follow-up (type 'exit' to quit)")
            except (EOFError, KeyboardInterrupt):
                break
            lower = user_in.strip().lower()
            if not lower:
                continue
            if lower in {"exit", "quit", "q"}:
                break
            run_once(user_in.strip())


if __name__ == "__main__":
    app()
