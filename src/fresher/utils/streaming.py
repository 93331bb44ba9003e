"""Incremental processing of the agent's stream-json stdout."""

import logging
from dataclasses import dataclass
from typing import IO, Any, Iterator, Optional

import click

from fresher.constants import (
    BASH_COMMAND_PREVIEW_CHARS,
    STREAM_CHUNK_SIZE,
    TOOL_RESULT_PREVIEW_CHARS,
)
from fresher.exceptions import EventParseError
from fresher.models.stream_event import (
    AssistantEvent,
    ContentBlockStartEvent,
    ResultEvent,
    StreamEvent,
    SystemEvent,
    TextBlock,
    ToolUseBlock,
    UnknownEvent,
    UserEvent,
    parse_event,
)

logger = logging.getLogger(__name__)


def _read_chunk(stream: IO[bytes], size: int) -> bytes:
    # read1 returns as soon as any data is available instead of filling the buffer
    read1 = getattr(stream, "read1", None)
    if read1 is not None:
        return read1(size)
    return stream.read(size)


def iter_lines(stream: IO[bytes], chunk_size: int = STREAM_CHUNK_SIZE) -> Iterator[str]:
    """Yield complete lines (without the newline) as soon as they arrive.

    A partial line is held back until its newline shows up; whatever is left
    when the stream closes is yielded as a final line.
    """
    # Only new chunks are split; the partial line is kept as a list of pieces
    pending: list[bytes] = []
    while True:
        chunk = _read_chunk(stream, chunk_size)
        if not chunk:
            break
        *complete, tail = chunk.split(b"\n")
        if complete:
            pending.append(complete[0])
            complete[0] = b"".join(pending)
            pending = []
            for raw in complete:
                yield raw.rstrip(b"\r").decode("utf-8", errors="replace")
        if tail:
            pending.append(tail)
    if pending:
        yield b"".join(pending).rstrip(b"\r").decode("utf-8", errors="replace")


def _preview(text: str, limit: int) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


class StreamHandler:
    """Renders human-readable projections of stream events to the terminal."""

    def __init__(
        self,
        show_tool_calls: bool = True,
        show_tool_results: bool = False,
        show_text: bool = True,
        verbose: bool = False,
    ) -> None:
        self.show_tool_calls = show_tool_calls
        self.show_tool_results = show_tool_results
        self.show_text = show_text
        self.verbose = verbose

    def handle_event(self, event: StreamEvent) -> None:
        if isinstance(event, SystemEvent):
            if self.verbose and event.subtype:
                click.echo(click.style(f"[system] {event.subtype}", dim=True))
        elif isinstance(event, AssistantEvent):
            for block in event.content:
                if isinstance(block, TextBlock):
                    if self.show_text and block.text:
                        click.echo(block.text)
                elif isinstance(block, ToolUseBlock):
                    if self.show_tool_calls:
                        self.print_tool_call(block.name, block.input)
        elif isinstance(event, UserEvent):
            if self.show_tool_results:
                for result in event.tool_results:
                    preview = _preview(result.content, TOOL_RESULT_PREVIEW_CHARS)
                    click.echo(f"  {click.style('→', dim=True)} {click.style(preview, dim=True)}")
        elif isinstance(event, ContentBlockStartEvent):
            if self.verbose and isinstance(event.content_block, ToolUseBlock):
                click.echo(
                    f"  {click.style('starting:', dim=True)} "
                    f"{click.style(event.content_block.name, fg='yellow')}"
                )
        elif isinstance(event, ResultEvent):
            if self.show_text and event.result:
                click.echo(f"\n{event.result}")
            if self.verbose:
                if event.duration_ms is not None:
                    click.echo(
                        f"\n{click.style('Duration:', dim=True)} "
                        f"{click.style(f'{event.duration_ms}ms', fg='cyan')}"
                    )
                if event.cost is not None:
                    click.echo(f"{click.style('Cost:', dim=True)} ${event.cost:.4f}")
                if event.num_turns is not None:
                    click.echo(f"{click.style('Turns:', dim=True)} {event.num_turns}")
        elif isinstance(event, UnknownEvent):
            if self.verbose:
                click.echo(click.style("[unknown event]", dim=True))

    def handle_raw(self, line: str) -> None:
        """Pass through a line that is not a stream event."""
        click.echo(line)

    def format_tool_call(self, name: str, tool_input: dict[str, Any]) -> str:
        def _with(label: str, value: Any, **style: Any) -> str:
            if isinstance(value, str):
                return f"{click.style(f'{label}:', bold=True, **style)} {value}"
            return click.style(label, bold=True, **style)

        if name == "Bash":
            command = tool_input.get("command")
            if isinstance(command, str):
                command = _preview(command, BASH_COMMAND_PREVIEW_CHARS)
            return _with("Bash", command, fg="blue")
        if name == "Read":
            return _with("Read", tool_input.get("file_path"), fg="green")
        if name in ("Write", "Edit"):
            return _with(name, tool_input.get("file_path"), fg="yellow")
        if name in ("Glob", "Grep"):
            return _with(name, tool_input.get("pattern"), fg="cyan")
        if name == "Task":
            return _with("Task", tool_input.get("description"), fg="magenta")
        if name == "TodoWrite":
            return click.style("TodoWrite", bold=True, fg="cyan")
        return click.style(name, bold=True)

    def print_tool_call(self, name: str, tool_input: dict[str, Any]) -> None:
        click.echo(f"  {click.style('→', dim=True)} {self.format_tool_call(name, tool_input)}")


@dataclass
class StreamSummary:
    """What the final ``result`` event reported, if there was one."""

    result_text: Optional[str] = None
    is_error: bool = False
    duration_ms: Optional[int] = None
    num_turns: Optional[int] = None
    cost_usd: Optional[float] = None
    lines_read: int = 0
    unparsed_lines: int = 0
    saw_result: bool = False


def process_stream(
    stream: IO[bytes],
    handler: StreamHandler,
    log_file: Optional[IO[str]] = None,
) -> StreamSummary:
    """Consume the stream to EOF, rendering events and logging every raw line."""
    summary = StreamSummary()

    for line in iter_lines(stream):
        summary.lines_read += 1
        if log_file is not None:
            log_file.write(line + "\n")
            log_file.flush()

        if not line.strip():
            continue

        try:
            event = parse_event(line.strip())
        except EventParseError as e:
            summary.unparsed_lines += 1
            logger.debug(f"{e}; passing line through: {line[:200]!r}")
            handler.handle_raw(line)
            continue

        handler.handle_event(event)

        if isinstance(event, ResultEvent):
            summary.saw_result = True
            summary.result_text = event.result
            summary.is_error = bool(event.is_error)
            summary.duration_ms = event.duration_ms
            summary.num_turns = event.num_turns
            summary.cost_usd = event.cost

    return summary
