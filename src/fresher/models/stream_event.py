"""Events decoded from the agent's ``--output-format stream-json`` output.

Each stdout line is a JSON object whose ``type`` field selects the variant.
The set of variants is closed: any ``type`` fresher does not know about
becomes an ``UnknownEvent`` instead of failing the parse.
"""

import json
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fresher.exceptions import EventParseError


class _Event(BaseModel):
    model_config = ConfigDict(extra="allow")


# -----------------------------------------------------------------------------
# Content blocks
# -----------------------------------------------------------------------------


class TextBlock(_Event):
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(_Event):
    type: Literal["tool_use"] = "tool_use"
    id: str = ""
    name: str = ""
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(_Event):
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str = ""
    content: str = ""


class OtherBlock(_Event):
    type: str = "other"


ContentBlock = Union[TextBlock, ToolUseBlock, ToolResultBlock, OtherBlock]

_BLOCK_TYPES: dict[str, type[_Event]] = {
    "text": TextBlock,
    "tool_use": ToolUseBlock,
    "tool_result": ToolResultBlock,
}


def _flatten_tool_result_content(content: Any) -> str:
    """Tool results carry either a string or a list of text blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, dict) and isinstance(item.get("text"), str):
                parts.append(item["text"])
            elif isinstance(item, str):
                parts.append(item)
        return "\n".join(parts)
    if content is None:
        return ""
    return json.dumps(content)


def parse_content_block(raw: Any) -> ContentBlock:
    if not isinstance(raw, dict):
        return OtherBlock()
    block_type = raw.get("type")
    block_cls = _BLOCK_TYPES.get(block_type) if isinstance(block_type, str) else None
    if block_cls is None:
        return OtherBlock(type=block_type if isinstance(block_type, str) else "other")
    if block_cls is ToolResultBlock:
        raw = {**raw, "content": _flatten_tool_result_content(raw.get("content"))}
    try:
        return block_cls.model_validate(raw)
    except ValidationError:
        return OtherBlock(type=block_type)


def _parse_blocks(message: Any) -> list[ContentBlock]:
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if isinstance(content, str):
        return [TextBlock(text=content)]
    if not isinstance(content, list):
        return []
    return [parse_content_block(item) for item in content]


# -----------------------------------------------------------------------------
# Top-level events
# -----------------------------------------------------------------------------


class SystemEvent(_Event):
    type: Literal["system"] = "system"
    subtype: Optional[str] = None
    session_id: Optional[str] = None


class AssistantEvent(_Event):
    type: Literal["assistant"] = "assistant"
    content: list[ContentBlock] = Field(default_factory=list)

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [b for b in self.content if isinstance(b, TextBlock)]

    @property
    def tool_calls(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]


class UserEvent(_Event):
    type: Literal["user"] = "user"
    content: list[ContentBlock] = Field(default_factory=list)

    @property
    def tool_results(self) -> list[ToolResultBlock]:
        return [b for b in self.content if isinstance(b, ToolResultBlock)]


class ContentBlockStartEvent(_Event):
    type: Literal["content_block_start"] = "content_block_start"
    index: Optional[int] = None
    content_block: Optional[ContentBlock] = None


class ContentBlockDeltaEvent(_Event):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: Optional[int] = None
    delta: Optional[dict[str, Any]] = None


class ContentBlockStopEvent(_Event):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: Optional[int] = None


class ResultEvent(_Event):
    type: Literal["result"] = "result"
    subtype: Optional[str] = None
    is_error: Optional[bool] = None
    duration_ms: Optional[int] = None
    duration_api_ms: Optional[int] = None
    num_turns: Optional[int] = None
    result: Optional[str] = None
    cost_usd: Optional[float] = None
    total_cost_usd: Optional[float] = None
    session_id: Optional[str] = None

    @property
    def cost(self) -> Optional[float]:
        return self.cost_usd if self.cost_usd is not None else self.total_cost_usd


class UnknownEvent(_Event):
    type: Optional[str] = None


StreamEvent = Union[
    SystemEvent,
    AssistantEvent,
    UserEvent,
    ContentBlockStartEvent,
    ContentBlockDeltaEvent,
    ContentBlockStopEvent,
    ResultEvent,
    UnknownEvent,
]


def _unknown(data: dict[str, Any]) -> UnknownEvent:
    event_type = data.get("type")
    return UnknownEvent(type=event_type if isinstance(event_type, str) else None)


def _build_event(data: dict[str, Any]) -> StreamEvent:
    event_type = data.get("type")

    if event_type == "system":
        return SystemEvent.model_validate(data)
    if event_type == "assistant":
        return AssistantEvent(content=_parse_blocks(data.get("message")))
    if event_type == "user":
        return UserEvent(content=_parse_blocks(data.get("message")))
    if event_type == "content_block_start":
        block = data.get("content_block")
        return ContentBlockStartEvent(
            index=data.get("index"),
            content_block=parse_content_block(block) if block is not None else None,
        )
    if event_type == "content_block_delta":
        return ContentBlockDeltaEvent.model_validate(data)
    if event_type == "content_block_stop":
        return ContentBlockStopEvent.model_validate(data)
    if event_type == "result":
        return ResultEvent.model_validate(data)
    return _unknown(data)


def parse_event(line: str) -> StreamEvent:
    """Parse one stream line.

    Raises:
        EventParseError: the line is not a JSON object. Recognised JSON with
            an unexpected shape or an unknown ``type`` never raises; it falls
            back to ``UnknownEvent``.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise EventParseError(f"Failed to parse stream event: {e}") from e
    if not isinstance(data, dict):
        raise EventParseError("Stream event is not a JSON object")

    try:
        return _build_event(data)
    except ValidationError:
        return _unknown(data)
