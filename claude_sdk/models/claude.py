from typing import Annotated, Optional, List, Union, Literal, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

from claude_sdk.core.config import settings


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ImageType(str, Enum):
    JPEG = "image/jpeg"
    PNG = "image/png"
    GIF = "image/gif"
    WEBP = "image/webp"


class CacheControl(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["ephemeral"] = "ephemeral"


# Image sources
class Base64ImageSource(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["base64"] = "base64"
    media_type: ImageType = Field(..., description="MIME type of the image")
    data: str = Field(..., description="Base64 encoded image data")


class URLImageSource(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["url"] = "url"
    url: str = Field(..., description="URL of the image")


class FileImageSource(BaseModel):
    model_config = ConfigDict(frozen=True)
    type: Literal["file"] = "file"
    file_id: str = Field(..., description="ID returned by the Files API")


ImageSource = Annotated[
    Union[Base64ImageSource, URLImageSource, FileImageSource],
    Field(discriminator="type"),
]


# Content types
class TextContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["text"] = "text"
    text: str
    citations: Optional[List[Dict[str, Any]]] = None
    cache_control: Optional[CacheControl] = None


class ImageContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["image"] = "image"
    source: ImageSource
    cache_control: Optional[CacheControl] = None


class ThinkingContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: Optional[str] = None


class RedactedThinkingContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["redacted_thinking"] = "redacted_thinking"
    data: str


class ToolUseContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Dict[str, Any]
    cache_control: Optional[CacheControl] = None


class ToolResultContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: Optional[str | List[TextContent | ImageContent]] = None
    is_error: Optional[bool] = None


class ServerToolUseContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["server_tool_use"] = "server_tool_use"
    id: str
    name: str
    input: Dict[str, Any]


class WebSearchResult(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["web_search_result"] = "web_search_result"
    title: str
    url: str
    encrypted_content: str
    page_age: Optional[str] = None


class WebSearchToolResultContent(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["web_search_tool_result"] = "web_search_tool_result"
    tool_use_id: str
    content: List[WebSearchResult] | Dict[str, Any]


class SearchResultContent(BaseModel):
    """Search result block used for RAG with automatic citations."""

    model_config = ConfigDict(extra="allow", frozen=True)
    type: Literal["search_result"] = "search_result"
    source: str
    title: str
    content: List[TextContent]
    citations: Optional[Dict[str, Any]] = None
    cache_control: Optional[CacheControl] = None


ContentBlock = Annotated[
    Union[
        TextContent,
        ImageContent,
        ThinkingContent,
        RedactedThinkingContent,
        ToolUseContent,
        ToolResultContent,
        ServerToolUseContent,
        WebSearchToolResultContent,
        SearchResultContent,
    ],
    Field(discriminator="type"),
]


class InputMessage(BaseModel):
    model_config = ConfigDict(extra="allow")
    role: Role
    content: Union[str, List[ContentBlock]]

    @classmethod
    def user(cls, text: str) -> "InputMessage":
        return cls(role=Role.USER, content=[TextContent(text=text)])

    @classmethod
    def assistant(cls, text: str) -> "InputMessage":
        return cls(role=Role.ASSISTANT, content=[TextContent(text=text)])

    @classmethod
    def tool_result(
        cls, tool_use_id: str, content: str, is_error: Optional[bool] = None
    ) -> "InputMessage":
        return cls(
            role=Role.USER,
            content=[
                ToolResultContent(
                    tool_use_id=tool_use_id, content=content, is_error=is_error
                )
            ],
        )


class ThinkingOptions(BaseModel):
    model_config = ConfigDict(extra="allow")
    type: Literal["enabled", "disabled"] = "disabled"
    budget_tokens: Optional[int] = Field(default=None, ge=1024)


class ToolChoice(BaseModel):
    model_config = ConfigDict(extra="allow")
    type: Literal["auto", "any", "tool", "none"] = "auto"
    name: Optional[str] = None
    disable_parallel_tool_use: Optional[bool] = None


class Tool(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: str
    input_schema: Any
    description: Optional[str] = None
    cache_control: Optional[CacheControl] = None


class ServerToolUsage(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    web_search_requests: Optional[int] = None


class Usage(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    input_tokens: int
    output_tokens: int
    cache_creation_input_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None
    server_tool_use: Optional[ServerToolUsage] = None


StopReason = Literal[
    "end_turn",
    "max_tokens",
    "stop_sequence",
    "tool_use",
    "pause_turn",
    "refusal",
]


class MessagesAPIRequest(BaseModel):
    model_config = ConfigDict(extra="allow")
    model: str = Field(default_factory=lambda: settings.default_model)
    messages: List[InputMessage]
    max_tokens: int = Field(default_factory=lambda: settings.default_max_tokens, ge=1)
    system: Optional[str | List[TextContent]] = None
    temperature: Optional[float] = Field(default=None, ge=0, le=1)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    top_k: Optional[int] = Field(default=None, ge=0)
    stop_sequences: Optional[List[str]] = None
    stream: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None
    thinking: Optional[ThinkingOptions] = None
    tool_choice: Optional[ToolChoice] = None
    tools: Optional[List[Tool]] = None


class Message(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)
    id: str
    type: Literal["message"] = "message"
    role: Literal["assistant"] = "assistant"
    content: List[ContentBlock] = Field(default_factory=list)
    model: str
    stop_reason: Optional[StopReason] = None
    stop_sequence: Optional[str] = None
    usage: Optional[Usage] = None

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks."""
        return "".join(
            block.text for block in self.content if isinstance(block, TextContent)
        )

    @property
    def tool_uses(self) -> List[ToolUseContent]:
        return [block for block in self.content if isinstance(block, ToolUseContent)]


# Non-streaming responses share the message shape.
MessagesResponse = Message
