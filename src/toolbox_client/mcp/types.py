"""JSON-RPC 2.0 envelopes and MCP payload models."""

from typing import Any, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

ResultT = TypeVar("ResultT", bound=BaseModel)


class JSONRPCRequest(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: Union[str, int]
    method: str
    params: Optional[dict[str, Any]] = None


class JSONRPCNotification(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[dict[str, Any]] = None


class JSONRPCResponse(BaseModel):
    jsonrpc: Literal["2.0"]
    id: Union[str, int]
    result: dict[str, Any]


class ErrorData(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCError(BaseModel):
    jsonrpc: Literal["2.0"]
    id: Union[str, int, None] = None
    error: ErrorData


class Implementation(BaseModel):
    name: str
    version: str


class InitializeRequestParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: dict[str, Any] = Field(default_factory=dict)
    client_info: Implementation = Field(alias="clientInfo")


class ServerCapabilities(BaseModel):
    model_config = ConfigDict(extra="allow")

    prompts: Optional[dict[str, Any]] = None
    tools: Optional[dict[str, Any]] = None


class InitializeResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    protocol_version: str = Field(alias="protocolVersion")
    capabilities: ServerCapabilities
    server_info: Implementation = Field(alias="serverInfo")
    instructions: Optional[str] = None


class Tool(BaseModel):
    """A tool as described by ``tools/list``."""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: Optional[str] = None
    input_schema: dict[str, Any] = Field(default_factory=dict, alias="inputSchema")
    meta: Optional[dict[str, Any]] = Field(default=None, alias="_meta")


class ListToolsResult(BaseModel):
    tools: list[Tool]


class CallToolRequestParams(BaseModel):
    name: str
    arguments: dict[str, Any]


class CallToolResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Chunks stay raw; only text chunks are kept when reassembling.
    content: list[dict[str, Any]]
    is_error: bool = Field(default=False, alias="isError")


class MCPRequest(BaseModel, Generic[ResultT]):
    """A request method paired with the model of its result."""
    method: str
    result_model: type[ResultT]


class MCPNotification(BaseModel):
    method: str


InitializeRequest = MCPRequest[InitializeResult](method="initialize", result_model=InitializeResult)
InitializedNotification = MCPNotification(method="notifications/initialized")
ListToolsRequest = MCPRequest[ListToolsResult](method="tools/list", result_model=ListToolsResult)
CallToolRequest = MCPRequest[CallToolResult](method="tools/call", result_model=CallToolResult)
