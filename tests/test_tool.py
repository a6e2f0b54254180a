"""Tests for tool building, binding and invocation."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.errors import (
    ArgumentValidationError,
    AuthRequirementError,
    RebindError,
    RpcError,
)
from shared.models import ToolSchema
from toolbox_client.tool import ToolboxTool, build_tool
from toolbox_client.transport import Transport


def make_schema(parameters=None, auth_required=None, description="Test tool") -> ToolSchema:
    return ToolSchema.model_validate({
        "description": description,
        "parameters": parameters or [],
        "authRequired": auth_required or [],
    })


@pytest.fixture
def transport():
    transport = MagicMock(spec=Transport)
    transport.tool_invoke = AsyncMock(return_value="ok")
    return transport


@pytest.fixture
def schema():
    return make_schema([
        {"name": "query", "type": "string", "description": "Search query"},
        {"name": "limit", "type": "integer", "required": False},
        {"name": "user", "type": "string", "authSources": ["google"]},
    ])


def make_tool(transport, schema, auth_token_getters=None, bound_params=None, client_headers=None) -> ToolboxTool:
    tool, _, _ = build_tool(
        transport,
        "search",
        schema,
        auth_token_getters or {},
        bound_params or {},
        client_headers or {},
    )
    return tool


class TestBuildTool:
    """Tests for building tools from schemas."""

    def test_partitions_parameters(self, transport, schema):
        """Test that auth parameters are kept out of the user-facing params."""
        tool = make_tool(transport, schema)

        assert tool.name == "search"
        assert tool.description == "Test tool"
        assert [p.name for p in tool.params] == ["query", "limit"]
        assert tool.required_authn_params == {"user": ("google",)}
        assert tool.required_authz_tokens == ()

    def test_reports_used_keys(self, transport, schema):
        """Test that only applicable getters and bindings are consumed."""
        google = lambda: "token"
        tool, used_auth, used_bound = build_tool(
            transport,
            "search",
            schema,
            {"google": google, "github": lambda: "other"},
            {"limit": 5, "unknown": 1},
            {},
        )

        assert used_auth == {"google"}
        assert used_bound == {"limit"}
        assert dict(tool.auth_token_getters) == {"google": google}
        assert dict(tool.bound_params) == {"limit": 5}
        assert tool.required_authn_params == {}
        assert [p.name for p in tool.params] == ["query"]

    def test_auth_params_not_bindable(self, transport, schema):
        """Test that auth-tagged parameters are never bound."""
        _, _, used_bound = build_tool(transport, "search", schema, {}, {"user": "me"}, {})
        assert used_bound == set()

    def test_client_header_conflict(self, transport, schema):
        """Test that a token header may not shadow a client header."""
        with pytest.raises(RebindError, match="google_token"):
            make_tool(
                transport,
                schema,
                auth_token_getters={"google": lambda: "t"},
                client_headers={"google_token": "static"},
            )

    def test_to_dict(self, transport, schema):
        """Test the plain-data description."""
        data = make_tool(transport, schema, bound_params={"limit": 3}).to_dict()

        assert data["name"] == "search"
        assert [p["name"] for p in data["parameters"]] == ["query"]
        assert data["bound_parameters"] == ["limit"]
        assert data["required_authn_params"] == {"user": ["google"]}


class TestInvoke:
    """Tests for invoking tools."""

    @pytest.mark.asyncio
    async def test_invoke_with_keywords(self, transport, schema):
        """Test invoking with keyword arguments."""
        tool = make_tool(transport, schema)

        result = await tool(query="cats", limit=2)

        assert result == "ok"
        transport.tool_invoke.assert_awaited_once_with("search", {"query": "cats", "limit": 2}, {})

    @pytest.mark.asyncio
    async def test_invoke_with_positional(self, transport, schema):
        """Test that positional arguments map onto params in order."""
        tool = make_tool(transport, schema)

        await tool.invoke("cats", 3)

        transport.tool_invoke.assert_awaited_once_with("search", {"query": "cats", "limit": 3}, {})

    @pytest.mark.asyncio
    async def test_too_many_positional(self, transport, schema):
        """Test that surplus positional arguments are rejected."""
        tool = make_tool(transport, schema)

        with pytest.raises(ArgumentValidationError, match="positional"):
            await tool("cats", 3, "extra")
        transport.tool_invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validation_before_network(self, transport, schema):
        """Test that invalid arguments never reach the transport."""
        tool = make_tool(transport, schema)

        with pytest.raises(ArgumentValidationError) as exc_info:
            await tool(limit="many")

        assert exc_info.value.errors == [
            "limit: Expected integer, received string",
            "query: Required",
        ]
        transport.tool_invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_keys_stripped(self, transport, schema):
        """Test that undeclared arguments are dropped from the payload."""
        tool = make_tool(transport, schema)

        await tool(query="cats", color="red")

        transport.tool_invoke.assert_awaited_once_with("search", {"query": "cats"}, {})

    @pytest.mark.asyncio
    async def test_bound_values_resolved(self, transport, schema):
        """Test that literal, sync and async bound values are resolved per call."""
        async def limit():
            return 7

        tool = make_tool(transport, schema).bind_params({"query": lambda: "dogs", "limit": limit})

        await tool()

        transport.tool_invoke.assert_awaited_once_with("search", {"query": "dogs", "limit": 7}, {})

    @pytest.mark.asyncio
    async def test_bound_parameter_cannot_be_supplied(self, transport, schema):
        """Test that a bound parameter cannot be overridden at call time."""
        tool = make_tool(transport, schema).bind_param("query", "dogs")

        with pytest.raises(ArgumentValidationError, match="bound"):
            await tool(query="cats")

    @pytest.mark.asyncio
    async def test_authz_fail_fast(self, transport):
        """Test that unsatisfied invocation auth fails before the network."""
        tool = make_tool(transport, make_schema(auth_required=["google", "okta"]))

        with pytest.raises(AuthRequirementError) as exc_info:
            await tool()

        assert str(exc_info.value) == (
            "One or more of the following authn services are required to invoke this tool: google,okta"
        )
        assert isinstance(exc_info.value, PermissionError)
        transport.tool_invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_auth_and_client_headers(self, transport):
        """Test that client headers and auth tokens are sent together."""
        async def get_token():
            return "secret"

        tool = make_tool(
            transport,
            make_schema(auth_required=["google"]),
            auth_token_getters={"google": get_token},
            client_headers={"X-Trace": lambda: "abc"},
        )

        await tool()

        transport.tool_invoke.assert_awaited_once_with(
            "search", {}, {"X-Trace": "abc", "google_token": "secret"}
        )

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self, transport, schema):
        """Test that transport failures reach the caller unchanged."""
        error = RpcError("MCP request failed with code -32000: boom", code=-32000)
        transport.tool_invoke.side_effect = error
        tool = make_tool(transport, schema)

        with pytest.raises(RpcError) as exc_info:
            await tool(query="cats")

        assert exc_info.value is error


class TestBinding:
    """Tests for parameter binding."""

    def test_bind_returns_new_tool(self, transport, schema):
        """Test that binding leaves the original tool untouched."""
        tool = make_tool(transport, schema)
        bound = tool.bind_param("limit", 10)

        assert bound is not tool
        assert dict(bound.bound_params) == {"limit": 10}
        assert dict(tool.bound_params) == {}
        assert [p.name for p in bound.params] == ["query"]
        assert [p.name for p in tool.params] == ["query", "limit"]

    def test_rebind_fails(self, transport, schema):
        """Test that an already bound parameter cannot be bound again."""
        tool = make_tool(transport, schema).bind_param("limit", 10)

        with pytest.raises(RebindError, match="already bound in tool 'search'"):
            tool.bind_param("limit", 20)

    def test_bind_unknown_fails(self, transport, schema):
        """Test that binding an unknown parameter fails."""
        tool = make_tool(transport, schema)

        with pytest.raises(RebindError, match="no parameter named 'color' in tool 'search'"):
            tool.bind_params({"color": "red"})

    def test_bound_params_read_only(self, transport, schema):
        """Test that the exposed bound parameters cannot be mutated."""
        tool = make_tool(transport, schema).bind_param("limit", 10)

        with pytest.raises(TypeError):
            tool.bound_params["limit"] = 20


class TestAddAuthTokenGetters:
    """Tests for registering auth token getters after loading."""

    def test_satisfies_requirements(self, transport, schema):
        """Test that a getter clears the matching requirement."""
        tool = make_tool(transport, schema)
        authed = tool.add_auth_token_getter("google", lambda: "t")

        assert authed is not tool
        assert authed.required_authn_params == {}
        assert tool.required_authn_params == {"user": ("google",)}
        assert set(authed.auth_token_getters) == {"google"}

    def test_duplicate_source(self, transport, schema):
        """Test that a source cannot be registered twice."""
        tool = make_tool(transport, schema, auth_token_getters={"google": lambda: "t"})

        with pytest.raises(RebindError, match="Authentication source\\(s\\) `google` already registered in tool `search`"):
            tool.add_auth_token_getter("google", lambda: "t2")

    def test_unused_source(self, transport, schema):
        """Test that a source the tool does not need is rejected."""
        tool = make_tool(transport, schema)

        with pytest.raises(RebindError, match="Authentication source\\(s\\) `github` unused by tool `search`"):
            tool.add_auth_token_getters({"github": lambda: "t"})

    def test_header_conflict(self, transport, schema):
        """Test that a token header may not shadow a client header."""
        tool = make_tool(transport, schema, client_headers={"google_token": "static"})

        with pytest.raises(RebindError, match="google_token"):
            tool.add_auth_token_getter("google", lambda: "t")

    @pytest.mark.asyncio
    async def test_clears_invocation_requirement(self, transport):
        """Test that an added getter unblocks invocation."""
        tool = make_tool(transport, make_schema(auth_required=["google"]))
        authed = tool.add_auth_token_getter("google", lambda: "secret")

        assert await authed() == "ok"
        transport.tool_invoke.assert_awaited_once_with("search", {}, {"google_token": "secret"})
