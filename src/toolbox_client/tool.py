"""Callable tools built from manifest schemas.

A ``ToolboxTool`` is immutable: binding parameters or registering auth
token getters always returns a new tool and leaves the original intact.
"""

from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Any, Optional

from shared.errors import ArgumentValidationError, AuthRequirementError, RebindError, ToolboxError
from shared.logging import get_logger
from shared.models import ParameterSchema, ToolSchema
from shared.schema import ParameterValidator, create_tool_schema
from toolbox_client.transport import Transport
from toolbox_client.utils import (
    AuthTokenGetter,
    BoundValue,
    HeaderValue,
    auth_token_header,
    identify_auth_requirements,
    resolve_headers,
    resolve_value,
)

logger = get_logger(__name__)


def _check_header_conflicts(
    tool_name: str,
    auth_sources: Iterable[str],
    client_headers: Mapping[str, HeaderValue]
) -> None:
    conflicts = sorted(
        auth_token_header(source)
        for source in auth_sources
        if auth_token_header(source) in client_headers
    )
    if conflicts:
        raise RebindError(
            f"Client header(s) `{', '.join(conflicts)}` already registered in tool `{tool_name}`."
        )


class ToolboxTool:
    """
    A remote tool ready to be invoked.

    Holds the transport, the parameter validator, bound parameter values,
    registered auth token getters and the auth requirements still left
    unsatisfied. Call it (or ``invoke`` it) with the tool's arguments.
    """

    def __init__(
        self,
        transport: Transport,
        name: str,
        description: str,
        params: Sequence[ParameterSchema],
        required_authn_params: Mapping[str, Sequence[str]],
        required_authz_tokens: Sequence[str],
        auth_token_getters: Mapping[str, AuthTokenGetter],
        bound_params: Mapping[str, BoundValue],
        client_headers: Mapping[str, HeaderValue]
    ) -> None:
        self._transport = transport
        self._name = name
        self._description = description
        # Every plain parameter, bound or not; auth parameters are excluded.
        self._all_params = tuple(p for p in params if not p.is_auth_param)
        self._required_authn_params = MappingProxyType(
            {k: tuple(v) for k, v in required_authn_params.items()}
        )
        self._required_authz_tokens = tuple(required_authz_tokens)
        self._auth_token_getters = MappingProxyType(dict(auth_token_getters))
        self._bound_params = MappingProxyType(dict(bound_params))
        self._client_headers = MappingProxyType(dict(client_headers))
        self._validator = ParameterValidator(self._all_params, tool_name=name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def params(self) -> list[ParameterSchema]:
        """Parameters the caller still has to supply, in declaration order."""
        return [p for p in self._all_params if p.name not in self._bound_params]

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema of the caller-supplied arguments."""
        return create_tool_schema(self.params)

    @property
    def bound_params(self) -> Mapping[str, BoundValue]:
        return self._bound_params

    @property
    def auth_token_getters(self) -> Mapping[str, AuthTokenGetter]:
        return self._auth_token_getters

    @property
    def required_authn_params(self) -> Mapping[str, tuple[str, ...]]:
        return self._required_authn_params

    @property
    def required_authz_tokens(self) -> tuple[str, ...]:
        return self._required_authz_tokens

    @property
    def client_headers(self) -> Mapping[str, HeaderValue]:
        return self._client_headers

    def __repr__(self) -> str:
        return f"ToolboxTool(name={self._name!r}, params={[p.name for p in self.params]!r})"

    def _copy(
        self,
        required_authn_params: Optional[Mapping[str, Sequence[str]]] = None,
        required_authz_tokens: Optional[Sequence[str]] = None,
        auth_token_getters: Optional[Mapping[str, AuthTokenGetter]] = None,
        bound_params: Optional[Mapping[str, BoundValue]] = None
    ) -> "ToolboxTool":
        return ToolboxTool(
            transport=self._transport,
            name=self._name,
            description=self._description,
            params=self._all_params,
            required_authn_params=(
                self._required_authn_params if required_authn_params is None else required_authn_params
            ),
            required_authz_tokens=(
                self._required_authz_tokens if required_authz_tokens is None else required_authz_tokens
            ),
            auth_token_getters=self._auth_token_getters if auth_token_getters is None else auth_token_getters,
            bound_params=self._bound_params if bound_params is None else bound_params,
            client_headers=self._client_headers,
        )

    def _collect_arguments(self, args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> dict[str, Any]:
        params = self.params
        if len(args) > len(params):
            raise ArgumentValidationError(
                f"Tool '{self._name}' takes {len(params)} positional argument(s) "
                f"but {len(args)} were given"
            )

        arguments = {param.name: value for param, value in zip(params, args)}
        for key, value in kwargs.items():
            if key in self._bound_params:
                raise ArgumentValidationError(
                    f"Parameter '{key}' is bound in tool '{self._name}' and cannot be supplied"
                )
            if key in arguments:
                raise ArgumentValidationError(
                    f"Tool '{self._name}' got multiple values for argument '{key}'"
                )
            arguments[key] = value

        return arguments

    async def invoke(self, *args: Any, **kwargs: Any) -> str:
        """
        Invoke the tool.

        Positional arguments map onto ``params`` in order. Bound values
        are resolved and merged before validation.

        Returns:
            Result text returned by the server

        Raises:
            ArgumentValidationError: If the arguments fail validation
            AuthRequirementError: If invocation-level auth is unsatisfied
        """
        arguments = self._collect_arguments(args, kwargs)
        for name, value in self._bound_params.items():
            arguments[name] = await resolve_value(value)

        payload = self._validator.validate(arguments)

        if self._required_authz_tokens:
            raise AuthRequirementError(
                "One or more of the following authn services are required to invoke this tool: "
                + ",".join(self._required_authz_tokens)
            )

        headers = await resolve_headers(self._client_headers)
        for source, getter in self._auth_token_getters.items():
            headers[auth_token_header(source)] = await resolve_value(getter)

        try:
            return await self._transport.tool_invoke(self._name, payload, headers)
        except ToolboxError as e:
            logger.warning("Tool invocation failed", tool=self._name, error=str(e))
            raise

    async def __call__(self, *args: Any, **kwargs: Any) -> str:
        return await self.invoke(*args, **kwargs)

    def bind_params(self, bound_params: Mapping[str, BoundValue]) -> "ToolboxTool":
        """
        Return a new tool with additional parameters bound.

        Values may be literals or sync/async callables resolved at call time.

        Raises:
            RebindError: If a name is unknown or already bound
        """
        declared = {p.name for p in self._all_params}
        for name in bound_params:
            if name in self._bound_params:
                raise RebindError(
                    f"Cannot re-bind parameter: parameter '{name}' already bound in tool '{self._name}'."
                )
            if name not in declared:
                raise RebindError(
                    f"Unable to bind parameter: no parameter named '{name}' in tool '{self._name}'."
                )

        return self._copy(bound_params={**self._bound_params, **bound_params})

    def bind_param(self, name: str, value: BoundValue) -> "ToolboxTool":
        """Return a new tool with one additional parameter bound."""
        return self.bind_params({name: value})

    def add_auth_token_getters(self, auth_token_getters: Mapping[str, AuthTokenGetter]) -> "ToolboxTool":
        """
        Return a new tool with additional auth token getters registered.

        Raises:
            RebindError: If a source is already registered, clashes with a
                client header, or is not required by this tool
        """
        duplicates = sorted(set(auth_token_getters) & set(self._auth_token_getters))
        if duplicates:
            raise RebindError(
                f"Authentication source(s) `{', '.join(duplicates)}` already registered "
                f"in tool `{self._name}`."
            )

        _check_header_conflicts(self._name, auth_token_getters, self._client_headers)

        remaining_params, remaining_tokens, used = identify_auth_requirements(
            self._required_authn_params,
            self._required_authz_tokens,
            auth_token_getters.keys(),
        )
        unused = sorted(set(auth_token_getters) - used)
        if unused:
            raise RebindError(
                f"Authentication source(s) `{', '.join(unused)}` unused by tool `{self._name}`."
            )

        return self._copy(
            required_authn_params=remaining_params,
            required_authz_tokens=remaining_tokens,
            auth_token_getters={**self._auth_token_getters, **auth_token_getters},
        )

    def add_auth_token_getter(self, auth_source: str, get_token: AuthTokenGetter) -> "ToolboxTool":
        """Return a new tool with one additional auth token getter."""
        return self.add_auth_token_getters({auth_source: get_token})

    def to_dict(self) -> dict[str, Any]:
        """Plain-data description of the tool."""
        return {
            "name": self._name,
            "description": self._description,
            "parameters": [p.model_dump(mode="json", by_alias=True, exclude_none=True) for p in self.params],
            "bound_parameters": sorted(self._bound_params),
            "auth_sources": sorted(self._auth_token_getters),
            "required_authn_params": {k: list(v) for k, v in self._required_authn_params.items()},
            "required_authz_tokens": list(self._required_authz_tokens),
        }


def build_tool(
    transport: Transport,
    name: str,
    schema: ToolSchema,
    auth_token_getters: Mapping[str, AuthTokenGetter],
    bound_params: Mapping[str, BoundValue],
    client_headers: Mapping[str, HeaderValue]
) -> tuple[ToolboxTool, set[str], set[str]]:
    """
    Build a tool from its schema, keeping only what applies to it.

    Auth-tagged parameters go through the auth requirement resolver; plain
    parameters found in ``bound_params`` are bound. Only auth token getters
    the tool consumes are registered on it.

    Returns:
        Tuple of (tool, used auth sources, used bound parameter names)
    """
    params: list[ParameterSchema] = []
    authn_params: dict[str, list[str]] = {}
    tool_bound_params: dict[str, BoundValue] = {}
    used_bound_keys: set[str] = set()

    for param in schema.parameters:
        if param.is_auth_param:
            authn_params[param.name] = list(param.auth_sources)
            continue
        params.append(param)
        if param.name in bound_params:
            tool_bound_params[param.name] = bound_params[param.name]
            used_bound_keys.add(param.name)

    remaining_params, remaining_tokens, used_auth_keys = identify_auth_requirements(
        authn_params,
        schema.auth_required,
        auth_token_getters.keys(),
    )
    _check_header_conflicts(name, used_auth_keys, client_headers)

    tool = ToolboxTool(
        transport=transport,
        name=name,
        description=schema.description,
        params=params,
        required_authn_params=remaining_params,
        required_authz_tokens=remaining_tokens,
        auth_token_getters={k: v for k, v in auth_token_getters.items() if k in used_auth_keys},
        bound_params=tool_bound_params,
        client_headers=client_headers,
    )
    return tool, used_auth_keys, used_bound_keys
