"""Helpers shared by the client, tools and transports."""

import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Union

from shared.logging import get_logger

logger = get_logger(__name__)

# A literal value, or a sync/async callable producing it.
BoundValue = Union[Any, Callable[[], Any], Callable[[], Awaitable[Any]]]
AuthTokenGetter = Union[Callable[[], str], Callable[[], Awaitable[str]]]
HeaderValue = Union[str, Callable[[], str], Callable[[], Awaitable[str]]]


async def resolve_value(value: BoundValue) -> Any:
    """
    Resolve a bound value at call time.

    Callables are invoked and awaitables awaited; anything else is
    returned unchanged.
    """
    if callable(value):
        value = value()
    if inspect.isawaitable(value):
        value = await value
    return value


async def resolve_headers(headers: Mapping[str, HeaderValue]) -> dict[str, str]:
    """Resolve every static or dynamic header value."""
    return {name: await resolve_value(value) for name, value in headers.items()}


def auth_token_header(auth_source: str) -> str:
    """Header name carrying the token for an auth source."""
    return f"{auth_source}_token"


def identify_auth_requirements(
    req_authn_params: Mapping[str, Sequence[str]],
    req_authz_tokens: Sequence[str],
    auth_service_names: Iterable[str],
) -> tuple[dict[str, list[str]], list[str], set[str]]:
    """
    Match auth requirements against the auth sources the caller supplied.

    Any one supplied source satisfies a requirement. Parameter and
    invocation requirements share one ``used`` accumulator.

    Args:
        req_authn_params: Parameter name to the sources that can fill it
        req_authz_tokens: Sources accepted to invoke the tool at all
        auth_service_names: Sources the caller has token getters for

    Returns:
        Tuple of (unsatisfied parameter requirements, unsatisfied invocation
        requirements, supplied sources that were used)
    """
    available = set(auth_service_names)
    used: set[str] = set()

    remaining_params: dict[str, list[str]] = {}
    for param, sources in req_authn_params.items():
        if not sources:
            continue
        matched = available.intersection(sources)
        if matched:
            used.update(matched)
        else:
            remaining_params[param] = list(sources)

    remaining_tokens: list[str] = []
    if req_authz_tokens:
        matched = available.intersection(req_authz_tokens)
        if matched:
            used.update(matched)
        else:
            remaining_tokens = list(req_authz_tokens)

    return remaining_params, remaining_tokens, used


def warn_if_http_and_headers(url: str, headers: Mapping[str, Any]) -> None:
    """Warn when credentials are about to travel over plain HTTP."""
    if headers and url.startswith("http://"):
        logger.warning(
            "Sending data token over HTTP. User data may be exposed. "
            "Use HTTPS for secure communication.",
            url=url,
        )
