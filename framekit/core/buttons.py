"""Button target URL codec.

Every ``post``/``post_redirect``/``tx`` button points back at this server. The
button that was clicked, and any state scoped to that click, is embedded in
the target URL itself so the next request can recover it without server-side
storage:

- ``__bi`` holds ``"{index}:{code}"`` where ``code`` is ``p`` (post) or
  ``pr`` (post_redirect);
- ``__bs`` holds the JSON encoded button state and is omitted without state.

Clients reject post targets longer than 256 bytes, so every generated URL goes
through :func:`assert_post_url_length` before it is rendered.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from framekit.core.errors import InvalidTokenUrlError, PostUrlTooLongError
from framekit.core.types import ButtonIndex, ButtonInformation, JsonValue, PostButtonAction

logger = logging.getLogger(__name__)

BUTTON_INFORMATION_SEARCH_PARAM_NAME = "__bi"
BUTTON_STATE_SEARCH_PARAM_NAME = "__bs"
RESERVED_SEARCH_PARAMS = frozenset(
    {BUTTON_INFORMATION_SEARCH_PARAM_NAME, BUTTON_STATE_SEARCH_PARAM_NAME}
)

MAX_POST_URL_BYTES = 256

_BUTTON_ACTION_TO_CODE: dict[str, str] = {"post": "p", "post_redirect": "pr"}
_CODE_TO_BUTTON_ACTION: dict[str, str] = {v: k for k, v in _BUTTON_ACTION_TO_CODE.items()}

_CAIP10_RE = re.compile(
    r"^(?P<namespace>[-a-z0-9]{3,8}):"
    r"(?P<chain_id>[-_a-zA-Z0-9]{1,32}):"
    r"(?P<address>[-.%a-zA-Z0-9]{1,128})"
    r"(?::(?P<token_id>[0-9]+))?$"
)


def _dump_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def is_absolute_url(value: str) -> bool:
    parts = urlsplit(value)
    return bool(parts.scheme and parts.netloc)


def join_paths(path_a: str, path_b: str) -> str:
    if path_b in ("", "/"):
        return path_a
    return re.sub(r"/{2,}", "/", f"{path_a}/{path_b}")


def resolve_base_url(request_url: str, base_url: str | None, base_path: str) -> str:
    """Return the URL relative targets resolve against.

    ``base_path`` is joined onto ``base_url`` when one is configured, otherwise
    it replaces the path of the current request URL.
    """
    if base_url:
        if base_path in ("", "/"):
            return base_url
        parts = urlsplit(base_url)
        return urlunsplit((parts.scheme, parts.netloc, join_paths(parts.path, base_path), "", ""))
    return urljoin(request_url, base_path or "/")


def generate_target_url(base_url: str, target: str | None) -> str:
    """Resolve ``target`` against ``base_url`` (absolute targets are kept)."""
    if not target:
        return base_url
    if is_absolute_url(target):
        return target
    parts = urlsplit(base_url)
    path, _, query = target.partition("?")
    return urlunsplit((parts.scheme, parts.netloc, join_paths(parts.path, path), query, ""))


def _without_button_params(query: str) -> list[tuple[str, str]]:
    return [
        (k, v)
        for k, v in parse_qsl(query, keep_blank_values=True)
        if k not in RESERVED_SEARCH_PARAMS
    ]


def strip_button_params(url: str) -> str:
    """Remove ``__bi``/``__bs`` from ``url``, keeping every other parameter."""
    parts = urlsplit(url)
    query = urlencode(_without_button_params(parts.query))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _with_button_params(url: str, button_information: str, state: JsonValue) -> str:
    parts = urlsplit(url)
    params = _without_button_params(parts.query)
    params.append((BUTTON_INFORMATION_SEARCH_PARAM_NAME, button_information))
    if state is not None:
        params.append((BUTTON_STATE_SEARCH_PARAM_NAME, _dump_json(state)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


def generate_post_button_target_url(
    *,
    button_index: ButtonIndex,
    button_action: PostButtonAction,
    current_url: str,
    base_path: str,
    target: str | None = None,
    state: JsonValue = None,
    base_url: str | None = None,
) -> str:
    """Build the fully qualified URL a post/post_redirect button submits to.

    Relative targets are resolved against ``base_url`` when given, keeping
    its path prefix. Otherwise they are resolved against ``base_path`` by
    joining path segments (empty segments dropped) and re-rooted on the
    origin of ``current_url``. Without a target the current URL is reused.
    """
    if button_action not in _BUTTON_ACTION_TO_CODE:
        raise ValueError(f"Unsupported post button action: {button_action!r}")
    if not 1 <= int(button_index) <= 4:
        raise ValueError(f"Button index must be between 1 and 4, got {button_index!r}")

    url = current_url
    if target:
        if is_absolute_url(target):
            url = target
        elif base_url:
            url = generate_target_url(base_url, target)
        else:
            base_pathname = urlsplit(urljoin(current_url, base_path or "/")).path
            path, _, query = f"{base_pathname}/{target}".partition("?")
            segments = [segment for segment in path.split("/") if segment]
            url = urljoin(current_url, "/" + "/".join(segments) + (f"?{query}" if query else ""))

    return _with_button_params(
        url, f"{button_index}:{_BUTTON_ACTION_TO_CODE[button_action]}", state
    )


def _first_search_param(url: str, name: str) -> str | None:
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        if key == name:
            return value
    return None


def parse_search_params(url: str) -> dict[str, str]:
    """Search params of ``url`` as a dict (first value wins)."""
    params: dict[str, str] = {}
    for key, value in parse_qsl(urlsplit(url).query, keep_blank_values=True):
        params.setdefault(key, value)
    return params


def parse_button_information_from_target_url(url: str) -> ButtonInformation | None:
    """Decode the clicked button from ``url``.

    Returns ``None`` when no button information is present or when it is
    malformed. Unparsable button state is dropped with a warning while the
    button identity is still returned.
    """
    raw = _first_search_param(url, BUTTON_INFORMATION_SEARCH_PARAM_NAME)
    if not raw:
        return None

    parts = raw.split(":")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None

    raw_index, action_code = parts
    try:
        index = int(raw_index)
    except ValueError:
        return None
    action = _CODE_TO_BUTTON_ACTION.get(action_code)
    if not 1 <= index <= 4 or action is None:
        return None

    state: JsonValue = None
    raw_state = _first_search_param(url, BUTTON_STATE_SEARCH_PARAM_NAME)
    if raw_state:
        try:
            state = json.loads(raw_state)
        except json.JSONDecodeError:
            logger.warning("Failed to parse button state from URL: %s", url)

    return ButtonInformation(index=index, action=action, state=state)  # type: ignore[arg-type]


def get_byte_length(value: str) -> int:
    return len(value.encode("utf-8"))


def assert_post_url_length(url: str, *, limit: int = MAX_POST_URL_BYTES) -> str:
    byte_length = get_byte_length(url)
    if byte_length > limit:
        logger.error(
            "post_url is too long: %d bytes, max is %d. Store less in button state "
            "or shorten the target. The generated post_url was: %s",
            byte_length,
            limit,
            url,
        )
        raise PostUrlTooLongError(url, byte_length, limit)
    return url


@dataclass(frozen=True, slots=True)
class TokenUrl:
    namespace: str
    chain_id: str
    address: str
    token_id: str | None = None


def get_token_url(
    *,
    address: str,
    chain_id: int | str,
    token_id: int | str | None = None,
    chain_namespace: str = "eip155",
) -> str:
    """Construct a CAIP-10 token URL, e.g. ``eip155:8453:0xabc...:1``."""
    if chain_id in (None, ""):
        raise InvalidTokenUrlError("Invalid chain id")
    url = f"{chain_namespace}:{chain_id}:{address}" if chain_namespace else f"{chain_id}:{address}"
    if token_id not in (None, ""):
        url = f"{url}:{token_id}"
    return url


def parse_token_url(url: str) -> TokenUrl:
    match = _CAIP10_RE.match(url or "")
    if not match:
        raise InvalidTokenUrlError(f"Invalid CAIP-10 token URL: {url!r}")
    return TokenUrl(
        namespace=match["namespace"],
        chain_id=match["chain_id"],
        address=match["address"],
        token_id=match["token_id"],
    )


__all__ = [
    "BUTTON_INFORMATION_SEARCH_PARAM_NAME",
    "BUTTON_STATE_SEARCH_PARAM_NAME",
    "MAX_POST_URL_BYTES",
    "RESERVED_SEARCH_PARAMS",
    "TokenUrl",
    "assert_post_url_length",
    "generate_post_button_target_url",
    "generate_target_url",
    "get_byte_length",
    "get_token_url",
    "is_absolute_url",
    "join_paths",
    "parse_button_information_from_target_url",
    "parse_search_params",
    "parse_token_url",
    "resolve_base_url",
    "strip_button_params",
]
