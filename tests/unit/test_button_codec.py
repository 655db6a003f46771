import logging
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit

import pytest

from framekit.core.buttons import (
    MAX_POST_URL_BYTES,
    assert_post_url_length,
    generate_post_button_target_url,
    generate_target_url,
    get_token_url,
    parse_button_information_from_target_url,
    parse_token_url,
    resolve_base_url,
    strip_button_params,
)
from framekit.core.errors import InvalidTokenUrlError, PostUrlTooLongError
from framekit.core.types import ButtonInformation


@pytest.mark.unit
@pytest.mark.parametrize("index", [1, 2, 3, 4])
@pytest.mark.parametrize("action", ["post", "post_redirect"])
@pytest.mark.parametrize("state", [None, {"count": 2, "name": "ünï"}, [1, "two", None]])
def test_button_information_round_trips(index, action, state):
    url = generate_post_button_target_url(
        button_index=index,
        button_action=action,
        current_url="https://example.com/frames",
        base_path="/",
        state=state,
    )

    assert parse_button_information_from_target_url(url) == ButtonInformation(
        index=index, action=action, state=state
    )


@pytest.mark.unit
def test_state_param_is_omitted_without_state():
    url = generate_post_button_target_url(
        button_index=1,
        button_action="post",
        current_url="https://example.com/frames",
        base_path="/",
    )

    params = parse_qs(urlsplit(url).query)
    assert params == {"__bi": ["1:p"]}


@pytest.mark.unit
def test_relative_target_is_resolved_against_base_path():
    url = generate_post_button_target_url(
        button_index=2,
        button_action="post_redirect",
        current_url="https://example.com/frames?__bi=1:p",
        base_path="/frames/",
        target="//next?foo=bar",
    )

    parts = urlsplit(url)
    assert (parts.scheme, parts.netloc, parts.path) == ("https", "example.com", "/frames/next")
    assert parse_qsl(parts.query) == [("foo", "bar"), ("__bi", "2:pr")]


@pytest.mark.unit
def test_absolute_target_is_kept():
    url = generate_post_button_target_url(
        button_index=1,
        button_action="post",
        current_url="https://example.com/frames",
        base_path="/",
        target="https://other.example.org/api",
    )

    assert url == "https://other.example.org/api?__bi=1%3Ap"


@pytest.mark.unit
def test_without_target_current_url_is_reused_and_stale_params_replaced():
    url = generate_post_button_target_url(
        button_index=3,
        button_action="post",
        current_url="https://example.com/frames?page=2&__bi=1:p&__bs=%7B%7D",
        base_path="/",
    )

    parts = urlsplit(url)
    assert parts.path == "/frames"
    assert parse_qsl(parts.query) == [("page", "2"), ("__bi", "3:p")]


@pytest.mark.unit
@pytest.mark.parametrize("kwargs", [{"button_index": 5}, {"button_action": "link"}])
def test_encoding_rejects_invalid_button(kwargs):
    params = {
        "button_index": 1,
        "button_action": "post",
        "current_url": "https://example.com",
        "base_path": "/",
        **kwargs,
    }
    with pytest.raises(ValueError):
        generate_post_button_target_url(**params)


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["0:p", "5:p", "1:x", "1:p:extra", "abc:p", ":p", "1:", ""])
def test_malformed_button_information_is_absent(raw):
    url = "https://example.com/frames?" + urlencode({"__bi": raw})

    assert parse_button_information_from_target_url(url) is None


@pytest.mark.unit
def test_missing_button_information_is_absent():
    assert parse_button_information_from_target_url("https://example.com/frames?a=1") is None


@pytest.mark.unit
def test_unparsable_state_is_dropped_with_warning(caplog):
    url = "https://example.com/frames?" + urlencode({"__bi": "2:p", "__bs": "{not json"})

    with caplog.at_level(logging.WARNING, logger="framekit.core.buttons"):
        info = parse_button_information_from_target_url(url)

    assert info == ButtonInformation(index=2, action="post", state=None)
    assert "Failed to parse button state" in caplog.text


@pytest.mark.unit
def test_post_url_of_exactly_limit_bytes_passes():
    base = "https://example.com/"
    url = base + "a" * (MAX_POST_URL_BYTES - len(base))
    assert len(url.encode("utf-8")) == 256

    assert assert_post_url_length(url) == url


@pytest.mark.unit
def test_post_url_over_limit_raises_and_logs_url(caplog):
    base = "https://example.com/"
    url = base + "a" * (MAX_POST_URL_BYTES - len(base) + 1)

    with caplog.at_level(logging.ERROR, logger="framekit.core.buttons"):
        with pytest.raises(PostUrlTooLongError) as exc_info:
            assert_post_url_length(url)

    assert exc_info.value.byte_length == 257
    assert url in caplog.text


@pytest.mark.unit
def test_post_url_limit_counts_utf8_bytes():
    base = "https://example.com/"
    # each "é" is two bytes
    url = base + "é" * 119
    assert len(url) < 256 < len(url.encode("utf-8"))

    with pytest.raises(PostUrlTooLongError):
        assert_post_url_length(url)


@pytest.mark.unit
def test_strip_button_params_keeps_other_params():
    assert (
        strip_button_params("https://example.com/f?x=1&__bi=1%3Ap&__bs=2")
        == "https://example.com/f?x=1"
    )


@pytest.mark.unit
def test_resolve_base_url():
    assert resolve_base_url("https://example.com/a/b?x=1", None, "/frames") == "https://example.com/frames"
    assert resolve_base_url("http://internal/a", "https://public.example.com", "/") == "https://public.example.com"
    assert (
        resolve_base_url("http://internal/a", "https://public.example.com/app", "/frames")
        == "https://public.example.com/app/frames"
    )


@pytest.mark.unit
def test_generate_target_url():
    assert generate_target_url("https://example.com/frames", "/about") == "https://example.com/frames/about"
    assert generate_target_url("https://example.com/frames", None) == "https://example.com/frames"
    assert generate_target_url("https://example.com/frames", "https://x.org/y") == "https://x.org/y"


@pytest.mark.unit
def test_token_url_round_trip():
    url = get_token_url(address="0xabc123", chain_id=8453, token_id=7)

    assert url == "eip155:8453:0xabc123:7"
    token = parse_token_url(url)
    assert (token.namespace, token.chain_id, token.address, token.token_id) == (
        "eip155",
        "8453",
        "0xabc123",
        "7",
    )


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "https://example.com", "eip155:8453", "EIP155:1:0xabc"])
def test_invalid_token_url_raises(value):
    with pytest.raises(InvalidTokenUrlError):
        parse_token_url(value)


@pytest.mark.unit
def test_relative_target_resolves_under_base_url_prefix():
    url = generate_post_button_target_url(
        button_index=1,
        button_action="post",
        current_url="https://pub.example/app/frames?page=2",
        base_path="/frames",
        base_url="https://pub.example/app/frames",
        target="/next?step=3",
    )

    assert url == "https://pub.example/app/frames/next?step=3&__bi=1%3Ap"
