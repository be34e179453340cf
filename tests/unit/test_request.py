from __future__ import annotations

import io

import pytest

from langdock.body import RequestBody
from langdock.core.config import ClientConfig
from langdock.exceptions import ConstructionError
from langdock.request import RequestDescription, build_request, join_url

###############################
#     Tests for join_url      #
###############################


@pytest.mark.parametrize(
    ("base_url", "path", "expected"),
    [
        ("https://api.langdock.com", "/knowledge/search", "https://api.langdock.com/knowledge/search"),
        ("https://api.langdock.com/", "/knowledge/search", "https://api.langdock.com/knowledge/search"),
        ("https://api.langdock.com", "knowledge/search", "https://api.langdock.com/knowledge/search"),
        ("http://localhost:8080/v1", "/knowledge", "http://localhost:8080/v1/knowledge"),
        ("https://api.langdock.com", "", "https://api.langdock.com"),
    ],
)
def test_join_url(base_url: str, path: str, expected: str) -> None:
    assert join_url(base_url, path) == expected


@pytest.mark.parametrize(
    ("base_url", "path"),
    [
        ("https://", "/knowledge"),
        ("ftp://files.example.com", "/knowledge"),
        ("https://api.langdock.com:notaport", "/knowledge"),
    ],
)
def test_join_url_invalid(base_url: str, path: str) -> None:
    with pytest.raises(ConstructionError, match=r"Invalid request URL"):
        join_url(base_url, path)


###################################
#     Tests for build_request     #
###################################


def test_build_request(config: ClientConfig) -> None:
    request = build_request(config, "/knowledge/folder/list", "get")

    assert request == RequestDescription(
        method="GET",
        url="https://api.test/knowledge/folder/list",
        headers={"Accept": "application/json", "Authorization": "Bearer test-key"},
    )


def test_build_request_merges_headers(config: ClientConfig) -> None:
    request = build_request(
        config, "/knowledge/search", "POST", b"{}", headers={"Content-Type": "application/json"}
    )

    assert request.headers == {
        "Accept": "application/json",
        "Authorization": "Bearer test-key",
        "Content-Type": "application/json",
    }


def test_build_request_caller_headers_take_precedence(config: ClientConfig) -> None:
    request = build_request(config, "/x", "GET", headers={"Accept": "text/plain"})

    assert request.headers["Accept"] == "text/plain"


def test_build_request_wraps_body(config: ClientConfig) -> None:
    request = build_request(config, "/x", "POST", b'{"query": "q"}')

    assert isinstance(request.body, RequestBody)
    assert request.body.open() == b'{"query": "q"}'


def test_build_request_does_not_read_body(config: ClientConfig) -> None:
    fileobj = io.BytesIO(b"content")

    build_request(config, "/x", "POST", fileobj)

    assert fileobj.tell() == 0


def test_build_request_one_shot_body_with_retries(config: ClientConfig) -> None:
    with pytest.raises(ConstructionError, match=r"one-shot streaming body") as exc_info:
        build_request(config, "/x", "POST", iter([b"chunk"]))

    assert exc_info.value.method == "POST"


def test_build_request_one_shot_body_single_attempt(config: ClientConfig) -> None:
    request = build_request(config.merge(max_retries=1), "/x", "POST", iter([b"chunk"]))

    assert not request.body.replayable


def test_build_request_unsupported_body(config: ClientConfig) -> None:
    with pytest.raises(ConstructionError, match=r"Unsupported body type") as exc_info:
        build_request(config, "/x", "POST", 3.14)

    assert isinstance(exc_info.value.__cause__, TypeError)


def test_build_request_invalid_url() -> None:
    config = ClientConfig(base_url="http://")

    with pytest.raises(ConstructionError):
        build_request(config, "/x", "GET")
