r"""Unit tests for synchronous retry executor."""

from __future__ import annotations

import io
import random
import threading
import time
from typing import TYPE_CHECKING
from unittest.mock import Mock

import httpx
import pytest

from langdock.backoff import ExponentialBackoff
from langdock.body import RequestBody
from langdock.cancel import CancelToken
from langdock.core.config import ClientConfig
from langdock.exceptions import (
    BodyNotReplayableError,
    Cancelled,
    ClientStatusError,
    ConstructionError,
    DeadlineExceeded,
    DecodeError,
    NetworkError,
    RateLimitError,
    ServerError,
    TransportError,
)
from langdock.request import RequestDescription, build_request
from langdock.retry import RetryExecutor
from tests.helpers import TEST_BASE_URL, ScriptedTransport

if TYPE_CHECKING:
    from collections.abc import Iterator

TEST_URL = f"{TEST_BASE_URL}/knowledge/search"


def _request(body: RequestBody | None = None) -> RequestDescription:
    return RequestDescription(
        method="POST", url=TEST_URL, headers={"Accept": "application/json"}, body=body
    )


def _executor(transport: ScriptedTransport, config: ClientConfig) -> RetryExecutor:
    return RetryExecutor(transport.client(), config)


def test_retry_executor_creation(config: ClientConfig) -> None:
    """Test RetryExecutor initialization."""
    client = httpx.Client()
    executor = RetryExecutor(client, config)

    assert executor.client is client
    assert executor.config is config
    assert executor.strategy.rng is config.rng
    assert executor.decider is not None
    assert executor.callbacks is not None


def test_retry_executor_successful_request(config: ClientConfig, mock_sleep: Mock) -> None:
    """Test successful request without retries."""
    transport = ScriptedTransport((200, {"status": "ok"}))

    result = _executor(transport, config).execute(_request(), into=dict)

    assert result == {"status": "ok"}
    assert transport.calls == 1
    mock_sleep.assert_not_called()


def test_retry_executor_without_destination_returns_none(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport((200, {"status": "ok"}))
    assert _executor(transport, config).execute(_request()) is None


def test_retry_executor_sends_headers(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport(204)
    request = build_request(config, "/knowledge/search", "POST", b"{}")

    _executor(transport, config).execute(request)

    sent = transport.requests[0]
    assert sent.method == "POST"
    assert str(sent.url) == TEST_URL
    assert sent.headers["Accept"] == "application/json"
    assert sent.headers["Authorization"] == "Bearer test-key"


def test_retry_executor_retry_on_server_error(config: ClientConfig, mock_sleep: Mock) -> None:
    """Test a 500 followed by a 200 decodes the second body only."""
    transport = ScriptedTransport((500, {"attempt": 1}), (200, {"attempt": 2}))

    result = _executor(transport, config).execute(_request(), max_retries=2, into=dict)

    assert result == {"attempt": 2}
    assert transport.calls == 2
    assert mock_sleep.call_count == 1


def test_retry_executor_server_error_body_is_never_decoded(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport((503, b"<html>not json</html>"), (200, {"ok": True}))

    result = _executor(transport, config).execute(_request(), into=dict)

    assert result == {"ok": True}


def test_retry_executor_rate_limited_on_every_attempt(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    """Test 429 on every attempt yields the rate-limit signal after 3
    attempts."""
    transport = ScriptedTransport(429)

    with pytest.raises(RateLimitError, match=r"Rate limit exceeded."):
        _executor(transport, config).execute(_request(), max_retries=3, into=dict)

    assert transport.calls == 3
    assert mock_sleep.call_count == 2


@pytest.mark.parametrize("max_retries", [1, 2, 5])
def test_retry_executor_never_exceeds_attempt_budget(
    config: ClientConfig, mock_sleep: Mock, max_retries: int
) -> None:
    transport = ScriptedTransport(httpx.ConnectError("connection refused"))

    with pytest.raises(NetworkError):
        _executor(transport, config).execute(_request(), max_retries=max_retries)

    assert transport.calls == max_retries
    assert mock_sleep.call_count == max_retries - 1


def test_retry_executor_uses_configured_max_retries(mock_sleep: Mock) -> None:
    config = ClientConfig(base_url=TEST_BASE_URL, max_retries=4)
    transport = ScriptedTransport(502)

    with pytest.raises(ServerError):
        _executor(transport, config).execute(_request())

    assert transport.calls == 4


def test_retry_executor_exhaustion_raises_last_cause(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    """Test the last transient cause is surfaced, not a generic error."""
    transport = ScriptedTransport(429, httpx.ReadTimeout("read timed out"), 502)

    with pytest.raises(ServerError) as exc_info:
        _executor(transport, config).execute(_request(), max_retries=3)

    assert exc_info.value.status_code == 502
    assert transport.calls == 3


def test_retry_executor_network_error_keeps_cause(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport(httpx.ConnectTimeout("timed out"))

    with pytest.raises(NetworkError) as exc_info:
        _executor(transport, config).execute(_request(), max_retries=2)

    assert isinstance(exc_info.value.__cause__, httpx.ConnectTimeout)
    assert exc_info.value.method == "POST"
    assert exc_info.value.url == TEST_URL


def test_retry_executor_recovers_after_network_error(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport(httpx.RemoteProtocolError("reset"), (200, [1, 2, 3]))

    assert _executor(transport, config).execute(_request(), into=list) == [1, 2, 3]
    assert transport.calls == 2


def test_retry_executor_non_network_error_is_fatal(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport(httpx.UnsupportedProtocol("unsupported"))

    with pytest.raises(TransportError) as exc_info:
        _executor(transport, config).execute(_request(), max_retries=3)

    assert isinstance(exc_info.value.__cause__, httpx.UnsupportedProtocol)
    assert transport.calls == 1
    mock_sleep.assert_not_called()


@pytest.mark.parametrize("status_code", [400, 401, 403, 404, 422])
def test_retry_executor_client_error_is_not_retried(
    config: ClientConfig, mock_sleep: Mock, status_code: int
) -> None:
    transport = ScriptedTransport(status_code)

    with pytest.raises(ClientStatusError) as exc_info:
        _executor(transport, config).execute(_request(), into=dict)

    assert exc_info.value.status_code == status_code
    assert exc_info.value.payload is None
    assert transport.calls == 1
    mock_sleep.assert_not_called()


def test_retry_executor_client_error_body_is_decoded(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport((404, {"status": "error", "message": "folder not found"}))

    with pytest.raises(ClientStatusError) as exc_info:
        _executor(transport, config).execute(_request(), into=dict)

    assert exc_info.value.payload == {"status": "error", "message": "folder not found"}
    assert exc_info.value.response.status_code == 404


def test_retry_executor_decode_failure_is_fatal(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport((200, b"{not json"), (200, {"ok": True}))

    with pytest.raises(DecodeError) as exc_info:
        _executor(transport, config).execute(_request(), into=dict)

    assert exc_info.value.status_code == 200
    assert exc_info.value.body == b"{not json"
    assert transport.calls == 1
    mock_sleep.assert_not_called()


def test_retry_executor_shape_failure_is_fatal(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport((200, {"unexpected": 1}))

    with pytest.raises(DecodeError) as exc_info:
        _executor(transport, config).execute(_request(), into=lambda data: data["result"])

    assert isinstance(exc_info.value.__cause__, KeyError)


def test_retry_executor_empty_body_is_not_decoded(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport(200)
    into = Mock()

    assert _executor(transport, config).execute(_request(), into=into) is None
    into.assert_not_called()


def test_retry_executor_replays_buffered_body(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport(500, 500, 200)
    body = RequestBody.from_bytes(b'{"query": "invoices"}')

    _executor(transport, config).execute(_request(body), max_retries=3)

    assert transport.bodies == [b'{"query": "invoices"}'] * 3


def test_retry_executor_replays_regenerated_body(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport(429, 200)
    factory = Mock(side_effect=lambda: io.BytesIO(b"payload" * 100_000))

    _executor(transport, config).execute(_request(RequestBody.from_factory(factory)))

    assert factory.call_count == 2
    assert transport.bodies[0] == transport.bodies[1] == b"payload" * 100_000


def test_retry_executor_replays_seekable_file(config: ClientConfig, mock_sleep: Mock) -> None:
    transport = ScriptedTransport(httpx.ReadError("reset"), 200)
    fileobj = io.BytesIO(b"header|file content")
    fileobj.seek(7)

    _executor(transport, config).execute(_request(RequestBody.from_file(fileobj)))

    assert transport.bodies == [b"file content", b"file content"]


def test_retry_executor_rejects_replay_of_one_shot_body(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport(503, 200)
    body = RequestBody.from_stream(iter([b"chunk-1", b"chunk-2"]))

    with pytest.raises(BodyNotReplayableError) as exc_info:
        _executor(transport, config).execute(_request(body), max_retries=3)

    assert isinstance(exc_info.value.__cause__, ServerError)
    assert transport.calls == 1
    assert transport.bodies == [b"chunk-1chunk-2"]


def test_retry_executor_one_shot_body_single_attempt(
    config: ClientConfig, mock_sleep: Mock
) -> None:
    transport = ScriptedTransport(200)
    body = RequestBody.from_stream(iter([b"chunk"]))

    _executor(transport, config).execute(_request(body), max_retries=1)

    assert transport.bodies == [b"chunk"]


def test_retry_executor_failing_factory() -> None:
    on_failure = Mock()
    config = ClientConfig(base_url=TEST_BASE_URL, on_failure=on_failure)
    transport = ScriptedTransport(200)
    body = RequestBody.from_factory(Mock(side_effect=OSError("disk gone")))

    with pytest.raises(ConstructionError, match=r"failed to read its body: OSError") as exc_info:
        _executor(transport, config).execute(_request(body))

    assert isinstance(exc_info.value.__cause__, OSError)
    assert transport.calls == 0
    on_failure.assert_called_once()
    assert on_failure.call_args.args[0].error is exc_info.value


def test_retry_executor_body_read_fails_while_streaming() -> None:
    def _chunks() -> Iterator[bytes]:
        yield b"chunk-1"
        msg = "read failed"
        raise OSError(msg)

    on_failure = Mock()
    config = ClientConfig(base_url=TEST_BASE_URL, on_failure=on_failure)
    transport = ScriptedTransport(200)

    with pytest.raises(ConstructionError) as exc_info:
        _executor(transport, config).execute(_request(RequestBody.from_factory(_chunks)))

    assert isinstance(exc_info.value.__cause__, OSError)
    assert transport.calls == 0
    on_failure.assert_called_once()
    assert on_failure.call_args.args[0].error is exc_info.value


def test_retry_executor_body_read_fails_with_token() -> None:
    on_failure = Mock()
    config = ClientConfig(base_url=TEST_BASE_URL, on_failure=on_failure)
    file_mock = Mock(spec=io.BufferedReader)
    file_mock.seekable.return_value = False
    file_mock.read.side_effect = OSError("read failed")

    with pytest.raises(ConstructionError):
        _executor(ScriptedTransport(200), config).execute(
            _request(RequestBody.from_file(file_mock)), cancel=CancelToken()
        )

    on_failure.assert_called_once()


def test_retry_executor_backoff_delays(mock_sleep: Mock) -> None:
    """Test the delays follow the jittered exponential schedule."""
    rng = Mock(spec=random.Random)
    rng.random.return_value = 0.5  # zero jitter
    config = ClientConfig(base_url=TEST_BASE_URL, rng=rng)
    transport = ScriptedTransport(500)

    with pytest.raises(ServerError):
        _executor(transport, config).execute(_request(), max_retries=8)

    delays = [call.args[0] for call in mock_sleep.call_args_list]
    assert delays == pytest.approx([0.1, 0.2, 0.4, 0.8, 1.6, 3.2, 5.0])


def test_retry_executor_custom_backoff_strategy(mock_sleep: Mock) -> None:
    rng = Mock(spec=random.Random)
    rng.random.return_value = 0.0  # lowest jitter: half of the base delay
    config = ClientConfig(
        base_url=TEST_BASE_URL,
        rng=rng,
        backoff_strategy=ExponentialBackoff(base_delay=1.0, max_delay=None),
    )
    transport = ScriptedTransport(500)

    with pytest.raises(ServerError):
        _executor(transport, config).execute(_request(), max_retries=3)

    assert [call.args[0] for call in mock_sleep.call_args_list] == [0.5, 1.0]


def test_retry_executor_cancel_during_backoff(config: ClientConfig) -> None:
    """Test cancelling during the wait aborts before attempt 2."""
    token = CancelToken()
    config = config.merge(
        backoff_strategy=ExponentialBackoff(base_delay=30.0),
        on_retry=lambda info: token.cancel(),
    )
    transport = ScriptedTransport(500, 200)

    start = time.monotonic()
    with pytest.raises(Cancelled):
        _executor(transport, config).execute(_request(), max_retries=3, cancel=token)

    assert time.monotonic() - start < 5.0
    assert transport.calls == 1


def test_retry_executor_cancel_from_other_thread(config: ClientConfig) -> None:
    token = CancelToken()
    config = config.merge(backoff_strategy=ExponentialBackoff(base_delay=30.0))
    transport = ScriptedTransport(429, 200)
    timer = threading.Timer(0.05, token.cancel)
    timer.start()
    try:
        with pytest.raises(Cancelled):
            _executor(transport, config).execute(_request(), max_retries=3, cancel=token)
    finally:
        timer.cancel()

    assert transport.calls == 1


def test_retry_executor_cancel_during_slow_send() -> None:
    on_failure = Mock()
    config = ClientConfig(base_url=TEST_BASE_URL, on_failure=on_failure)
    token = CancelToken()
    transport = ScriptedTransport(200, delay=2.0)
    timer = threading.Timer(0.1, token.cancel)
    timer.start()
    start = time.monotonic()
    try:
        with pytest.raises(Cancelled) as exc_info:
            _executor(transport, config).execute(_request(), cancel=token)
    finally:
        timer.cancel()

    assert time.monotonic() - start < 1.0
    assert exc_info.value is token.cause
    assert transport.calls == 0
    on_failure.assert_called_once()
    assert on_failure.call_args.args[0].error is token.cause


def test_retry_executor_deadline_during_slow_send(config: ClientConfig) -> None:
    transport = ScriptedTransport(200, delay=2.0)
    start = time.monotonic()

    with pytest.raises(DeadlineExceeded):
        _executor(transport, config).execute(_request(), cancel=CancelToken.with_timeout(0.1))

    assert time.monotonic() - start < 1.0


def test_retry_executor_send_with_token_returns_response(config: ClientConfig) -> None:
    transport = ScriptedTransport((200, {"status": "ok"}))

    result = _executor(transport, config).execute(_request(), into=dict, cancel=CancelToken())

    assert result == {"status": "ok"}
    assert transport.calls == 1


def test_retry_executor_close_shuts_down_send_pool(config: ClientConfig) -> None:
    executor = _executor(ScriptedTransport(200), config)
    executor.close()

    with pytest.raises(RuntimeError):
        executor.execute(_request(), cancel=CancelToken())


def test_retry_executor_cancel_cause_is_verbatim(config: ClientConfig) -> None:
    cause = RuntimeError("shutting down")
    token = CancelToken()
    config = config.merge(on_retry=lambda info: token.cancel(cause))
    transport = ScriptedTransport(500, 200)

    with pytest.raises(RuntimeError) as exc_info:
        _executor(transport, config).execute(_request(), cancel=token)

    assert exc_info.value is cause


def test_retry_executor_already_cancelled(config: ClientConfig) -> None:
    token = CancelToken()
    token.cancel()
    transport = ScriptedTransport(200)

    with pytest.raises(Cancelled):
        _executor(transport, config).execute(_request(), cancel=token)

    assert transport.calls == 0


def test_retry_executor_deadline_during_backoff(config: ClientConfig) -> None:
    token = CancelToken.with_timeout(0.05)
    config = config.merge(backoff_strategy=ExponentialBackoff(base_delay=30.0))
    transport = ScriptedTransport(500, 200)

    with pytest.raises(DeadlineExceeded):
        _executor(transport, config).execute(_request(), cancel=token)

    assert transport.calls == 1


def test_retry_executor_deadline_bounds_transport_timeout(config: ClientConfig) -> None:
    token = CancelToken.with_timeout(30.0)
    transport = ScriptedTransport(200)

    _executor(transport, config).execute(_request(), cancel=token)

    timeout = transport.requests[0].extensions["timeout"]
    assert 0 < timeout["read"] <= 5.0  # httpx default timeout is 5s
    assert timeout["connect"] <= 5.0


def test_retry_executor_invalid_max_retries(config: ClientConfig) -> None:
    transport = ScriptedTransport(200)

    with pytest.raises(ValueError, match=r"max_retries must be >= 1"):
        _executor(transport, config).execute(_request(), max_retries=0)

    assert transport.calls == 0


def test_retry_executor_callbacks(mock_sleep: Mock) -> None:
    on_request, on_retry, on_response, on_failure = Mock(), Mock(), Mock(), Mock()
    config = ClientConfig(
        base_url=TEST_BASE_URL,
        on_request=on_request,
        on_retry=on_retry,
        on_response=on_response,
        on_failure=on_failure,
    )
    transport = ScriptedTransport((500, b"oops"), (200, {"ok": True}))

    _executor(transport, config).execute(_request(), into=dict)

    assert [call.args[0].attempt for call in on_request.call_args_list] == [1, 2]
    on_retry.assert_called_once()
    assert on_retry.call_args.args[0].attempt == 2
    assert isinstance(on_retry.call_args.args[0].error, ServerError)
    assert [call.args[0].status_code for call in on_response.call_args_list] == [500, 200]
    assert on_response.call_args_list[0].args[0].body == b"oops"
    on_failure.assert_not_called()


def test_retry_executor_on_failure_when_exhausted(mock_sleep: Mock) -> None:
    on_failure = Mock()
    config = ClientConfig(base_url=TEST_BASE_URL, on_failure=on_failure)
    transport = ScriptedTransport(429)

    with pytest.raises(RateLimitError):
        _executor(transport, config).execute(_request(), max_retries=2)

    on_failure.assert_called_once()
    info = on_failure.call_args.args[0]
    assert info.attempt == 2
    assert info.max_retries == 2
    assert isinstance(info.error, RateLimitError)
