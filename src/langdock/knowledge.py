r"""Knowledge API services.

The services translate Knowledge API operations into request
descriptions and decode the responses into the dataclasses of
``langdock.models``. All failure handling happens in the client's
executor.
"""

from __future__ import annotations

__all__ = ["AsyncKnowledgeService", "KnowledgeService", "encode_multipart"]

import json
from typing import IO, TYPE_CHECKING, Any, NamedTuple
from urllib.parse import quote

import httpx

from langdock.models import FileResponse, ListFilesResponse, SearchResponse

if TYPE_CHECKING:
    import uuid
    from collections.abc import Callable, Mapping

    from langdock.cancel import CancelToken
    from langdock.client import Client
    from langdock.client_async import AsyncClient

# Only used to render multipart bodies; never contacted.
_MULTIPART_URL = "http://multipart.invalid/"


class _Call(NamedTuple):
    method: str
    path: str
    body: bytes | None = None
    headers: Mapping[str, str] | None = None
    into: Callable[[Any], Any] | None = None


def encode_multipart(
    file_name: str,
    content: bytes | IO[bytes],
    fields: Mapping[str, str] | None = None,
) -> tuple[bytes, str]:
    r"""Render a multipart form with one file part.

    The body is buffered so that it can be replayed on retries.

    Args:
        file_name: The file name of the ``file`` part.
        content: The file content.
        fields: Optional extra form fields.

    Returns:
        The encoded body and its ``Content-Type`` header value.

    Example:
        ```pycon
        >>> from langdock.knowledge import encode_multipart
        >>> body, content_type = encode_multipart("notes.txt", b"hello")
        >>> content_type.startswith("multipart/form-data; boundary=")
        True
        >>> b'filename="notes.txt"' in body
        True

        ```
    """
    encoded = httpx.Request(
        "POST",
        _MULTIPART_URL,
        data=dict(fields or {}),
        files={"file": (file_name, content, "application/octet-stream")},
    )
    return encoded.read(), encoded.headers["Content-Type"]


def _segment(value: uuid.UUID | str) -> str:
    # Identifiers are escaped so they always stay a single path segment.
    return quote(str(value), safe="")


def _list_files(folder_id: uuid.UUID | str) -> _Call:
    return _Call(
        "GET", f"/knowledge/{_segment(folder_id)}/list", into=ListFilesResponse.from_dict
    )


def _upload_file(
    folder_id: uuid.UUID | str,
    file_name: str,
    content: bytes | IO[bytes],
    fields: Mapping[str, str] | None = None,
    method: str = "POST",
) -> _Call:
    body, content_type = encode_multipart(file_name, content, fields)
    return _Call(
        method,
        f"/knowledge/{_segment(folder_id)}",
        body=body,
        headers={"Content-Type": content_type},
        into=FileResponse.from_dict,
    )


def _update_file(
    folder_id: uuid.UUID | str,
    attachment_id: uuid.UUID | str,
    file_name: str,
    content: bytes | IO[bytes],
) -> _Call:
    return _upload_file(
        folder_id, file_name, content, fields={"attachmentId": str(attachment_id)}, method="PATCH"
    )


def _delete_file(folder_id: uuid.UUID | str, attachment_id: uuid.UUID | str) -> _Call:
    return _Call("DELETE", f"/knowledge/{_segment(folder_id)}/{_segment(attachment_id)}")


def _search(query: str) -> _Call:
    return _Call(
        "POST",
        "/knowledge/search",
        body=json.dumps({"query": query}).encode("utf-8"),
        headers={"Content-Type": "application/json"},
        into=SearchResponse.from_dict,
    )


class KnowledgeService:
    r"""Operations on knowledge folders.

    Args:
        client: The client executing the requests.

    Example:
        ```pycon
        >>> from langdock import Client, ClientConfig
        >>> with Client(config=ClientConfig(api_key="secret")) as client:  # doctest: +SKIP
        ...     response = client.knowledge.search("onboarding checklist")
        ...     [result.text for result in response.result]
        ...

        ```
    """

    def __init__(self, client: Client) -> None:
        self._client = client

    def _run(self, call: _Call, cancel: CancelToken | None) -> Any:
        return self._client.request(
            call.method, call.path, call.body, call.into, headers=call.headers, cancel=cancel
        )

    def list_files(
        self, folder_id: uuid.UUID | str, *, cancel: CancelToken | None = None
    ) -> ListFilesResponse:
        """List the files of a knowledge folder."""
        return self._run(_list_files(folder_id), cancel)

    def upload_file(
        self,
        folder_id: uuid.UUID | str,
        file_name: str,
        content: bytes | IO[bytes],
        *,
        cancel: CancelToken | None = None,
    ) -> FileResponse:
        """Upload a file into a knowledge folder.

        Args:
            folder_id: The identifier of the folder.
            file_name: The name of the uploaded file.
            content: The file content.
            cancel: Optional cancellation token.

        Returns:
            The envelope holding the created file.
        """
        return self._run(_upload_file(folder_id, file_name, content), cancel)

    def update_file(
        self,
        folder_id: uuid.UUID | str,
        attachment_id: uuid.UUID | str,
        file_name: str,
        content: bytes | IO[bytes],
        *,
        cancel: CancelToken | None = None,
    ) -> FileResponse:
        """Replace the content of an existing file."""
        return self._run(_update_file(folder_id, attachment_id, file_name, content), cancel)

    def delete_file(
        self,
        folder_id: uuid.UUID | str,
        attachment_id: uuid.UUID | str,
        *,
        cancel: CancelToken | None = None,
    ) -> None:
        """Delete a file from a knowledge folder."""
        self._run(_delete_file(folder_id, attachment_id), cancel)

    def search(self, query: str, *, cancel: CancelToken | None = None) -> SearchResponse:
        """Search the knowledge folders shared with the API key."""
        return self._run(_search(query), cancel)


class AsyncKnowledgeService:
    """Asynchronous operations on knowledge folders (see
    ``KnowledgeService``)."""

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def _run(self, call: _Call, cancel: CancelToken | None) -> Any:
        return await self._client.request(
            call.method, call.path, call.body, call.into, headers=call.headers, cancel=cancel
        )

    async def list_files(
        self, folder_id: uuid.UUID | str, *, cancel: CancelToken | None = None
    ) -> ListFilesResponse:
        return await self._run(_list_files(folder_id), cancel)

    async def upload_file(
        self,
        folder_id: uuid.UUID | str,
        file_name: str,
        content: bytes | IO[bytes],
        *,
        cancel: CancelToken | None = None,
    ) -> FileResponse:
        return await self._run(_upload_file(folder_id, file_name, content), cancel)

    async def update_file(
        self,
        folder_id: uuid.UUID | str,
        attachment_id: uuid.UUID | str,
        file_name: str,
        content: bytes | IO[bytes],
        *,
        cancel: CancelToken | None = None,
    ) -> FileResponse:
        return await self._run(_update_file(folder_id, attachment_id, file_name, content), cancel)

    async def delete_file(
        self,
        folder_id: uuid.UUID | str,
        attachment_id: uuid.UUID | str,
        *,
        cancel: CancelToken | None = None,
    ) -> None:
        await self._run(_delete_file(folder_id, attachment_id), cancel)

    async def search(self, query: str, *, cancel: CancelToken | None = None) -> SearchResponse:
        return await self._run(_search(query), cancel)
