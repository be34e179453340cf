r"""Response shapes of the Knowledge API.

Each dataclass has a ``from_dict`` constructor used as destination shape
by the executor. Missing required keys or malformed identifiers raise
``KeyError``/``ValueError``, which the executor reports as
``DecodeError``. Envelope fields default to empty values so that error
envelopes returned with 4xx statuses still decode.
"""

from __future__ import annotations

__all__ = [
    "FileResponse",
    "KnowledgeFile",
    "ListFilesResponse",
    "SearchResponse",
    "SearchResult",
]

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class KnowledgeFile:
    """A file stored in a knowledge folder."""

    id: uuid.UUID
    name: str
    mime_type: str
    created_at: str
    updated_at: str
    url: str | None = None
    path: str | None = None
    sync_status: str | None = None
    page_count: int | None = None
    summary: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeFile:
        r"""Build a file from its JSON representation.

        Example:
            ```pycon
            >>> from langdock.models import KnowledgeFile
            >>> file = KnowledgeFile.from_dict(
            ...     {
            ...         "id": "0b4d6f5e-6c1a-4f5e-9a57-3f7c2b1e8d90",
            ...         "name": "report.pdf",
            ...         "mimeType": "application/pdf",
            ...         "createdAt": "2024-01-01T00:00:00Z",
            ...         "updatedAt": "2024-01-02T00:00:00Z",
            ...         "url": None,
            ...     }
            ... )
            >>> file.name, file.mime_type
            ('report.pdf', 'application/pdf')

            ```
        """
        return cls(
            id=uuid.UUID(data["id"]),
            name=data["name"],
            mime_type=data["mimeType"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            url=data.get("url"),
            path=data.get("path"),
            sync_status=data.get("syncStatus"),
            page_count=data.get("pageCount"),
            summary=data.get("summary"),
        )


@dataclass(frozen=True)
class SearchResult:
    """A passage matching a knowledge search query."""

    text: str
    similarity: float
    subsource: str
    subname: str
    id: uuid.UUID
    url: str
    index: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResult:
        return cls(
            text=data["text"],
            similarity=float(data["similarity"]),
            subsource=data.get("subsource", ""),
            subname=data.get("subname", ""),
            id=uuid.UUID(data["id"]),
            url=data.get("url", ""),
            index=int(data.get("index", 0)),
        )


@dataclass(frozen=True)
class ListFilesResponse:
    """Envelope returned by the list operation."""

    status: str
    result: list[KnowledgeFile] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ListFilesResponse:
        return cls(
            status=data.get("status", ""),
            result=[KnowledgeFile.from_dict(item) for item in data.get("result") or []],
        )


@dataclass(frozen=True)
class FileResponse:
    """Envelope returned by the upload and update operations."""

    status: str
    result: KnowledgeFile | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileResponse:
        result = data.get("result")
        return cls(
            status=data.get("status", ""),
            result=KnowledgeFile.from_dict(result) if result is not None else None,
        )


@dataclass(frozen=True)
class SearchResponse:
    """Envelope returned by the search operation."""

    status: str
    result: list[SearchResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SearchResponse:
        return cls(
            status=data.get("status", ""),
            result=[SearchResult.from_dict(item) for item in data.get("result") or []],
        )
