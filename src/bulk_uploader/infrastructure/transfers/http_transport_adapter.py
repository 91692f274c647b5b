"""HTTP multipart transport adapter."""

from __future__ import annotations

import asyncio
import io
import logging
import mimetypes
import os
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from pathlib import Path
from typing import Any

import httpx

from bulk_uploader.domain.entities import TransferItem
from bulk_uploader.domain.outcomes import (
    TERMINAL_OUTCOME_TYPES,
    TransferFailed,
    TransferOutcome,
    TransferProgress,
    TransferSucceeded,
)
from bulk_uploader.domain.ports import TransportAdapter

_DEFAULT_TIMEOUT_SECONDS = 30.0
_RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})

logger = logging.getLogger(__name__)


class _ProgressReader:
    """File wrapper reporting read progress while httpx streams the body."""

    def __init__(
        self,
        handle: io.BufferedReader,
        total_bytes: int,
        on_progress: Callable[[int], None],
    ) -> None:
        self._handle = handle
        self._total_bytes = total_bytes
        self._on_progress = on_progress
        self._bytes_read = 0
        self._last_percent = -1

    def read(self, size: int = -1) -> bytes:
        chunk = self._handle.read(size)
        self._bytes_read += len(chunk)
        self._report()
        return chunk

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        position = self._handle.seek(offset, whence)
        self._bytes_read = position
        return position

    def tell(self) -> int:
        return self._handle.tell()

    def _report(self) -> None:
        if self._total_bytes <= 0:
            return
        percent = min(100, round(self._bytes_read * 100 / self._total_bytes))
        if percent <= self._last_percent:
            return
        self._last_percent = percent
        self._on_progress(percent)


class HttpTransportAdapter(TransportAdapter):
    """Upload one local file per attempt as `multipart/form-data`.

    The form carries the file under `file` and the item id under `id`. The
    endpoint answers `{"success": bool, "url": str?, "error": str?}`.
    Transport problems never raise; they become `TransferFailed` outcomes.

    The file body is read chunk by chunk on the event loop while httpx
    streams the request, so a slow local disk delays other transfers too.
    """

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = self._normalize_endpoint(endpoint)
        self._http = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        return self._transfer(item)

    async def aclose(self) -> None:
        """Release underlying HTTP resources."""

        await self._http.aclose()

    async def _transfer(self, item: TransferItem) -> AsyncIterator[TransferOutcome]:
        path = Path(item.payload)
        try:
            size = path.stat().st_size
        except OSError as exc:
            yield TransferFailed(
                error=f"Cannot read file '{path}': {exc.strerror or exc}",
                retryable=False,
            )
            return

        updates: asyncio.Queue[TransferOutcome] = asyncio.Queue()
        request_task = asyncio.create_task(
            self._post(item.item_id, path, size, updates),
            name=f"http-upload-{item.item_id}",
        )
        try:
            while True:
                outcome = await updates.get()
                yield outcome
                if isinstance(outcome, TERMINAL_OUTCOME_TYPES):
                    return
        finally:
            if not request_task.done():
                request_task.cancel()
                with suppress(asyncio.CancelledError):
                    await request_task

    async def _post(
        self,
        item_id: str,
        path: Path,
        size: int,
        updates: asyncio.Queue[TransferOutcome],
    ) -> None:
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            with path.open("rb") as handle:
                reader = _ProgressReader(
                    handle,
                    size,
                    lambda percent: updates.put_nowait(TransferProgress(percent=percent)),
                )
                response = await self._http.post(
                    self._endpoint,
                    data={"id": item_id},
                    files={"file": (path.name, reader, content_type)},
                )
        except httpx.TimeoutException:
            outcome: TransferOutcome = TransferFailed(error="Upload timed out")
        except httpx.HTTPError as exc:
            outcome = TransferFailed(error=f"Network error: {exc}")
        except OSError as exc:
            outcome = TransferFailed(error=f"Cannot read file '{path}': {exc}", retryable=False)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Upload of item '%s' raised unexpectedly: %r", item_id, exc)
            outcome = TransferFailed(error=str(exc) or exc.__class__.__name__)
        else:
            outcome = self._outcome_from_response(response)
        updates.put_nowait(outcome)

    def _outcome_from_response(self, response: httpx.Response) -> TransferOutcome:
        if not response.is_success:
            status = response.status_code
            retryable = status >= 500 or status in _RETRYABLE_CLIENT_STATUSES
            return TransferFailed(error=f"HTTP error: {status}", retryable=retryable)

        try:
            payload: Any = response.json()
        except ValueError:
            return TransferFailed(error="Invalid server response")
        if not isinstance(payload, dict):
            return TransferFailed(error="Invalid server response")

        if payload.get("success") is True:
            url = payload.get("url")
            return TransferSucceeded(url=url if isinstance(url, str) else None)

        error = payload.get("error")
        return TransferFailed(
            error=error if isinstance(error, str) and error else "Unknown error",
            retryable=False,
        )

    def _normalize_endpoint(self, endpoint: str) -> str:
        normalized = endpoint.strip()
        if not normalized:
            raise ValueError("Upload endpoint cannot be empty.")
        return normalized


__all__ = ["HttpTransportAdapter"]
