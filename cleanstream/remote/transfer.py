"""
File transfers to and from the media server.

Uses asyncio + aiohttp for streaming. Each call runs its own event loop so
it can be invoked from a plain worker thread; cancellation is cooperative
through a cancel_check callback polled while the transfer runs.
"""

import asyncio
import mimetypes
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple

import aiohttp

from ..core.constants import DEFAULT_CONTAINER, GENERIC_MIME, PARTIAL_SUFFIX
from ..core.logging import debug_log
from ..core.paths import get_certifi_ssl_context
from .client import TokenSource, normalize_base_url

# Seconds between cancel_check polls
CANCEL_POLL_INTERVAL = 0.1


@dataclass
class TransferResult:
    """Result of a single fetch or push."""
    success: bool
    path: Path
    message: str
    bytes_transferred: int = 0
    cancelled: bool = False
    not_found: bool = False
    auth_failed: bool = False


def partial_path(dest: Path) -> Path:
    """Where a fetch writes until it completes."""
    return dest.with_name(dest.name + PARTIAL_SUFFIX)


def _remove_quietly(path: Path):
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        debug_log(f"PARTIAL_CLEANUP_FAIL | {path} | {e}")


class MediaTransfer:
    """
    Streams media between the server and the local library.

    Downloads land in "<name>.part" and are renamed into place only when
    complete, so a failed or cancelled fetch never leaves a file the scanner
    would pick up.
    """

    def __init__(
        self,
        base_url: str,
        auth_token: TokenSource = None,
        timeout: Tuple[int, int] = (10, 120),
        chunk_size: int = 65536,
        container: str = DEFAULT_CONTAINER,
    ):
        self.base_url = normalize_base_url(base_url)
        self._auth_token = auth_token
        self.timeout = aiohttp.ClientTimeout(connect=timeout[0], sock_read=timeout[1])
        self.chunk_size = chunk_size
        self.container = container

    def _get_auth_token(self) -> Optional[str]:
        """Get current auth token, calling getter if it's a callable."""
        if callable(self._auth_token):
            return self._auth_token()
        return self._auth_token

    def _get_headers(self) -> dict:
        token = self._get_auth_token()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    def _session(self) -> aiohttp.ClientSession:
        ssl_context = ssl.create_default_context(cafile=get_certifi_ssl_context())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        return aiohttp.ClientSession(timeout=self.timeout, connector=connector)

    # =========================================================================
    # Public API (blocking; call from a worker thread)
    # =========================================================================

    def download(
        self,
        media_id: int,
        dest: Path,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> TransferResult:
        """Fetch a media record into dest."""
        return asyncio.run(
            self._run_cancellable(self._download_async(media_id, dest), dest, cancel_check)
        )

    def upload(
        self,
        path: Path,
        source_url: Optional[str] = None,
        cancel_check: Optional[Callable[[], bool]] = None,
    ) -> TransferResult:
        """Push a local file to the server as a multipart upload."""
        if cancel_check and cancel_check():
            return TransferResult(False, path, f"Cancelled: {path.name}", cancelled=True)
        return asyncio.run(
            self._run_cancellable(self._upload_async(path, source_url), path, cancel_check)
        )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run_cancellable(
        self,
        coro: Awaitable[TransferResult],
        path: Path,
        cancel_check: Optional[Callable[[], bool]],
    ) -> TransferResult:
        """Run a transfer coroutine, cancelling it once cancel_check() turns True."""
        task = asyncio.ensure_future(coro)
        while not task.done():
            if cancel_check and cancel_check():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                return TransferResult(False, path, f"Cancelled: {path.name}", cancelled=True)
            await asyncio.wait({task}, timeout=CANCEL_POLL_INTERVAL)
        return task.result()

    async def _download_async(self, media_id: int, dest: Path) -> TransferResult:
        url = f"{self.base_url}/api/files/{media_id}"
        params = {"container": self.container}
        tmp = partial_path(dest)
        downloaded = 0

        try:
            async with self._session() as session:
                async with session.get(url, params=params, headers=self._get_headers()) as response:
                    if response.status in (401, 403):
                        return TransferResult(
                            False, dest, f"ERR (session expired): {dest.name}", auth_failed=True
                        )
                    if response.status == 404:
                        return TransferResult(
                            False, dest, f"ERR (media {media_id} not found): {dest.name}", not_found=True
                        )
                    if response.status // 100 != 2:
                        return TransferResult(False, dest, f"ERR (HTTP {response.status}): {dest.name}")

                    dest.parent.mkdir(parents=True, exist_ok=True)
                    with open(tmp, "wb") as f:
                        async for chunk in response.content.iter_chunked(self.chunk_size):
                            if chunk:
                                f.write(chunk)
                                downloaded += len(chunk)

            tmp.replace(dest)

        except asyncio.CancelledError:
            _remove_quietly(tmp)
            raise

        except asyncio.TimeoutError:
            _remove_quietly(tmp)
            return TransferResult(False, dest, f"ERR (timeout): {dest.name}")

        except (aiohttp.ClientError, OSError) as e:
            _remove_quietly(tmp)
            return TransferResult(False, dest, f"ERR: {dest.name} - {e}")

        return TransferResult(True, dest, f"OK: {dest.name}", bytes_transferred=downloaded)

    async def _upload_async(self, path: Path, source_url: Optional[str]) -> TransferResult:
        url = f"{self.base_url}/api/files/upload"
        content_type = mimetypes.guess_type(path.name)[0] or GENERIC_MIME

        try:
            size = path.stat().st_size
            with open(path, "rb") as f:
                form = aiohttp.FormData()
                form.add_field("downloadedFromUrl", source_url or "")
                form.add_field("container", self.container)
                form.add_field("file", f, filename=path.name, content_type=content_type)

                async with self._session() as session:
                    async with session.post(url, data=form, headers=self._get_headers()) as response:
                        if response.status in (401, 403):
                            return TransferResult(
                                False, path, f"ERR (session expired): {path.name}", auth_failed=True
                            )
                        if response.status // 100 != 2:
                            body = await response.text()
                            return TransferResult(
                                False, path, f"ERR (HTTP {response.status}): {path.name} {body[:200]}".rstrip()
                            )

        except asyncio.TimeoutError:
            return TransferResult(False, path, f"ERR (timeout): {path.name}")

        except FileNotFoundError:
            return TransferResult(False, path, f"ERR (file missing): {path.name}", not_found=True)

        except (aiohttp.ClientError, OSError) as e:
            return TransferResult(False, path, f"ERR: {path.name} - {e}")

        return TransferResult(True, path, f"OK: {path.name}", bytes_transferred=size)
