"""Download facility: persist a URL under a filename in the download directory."""

import itertools
import random
from pathlib import Path
from typing import Optional

import aiofiles
import httpx

from instasaver.core.exceptions import DownloadRejectedError
from instasaver.utils.config import (
    CONFLICT_ACTION,
    CONNECT_TIMEOUT,
    DOWNLOAD_CHUNK_SIZE,
    DOWNLOAD_DIR,
    READ_TIMEOUT,
    USER_AGENTS,
)
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)


def uniquify(filepath: Path) -> Path:
    """``name.ext`` -> ``name (1).ext``, ``name (2).ext`` ... for the first free path."""
    if not filepath.exists():
        return filepath
    for n in itertools.count(1):
        candidate = filepath.with_name(f"{filepath.stem} ({n}){filepath.suffix}")
        if not candidate.exists():
            return candidate


class DownloadFacility:
    """
    Streams media to disk and hands back an opaque download id.

    Submissions are never retried here; a failure is reported to the caller
    as ``DownloadRejectedError``.
    """

    def __init__(
        self,
        download_dir: Path = DOWNLOAD_DIR,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize facility.

        Args:
            download_dir: Destination directory
            transport: Optional httpx transport, e.g. a mock in tests
        """
        self.download_dir = Path(download_dir)
        self.transport = transport
        self._ids = itertools.count(1)

    def _get_headers(self) -> dict:
        return {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "*/*",
            "Connection": "keep-alive",
        }

    def _destination(self, filename: str, conflict_action: str) -> Path:
        filepath = self.download_dir / Path(filename).name
        if conflict_action == "uniquify":
            return uniquify(filepath)
        if conflict_action == "overwrite":
            return filepath
        raise DownloadRejectedError(f"Unknown conflict action: {conflict_action}")

    async def download(self, url: str, filename: str, conflict_action: str = CONFLICT_ACTION) -> int:
        """
        Download ``url`` to ``filename`` inside the download directory.

        Args:
            url: Media URL
            filename: Suggested file name
            conflict_action: ``uniquify`` (default) or ``overwrite``

        Returns:
            Download id

        Raises:
            DownloadRejectedError: If the download fails
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        filepath = self._destination(filename, conflict_action)
        temp_filepath = filepath.with_suffix(filepath.suffix + ".part")

        logger.debug(f"Downloading: {url} -> {filepath}")
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(READ_TIMEOUT, connect=CONNECT_TIMEOUT),
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                async with client.stream("GET", url, headers=self._get_headers()) as response:
                    response.raise_for_status()

                    total_bytes = int(response.headers.get("content-length", 0))
                    downloaded_bytes = 0

                    async with aiofiles.open(temp_filepath, "wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=DOWNLOAD_CHUNK_SIZE):
                            await f.write(chunk)
                            downloaded_bytes += len(chunk)

            if total_bytes > 0 and downloaded_bytes != total_bytes:
                raise DownloadRejectedError(
                    f"Incomplete download: {downloaded_bytes}/{total_bytes} bytes"
                )

            temp_filepath.replace(filepath)

        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code} downloading {url}"
            logger.error(error_msg)
            raise DownloadRejectedError(error_msg) from e

        except httpx.HTTPError as e:
            error_msg = f"Network error downloading {url}: {e}"
            logger.error(error_msg)
            raise DownloadRejectedError(error_msg) from e

        except OSError as e:
            error_msg = f"Cannot write {filepath}: {e}"
            logger.error(error_msg)
            raise DownloadRejectedError(error_msg) from e

        finally:
            if temp_filepath.exists():
                try:
                    temp_filepath.unlink()
                except OSError as e:
                    logger.warning(f"Failed to delete temp file {temp_filepath}: {e}")

        download_id = next(self._ids)
        logger.info(f"Downloaded: {filepath.name} ({downloaded_bytes} bytes, id {download_id})")
        return download_id
