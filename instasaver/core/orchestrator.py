"""Name resolved media and submit it to the download facility."""

import time
from typing import Callable, Optional, Sequence, Tuple

from instasaver.core.downloader import DownloadFacility
from instasaver.core.exceptions import DownloadRejectedError, NoMediaError
from instasaver.models.data_models import BatchResult, DownloadRequest, MediaDescriptor
from instasaver.utils.config import CONFLICT_ACTION, PRODUCT_TAG
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)


def build_filename(username: str, kind: str, is_video: bool, timestamp: int, index: Optional[int] = None) -> str:
    """
    ``instaloader_<username>_<kind>_<timestamp>[_<index>].<ext>``

    ``index`` is 1-based and only given for multi-item batches.
    """
    ext = "mp4" if is_video else "jpg"
    suffix = f"_{index}" if index is not None else ""
    return f"{PRODUCT_TAG}_{username}_{kind}_{timestamp}{suffix}.{ext}"


def clamp_index(index: Optional[int], total: int) -> int:
    """Clamp a requested item index into ``[0, total - 1]``."""
    return max(0, min(index or 0, total - 1))


def _now_ms() -> int:
    return int(time.time() * 1000)


class DownloadOrchestrator:
    """Turns descriptors into download requests and submits them in order."""

    def __init__(self, facility: Optional[DownloadFacility] = None, clock: Callable[[], int] = _now_ms):
        self.facility = facility or DownloadFacility()
        self.clock = clock

    async def submit(self, request: DownloadRequest) -> int:
        return await self.facility.download(
            request.descriptor.url,
            request.suggested_filename,
            conflict_action=CONFLICT_ACTION,
        )

    async def download_one(self, descriptor: MediaDescriptor, kind: str, username: Optional[str] = None) -> int:
        """
        Submit a single descriptor.

        Raises:
            DownloadRejectedError: If the facility refuses it
        """
        owner = username or descriptor.owner_username or "post"
        filename = build_filename(owner, kind, descriptor.is_video, self.clock())
        return await self.submit(DownloadRequest(descriptor, filename))

    async def download_all(self, descriptors: Sequence[MediaDescriptor], kind: str) -> BatchResult:
        """
        Submit every descriptor sequentially, preserving order.

        Failed submissions are logged and skipped; the result counts the
        accepted ones so a partial batch is still reported.
        """
        if not descriptors:
            raise NoMediaError(f"No media in {kind}")

        total = len(descriptors)
        username = descriptors[0].owner_username or "post"
        timestamp = self.clock()
        downloaded = 0

        for position, descriptor in enumerate(descriptors, start=1):
            filename = build_filename(
                username,
                kind,
                descriptor.is_video,
                timestamp,
                index=position if total > 1 else None,
            )
            try:
                await self.submit(DownloadRequest(descriptor, filename))
                downloaded += 1
            except DownloadRejectedError as e:
                logger.error(f"Download failed ({position}/{total}): {e}")

        logger.info(f"Batch download complete: {downloaded}/{total} successful")
        return BatchResult(downloaded=downloaded, total=total)

    async def download_index(
        self,
        descriptors: Sequence[MediaDescriptor],
        index: Optional[int],
        kind: str,
    ) -> Tuple[int, int]:
        """
        Submit the item at ``index`` (clamped into range).

        Returns:
            ``(download_id, used_index)``
        """
        if not descriptors:
            raise NoMediaError(f"No media in {kind}")

        used_index = clamp_index(index, len(descriptors))
        if index is not None and used_index != index:
            logger.debug(f"Index {index} clamped to {used_index} of {len(descriptors)}")
        download_id = await self.download_one(descriptors[used_index], kind)
        return download_id, used_index
