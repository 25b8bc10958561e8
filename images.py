"""
images.py

Append-only icon cache for system-view markers.

Each type id gets exactly one download attempt. Successful loads are added to
the cache and never replaced or evicted; failures are logged and leave the id
absent, so the marker keeps its plain fallback shape.
"""

import io
import logging
from concurrent.futures import Executor
from typing import Callable, Dict, Optional, Set

import pygame
import requests

from scheduling import Inbox

logger = logging.getLogger(__name__)

IMAGE_BASE_URL = "https://images.evetech.net"
ICON_SIZE = 64


def type_icon_url(type_id: int, size: int = ICON_SIZE, kind: str = "icon") -> str:
    return f"{IMAGE_BASE_URL}/types/{type_id}/{kind}?size={size}"


def http_fetcher(session: Optional[requests.Session] = None, timeout: float = 10.0) -> Callable[[int], bytes]:
    session = session or requests.Session()

    def fetch(type_id: int) -> bytes:
        resp = session.get(type_icon_url(type_id), timeout=timeout)
        resp.raise_for_status()
        return resp.content

    return fetch


class ImageCache:
    def __init__(self, fetch: Callable[[int], bytes], executor: Executor, inbox: Inbox):
        self.fetch = fetch
        self.executor = executor
        self.inbox = inbox
        self._images: Dict[int, pygame.Surface] = {}
        self._requested: Set[int] = set()
        self._arrived = 0

    def __contains__(self, type_id: int) -> bool:
        return type_id in self._images

    def __len__(self) -> int:
        return len(self._images)

    def get(self, type_id: Optional[int]) -> Optional[pygame.Surface]:
        """Loaded icon for ``type_id``; starts its one download on first request."""
        if type_id is None:
            return None
        image = self._images.get(type_id)
        if image is not None:
            return image
        if type_id not in self._requested:
            self._requested.add(type_id)
            self.executor.submit(self._download, type_id)
        return None

    def _download(self, type_id: int):
        # worker thread: only network I/O here, decoding happens on the main thread
        try:
            data = self.fetch(type_id)
        except requests.RequestException as exc:
            logger.debug("Icon %s download failed: %s", type_id, exc)
            return
        self.inbox.post(lambda: self._store(type_id, data))

    def _store(self, type_id: int, data: bytes):
        try:
            image = pygame.image.load(io.BytesIO(data))
        except pygame.error as exc:
            logger.debug("Icon %s could not be decoded: %s", type_id, exc)
            return
        self._images[type_id] = image
        self._arrived += 1

    def take_arrivals(self) -> int:
        """Number of icons stored since the last call (drives one coalesced redraw)."""
        arrived = self._arrived
        self._arrived = 0
        return arrived
