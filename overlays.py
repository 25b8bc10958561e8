"""
overlays.py

Time-varying ownership overlays fetched from the public ESI API:

- faction warfare: system id -> owning faction id
- sovereignty:     system id -> AllianceClaim(alliance id, alliance name)

Each source caches its last good mapping for a fixed TTL. A failed fetch is
logged and reported as "no data" (an empty mapping); it never propagates into
the render loop.
"""

import logging
import time
from typing import Callable, Dict, Generic, List, NamedTuple, Optional, TypeVar

import requests

logger = logging.getLogger(__name__)

ESI_BASE_URL = "https://esi.evetech.net/latest"
USER_AGENT = "starchart (pygame star map viewer)"
COMPATIBILITY_DATE = "2025-11-06"
REQUEST_TIMEOUT = 15.0

FACTION_TTL_SECONDS = 30 * 60
ALLIANCE_TTL_SECONDS = 60 * 60

T = TypeVar("T")


class EsiError(RuntimeError):
    """An ESI request failed (transport error, bad status or undecodable body)."""


class AllianceClaim(NamedTuple):
    alliance_id: int
    alliance_name: str


class EsiClient:
    """Thin ESI wrapper that sets the headers ESI expects on every request."""

    def __init__(
        self,
        base_url: str = ESI_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "X-Compatibility-Date": COMPATIBILITY_DATE,
                "Accept-Language": "en",
            }
        )

    def request(self, endpoint: str, method: str = "GET", body=None):
        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"
        try:
            if method == "GET":
                resp = self.session.get(url, timeout=self.timeout)
            else:
                resp = self.session.request(method, url, json=body, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as exc:
            raise EsiError(f"ESI {method} {endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise EsiError(f"ESI {method} {endpoint} returned invalid JSON") from exc

    def faction_warfare_systems(self) -> List[dict]:
        return self.request("/fw/systems/")

    def sovereignty_map(self) -> List[dict]:
        return self.request("/sovereignty/map/")

    def names(self, ids: List[int]) -> List[dict]:
        if not ids:
            return []
        return self.request("/universe/names/", method="POST", body=ids)


class OverlaySource(Generic[T]):
    """Base for a TTL-cached remote lookup returning ``{system_id: value}``."""

    name = "overlay"
    ttl_seconds = 0.0

    def __init__(self, client: EsiClient, clock: Callable[[], float] = time.monotonic):
        self.client = client
        self.clock = clock
        self._cached: Optional[Dict[int, T]] = None
        self._cached_at = 0.0

    def cached(self) -> Optional[Dict[int, T]]:
        if self._cached is None:
            return None
        if self.clock() - self._cached_at >= self.ttl_seconds:
            return None
        return self._cached

    def fetch(self) -> Dict[int, T]:
        """Return the overlay mapping, from cache when fresh; {} on failure."""
        hit = self.cached()
        if hit is not None:
            return hit
        try:
            data = self._fetch()
        except EsiError as exc:
            logger.warning("%s overlay unavailable: %s", self.name, exc)
            return {}
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("%s overlay response malformed: %r", self.name, exc)
            return {}
        self._cached = data
        self._cached_at = self.clock()
        logger.info("%s overlay loaded: %d systems", self.name, len(data))
        return data

    def _fetch(self) -> Dict[int, T]:
        raise NotImplementedError


class FactionOverlay(OverlaySource[int]):
    name = "faction"
    ttl_seconds = FACTION_TTL_SECONDS

    def _fetch(self) -> Dict[int, int]:
        return {
            int(entry["solar_system_id"]): int(entry["owner_faction_id"])
            for entry in self.client.faction_warfare_systems()
        }


class AllianceOverlay(OverlaySource[AllianceClaim]):
    name = "alliance"
    ttl_seconds = ALLIANCE_TTL_SECONDS

    def _fetch(self) -> Dict[int, AllianceClaim]:
        # faction-held sovereignty belongs to the faction overlay
        claims = [
            entry
            for entry in self.client.sovereignty_map()
            if entry.get("alliance_id") and not entry.get("faction_id")
        ]
        alliance_ids = sorted({int(entry["alliance_id"]) for entry in claims})
        names = {
            int(item["id"]): item["name"]
            for item in self.client.names(alliance_ids)
            if item.get("category") == "alliance"
        }
        result: Dict[int, AllianceClaim] = {}
        for entry in claims:
            alliance_id = int(entry["alliance_id"])
            result[int(entry["system_id"])] = AllianceClaim(
                alliance_id, names.get(alliance_id, f"Alliance {alliance_id}")
            )
        return result
