"""
search.py

Debounced name search over systems and regions.

Typing only records the query; the match runs once the query has been
unchanged for SEARCH_DELAY_SECONDS. Systems are matched first, then regions,
with at most MAX_RESULTS entries overall.
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Tuple

from projection import Projection
from scheduling import Debouncer
from universe import MapData

logger = logging.getLogger(__name__)

SEARCH_DELAY_SECONDS = 0.3
MAX_RESULTS = 10
SYSTEM_FOCUS_ZOOM = 8.0
REGION_FOCUS_ZOOM = 4.0


class SearchResult(NamedTuple):
    kind: str  # "system" or "region"
    name: str
    id: int


def match(data: MapData, query: str, limit: int = MAX_RESULTS) -> List[SearchResult]:
    needle = query.strip().lower()
    if not needle:
        return []
    results: List[SearchResult] = []
    for system in data.systems:
        if needle in system.name.lower():
            results.append(SearchResult("system", system.name, system.id))
            if len(results) >= limit:
                return results
    for region in data.regions:
        if needle in region.name.lower():
            results.append(SearchResult("region", region.name, region.id))
            if len(results) >= limit:
                break
    return results


def focus_target(
    data: MapData, projection: Projection, result: SearchResult
) -> Optional[Tuple[float, float, float]]:
    """Pre-camera point and zoom to center on for a selected result."""
    if result.kind == "system":
        system = data.systems_by_id.get(result.id)
        if system is None:
            return None
        px, py = projection.project(*system.pos)
        return px, py, SYSTEM_FOCUS_ZOOM

    members = data.systems_in_region(result.id)
    if not members:
        return None
    cx = sum(s.pos[0] for s in members) / len(members)
    cy = sum(s.pos[1] for s in members) / len(members)
    px, py = projection.project(cx, cy)
    return px, py, REGION_FOCUS_ZOOM


class SearchBox:
    """Query text plus the debounced result list shown under it."""

    def __init__(
        self,
        data: MapData,
        on_results: Callable[[List[SearchResult]], None],
        debouncer: Optional[Debouncer] = None,
    ):
        self.data = data
        self.on_results = on_results
        self.debouncer = debouncer or Debouncer(SEARCH_DELAY_SECONDS)
        self.query = ""
        self.results: List[SearchResult] = []

    def set_query(self, query: str):
        self.query = query
        if not query.strip():
            self.debouncer.cancel()
            self._publish([])
            return
        self.debouncer.schedule(lambda: self._run(query))

    def type_char(self, ch: str):
        self.set_query(self.query + ch)

    def backspace(self):
        self.set_query(self.query[:-1])

    def clear(self):
        self.set_query("")

    def poll(self) -> bool:
        return self.debouncer.poll()

    def _run(self, query: str):
        results = match(self.data, query)
        logger.debug("search %r -> %d results", query, len(results))
        self._publish(results)

    def _publish(self, results: List[SearchResult]):
        self.results = results
        self.on_results(results)
