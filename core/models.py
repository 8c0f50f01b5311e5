# core/models.py
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .errors import FetchError

# Optional item properties that may be persisted next to the sell price.
ITEM_PROPERTIES = (
    "appid",
    "name",
    "icon_url",
    "sell_listings",
    "classid",
    "instanceid",
)


@dataclass
class Page:
    """
    One search/render response from the market API.
    total_count is the server's view of the full result size and may change
    between pages of the same app.
    """
    success: bool
    total_count: int
    results: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_json(cls, body: Dict[str, Any]) -> "Page":
        """Raises ValueError or TypeError when the body does not look like a page."""
        results = body.get("results") or []
        if not isinstance(results, list):
            raise TypeError(f"results must be a list, got {type(results).__name__}")
        for entry in results:
            if not isinstance(entry, dict):
                raise TypeError(f"result entries must be objects, got {type(entry).__name__}")
        return cls(
            success=bool(body.get("success")),
            total_count=int(body.get("total_count") or 0),
            results=results,
        )


@dataclass
class FetchProgress:
    """Per-app paging state; total starts at 1 so at least one page is requested."""
    page_index: int = 1
    fetched: int = 0
    total: int = 1

    @property
    def done(self) -> bool:
        return self.fetched >= self.total

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 100
        return int(self.fetched * 100 / self.total)

    def advance(self, returned: int) -> None:
        self.fetched += returned
        self.page_index += 1


@dataclass
class PageFetched:
    page: Page


@dataclass
class Throttled:
    status: int = 429


@dataclass
class PageFailed:
    error: FetchError


PageOutcome = PageFetched | Throttled | PageFailed
