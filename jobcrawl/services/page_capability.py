"""
The operations the crawler needs from one rendered browser page.

All of them are awaitable and may be slow or fail. Callers never issue two of
them concurrently against the same page.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol


class WaitUntil(Enum):
    """When a navigation counts as finished."""
    LOAD = "load"
    NETWORK_IDLE = "networkidle"  # no new network activity for a quiet window
    NETWORK_SETTLED = "networksettled"  # at most a couple of late requests in the quiet window


@dataclass(frozen=True)
class NavigationResponse:
    status: Optional[int] = None  # None when the browser could not report it


class PageCapability(Protocol):
    async def set_request_headers(self, headers: Dict[str, str]) -> None:
        ...

    async def navigate(self, url: str, wait_until: WaitUntil = WaitUntil.LOAD) -> NavigationResponse:
        ...

    async def wait_for_selector(self, selector: str, *, visible: bool = True, timeout_ms: int = 5000) -> bool:
        """Return True once the selector matches, False on timeout."""
        ...

    async def current_location(self) -> str:
        ...

    async def evaluate_in_page(self, script: str, *args: Any) -> Any:
        """Run ``script`` in the page; positional ``args`` are available as ``arguments``."""
        ...
