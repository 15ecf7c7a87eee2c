import asyncio
import time
from typing import Any, Dict, Optional, Tuple

_cache: Dict[str, Tuple[float, Any, int]] = {}
_cache_lock = asyncio.Lock()


def cache_key(*parts: Any) -> str:
    return ":".join(str(part) for part in parts)


async def get_cache(key: str) -> Optional[Any]:
    async with _cache_lock:
        entry = _cache.get(key)
        if not entry:
            return None
        ts, data, ttl = entry
        if time.time() - ts > ttl:
            del _cache[key]
            return None
        return data


async def set_cache(key: str, data: Any, ttl: int = 300) -> None:
    async with _cache_lock:
        _cache[key] = (time.time(), data, ttl)


async def clear_cache() -> None:
    async with _cache_lock:
        _cache.clear()
