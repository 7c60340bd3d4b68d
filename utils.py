from datetime import timedelta
from functools import lru_cache

from httpx import AsyncClient, Timeout

from config import USER_AGENT


def create_http_client() -> AsyncClient:
    return AsyncClient(
        headers={'User-Agent': USER_AGENT},
        timeout=Timeout(60, connect=15),
        follow_redirects=True,
    )


def timeout_seconds(timeout: timedelta | float) -> float:
    return timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)


def first_non_empty(data: dict, keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and (value := value.strip()):
            return value
    return None


@lru_cache(128)
def make_cache_control(max_age: timedelta, stale: timedelta) -> str:
    return f'public, max-age={int(max_age.total_seconds())}, stale-while-revalidate={int(stale.total_seconds())}'
