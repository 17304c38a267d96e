"""Fetch capability interface, all-settled fan-out and fetcher wrappers.

The engine never performs I/O itself. Callers inject an object that
implements FetchCapability; builders fan out through settle() so that one
failing asset or instance never aborts a report.
"""

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Protocol

from .env import get_config
from .retry import is_retryable, with_retries
from . import log

QueryParams = Optional[dict[str, Any]]


class FetchCapability(Protocol):
    """Async data source for one platform deployment."""

    async def ping(self, url: str) -> Any: ...

    async def statistics(self, url: str) -> Any: ...

    async def assets(self, url: str) -> Any: ...

    async def readings(
        self, asset: str, datapoint: Optional[str] = None, params: QueryParams = None
    ) -> Any: ...

    async def readings_summary(
        self, asset: str, datapoint: Optional[str] = None, params: QueryParams = None
    ) -> Any: ...

    async def readings_timespan(
        self, asset: str, datapoint: Optional[str] = None, params: QueryParams = None
    ) -> Any: ...


@dataclass
class Settled:
    """Outcome of one task in an all-settled join."""

    ok: bool
    value: Any = None
    error: Optional[BaseException] = None


async def settle(awaitables: Iterable[Awaitable[Any]]) -> list[Settled]:
    """
    Run awaitables concurrently and wait for all of them.

    Failures are captured per task instead of propagating.

    Returns:
        One Settled per awaitable, in input order
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    settled = []
    for result in results:
        if isinstance(result, BaseException):
            settled.append(Settled(ok=False, error=result))
        else:
            settled.append(Settled(ok=True, value=result))
    return settled


@dataclass
class AssetBundle:
    """Everything fetched for one asset of a combined report."""

    summary: Any = None
    timespan: Any = None
    readings: Any = None


@dataclass
class InstanceBundle:
    """Everything fetched for one instance of a status report."""

    url: str
    ping: Any = None
    statistics: Any = None
    assets: Any = None


async def fetch_asset_bundle(
    fetcher: FetchCapability,
    asset: str,
    params: QueryParams = None,
    with_readings: bool = False,
) -> AssetBundle:
    """
    Fetch summary and timespan (and optionally readings) for an asset.

    Parts that fail are left as None. Raises the first error only when
    every part failed.
    """
    calls = [
        fetcher.readings_summary(asset, params=params),
        fetcher.readings_timespan(asset, params=params),
    ]
    if with_readings:
        calls.append(fetcher.readings(asset, params=params))

    results = await settle(calls)
    for part, result in zip(("summary", "timespan", "readings"), results):
        if not result.ok:
            log.warn(f"{asset}: {part} fetch failed: {result.error}")

    if not any(r.ok for r in results):
        raise results[0].error

    values = [r.value if r.ok else None for r in results]
    return AssetBundle(*values)


async def fetch_instance_bundle(fetcher: FetchCapability, url: str) -> InstanceBundle:
    """
    Fetch ping, statistics and asset list for an instance.

    Parts that fail are left as None. Raises the first error only when
    every part failed.
    """
    results = await settle(
        [fetcher.ping(url), fetcher.statistics(url), fetcher.assets(url)]
    )
    for part, result in zip(("ping", "statistics", "assets"), results):
        if not result.ok:
            log.warn(f"{url}: {part} fetch failed: {result.error}")

    if not any(r.ok for r in results):
        raise results[0].error

    ping, statistics, assets = (r.value if r.ok else None for r in results)
    return InstanceBundle(url=url, ping=ping, statistics=statistics, assets=assets)


class RetryingFetcher:
    """Wrap a fetcher so that transient failures are retried with backoff."""

    def __init__(
        self,
        inner: FetchCapability,
        attempts: Optional[int] = None,
        backoff_s: Optional[float] = None,
        max_backoff_s: Optional[float] = None,
    ):
        cfg = get_config()
        self.inner = inner
        self.attempts = attempts if attempts is not None else cfg.retry_attempts
        self.backoff_s = backoff_s if backoff_s is not None else cfg.retry_backoff_s
        self.max_backoff_s = (
            max_backoff_s if max_backoff_s is not None else cfg.retry_backoff_max_s
        )

    async def _call(self, name: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        success, result, exc = await with_retries(
            fn,
            attempts=self.attempts,
            backoff_s=self.backoff_s,
            name=name,
            max_backoff_s=self.max_backoff_s,
            retry_on=is_retryable,
        )
        if not success:
            raise exc
        return result

    async def ping(self, url: str) -> Any:
        return await self._call(f"ping {url}", lambda: self.inner.ping(url))

    async def statistics(self, url: str) -> Any:
        return await self._call(f"statistics {url}", lambda: self.inner.statistics(url))

    async def assets(self, url: str) -> Any:
        return await self._call(f"assets {url}", lambda: self.inner.assets(url))

    async def readings(self, asset, datapoint=None, params=None):
        return await self._call(
            f"readings {asset}", lambda: self.inner.readings(asset, datapoint, params)
        )

    async def readings_summary(self, asset, datapoint=None, params=None):
        return await self._call(
            f"summary {asset}",
            lambda: self.inner.readings_summary(asset, datapoint, params),
        )

    async def readings_timespan(self, asset, datapoint=None, params=None):
        return await self._call(
            f"timespan {asset}",
            lambda: self.inner.readings_timespan(asset, datapoint, params),
        )


class SnapshotFetcher:
    """
    Replay payloads from a JSON snapshot instead of a live platform.

    Snapshot layout:
        {
          "instances": {"<url>": {"ping": {...}, "statistics": [...], "assets": [...]}},
          "assets": {"<asset>": {"readings": [...], "summary": ..., "timespan": ...,
                                 "datapoints": {"<dp>": {"summary": ..., "timespan": ...}}}}
        }

    A missing entry raises LookupError, which builders report as a
    failed fetch.
    """

    def __init__(self, data: dict[str, Any]):
        self.data = data

    @classmethod
    def from_file(cls, path: Path) -> "SnapshotFetcher":
        """Load a snapshot JSON file."""
        data = json.loads(Path(path).read_text())
        log.debug(f"Loaded snapshot from {path}")
        return cls(data)

    def _instance(self, url: str, part: str) -> Any:
        instance = self.data.get("instances", {}).get(url)
        if instance is None or part not in instance:
            raise LookupError(f"no {part} for instance {url}")
        return instance[part]

    def _asset(self, asset: str, part: str, datapoint: Optional[str]) -> Any:
        entry = self.data.get("assets", {}).get(asset)
        if entry is None:
            raise LookupError(f"no data for asset {asset}")
        if datapoint:
            dp_entry = entry.get("datapoints", {}).get(datapoint, {})
            if part in dp_entry:
                return dp_entry[part]
        if part not in entry:
            raise LookupError(f"no {part} for asset {asset}")
        return entry[part]

    async def ping(self, url: str) -> Any:
        return self._instance(url, "ping")

    async def statistics(self, url: str) -> Any:
        return self._instance(url, "statistics")

    async def assets(self, url: str) -> Any:
        return self._instance(url, "assets")

    async def readings(self, asset, datapoint=None, params=None):
        items = self._asset(asset, "readings", None)
        params = params or {}
        skip = max(0, int(params.get("skip", 0)))
        limit = params.get("limit")
        items = items[skip:] if limit is None else items[skip:skip + int(limit)]
        if not datapoint:
            return items
        return [
            {"timestamp": item.get("timestamp"), datapoint: item.get("reading", {}).get(datapoint)}
            for item in items
            if datapoint in item.get("reading", {})
        ]

    async def readings_summary(self, asset, datapoint=None, params=None):
        return self._asset(asset, "summary", datapoint)

    async def readings_timespan(self, asset, datapoint=None, params=None):
        return self._asset(asset, "timespan", datapoint)
