"""Report mode orchestration: fetch, build, compose.

Each export function takes an injected fetch capability and returns a
GridPackage ready for render_package(). Fetch failures degrade to NA or
no-data output; only caller mistakes raise ValueError.
"""

from dataclasses import dataclass
from typing import Any, Optional

from .env import get_config
from .extract import decode_summary, decode_timespan
from .fetch import (
    AssetBundle,
    FetchCapability,
    fetch_asset_bundle,
    fetch_instance_bundle,
)
from .layout import (
    GridPackage,
    compose_combined,
    compose_raw,
    compose_status,
    compose_summary,
    compose_timespan,
)
from .naming import derive_name
from .readings import build_raw_table, no_data_table
from .reports import build_combined_report, build_summary_table, build_timespan_table
from .status import build_status_report
from . import log

REPORT_MODES = ("raw", "summary", "timespan", "combined")

MIN_LIMIT = 1
MAX_LIMIT = 10000
TIME_WINDOW_KEYS = ("seconds", "minutes", "hours")

SHEET_SUFFIXES = {
    "raw": "data",
    "summary": "summary",
    "timespan": "timespan",
}


def _int_or(value: Any, default: int) -> int:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass
class ExportParams:
    """Validated query parameters for readings requests."""

    limit: int = 100
    skip: int = 0
    seconds: int = -1
    minutes: int = -1
    hours: int = -1
    previous: int = -1

    def to_query(self) -> dict[str, int]:
        """Query dict for the fetch capability; unset windows are omitted."""
        query = {"limit": self.limit}
        if self.skip > 0:
            query["skip"] = self.skip
        for key in TIME_WINDOW_KEYS:
            value = getattr(self, key)
            if value > 0:
                query[key] = value
        if self.previous > 0:
            query["previous"] = self.previous
        return query


def parse_params(raw: Optional[dict[str, Any]] = None) -> tuple[ExportParams, list[str]]:
    """
    Parse and clamp export parameters.

    limit is clamped to 1..10000 (default from config), skip to >= 0,
    and time window values default to -1 (unset). At most one of
    seconds, minutes and hours may be set.

    Args:
        raw: User-supplied values, possibly strings

    Returns:
        (params, errors); errors is empty when the params are usable
    """
    raw = raw or {}
    cfg = get_config()
    params = ExportParams(
        limit=max(MIN_LIMIT, min(MAX_LIMIT, _int_or(raw.get("limit"), cfg.default_limit))),
        skip=max(0, _int_or(raw.get("skip"), 0)),
        seconds=_int_or(raw.get("seconds"), -1),
        minutes=_int_or(raw.get("minutes"), -1),
        hours=_int_or(raw.get("hours"), -1),
        previous=_int_or(raw.get("previous"), -1),
    )

    errors = []
    windows = [key for key in TIME_WINDOW_KEYS if getattr(params, key) > 0]
    if len(windows) > 1:
        errors.append("Use only one time window parameter (seconds, minutes, or hours)")
    return params, errors


def validate_params(raw: Optional[dict[str, Any]] = None) -> ExportParams:
    """Parse export parameters, raising ValueError if they are unusable."""
    params, errors = parse_params(raw)
    if errors:
        raise ValueError("; ".join(errors))
    return params


def sheet_name_for(instance_name: str, asset: str, mode: str) -> str:
    """Sheet name for a single-asset report; the asset and mode are kept whole."""
    max_len = get_config().sheet_name_max
    return derive_name(instance_name, f"{asset}-{SHEET_SUFFIXES[mode]}", max_len=max_len)


async def _fetch_or_none(name: str, coro) -> Any:
    try:
        return await coro
    except Exception as e:
        log.warn(f"{name} fetch failed: {e}")
        return None


async def export_readings_report(
    fetcher: FetchCapability,
    instance_name: str,
    asset: str,
    mode: str = "raw",
    params: Optional[dict[str, Any]] = None,
    datapoint: Optional[str] = None,
    start_row: int = 0,
    start_col: int = 0,
) -> GridPackage:
    """
    Build a single-asset report in raw, summary or timespan mode.

    Summary and timespan fall back to fetching readings and deriving the
    values locally when the endpoint payload is not recognized.

    Args:
        fetcher: Injected fetch capability
        instance_name: Display name of the instance (sheet name prefix)
        asset: Asset code
        mode: "raw", "summary" or "timespan"
        params: Readings query parameters (see parse_params)
        datapoint: Restrict the report to one datapoint
        start_row: Absolute row to place the report at
        start_col: Absolute column to place the report at

    Returns:
        Composed GridPackage
    """
    if fetcher is None:
        raise ValueError("a fetch capability is required")
    if mode not in SHEET_SUFFIXES:
        raise ValueError(f"unknown report mode: {mode}")

    query = validate_params(params).to_query()
    sheet = sheet_name_for(instance_name, asset, mode)
    log.info(f"Exporting {mode} report for {asset} to sheet {sheet}")

    if mode == "raw":
        readings = await _fetch_or_none(
            f"{asset} readings", fetcher.readings(asset, datapoint, query)
        )
        table = build_raw_table(readings, asset, datapoint) if readings is not None else no_data_table()
        return compose_raw(table, sheet, start_row, start_col)

    if mode == "summary":
        payload = await _fetch_or_none(
            f"{asset} summary", fetcher.readings_summary(asset, datapoint, query)
        )
        fallback = None
        if decode_summary(payload, datapoint) is None:
            fallback = await _fetch_or_none(
                f"{asset} readings", fetcher.readings(asset, datapoint, query)
            )
        table = build_summary_table(payload, asset, datapoint, fallback)
        return compose_summary(table, sheet, start_row, start_col)

    payload = await _fetch_or_none(
        f"{asset} timespan", fetcher.readings_timespan(asset, datapoint, query)
    )
    fallback = None
    if decode_timespan(payload) is None:
        fallback = await _fetch_or_none(
            f"{asset} readings", fetcher.readings(asset, datapoint, query)
        )
    table = build_timespan_table(payload, asset, datapoint, fallback)
    return compose_timespan(table, sheet, start_row, start_col)


async def export_combined_report(
    fetcher: FetchCapability,
    instance_name: str,
    instance_url: Optional[str] = None,
    assets: Any = None,
    params: Optional[dict[str, Any]] = None,
    start_row: int = 0,
    start_col: int = 0,
) -> GridPackage:
    """
    Build the combined report over all assets of an instance.

    Args:
        fetcher: Injected fetch capability
        instance_name: Display name of the instance
        instance_url: Used to list assets when assets is not given
        assets: Asset names or asset objects
        params: Readings query parameters
        start_row: Absolute row to place the report at
        start_col: Absolute column to place the report at

    Returns:
        Composed GridPackage
    """
    if fetcher is None:
        raise ValueError("a fetch capability is required")
    if assets is None:
        if instance_url is None:
            raise ValueError("either assets or instance_url is required")
        assets = await _fetch_or_none(f"{instance_url} assets", fetcher.assets(instance_url))
        if assets is None:
            log.warn(f"{instance_name}: asset list unavailable, combined report has no data")
            assets = []

    query = validate_params(params).to_query()

    async def per_asset_fetch(name: str) -> AssetBundle:
        bundle = await fetch_asset_bundle(fetcher, name, params=query)
        if decode_summary(bundle.summary) is None or decode_timespan(bundle.timespan) is None:
            log.debug(f"{name}: fetching readings for local derivation")
            bundle.readings = await _fetch_or_none(
                f"{name} readings", fetcher.readings(name, None, query)
            )
        return bundle

    report = await build_combined_report(assets, per_asset_fetch)
    sheet = derive_name(instance_name, "Combined", max_len=get_config().sheet_name_max)
    log.info(f"Exporting combined report for {len(report.entries)} asset(s) to sheet {sheet}")
    return compose_combined(report, sheet, start_row, start_col)


async def export_report(
    fetcher: FetchCapability,
    instance_name: str,
    mode: str,
    asset: Optional[str] = None,
    instance_url: Optional[str] = None,
    params: Optional[dict[str, Any]] = None,
    datapoint: Optional[str] = None,
) -> GridPackage:
    """Dispatch to the export function for a report mode."""
    if mode not in REPORT_MODES:
        raise ValueError(f"unknown report mode: {mode}")
    if mode == "combined":
        return await export_combined_report(
            fetcher, instance_name, instance_url=instance_url, params=params
        )
    if not asset:
        raise ValueError(f"{mode} report requires an asset")
    return await export_readings_report(
        fetcher, instance_name, asset, mode, params=params, datapoint=datapoint
    )


async def export_status_report(
    fetcher: FetchCapability,
    instance_urls: list[str],
    instance_name: str = "Instances",
    start_row: int = 0,
    start_col: int = 0,
) -> GridPackage:
    """
    Build the status report for one or more instances.

    Args:
        fetcher: Injected fetch capability
        instance_urls: Instance base URLs, one column each
        instance_name: Sheet name prefix
        start_row: Absolute row to place the report at
        start_col: Absolute column to place the report at

    Returns:
        Composed GridPackage
    """
    if fetcher is None:
        raise ValueError("a fetch capability is required")

    table = await build_status_report(
        instance_urls, lambda url: fetch_instance_bundle(fetcher, url)
    )
    sheet = derive_name(instance_name, "Status", max_len=get_config().sheet_name_max)
    log.info(f"Exporting status for {len(instance_urls)} instance(s) to sheet {sheet}")
    return compose_status(table, sheet, start_row, start_col)
