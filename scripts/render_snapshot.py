#!/usr/bin/env python3
"""
Render reports from a JSON snapshot.

Replays a captured snapshot through every report mode and writes an
.xlsx workbook plus one HTML preview page per sheet to OUT_DIR.

Usage: render_snapshot.py SNAPSHOT.json [INSTANCE_NAME]
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from datalink.charts import render_chart_svg
from datalink.env import get_config
from datalink.export import (
    export_combined_report,
    export_readings_report,
    export_status_report,
)
from datalink.fetch import RetryingFetcher, SnapshotFetcher
from datalink.host import HostSession, render_package
from datalink.html import write_html
from datalink.xlsx import WorkbookHost
from datalink import log


async def build_packages(fetcher, snapshot: dict, instance_name: str) -> list:
    """Build a package for every report the snapshot can feed."""
    urls = sorted(snapshot.get("instances", {}))
    assets = sorted(snapshot.get("assets", {}))

    packages = [await export_status_report(fetcher, urls, instance_name)]
    if urls:
        packages.append(
            await export_combined_report(fetcher, instance_name, instance_url=urls[0])
        )
    for asset in assets:
        for mode in ("raw", "summary", "timespan"):
            packages.append(
                await export_readings_report(fetcher, instance_name, asset, mode)
            )
    return packages


def main():
    """Render all reports for a snapshot file."""
    if len(sys.argv) < 2:
        print(f"Usage: {sys.argv[0]} SNAPSHOT.json [INSTANCE_NAME]")
        sys.exit(1)

    snapshot_path = Path(sys.argv[1])
    instance_name = sys.argv[2] if len(sys.argv) > 2 else snapshot_path.stem
    cfg = get_config()

    log.info(f"Rendering reports from {snapshot_path}")
    snapshot = SnapshotFetcher.from_file(snapshot_path)
    fetcher = RetryingFetcher(snapshot)

    packages = asyncio.run(build_packages(fetcher, snapshot.data, instance_name))

    host = WorkbookHost()
    session = HostSession()
    for package in packages:
        render_package(host, session, package)
        chart_svg = (
            render_chart_svg(package.chart, package.cells, package.origin)
            if package.chart is not None else None
        )
        write_html(package, cfg.out_dir / f"{package.sheet_name}.html", chart_svg)

    host.save(cfg.out_dir / f"{instance_name}.xlsx")
    log.info(f"Rendered {len(packages)} report(s) to {cfg.out_dir}")


if __name__ == "__main__":
    main()
