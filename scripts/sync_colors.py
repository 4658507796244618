from __future__ import annotations

# Allow running scripts without requiring an editable install (`pip install -e .`).
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_PATH))

import argparse
import asyncio
from datetime import datetime
from zoneinfo import ZoneInfo

from velovmap.config.loader import load_config
from velovmap.ingestion.backend_base import BackendClient
from velovmap.ingestion.forecast_client import ForecastClient
from velovmap.markers.fleet import FleetColorSync, load_markers
from velovmap.markers.render import build_map
from velovmap.state import AppState
from velovmap.utils.logging import configure_logging


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run one color pass over all stations and print the marker colors.")
    p.add_argument("--at", required=True, help="Local wall-clock instant, e.g. 2026-10-20T14:30")
    p.add_argument("--search", default="", help="Restrict to stations matching this text")
    p.add_argument("--html", default=None, help="Also write the colored map to this HTML file")
    return p.parse_args()


async def _run(args: argparse.Namespace) -> None:
    config = load_config()
    configure_logging(config.logging)
    tz = ZoneInfo(config.temporal.timezone)

    with BackendClient.from_settings(config.backend) as backend:
        client = ForecastClient(backend=backend)
        state = AppState(tz=tz)
        state.set_search_text(args.search)
        state.select_instant(datetime.fromisoformat(args.at))

        await load_markers(state, client)
        markers = await FleetColorSync(state=state, client=client).run()

    for marker in markers:
        print(f"{marker.station_id}\t{marker.color.to_css()}")
    if args.html:
        build_map(markers, config.map).save(args.html)


def main() -> None:
    asyncio.run(_run(_parse_args()))


if __name__ == "__main__":
    main()
