#!/usr/bin/env python3
"""
Restore a screen's filters from a shared URL and report what survived.
"""
import sys
import json
import asyncio
import logging
import argparse
from pathlib import Path

# ensure the project root is on PYTHONPATH
sys.path.insert(0, str(Path(__file__).parent.parent))

from cascade_filters.config.dashboard_config import load_config
from cascade_filters.services import ServiceContainer
from cascade_filters.services.pages import SCREENS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s"
)
logger = logging.getLogger(__name__)


def build_parser():
    p = argparse.ArgumentParser(
        description="Hydrate a screen from a URL and print the canonical result"
    )
    p.add_argument(
        "-s", "--screen",
        required=True,
        choices=sorted(SCREENS),
        help="Screen whose filters the URL belongs to"
    )
    p.add_argument(
        "url",
        help="Full URL or bare query string, e.g. 'country=TR&cities=IST,ANK'"
    )
    p.add_argument(
        "-c", "--config",
        type=Path,
        help="Dashboard config file (defaults to dashboard.yaml)"
    )
    p.add_argument(
        "--search",
        action="store_true",
        help="Also run the search and print the first page"
    )
    return p


def parse_args():
    return build_parser().parse_args()


def display_report(report):
    print("\nHydration Report:")
    print(f"  Complete        : {report.complete}")
    for name, result in report.chains.items():
        print(f"  {name:<16}: applied={result.applied}")
        if result.mismatch:
            m = result.mismatch
            print(f"  {'':<16}  stopped at {m.level_id}={m.value} ({m.reason})")
    for name, ids in report.dropped_ids.items():
        print(f"  Dropped {name:<8}: {', '.join(ids)}")
    if report.dropped_params:
        print(f"  Ignored params  : {', '.join(report.dropped_params)}")


async def run(args):
    config = load_config(args.config)
    services = ServiceContainer.initialize(config)
    controller = services.create_controller(args.screen, auto_apply=False)

    report = await controller.init_from_url(args.url)
    display_report(report)

    query = controller.apply()
    print(f"\nCanonical URL  : ?{controller.last_applied_url}")
    print(f"Query variables:\n{json.dumps(query, indent=2, default=str)}")

    if args.search:
        result = await controller.search()
        if result is None:
            for note in controller.drain_notifications():
                logger.error(note.message)
            return 1
        print(f"\nResults: {result.item_count} records, page {result.page_index + 1}/{max(result.page_count, 1)}")
        for item in result.items:
            print(f"  • {item.get('id')}")
    return 0


def main():
    args = parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
