#!/usr/bin/env python3
"""
Local Resolution Script

Resolve a hostname + path against the configured content store and print
the SEO record (or the synthesized document).

Usage:
    python scripts/resolve_local.py shop.example /about
    python scripts/resolve_local.py shop.example / --html --body
    python scripts/resolve_local.py shop.example / --init-db
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from sitegate.pipeline import PageRequest, RenderPipeline
from sitegate.store import SqlContentStore, create_store
from sitegate.utils.config import get_settings


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ]
    )


async def run(hostname: str, path: str, html: bool, body: bool, init_db: bool) -> int:
    load_dotenv()
    settings = get_settings()

    store = create_store(settings)
    if init_db:
        if not isinstance(store, SqlContentStore):
            print("ERROR: --init-db only applies to STORE_BACKEND=sql", file=sys.stderr)
            return 2
        store.create_tables()

    try:
        pipeline = RenderPipeline(store, settings)
        resolution = await pipeline.resolve(PageRequest(hostname=hostname, path=path))

        if html:
            print(pipeline.render(resolution, with_body=body))
        else:
            print(json.dumps({
                **resolution.record.to_dict(),
                "outcome": resolution.outcome.value,
                "rule": resolution.rule,
                "is_custom_domain": resolution.is_custom_domain,
                "not_found": resolution.not_found,
                "trace_id": resolution.trace_id,
            }, indent=2))
    finally:
        await store.close()

    return 1 if resolution.not_found else 0


def main():
    parser = argparse.ArgumentParser(description="Resolve SEO data for a hostname and path")
    parser.add_argument("hostname", help="Request hostname (e.g. shop.example)")
    parser.add_argument("path", nargs="?", default="/", help="Request path")
    parser.add_argument("--html", action="store_true", help="Print the synthesized document")
    parser.add_argument("--body", action="store_true", help="Include the rendered page body")
    parser.add_argument("--init-db", action="store_true", help="Create SQL tables first")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging(args.verbose)
    sys.exit(asyncio.run(run(args.hostname, args.path, args.html, args.body, args.init_db)))


if __name__ == "__main__":
    main()
