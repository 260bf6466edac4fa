"""Run one asset search against the configured author instance and print it.

Usage:
    python scripts/search_assets.py --query summer --limit 5
    python scripts/search_assets.py --query ford --searchValue ford --replaceValue Acme
"""

import argparse
import asyncio
import json
import os
import sys

# Ensure src is in path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../src")))

from aem_mcp.tools import ToolContext
from aem_mcp.tools.assets import search_assets


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Search DAM assets via QueryBuilder")
    parser.add_argument("--query")
    parser.add_argument("--filename")
    parser.add_argument("--title")
    parser.add_argument("--damPath", default="/content/dam")
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument("--offset", type=int, default=0)
    parser.add_argument("--searchValue")
    parser.add_argument("--replaceValue")
    parser.add_argument("--json", action="store_true", help="Print the result metadata as JSON")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    arguments = {
        key: value
        for key, value in vars(args).items()
        if key != "json" and value is not None
    }
    result = asyncio.run(search_assets(ToolContext.from_environment(), arguments))

    if args.json:
        print(json.dumps(result.metadata, indent=2, default=str))
    else:
        print(result.content[0]["text"])
    return 1 if result.is_error else 0


if __name__ == "__main__":
    sys.exit(main())
