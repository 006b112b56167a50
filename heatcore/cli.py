"""
heatcore command line

    heatcore heatmap --input issues.json --preset maintenance --mode clustered
    heatcore stats --input issues.json --mode grid
    heatcore priorities --input issues.json --group-by zone

Reads issues from a JSON file (a list of records or {"issues": [...]}) and
prints the result as JSON on stdout.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from heatcore.api.handlers import handle_heatmap, handle_priorities, handle_stats
from heatcore.utils.constants import MODE_ALIASES, VALID_GROUP_BY

logger = logging.getLogger(__name__)

HANDLERS = {
    "heatmap": handle_heatmap,
    "stats": handle_stats,
    "priorities": handle_priorities,
}


def _load_issues(path: str) -> List[Dict[str, Any]]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("issues", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of issues or an object with an 'issues' list")
    return data


def _json_arg(value: Optional[str], name: str) -> Optional[Dict[str, Any]]:
    if not value:
        return None
    parsed = json.loads(value)
    if not isinstance(parsed, dict):
        raise ValueError(f"--{name} must be a JSON object")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="heatcore",
        description="Issue heatmap aggregation and priority scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", choices=sorted(HANDLERS), help="Operation to run")
    parser.add_argument("--input", "-i", required=True, help="Path to issues JSON file")
    parser.add_argument("--preset", help="Preset name (emergency, maintenance, overview, zone, custom)")
    parser.add_argument("--mode", choices=sorted(MODE_ALIASES), help="Aggregation mode")
    parser.add_argument("--config", help="Config overrides as a JSON object")
    parser.add_argument("--filters", help="Filters as a JSON object")
    parser.add_argument("--group-by", choices=VALID_GROUP_BY, help="Risk grouping (priorities only)")
    parser.add_argument("--now", help="Evaluation time (ISO-8601); defaults to current UTC time")
    parser.add_argument("--geojson", action="store_true", help="Emit a GeoJSON FeatureCollection (heatmap only)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    return parser


def build_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "issues": _load_issues(args.input),
        "filters": _json_arg(args.filters, "filters"),
        "preset": args.preset,
        "now": args.now,
    }
    if args.command == "priorities":
        if args.group_by:
            payload["group_by"] = args.group_by
        return payload

    payload["config"] = _json_arg(args.config, "config")
    if args.mode:
        payload["mode"] = args.mode
    if args.command == "heatmap":
        payload["geojson"] = args.geojson
    return payload


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        payload = build_payload(args)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to read input: {e}")
        return 2

    result = HANDLERS[args.command](payload)
    print(json.dumps(result, indent=2))
    return 1 if "error" in result else 0


if __name__ == "__main__":
    sys.exit(main())
