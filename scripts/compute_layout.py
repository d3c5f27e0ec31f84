"""Compute a settled layout for a graph payload file.

This script:
1. Loads a graph payload (nodes/edges JSON) from disk
2. Filters nodes by weight threshold
3. Runs the force simulation, packs disjoint components and fits the viewport
4. Writes positions and the best-fit camera transform as JSON

Usage:
    python scripts/compute_layout.py graph.json --threshold 0.3 --width 1200 --height 800
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from dotenv import load_dotenv

# Load .env file from project root
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

# Add src to path
sys.path.insert(0, str(project_root / "src"))

from kglens.api.routes import build_layout_response
from kglens.config import settings
from kglens.layout import LayoutConfig, layout_graph
from kglens.models import Viewport


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute a settled graph layout")
    parser.add_argument("input", type=Path, help="Graph payload JSON file")
    parser.add_argument("--threshold", type=float, default=0.0, help="Minimum node weight (0-1)")
    parser.add_argument("--width", type=float, default=1200.0, help="Viewport width in pixels")
    parser.add_argument("--height", type=float, default=800.0, help="Viewport height in pixels")
    parser.add_argument("--seed", type=int, default=None, help="Seed for initial positions")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Output file (default: stdout)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not args.input.exists():
        print(f"Input file not found: {args.input}", file=sys.stderr)
        return 1

    with open(args.input, encoding="utf-8") as f:
        payload = json.load(f)

    config = LayoutConfig.from_settings(settings)
    viewport = Viewport(args.width, args.height)

    start = time.time()
    orchestrator = layout_graph(
        payload,
        viewport,
        threshold=args.threshold,
        config=config,
        seed=args.seed,
    )
    elapsed = time.time() - start

    response = build_layout_response(orchestrator)
    output = json.dumps(response.model_dump(), indent=2, ensure_ascii=False)

    if args.output:
        args.output.write_text(output, encoding="utf-8")
        print(f"Wrote layout to {args.output}", file=sys.stderr)
    else:
        print(output)

    print(
        f"{len(response.nodes)} nodes, {len(response.edges)} edges, "
        f"{response.components} components, laid out in {elapsed:.2f}s",
        file=sys.stderr,
    )
    if response.packing is not None and not response.packing.converged:
        print(
            f"Warning: components still overlap after {response.packing.attempts} attempts",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
