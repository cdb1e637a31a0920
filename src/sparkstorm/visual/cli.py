"""
CLI entry point for the headless preview.

Usage:
    sparkstorm-preview <preset> [options]
    python -m sparkstorm.visual.cli <preset> [options]
"""

import argparse
import logging
import math
import sys
import time
from pathlib import Path

from sparkstorm.core.errors import SparkstormError
from sparkstorm.pipeline import FrameDriver
from sparkstorm.presets import preset_names
from sparkstorm.visual.preview import render_points, save_png


def _progress_bar(current: int, total: int, width: int = 30):
    """Report simulation progress on stdout."""
    total = max(total, 1)
    done = current / total
    if sys.stdout.isatty():
        filled = int(width * done)
        tail = "\n" if current >= total else ""
        bar = "=" * filled + " " * (width - filled)
        print(f"\r  |{bar}| {current}/{total} frames", end=tail, flush=True)
    elif current >= total or current % max(1, total // 10) == 0:
        print(f"  {done:6.1%}  ({current}/{total} frames)", flush=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sparkstorm-preview",
        description="Run an attractor preset headlessly and save a preview image",
    )
    parser.add_argument("preset", choices=preset_names(), help="Scene preset to run")
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output PNG path (default: <preset>.png)",
    )
    parser.add_argument(
        "-n", "--frames", type=int, default=300,
        help="Frames to simulate before capturing (default: 300)",
    )
    parser.add_argument("--fps", type=int, default=60, help="Simulated frame rate (default: 60)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for initial conditions")
    parser.add_argument("--width", type=int, default=960, help="Image width (default: 960)")
    parser.add_argument("--height", type=int, default=720, help="Image height (default: 720)")
    parser.add_argument(
        "--azimuth", type=float, default=0.0,
        help="View azimuth in degrees (default: 0)",
    )
    parser.add_argument(
        "--elevation", type=float, default=0.0,
        help="View elevation in degrees (default: 0)",
    )
    parser.add_argument("--no-glow", action="store_true", help="Disable bloom")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log simulation diagnostics")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.frames <= 0:
        print("Error: --frames must be positive", file=sys.stderr)
        sys.exit(1)

    output = args.output or Path(f"{args.preset}.png")

    try:
        driver = FrameDriver.from_preset(args.preset, seed=args.seed, fps=args.fps)
    except SparkstormError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"Simulating {args.preset}: {args.frames} frames @ {args.fps}fps")
    t0 = time.time()
    snapshot = None
    for snapshot in driver.run(args.frames, progress_callback=_progress_bar):
        pass
    elapsed = time.time() - t0
    driver.dispose()

    print(f"  Simulation took {elapsed:.2f}s ({args.frames / max(elapsed, 1e-3):.1f} fps)")
    if snapshot.resets:
        print(f"  Divergence resets: {snapshot.resets}")

    layers = snapshot.lines + snapshot.fields
    frame = render_points(
        layers,
        width=args.width,
        height=args.height,
        azimuth=math.radians(args.azimuth),
        elevation=math.radians(args.elevation),
        glow_sigma=0.0 if args.no_glow else 1.5,
    )
    save_png(frame, output)
    print(f"  Output: {output}")


if __name__ == "__main__":
    main()
