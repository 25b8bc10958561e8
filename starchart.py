#!/usr/bin/env python3
"""
starchart.py

Launcher for the star map viewer. Locates the SDE export directory (JSONL
files such as mapSolarSystems.jsonl), loads the map and opens the window.

Usage:
    python starchart.py [SDE_DIR] [--system ID] [--mode security] [--offline]

Without SDE_DIR the settings file's ``sde_dir`` is tried, then `data/sde`
next to this script.
"""
import argparse
import logging
import os
import sys

from log_setup import configure_logging
from palette import COLOR_MODES
from settings import load_settings
from universe import SYSTEMS_FILE, load_map_data
from viewer import StarChartViewer

logger = logging.getLogger("starchart")


def find_sde_dir(preferred=None):
    here = os.path.dirname(os.path.abspath(__file__))
    candidates = [
        preferred,
        os.path.join(here, "data", "sde"),
        os.path.join(here, "..", "data", "sde"),
    ]
    for c in candidates:
        if not c:
            continue
        p = os.path.abspath(c)
        if os.path.exists(os.path.join(p, SYSTEMS_FILE)):
            return p
    return None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interactive star map viewer")
    parser.add_argument("sde_dir", nargs="?", default=None, help="Directory holding the SDE JSONL files.")
    parser.add_argument("--system", dest="system_id", type=int, default=None, help="Open this system on start.")
    parser.add_argument("--region", dest="region_ids", type=int, action="append", default=None,
                        help="Only load this region (repeatable).")
    parser.add_argument("--mode", choices=COLOR_MODES, default=None, help="Initial color mode.")
    parser.add_argument("--width", type=int, default=None)
    parser.add_argument("--height", type=int, default=None)
    parser.add_argument("--settings", default="settings.json", help="Optional JSON settings file.")
    parser.add_argument("--offline", action="store_true", help="Skip overlay and icon downloads.")
    parser.add_argument("--log-level", default=None)
    parser.add_argument("--log-file", default=None)
    return parser


def apply_args(settings, args):
    """Command-line flags win over the settings file."""
    if args.sde_dir:
        settings.sde_dir = args.sde_dir
    if args.region_ids:
        settings.region_ids = args.region_ids
    if args.mode:
        settings.color_mode = args.mode
    if args.width:
        settings.width = args.width
    if args.height:
        settings.height = args.height
    if args.offline:
        settings.overlays = False
        settings.icons = False
    if args.log_level:
        settings.log_level = args.log_level
    if args.log_file:
        settings.log_file = args.log_file
    return settings.validate()


def main(argv=None):
    args = build_parser().parse_args(argv)
    settings = apply_args(load_settings(args.settings), args)
    configure_logging(settings.log_level, settings.log_file)

    path = find_sde_dir(settings.sde_dir)
    if not path:
        logger.error("Could not find %s under %s. Provide the SDE directory as argument.", SYSTEMS_FILE, settings.sde_dir)
        sys.exit(1)
    settings.sde_dir = path

    data = load_map_data(path, set(settings.region_ids) if settings.region_ids else None)
    if not data.systems:
        logger.error("No systems loaded from %s", path)
        sys.exit(1)

    viewer = StarChartViewer(data, settings)
    if args.system_id is not None:
        viewer.open_system(args.system_id)
    viewer.run()


if __name__ == '__main__':
    main()
