#!/usr/bin/env python3
"""
kurae/main.py

Entry point for the Kurae clinical image viewer.

    kurae-viewer wound.jpg                 open the viewer (clinician mode)
    kurae-viewer wound.jpg --patient       read-only tools, patient mode
    kurae-viewer wound.jpg --summary       print the stored summary and exit
    kurae-viewer wound.jpg --export-csv out.csv

IMAGE may be a file path (raster image or PDF), an http(s) URL or a data URI.
"""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .app_io.export_mod import export_csv
from .app_io.store import AnnotationStore, AnnotationStoreError
from .core.config import ConfigError, load_config
from .core.state import ViewMode
from .features.report.summary import generate_summary
from .file_io import ImageLoadError, load_source_image

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kurae-viewer", description="Kurae clinical image viewer")
    parser.add_argument("image", help="Image path, http(s) URL or data URI")
    parser.add_argument("--patient", action="store_true", help="Open in patient mode (annotation tools disabled)")
    parser.add_argument("--config", help="JSON configuration file")
    parser.add_argument("--storage-dir", help="Directory holding annotation records")
    parser.add_argument("--summary", action="store_true", help="Print the annotation summary and exit")
    parser.add_argument("--export-csv", metavar="PATH", help="Export annotations to CSV and exit")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    if args.storage_dir:
        config['storage_dir'] = args.storage_dir
    logging.basicConfig(
        level=(args.log_level or config['log_level']).upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    store = AnnotationStore(config['storage_dir'])
    if args.summary or args.export_csv:
        try:
            annotations = store.load(args.image)
        except AnnotationStoreError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 1
        if args.summary:
            print(generate_summary(annotations))
        if args.export_csv:
            try:
                rows = export_csv(annotations, args.export_csv)
            except OSError as e:
                print(f"ERROR: {e}", file=sys.stderr)
                return 1
            logger.info("Exported %d annotations to %s", rows, args.export_csv)
        return 0

    try:
        image = load_source_image(
            args.image,
            max_size=(int(config['max_image_width']), int(config['max_image_height'])),
            timeout=float(config['remote_timeout']),
        )
    except ImageLoadError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    from .gui_client import open_viewer

    view_mode = ViewMode.PATIENT if args.patient else ViewMode.DOCTOR
    try:
        open_viewer(args.image, image, store, config, view_mode=view_mode)
    except RuntimeError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
