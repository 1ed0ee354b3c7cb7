from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from .config import load_config
from .errors import FatalBuildError
from .site import build_site

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", default="site.toml", help="Path to CLI defaults file (TOML/YAML/JSON).")
    pre_args, _ = pre_parser.parse_known_args(argv)
    config_path = Path(pre_args.config)
    try:
        config = load_config(config_path)
    except FatalBuildError as exc:
        pre_parser.exit(1, f"error: {exc}\n")

    def cfg_str(key: str) -> str:
        value = config.get(key)
        return "" if value is None else str(value)

    parser = argparse.ArgumentParser(description="Build a static weblog from a manifest of articles.")
    parser.add_argument("--config", default=pre_args.config, help="Path to CLI defaults file (TOML/YAML/JSON).")
    parser.add_argument("--out", default=cfg_str("out"), help="Output directory.")
    parser.add_argument("--mf", "--manifest", dest="manifest", default=cfg_str("manifest"), help="Manifest file.")
    parser.add_argument(
        "--templates",
        default=cfg_str("templates"),
        help="Directory with head/actions/footer/article/index templates (default: bundled set).",
    )
    parser.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=bool(config.get("verbose", False)),
        help="Log at DEBUG level.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if not args.out:
        logger.error("need --out")
        return 1
    if not args.manifest:
        logger.error("need --mf")
        return 1

    start = time.perf_counter()
    try:
        report = build_site(
            Path(args.out),
            Path(args.manifest),
            templates_dir=Path(args.templates) if args.templates else None,
        )
    except FatalBuildError as exc:
        logger.error("%s", exc)
        return 1
    elapsed = time.perf_counter() - start
    logger.info("Build completed in %.2fs.", elapsed)
    if report.failures:
        logger.warning("%d artifacts skipped; see errors above", len(report.failures))
    return 0


if __name__ == "__main__":
    sys.exit(main())
