#!/usr/bin/env python3
"""
crkr: CreeperKeeper command-line entry point.
"""

import sys
import shutil
import logging
import traceback
from pathlib import Path

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from creeperkeeper.cli.commands import REQUIRED_TOOLS, build_parser, run
from creeperkeeper.core.error_codes import JobError

logger = logging.getLogger("crkr")


def setup_logging(verbose: bool = False, log_file: Path | None = None):
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def check_prerequisites(command: str) -> bool:
    """Check the external tools `command` needs are on PATH."""
    missing = [tool for tool in REQUIRED_TOOLS.get(command, []) if not shutil.which(tool)]
    for tool in missing:
        logger.error("%s not found in PATH", tool)
    return not missing


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    if not check_prerequisites(args.command):
        return 1

    try:
        return run(args)
    except JobError as e:
        logger.error("%s: %s", args.command, e.message)
        return 1
    except OSError as e:
        logger.error("%s: %s", args.command, e)
        return 1
    except Exception as e:
        logger.critical("Fatal error: %s: %s\n%s", type(e).__name__, e, traceback.format_exc())
        return 1


if __name__ == "__main__":
    sys.exit(main())
