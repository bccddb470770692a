"""
PingScope
Entry point: configures logging, parses arguments and runs the app.
"""

import logging
import os
import sys
import traceback
from typing import List, Optional


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None) -> str:
    """Configure logging with file and console handlers."""
    log_dir = log_dir or os.path.join(os.path.expanduser("~"), ".pingscope")
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, "pingscope.log")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s  %(levelname)-8s  %(name)-25s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            console,
        ],
    )
    # psutil and reportlab are quiet, PIL (pulled in by reportlab) is not
    logging.getLogger("PIL").setLevel(logging.WARNING)

    return log_file


def main(argv: Optional[List[str]] = None) -> int:
    from pingscope.app import App, build_parser

    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.host and not args.file:
        parser.error("please provide a host to ping (or --file)")

    log_file = setup_logging(args.verbose)
    logger = logging.getLogger("main")
    logger.info("=" * 60)
    logger.info("PingScope starting")
    logger.info(f"Log file: {log_file}")
    logger.info(f"Python: {sys.version}")

    try:
        code = App(args).run()
    except Exception:
        logger.critical("Fatal error:\n" + traceback.format_exc())
        print(f"PingScope hit an unexpected error. Details are in {log_file}",
              file=sys.stderr)
        return 1

    logger.info(f"PingScope finished (exit code {code})")
    return code


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
