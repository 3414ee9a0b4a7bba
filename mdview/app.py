"""Command-line entry point for the markdown viewer."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from PySide6.QtWidgets import QApplication, QMessageBox

from . import __version__
from .window import MarkdownViewerWindow
from .window_state import APPLICATION, ORGANIZATION

LOG_FORMAT = "%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s"
LOG_LEVEL_ENV_VAR = "MDVIEW_LOG_LEVEL"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

NO_FILE_MESSAGE = (
    "Please open a markdown file from your file manager or provide a file path "
    "as a command line argument."
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdview",
        description="View a markdown file rendered as HTML.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="Markdown file to open.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        type=str.upper,
        default=None,
        help=f"Logging level (default: ${LOG_LEVEL_ENV_VAR}, or WARNING).",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def resolve_log_level(args: argparse.Namespace) -> int:
    """Pick the logging level from --log-level, -v, the environment, then WARNING."""
    if args.log_level:
        return getattr(logging, args.log_level)
    if args.verbose:
        return logging.DEBUG
    env_value = os.environ.get(LOG_LEVEL_ENV_VAR, "").strip().upper()
    if env_value in LOG_LEVELS:
        return getattr(logging, env_value)
    return logging.WARNING


def configure_logging(level: int) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(resolve_log_level(args))

    app = QApplication(sys.argv[:1])
    app.setOrganizationName(ORGANIZATION)
    app.setApplicationName(APPLICATION)
    app.setApplicationDisplayName("Markdown Viewer")

    if args.path is None:
        logger.error("No file provided")
        QMessageBox.information(None, "No File Provided", NO_FILE_MESSAGE)
        return 1

    window = MarkdownViewerWindow()
    if not window.load_markdown_file(args.path):
        return 1
    window.show()
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
