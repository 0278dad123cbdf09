"""Entry point for the localization resource copy tool."""

import argparse
import sys

from copystrings.cli import run


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on malformed arguments."""

    def error(self, message: str) -> None:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="copystrings",
        description="Copy .strings resources into a directory, normalizing their encoding",
    )
    parser.add_argument("sources", nargs="+", metavar="SOURCE", help="Source files to copy")
    parser.add_argument(
        "--outdir",
        action="append",
        metavar="DIR",
        help="Destination directory (required, exactly once)",
    )
    parser.add_argument(
        "--validate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Lint each file with plutil before converting (default: off)",
    )
    parser.add_argument(
        "--inputencoding",
        metavar="ENC",
        help="Declared encoding of the source files",
    )
    parser.add_argument(
        "--outputencoding",
        metavar="ENC",
        help="Target encoding, or 'binary' for a binary property list (default: UTF-16)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Optional YAML configuration file with tool paths and defaults",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run the copy pipeline."""
    args = build_parser().parse_args(argv)
    run(
        sources=args.sources,
        output_dirs=args.outdir,
        config_path=args.config,
        validate=args.validate,
        input_encoding=args.inputencoding,
        output_encoding=args.outputencoding,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    main()
