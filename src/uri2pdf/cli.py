import argparse
import logging
import sys

from . import batch
from .engine import chromium
from .errors import SessionCreationError


def parse_header(value: str):
    """Parse a ``Name: value`` header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Invalid header (expected 'Name: value'): {value}")
    return name.strip(), header_value.strip()


def main():
    parser = argparse.ArgumentParser(
        prog="uri2pdf", description="Convert URIs to PDF with a headless browser"
    )
    subparsers = parser.add_subparsers(dest="command", help="Subcommands")

    # CONVERT
    convert_parser = subparsers.add_parser("convert", help="Convert URIs to PDF or PNG")
    convert_parser.add_argument("uris", nargs="*", help="URIs to convert")
    convert_parser.add_argument("--output", "-o", type=str, default="output", help="Output directory")
    convert_parser.add_argument("--outfile", type=str, help="Output file (single URI only)")
    convert_parser.add_argument(
        "--from-file", type=str, help="File with one 'uri [outfile]' per line"
    )
    convert_parser.add_argument(
        "--format", choices=["pdf", "png"], default="pdf", help="Output format for derived names"
    )
    convert_parser.add_argument(
        "--header",
        "-H",
        type=parse_header,
        action="append",
        dest="header_pairs",
        help="Custom HTTP header 'Name: value' (repeatable)",
    )
    convert_parser.add_argument("--max-delay", type=int, help="Per-job timeout (ms)")
    convert_parser.add_argument("--paper-format", type=str, help="Paper format (A4, Letter, ...)")
    convert_parser.add_argument("--config", type=str, help="Extra YAML config file")
    convert_parser.add_argument(
        "--no-progress", action="store_true", help="Disable the progress bar"
    )
    convert_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # CHECK CHROMIUM
    subparsers.add_parser("check", help="Verify dependencies")

    args = parser.parse_args()

    if args.command == "convert":
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        if not args.uris and not args.from_file:
            convert_parser.error("provide at least one URI or --from-file")

        cli_dict = {k: v for k, v in vars(args).items() if v is not None}
        if args.header_pairs:
            cli_dict["headers"] = dict(args.header_pairs)

        try:
            summary = batch.run_batch(cli_dict)
        except ValueError as e:
            convert_parser.error(str(e))
        except SessionCreationError as e:
            print(f"❌ Could not start the browser: {e}")
            sys.exit(1)
        if summary.failed:
            sys.exit(1)

    elif args.command == "check":
        print("Checking dependencies...")
        if chromium.check_chromium():
            print("✅ Chromium found.")
        else:
            print("❌ Chromium NOT found (run: playwright install chromium).")
            sys.exit(1)

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
