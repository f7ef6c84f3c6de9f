"""
LoadTap CLI

Command-line interface for converting HAR captures into k6 scripts.

Commands:
    convert     - Generate a k6 script from a HAR file
    validate    - Report capture issues that affect conversion

Examples:
    # Batched replay with status checks
    loadtap convert session.har -O script.js --enable-status-code-checks

    # Sequential replay with response correlation
    loadtap convert session.har --no-batch --correlate -O script.js
"""

import argparse
import logging
import sys
from collections import Counter
from datetime import timedelta
from functools import partial
from pathlib import Path
from typing import List, Optional

from .common import URLMatcher
from .convert import ConversionOptions, convert
from .errors import ConversionError
from .har import HARLoader


def _options_from_args(args) -> ConversionOptions:
    """Build options from an optional YAML profile plus command-line overrides."""
    options = ConversionOptions.from_yaml(args.config) if args.config else ConversionOptions()

    window = None
    if args.batch_threshold is not None:
        window = timedelta(milliseconds=args.batch_threshold)

    return options.with_overrides(
        enable_checks=True if args.enable_status_code_checks else None,
        return_on_failed_check=True if args.return_on_failed_check else None,
        batch_window=window,
        no_batch=True if args.no_batch else None,
        correlate=True if args.correlate else None,
        strict_correlation=True if args.strict_correlation else None,
        only=args.only or None,
        skip=args.skip or None,
    )


def cmd_convert(args):
    """
    Convert a HAR file to a k6 script.

    Args:
        args: Parsed command-line arguments
    """
    # Keep stdout clean when the script itself goes there
    say = print if args.output else partial(print, file=sys.stderr)

    say(f"📄 LoadTap HAR Conversion")
    say(f"   HAR file: {args.har_file}")

    try:
        options = _options_from_args(args)
        capture = HARLoader(args.har_file).load()
        script = convert(capture, options)
    except FileNotFoundError as e:
        say(f"❌ {e}")
        sys.exit(1)
    except ConversionError as e:
        say(f"❌ Conversion failed ({type(e).__name__}): {e}")
        sys.exit(1)

    if args.output:
        output_path = Path(args.output)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(script, encoding='utf-8')
        except OSError as e:
            say(f"❌ Error writing to {output_path}: {e}")
            sys.exit(1)
        say(f"✓ Wrote k6 script → {output_path}")
    else:
        sys.stdout.write(script)


def cmd_validate(args):
    """
    Validate a HAR file and report issues that affect conversion.

    Args:
        args: Parsed command-line arguments
    """
    print(f"✓ LoadTap Capture Validation")
    print(f"   HAR file: {args.har_file}")

    try:
        capture = HARLoader(args.har_file).load()
    except (FileNotFoundError, ConversionError) as e:
        print(f"❌ Failed to load capture: {e}")
        sys.exit(1)

    print(f"   Pages: {len(capture.pages)}")
    print(f"   Entries: {len(capture.entries)}")
    print()

    errors = []
    warnings = []

    page_ids = Counter(page.id for page in capture.pages)
    for page_id, count in page_ids.items():
        if count > 1:
            errors.append(f"Page id {page_id!r} is listed {count} times")

    for i, entry in enumerate(capture.entries):
        if entry.pageref and entry.pageref not in page_ids:
            errors.append(f"Entry {i}: references unknown page {entry.pageref!r}")
        try:
            URLMatcher.extract_host(entry.request.url)
        except ConversionError as e:
            errors.append(f"Entry {i}: {e}")

    multipart = sum(1 for e in capture.entries
                    if e.request.post_data is not None and e.request.post_data.is_multipart)
    if multipart:
        warnings.append(f"{multipart} multipart/form-data requests will be skipped")

    unrecorded = sum(1 for e in capture.entries if e.response is None or e.response.status == 0)
    if unrecorded:
        warnings.append(f"{unrecorded} entries have no recorded status (no checks generated)")

    error_count = sum(1 for e in capture.entries if e.response is not None and e.response.status >= 400)
    if error_count:
        warnings.append(f"{error_count} entries have error status codes (4xx/5xx)")

    if errors:
        print("❌ Errors found:")
        for error in errors:
            print(f"   • {error}")
        print()

    if warnings:
        print("⚠️  Warnings:")
        for warning in warnings:
            print(f"   • {warning}")
        print()

    if not errors and not warnings:
        print("✅ All validations passed!")
    else:
        print(f"📊 Summary:")
        print(f"   Errors: {len(errors)}")
        print(f"   Warnings: {len(warnings)}")

    if errors:
        sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='loadtap',
        description="LoadTap - Convert HAR captures into k6 load-test scripts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Batched replay, script on stdout
  %(prog)s convert session.har

  # Sequential replay with correlation and short-circuiting checks
  %(prog)s convert session.har --no-batch --correlate \\
      --enable-status-code-checks --return-on-failed-check -O script.js

  # Only replay API traffic
  %(prog)s convert session.har --only api.example.com --skip "*.doubleclick.net"

  # Check a capture before converting
  %(prog)s validate session.har
        """
    )
    parser.add_argument('--verbose', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- CONVERT command ---
    convert_parser = subparsers.add_parser('convert', help='Generate a k6 script from a HAR file')
    convert_parser.add_argument('har_file', help='HAR capture file')
    convert_parser.add_argument('-O', '--output', help='Output script file (default: stdout)')
    convert_parser.add_argument('-c', '--config', help='YAML conversion profile')
    convert_parser.add_argument('--enable-status-code-checks', action='store_true',
                                help='Add status code checks for recorded responses')
    convert_parser.add_argument('--return-on-failed-check', action='store_true',
                                help="Stop the iteration on the first failed check (sequential mode)")
    convert_parser.add_argument('--batch-threshold', type=int, default=None, metavar='MS',
                                help='Requests started within this many ms are batched (default: 500)')
    convert_parser.add_argument('--no-batch', action='store_true', help='Replay requests one by one')
    convert_parser.add_argument('--correlate', action='store_true',
                                help='Reuse values from previous JSON responses (needs --no-batch)')
    convert_parser.add_argument('--strict-correlation', action='store_true',
                                help='Fail on request/response shape mismatches instead of skipping them')
    convert_parser.add_argument('--only', nargs='+', help='Only include hosts matching these patterns')
    convert_parser.add_argument('--skip', nargs='+', help='Skip hosts matching these patterns')

    # --- VALIDATE command ---
    validate_parser = subparsers.add_parser('validate', help='Validate a HAR capture')
    validate_parser.add_argument('har_file', help='HAR capture file')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    if args.command == 'convert':
        cmd_convert(args)
    elif args.command == 'validate':
        cmd_validate(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
