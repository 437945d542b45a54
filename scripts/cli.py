"""Minimal CLI entry point for Gmail Unattach."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path

from gmail_unattach.config.settings import UnattachSettings
from gmail_unattach.core.models import ProcessOption, ProcessProgress
from gmail_unattach.pipeline.unattacher import Unattacher


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def on_progress(progress: ProcessProgress) -> None:
    """Print progress updates to stdout."""
    print(
        f"[{progress.current_email or 'idle'}] "
        f"processed={progress.processed}/{progress.total} "
        f"failed={progress.failed}",
        end="\r",
        flush=True,
    )


def _process_option(value: str) -> ProcessOption:
    try:
        return ProcessOption[value.upper().replace("-", "_")]
    except KeyError:
        choices = ", ".join(o.name.lower().replace("_", "-") for o in ProcessOption)
        raise argparse.ArgumentTypeError(f"invalid option {value!r} (choose from {choices})")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Gmail Unattach - Extract attachments from Gmail and slim down the emails"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("list-labels", help="List all Gmail labels")

    create_label_parser = subparsers.add_parser("create-label", help="Create a Gmail label")
    create_label_parser.add_argument("name", help="Label name")

    search_parser = subparsers.add_parser("search", help="List emails matching a query")
    search_parser.add_argument("--query", "-q", default="has:attachment", help="Gmail search query")

    process_parser = subparsers.add_parser("process", help="Process emails matching a query")
    process_parser.add_argument("--query", "-q", default="has:attachment", help="Gmail search query")
    process_parser.add_argument(
        "--option",
        "-o",
        type=_process_option,
        default=ProcessOption.DOWNLOAD,
        help="download, remove, download-and-remove, backup, backup-and-download, "
        "backup-and-remove or backup-download-and-remove (default: download)",
    )
    process_parser.add_argument("--limit", type=int, default=None, help="Process at most N emails")
    process_parser.add_argument(
        "--target-dir", default=None, dest="target_dir", help="Override the target directory"
    )

    subparsers.add_parser("sign-out", help="Forget the cached OAuth token")
    return parser


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)
    if getattr(args, "limit", None) is not None and args.limit < 0:
        print("Error: --limit must be non-negative", file=sys.stderr)
        sys.exit(1)

    settings = UnattachSettings()
    if getattr(args, "target_dir", None):
        settings = settings.model_copy(update={"target_directory": Path(args.target_dir)})
    setup_logging(settings.log_level)

    unattacher = Unattacher(settings=settings, on_progress=on_progress)

    try:
        if args.command == "list-labels":
            labels = unattacher.list_labels()
            print(f"\nFound {len(labels)} labels:\n")
            for label in sorted(labels, key=lambda x: x["name"]):
                print(f"  {label['id']:40s} {label['name']}")

        elif args.command == "create-label":
            print(f"\nLabel {args.name!r}: {unattacher.ensure_label(args.name)}")

        elif args.command == "search":
            emails = unattacher.search(args.query)
            print(f"\nFound {len(emails)} emails:\n")
            for email in emails:
                print(
                    f"  {email.remote_id}  {email.date:%Y-%m-%d}  {email.size_estimate:>10d}  "
                    f"{email.subject[:60]}  [{', '.join(email.attachment_filenames)}]"
                )

        elif args.command == "process":
            print(f"\nMailbox: {unattacher.get_email_address()}")
            process_settings = unattacher.build_process_settings(args.option)
            emails = unattacher.search(args.query)
            if args.limit is not None:
                emails = emails[: args.limit]
            cancel_requested: list[int] = []

            def _cancel(signum: int, frame: object) -> None:
                print("\nFinishing the current email, then stopping...")
                cancel_requested.append(signum)

            signal.signal(signal.SIGINT, _cancel)
            report = unattacher.process_all(
                emails, process_settings, should_cancel=lambda: bool(cancel_requested)
            )
            print(
                f"\n\nProcessed {len(report.results)} emails, "
                f"{len(report.failures)} failed{' (cancelled)' if report.cancelled else ''}"
            )
            for remote_id, result in report.results.items():
                if result.filenames:
                    print(f"  {remote_id}: {', '.join(result.filenames)}")
            for failure in report.failures:
                print(f"  FAILED {failure.email.remote_id}: {failure.error}", file=sys.stderr)

        elif args.command == "sign-out":
            if unattacher.sign_out():
                print("\nSigned out")
            else:
                print("\nNot signed in")

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
