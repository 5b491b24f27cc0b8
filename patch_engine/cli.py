"""
`patch-engine` command line.

Commands
--------
patch-engine apply changes.diff                  -- apply under the current directory
patch-engine apply changes.diff --root src/app   -- apply under another root
patch-engine apply - --dry-run                   -- read the diff from stdin, write nothing
patch-engine apply changes.diff -p1 --preview    -- strip one path component, show diffs first
patch-engine check changes.diff                  -- parse only, list files and hunks

Exit status: 0 all files applied, 1 partially applied, 2 nothing applied
(or the diff could not be read or parsed).
--config may be given before or after the subcommand.
"""

from __future__ import annotations

import argparse
import logging
import sys

from tqdm import tqdm

from .api import parse_failure_report
from .cli_display import print_summary, setup_logger
from .config import Config
from .diff_display import format_patch, show_patches
from .editing.batch import BatchApplier
from .editing.diff_parser import DiffParser
from .editing.errors import ParseError
from .editing.file_store import LocalFileStore
from .editing.metrics import log_apply_metrics
from .editing.models import BatchOutcome, BatchReport
from .report import generate_html_report

logger = logging.getLogger(__name__)

EXIT_CODES = {
    BatchOutcome.ALL_APPLIED: 0,
    BatchOutcome.PARTIALLY_APPLIED: 1,
    BatchOutcome.NONE_APPLIED: 2,
}


def _read_diff(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    with open(source, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patch-engine",
        description="Apply unified diffs with context verification.",
    )
    parser.add_argument("--config", default=None,
                        help="Path to .patch_engine.yaml config file")
    sub = parser.add_subparsers(dest="command", required=True)

    p_apply = sub.add_parser("apply", help="Apply a unified diff")
    p_apply.add_argument("diff", help="Diff file to apply, or '-' for stdin")
    p_apply.add_argument("--root", default=".",
                         help="Directory the diff's paths are relative to")
    p_apply.add_argument("--dry-run", action="store_true",
                         help="Report what would change without writing files")
    p_apply.add_argument("--workers", type=int, default=None,
                         help="Files patched concurrently (default: from config)")
    p_apply.add_argument("-p", "--strip", type=int, default=None,
                         help="Strip N leading path components (default: a/ b/)")
    p_apply.add_argument("--validate-syntax", action="store_true",
                         help="Reject patched files that fail a tree-sitter parse")
    p_apply.add_argument("--preview", action="store_true",
                         help="Show coloured diffs before applying")
    p_apply.add_argument("--no-report", action="store_true",
                         help="Disable HTML report generation")
    p_apply.add_argument("--no-progress", action="store_true",
                         help="Hide the progress bar")
    p_apply.add_argument("--config", default=argparse.SUPPRESS,
                         help="Path to .patch_engine.yaml config file")

    p_check = sub.add_parser("check", help="Parse a diff and list its contents")
    p_check.add_argument("diff", help="Diff file to check, or '-' for stdin")
    p_check.add_argument("-p", "--strip", type=int, default=None,
                         help="Strip N leading path components (default: a/ b/)")
    p_check.add_argument("--config", default=argparse.SUPPRESS,
                         help="Path to .patch_engine.yaml config file")
    return parser


def _cmd_check(args, cfg: Config) -> int:
    strip = args.strip if args.strip is not None else cfg.STRIP
    try:
        patches = DiffParser(strip=strip).parse(_read_diff(args.diff))
    except OSError as exc:
        print(f"  [ERROR] Cannot read diff: {exc}", file=sys.stderr)
        return 2
    except ParseError as exc:
        print(f"  [ERROR] {exc}", file=sys.stderr)
        return 2

    for patch in patches:
        tag = " (new)" if patch.is_new_file else " (deleted)" if patch.is_deleted_file else ""
        print(f"  {patch.file_path}{tag}: {len(patch.hunks)} hunk(s), "
              f"+{patch.added} -{patch.removed}")
    print(f"\n  {len(patches)} file section(s) OK")
    return 0


def _cmd_apply(args, cfg: Config) -> int:
    strip = args.strip if args.strip is not None else cfg.STRIP
    try:
        diff_text = _read_diff(args.diff)
    except OSError as exc:
        print(f"  [ERROR] Cannot read diff: {exc}", file=sys.stderr)
        return 2

    diffs: list[str] = []
    try:
        patches = DiffParser(strip=strip).parse(diff_text)
    except ParseError as exc:
        logger.warning("[Patch] Diff rejected: %s", exc)
        report = parse_failure_report(exc, dry_run=args.dry_run)
    else:
        if args.preview:
            diffs = show_patches(patches)
        else:
            diffs = [format_patch(p) for p in patches]
        report = _run_batch(patches, args, cfg)

    print_summary(report)

    if cfg.METRICS_ENABLED:
        log_apply_metrics(report, metrics_dir=cfg.METRICS_DIR)
    if not args.no_report:
        path = generate_html_report(
            report, diffs, source=args.diff, output_dir=cfg.REPORT_DIR,
        )
        print(f"  Report: {path}")

    return EXIT_CODES[report.overall]


def _run_batch(patches, args, cfg: Config) -> BatchReport:
    pbar = tqdm(total=len(patches), unit="file", desc="Patching",
                disable=args.no_progress or not patches)

    def _progress(current: int, total: int, path: str) -> None:
        pbar.set_postfix_str(path, refresh=False)
        pbar.update(1)

    applier = BatchApplier(
        LocalFileStore(args.root),
        max_workers=args.workers or cfg.MAX_WORKERS,
        validate_syntax=args.validate_syntax or cfg.VALIDATE_SYNTAX,
        dry_run=args.dry_run,
        progress=_progress,
    )
    try:
        return applier.apply_all(patches)
    finally:
        pbar.close()


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR)

    if args.command == "check":
        return _cmd_check(args, cfg)
    return _cmd_apply(args, cfg)


if __name__ == "__main__":
    sys.exit(main())
