"""
GroundCheck CLI
================

Command-line interface for validating a generated answer.

Usage:
    python -m groundcheck validate --prompt "..." --output "..." --grounding-file doc.txt
    python -m groundcheck validate --prompt "..." --output answer.txt --passages chunks.jsonl
    python -m groundcheck export-schemas --output-dir schemas
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import math
import sys
from pathlib import Path

from groundcheck.config import get_config
from groundcheck.errors import GroundCheckError
from groundcheck.utils import save_json, setup_logging

logger = logging.getLogger("groundcheck.cli")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="groundcheck",
        description="GroundCheck: grounded-output verification for RAG answers",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--verbose", "-v", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ── validate ────────────────────────────────────────────────
    validate_parser = subparsers.add_parser("validate", help="Validate a generated answer")
    validate_parser.add_argument("--prompt", required=True, help="Prompt that produced the answer")
    validate_parser.add_argument(
        "--output", required=True,
        help="Generated answer, JSON claim array, or a path to a file holding either",
    )
    source = validate_parser.add_mutually_exclusive_group()
    source.add_argument("--grounding-file", type=str, default=None, help="Pre-assembled grounding document")
    source.add_argument("--passages", type=str, default=None, help="JSON Lines export of the chunks table")
    validate_parser.add_argument("--where", type=str, default=None, help="Filter expression for --passages")
    validate_parser.add_argument("--limit", type=int, default=None, help="Max passages for --passages")
    validate_parser.add_argument("--json", action="store_true", help="Print the full report as JSON")

    # ── export-schemas ──────────────────────────────────────────
    schema_parser = subparsers.add_parser("export-schemas", help="Export JSON schemas")
    schema_parser.add_argument("--output-dir", default="schemas")

    args = parser.parse_args(argv)

    config = get_config(args.config)
    setup_logging(
        level="DEBUG" if args.verbose else config.log_level,
        format_style=config.log_format,
    )

    if args.command == "validate":
        cmd_validate(args, config)
    elif args.command == "export-schemas":
        cmd_export_schemas(args)
    else:
        parser.print_help()
        sys.exit(1)


def _read_text_arg(value: str) -> str:
    """Return the file contents if `value` names an existing file, else `value`."""
    path = Path(value)
    try:
        if path.is_file():
            return path.read_text(encoding="utf-8")
    except OSError:
        # Too long or otherwise not a usable path: treat as inline text
        return value
    return value


def _fmt(value: float) -> str:
    return "undefined" if math.isnan(value) else f"{value:.3f}"


def cmd_validate(args, config):
    """Validate one answer and print the report."""
    from groundcheck.grounding.source import JsonlPassageSource
    from groundcheck.pipeline import GroundedOutputValidator

    output = _read_text_arg(args.output)

    passages_path = args.passages or config.retrieval.passages_path
    source = None
    if passages_path and not args.grounding_file:
        source = JsonlPassageSource(
            passages_path,
            id_field=config.retrieval.id_field,
            text_field=config.retrieval.text_field,
        )

    grounding = None
    if args.grounding_file:
        try:
            grounding = Path(args.grounding_file).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Cannot read grounding file: {e}", file=sys.stderr)
            sys.exit(2)

    validator = GroundedOutputValidator.from_config(config, passage_source=source)

    async def _validate():
        try:
            if grounding is not None:
                return await validator.validate(args.prompt, grounding, output)
            run = await validator.run(args.prompt, output, where=args.where, limit=args.limit)
            return run.report
        finally:
            await validator.aclose()

    try:
        report = asyncio.run(_validate())
    except GroundCheckError as e:
        print(f"Validation failed: {type(e).__name__}: {e}", file=sys.stderr)
        sys.exit(2)

    if args.json:
        print(report.model_dump_json(indent=2))
        return

    print(f"\nRun: {report.run_id}")
    print(f"Claims: {len(report.claims)}")
    print(f"Entailment:    yes={report.entailment_counts.yes} no={report.entailment_counts.no}")
    c = report.contradiction_counts
    print(f"Contradiction: yes={c.yes} no={c.no} idk={c.idk}")
    print(f"Missed facts (high/medium): {report.missed_count}")
    print(f"F1 (classifier): {_fmt(report.f1_classifier)}")
    print(f"F1 (judge):      {_fmt(report.f1_judge)}")
    for timing in report.stage_timings:
        print(f"  {timing.stage:<14} {timing.elapsed_ms:8.1f} ms")


def cmd_export_schemas(args):
    """Export JSON schemas for the data models."""
    from groundcheck.schemas.audit import AuditRecord
    from groundcheck.schemas.passage import GroundingPassage
    from groundcheck.schemas.verification import (
        MissedFactList,
        ValidationReport,
        VerdictList,
    )

    output_dir = Path(args.output_dir)
    for name, model in [
        ("grounding_passage", GroundingPassage),
        ("verdicts", VerdictList),
        ("missed_facts", MissedFactList),
        ("validation_report", ValidationReport),
        ("audit_record", AuditRecord),
    ]:
        path = save_json(model.model_json_schema(), output_dir / f"{name}.schema.json")
        print(f"  ✓ {path}")


if __name__ == "__main__":
    main()
