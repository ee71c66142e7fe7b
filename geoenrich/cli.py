"""CLI entrypoint for the address enrichment pipeline."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from geoenrich.common.config_loader import load_config
from geoenrich.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from geoenrich.common.errors import ConfigError, PipelineError
from geoenrich.common.fs import iter_jsonl, write_jsonl
from geoenrich.common.ids import generate_run_id
from geoenrich.common.logging import build_logger, close_logger, log_event
from geoenrich.common.schema import validate_stage_options
from geoenrich.pipeline.flow_step import GeocodeFlowStep
from geoenrich.pipeline.reports import PipelineStats, run_status, write_run_summary


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--input", default=None)
    parser.add_argument("--output", default=None)
    parser.add_argument("--address-field", default="address")
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--api-key", default=None)
    parser.add_argument("--cache-url", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def run_enrich(args: argparse.Namespace, step: GeocodeFlowStep, stats: PipelineStats) -> int:
    if not args.input or not args.output:
        raise ConfigError("enrich requires --input and --output")
    opts = {"address": args.address_field}
    records = step.through(iter_jsonl(Path(args.input)), opts, stats=stats)
    write_jsonl(Path(args.output), records)
    if stats.geocode_failures or stats.cache_write_failures:
        return EXIT_HARD_FAIL if args.strict else EXIT_PARTIAL
    return EXIT_SUCCESS


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    data_dir = Path(args.data_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None

    logger = build_logger(run_id, log_dir=data_dir / "run_meta", level=args.log_level)
    logger_extra = {"run_id": run_id, "stage": args.command}
    stats = PipelineStats()
    try:
        log_event(logger, "command start", event="COMMAND_START", status="ok", **logger_extra)
        try:
            cfg = load_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)
            validate_stage_options({"address": args.address_field})
            if args.command == "check-config":
                log_event(logger, "configuration valid", event="CONFIG_OK", status="ok", **logger_extra)
                return EXIT_SUCCESS

            step = GeocodeFlowStep.from_config(cfg, api_key=args.api_key, cache_url=args.cache_url, logger=logger)
            try:
                exit_code = run_enrich(args, step, stats)
            finally:
                step.close()
        except PipelineError as exc:
            log_event(
                logger,
                f"command failed: {exc}",
                event="COMMAND_FAIL",
                status="error",
                error_code=exc.error_code,
                **logger_extra,
            )
            if args.command == "enrich":
                write_run_summary(data_dir, run_id, args.address_field, stats, status="error", error_code=exc.error_code)
            return EXIT_HARD_FAIL

        write_run_summary(data_dir, run_id, args.address_field, stats)
        log_event(
            logger,
            "command end",
            event="COMMAND_END",
            status=run_status(stats),
            rows_in=stats.records_in,
            rows_out=stats.records_out,
            **logger_extra,
        )
        return exit_code
    finally:
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
