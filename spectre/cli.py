#!/usr/bin/env python3
"""Spectre collector CLI entrypoint (package module)."""

from __future__ import annotations

import argparse
import signal
import sys
import uuid
from typing import List, Optional

from spectre.export.base import SampleSink, SinkUnavailableError
from spectre.export.csv_sink import CSVSink
from spectre.export.spectre_server import SpectreServerSink
from spectre.export.sqlite import SQLiteSink
from spectre.sweep.model import SweepOptions
from spectre.sweep.parser import SweepLineParser
from spectre.sweep.session import DEFAULT_BATCH_QUEUE_SIZE, DEFAULT_LINE_QUEUE_SIZE, CollectionSession
from spectre.sweep.tools import SWEEP_TOOLS, ProducerError, make_sweep_tool
from spectre.util.duration import parse_duration_to_seconds
from spectre.util.exit_codes import ArgumentParser, ExitCode
from spectre.util.logging import configure_logging, get_logger, log_exception

logger = get_logger(__name__)

OUTPUTS = ("csv", "sqlite", "spectre")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    if argv is None:
        argv = sys.argv[1:]

    p = ArgumentParser(
        description="Collect RF power sweeps, aggregate them per frequency bin and export the aggregates",
    )
    p.add_argument("--identifier", type=str, default="", help="Unique identifier of this collector instance (defaults to a random UUID)")
    p.add_argument("--low-freq", dest="low_freq", type=int, default=400_000_000, help="Lower frequency boundary in Hz (default 400000000)")
    p.add_argument("--high-freq", dest="high_freq", type=int, default=450_000_000, help="Upper frequency boundary in Hz (default 450000000)")
    p.add_argument("--bin-size", dest="bin_size", type=int, default=12_500, help="Size of a frequency bin in Hz (default 12500)")
    p.add_argument("--samples", dest="sample_size", type=int, default=8192, help="Samples to take per bin, hackrf only (default 8192)")
    p.add_argument(
        "--integration-interval",
        dest="integration_interval",
        type=parse_duration_to_seconds,
        default=5.0,
        help="How long to aggregate readings before exporting, e.g. '5s', '1m' (default 5s)",
    )
    p.add_argument("--sdr", choices=sorted(SWEEP_TOOLS), required=True, help="Sweep tool to run")
    p.add_argument("--sdr-executable", dest="sdr_executable", type=str, default=None, help="Override the sweep tool binary path")
    p.add_argument("--output", choices=OUTPUTS, required=True, help="Export mechanism")

    p.add_argument("--sqlite-file", dest="sqlite_file", type=str, default="/tmp/spectre", help="SQLite DB file for --output sqlite (default /tmp/spectre)")
    p.add_argument("--spectre-server", dest="spectre_server", type=str, default="http://localhost:8080", help="Scheme, address and port of the spectre server")
    p.add_argument("--spectre-server-samples", dest="spectre_server_samples", type=int, default=0, help="Samples sent to the server per request (0 = 100)")
    p.add_argument("--spectre-token", dest="spectre_token", type=str, default="", help="Bearer token for the spectre server")

    p.add_argument("--line-queue", dest="line_queue", type=int, default=DEFAULT_LINE_QUEUE_SIZE, help="Raw rows buffered between the tool and the parser")
    p.add_argument("--batch-queue", dest="batch_queue", type=int, default=DEFAULT_BATCH_QUEUE_SIZE, help="Flushed batches buffered ahead of the sink")

    p.add_argument("--log-level", dest="log_level", type=str, default=None, help="DEBUG, INFO, WARNING or ERROR (default from SPECTRE_LOG_LEVEL or INFO)")
    p.add_argument("--log-json", dest="log_json", type=str, default=None, help="Also write JSON log lines to this file")

    args = p.parse_args(argv)

    if not args.identifier:
        args.identifier = str(uuid.uuid4())
    if args.high_freq <= args.low_freq:
        p.error("--high-freq must be greater than --low-freq")
    if args.bin_size <= 0:
        p.error("--bin-size must be > 0")
    if args.sample_size <= 0:
        p.error("--samples must be > 0")
    if args.integration_interval is None or args.integration_interval <= 0:
        p.error("--integration-interval must be > 0")
    return args


def build_sink(args: argparse.Namespace) -> SampleSink:
    if args.output == "csv":
        return CSVSink()
    if args.output == "sqlite":
        return SQLiteSink(args.sqlite_file)
    return SpectreServerSink(
        args.spectre_server,
        batch_size=args.spectre_server_samples,
        token=args.spectre_token,
    )


def run(args: argparse.Namespace) -> int:
    options = SweepOptions(
        low_freq=args.low_freq,
        high_freq=args.high_freq,
        bin_size=args.bin_size,
        sample_size=args.sample_size,
        integration_interval=args.integration_interval,
    )
    tool = make_sweep_tool(args.sdr, options)
    if args.sdr_executable:
        tool.executable = args.sdr_executable
    sink = build_sink(args)
    log_extra = {"identifier": args.identifier, "source": tool.name, "sweep_tool": tool.name}

    stopping = False

    def _handle_signal(signum, _frame) -> None:
        nonlocal stopping
        logger.info("received signal %d, stopping sweep", signum, extra=log_extra)
        stopping = True
        tool.close()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    session = CollectionSession(
        tool.lines(),
        SweepLineParser(args.identifier, tool.name),
        sink,
        integration_interval=options.integration_interval,
        line_queue_size=args.line_queue,
        batch_queue_size=args.batch_queue,
        on_close=tool.close,
    )
    logger.info(
        "collecting %d-%d Hz in %d Hz bins, exporting to %s",
        options.low_freq,
        options.high_freq,
        options.bin_size,
        sink.name,
        extra=log_extra,
    )
    try:
        session.run()
    except SinkUnavailableError as exc:
        tool.close()
        logger.error("unable to open %s sink: %s", sink.name, exc, extra={**log_extra, "error_type": "sink_unavailable"})
        return ExitCode.SINK_UNAVAILABLE
    except ProducerError as exc:
        if stopping:
            return ExitCode.SUCCESS
        logger.error("sweep failed: %s", exc, extra={**log_extra, "error_type": "producer"})
        return ExitCode.PRODUCER_FAILED
    return ExitCode.SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level, json_file=args.log_json)
    try:
        code = run(args)
    except Exception:
        log_exception(logger, "collector crashed", error_type="unhandled")
        code = ExitCode.GENERAL_ERROR
    if code != ExitCode.SUCCESS:
        logger.info("exiting with status %d: %s", code, ExitCode.message(code))
    return code


if __name__ == "__main__":
    sys.exit(main())
