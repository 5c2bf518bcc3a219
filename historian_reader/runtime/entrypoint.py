from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import IO, Any

from historian_reader.core.domain.errors import PointFileError
from historian_reader.core.domain.types import SplitRange
from historian_reader.core.events.event_bus import EventBus
from historian_reader.core.events.sinks.corrupt_record_counter import CorruptRecordCounter
from historian_reader.core.events.sinks.file_recorder import FileRecorderSink
from historian_reader.core.events.sinks.sink_logging import LoggingEventSink
from historian_reader.core.ports.byte_source import ByteSourceFactory
from historian_reader.io.local_byte_source import LocalFileByteSource
from historian_reader.reader.input_format import HistorianInputFormat
from historian_reader.runtime.prometheus_metrics import PrometheusMetricsClient
from historian_reader.runtime.scan_config import ScanConfig
from historian_reader.runtime.summary import (
    FileScanResult,
    ScanSummary,
    print_scan_summary,
    print_split_plan,
    summarize_scan,
)

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return json.loads(path.read_text(encoding="utf-8"))


def _build_source_factory(cfg: ScanConfig) -> ByteSourceFactory:
    if cfg.source == "local":
        return LocalFileByteSource

    # Imported lazily so local scans do not need OCI credentials.
    from historian_reader.io.oci_byte_source import (
        OCIObjectByteSourceFactory,
        build_object_storage_client,
    )

    oci_cfg = cfg.oci
    client = build_object_storage_client(
        region=oci_cfg.region,
        auth_mode=oci_cfg.auth_mode,
        oci_config_file=oci_cfg.oci_config_file,
        oci_profile=oci_cfg.oci_profile,
    )
    return OCIObjectByteSourceFactory(
        client=client,
        bucket=oci_cfg.bucket,
        namespace=oci_cfg.namespace,
    )


def _plan_file(input_format: HistorianInputFormat, path: str) -> list[SplitRange] | None:
    try:
        return input_format.compute_splits(path)
    except OSError as exc:
        LOGGER.error("Cannot plan %s: %s", path, exc, extra={"path": path})
        return None


def _scan_file(
    *,
    path: str,
    input_format: HistorianInputFormat,
    counter: CorruptRecordCounter,
    records_out: IO[str] | None,
) -> FileScanResult:
    splits: list[SplitRange] = []
    corrupt_before = len(counter.corrupt)
    truncated_before = len(counter.truncated)
    records = 0
    error: str | None = None

    try:
        splits = input_format.compute_splits(path)
        for record in input_format.iter_records(path):
            records += 1
            if records_out is not None:
                records_out.write(json.dumps({"path": path, **dataclasses.asdict(record)}) + "\n")
    except (PointFileError, OSError) as exc:
        LOGGER.error("Scan of %s aborted: %s", path, exc, extra={"path": path})
        error = str(exc) or type(exc).__name__

    file_bytes = splits[-1].end if splits else 0

    return FileScanResult(
        path=path,
        file_bytes=file_bytes,
        split_count=len(splits),
        records=records,
        corrupt_records=len(counter.corrupt) - corrupt_before,
        truncated_tails=len(counter.truncated) - truncated_before,
        error=error,
    )


def _push_metrics(summary: ScanSummary) -> None:
    metrics = PrometheusMetricsClient()

    if not metrics.is_enabled():
        return

    try:
        metrics.observe_scan(summary)
        metrics.push()
    except Exception:
        LOGGER.exception("Prometheus push failed")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Plan or run split-parallel scans of DatAware point files"
    )

    parser.add_argument(
        "--config",
        type=Path,
        required=True,
        help="Path to scan JSON config.",
    )

    parser.add_argument(
        "--plan",
        action="store_true",
        help="Compute and print splits only (no decoding).",
    )

    parser.add_argument(
        "--run",
        action="store_true",
        help="Decode every split and print a scan summary.",
    )

    parser.add_argument(
        "--records-out",
        type=Path,
        default=None,
        help="Optional JSON-lines file receiving every decoded record.",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Root log level.",
    )

    args = parser.parse_args(argv)

    if not args.plan and not args.run:
        print("Error: one of --plan or --run must be specified.", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # ------------------------------------------------------------------
    # Load config
    # ------------------------------------------------------------------

    cfg = ScanConfig.from_json_obj(_load_json(args.config))

    counter = CorruptRecordCounter()
    event_bus = EventBus(
        sinks=[
            LoggingEventSink(logging.getLogger("historian_reader.events")),
            counter,
        ]
    )
    if cfg.events_path is not None:
        event_bus.register(FileRecorderSink(cfg.events_path))

    input_format = HistorianInputFormat(
        config=cfg.reader,
        source_factory=_build_source_factory(cfg),
        event_bus=event_bus,
    )

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    plans = {path: _plan_file(input_format, path) for path in cfg.files}
    print_split_plan(plans, cfg.reader.max_split_bytes)

    if args.plan and not args.run:
        event_bus.close()
        if any(splits is None for splits in plans.values()):
            sys.exit(1)
        return

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    records_out: IO[str] | None = None
    if args.records_out is not None:
        args.records_out.parent.mkdir(parents=True, exist_ok=True)
        records_out = args.records_out.open("w", encoding="utf-8")

    try:
        results = [
            _scan_file(
                path=path,
                input_format=input_format,
                counter=counter,
                records_out=records_out,
            )
            for path in cfg.files
        ]
    finally:
        if records_out is not None:
            records_out.close()
        event_bus.close()

    summary = summarize_scan(
        scan_id=cfg.id,
        results=results,
        max_split_bytes=cfg.reader.max_split_bytes,
    )

    print()
    print_scan_summary(summary)

    _push_metrics(summary)

    if summary.failed_files:
        sys.exit(1)


if __name__ == "__main__":
    main()
