from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from historian_reader.core.domain.types import SplitRange


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FileScanResult:
    path: str
    file_bytes: int
    split_count: int
    records: int
    corrupt_records: int
    truncated_tails: int
    error: str | None = None


@dataclass(frozen=True, slots=True)
class ScanSummary:
    scan_id: str
    file_count: int
    failed_files: int
    split_count: int
    total_records: int
    total_corrupt_records: int
    total_bytes: int
    max_split_bytes: int
    files: List[FileScanResult]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_scan(
    *,
    scan_id: str,
    results: list[FileScanResult],
    max_split_bytes: int,
) -> ScanSummary:
    warnings: list[str] = []

    if not results:
        warnings.append("Scan contains no files")

    for result in results:
        if result.error is not None:
            warnings.append(f"{result.path} failed: {result.error}")
            continue

        if result.records == 0:
            warnings.append(f"{result.path} yielded no records")

        seen = result.records + result.corrupt_records
        if seen and result.corrupt_records / seen > 0.01:
            warnings.append(
                f"{result.path} has {result.corrupt_records} corrupt records "
                f"({result.corrupt_records / seen:.1%})"
            )

        if result.truncated_tails:
            warnings.append(f"{result.path} ends in a truncated record")

    return ScanSummary(
        scan_id=scan_id,
        file_count=len(results),
        failed_files=sum(1 for r in results if r.error is not None),
        split_count=sum(r.split_count for r in results),
        total_records=sum(r.records for r in results),
        total_corrupt_records=sum(r.corrupt_records for r in results),
        total_bytes=sum(r.file_bytes for r in results),
        max_split_bytes=max_split_bytes,
        files=list(results),
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printers
# ---------------------------------------------------------------------------

def print_split_plan(plans: dict[str, list[SplitRange] | None], max_split_bytes: int) -> None:
    max_mb = max_split_bytes / 1024**2

    print(f"Files: {len(plans)}")
    print(f"Max split size: {max_mb:.2f} MB")
    print()

    for path, splits in plans.items():
        if splits is None:
            print(f"  - {path}: unreadable")
            continue
        total = splits[-1].end if splits else 0
        print(f"  - {path}: {len(splits)} splits | {total} bytes")
        for split in splits:
            print(f"      [{split.start}, {split.end})")


def print_scan_summary(summary: ScanSummary) -> None:
    total_mb = summary.total_bytes / 1024**2

    print(f"Scan: {summary.scan_id}")
    print(f"Files: {summary.file_count} ({summary.failed_files} failed)")
    print(f"Splits: {summary.split_count}")
    print(f"Records: {summary.total_records}")
    print(f"Corrupt records: {summary.total_corrupt_records}")
    print(f"Bytes: {total_mb:.2f} MB")
    print()

    if summary.warnings:
        print("Warnings:")
        for w in summary.warnings:
            print(f"  - {w}")
        print()

    print("Files:")
    for f in summary.files:
        status = "FAILED" if f.error is not None else "ok"
        print(
            f"  - {f.path}: "
            f"{f.split_count} splits | "
            f"{f.records} records | "
            f"{f.corrupt_records} corrupt | "
            f"{status}"
        )
