"""Batch conversion on top of the converter queue.

Usage:
    jobs = build_jobs(["https://example.com"], output_dir="out")
    summary = asyncio.run(convert_all(jobs, config))

    # Or from the CLI arguments dict
    summary = run_batch({"uris": ["https://example.com"], "output": "out"})
"""

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

from tqdm import tqdm

from . import config as config_lib
from .converter import Uri2Pdf
from .engine.base import Engine
from .errors import ErrorKind
from .events import Event, EventKind
from .models import ConverterConfig

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Aggregate batch counters for CLI reporting."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    timeouts: int = 0
    outputs: List[str] = field(default_factory=list)
    failures: List[Tuple[str, str]] = field(default_factory=list)
    drained: bool = False
    duration_s: float = 0.0

    def record(self, event: Event) -> None:
        job = event.options
        if event.error is None:
            self.succeeded += 1
            self.outputs.append(job.outfile)
            return
        self.failed += 1
        if event.error_kind is ErrorKind.TIMEOUT:
            self.timeouts += 1
        self.failures.append((job.uri, str(event.error)))


def output_name(uri: str, fmt: str = "pdf") -> str:
    """Derive a file name from the URI host and path."""
    parsed = urlparse(uri)
    stem = re.sub(r"[^A-Za-z0-9]+", "-", f"{parsed.netloc}{parsed.path}").strip("-")
    return f"{stem or 'page'}.{fmt}"


def build_jobs(
    uris: Sequence[str],
    output_dir: str = "output",
    fmt: str = "pdf",
    headers: Optional[Dict[str, str]] = None,
    outfile: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Build job option dicts, one per URI.

    Args:
        uris: URIs to convert (or (uri, outfile) pairs from a job file)
        output_dir: Directory for derived output names
        fmt: Output extension for derived names (pdf, png)
        headers: Custom HTTP headers applied to every job
        outfile: Explicit output path (single URI only)

    Raises:
        ValueError: If outfile is given with more than one URI
    """
    if outfile is not None and len(uris) != 1:
        raise ValueError("--outfile can only be used with a single URI")

    jobs = []
    seen: Dict[str, int] = {}
    for entry in uris:
        uri, target = entry if isinstance(entry, tuple) else (entry, None)
        target = target or outfile
        if target is None:
            name = output_name(uri, fmt)
            count = seen.get(name, 0) + 1
            seen[name] = count
            if count > 1:
                stem, ext = name.rsplit(".", 1)
                name = f"{stem}-{count}.{ext}"
            target = str(Path(output_dir) / name)

        job: Dict[str, Any] = {"uri": uri, "outfile": target}
        if headers:
            job["http"] = {"headers": dict(headers)}
        jobs.append(job)
    return jobs


def read_job_file(path: str) -> List[Tuple[str, Optional[str]]]:
    """Read ``uri [outfile]`` lines, skipping blanks and # comments."""
    entries = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split(None, 1)
            entries.append((parts[0], parts[1].strip() if len(parts) > 1 else None))
    return entries


async def convert_all(
    jobs: Sequence[Dict[str, Any]],
    config: Optional[ConverterConfig] = None,
    engine: Optional[Engine] = None,
    show_progress: bool = True,
) -> BatchSummary:
    """Convert every job through one converter and wait for the queue to drain.

    Jobs are enqueued on the first ``ready`` event. Failures are collected in
    the summary rather than raised; only session start-up errors propagate.
    """
    summary = BatchSummary(total=len(jobs))
    if not jobs:
        summary.drained = True
        return summary

    start_time = time.monotonic()
    progress = tqdm(total=len(jobs), desc="Converting", unit="page", disable=not show_progress)
    enqueued = False

    def on_event(event: Event, *args):
        nonlocal enqueued
        if event.kind is EventKind.READY and not enqueued:
            enqueued = True
            for job in jobs:
                event.target.enqueue(job)
        elif event.kind is EventKind.RENDER:
            summary.record(event)
            progress.update(1)
        elif event.kind is EventKind.END:
            summary.drained = True

    try:
        async with Uri2Pdf(config, callback=on_event, engine=engine) as converter:
            await converter.join()
    finally:
        progress.close()

    if not summary.drained:
        missing = summary.total - summary.succeeded - summary.failed
        logger.error("Queue stopped before draining; %d job(s) not converted", missing)
        summary.failed += missing

    summary.duration_s = time.monotonic() - start_time
    return summary


def run_batch(cli_args: Dict[str, Any]) -> BatchSummary:
    """CLI entry point: resolve config, build jobs, convert and print a summary."""
    config = config_lib.resolve_config(cli_args, cli_args.get("config"))

    entries: List[Any] = list(cli_args.get("uris") or [])
    if cli_args.get("from_file"):
        entries.extend(read_job_file(cli_args["from_file"]))

    jobs = build_jobs(
        entries,
        output_dir=cli_args.get("output", "output"),
        fmt=cli_args.get("format", "pdf"),
        headers=cli_args.get("headers"),
        outfile=cli_args.get("outfile"),
    )
    if not jobs:
        print("No URIs to convert.")
        return BatchSummary()

    print(f"Converting {len(jobs)} URI(s)...")
    summary = asyncio.run(
        convert_all(jobs, config, show_progress=not cli_args.get("no_progress", False))
    )

    print("\n" + "=" * 60)
    print("CONVERSION SUMMARY")
    print("=" * 60)
    print(f"Succeeded:            {summary.succeeded}")
    print(f"Failed:               {summary.failed}")
    print(f"  of which timeouts:  {summary.timeouts}")
    print(f"Total duration:       {summary.duration_s:.2f}s")
    print("=" * 60)
    for uri, error in summary.failures:
        print(f"  ✗ {uri}: {error}")

    return summary
