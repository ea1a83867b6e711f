#!/usr/bin/env python3
"""
Download the book's datasets with retries, hash checks and provenance sidecars.

For every declared dataset the Fetcher downloads the remote file into
``<data_dir>/<directory>/<filename>``, records its MD5, and writes
``CITATION.txt`` and ``METADATA.json`` next to it. A failed dataset is logged
and reported; the batch always moves on to the next one.

Usage:
    python -m natsci_data.fetcher
    python -m natsci_data.fetcher --parallel --workers 4
    python -m natsci_data.fetcher --only Forestry Marine --data-dir ./data
"""

import argparse
import hashlib
import os
import sys
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date

import requests

from natsci_data import config as cfg
from natsci_data.config import FetchConfig
from natsci_data.datasets import DATASET_REGISTRY, check_unique_targets, select
from natsci_data.file_utils import (
    atomic_write_json,
    atomic_write_text,
    ensure_directory,
    filename_problem,
    path_problem,
)
from natsci_data.http_utils import make_session, url_problem
from natsci_data.logging_config import (
    StepTimer,
    get_pipeline_logger,
    run_log,
    setup_logging,
)
from natsci_data.pipeline_types import BatchResult, FetchResult
from natsci_data.retry import Attempt, retry_with_backoff
from natsci_data.step_runner import run_step

log = get_pipeline_logger(__name__)

# Raised by requests before any bytes move; retrying cannot help.
_PERMANENT_REQUEST_ERRORS = (
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
)


# ── Single download ──────────────────────────────────────────────────────


def _make_attempt(session, url, part_path, timeout, expected_md5):
    """Build the per-attempt download function for retry_with_backoff()."""

    def attempt(n):
        digest = hashlib.md5()
        size = 0
        try:
            with session.get(url, stream=True, timeout=timeout) as resp:
                resp.raise_for_status()
                with open(part_path, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=cfg.CHUNK_SIZE):
                        if not chunk:
                            continue
                        f.write(chunk)
                        digest.update(chunk)
                        size += len(chunk)
        except _PERMANENT_REQUEST_ERRORS as exc:
            return Attempt.permanent(f"{type(exc).__name__}: {exc}")
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", "?")
            return Attempt.retryable(f"HTTP {status}: {exc}")
        except requests.RequestException as exc:
            return Attempt.retryable(f"{type(exc).__name__}: {exc}")
        except OSError as exc:
            return Attempt.retryable(f"could not write {part_path}: {exc}")

        if size == 0:
            return Attempt.retryable("download resulted in an empty file (0 bytes)")

        info = {"size_bytes": size, "md5": digest.hexdigest()}
        if expected_md5 and info["md5"] != expected_md5.lower():
            info["hash_mismatch"] = True
            return Attempt.retryable(
                f"file hash mismatch (expected {expected_md5}, got {info['md5']})",
                value=info,
            )
        return Attempt.success(info)

    return attempt


def download_file(url, dest_path, description, config, session=None,
                  expected_md5=None):
    """Download *url* to *dest_path* with bounded retries.

    Bytes are streamed to ``<dest_path>.part`` and only renamed over
    *dest_path* once an attempt succeeds, so a failed download never
    replaces a previous good file.

    Parameters
    ----------
    url : str
    dest_path : str
    description : str
        Label used in log messages, e.g. "Forestry data".
    config : FetchConfig
    session : requests.Session, optional
        Created (and closed) per call when omitted.
    expected_md5 : str, optional
        Known-good MD5. A mismatch is retried; if retries run out the file
        is kept anyway and a warning is logged.

    Returns
    -------
    FetchResult
        ``name`` is *description*.
    """
    log.info("Downloading %s...", description)

    problem = url_problem(url)
    if problem:
        log.error("Cannot download %s: %s", description, problem)
        return FetchResult(name=description, success=False, error=problem)

    own_session = session is None
    if own_session:
        session = make_session()

    part_path = dest_path + ".part"
    attempt_fn = _make_attempt(session, url, part_path, config.timeout, expected_md5)

    def on_retry(n, attempt, wait):
        log.warning(
            "Error downloading %s (attempt %d of %d): %s",
            description, n, config.max_attempts, attempt.reason,
            extra={"dataset": description, "attempt": n},
        )
        log.info("Retrying in %g seconds...", wait)

    try:
        outcome = retry_with_backoff(
            attempt_fn,
            max_attempts=config.max_attempts,
            delay=config.retry_delay,
            backoff=config.backoff,
            on_retry=on_retry,
        )
        info = outcome.last.value or {}
        hash_exhausted = outcome.exhausted and info.get("hash_mismatch", False)

        if not outcome.ok and not hash_exhausted:
            log.error(
                "Error downloading %s (attempt %d of %d): %s",
                description, outcome.attempts, config.max_attempts, outcome.last.reason,
                extra={"dataset": description, "attempt": outcome.attempts},
            )
            log.error("All download attempts failed for %s.", description)
            return FetchResult(
                name=description,
                success=False,
                attempts=outcome.attempts,
                error=outcome.last.reason,
            )

        os.replace(part_path, dest_path)
    finally:
        if os.path.exists(part_path):
            os.remove(part_path)
        if own_session:
            session.close()

    hash_verified = None
    if expected_md5:
        hash_verified = not hash_exhausted
        if hash_verified:
            log.info("File hash verified successfully.")
        else:
            log.warning(
                "File hash verification failed for %s. File may be corrupted "
                "or changed upstream.", description,
            )

    result = FetchResult(
        name=description,
        success=True,
        path=dest_path,
        size_bytes=info["size_bytes"],
        md5=info["md5"],
        attempts=outcome.attempts,
        hash_verified=hash_verified,
    )
    log.info("Successfully downloaded to %s (%d KB)", dest_path, result.size_kb)
    return result


# ── Sidecars ─────────────────────────────────────────────────────────────


def citation_text(descriptor):
    return (
        f"{descriptor.name} Dataset\n\n"
        f"Source: {descriptor.citation_source}\n"
        f"Citation: {descriptor.citation_text}\n\n"
        f"Description: {descriptor.description}\n"
    )


def build_metadata(descriptor, md5, size_bytes, download_date=None):
    """METADATA.json payload for a freshly downloaded file."""
    download_date = download_date or date.today()
    return {
        "filename": descriptor.filename,
        "download_date": download_date.isoformat(),
        "md5_hash": md5,
        "source_url": descriptor.source_url,
        "file_size_kb": int(round(size_bytes / 1024)),
    }


def write_sidecars(descriptor, dataset_dir, md5, size_bytes):
    """Write CITATION.txt and METADATA.json; returns their paths."""
    citation_path = os.path.join(dataset_dir, cfg.CITATION_FILENAME)
    metadata_path = os.path.join(dataset_dir, cfg.METADATA_FILENAME)
    atomic_write_text(citation_path, citation_text(descriptor))
    atomic_write_json(metadata_path, build_metadata(descriptor, md5, size_bytes))
    return citation_path, metadata_path


# ── Per-dataset and batch operations ─────────────────────────────────────


def fetch_dataset(descriptor, config=None, session=None):
    """Materialise one dataset bundle on disk.

    Creates the dataset directory, downloads the file, and on success writes
    the citation and metadata sidecars. Re-running overwrites all three.

    Returns
    -------
    FetchResult
    """
    config = config or FetchConfig()
    log.info("## Processing %s dataset ##", descriptor.name)

    for problem in (path_problem(descriptor.directory),
                    filename_problem(descriptor.filename)):
        if problem:
            log.error("Cannot fetch %s: %s", descriptor.name, problem)
            return FetchResult(name=descriptor.name, success=False, error=problem)

    dataset_dir = ensure_directory(descriptor.dataset_dir(config.data_dir))
    dest_path = descriptor.target_path(config.data_dir)

    result = download_file(
        descriptor.source_url,
        dest_path,
        f"{descriptor.name} data",
        config,
        session=session,
        expected_md5=descriptor.expected_md5,
    )
    result.name = descriptor.name
    if result.success:
        write_sidecars(descriptor, dataset_dir, result.md5, result.size_bytes)
    return result


def fetch_output_summary(result):
    """What a fetch step produced, for the step log and StepResult."""
    return {
        "success": result.success,
        "size_kb": result.size_kb,
        "md5": result.md5,
        "attempts": result.attempts,
    }


def _record(batch, descriptor, step, result):
    if result is None:
        result = FetchResult(name=descriptor.name, success=False, error=step.error)
    batch.step_results.append(step)
    batch.results[descriptor.name] = result.success
    batch.details[descriptor.name] = result


def fetch_all(descriptors=DATASET_REGISTRY, config=None, session=None):
    """Fetch every descriptor sequentially, in declaration order.

    Returns
    -------
    BatchResult
        ``results`` maps name -> success; ``details`` maps name -> FetchResult.
    """
    config = config or FetchConfig()
    check_unique_targets(descriptors)

    with run_log(config.log_file, "Dataset Download Log", config.log_level):
        ensure_directory(config.data_dir)
        batch = BatchResult(kind="fetch")
        with StepTimer() as timer:
            for d in descriptors:
                step, result = run_step(
                    f"fetch:{d.name}", fetch_dataset, d, config,
                    session=session,
                    input_summary={"url": d.source_url},
                    output_summary_fn=fetch_output_summary,
                )
                _record(batch, d, step, result)
        batch.total_time_seconds = timer.elapsed
        log_fetch_summary(batch, descriptors, config.data_dir)
    return batch


def fetch_all_parallel(descriptors=DATASET_REGISTRY, config=None, session=None):
    """Fetch descriptors on a fixed-size thread pool.

    Each task owns a disjoint directory subtree, so workers share nothing
    but the log. Completion order is arbitrary; the returned BatchResult is
    keyed by name and re-ordered to declaration order for the summary.
    """
    config = config or FetchConfig()
    check_unique_targets(descriptors)

    with run_log(config.log_file, "Dataset Download Log", config.log_level):
        ensure_directory(config.data_dir)
        log.info("=== Starting Parallel Download (%d workers) ===", config.workers)

        completed = {}
        with StepTimer() as timer:
            with ThreadPoolExecutor(max_workers=config.workers) as executor:
                futures = {
                    executor.submit(
                        run_step, f"fetch:{d.name}", fetch_dataset, d, config,
                        session=session,
                        input_summary={"url": d.source_url},
                        output_summary_fn=fetch_output_summary,
                    ): d
                    for d in descriptors
                }
                for future in as_completed(futures):
                    d = futures[future]
                    completed[d.name] = future.result()

        batch = BatchResult(kind="fetch", total_time_seconds=timer.elapsed)
        for d in descriptors:
            step, result = completed[d.name]
            _record(batch, d, step, result)

        log_fetch_summary(batch, descriptors, config.data_dir)
        if batch.total:
            log.info(
                "Total time: %.1f seconds (%.1f sec/dataset average)",
                batch.total_time_seconds, batch.total_time_seconds / batch.total,
            )
    return batch


# ── Summaries ────────────────────────────────────────────────────────────


def format_fetch_table(batch, descriptors, data_dir):
    lines = [
        f"{'DATASET':<15} | {'STATUS':<10} | {'LOCATION':<30}",
        f"{'-' * 15}-|-{'-' * 10}-|-{'-' * 30}",
    ]
    for d in descriptors:
        status = "SUCCESS" if batch.results.get(d.name) else "FAILED"
        lines.append(f"{d.name:<15} | {status:<10} | {d.target_path(data_dir):<30}")
    return "\n".join(lines)


def log_fetch_summary(batch, descriptors, data_dir):
    log.info("## Dataset Download Summary ##")
    log.info(
        "Successfully downloaded %d of %d datasets (%.1f%%)",
        batch.success_count, batch.total, batch.success_pct,
    )
    for line in format_fetch_table(batch, descriptors, data_dir).splitlines():
        log.info(line)
    for name in batch.failed:
        log.warning("%s: %s", name, batch.details[name].error)


def write_data_readme(descriptors, results, data_dir):
    """Write ``<data_dir>/README.md`` describing every dataset and its status."""
    lines = [
        "# Data Analysis in Natural Sciences: Datasets",
        "",
        "This directory contains the datasets used in the book "
        "\"Data Analysis in Natural Sciences\".",
        "",
        "## Dataset Overview",
        "",
    ]
    for i, d in enumerate(descriptors, start=1):
        status = "AVAILABLE" if results.get(d.name) else "NOT AVAILABLE"
        lines += [
            f"{i}. **{d.name}**: `{d.directory}/{d.filename}` - {d.description}",
            f"   - {d.citation_source}",
            f"   - Status: {status}",
            "",
        ]
    lines += [
        "Each subdirectory contains:",
        "",
        f"- **{cfg.CITATION_FILENAME}**: Source information and proper citation for academic use",
        f"- **{cfg.METADATA_FILENAME}**: Technical details including download date and file hash",
        "",
        "## Data Updates",
        "",
        "The datasets can be updated by running `python -m natsci_data.fetcher`.",
        "",
        "## Troubleshooting",
        "",
        "If you encounter issues with any datasets:",
        "",
        f"1. Check the `{cfg.DOWNLOAD_LOG_FILE}` file for error messages",
        "2. Verify your internet connection",
        "3. Try running the download again",
        "4. If persistent issues occur, report them in the repository issues section",
        "",
        "## Last Updated",
        "",
        f"This data directory was last updated on {date.today().isoformat()}.",
        "",
    ]
    path = os.path.join(ensure_directory(data_dir), cfg.README_FILENAME)
    atomic_write_text(path, "\n".join(lines))
    log.info("Data README written: %s", path)
    return path


# ── CLI entry point ──────────────────────────────────────────────────────


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Download the datasets used in the book"
    )
    parser.add_argument("--data-dir", default=cfg.DATA_DIR,
                        help="Root data directory (default: ./data)")
    parser.add_argument("--only", nargs="+", metavar="NAME",
                        help="Fetch only these datasets (by name)")
    parser.add_argument("--parallel", action="store_true",
                        help="Download on a worker pool")
    parser.add_argument("--workers", type=int, default=cfg.DEFAULT_WORKERS,
                        help="Worker pool size for --parallel (default: 4)")
    parser.add_argument("--max-attempts", type=int, default=cfg.MAX_ATTEMPTS)
    parser.add_argument("--retry-delay", type=float, default=cfg.RETRY_DELAY_SECONDS)
    parser.add_argument("--log-file", default=cfg.DOWNLOAD_LOG_FILE,
                        help="Plain-text run log (appended)")
    parser.add_argument("--no-readme", action="store_true",
                        help="Do not (re)write the data directory README.md")
    parser.add_argument("--log-level", type=str.upper, default=cfg.default_log_level(),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console and run-log level (default: $LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = FetchConfig(
        data_dir=args.data_dir,
        max_attempts=args.max_attempts,
        retry_delay=args.retry_delay,
        workers=args.workers,
        log_file=args.log_file,
        log_level=args.log_level,
    )
    setup_logging(console_level=config.log_level)
    descriptors = select(args.only)

    runner = fetch_all_parallel if args.parallel else fetch_all
    batch = runner(descriptors, config)

    if not args.no_readme:
        write_data_readme(descriptors, batch.results, config.data_dir)

    log.info("Process complete. A detailed log has been saved to %s", args.log_file)
    return 0 if batch.all_ok else 1


if __name__ == "__main__":
    sys.exit(main())
