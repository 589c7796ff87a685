#!/usr/bin/env python3
"""
Folder Import Utility.

Reads every file in a local folder, pairs the files the same way the API
does, submits them through ``POST /api/v1/imports/files`` and waits for the
job to finish. The resulting product CSV is written to disk.

Usage:
    # Paired category (preview image + deliverable per product)
    python -m asset_importer.commands.import_folder ./batch \\
        --category-id 42 --category-name "Fonts"

    # Single-file category (every image/video is its own product)
    python -m asset_importer.commands.import_folder ./photos \\
        --category-id 7 --category-name "Stock Photos" --mode single-file

    # Check pairing only, without submitting
    python -m asset_importer.commands.import_folder ./batch \\
        --category-id 42 --category-name "Fonts" --dry-run
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.ingestion.file_pairing import CategoryPolicy, RawFile, pair_files, validate_pairs
from ..core.storage.blob_store import guess_content_type
from ..models import JobStatus, PairingMode

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger("asset_importer.commands.import_folder")

POLL_INTERVAL_SECONDS = 5
MAX_POLL_ATTEMPTS = 120


class ImportCommandError(RuntimeError):
    pass


def read_folder(folder: Path) -> List[RawFile]:
    """Load the folder's regular files (not recursive), sorted by name."""
    if not folder.is_dir():
        raise ImportCommandError(f"Not a directory: {folder}")
    return [
        RawFile(name=path.name, content_type=guess_content_type(path.name), data=path.read_bytes())
        for path in sorted(folder.iterdir())
        if path.is_file() and not path.name.startswith(".")
    ]


def check_pairing(files: List[RawFile], mode: PairingMode) -> None:
    """Pair locally and raise with every diagnostic if the batch is invalid."""
    policy = CategoryPolicy(mode=mode, max_units=settings.max_products_per_import)
    pairing = pair_files(files, policy)
    validation = validate_pairs(pairing.pairs, policy, pairing.unmatched)

    logger.info(f"Pairing: {len(pairing.pairs)} products, {len(pairing.unmatched)} unmatched files")
    for error in pairing.errors:
        logger.warning(f"  {error}")
    if not validation.valid:
        raise ImportCommandError(validation.error or "Invalid batch")


async def submit_files(
    client: httpx.AsyncClient,
    files: List[RawFile],
    category_id: str,
    category_name: str,
    mode: PairingMode,
) -> str:
    response = await client.post(
        "/api/v1/imports/files",
        data={"category_id": category_id, "category_name": category_name, "pairing_mode": mode.value},
        files=[("files", (f.name, f.data, f.content_type)) for f in files],
    )
    if response.status_code != 200:
        raise ImportCommandError(f"Submission rejected ({response.status_code}): {response.text}")
    return response.json()["job_id"]


async def poll_job(
    client: httpx.AsyncClient,
    job_id: str,
    interval: float = POLL_INTERVAL_SECONDS,
    max_attempts: int = MAX_POLL_ATTEMPTS,
) -> Dict[str, Any]:
    """Poll the job until it is terminal; raise after ``max_attempts`` polls."""
    for attempt in range(1, max_attempts + 1):
        response = await client.get(f"/api/v1/imports/{job_id}")
        response.raise_for_status()
        job = response.json()

        if JobStatus(job["status"]).is_terminal:
            return job

        logger.info(f"[{job_id}] still processing (poll {attempt}/{max_attempts})")
        await asyncio.sleep(interval)

    raise ImportCommandError(f"Job {job_id} did not finish after {max_attempts} polls")


async def run_import(
    folder: Path,
    category_id: str,
    category_name: str,
    mode: PairingMode,
    api_url: str,
    output: Optional[Path],
    dry_run: bool = False,
) -> int:
    files = read_folder(folder)
    check_pairing(files, mode)
    if dry_run:
        logger.info("Dry run: batch is valid, nothing submitted")
        return 0

    async with httpx.AsyncClient(base_url=api_url, timeout=120.0) as client:
        job_id = await submit_files(client, files, category_id, category_name, mode)
        logger.info(f"Submitted job {job_id}")
        job = await poll_job(client, job_id)

    if job["status"] == JobStatus.FAILED.value:
        logger.error(f"Import failed: {job.get('error')}")
        return 1

    target = output or Path(f"products-{job_id}.csv")
    target.write_text(job.get("csv_content") or "", encoding="utf-8")
    logger.info(
        f"Import completed: {job.get('successful')}/{job.get('total_products')} successful, "
        f"{job.get('failed')} failed. CSV written to {target}"
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the folder import command."""
    parser = argparse.ArgumentParser(
        description="Import a folder of product assets through the import API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("folder", type=Path, help="Folder containing the assets")
    parser.add_argument("--category-id", required=True, help="Target category id")
    parser.add_argument("--category-name", required=True, help="Target category name (used in prompts)")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in PairingMode],
        default=PairingMode.PAIRED.value,
        help="Pairing mode of the category (default: paired)",
    )
    parser.add_argument("--api-url", default="http://localhost:8000", help="Import API base URL")
    parser.add_argument("--output", "-o", type=Path, default=None, help="Where to write the CSV")
    parser.add_argument("--dry-run", action="store_true", help="Validate pairing without submitting")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        return asyncio.run(run_import(
            folder=args.folder,
            category_id=args.category_id,
            category_name=args.category_name,
            mode=PairingMode(args.mode),
            api_url=args.api_url,
            output=args.output,
            dry_run=args.dry_run,
        ))
    except (ImportCommandError, httpx.HTTPError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
