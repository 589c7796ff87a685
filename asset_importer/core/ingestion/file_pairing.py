"""
File pairing for bulk product imports.

Turns a flat list of uploaded files into product units according to the
category's pairing policy:

- ``paired`` categories need one preview image and one downloadable
  deliverable sharing a base name ("shirt.jpg" + "shirt.zip").
- ``single-file`` categories treat every image or video as its own unit,
  the one asset serving as both preview and deliverable.

Pairing is pure: it never touches storage and depends only on the input
files and their order. Files that cannot be placed in a unit are returned
as ``unmatched`` with a diagnostic in ``errors``; ``validate_pairs`` then
decides whether the batch may be submitted.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ...models import PairingMode
from ..utils.text_utils import get_base_name, get_extension

logger = logging.getLogger("asset_importer.ingestion.pairing")

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
VIDEO_EXTENSIONS = frozenset({"mp4", "mov", "webm", "m4v", "avi", "mkv"})


def is_image_file(filename: str) -> bool:
    return get_extension(filename) in IMAGE_EXTENSIONS


def is_video_file(filename: str) -> bool:
    return get_extension(filename) in VIDEO_EXTENSIONS


def is_media_file(filename: str) -> bool:
    return is_image_file(filename) or is_video_file(filename)


@dataclass(frozen=True)
class RawFile:
    """A caller-supplied file: name, declared content type and bytes."""
    name: str
    content_type: str = "application/octet-stream"
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class CategoryPolicy:
    """Pairing rules of the product category a batch is imported into."""
    mode: PairingMode = PairingMode.PAIRED
    max_units: int = 100


@dataclass(frozen=True)
class FilePair:
    """
    One logical product unit.

    ``secondary_asset`` is the downloadable deliverable for paired
    categories and ``None`` for single-file categories.
    """
    id: str
    base_name: str
    primary_asset: RawFile
    secondary_asset: Optional[RawFile] = None


@dataclass
class PairingResult:
    pairs: List[FilePair] = field(default_factory=list)
    unmatched: List[RawFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PairingValidation:
    valid: bool
    error: Optional[str] = None


def _new_pair_id() -> str:
    return str(uuid.uuid4())


def pair_files(
    files: Sequence[RawFile],
    policy: CategoryPolicy,
    id_factory: Callable[[], str] = _new_pair_id,
) -> PairingResult:
    """
    Group files into product units according to ``policy.mode``.

    Every input file ends up in exactly one of ``pairs`` (as a primary or
    secondary asset) or ``unmatched``. ``errors`` follow the order in which
    base names (or single files) were first seen.

    Example:
        >>> result = pair_files([shirt_jpg, shirt_zip, hat_png], CategoryPolicy())
        >>> [p.base_name for p in result.pairs]
        ['shirt']
        >>> result.errors
        ['No download file found for "hat"']
    """
    if policy.mode == PairingMode.SINGLE_FILE:
        result = _pair_single_files(files, id_factory)
    else:
        result = _pair_by_base_name(files, id_factory)

    logger.debug(
        "Pairing (%s): %d files -> %d units, %d unmatched",
        policy.mode.value, len(files), len(result.pairs), len(result.unmatched),
    )
    return result


def _pair_by_base_name(files: Sequence[RawFile], id_factory: Callable[[], str]) -> PairingResult:
    result = PairingResult()

    # dict keeps first-occurrence order of base names
    groups: Dict[str, Dict[str, List[RawFile]]] = {}
    for f in files:
        group = groups.setdefault(get_base_name(f.name), {"images": [], "downloads": []})
        if is_image_file(f.name):
            group["images"].append(f)
        else:
            group["downloads"].append(f)

    for base_name, group in groups.items():
        images, downloads = group["images"], group["downloads"]

        if not images:
            result.unmatched.extend(downloads)
            result.errors.append(f'No image file found for "{base_name}"')
            continue

        if not downloads:
            result.unmatched.extend(images)
            result.errors.append(f'No download file found for "{base_name}"')
            continue

        if len(images) > 1:
            result.unmatched.extend(images + downloads)
            result.errors.append(f'Multiple image files found for "{base_name}"')
            continue

        if len(downloads) > 1:
            result.unmatched.extend(downloads + images)
            result.errors.append(f'Multiple download files found for "{base_name}"')
            continue

        result.pairs.append(FilePair(
            id=id_factory(),
            base_name=base_name,
            primary_asset=images[0],
            secondary_asset=downloads[0],
        ))

    return result


def _pair_single_files(files: Sequence[RawFile], id_factory: Callable[[], str]) -> PairingResult:
    result = PairingResult()
    for f in files:
        if not is_media_file(f.name):
            result.unmatched.append(f)
            result.errors.append(f'Unsupported file type for "{f.name}"')
            continue
        result.pairs.append(FilePair(
            id=id_factory(),
            base_name=get_base_name(f.name),
            primary_asset=f,
        ))
    return result


def validate_pairs(
    pairs: Sequence,
    policy: CategoryPolicy,
    unmatched: Sequence = (),
) -> PairingValidation:
    """
    Decide whether a paired batch may be submitted.

    A batch is all-or-nothing: any unmatched file rejects it rather than
    being silently dropped. ``pairs`` may be ``FilePair`` objects or any
    object exposing ``base_name`` and ``secondary_asset``.
    """
    if not pairs:
        return PairingValidation(valid=False, error="No file pairs found")

    if len(pairs) > policy.max_units:
        return PairingValidation(
            valid=False,
            error=f"Too many products. Maximum is {policy.max_units}, found {len(pairs)}",
        )

    if unmatched:
        names = ", ".join(getattr(f, "name", str(f)) for f in unmatched)
        return PairingValidation(
            valid=False,
            error=f"{len(unmatched)} file(s) could not be matched: {names}",
        )

    for pair in pairs:
        if policy.mode == PairingMode.PAIRED and pair.secondary_asset is None:
            return PairingValidation(
                valid=False,
                error=f'Pair "{pair.base_name}" is missing a download file',
            )
        if policy.mode == PairingMode.SINGLE_FILE and pair.secondary_asset is not None:
            return PairingValidation(
                valid=False,
                error=f'Pair "{pair.base_name}" must not include a download file in a single-file category',
            )

    return PairingValidation(valid=True)
