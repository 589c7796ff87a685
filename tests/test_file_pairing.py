"""
Unit tests for file pairing and batch validation.
"""

import itertools

import pytest

from asset_importer.core.ingestion.file_pairing import (
    CategoryPolicy,
    RawFile,
    is_image_file,
    is_video_file,
    pair_files,
    validate_pairs,
)
from asset_importer.models import PairingMode


def _files(*names):
    return [RawFile(name=n) for n in names]


def _ids():
    counter = itertools.count(1)
    return lambda: f"pair-{next(counter)}"


PAIRED = CategoryPolicy(mode=PairingMode.PAIRED, max_units=100)
SINGLE = CategoryPolicy(mode=PairingMode.SINGLE_FILE, max_units=100)


class TestExtensions:

    @pytest.mark.parametrize("name", ["a.jpg", "a.JPEG", "a.png", "a.gif", "a.webp"])
    def test_image_extensions(self, name):
        assert is_image_file(name)

    @pytest.mark.parametrize("name", ["a.zip", "a.psd", "a", "a.mp4"])
    def test_non_images(self, name):
        assert not is_image_file(name)

    def test_video_extensions(self):
        assert is_video_file("clip.MOV")
        assert not is_video_file("clip.zip")


class TestPairedMode:

    def test_pairs_image_with_download(self):
        result = pair_files(_files("shirt.jpg", "shirt.zip", "hat.png"), PAIRED, id_factory=_ids())

        assert len(result.pairs) == 1
        pair = result.pairs[0]
        assert pair.id == "pair-1"
        assert pair.base_name == "shirt"
        assert pair.primary_asset.name == "shirt.jpg"
        assert pair.secondary_asset.name == "shirt.zip"
        assert [f.name for f in result.unmatched] == ["hat.png"]
        assert result.errors == ['No download file found for "hat"']

    def test_download_without_image(self):
        result = pair_files(_files("font.zip"), PAIRED)

        assert result.pairs == []
        assert [f.name for f in result.unmatched] == ["font.zip"]
        assert result.errors == ['No image file found for "font"']

    def test_two_images_one_download_all_unmatched(self):
        result = pair_files(_files("shirt.jpg", "shirt.png", "shirt.zip"), PAIRED)

        assert result.pairs == []
        assert [f.name for f in result.unmatched] == ["shirt.jpg", "shirt.png", "shirt.zip"]
        assert result.errors == ['Multiple image files found for "shirt"']

    def test_two_downloads_one_image_all_unmatched(self):
        result = pair_files(_files("shirt.jpg", "shirt.zip", "shirt.rar"), PAIRED)

        assert result.pairs == []
        assert [f.name for f in result.unmatched] == ["shirt.zip", "shirt.rar", "shirt.jpg"]
        assert result.errors == ['Multiple download files found for "shirt"']

    def test_base_name_uses_last_dot(self):
        result = pair_files(_files("my.font.v2.png", "my.font.v2.zip"), PAIRED)

        assert [p.base_name for p in result.pairs] == ["my.font.v2"]

    def test_base_names_are_case_sensitive(self):
        result = pair_files(_files("Shirt.jpg", "shirt.zip"), PAIRED)

        assert result.pairs == []
        assert len(result.unmatched) == 2

    def test_every_file_accounted_for_once(self):
        names = ["a.jpg", "a.zip", "b.png", "c.zip", "d.jpg", "d.gif", "d.zip", "e.webp", "e.pdf"]
        result = pair_files(_files(*names), PAIRED)

        placed = []
        for pair in result.pairs:
            placed.append(pair.primary_asset.name)
            placed.append(pair.secondary_asset.name)
        placed.extend(f.name for f in result.unmatched)
        assert sorted(placed) == sorted(names)

    def test_pairs_follow_first_occurrence_order(self):
        result = pair_files(_files("b.zip", "a.jpg", "b.jpg", "a.zip"), PAIRED)

        assert [p.base_name for p in result.pairs] == ["b", "a"]

    def test_pairing_is_deterministic(self):
        files = _files("x.jpg", "x.zip", "y.png", "y.pdf")
        first = pair_files(files, PAIRED, id_factory=_ids())
        second = pair_files(files, PAIRED, id_factory=_ids())

        assert first == second


class TestSingleFileMode:

    def test_each_media_file_is_a_unit(self):
        result = pair_files(_files("beach.jpg", "clip.mp4"), SINGLE)

        assert [p.base_name for p in result.pairs] == ["beach", "clip"]
        assert all(p.secondary_asset is None for p in result.pairs)
        assert result.unmatched == []

    def test_rejects_non_media(self):
        result = pair_files(_files("beach.jpg", "notes.txt"), SINGLE)

        assert [f.name for f in result.unmatched] == ["notes.txt"]
        assert result.errors == ['Unsupported file type for "notes.txt"']


class TestValidatePairs:

    def test_no_pairs(self):
        validation = validate_pairs([], PAIRED)

        assert not validation.valid
        assert validation.error == "No file pairs found"

    def test_too_many_pairs(self):
        policy = CategoryPolicy(mode=PairingMode.PAIRED, max_units=2)
        pairs = pair_files(_files("a.jpg", "a.zip", "b.jpg", "b.zip", "c.jpg", "c.zip"), policy).pairs

        validation = validate_pairs(pairs, policy)

        assert not validation.valid
        assert validation.error == "Too many products. Maximum is 2, found 3"

    def test_unmatched_files_reject_batch(self):
        result = pair_files(_files("shirt.jpg", "shirt.zip", "hat.png"), PAIRED)

        validation = validate_pairs(result.pairs, PAIRED, result.unmatched)

        assert not validation.valid
        assert "hat.png" in validation.error

    def test_valid_batch(self):
        result = pair_files(_files("shirt.jpg", "shirt.zip"), PAIRED)

        assert validate_pairs(result.pairs, PAIRED, result.unmatched).valid

    def test_single_file_units_invalid_for_paired_category(self):
        pairs = pair_files(_files("beach.jpg"), SINGLE).pairs

        validation = validate_pairs(pairs, PAIRED)

        assert not validation.valid
        assert validation.error == 'Pair "beach" is missing a download file'

    def test_paired_units_invalid_for_single_file_category(self):
        pairs = pair_files(_files("shirt.jpg", "shirt.zip"), PAIRED).pairs

        validation = validate_pairs(pairs, SINGLE)

        assert not validation.valid
        assert "must not include a download file" in validation.error
