"""Tests for signature detection and extension correction."""

from takeout_organizer.signatures import (
    BMP,
    GIF,
    HEIC,
    JPEG,
    PNG,
    TIFF,
    WEBP,
    correct_extension,
    corrected_extension,
    detect_type,
)


class TestDetectType:
    def test_jpeg(self):
        assert detect_type(b"\xff\xd8\xff\xe1rest") == JPEG

    def test_png(self):
        assert detect_type(b"\x89PNG\r\n\x1a\n\x00\x00") == PNG

    def test_gif_both_versions(self):
        assert detect_type(b"GIF87a....") == GIF
        assert detect_type(b"GIF89a....") == GIF

    def test_webp_needs_marker(self):
        assert detect_type(b"RIFF\x10\x00\x00\x00WEBPVP8 ") == WEBP
        assert detect_type(b"RIFF\x10\x00\x00\x00WAVEfmt ") is None

    def test_bmp(self):
        assert detect_type(b"BM\x00\x00\x00\x00") == BMP

    def test_tiff_both_byte_orders(self):
        assert detect_type(b"II*\x00\x08\x00") == TIFF
        assert detect_type(b"MM\x00*\x00\x08") == TIFF

    def test_heic_brands(self):
        assert detect_type(b"\x00\x00\x00\x18ftypheic\x00\x00") == HEIC
        assert detect_type(b"\x00\x00\x00\x18ftypmif1\x00\x00") == HEIC

    def test_mp4_brand_is_not_heic(self):
        assert detect_type(b"\x00\x00\x00\x18ftypmp42\x00\x00") is None

    def test_unknown(self):
        assert detect_type(b"hello world") is None
        assert detect_type(b"") is None


class TestCorrectedExtension:
    def test_jpeg_named_png(self):
        assert corrected_extension(JPEG, ".png") == ".jpg"

    def test_uppercase_preserved(self):
        assert corrected_extension(JPEG, ".PNG") == ".JPG"

    def test_mixed_case_becomes_lower(self):
        assert corrected_extension(PNG, ".Jpg") == ".png"

    def test_matching_extension_kept(self):
        assert corrected_extension(JPEG, ".jpeg") == ".jpeg"
        assert corrected_extension(HEIC, ".HEIF") == ".HEIF"

    def test_raw_on_tiff_kept(self):
        for ext in (".dng", ".CR2", ".nef", ".arw", ".raw"):
            assert corrected_extension(TIFF, ext) == ext

    def test_tiff_named_jpg_corrected(self):
        assert corrected_extension(TIFF, ".jpg") == ".tiff"

    def test_undetected_kept(self):
        assert corrected_extension(None, ".mp4") == ".mp4"


def test_correct_extension_on_disk(tmp_path):
    image = tmp_path / "image.png"
    image.write_bytes(b"\xff\xd8\xff\xe0" + b"\x00" * 20)
    assert correct_extension(image, ".png") == (".jpg", True)


def test_raw_file_keeps_extension(tmp_path):
    raw = tmp_path / "raw.dng"
    raw.write_bytes(b"II*\x00" + b"\x00" * 20)
    assert correct_extension(raw, ".dng") == (".dng", False)


def test_unreadable_file_is_undetected(tmp_path):
    missing = tmp_path / "missing.png"
    assert correct_extension(missing, ".png") == (".png", False)
