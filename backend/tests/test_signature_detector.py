"""
Memora Backend — Signature Detector Unit Tests
===============================================

What we test:
    ✅ Every table entry maps to exactly its MIME, whatever was declared
    ✅ Container disambiguation (RIFF/WEBP vs RIFF/AVI, ftypqt vs ftyp)
    ✅ Fallback to the declared type when nothing matches
    ✅ Buffers shorter than a pattern never match it
    ✅ Custom signature tables are honoured
"""

import pytest

from memora.services.signature_detector import (
    DEFAULT_SIGNATURES,
    Signature,
    SignatureDetector,
)

SAMPLES = [
    (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", "image/png"),
    (b"GIF89a\x01\x00\x01\x00", "image/gif"),
    (b"GIF87a\x01\x00\x01\x00", "image/gif"),
    (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
    (b"RIFF\x24\x00\x00\x00AVI LIST", "video/avi"),
    (b"\x00\x00\x00\x14ftypqt  \x00\x00", "video/quicktime"),
    (b"\x00\x00\x00\x18ftypmp42\x00\x00", "video/mp4"),
    (b"\x00\x00\x00\x20ftypisom\x00\x00", "video/mp4"),
    (b"\x1a\x45\xdf\xa3\x9f\x42\x86\x81", "video/webm"),
    (b"\x30\x26\xb2\x75\x8e\x66\xcf\x11\xa6\xd9", "video/wmv"),
]


class TestSignatureDetection:

    def setup_method(self):
        self.detector = SignatureDetector()

    @pytest.mark.parametrize("content,expected", SAMPLES)
    @pytest.mark.parametrize("declared", ["image/png", "video/mp4", "application/octet-stream", ""])
    def test_known_signature_wins_over_declared_type(self, content, expected, declared):
        assert self.detector.detect(content, declared) == expected

    def test_riff_without_known_fourcc_is_not_identified(self):
        assert self.detector.identify(b"RIFF\x24\x00\x00\x00WAVEfmt ") is None

    def test_quicktime_brand_takes_precedence_over_generic_ftyp(self):
        assert self.detector.identify(b"\x00\x00\x00\x14ftypqt  ") == "video/quicktime"

    def test_unknown_content_falls_back_to_declared_lowercased(self):
        """No signature match → the declared type, normalized."""
        assert self.detector.detect(b"just some text", "  Image/PNG ") == "image/png"

    def test_unknown_content_without_declared_type(self):
        assert self.detector.detect(b"just some text", "") == ""
        assert self.detector.detect(b"just some text", None) == ""

    def test_truncated_buffer_does_not_match(self):
        """`RIFF` alone is too short for the WEBP/AVI sub-pattern at offset 8."""
        assert self.detector.identify(b"RIFF") is None
        assert self.detector.identify(b"\xff\xd8") is None
        assert self.detector.identify(b"") is None


class TestSignatureTable:

    def test_min_signature_length_is_shortest_entry(self):
        assert SignatureDetector().min_signature_length == 3

    def test_required_length_accounts_for_offset_and_subtype(self):
        assert Signature("video/mp4", b"ftyp", offset=4).required_length == 8
        assert Signature("image/webp", b"RIFF", subtype=(8, b"WEBP")).required_length == 12

    def test_default_table_is_immutable(self):
        detector = SignatureDetector()
        assert isinstance(detector.signatures, tuple)
        assert detector.signatures == DEFAULT_SIGNATURES

    def test_custom_table_is_used(self):
        detector = SignatureDetector(signatures=(Signature("application/pdf", b"%PDF-"),))
        assert detector.identify(b"%PDF-1.7\n") == "application/pdf"
        assert detector.identify(b"\xff\xd8\xff\xe0") is None

    def test_empty_table_rejected(self):
        with pytest.raises(ValueError):
            SignatureDetector(signatures=())
