"""
Memora Backend — Binary Signature Detector
===========================================

What:  Identifies the real format of an upload from its leading bytes.
Why:   The Content-Type a client declares is just a claim. Magic bytes are
       evidence: a renamed executable does not start with FF D8 FF.
How:   An ordered, immutable table of signatures. The first entry whose
       pattern (and optional sub-pattern) matches wins.

Container formats:
    WebP and AVI are both RIFF containers, so they share the `RIFF` prefix and
    are told apart by the fourCC at offset 8. MP4 and QuickTime are both
    ISO-BMFF files whose first box is `ftyp` at offset 4; QuickTime is
    recognised by its `qt  ` major brand and must precede the generic entry.

The detector is a pure function of its input; it holds no mutable state.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Signature:
    """
    A magic-byte pattern and the MIME type it proves.

    Attributes:
        mime_type:  Canonical MIME string reported on a match
        pattern:    Bytes expected at `offset`
        offset:     Where `pattern` starts in the buffer
        subtype:    Optional (offset, bytes) pair that must also match,
                    used to disambiguate container formats
    """

    mime_type: str
    pattern: bytes
    offset: int = 0
    subtype: Optional[Tuple[int, bytes]] = None

    @property
    def required_length(self) -> int:
        """Bytes needed before this signature can be tested at all."""
        end = self.offset + len(self.pattern)
        if self.subtype is not None:
            sub_offset, sub_pattern = self.subtype
            end = max(end, sub_offset + len(sub_pattern))
        return end

    def matches(self, content: bytes) -> bool:
        if len(content) < self.required_length:
            return False
        if content[self.offset:self.offset + len(self.pattern)] != self.pattern:
            return False
        if self.subtype is not None:
            sub_offset, sub_pattern = self.subtype
            return content[sub_offset:sub_offset + len(sub_pattern)] == sub_pattern
        return True


DEFAULT_SIGNATURES: Tuple[Signature, ...] = (
    Signature("image/jpeg", b"\xff\xd8\xff"),
    Signature("image/png", b"\x89PNG\r\n\x1a\n"),
    Signature("image/gif", b"GIF8"),
    Signature("image/webp", b"RIFF", subtype=(8, b"WEBP")),
    Signature("video/avi", b"RIFF", subtype=(8, b"AVI ")),
    Signature("video/quicktime", b"ftypqt  ", offset=4),
    Signature("video/mp4", b"ftyp", offset=4),
    Signature("video/webm", b"\x1a\x45\xdf\xa3"),
    Signature("video/wmv", b"\x30\x26\xb2\x75\x8e\x66\xcf\x11"),
)


class SignatureDetector:
    """
    Maps raw bytes to the MIME type they evidence.

    Usage:
        detector = SignatureDetector()
        detector.detect(b"\\xff\\xd8\\xff\\xe0...", "image/png")  # → "image/jpeg"
        detector.detect(b"plain text", "Image/PNG")              # → "image/png"
    """

    def __init__(self, signatures: Tuple[Signature, ...] = DEFAULT_SIGNATURES):
        if not signatures:
            raise ValueError("SignatureDetector needs at least one signature")
        self._signatures = tuple(signatures)
        self._min_length = min(sig.required_length for sig in self._signatures)

    @property
    def signatures(self) -> Tuple[Signature, ...]:
        return self._signatures

    @property
    def min_signature_length(self) -> int:
        """Shortest buffer that could carry any known signature."""
        return self._min_length

    def identify(self, content: bytes) -> Optional[str]:
        """Return the MIME type proven by `content`, or None if nothing matches."""
        for signature in self._signatures:
            if signature.matches(content):
                return signature.mime_type
        return None

    def detect(self, content: bytes, declared_mime: str) -> str:
        """
        Return the MIME type evidenced by `content`.

        Falls back to the caller-declared type (lower-cased) when no signature
        matches, so unknown-but-allowed formats are judged by the other checks.
        """
        identified = self.identify(content)
        if identified is not None:
            return identified
        return (declared_mime or "").strip().lower()


signature_detector = SignatureDetector()
