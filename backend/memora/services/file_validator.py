"""
Memora Backend — Attachment File Validator
===========================================

What:  Accepts or rejects a candidate upload and classifies accepted files.
Why:   Attachments are stored as BLOBs and later served back with the MIME
       type we record, so what we store must be exactly what we claim.
How:   A fail-fast sequence of checks; the first failure is the reported
       reason. The result is a `ValidationOutcome` value, not an exception,
       so callers decide how (and whether) to surface it.

Validation order (cheapest and most structural first):
    1. Filename shape and extension allow-list   → no content read
    2. Reserved device names (CON, LPT1, ...)     → no content read
    3. Declared content type is known at all
    4. Declared content type fits the extension
    5. Size window [min, max]                     → len() only
    6. Corruption heuristic                        → scans ≤ first 1000 bytes
    7. Magic-byte signature vs declared type       → SignatureDetector

    A disguised executable (`app.exe`, `application/octet-stream`) is turned
    away at step 1 before its bytes are looked at.
"""

import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from memora.config import settings
from memora.exceptions import FileClassificationError, FileValidationError, RejectionReason
from memora.models.attachment import FileKind
from memora.services.signature_detector import SignatureDetector, signature_detector

# ── Allowed File Types ────────────────────────────────────────────────────
# Extension → MIME types a client may declare for it
DEFAULT_EXTENSION_MIME_TYPES: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    ".jpg": ("image/jpeg", "image/jpg"),
    ".jpeg": ("image/jpeg", "image/jpg"),
    ".png": ("image/png",),
    ".gif": ("image/gif",),
    ".webp": ("image/webp",),
    ".mp4": ("video/mp4",),
    ".mov": ("video/quicktime", "video/mov"),
    ".avi": ("video/avi", "video/x-msvideo"),
    ".wmv": ("video/wmv", "video/x-ms-wmv"),
    ".webm": ("video/webm",),
})

# Non-canonical spellings → the MIME type we store
MIME_ALIASES: Mapping[str, str] = MappingProxyType({
    "image/jpg": "image/jpeg",
    "video/mov": "video/quicktime",
    "video/x-msvideo": "video/avi",
    "video/x-ms-wmv": "video/wmv",
})

MAX_FILENAME_LENGTH = 255
RESERVED_CHARACTERS: FrozenSet[str] = frozenset('<>:"|?*')
PATH_SEPARATORS: FrozenSet[str] = frozenset("/\\")
RESERVED_DEVICE_NAMES: FrozenSet[str] = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{i}" for i in range(1, 10)}
    | {f"LPT{i}" for i in range(1, 10)}
)

# Corruption heuristic parameters
ENTROPY_WINDOW = 1000
MIN_DISTINCT_BYTES = 10


def normalize_content_type(content_type: Optional[str]) -> str:
    """'Image/JPEG; charset=binary' → 'image/jpeg'."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def canonical_mime(mime_type: str) -> str:
    mime_type = normalize_content_type(mime_type)
    return MIME_ALIASES.get(mime_type, mime_type)


def classify(mime_type: str) -> FileKind:
    """
    Map a validated MIME type to its FileKind.

    Raises:
        FileClassificationError: for anything outside image/* and video/*.
            The allow-lists make this unreachable for validated input.
    """
    if mime_type.startswith("image/"):
        return FileKind.IMAGEN
    if mime_type.startswith("video/"):
        return FileKind.VIDEO
    raise FileClassificationError(mime_type)


@dataclass(frozen=True)
class ValidationOutcome:
    """
    Tagged result of FileValidator.validate().

    Accepted outcomes carry the canonical `mime_type` and `file_kind`;
    rejected ones carry a `reason` and a human-readable `message`.
    `too_large` distinguishes the two halves of SIZE_OUT_OF_RANGE.
    """

    accepted: bool
    mime_type: Optional[str] = None
    file_kind: Optional[FileKind] = None
    reason: Optional[RejectionReason] = None
    message: str = ""
    too_large: bool = False

    @classmethod
    def accept(cls, mime_type: str, file_kind: FileKind) -> "ValidationOutcome":
        return cls(accepted=True, mime_type=mime_type, file_kind=file_kind)

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        message: str,
        too_large: bool = False,
    ) -> "ValidationOutcome":
        return cls(accepted=False, reason=reason, message=message, too_large=too_large)

    def raise_for_rejection(self, filename: Optional[str] = None) -> None:
        """Turn a rejection into a FileValidationError; no-op when accepted."""
        if self.accepted:
            return
        raise FileValidationError(
            reason=self.reason,
            message=self.message,
            filename=filename,
            too_large=self.too_large,
        )


class FileValidator:
    """
    Layered gate for attachment uploads.

    The allow-list and the size window are injected so tests (and future
    per-plan limits) can vary them; defaults come from settings. Instances
    are immutable after construction and safe to share across requests.
    """

    def __init__(
        self,
        min_size_bytes: Optional[int] = None,
        max_size_bytes: Optional[int] = None,
        extension_mime_types: Mapping[str, Tuple[str, ...]] = DEFAULT_EXTENSION_MIME_TYPES,
        detector: Optional[SignatureDetector] = None,
    ):
        self.min_size_bytes = (
            settings.file_upload_min_size_bytes if min_size_bytes is None else min_size_bytes
        )
        self.max_size_bytes = (
            settings.file_upload_max_size_bytes if max_size_bytes is None else max_size_bytes
        )
        if self.min_size_bytes > self.max_size_bytes:
            raise ValueError("min_size_bytes cannot exceed max_size_bytes")

        self.extension_mime_types = MappingProxyType(
            {ext.lower(): tuple(m.lower() for m in mimes) for ext, mimes in extension_mime_types.items()}
        )
        self.allowed_mime_types: FrozenSet[str] = frozenset(
            mime for mimes in self.extension_mime_types.values() for mime in mimes
        )
        self.detector = detector or signature_detector

    # ── Individual checks ─────────────────────────────────────────────────
    # Each returns a rejection outcome, or None when the check passes.

    def check_filename(self, filename: Optional[str]) -> Optional[ValidationOutcome]:
        if not filename or not filename.strip():
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME, "A file name is required."
            )
        if len(filename) > MAX_FILENAME_LENGTH:
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME,
                f"File name cannot exceed {MAX_FILENAME_LENGTH} characters.",
            )
        if any(ch in PATH_SEPARATORS for ch in filename):
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME, "File name cannot contain path separators."
            )
        if any(ch in RESERVED_CHARACTERS or ord(ch) < 32 or ord(ch) == 127 for ch in filename):
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME,
                "File name contains characters that are not allowed.",
            )
        if filename[0] in ". " or filename[-1] in ". ":
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME,
                "File name cannot start or end with a dot or a space.",
            )

        extension = os.path.splitext(filename)[1].lower()
        if extension not in self.extension_mime_types:
            return ValidationOutcome.reject(
                RejectionReason.EXTENSION_NOT_ALLOWED,
                f"File type '{extension or '(none)'}' is not supported. "
                f"Allowed types: {', '.join(sorted(self.extension_mime_types))}",
            )
        return None

    def check_reserved_name(self, filename: str) -> Optional[ValidationOutcome]:
        stem = os.path.splitext(filename)[0].strip().upper()
        if stem in RESERVED_DEVICE_NAMES:
            return ValidationOutcome.reject(
                RejectionReason.INVALID_FILENAME,
                f"'{os.path.splitext(filename)[0]}' is a reserved file name.",
            )
        return None

    def check_declared_type(self, filename: str, content_type: str) -> Optional[ValidationOutcome]:
        if not content_type or content_type not in self.allowed_mime_types:
            return ValidationOutcome.reject(
                RejectionReason.UNSUPPORTED_CONTENT_TYPE,
                f"Content type '{content_type or '(none)'}' is not supported. "
                "Only images (JPEG, PNG, GIF, WebP) and videos (MP4, MOV, AVI, WMV, WebM) are allowed.",
            )

        extension = os.path.splitext(filename)[1].lower()
        allowed_for_extension = self.extension_mime_types[extension]
        if content_type not in allowed_for_extension:
            return ValidationOutcome.reject(
                RejectionReason.MIME_EXTENSION_MISMATCH,
                f"Content type '{content_type}' does not match the '{extension}' extension "
                f"(expected {', '.join(allowed_for_extension)}).",
            )
        return None

    def check_size(self, size: int) -> Optional[ValidationOutcome]:
        if size < self.min_size_bytes:
            return ValidationOutcome.reject(
                RejectionReason.SIZE_OUT_OF_RANGE,
                f"File is too small ({size} bytes). Minimum size is {self.min_size_bytes} bytes.",
            )
        if size > self.max_size_bytes:
            max_mb = self.max_size_bytes / (1024 * 1024)
            return ValidationOutcome.reject(
                RejectionReason.SIZE_OUT_OF_RANGE,
                f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                too_large=True,
            )
        return None

    def check_corruption(self, content: bytes) -> Optional[ValidationOutcome]:
        if not content:
            return ValidationOutcome.reject(RejectionReason.CORRUPTED_CONTENT, "File is empty.")
        if content.count(content[0]) == len(content):
            return ValidationOutcome.reject(
                RejectionReason.CORRUPTED_CONTENT,
                "File content is a single repeated byte and appears to be corrupted.",
            )
        if len(set(content[:ENTROPY_WINDOW])) < MIN_DISTINCT_BYTES:
            return ValidationOutcome.reject(
                RejectionReason.CORRUPTED_CONTENT,
                "File header carries too little information and appears to be corrupted.",
            )
        return None

    def check_signature(self, content: bytes, content_type: str) -> Optional[ValidationOutcome]:
        # Too short to carry any known signature: the checks above decide
        if len(content) < self.detector.min_signature_length:
            return None
        detected = canonical_mime(self.detector.detect(content, content_type))
        if detected != canonical_mime(content_type):
            return ValidationOutcome.reject(
                RejectionReason.SIGNATURE_MISMATCH,
                f"File content looks like '{detected}' but was declared as '{content_type}'.",
            )
        return None

    # ── Pipeline ──────────────────────────────────────────────────────────

    def validate(
        self,
        content: bytes,
        filename: Optional[str],
        declared_content_type: Optional[str],
    ) -> ValidationOutcome:
        """
        Run every check in order and classify the file.

        Returns:
            ValidationOutcome: accepted with canonical MIME and FileKind, or
            rejected with the first failing reason.

        Raises:
            FileClassificationError: the accepted MIME is neither image nor
                video (configuration error, not a client error).
        """
        content_type = normalize_content_type(declared_content_type)

        rejection = self.check_filename(filename)
        if rejection is None:
            rejection = (
                self.check_reserved_name(filename)
                or self.check_declared_type(filename, content_type)
                or self.check_size(len(content))
                or self.check_corruption(content)
                or self.check_signature(content, content_type)
            )
        if rejection is not None:
            return rejection

        mime_type = canonical_mime(self.detector.detect(content, content_type))
        return ValidationOutcome.accept(mime_type, classify(mime_type))


file_validator = FileValidator()
