"""
Memora Backend — Image Compression Extension Point
===================================================

What:  Abstract interface for shrinking image payloads before storage.
Why:   Attachments live in the database, so smaller images mean smaller
       rows. No real codec is wired in yet; the default implementation
       returns its input untouched.
How:   AttachmentService calls `compress()` for images only. Swap in a
       concrete subclass (e.g. one backed by Pillow) without touching the
       upload workflow.

Contract:
    - Must return bytes whose format still matches `mime_type`; the stored
      MIME type and size are taken from the returned payload.
    - Must not raise for valid input; a compressor that cannot improve a
      file returns it unchanged.
"""

from abc import ABC, abstractmethod


class ImageCompressor(ABC):
    """Strategy interface for image size reduction."""

    @abstractmethod
    async def compress(self, data: bytes, mime_type: str) -> bytes:
        """Return a (possibly) smaller encoding of `data` in the same format."""
        ...


class PassthroughCompressor(ImageCompressor):
    """Identity compressor: stores images exactly as uploaded."""

    async def compress(self, data: bytes, mime_type: str) -> bytes:
        return data


image_compressor: ImageCompressor = PassthroughCompressor()
