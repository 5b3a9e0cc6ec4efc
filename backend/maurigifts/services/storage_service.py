# Overview: Receipt evidence storage; decodes uploaded images and writes them under the receipts root.

"""
Receipt Storage

Objects are addressed by a deterministic key "<order-id>/<timestamp>.<ext>"
(timestamp in milliseconds) relative to RECEIPTS_DIR, and exposed at
RECEIPTS_PUBLIC_URL/<key>. The directory plays the role of the object store
bucket; nothing else in the application touches the files.
"""

from __future__ import annotations

import base64
import binascii
import time
from pathlib import Path

from flask import current_app

from ..validation import ValidationError
from ..vocab import RECEIPT_EXTENSIONS


# Leading bytes for each accepted image format
_SIGNATURES = {
    "jpg": (b"\xff\xd8\xff",),
    "jpeg": (b"\xff\xd8\xff",),
    "png": (b"\x89PNG\r\n\x1a\n",),
}


def receipts_root() -> Path:
    configured = current_app.config.get("RECEIPTS_DIR")
    root = Path(configured) if configured else Path(current_app.instance_path) / "receipts"
    root.mkdir(parents=True, exist_ok=True)
    return root


def normalize_extension(ext: str | None) -> str:
    ext = (ext or "").strip().lower().lstrip(".")
    if ext not in RECEIPT_EXTENSIONS:
        raise ValidationError(f"fileExt must be one of: {', '.join(sorted(RECEIPT_EXTENSIONS))}")
    return ext


def _looks_like(data: bytes, ext: str) -> bool:
    if ext == "webp":
        return len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP"
    return any(data.startswith(sig) for sig in _SIGNATURES[ext])


def decode_receipt(file_base64: str | None, ext: str) -> bytes:
    """
    Decode a base64 image payload (optionally a data: URL).

    Raises ValidationError if the payload is empty, not base64, larger than
    MAX_RECEIPT_BYTES, or not an image of the declared type.
    """
    if not isinstance(file_base64, str) or not file_base64.strip():
        raise ValidationError("fileBase64 is required")

    encoded = file_base64.strip()
    if encoded.startswith("data:"):
        _, _, encoded = encoded.partition(",")

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("fileBase64 is not valid base64")

    if not data:
        raise ValidationError("fileBase64 is empty")

    max_bytes = int(current_app.config.get("MAX_RECEIPT_BYTES", 5 * 1024 * 1024))
    if len(data) > max_bytes:
        raise ValidationError(f"Receipt exceeds {max_bytes} bytes")

    if not _looks_like(data, ext):
        raise ValidationError(f"Receipt is not a valid {ext} image")

    return data


def build_receipt_key(order_id: int, ext: str, timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{order_id}/{timestamp_ms}.{ext}"


def save_receipt(order_id: int, data: bytes, ext: str) -> str:
    """Write the image and return its storage key."""
    root = receipts_root()
    key = build_receipt_key(order_id, ext)
    target = root / key
    # Two uploads in the same millisecond must not overwrite each other
    while target.exists():
        key = build_receipt_key(order_id, ext, int(key.split("/")[1].split(".")[0]) + 1)
        target = root / key
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return key


def delete_receipt(key: str) -> None:
    """Best-effort removal of a receipt object no order references."""
    try:
        (receipts_root() / key).unlink(missing_ok=True)
    except OSError:
        current_app.logger.exception("Failed to remove orphaned receipt %s", key)


def public_url(key: str | None) -> str | None:
    if not key:
        return None
    base = current_app.config.get("RECEIPTS_PUBLIC_URL", "/receipts").rstrip("/")
    return f"{base}/{key}"
