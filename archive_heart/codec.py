"""
Share link encoding.

Packs a classified track list and a theme id into a compressed, URL-safe
string and reverses the process. Aggregates never travel in the link; they
are recomputed from the tracks on load.
"""

import base64
import binascii
import json
import logging
import zlib
from collections.abc import Sequence
from datetime import datetime, timezone
from urllib.parse import parse_qs, quote, urlsplit

from pydantic import ValidationError

from .errors import CompressionError, DecodeError
from .models import ShareMetadata, SharePayload, TrackRecord

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = "1.0.0"
MAX_PAYLOAD_BYTES = 10 * 1024 * 1024
VIEW_PATH = "/view"
DATA_PARAM = "data"


# MARK: - Payload


def build_payload(tracks: Sequence[TrackRecord], skin_id: str) -> SharePayload:
    """Wrap tracks and a theme id with encode-time metadata."""
    return SharePayload(
        tracks=list(tracks),
        skin_id=skin_id,
        metadata=ShareMetadata(
            created_at=datetime.now(timezone.utc).isoformat(),
            version=PAYLOAD_VERSION,
        ),
    )


def _to_json(payload: SharePayload) -> str:
    data = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


# MARK: - Encode / Decode


def encode(tracks: Sequence[TrackRecord], skin_id: str) -> str:
    """
    Compress tracks and a theme id into a URL-safe string.

    The result only uses the characters A-Z, a-z, 0-9, "-" and "_".

    Raises:
        CompressionError: If the payload cannot be serialized or compressed
    """
    try:
        text = _to_json(build_payload(tracks, skin_id))
        compressed = zlib.compress(text.encode("utf-8"), level=9)
    except (TypeError, ValueError, ValidationError, zlib.error) as e:
        logger.error("Failed to compress share payload: %s", e)
        raise CompressionError(f"Failed to compress timeline: {e}") from e

    return base64.urlsafe_b64encode(compressed).rstrip(b"=").decode("ascii")


def _decompress(compressed: bytes, max_bytes: int) -> bytes:
    """Inflate a zlib stream, refusing output larger than max_bytes."""
    inflater = zlib.decompressobj()
    output = inflater.decompress(compressed, max_bytes)
    if inflater.unconsumed_tail:
        raise DecodeError(f"Share payload exceeds {max_bytes} bytes")
    if not inflater.eof or inflater.unused_data:
        raise DecodeError("Share payload is truncated or has trailing data")
    return output


def decode(data: str, max_bytes: int = MAX_PAYLOAD_BYTES) -> SharePayload:
    """
    Turn a compressed share string back into a SharePayload.

    Args:
        data: The compressed string taken from a share link
        max_bytes: Largest decompressed payload accepted

    Raises:
        DecodeError: If the string is truncated, tampered with or does not
            describe a valid payload
    """
    try:
        raw = data.strip().encode("ascii")
        padded = raw + b"=" * (-len(raw) % 4)
        compressed = base64.b64decode(padded, altchars=b"-_", validate=True)
        text = _decompress(compressed, max_bytes).decode("utf-8")
    except (UnicodeError, binascii.Error, ValueError, zlib.error) as e:
        logger.error("Failed to decompress share payload: %s", e)
        raise DecodeError("Failed to decompress timeline. Link may be corrupted.") from e

    if not text:
        raise DecodeError("Decompression returned empty output")

    try:
        return SharePayload.model_validate(json.loads(text))
    except (json.JSONDecodeError, RecursionError, ValidationError) as e:
        logger.error("Share payload is not well formed: %s", e)
        raise DecodeError("Share payload is not well formed") from e


# MARK: - URLs


def share_url(base_url: str, compressed: str) -> str:
    """Build the view link for a compressed payload."""
    return f"{base_url.rstrip('/')}{VIEW_PATH}?{DATA_PARAM}={quote(compressed, safe='')}"


def extract_data(url: str) -> str:
    """
    Pull the compressed payload out of a share link.

    Accepts a full URL, a bare query string or the compressed string itself.

    Raises:
        DecodeError: If the link has no data parameter
    """
    url = url.strip()
    if "?" not in url and "=" not in url and "/" not in url:
        return url

    query = urlsplit(url).query if "?" in url else url
    values = parse_qs(query).get(DATA_PARAM)
    if not values or not values[0]:
        raise DecodeError("No timeline data found in link")
    return values[0]
