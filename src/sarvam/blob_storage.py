"""
src/sarvam/blob_storage.py
===========================
Blob Upload — VoiceBridge Sarvam layer

Responsibility:
    - Write an audio payload to the pre-signed (SAS) URL handed out by the
      Sarvam batch API
    - Single-shot upload: one PUT marked as a BlockBlob
    - Chunked-commit upload for very large payloads: PUT each block with a
      block id, then PUT the ordered block-id manifest to commit

This module does NOT:
    - Obtain upload URLs (see SarvamClient.get_upload_target)
    - Send the Sarvam API key (the SAS URL carries its own authorization)
"""

import base64
import logging
from urllib.parse import quote
from xml.sax.saxutils import escape

import requests

from src.errors import RemoteServiceError

logger = logging.getLogger("voicebridge.sarvam.blob_storage")

BLOB_TYPE_HEADER = "x-ms-blob-type"
BLOB_CONTENT_TYPE_HEADER = "x-ms-blob-content-type"
BLOCK_BLOB = "BlockBlob"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def upload_blob(
    session: requests.Session,
    upload_url: str,
    data: bytes,
    mime_type: str,
    timeout: float,
) -> None:
    """
    Upload *data* in a single PUT.

    Raises:
        RemoteServiceError: On a non-success status or transport failure.
    """
    headers = {
        BLOB_TYPE_HEADER: BLOCK_BLOB,
        "Content-Type": mime_type,
    }
    logger.info("Uploading %.2f KB to blob storage (single PUT).", len(data) / 1024)
    _put(session, upload_url, data, headers, timeout, "Blob upload")


def upload_blob_in_blocks(
    session: requests.Session,
    upload_url: str,
    data: bytes,
    mime_type: str,
    timeout: float,
    block_size: int,
) -> list[str]:
    """
    Upload *data* as a sequence of blocks and commit them with a block list.

    Args:
        session:     HTTP session to use.
        upload_url:  Pre-signed blob URL (may already carry a query string).
        data:        Payload bytes.
        mime_type:   Content type recorded on the committed blob.
        timeout:     Per-request timeout in seconds.
        block_size:  Maximum bytes per block.

    Returns:
        The committed block ids, in order.

    Raises:
        ValueError:         If block_size is not positive.
        RemoteServiceError: If any block PUT or the commit fails.
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")

    block_ids: list[str] = []
    for index, offset in enumerate(range(0, len(data), block_size)):
        block_id = _block_id(index)
        block = data[offset : offset + block_size]
        _put(
            session,
            _with_query(upload_url, f"comp=block&blockid={quote(block_id, safe='')}"),
            block,
            {"Content-Type": "application/octet-stream"},
            timeout,
            f"Blob block {index} upload",
        )
        block_ids.append(block_id)

    logger.info(
        "Uploaded %d block(s) (%.2f KB) — committing block list.",
        len(block_ids),
        len(data) / 1024,
    )

    manifest = _block_list_xml(block_ids)
    _put(
        session,
        _with_query(upload_url, "comp=blocklist"),
        manifest.encode("utf-8"),
        {
            "Content-Type": "application/xml",
            BLOB_CONTENT_TYPE_HEADER: mime_type,
        },
        timeout,
        "Blob block list commit",
    )
    return block_ids


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _block_id(index: int) -> str:
    """Block ids must be base64 and of equal length within one blob."""
    return base64.b64encode(f"block-{index:08d}".encode("ascii")).decode("ascii")


def _block_list_xml(block_ids: list[str]) -> str:
    entries = "".join(f"<Latest>{escape(block_id)}</Latest>" for block_id in block_ids)
    return f'<?xml version="1.0" encoding="utf-8"?><BlockList>{entries}</BlockList>'


def _with_query(url: str, query: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


def _put(
    session: requests.Session,
    url: str,
    body: bytes,
    headers: dict[str, str],
    timeout: float,
    operation: str,
) -> None:
    try:
        resp = session.put(url, data=body, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise RemoteServiceError(operation, None, str(exc)) from exc

    if not resp.ok:
        raise RemoteServiceError(operation, resp.status_code, resp.text)
