"""
Receipt Routes — Serve stored receipt PDFs, with byte-range support for
WhatsApp media fetches.
"""
import re
from pathlib import Path
from typing import Optional, Tuple

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from temple_donations.schemas.schemas import ERROR_RESPONSES
from temple_donations.services.receipt_service import ReceiptRenderer

router = APIRouter(prefix="/api/receipts", tags=["Receipts"], responses=ERROR_RESPONSES)

FILENAME_PATTERN = re.compile(r"^(?:cash-)?receipt-[A-Za-z0-9_-]+\.pdf$")
RANGE_PATTERN = re.compile(r"^bytes=(\d*)-(\d*)$")


class RangeNotSatisfiable(Exception):
    pass


def parse_range(header: Optional[str], size: int) -> Optional[Tuple[int, int]]:
    """Parse a single 'bytes=start-end' range. None means serve the whole file."""
    if not header:
        return None
    match = RANGE_PATTERN.match(header.strip())
    if not match:
        return None
    start_text, end_text = match.groups()
    if not start_text and not end_text:
        return None

    if not start_text:
        # Suffix range: the last N bytes
        length = int(end_text)
        if length == 0:
            raise RangeNotSatisfiable()
        return max(size - length, 0), size - 1

    start = int(start_text)
    end = min(int(end_text), size - 1) if end_text else size - 1
    if start >= size or start > end:
        raise RangeNotSatisfiable()
    return start, end


def _pdf_response(path: Path, request: Request) -> Response:
    content = path.read_bytes()
    size = len(content)
    headers = {
        "Content-Disposition": f'inline; filename="{path.name}"',
        "Accept-Ranges": "bytes",
        "Cache-Control": "public, max-age=3600",
    }

    try:
        byte_range = parse_range(request.headers.get("range"), size)
    except RangeNotSatisfiable:
        headers["Content-Range"] = f"bytes */{size}"
        return Response(status_code=416, headers=headers)

    if byte_range is None:
        return Response(content=content, media_type="application/pdf", headers=headers)

    start, end = byte_range
    headers["Content-Range"] = f"bytes {start}-{end}/{size}"
    return Response(content=content[start:end + 1], status_code=206, media_type="application/pdf", headers=headers)


@router.get("/by-transaction/{transaction_id}")
def receipt_for_transaction(transaction_id: str, request: Request):
    """Newest stored receipt for a transaction id."""
    path = ReceiptRenderer.latest_for(transaction_id)
    if path is None:
        raise HTTPException(status_code=404, detail="Receipt not found")
    return _pdf_response(path, request)


@router.get("/{filename}")
def get_receipt(filename: str, request: Request):
    """Serve one stored receipt by file name."""
    if not FILENAME_PATTERN.match(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")

    path = ReceiptRenderer.receipts_dir() / filename
    if not path.is_file():
        raise HTTPException(status_code=404, detail="PDF not found")
    return _pdf_response(path, request)
