"""
Caption export: JSON rows, CSV, or one TXT file per asset.

Caption text priority everywhere is final > manual > AI > "", where only a
missing (None) value falls through.
"""
import csv
import io
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.caption import Caption, CaptionStatus, pick_caption
from app.models.media_asset import MediaAsset

EXPORT_FORMATS = ("json", "csv", "txt")
CSV_HEADER = ["filename", "caption", "status", "model", "confidence"]

_EXTENSION_RE = re.compile(r"\.[^.]+$")


def best_caption(row: Any) -> str:
    return pick_caption(row.final_caption, row.manual_caption, row.ai_caption)


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, CaptionStatus) else str(status)


def export_json(rows: List[Any]) -> List[Dict[str, Any]]:
    """Raw rows as plain dicts."""
    return [
        {
            "id": row.id,
            "original_name": row.original_name,
            "public_url": row.public_url,
            "storage_key": row.storage_key,
            "ai_caption": row.ai_caption,
            "manual_caption": row.manual_caption,
            "final_caption": row.final_caption,
            "status": _status_value(row.status),
            "model": row.model,
            "confidence": row.confidence,
        }
        for row in rows
    ]


def export_csv(rows: List[Any]) -> str:
    """
    One quoted line per row under a fixed header.

    Embedded double quotes are doubled (RFC 4180); a missing model or
    confidence is written as an empty field.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    buffer.write(",".join(CSV_HEADER) + "\n")
    for row in rows:
        writer.writerow([
            row.original_name or "",
            best_caption(row),
            _status_value(row.status),
            row.model or "",
            "" if row.confidence is None else row.confidence,
        ])
    return buffer.getvalue().rstrip("\n")


def txt_filename(original_name: Optional[str], caption_id: int) -> str:
    """cat.jpg -> cat.txt; no name -> caption_{id}.txt"""
    base_name = _EXTENSION_RE.sub("", original_name) if original_name else ""
    return f"{base_name or f'caption_{caption_id}'}.txt"


def export_txt(rows: List[Any]) -> List[Dict[str, str]]:
    """One {filename, content} entry per row."""
    return [
        {"filename": txt_filename(row.original_name, row.id), "content": best_caption(row)}
        for row in rows
    ]


async def load_export_rows(
    db: AsyncSession,
    dataset_id: Optional[int] = None,
    status_filter: Optional[CaptionStatus] = None,
) -> List[Any]:
    """Caption rows joined to their asset, ordered by original filename."""
    query = (
        select(
            Caption.id,
            MediaAsset.original_name,
            MediaAsset.public_url,
            MediaAsset.storage_key,
            Caption.ai_caption,
            Caption.manual_caption,
            Caption.final_caption,
            Caption.status,
            Caption.model,
            Caption.confidence,
        )
        .join(MediaAsset, Caption.media_asset_id == MediaAsset.id)
    )
    if dataset_id is not None:
        query = query.where(MediaAsset.dataset_id == dataset_id)
    if status_filter is not None:
        query = query.where(Caption.status == status_filter)

    result = await db.execute(query.order_by(MediaAsset.original_name, Caption.id))
    return list(result.all())


async def export_captions(
    db: AsyncSession,
    dataset_id: Optional[int] = None,
    export_format: str = "json",
    status_filter: Optional[CaptionStatus] = None,
) -> Dict[str, Any]:
    """
    Serialize captions.

    Returns:
        {"format": "json", "data": [...]} | {"format": "csv", "data": "..."}
        | {"format": "txt", "files": [{"filename", "content"}, ...]}
    """
    if export_format not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {export_format}")

    rows = await load_export_rows(db, dataset_id=dataset_id, status_filter=status_filter)

    if export_format == "csv":
        return {"format": "csv", "data": export_csv(rows)}
    if export_format == "txt":
        return {"format": "txt", "files": export_txt(rows)}
    return {"format": "json", "data": export_json(rows)}
