"""
Plain-text settlement report: one field per line, fixed order, no header.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from txreport.models import SettlementRecord, format_btc


def report_lines(record: SettlementRecord) -> list[str]:
    """Fields in report order. Amounts are BTC with 8 decimals."""
    return [
        record.txid,
        record.sender_address,
        format_btc(record.sender_amount),
        record.receiver_address,
        format_btc(record.receiver_amount),
        record.change_address or "",
        format_btc(record.change_amount),
        format_btc(record.fee),
        str(record.block_height),
        record.block_hash,
    ]


def write_report(record: SettlementRecord, path: str | Path) -> Path:
    """
    Write the report, replacing any existing file.

    The content goes to a sibling temporary file first so an interrupted
    write never leaves a partial report at ``path``.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        tmp_path.write_text("".join(f"{line}\n" for line in report_lines(record)))
        tmp_path.replace(path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise

    logger.info(f"Transaction details written to {path}")
    return path
