"""
file_parser.py
==============

Turn an uploaded **CSV / Excel** file into a ``pandas.DataFrame``.

* file type from extension (MIME as a hint)
* CSV encoding guessed with **chardet**, then a fixed fallback list
  (the purchase-order exports come as UTF-8, UTF-8 with BOM, UTF-16 or GBK)
* delimiter: comma, then tab, semicolon or pipe when comma gives one column
* headers NFKC-normalised, BOM / full-width spaces stripped, and common
  English/Chinese variants folded onto canonical names
* every value read as **string** (``dtype=str``, ``keep_default_na=False``)

Accepts a FastAPI ``UploadFile``, a path or raw bytes so the API, the bulk
import service and the tests all call the same function.
"""

from __future__ import annotations

import io
import mimetypes
import unicodedata
from pathlib import Path
from typing import Final, Iterable

import chardet
import pandas as pd
from fastapi import UploadFile

ENCODINGS: Final[list[str]] = [
    "utf-8",
    "utf-8-sig",
    "utf-16",
    "gb18030",
    "cp936",
    "iso8859-1",
]

DELIMITERS: Final[tuple[str, ...]] = (",", "\t", ";", "|")

# normalised (casefolded) header -> canonical column
HEADER_ALIASES: Final[dict[str, str]] = {
    # purchase order
    "po": "po",
    "p.o": "po",
    "p.o.": "po",
    "po no": "po",
    "ttx单号": "po",
    "using_po": "po",
    "系统单号": "po",
    "client po": "client_po",
    "client_po": "client_po",
    "客户po": "client_po",
    # parties
    "client": "client",
    "客户": "client",
    "客户简称": "client",
    "recipient": "recipient",
    "收件人": "recipient",
    # product
    "product": "product",
    "product name": "product",
    "品名": "product",
    "产品名称": "product",
    "item no": "item_no",
    "item_no": "item_no",
    "itemno": "item_no",
    "货号": "item_no",
    "batch": "batch",
    "批次": "batch",
    "size": "size",
    "尺码": "size",
    "note": "note",
    "备注": "note",
    "product code": "product_code",
    "product_code": "product_code",
    "产品编码": "product_code",
    "quality note": "quality_note",
    "quality_note": "quality_note",
    "质量要求": "quality_note",
    # quantities / dates
    "qty": "qty",
    "quantity": "qty",
    "数量": "qty",
    "date": "date_in",
    "date in": "date_in",
    "date_in": "date_in",
    "入库日期": "date_in",
    "date sent": "date_sent",
    "date_sent": "date_sent",
    "ship date": "date_sent",
    "发货日期": "date_sent",
    # delivery
    "courier": "courier",
    "快递": "courier",
    "快递公司": "courier",
    "tracking": "tracking",
    "tracking no": "tracking",
    "快递单号": "tracking",
    "stock id": "stock_id",
    "stock_id": "stock_id",
}


# --------------------------------------------------------------------------- #
# public API                                                                  #
# --------------------------------------------------------------------------- #
def read_dataframe(file: UploadFile | str | Path | bytes | bytearray) -> pd.DataFrame:
    """
    Parameters
    ----------
    file :
        * **FastAPI UploadFile** from an upload endpoint
        * **str / Path** pointing at a file on disk
        * **bytes / bytearray** already in memory (treated as CSV)

    Returns
    -------
    pandas.DataFrame
        first row as header, every cell as ``str``, canonical column names

    Raises
    ------
    ValueError
        empty file, unsupported type, undecodable CSV or no data rows
    """
    raw, filename = _get_raw_and_name(file)
    if not raw:
        raise ValueError("File is empty")

    lower_name = filename.lower()
    mime, _ = mimetypes.guess_type(filename)

    if lower_name.endswith((".xlsx", ".xls")):
        df = pd.read_excel(io.BytesIO(raw), dtype=str, keep_default_na=False)
    elif lower_name.endswith(".csv") or mime in ("text/csv", None):
        df = _read_csv(raw)
    else:
        raise ValueError("Unsupported file type (only .csv/.xlsx/.xls accepted)")

    df.columns = [canonical_header(c) for c in df.columns]

    if df.empty:
        raise ValueError("File has no data rows")
    return df


def canonical_header(name: object) -> str:
    """NFKC + trim + alias folding; unknown headers keep their cleaned form."""
    cleaned = (
        unicodedata.normalize("NFKC", str(name))
        .replace("\ufeff", "")  # BOM
        .replace("\u3000", " ")  # full-width space
        .strip()
    )
    return HEADER_ALIASES.get(" ".join(cleaned.casefold().split()), cleaned)


__all__ = ["read_dataframe", "canonical_header", "HEADER_ALIASES"]


# --------------------------------------------------------------------------- #
# helpers (private)                                                           #
# --------------------------------------------------------------------------- #
def _read_csv(raw: bytes) -> pd.DataFrame:
    # NUL bytes in the first KB almost always mean UTF-16
    might_be_utf16 = b"\x00" in raw[:1024]
    enc_guess = (chardet.detect(raw[:4096]).get("encoding") or "").lower()
    enc_try_order = (["utf-16", "utf-16-le", "utf-16-be"] if might_be_utf16 else []) + ["utf-8", enc_guess] + ENCODINGS

    for enc in _unique(e for e in enc_try_order if e):
        try:
            raw.decode(enc)
        except (UnicodeDecodeError, LookupError):
            continue
        return _split_csv(raw, enc)
    raise ValueError("Cannot decode CSV - unknown encoding")


def _split_csv(raw: bytes, enc: str) -> pd.DataFrame:
    """Comma first; tab, semicolon and pipe only when comma yields a single column."""
    df = None
    for sep in DELIMITERS:
        try:
            cand = pd.read_csv(io.BytesIO(raw), encoding=enc, dtype=str, keep_default_na=False, sep=sep)
        except pd.errors.ParserError:
            continue
        if cand.shape[1] > 1:
            return cand
        if df is None:
            df = cand
    if df is None:
        raise ValueError("Cannot split CSV rows into columns")
    return df


def _get_raw_and_name(file: UploadFile | str | Path | bytes | bytearray) -> tuple[bytes, str]:
    if isinstance(file, (bytes, bytearray)):
        return bytes(file), ""
    if isinstance(file, (str, Path)):
        p = Path(file)
        return p.read_bytes(), p.name
    if isinstance(file, UploadFile) or (hasattr(file, "file") and hasattr(file, "filename")):
        return file.file.read(), file.filename or ""
    raise TypeError(f"file must be UploadFile | str | Path | bytes | bytearray; got {type(file)}")


def _unique(seq: Iterable[str]) -> list[str]:
    """Drop duplicates, keep order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in seq:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
