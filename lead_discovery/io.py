"""Export helpers for discovered leads."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, MutableMapping, Optional, Union

import pandas as pd

from .models import Lead

PathLike = Union[str, Path]

_CSV_SUFFIXES = {".csv", ".tsv"}
_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def leads_to_dataframe(leads: Iterable[Lead], *, include_metadata: bool = False) -> pd.DataFrame:
    """Convert leads into a :class:`pandas.DataFrame`, one row per lead."""

    rows = []
    for lead in leads:
        row: MutableMapping[str, object] = lead.as_row()
        if include_metadata:
            row["metadata"] = json.dumps(lead.metadata, ensure_ascii=False)
        rows.append(row)
    return pd.DataFrame(rows)


def export_leads(
    path: PathLike,
    leads: Iterable[Lead],
    *,
    include_metadata: bool = False,
    sheet_name: str = "Leads",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write ``leads`` to a CSV, TSV or Excel file chosen by the path suffix."""

    output_path = Path(path)
    suffix = output_path.suffix.lower()
    if suffix not in _CSV_SUFFIXES | _EXCEL_SUFFIXES:
        raise ValueError(f"Unsupported export file extension: {suffix}")

    dataframe = leads_to_dataframe(leads, include_metadata=include_metadata)
    exporter_kwargs = dict(exporter_kwargs or {})
    if suffix in _CSV_SUFFIXES:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(output_path, index=False, **exporter_kwargs)
    else:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(output_path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
    return output_path


__all__ = ["export_leads", "leads_to_dataframe"]
