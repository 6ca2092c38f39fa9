"""
Export helpers
---------------------------------
Turn store data into downloadable bytes. Delivery itself (download button,
file dialog) is up to the page that calls these.
"""

import json

import pandas as pd


def snapshot_to_json(snapshot: dict) -> bytes:
    return json.dumps(snapshot, ensure_ascii=False, indent=2).encode("utf-8")


def snapshot_filename(snapshot: dict) -> str:
    stamp = str(snapshot.get("exportDate", ""))[:10] or "export"
    return f"clinic_data_{stamp}.json"


def rows_to_frame(rows: list[dict], columns: list[tuple[str, str]]) -> pd.DataFrame:
    """DataFrame of ``rows`` restricted to the selected ``(key, label)`` columns, in order."""
    keys = [key for key, _ in columns]
    frame = pd.DataFrame(rows, columns=keys)
    return frame.rename(columns=dict(columns))


def rows_to_csv(rows: list[dict], columns: list[tuple[str, str]]) -> bytes:
    return rows_to_frame(rows, columns).to_csv(index=False).encode("utf-8")
