# Print every local-storage key with the size and record count of its JSON value.
import os
import sys

ROOT = os.path.dirname(os.path.dirname(__file__))
sys.path.insert(0, ROOT)

from core.database import DATABASE_URL, init_db  # noqa: E402
from core.local_storage import LocalStorage  # noqa: E402

print("DB:", DATABASE_URL)
init_db()
storage = LocalStorage()
for key in storage.keys():
    raw = storage.get_item(key) or ""
    try:
        value = storage.read_json(key)
    except ValueError as e:
        print(f"{key}: {len(raw)} chars, unreadable ({e})")
        continue
    if isinstance(value, dict):
        counts = ", ".join(f"{k}={len(v)}" for k, v in value.items() if isinstance(v, list))
        print(f"{key}: {len(raw)} chars, {counts or 'object'}")
    elif isinstance(value, list):
        print(f"{key}: {len(raw)} chars, {len(value)} record(s)")
    else:
        print(f"{key}: {len(raw)} chars")
