"""JSON adapter: documents are structured, JSON-lines streams are summarised."""

from __future__ import annotations

import json

from ..compactor import compact
from ..text import decode_lossy, strip_ansi
from .base import Adapter, DegradedResult

PREVIEW_RECORDS = 3


class JsonAdapter(Adapter):
    name = "json"
    description = "JSON documents (compacted) and JSON-lines logs (summarised)"

    def try_degraded_parse(self, data: bytes) -> DegradedResult | None:
        lines = [ln for ln in strip_ansi(decode_lossy(data)).splitlines() if ln.strip()]
        if not lines:
            return None

        records = []
        bad = 0
        for line in lines:
            try:
                records.append(json.loads(line))
            except ValueError:
                bad += 1
        # Mostly not JSON: no confident signal.
        if not records or bad > len(records):
            return None

        keys: list[str] = []
        for record in records:
            if isinstance(record, dict):
                keys.extend(k for k in record if k not in keys)

        out = [f"{len(records)} JSON records"]
        if keys:
            out.append(f"keys: {', '.join(keys)}")
        for record in records[:PREVIEW_RECORDS]:
            out.append(compact(record, depth=1))
        if len(records) > PREVIEW_RECORDS:
            out.append(f"...+{len(records) - PREVIEW_RECORDS} more records")

        warnings = ["json: output is a JSON-lines stream, not a single document"]
        if bad:
            warnings.append(f"json: {bad} lines were not valid JSON and are not shown")
        return "\n".join(out), warnings
