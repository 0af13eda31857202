from __future__ import annotations

from collections.abc import Iterable

MAX_REPORTED_ROW_IDS = 10


class RecordValidationError(ValueError):
    """Raised at the ingestion boundary when records break the record schema."""

    def __init__(self, message: str, *, field: str, row_ids: Iterable[object] = ()) -> None:
        self.field = field
        self.row_ids = [str(row_id) for row_id in row_ids][:MAX_REPORTED_ROW_IDS]
        detail = f" (ids: {', '.join(self.row_ids)})" if self.row_ids else ""
        super().__init__(f"{field}: {message}{detail}")
