"""Workspace store: the only writer of team documents."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Optional

from ..errors import NotMemberError, ValidationError
from .adapters import BackendAdapter
from .entities import DOCUMENT_FIELDS, empty_fields

__all__ = ["WorkspaceStore"]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class WorkspaceStore:
    """Reads and writes team documents through a backend adapter.

    Reads never fail for missing data: an absent document, or an absent
    field, reads as empty. Writes replace one whole field and leave every
    other field untouched.
    """

    def __init__(self, adapter: BackendAdapter):
        self.adapter = adapter

    def read(self, team_id: str, field: Optional[str] = None) -> Any:
        """Return the full document, or one field's records when *field* is given."""

        document = self.adapter.get_document(team_id)
        if field is None:
            data = empty_fields()
            if document is not None:
                for name in DOCUMENT_FIELDS:
                    data[name] = list(document.fields.get(name) or [])
            return data

        if field not in DOCUMENT_FIELDS or document is None:
            return []
        return list(document.fields.get(field) or [])

    def write(self, team_id: str, field: str, records: Any) -> None:
        """Replace *field* of the team's document with *records*."""

        if field not in DOCUMENT_FIELDS:
            raise ValidationError(f"Unknown data type: {field}")
        if not isinstance(records, list):
            raise ValidationError("Data must be a JSON array of records")
        if not team_id or self.adapter.find_team_by_id(team_id) is None:
            raise NotMemberError()

        self.adapter.upsert_document(team_id, {field: records})
        logger.debug(
            "team_data_written",
            extra={"team_id": team_id, "field": field, "count": len(records)},
        )

    def create_empty(self, team_id: str) -> None:
        """Create an all-empty document for a new team if none exists yet."""

        if self.adapter.get_document(team_id) is None:
            self.adapter.upsert_document(team_id, {})

    def updated_at(self, team_id: str) -> dt.datetime | None:
        document = self.adapter.get_document(team_id)
        return document.updated_at if document else None
