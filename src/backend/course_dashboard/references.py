"""
Resolve lookup strings from the record-storage API to the records they point at.

Lookup fields hold URL-like strings such as
``https://example.org/rest/apps/<app_id>/records/<record_id>``. Two ways of
pulling the record id out of them are supported:

``hex``
    The trailing 24-character hexadecimal token (the storage API's id format).
``path``
    Whatever follows the last ``/``, ignoring a trailing slash, query string
    and fragment. Useful for sources whose ids are not hexadecimal.

The two disagree on references such as ``.../records/abc`` (``path`` yields
``abc``, ``hex`` yields nothing), so one strategy is chosen per resolver.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Mapping, Optional, Protocol, TypeVar, Union

from .configuration import ReferenceStrategy

_HEX_ID = re.compile(r"([a-f0-9]{24})$", re.IGNORECASE)


class _HasRecordId(Protocol):
    record_id: str


RecordT = TypeVar("RecordT", bound=_HasRecordId)


def build_index(records: Iterable[RecordT]) -> Dict[str, RecordT]:
    """Index records by id; the first record wins on duplicate ids."""
    index: Dict[str, RecordT] = {}
    for record in records:
        index.setdefault(record.record_id, record)
    return index


def _extract_hex(reference: str) -> Optional[str]:
    match = _HEX_ID.search(reference.strip())
    return match.group(1) if match else None


def _extract_path(reference: str) -> Optional[str]:
    trimmed = reference.strip().split("#", 1)[0].split("?", 1)[0].rstrip("/")
    candidate = trimmed.rsplit("/", 1)[-1]
    return candidate or None


class ReferenceResolver:
    def __init__(self, strategy: ReferenceStrategy = "hex"):
        if strategy not in ("hex", "path"):
            raise ValueError(f"Unknown reference strategy: {strategy!r}")
        self.strategy = strategy

    def extract_id(self, reference: Optional[str]) -> Optional[str]:
        if not reference or not isinstance(reference, str):
            return None
        if self.strategy == "hex":
            return _extract_hex(reference)
        return _extract_path(reference)

    def resolve(
        self,
        reference: Optional[str],
        collection: Union[Mapping[str, RecordT], Iterable[RecordT]],
    ) -> Optional[RecordT]:
        """
        Return the record ``reference`` points at, or ``None`` when there is none.

        ``collection`` may be a ``build_index`` mapping (preferred for repeated
        lookups) or any iterable of records, which is scanned linearly.
        """

        record_id = self.extract_id(reference)
        if record_id is None:
            return None
        if isinstance(collection, Mapping):
            return collection.get(record_id)
        for record in collection:
            if record.record_id == record_id:
                return record
        return None
