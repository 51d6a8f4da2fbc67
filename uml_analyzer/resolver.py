import logging
from typing import Dict, List, Optional

from .models import TypeRecord

logger = logging.getLogger(__name__)


def simple_name(type_name: str) -> str:
    """'com.example.Food' -> 'Food'"""
    return type_name.rsplit('.', 1)[-1] if type_name else type_name


class TypeIndex:
    """
    Lookup of TypeRecords by simple or fully qualified name, built once per run.

    A name matches a record when it equals either the record's simple name or
    its full name, and the first record in extraction order wins. Two types
    sharing a simple name in different packages are therefore ambiguous when
    referenced by simple name: the first one extracted is returned. This is a
    known imprecision of name-based resolution and is logged, not corrected.
    """
    def __init__(self, types: Dict[str, TypeRecord]):
        self._by_full_name: Dict[str, TypeRecord] = {}
        self._by_simple_name: Dict[str, List[TypeRecord]] = {}
        self._reported_ambiguous = set()
        for record in types.values():
            self._by_full_name[record.full_name] = record
            self._by_simple_name.setdefault(record.name, []).append(record)

    def candidates(self, type_name: str) -> List[TypeRecord]:
        if not type_name:
            return []
        if '.' in type_name:
            # Simple names never contain a dot, so only the full name can match.
            record = self._by_full_name.get(type_name)
            return [record] if record else []
        return list(self._by_simple_name.get(type_name, []))

    def find(self, type_name: str) -> Optional[TypeRecord]:
        candidates = self.candidates(type_name)
        if not candidates:
            return None
        if len(candidates) > 1 and type_name not in self._reported_ambiguous:
            self._reported_ambiguous.add(type_name)
            logger.debug("Ambiguous type name %s: %s, using %s", type_name,
                         ", ".join(c.full_name for c in candidates), candidates[0].full_name)
        return candidates[0]

    def has_simple_name(self, type_name: str) -> bool:
        return type_name in self._by_simple_name

    def component_of(self, type_name: str) -> Optional[str]:
        """Component (package) declaring type_name, or None for types outside the model."""
        record = self.find(type_name)
        return record.component_name if record else None
