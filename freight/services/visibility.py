"""
Office-scoped visibility policy.

Pure functions over already loaded records: nothing here queries or
mutates. Records may be model instances or mappings with the same field
names.
"""

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Optional, Set

MANAGE_ALL_OFFICES = 'freight.manage_all_offices'
MANAGE_ALL_EXPENSES = 'freight.manage_all_expenses'


def _get(record: Any, name: str, default: Any = None) -> Any:
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _ids(values: Optional[Iterable[Any]]) -> Set[str]:
    return {str(v) for v in values or []}


@dataclass(frozen=True)
class Actor:
    """Who is looking: an office and a set of capability keys."""
    office_id: str = ''
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user) -> "Actor":
        if user is None or not user.is_authenticated:
            return cls()
        capabilities = set(user.get_all_permissions())
        if user.is_superuser or getattr(user, 'is_admin', False):
            capabilities.update({MANAGE_ALL_OFFICES, MANAGE_ALL_EXPENSES})
        return cls(office_id=getattr(user, 'office_id', '') or '', capabilities=frozenset(capabilities))

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    @property
    def is_global(self) -> bool:
        return self.can(MANAGE_ALL_OFFICES)


class VisibilityFilter:
    """
    Filters collections for one actor.

    A shipment is visible to an office-scoped actor when it starts or ends
    at the actor's office, or when any manifest leaving or reaching that
    office lists it. Settlements and inventory items are visible only
    through a visible shipment they reference.
    """

    def __init__(self, actor: Actor, dispatches: Iterable[Any] = ()):
        self.actor = actor
        self._manifest_shipment_ids: Set[str] = set()
        if not actor.is_global and actor.office_id:
            for dispatch in dispatches:
                if self._touches_office(dispatch):
                    self._manifest_shipment_ids |= _ids(_get(dispatch, 'shipment_ids'))

    def _touches_office(self, record: Any) -> bool:
        office = self.actor.office_id
        return bool(office) and office in (
            _get(record, 'origin_office_id'), _get(record, 'destination_office_id')
        )

    def can_see_shipment(self, shipment: Any) -> bool:
        if self.actor.is_global:
            return True
        return self._touches_office(shipment) or str(_get(shipment, 'id')) in self._manifest_shipment_ids

    def shipments(self, shipments: Iterable[Any]) -> List[Any]:
        return [s for s in shipments if self.can_see_shipment(s)]

    def visible_shipment_ids(self, shipments: Iterable[Any]) -> Set[str]:
        return {str(_get(s, 'id')) for s in self.shipments(shipments)}

    def dispatches(self, dispatches: Iterable[Any]) -> List[Any]:
        if self.actor.is_global:
            return list(dispatches)
        return [d for d in dispatches if self._touches_office(d)]

    def settlements(self, settlements: Iterable[Any], visible_shipment_ids: Set[str]) -> List[Any]:
        if self.actor.is_global:
            return list(settlements)
        return [
            s for s in settlements
            if _ids(_get(s, 'shipment_ids')) & visible_shipment_ids
        ]

    def inventory(self, items: Iterable[Any], visible_shipment_ids: Set[str]) -> List[Any]:
        if self.actor.is_global:
            return list(items)
        return [i for i in items if str(_get(i, 'shipment_id')) in visible_shipment_ids]

    def expenses(self, expenses: Iterable[Any]) -> List[Any]:
        if self.actor.can(MANAGE_ALL_EXPENSES):
            return list(expenses)
        office = self.actor.office_id
        return [e for e in expenses if office and _get(e, 'office_id') == office]


def visible_shipments(shipments: Iterable[Any], dispatches: Iterable[Any], actor: Actor) -> List[Any]:
    return VisibilityFilter(actor, dispatches).shipments(shipments)
