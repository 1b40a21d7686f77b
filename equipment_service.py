import logging
import uuid
from typing import Dict, List, Optional

from db import ImplementRepository
from models import ImplementInfo, Measurable

log = logging.getLogger("equipment")

IMPLEMENT_NAMESPACE = uuid.UUID("6f1c2a9e-3b4d-4e8a-9c71-0d5e2f8a4b10")


def builtin_implement_id(name: str) -> uuid.UUID:
    """Stable id for a built-in implement, derived from its name."""
    return uuid.uuid5(IMPLEMENT_NAMESPACE, name.lower())


def _weight_measurables(name: str = "Weight") -> List[Measurable]:
    return [Measurable(name=name, unit="lbs"), Measurable(name=name, unit="kg")]


BUILTIN_IMPLEMENTS = tuple(
    ImplementInfo(id=builtin_implement_id(name), name=name, measurables=measurables)
    for name, measurables in (
        ("Barbell", _weight_measurables()),
        ("Dumbbell", _weight_measurables()),
        ("Cable", _weight_measurables()),
        ("Machine", _weight_measurables()),
        ("Kettlebell", _weight_measurables()),
        ("Box", [Measurable(name="Height", unit="in"), Measurable(name="Height", unit="cm")]),
        ("Band", [Measurable(name="Color", is_string_based=True)]),
        ("Bodyweight", _weight_measurables("Added Weight")),
    )
)


class ImplementLibrary:
    """Read access to built-in and user-defined implements."""

    def __init__(self, repo: Optional[ImplementRepository] = None) -> None:
        self.repo = repo
        self._by_id: Dict[uuid.UUID, ImplementInfo] = {}
        self.reload()

    def reload(self) -> None:
        self._by_id = {imp.id: imp for imp in BUILTIN_IMPLEMENTS}
        if self.repo is not None:
            for imp in self.repo.load_implements():
                self._by_id[imp.id] = imp

    @property
    def implements(self) -> List[ImplementInfo]:
        return sorted(self._by_id.values(), key=lambda i: i.name.lower())

    def get_implement(self, implement_id: uuid.UUID) -> Optional[ImplementInfo]:
        return self._by_id.get(implement_id)

    def find_by_name(self, name: str) -> Optional[ImplementInfo]:
        key = name.strip().lower()
        for imp in self._by_id.values():
            if imp.name.lower() == key:
                return imp
        return None

    def add_implement(
        self, name: str, measurables: List[Measurable]
    ) -> Optional[ImplementInfo]:
        """Create a custom implement, or ``None`` when the name is empty or taken."""
        name = name.strip()
        if not name or self.find_by_name(name) is not None:
            log.warning("rejected implement %r", name)
            return None
        implement = ImplementInfo(name=name, measurables=list(measurables), is_custom=True)
        self._by_id[implement.id] = implement
        if self.repo is not None:
            self.repo.save(implement)
        log.info("added implement %s", name)
        return implement

    def delete_implement(self, implement: ImplementInfo) -> None:
        if not implement.is_custom:
            return
        self._by_id.pop(implement.id, None)
        if self.repo is not None:
            self.repo.delete(implement)
