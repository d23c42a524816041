# map_state.py
# Ordered registry of drawable map objects.
# Owns MapObject lifetimes; knows nothing about sessions or the backend.

from typing import Callable, Dict, Iterator, List, Optional

from .models import BoundingBox, LatLng, MapObject, ObjectKind, USER_OBJECT_ID
from .projector import compute_bounds
from .sim_config import SimConfig


class MapState:
    """
    Insertion-ordered collection of MapObjects plus the cached bounds.

    Draw order follows insertion order, so objects added later are painted
    on top.
    """

    def __init__(self, config: Optional[SimConfig] = None) -> None:
        self.config = config or SimConfig()
        self._objects: Dict[str, MapObject] = {}
        self._bounds: Optional[BoundingBox] = None

    # ------------------------------------------------------------------
    # Collection access
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._objects)

    def __iter__(self) -> Iterator[MapObject]:
        return iter(list(self._objects.values()))

    def __contains__(self, object_id: str) -> bool:
        return object_id in self._objects

    def get(self, object_id: str) -> Optional[MapObject]:
        return self._objects.get(object_id)

    def of_kind(self, kind: ObjectKind) -> List[MapObject]:
        return [o for o in self._objects.values() if o.kind == kind]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, obj: MapObject) -> MapObject:
        """Insert obj, replacing any object with the same id in place."""
        self._objects[obj.id] = obj
        self.invalidate_bounds()
        return obj

    def remove(self, object_id: str) -> Optional[MapObject]:
        obj = self._objects.pop(object_id, None)
        if obj is not None:
            self.invalidate_bounds()
        return obj

    def remove_where(self, predicate: Callable[[MapObject], bool]) -> List[MapObject]:
        doomed = [o for o in self._objects.values() if predicate(o)]
        for o in doomed:
            del self._objects[o.id]
        if doomed:
            self.invalidate_bounds()
        return doomed

    def set_user_location(self, position: LatLng) -> MapObject:
        """Create or move the "You" marker."""
        obj = self._objects.get(USER_OBJECT_ID)
        if obj is None:
            obj = self.add(MapObject(
                id=USER_OBJECT_ID,
                kind=ObjectKind.USER,
                position=position,
                label="You",
                color="#1976d2",
            ))
        else:
            obj.position = position
        self.invalidate_bounds()
        return obj

    @property
    def user_location(self) -> Optional[LatLng]:
        obj = self._objects.get(USER_OBJECT_ID)
        return obj.position if obj else None

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    def invalidate_bounds(self) -> None:
        self._bounds = None

    def recompute_bounds(self) -> BoundingBox:
        self._bounds = compute_bounds(
            (o.position for o in self._objects.values()), self.config
        )
        return self._bounds

    @property
    def bounds(self) -> BoundingBox:
        if self._bounds is None:
            return self.recompute_bounds()
        return self._bounds
