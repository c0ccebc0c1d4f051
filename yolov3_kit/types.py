from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Mapping, Tuple

from .errors import ClassCatalogMismatch


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box in absolute pixel coordinates of the source image (top-left origin).
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_xywh(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass(frozen=True)
class Candidate:
    class_id: int
    score: float
    box: BoundingBox


@dataclass(frozen=True)
class Detection:
    """
    Final, labeled detection handed to the caller.
    """

    id: int
    class_id: int
    class_name: str
    confidence: float
    box: BoundingBox

    @property
    def label(self) -> str:
        # Same text the overlay layer draws next to the box.
        return f"{self.class_name} : {self.confidence:.6f}"

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "class_id": self.class_id,
            "class_name": self.class_name,
            "confidence": self.confidence,
            "box": {
                "x": self.box.x,
                "y": self.box.y,
                "width": self.box.width,
                "height": self.box.height,
            },
        }


class ClassCatalog:
    """
    Ordered, immutable class names aligned with the score columns of a raw row.
    """

    __slots__ = ("_names",)

    def __init__(self, names: Iterable[str]):
        self._names: Tuple[str, ...] = tuple(str(n) for n in names)

    @classmethod
    def from_mapping(cls, names: Mapping[int, str]) -> "ClassCatalog":
        ids = sorted(names)
        if ids != list(range(len(ids))):
            raise ClassCatalogMismatch(f"Class ids must be contiguous from 0, got {ids}")
        return cls(names[i] for i in ids)

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    def name_for(self, class_id: int) -> str:
        if not 0 <= class_id < len(self._names):
            raise ClassCatalogMismatch(
                f"Class id {class_id} outside catalog of {len(self._names)} classes"
            )
        return self._names[class_id]

    def __len__(self) -> int:
        return len(self._names)

    def __getitem__(self, class_id: int) -> str:
        return self._names[class_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ClassCatalog):
            return self._names == other._names
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._names)

    def __repr__(self) -> str:
        return f"ClassCatalog({list(self._names)!r})"
