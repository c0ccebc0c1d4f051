from __future__ import annotations

from itertools import count
from typing import Iterator, List, Mapping, Optional, Sequence

from .errors import ClassCatalogMismatch
from .types import Candidate, ClassCatalog, Detection


def aggregate(
    survivors: Mapping[int, Sequence[Candidate]],
    catalog: ClassCatalog,
    ids: Optional[Iterator[int]] = None,
) -> List[Detection]:
    """
    Flatten per-class survivors into detections: class id ascending, then survivor order.

    Ids come from `ids` (defaults to 0, 1, 2, ...). Pass a shared iterator to keep ids
    unique across several calls.
    """

    unknown = sorted(cls for cls in survivors if not 0 <= cls < len(catalog))
    if unknown:
        raise ClassCatalogMismatch(f"Class ids {unknown} outside catalog of {len(catalog)} classes")

    next_id = count(0) if ids is None else ids
    detections: List[Detection] = []
    for class_id in range(len(catalog)):
        class_name = catalog.name_for(class_id)
        for cand in survivors.get(class_id, ()):
            detections.append(
                Detection(
                    id=next(next_id),
                    class_id=class_id,
                    class_name=class_name,
                    confidence=cand.score,
                    box=cand.box,
                )
            )
    return detections
