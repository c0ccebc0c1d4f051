from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Union

from .errors import ClassCatalogMismatch
from .types import ClassCatalog


PathLike = Union[str, Path]


# "  3: traffic light" / "  3: 'traffic light'"
_NAME_ENTRY = re.compile(r"""^\s+(\d+)\s*:\s*['"]?(.*?)['"]?\s*$""")


def _parse_names_block(lines: List[str]) -> Dict[int, str]:
    names: Dict[int, str] = {}
    block_start = next((i for i, line in enumerate(lines) if line.strip() == "names:"), None)
    if block_start is None:
        return names

    for line in lines[block_start + 1 :]:
        if not line.strip() or line.lstrip().startswith("#"):
            continue
        if not line[0].isspace():
            # Next top-level key closes the block.
            break
        match = _NAME_ENTRY.match(line)
        if match:
            names[int(match.group(1))] = match.group(2)
    return names


def load_class_names(path: PathLike) -> ClassCatalog:
    """
    Load the class catalog for a model.

    Two formats are understood:

    - labels file (e.g. `coco_names.txt`): one class name per line, line order is the class id;
    - `metadata.yaml` with a simple mapping:

        names:
          0: person
          1: bicycle
          ...

    The YAML variant is parsed line by line, without a PyYAML dependency.
    """

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Class names file not found: {p}")

    with open(p, "r", encoding="utf-8") as f:
        lines = f.readlines()

    if p.suffix.lower() in {".yaml", ".yml"}:
        catalog = ClassCatalog.from_mapping(_parse_names_block(lines))
    else:
        catalog = ClassCatalog(line.strip() for line in lines if line.strip())

    if len(catalog) == 0:
        raise ClassCatalogMismatch(f"No class names found in {p}")
    return catalog
