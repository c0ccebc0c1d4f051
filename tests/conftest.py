from __future__ import annotations

import sys
from pathlib import Path

# Running the suite from a checkout without `pip install -e .` still has to
# resolve `import yolov3_kit` against the repo root.
_REPO_ROOT = str(Path(__file__).resolve().parents[1])
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)
