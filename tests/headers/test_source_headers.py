#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2026 gwz

import re
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent.parent

COPYRIGHT_RE = re.compile(r"^#  Copyright \(c\) \d{4}(?:-\d{4})? gwz$", re.MULTILINE)
SPDX_LINE = "#  SPDX-License-Identifier: MIT OR Apache-2.0"
MAX_SCAN_LINES = 40


def _sources():
    yield PROJECT_ROOT / "errortype.py"
    yield from sorted(PROJECT_ROOT.glob("et_*.py"))
    yield from sorted((PROJECT_ROOT / "tests").rglob("*.py"))


def _head(path: Path) -> str:
    return "\n".join(path.read_text(encoding="utf-8").splitlines()[:MAX_SCAN_LINES])


def test_every_source_carries_the_license_header():
    missing = []
    for path in _sources():
        head = _head(path)
        if SPDX_LINE not in head.splitlines() or not COPYRIGHT_RE.search(head):
            missing.append(str(path.relative_to(PROJECT_ROOT)))
    assert missing == []
