from __future__ import annotations

import re
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent.parent / "src"
TESTS_DIR = Path(__file__).resolve().parent


def test_no_naive_datetime_patterns():
    """Ensure the codebase does not use deprecated/naive UTC constructors.

    We forbid `datetime.utcnow(` entirely and bare `datetime.now()` without a timezone argument.
    Allow: datetime.now(timezone.utc) or datetime.now(tz=timezone.utc).
    """
    forbidden = []
    this_file = Path(__file__).resolve()
    for base in (SRC_DIR, TESTS_DIR):
        for py_file in base.rglob("*.py"):
            if py_file.resolve() == this_file:
                continue
            for i, line in enumerate(py_file.read_text(encoding="utf-8").splitlines(), start=1):
                stripped = line.strip()
                if stripped.startswith("#") or stripped.startswith("\""):
                    continue
                if "allow-naive-datetime" in stripped:
                    continue
                if "datetime.utcnow(" in stripped:
                    forbidden.append((py_file, i, "datetime.utcnow(", stripped))
                for m in re.finditer(r"datetime\.now\(([^)]*)\)", stripped):
                    inner = m.group(1).strip()
                    if not inner:
                        forbidden.append((py_file, i, "datetime.now() naive", stripped))
                    elif "timezone.utc" not in inner and "tz=" not in inner:
                        forbidden.append((py_file, i, f"datetime.now({inner}) lacks explicit timezone", stripped))
    assert not forbidden, (
        "Found naive datetime usages (add '# allow-naive-datetime' comment to intentionally allow):\n"
        + "\n".join(f"{p}:{ln}: {reason} -> {snippet}" for p, ln, reason, snippet in forbidden)
    )
