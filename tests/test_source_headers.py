"""Source files carry the project's licence header."""

from __future__ import annotations

from pathlib import Path

import pytest

PACKAGE_ROOT = Path(__file__).resolve().parent.parent / "src" / "videoracle"
HEADED = sorted(
    path
    for path in PACKAGE_ROOT.rglob("*.py")
    if path.read_text(encoding="utf-8").startswith("# SPDX-License-Identifier: MIT")
)


def test_headers_present():
    assert HEADED


@pytest.mark.parametrize("path", HEADED, ids=lambda p: str(p.relative_to(PACKAGE_ROOT)))
def test_copyright_holder(path):
    second_line = path.read_text(encoding="utf-8").splitlines()[1]
    assert second_line == "# Copyright (c) 2026 VideOracle Contributors"
