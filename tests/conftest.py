from __future__ import annotations

import pytest  # type: ignore[import]

from helpers import SAMPLE_DIFF, parse
from layered_review.models import ParsedDiff


@pytest.fixture()
def sample_diff() -> ParsedDiff:
    return parse(SAMPLE_DIFF)
