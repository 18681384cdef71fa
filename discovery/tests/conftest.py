from __future__ import annotations

import pytest

from discovery.corpus.models import Restaurant

from .doubles import make_restaurant


@pytest.fixture
def corpus() -> list[Restaurant]:
    return [
        make_restaurant("a", "A", ("Thai",), 4.5, 80, 100),
        make_restaurant("b", "B", ("Italian",), 4.9, 150, 250),
        make_restaurant("c", "Thai Grill", ("Thai", "Grill"), 3.9, 120, 240),
        make_restaurant("d", "Sushi Bar", ("Japanese", "Sushi"), 4.2, 90, 150),
        make_restaurant("e", "Noodle Stop", ("noodles", "thai"), None, None, None),
    ]
