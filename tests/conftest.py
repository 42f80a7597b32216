from __future__ import annotations

import pytest

from tests.fakes import FailingRouteProvider, FakeSearchProvider


@pytest.fixture()
def search_provider() -> FakeSearchProvider:
    return FakeSearchProvider()


@pytest.fixture()
def unreachable_router() -> FailingRouteProvider:
    return FailingRouteProvider()
