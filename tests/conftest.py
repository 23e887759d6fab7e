from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from binrounds.models.domain import RouteArea, Subscription, SubscriptionStatus
from binrounds.persistence.memory import MemoryStore


def catalogue() -> list[RouteArea]:
    return [
        RouteArea(id="porthcawl-pm", name="Porthcawl", route_day="Monday", slot="PM", postcode_prefixes=("CF36",)),
        RouteArea(id="porthcawl-am", name="Porthcawl", route_day="Monday", slot="AM", postcode_prefixes=("CF36",)),
        RouteArea(id="bridgend", name="Bridgend", route_day="Tuesday", slot="ANY", postcode_prefixes=("CF31", "CF32")),
        RouteArea(id="maesteg", name="Maesteg", route_day="Thursday", slot="AM", postcode_prefixes=("CF34",)),
        RouteArea(id="pyle", name="Pyle", route_day="Wednesday", postcode_prefixes=("CF33",), active=False),
    ]


def make_subscription(sid: str, **overrides) -> Subscription:
    values = dict(
        id=sid,
        postcode="CF36 5AA",
        address=f"{sid} Esplanade",
        frequency="weekly",
        status=SubscriptionStatus.ACTIVE,
        route_area="Porthcawl",
        route_day="Monday",
        route_slot="AM",
        anchor_date="2024-01-01",
        next_collection_date="2024-01-08",
    )
    values.update(overrides)
    return Subscription(**values)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(route_areas=catalogue())


@pytest.fixture
def api_client(store: MemoryStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    from binrounds.api.deps import store_dependency
    from binrounds.config import settings
    from binrounds.main import create_app

    # report files go to tmpdir, and no ops key is required
    monkeypatch.setattr(settings, "data_root", tmp_path)
    monkeypatch.setattr(settings, "ops_admin_key", None)

    app = create_app()
    app.dependency_overrides[store_dependency] = lambda: store
    return TestClient(app)
