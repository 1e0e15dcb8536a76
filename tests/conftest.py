from __future__ import annotations

from typing import Iterator

import pytest

from datastore.sample_store import SampleStore, build_engine
from tests.factories import FrozenClock


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def store(tmp_path, clock: FrozenClock) -> Iterator[SampleStore]:
    engine = build_engine(f"sqlite:///{tmp_path / 'diskfree.db'}")
    sample_store = SampleStore(engine=engine, clock=clock)
    sample_store.ensure_schema()
    yield sample_store
    sample_store.close()
