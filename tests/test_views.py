import pytest

from pipeline_logs.core.errors import QueryFailed, ViewNotFound
from pipeline_logs.services.views import LogView, ViewRegistry

from tests.fakes import BASE_TIME, InMemoryLogStore, UnreachableLogStore, make_entry


class StatisticsDownStore(InMemoryLogStore):
    async def query_status_counts(self, day_start, day_end):
        raise QueryFailed("statistics replica unavailable")


async def test_view_loads_both_panels() -> None:
    store = InMemoryLogStore([make_entry(i) for i in range(3)])
    view = LogView(store, day=BASE_TIME.date())

    await view.load()

    assert view.list_state.total == 3
    assert view.stats_state.total_logs == 3


async def test_failing_statistics_do_not_hide_the_listing() -> None:
    view = LogView(StatisticsDownStore([make_entry(0)]), day=BASE_TIME.date())

    await view.load()

    state = view.state()
    assert state.logs.total == 1
    assert state.logs.error is None
    assert state.statistics.error == "statistics replica unavailable"


async def test_updating_ids_are_limited_to_the_current_page() -> None:
    on_page = make_entry(0)
    view = LogView(InMemoryLogStore([on_page]), day=BASE_TIME.date())
    await view.load()

    state = view.state(updating=[on_page.id, make_entry(1).id])

    assert state.updating_order_status == [on_page.id]


def test_registry_lookup_and_removal() -> None:
    registry = ViewRegistry(InMemoryLogStore(), max_views=4)
    view = registry.create()

    assert registry.get(view.view_id) is view
    assert registry.find(None) is None

    registry.remove(view.view_id)
    with pytest.raises(ViewNotFound):
        registry.get(view.view_id)
    with pytest.raises(ViewNotFound):
        registry.remove(view.view_id)


def test_registry_evicts_least_recently_used() -> None:
    registry = ViewRegistry(InMemoryLogStore(), max_views=2)
    first = registry.create()
    second = registry.create()

    registry.get(first.view_id)
    registry.create()

    assert len(registry) == 2
    assert registry.find(first.view_id) is first
    assert registry.find(second.view_id) is None
    assert len(registry.coordinators()) == 2


async def test_unreachable_store_does_not_break_the_view() -> None:
    view = LogView(UnreachableLogStore(), day=BASE_TIME.date())

    await view.load()

    state = view.state()
    assert not state.logs.loading
    assert not state.statistics.loading
    assert state.logs.error is not None
    assert state.statistics.error is not None
