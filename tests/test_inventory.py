import threading

import pytest

from src.domain.entities import FlatTypeInfo
from src.domain.enums import FlatType
from src.services.inventory import FlatInventory


pytestmark = pytest.mark.unit


@pytest.fixture
def inventory():
    return FlatInventory()


def test_create_cell_starts_full():
    cell = FlatInventory.create_cell(FlatType.THREE_ROOM, 5, price=420000.0)

    assert cell.total_units == 5
    assert cell.remaining_units == 5
    assert cell.price == 420000.0


def test_cell_rejects_out_of_range_remaining():
    with pytest.raises(ValueError):
        FlatTypeInfo(flat_type=FlatType.TWO_ROOM, total_units=2, remaining_units=3)
    with pytest.raises(ValueError):
        FlatTypeInfo(flat_type=FlatType.TWO_ROOM, total_units=2, remaining_units=-1)


def test_reserve_decrements_until_exhausted(inventory, make_project):
    project = make_project(units={FlatType.TWO_ROOM: 1})

    assert inventory.has_available(project, FlatType.TWO_ROOM) is True
    assert inventory.reserve(project, FlatType.TWO_ROOM) is True
    assert inventory.remaining(project, FlatType.TWO_ROOM) == 0

    assert inventory.reserve(project, FlatType.TWO_ROOM) is False
    assert inventory.remaining(project, FlatType.TWO_ROOM) == 0
    assert inventory.has_available(project, FlatType.TWO_ROOM) is False


def test_reserve_unoffered_type_fails(inventory, make_project):
    project = make_project(units={FlatType.TWO_ROOM: 3})

    assert inventory.reserve(project, FlatType.THREE_ROOM) is False
    assert inventory.remaining(project, FlatType.THREE_ROOM) == 0
    assert inventory.release(project, FlatType.THREE_ROOM) is False


def test_reserve_then_release_restores_count(inventory, make_project):
    project = make_project(units={FlatType.THREE_ROOM: 4})

    inventory.reserve(project, FlatType.THREE_ROOM)
    inventory.release(project, FlatType.THREE_ROOM)

    assert project.flat_types[FlatType.THREE_ROOM].remaining_units == 4


def test_release_is_capped_at_total(inventory, make_project, caplog):
    project = make_project(units={FlatType.TWO_ROOM: 2})

    assert inventory.release(project, FlatType.TWO_ROOM) is False
    assert project.flat_types[FlatType.TWO_ROOM].remaining_units == 2
    assert "Release ignored" in caplog.text


def test_concurrent_reserves_never_oversell(inventory, make_project):
    """Only as many reservations succeed as there are units"""
    project = make_project(units={FlatType.THREE_ROOM: 10})
    results = []
    results_lock = threading.Lock()

    def worker():
        ok = inventory.reserve(project, FlatType.THREE_ROOM)
        with results_lock:
            results.append(ok)

    threads = [threading.Thread(target=worker) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 10
    assert project.flat_types[FlatType.THREE_ROOM].remaining_units == 0
