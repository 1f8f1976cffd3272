"""
Per-project, per-flat-type unit inventory

Unit counts live on the project's FlatTypeInfo cells. This service owns the
locks around them so that reserve and release are single check-then-act
steps.
"""
import logging
import threading
from collections import defaultdict
from typing import Hashable

from ..domain.entities import FlatTypeInfo, Project
from ..domain.enums import FlatType

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Lazily created lock per key"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[Hashable, threading.Lock] = defaultdict(threading.Lock)

    def __call__(self, key: Hashable) -> threading.Lock:
        with self._guard:
            return self._locks[key]


class FlatInventory:
    """Atomic reserve/release over project inventory cells"""

    def __init__(self):
        self._locks = KeyedLocks()

    @staticmethod
    def create_cell(flat_type: FlatType, total_units: int, price: float = 0.0) -> FlatTypeInfo:
        """Build a fresh cell; total_units is fixed from here on"""
        return FlatTypeInfo(
            flat_type=flat_type,
            total_units=total_units,
            remaining_units=total_units,
            price=price,
        )

    def remaining(self, project: Project, flat_type: FlatType) -> int:
        cell = project.flat_types.get(flat_type)
        return cell.remaining_units if cell else 0

    def has_available(self, project: Project, flat_type: FlatType) -> bool:
        return self.remaining(project, flat_type) > 0

    def reserve(self, project: Project, flat_type: FlatType) -> bool:
        """Take one unit. False when the cell is missing or exhausted."""
        cell = project.flat_types.get(flat_type)
        if cell is None:
            return False

        with self._locks((project.name, flat_type)):
            if cell.remaining_units <= 0:
                return False
            cell.remaining_units -= 1

        logger.debug(
            f"Reserved {flat_type.value} in {project.name}: {cell.remaining_units} left",
        )
        return True

    def release(self, project: Project, flat_type: FlatType) -> bool:
        """Return one unit, never exceeding the cell's total"""
        cell = project.flat_types.get(flat_type)
        if cell is None:
            return False

        with self._locks((project.name, flat_type)):
            if cell.remaining_units >= cell.total_units:
                logger.warning(
                    f"Release ignored for {flat_type.value} in {project.name}: "
                    f"already at total {cell.total_units}",
                )
                return False
            cell.remaining_units += 1

        logger.debug(
            f"Released {flat_type.value} in {project.name}: {cell.remaining_units} left",
        )
        return True


# Singleton instance
flat_inventory = FlatInventory()
