from __future__ import annotations

from dataclasses import dataclass


class UnitMismatchError(ValueError):
    """A quantity was expressed in a unit other than the item's base unit."""

    def __init__(self, inventory_item_id, expected: "BaseUnitId", actual: "BaseUnitId"):
        self.inventory_item_id = inventory_item_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Inventory item {} is measured in base unit {}, got unit {}.".format(
                inventory_item_id, expected.value, actual.value
            )
        )


@dataclass(frozen=True)
class BaseUnitId:
    value: int

    def __post_init__(self):
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError("BaseUnitId must wrap an integer unit id")
        if self.value <= 0:
            raise ValueError("BaseUnitId must be positive")

    @classmethod
    def of(cls, value) -> BaseUnitId:
        if isinstance(value, cls):
            return value
        return cls(int(value))


def ensure_base_unit(inventory_item_id, item_unit, quantity_unit) -> BaseUnitId:
    expected = BaseUnitId.of(item_unit)
    actual = BaseUnitId.of(quantity_unit)
    if expected != actual:
        raise UnitMismatchError(inventory_item_id, expected, actual)
    return expected


def shares_base_unit(item_unit, quantity_unit) -> bool:
    if item_unit is None or quantity_unit is None:
        return False
    return BaseUnitId.of(item_unit) == BaseUnitId.of(quantity_unit)


__all__ = ["BaseUnitId", "UnitMismatchError", "ensure_base_unit", "shares_base_unit"]
