"""Frozen milk inventory for Baby Log."""

from datetime import date, datetime
from uuid import UUID

from .data_store import DataStore
from .models import CheckOutAction, InventoryItem, InventoryStatus


class InventoryItemNotFoundError(Exception):
    """Raised when an inventory item is not found."""

    def __init__(self, item_id: UUID | str):
        self.item_id = item_id
        super().__init__(f"Inventory item not found: {item_id}")


class InventoryManager:
    """Manages stored milk check-in and check-out.

    The inventory stays on this device; it is not synced.
    """

    def __init__(self, data_store: DataStore | None = None):
        self.data_store = data_store or DataStore()

    def check_in(
        self,
        volume: float,
        pump_date: datetime,
        freeze_date: date | None = None,
    ) -> InventoryItem:
        """Store a new bag of milk.

        Args:
            volume: Volume in milliliters, must be positive
            pump_date: When the milk was expressed
            freeze_date: Day it went into the freezer, defaults to the pump day

        Returns:
            The created InventoryItem

        Raises:
            pydantic.ValidationError: If the volume is not positive
        """
        item = InventoryItem(
            volume=volume,
            pump_date=pump_date,
            freeze_date=freeze_date or pump_date.date(),
            status=InventoryStatus.STORED,
        )

        inventory = self.data_store.load_inventory()
        inventory.append(item)
        self.data_store.save_inventory(inventory)
        return item

    def check_out(
        self,
        item_id: str | UUID,
        action: CheckOutAction | str = CheckOutAction.THAW,
    ) -> InventoryItem:
        """Take an item out of the inventory.

        Thawing and deleting both remove the item; they differ only in how
        the user is asked to confirm.

        Args:
            item_id: UUID of item to remove
            action: ``thaw`` or ``delete``

        Returns:
            The removed item

        Raises:
            InventoryItemNotFoundError: If item not found
        """
        CheckOutAction(action)
        if isinstance(item_id, str):
            try:
                item_id = UUID(item_id)
            except ValueError:
                raise InventoryItemNotFoundError(item_id) from None

        inventory = self.data_store.load_inventory()
        for i, item in enumerate(inventory):
            if item.id == item_id:
                removed = inventory.pop(i)
                self.data_store.save_inventory(inventory)
                return removed

        raise InventoryItemNotFoundError(item_id)

    def get_inventory(self) -> list[InventoryItem]:
        """Get stored items in insertion order."""
        return self.data_store.load_inventory()

    def list_for_consumption(self) -> list[tuple[InventoryItem, bool]]:
        """Get items oldest pump date first.

        Returns:
            ``(item, is_oldest)`` pairs; only the first item is flagged
        """
        items = sorted(self.data_store.load_inventory(), key=lambda i: i.pump_date)
        return [(item, idx == 0) for idx, item in enumerate(items)]

    def total_volume(self) -> float:
        """Total stored milliliters."""
        return sum(i.volume for i in self.data_store.load_inventory())
