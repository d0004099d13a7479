"""
Slot Index: AVL-balanced binary search tree keyed by slot number

The index owns every SlotRecord through a strictly single-owner tree: each
node owns its two children and nothing points back up. Rotations are local
reassignments of child links.

Every operation takes the root of the (sub)tree it works on. Operations that
may change topology return the new root and the caller must reassign it:

    root = index.insert(root, 12)
    root = index.update_availability(root, 12, False)

Point operations are O(log n); traversals (nearest-available, sweep,
categorize, counts) are O(n) in the worst case.
"""

from datetime import datetime
from typing import Callable, Iterator, Optional
import logging

from .models import Occupant, SlotRecord, SlotCategories, whole_hours_between


class SlotNode:
    """Tree node wrapping exactly one SlotRecord"""

    __slots__ = ('record', 'left', 'right')

    def __init__(self, record: SlotRecord):
        self.record = record
        self.left: Optional['SlotNode'] = None
        self.right: Optional['SlotNode'] = None

    @property
    def key(self) -> int:
        return self.record.slot_number

    @property
    def height(self) -> int:
        return self.record.subtree_height

    @height.setter
    def height(self, value: int) -> None:
        self.record.subtree_height = value

    def __repr__(self) -> str:
        return f"SlotNode(key={self.key}, height={self.height})"


class SlotIndex:
    """
    Operations over a SlotNode tree

    Holds no tree state of its own; the root handle belongs to the caller.
    Lookups by key never expose nodes, only the SlotRecord stored in them.
    """

    def __init__(self):
        self._logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Balancing primitives
    # ------------------------------------------------------------------

    @staticmethod
    def height(node: Optional[SlotNode]) -> int:
        return node.height if node is not None else 0

    def balance_factor(self, node: Optional[SlotNode]) -> int:
        if node is None:
            return 0
        return self.height(node.left) - self.height(node.right)

    def _update_height(self, node: SlotNode) -> None:
        node.height = 1 + max(self.height(node.left), self.height(node.right))

    def rotate_left(self, node: SlotNode) -> SlotNode:
        """Promote the right child; returns the new subtree root"""
        pivot = node.right
        node.right = pivot.left
        pivot.left = node

        # lower node first, the new root depends on it
        self._update_height(node)
        self._update_height(pivot)
        return pivot

    def rotate_right(self, node: SlotNode) -> SlotNode:
        """Promote the left child; returns the new subtree root"""
        pivot = node.left
        node.left = pivot.right
        pivot.right = node

        self._update_height(node)
        self._update_height(pivot)
        return pivot

    # ------------------------------------------------------------------
    # Insertion and lookup
    # ------------------------------------------------------------------

    def insert(self, root: Optional[SlotNode], slot_number: int,
               occupant: Optional[Occupant] = None) -> SlotNode:
        """
        Insert a new slot and rebalance along the insertion path.
        Inserting an existing slot number leaves the tree unchanged.

        Returns: The (possibly new) root of the tree
        """
        if root is None:
            return SlotNode(SlotRecord(slot_number, occupant))

        if slot_number < root.key:
            root.left = self.insert(root.left, slot_number, occupant)
        elif slot_number > root.key:
            root.right = self.insert(root.right, slot_number, occupant)
        else:
            return root

        self._update_height(root)
        balance = self.balance_factor(root)

        if balance > 1:
            if slot_number < root.left.key:
                return self.rotate_right(root)  # Left-Left
            root.left = self.rotate_left(root.left)  # Left-Right
            return self.rotate_right(root)

        if balance < -1:
            if slot_number > root.right.key:
                return self.rotate_left(root)  # Right-Right
            root.right = self.rotate_right(root.right)  # Right-Left
            return self.rotate_left(root)

        return root

    def _find_node(self, root: Optional[SlotNode], slot_number: int) -> Optional[SlotNode]:
        node = root
        while node is not None and node.key != slot_number:
            node = node.left if slot_number < node.key else node.right
        return node

    def search(self, root: Optional[SlotNode], slot_number: int) -> Optional[SlotRecord]:
        """Find the record for a slot number, or None"""
        node = self._find_node(root, slot_number)
        return node.record if node is not None else None

    def find_nearest_available(self, root: Optional[SlotNode]) -> Optional[int]:
        """
        Lowest-numbered slot flagged available, or None.
        Reserved slots are still available and can be returned.
        """
        if root is None:
            return None

        left = self.find_nearest_available(root.left)
        if left is not None:
            return left

        if root.record.available:
            return root.key

        return self.find_nearest_available(root.right)

    # ------------------------------------------------------------------
    # In-place field updates (topology unchanged)
    # ------------------------------------------------------------------

    def update_availability(self, root: Optional[SlotNode], slot_number: int,
                            value: bool) -> Optional[SlotNode]:
        node = self._find_node(root, slot_number)
        if node is None:
            self._logger.warning(f"Slot {slot_number} not found!")
            return root
        node.record.available = value
        return root

    def update_reservation(self, root: Optional[SlotNode], slot_number: int,
                           value: bool) -> Optional[SlotNode]:
        node = self._find_node(root, slot_number)
        if node is None:
            self._logger.warning(f"Slot {slot_number} not found!")
            return root
        node.record.reserved = value
        return root

    # ------------------------------------------------------------------
    # Whole-tree traversals
    # ------------------------------------------------------------------

    def in_order(self, root: Optional[SlotNode]) -> Iterator[SlotRecord]:
        """Yield records in ascending slot order"""
        if root is None:
            return
        yield from self.in_order(root.left)
        yield root.record
        yield from self.in_order(root.right)

    def sweep_stale(self, root: Optional[SlotNode], age_threshold_hours: int,
                    now: Optional[datetime] = None,
                    on_release: Optional[Callable[[SlotRecord, Occupant], None]] = None
                    ) -> Optional[SlotNode]:
        """
        Release every car parked for at least age_threshold_hours whole hours.

        Args:
            root: Tree root
            age_threshold_hours: Inclusive limit in whole hours
            now: Reference time, defaults to the current time
            on_release: Called once per released slot with the record and the
                        occupant that was removed

        Returns: The root, unchanged (no topology change)
        """
        now = now or datetime.now()
        self._sweep(root, age_threshold_hours, now, on_release)
        return root

    def _sweep(self, node: Optional[SlotNode], limit: int, now: datetime,
               on_release: Optional[Callable[[SlotRecord, Occupant], None]]) -> None:
        if node is None:
            return

        self._sweep(node.left, limit, now, on_release)

        record = node.record
        occupant = record.occupant
        if not record.available and occupant is not None and occupant.entry_time is not None:
            if whole_hours_between(occupant.entry_time, now) >= limit:
                record.vacate()
                self._logger.info(
                    f"Slot {record.slot_number} is now available "
                    f"(Car stayed over {limit} hours)."
                )
                if on_release is not None:
                    on_release(record, occupant)

        self._sweep(node.right, limit, now, on_release)

    def categorize(self, root: Optional[SlotNode]) -> SlotCategories:
        """Split slot numbers into available, occupied and reserved (ascending)"""
        categories = SlotCategories()
        for record in self.in_order(root):
            if not record.available:
                categories.occupied.append(record.slot_number)
            elif record.reserved:
                categories.reserved.append(record.slot_number)
            else:
                categories.available.append(record.slot_number)
        return categories

    def count_total(self, root: Optional[SlotNode]) -> int:
        if root is None:
            return 0
        return 1 + self.count_total(root.left) + self.count_total(root.right)

    def count_occupied(self, root: Optional[SlotNode]) -> int:
        if root is None:
            return 0
        own = 0 if root.record.available else 1
        return own + self.count_occupied(root.left) + self.count_occupied(root.right)

    # ------------------------------------------------------------------
    # Structural checks
    # ------------------------------------------------------------------

    def is_balanced(self, root: Optional[SlotNode]) -> bool:
        """
        True if every node satisfies the AVL bound, stored heights match the
        real subtree heights and keys are strictly ascending in order.
        """
        def check(node, low, high):
            # returns real height, or -1 on violation
            if node is None:
                return 0
            if (low is not None and node.key <= low) or (high is not None and node.key >= high):
                return -1
            left = check(node.left, low, node.key)
            right = check(node.right, node.key, high)
            if left < 0 or right < 0 or abs(left - right) > 1:
                return -1
            real = 1 + max(left, right)
            return real if real == node.height else -1

        return check(root, None, None) >= 0
