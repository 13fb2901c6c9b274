"""
Dispatch Ledger AVL Index
=========================
In-memory height-balanced binary search tree supporting insert, delete,
exact search, range scan, rank and strict successor lookup.

Ordering:
  - Items are ordered by a sort key obtained from a caller-supplied
    key function (identity by default), the same way sorted(key=...) works.
    The same item type can therefore be indexed under several orderings.
  - The sort key is computed once on insert and cached on the node.
    Key functions must return a stable value for as long as the item
    stays in the index.
  - Equal keys are routed to the RIGHT subtree on insert.
    Invariant: left subtree <= K <= right subtree (in-order is non-decreasing).

Node bookkeeping:
  - height: empty subtree = -1, leaf = 0, else 1 + max(child heights)
  - size:   number of nodes in the subtree (rank in O(log n))
  Both are recomputed bottom-up from the children, never by re-scanning.

Balance: |height(left) - height(right)| <= 1 for every node after any
completed insert or delete. No parent pointers; rebalancing happens on
the recursive return path.

Duplicates: delete() and rank() locate a node by sort key, then by item
equality among equal keys, so the exact item is found even when several
items share a key.

Concurrency: single-writer, no locking.
"""

from typing import Any, Callable, Iterator, List, Optional, Tuple


# ─── Node ──────────────────────────────────────────────────────────────────

class AVLNode:
    """A single tree node. Owns its left/right subtrees."""
    __slots__ = ('item', 'sort_key', 'height', 'size', 'left', 'right')

    def __init__(self, item: Any, sort_key: Any):
        self.item = item
        self.sort_key = sort_key
        self.height: int = 0
        self.size: int = 1
        self.left: Optional['AVLNode'] = None
        self.right: Optional['AVLNode'] = None

    def __repr__(self) -> str:
        return f"AVLNode(item={self.item!r}, key={self.sort_key!r}, h={self.height})"


def _height(node: Optional[AVLNode]) -> int:
    return -1 if node is None else node.height


def _size(node: Optional[AVLNode]) -> int:
    return 0 if node is None else node.size


def _balance(node: Optional[AVLNode]) -> int:
    if node is None:
        return 0
    return _height(node.left) - _height(node.right)


def _update(node: AVLNode) -> None:
    node.height = 1 + max(_height(node.left), _height(node.right))
    node.size = 1 + _size(node.left) + _size(node.right)


# ─── Rotations ─────────────────────────────────────────────────────────────

def _rotate_left(node: AVLNode) -> AVLNode:
    """
          node                pivot
         /    \\              /     \\
        A    pivot   →    node     C
             /   \\        /   \\
            B     C      A     B
    """
    pivot = node.right
    node.right = pivot.left
    pivot.left = node
    _update(node)
    _update(pivot)
    return pivot


def _rotate_right(node: AVLNode) -> AVLNode:
    """Mirror image of _rotate_left."""
    pivot = node.left
    node.left = pivot.right
    pivot.right = node
    _update(node)
    _update(pivot)
    return pivot


def _leftmost(node: AVLNode) -> AVLNode:
    while node.left is not None:
        node = node.left
    return node


def _rightmost(node: AVLNode) -> AVLNode:
    while node.right is not None:
        node = node.right
    return node


# ─── AVL Index ─────────────────────────────────────────────────────────────

class AVLIndex:
    """
    Height-balanced binary search tree over arbitrary items.

    Usage:
        idx = AVLIndex(key=lambda order: order.eta)
        idx.insert(order)
        idx.search(15)                   # item with sort key 15, or None
        list(idx.range_scan(10, 20))     # [(key, item), ...] ascending
        idx.successor(15)                # item with smallest key > 15
        idx.rank(order)                  # items before `order` in order
        idx.delete(order)
    """

    def __init__(self, key: Optional[Callable[[Any], Any]] = None):
        self._key = key if key is not None else (lambda item: item)
        self._root: Optional[AVLNode] = None

    @property
    def root(self) -> Optional[AVLNode]:
        return self._root

    @property
    def height(self) -> int:
        """Height of the tree (-1 when empty)."""
        return _height(self._root)

    def __len__(self) -> int:
        return _size(self._root)

    def __bool__(self) -> bool:
        return self._root is not None

    def __iter__(self) -> Iterator[Any]:
        """In-order (ascending key) iteration over items."""
        stack: List[AVLNode] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.item
            node = node.right

    def clear(self) -> None:
        self._root = None

    # ─── Insert ─────────────────────────────────────────────────────

    def insert(self, item: Any) -> None:
        """
        Insert an item. Duplicate keys are accepted and placed to the
        right of existing equal keys.
        """
        self._root = self._insert(self._root, item, self._key(item))

    def _insert(self, node: Optional[AVLNode], item: Any,
                key: Any) -> AVLNode:
        if node is None:
            return AVLNode(item, key)

        if key < node.sort_key:
            node.left = self._insert(node.left, item, key)
        else:
            node.right = self._insert(node.right, item, key)

        _update(node)
        balance = _balance(node)

        # Case is picked by where the new key went below the heavy child.
        # Equal keys went right, so they count as "not less".
        if balance > 1:
            if key < node.left.sort_key:
                return _rotate_right(node)                  # left-left
            node.left = _rotate_left(node.left)             # left-right
            return _rotate_right(node)

        if balance < -1:
            if not key < node.right.sort_key:
                return _rotate_left(node)                   # right-right
            node.right = _rotate_right(node.right)          # right-left
            return _rotate_left(node)

        return node

    # ─── Delete ─────────────────────────────────────────────────────

    def delete(self, item: Any) -> bool:
        """
        Remove `item` from the index.
        Returns True if it was removed, False if it was not present (no-op).
        """
        self._root, removed = self._delete(self._root, item, self._key(item))
        return removed

    def _delete(self, node: Optional[AVLNode], item: Any,
                key: Any) -> Tuple[Optional[AVLNode], bool]:
        if node is None:
            return None, False

        if key < node.sort_key:
            node.left, removed = self._delete(node.left, item, key)
        elif node.sort_key < key:
            node.right, removed = self._delete(node.right, item, key)
        elif node.item == item:
            if node.left is None:
                return node.right, True
            if node.right is None:
                return node.left, True
            # Two children: take over the in-order successor, then drop it.
            successor = _leftmost(node.right)
            node.item = successor.item
            node.sort_key = successor.sort_key
            node.right = self._delete_min(node.right)
            removed = True
        else:
            # Same key, different item: equal keys may sit on either side.
            node.left, removed = self._delete(node.left, item, key)
            if not removed:
                node.right, removed = self._delete(node.right, item, key)

        if not removed:
            return node, False
        return self._rebalance(node), True

    def _delete_min(self, node: AVLNode) -> Optional[AVLNode]:
        if node.left is None:
            return node.right
        node.left = self._delete_min(node.left)
        return self._rebalance(node)

    def _rebalance(self, node: AVLNode) -> AVLNode:
        """
        Restore balance after a removal below `node`.
        The heavy child's own balance factor decides single vs double rotation.
        """
        _update(node)
        balance = _balance(node)

        if balance > 1:
            if _balance(node.left) < 0:
                node.left = _rotate_left(node.left)
            return _rotate_right(node)

        if balance < -1:
            if _balance(node.right) > 0:
                node.right = _rotate_right(node.right)
            return _rotate_left(node)

        return node

    # ─── Search ─────────────────────────────────────────────────────

    def search(self, key: Any) -> Optional[Any]:
        """Exact-match search by sort key. Returns a matching item or None."""
        node = self._root
        while node is not None:
            if key < node.sort_key:
                node = node.left
            elif node.sort_key < key:
                node = node.right
            else:
                return node.item
        return None

    def contains(self, item: Any) -> bool:
        return self.rank(item) is not None

    def min(self) -> Optional[Any]:
        return None if self._root is None else _leftmost(self._root).item

    def max(self) -> Optional[Any]:
        return None if self._root is None else _rightmost(self._root).item

    def successor(self, key: Any) -> Optional[Any]:
        """
        Item with the smallest sort key strictly greater than `key`.
        Returns None when `key` is at or above the maximum.
        """
        node = self._root
        best: Optional[AVLNode] = None
        while node is not None:
            if key < node.sort_key:
                best = node
                node = node.left
            else:
                node = node.right
        return None if best is None else best.item

    def range_scan(self, low: Any = None, high: Any = None,
                   low_inclusive: bool = True,
                   high_inclusive: bool = True) -> Iterator[Tuple[Any, Any]]:
        """
        Range scan over the index. Yields (sort_key, item) pairs in order.

        - low=None means unbounded below.
        - high=None means unbounded above.
        """
        yield from self._scan(self._root, low, high,
                              low_inclusive, high_inclusive)

    def _scan(self, node: Optional[AVLNode], low: Any, high: Any,
              low_inclusive: bool,
              high_inclusive: bool) -> Iterator[Tuple[Any, Any]]:
        if node is None:
            return
        k = node.sort_key

        # Prune subtrees that lie entirely outside the bounds
        if low is None or not k < low:
            yield from self._scan(node.left, low, high,
                                  low_inclusive, high_inclusive)

        above_low = (low is None or low < k
                     or (low_inclusive and not k < low))
        below_high = (high is None or k < high
                      or (high_inclusive and not high < k))
        if above_low and below_high:
            yield k, node.item

        if high is None or not high < k:
            yield from self._scan(node.right, low, high,
                                  low_inclusive, high_inclusive)

    # ─── Rank ───────────────────────────────────────────────────────

    def rank(self, item: Any) -> Optional[int]:
        """
        Number of items that come before `item` in index order.
        Returns None if `item` is not in the index.
        """
        return self._position(self._root, item, self._key(item))

    def _position(self, node: Optional[AVLNode], item: Any,
                  key: Any) -> Optional[int]:
        if node is None:
            return None

        if key < node.sort_key:
            return self._position(node.left, item, key)

        if node.sort_key < key:
            pos = self._position(node.right, item, key)
            return None if pos is None else _size(node.left) + 1 + pos

        if node.item == item:
            return _size(node.left)

        pos = self._position(node.left, item, key)
        if pos is not None:
            return pos
        pos = self._position(node.right, item, key)
        return None if pos is None else _size(node.left) + 1 + pos

    # ─── Debug / Verification ───────────────────────────────────────

    def verify_structure(self) -> List[str]:
        """
        Verify index structural integrity.
        Returns list of issues found (empty = healthy).
        """
        issues: List[str] = []
        self._verify_node(self._root, issues, depth=0)

        # In-order keys must be non-decreasing
        prev: Optional[AVLNode] = None
        for position, node in enumerate(self._walk(self._root)):
            if prev is not None and node.sort_key < prev.sort_key:
                issues.append(
                    f"Keys not sorted at position {position}: "
                    f"{prev.sort_key!r} > {node.sort_key!r}")
            prev = node
        return issues

    def _verify_node(self, node: Optional[AVLNode], issues: List[str],
                     depth: int) -> Tuple[int, int]:
        """Recursively verify cached height/size and balance. Returns (height, size)."""
        if node is None:
            return -1, 0

        lh, ls = self._verify_node(node.left, issues, depth + 1)
        rh, rs = self._verify_node(node.right, issues, depth + 1)
        height = 1 + max(lh, rh)
        size = 1 + ls + rs

        if node.height != height:
            issues.append(
                f"Node {node.item!r} at depth {depth}: cached height "
                f"{node.height}, actual {height}")
        if node.size != size:
            issues.append(
                f"Node {node.item!r} at depth {depth}: cached size "
                f"{node.size}, actual {size}")
        if abs(lh - rh) > 1:
            issues.append(
                f"Node {node.item!r} at depth {depth}: unbalanced "
                f"(left={lh}, right={rh})")
        return height, size

    def _walk(self, node: Optional[AVLNode]) -> Iterator[AVLNode]:
        if node is None:
            return
        yield from self._walk(node.left)
        yield node
        yield from self._walk(node.right)
