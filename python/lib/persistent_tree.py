#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
persistent_tree.py
------------------

A **persistent** (immutable, structurally shared) ordered map based on the
red‑black tree.  Every "mutation" returns a brand‑new tree while the old one
stays valid and unchanged; the two versions share every subtree that the
operation did not touch, so an insert or delete only allocates O(log n) nodes.

Features
~~~~~~~~
* `tree.insert(key, value)`  – new tree with *key* bound to *value*
* `tree.delete(key)`         – new tree without *key* (no‑op if absent)
* `tree.get(key)`            – lookup (``None`` / default if missing)
* `tree.get_by(compare)`     – lookup driven by a three‑way comparator
* `tree[key]`, `key in tree`, `len(tree)`
* iteration (`for key, value in tree:`) – pairs in ascending key order
* `tree.items()`, `tree.keys()`, `tree.values()`
* `tree.min_item()`, `tree.max_item()`
* `tree.validate()` – sanity‑check that the red‑black invariants hold

Insertion uses the classic four‑case rebalancing of purely functional
red‑black trees.  Deletion uses a transient ``DOUBLE_BLACK`` colour that marks
a subtree one black level short; ``_rotate`` and ``_balance`` push it up the
rebuilt path until it is absorbed or reaches the root, where it is simply
dropped.

Typical usage
~~~~~~~~~~~~~
>>> from persistent_tree import PersistentTree
>>> t0 = PersistentTree([(3, "c"), (1, "a"), (2, "b"), (1, "z")])
>>> t0
PersistentTree([(1, 'z'), (2, 'b'), (3, 'c')])
>>> t1 = t0.delete(2)
>>> 2 in t1, 2 in t0
(False, True)
>>> print(t1.insert(5, "e"))
[(1, 'z'), (3, 'c'), (5, 'e')]
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

__all__ = ["PersistentTree", "TreeIterator", "RED", "BLACK", "DOUBLE_BLACK"]

# ----------------------------------------------------------------------
#  Type variables (keys must be totally ordered, values may be anything)
# ----------------------------------------------------------------------
K = TypeVar("K")
V = TypeVar("V")

# ----------------------------------------------------------------------
#  Node colour constants
# ----------------------------------------------------------------------
RED = 0
BLACK = 1
DOUBLE_BLACK = 2  # only ever seen inside the deletion routine

_COLOR_NAMES = {RED: "R", BLACK: "B", DOUBLE_BLACK: "BB"}


class _Node(Generic[K, V]):
    """Internal immutable node – never modified once constructed."""

    __slots__ = ("color", "key", "value", "left", "right")

    def __init__(
        self,
        color: int,
        key: K,
        value: V,
        left: Optional["_Node[K, V]"] = None,
        right: Optional["_Node[K, V]"] = None,
    ) -> None:
        self.color = color
        self.key = key
        self.value = value
        self.left = left
        self.right = right

    def __repr__(self) -> str:
        return f"<{_COLOR_NAMES[self.color]} {self.key!r}:{self.value!r}>"


# A link is either ``None`` (empty) or a shared reference to a node.
_Link = Optional[_Node]


# ----------------------------------------------------------------------
#  Link inspection helpers
# ----------------------------------------------------------------------
def _if_red(link: _Link) -> _Link:
    if link is not None and link.color == RED:
        return link
    return None


def _if_black(link: _Link) -> _Link:
    if link is not None and link.color == BLACK:
        return link
    return None


def _is_empty_or_double_black(link: _Link) -> bool:
    return link is None or link.color == DOUBLE_BLACK


def _double_black_to_black(link: _Link) -> _Link:
    """Demote a double‑black node to an ordinary black one.

    An empty link stays empty: it already counts as black.
    """
    if link is None:
        return None
    assert link.color == DOUBLE_BLACK, f"expected a double-black node, got {link!r}"
    return _Node(BLACK, link.key, link.value, link.left, link.right)


def _rearrangement(
    color: int,
    key: Any,
    value: Any,
    left_key: Any,
    left_value: Any,
    left_left: _Link,
    left_right: _Link,
    right_key: Any,
    right_value: Any,
    right_left: _Link,
    right_right: _Link,
) -> _Node:
    """Build the 3‑node shape ``color(B(ll, lr), B(rl, rr))``."""
    return _Node(
        color,
        key,
        value,
        _Node(BLACK, left_key, left_value, left_left, left_right),
        _Node(BLACK, right_key, right_value, right_left, right_right),
    )


# ----------------------------------------------------------------------
#  Rebalancing
# ----------------------------------------------------------------------
def _balance(color: int, key: Any, value: Any, left: _Link, right: _Link) -> _Node:
    """
    Rebuild a node from its parts, removing a red‑red adjacency below it.

    With a black parent, each of the four red child / red grandchild shapes is
    turned into a red middle node with two black children (black height is
    unchanged).  With a double‑black parent only the two *inner* shapes can
    occur; they become a black middle node, which absorbs the extra black.
    """
    if color == BLACK:
        red_left = _if_red(left)
        if red_left is not None:
            left_left = _if_red(red_left.left)
            if left_left is not None:
                return _rearrangement(
                    RED,
                    red_left.key, red_left.value,
                    left_left.key, left_left.value, left_left.left, left_left.right,
                    key, value, red_left.right, right,
                )
            left_right = _if_red(red_left.right)
            if left_right is not None:
                return _rearrangement(
                    RED,
                    left_right.key, left_right.value,
                    red_left.key, red_left.value, red_left.left, left_right.left,
                    key, value, left_right.right, right,
                )
        red_right = _if_red(right)
        if red_right is not None:
            right_left = _if_red(red_right.left)
            if right_left is not None:
                return _rearrangement(
                    RED,
                    right_left.key, right_left.value,
                    key, value, left, right_left.left,
                    red_right.key, red_right.value, right_left.right, red_right.right,
                )
            right_right = _if_red(red_right.right)
            if right_right is not None:
                return _rearrangement(
                    RED,
                    red_right.key, red_right.value,
                    key, value, left, red_right.left,
                    right_right.key, right_right.value, right_right.left, right_right.right,
                )

    elif color == DOUBLE_BLACK:
        red_left = _if_red(left)
        if red_left is not None:
            left_right = _if_red(red_left.right)
            if left_right is not None:
                return _rearrangement(
                    BLACK,
                    left_right.key, left_right.value,
                    red_left.key, red_left.value, red_left.left, left_right.left,
                    key, value, left_right.right, right,
                )
        red_right = _if_red(right)
        if red_right is not None:
            right_left = _if_red(red_right.left)
            if right_left is not None:
                return _rearrangement(
                    BLACK,
                    right_left.key, right_left.value,
                    key, value, left, right_left.left,
                    red_right.key, red_right.value, right_left.right, red_right.right,
                )

    return _Node(color, key, value, left, right)


def _rotate(color: int, key: Any, value: Any, left: _Link, right: _Link) -> _Node:
    """
    Rebuild a node after deleting from one of its children.

    If one side came back empty or double‑black it is one black level short
    of its sibling.  An empty side is only short when the sibling shape says
    so (a black sibling, or a red sibling with a black near child); for a
    well‑formed tree these shapes cannot appear otherwise.
    """
    if color == RED:
        if _is_empty_or_double_black(left):
            sibling = _if_black(right)
            if sibling is not None:
                return _balance(
                    BLACK, sibling.key, sibling.value,
                    _Node(RED, key, value, _double_black_to_black(left), sibling.left),
                    sibling.right,
                )
        if _is_empty_or_double_black(right):
            sibling = _if_black(left)
            if sibling is not None:
                return _balance(
                    BLACK, sibling.key, sibling.value,
                    sibling.left,
                    _Node(RED, key, value, sibling.right, _double_black_to_black(right)),
                )

    elif color == BLACK:
        if _is_empty_or_double_black(left):
            sibling = _if_black(right)
            if sibling is not None:
                # the extra black moves up one level
                return _balance(
                    DOUBLE_BLACK, sibling.key, sibling.value,
                    _Node(RED, key, value, _double_black_to_black(left), sibling.left),
                    sibling.right,
                )
            sibling = _if_red(right)
            if sibling is not None:
                near = _if_black(sibling.left)
                if near is not None:
                    return _Node(
                        BLACK, sibling.key, sibling.value,
                        _balance(
                            BLACK, near.key, near.value,
                            _Node(RED, key, value, _double_black_to_black(left), near.left),
                            near.right,
                        ),
                        sibling.right,
                    )
        if _is_empty_or_double_black(right):
            sibling = _if_black(left)
            if sibling is not None:
                return _balance(
                    DOUBLE_BLACK, sibling.key, sibling.value,
                    sibling.left,
                    _Node(RED, key, value, sibling.right, _double_black_to_black(right)),
                )
            sibling = _if_red(left)
            if sibling is not None:
                near = _if_black(sibling.right)
                if near is not None:
                    return _Node(
                        BLACK, sibling.key, sibling.value,
                        sibling.left,
                        _balance(
                            BLACK, near.key, near.value,
                            near.left,
                            _Node(RED, key, value, near.right, _double_black_to_black(right)),
                        ),
                    )

    return _Node(color, key, value, left, right)


# ----------------------------------------------------------------------
#  Recursive path‑copying primitives
# ----------------------------------------------------------------------
def _insert(link: _Link, key: Any, value: Any) -> _Node:
    if link is None:
        return _Node(RED, key, value)
    if key == link.key:
        # Same key → new value, same shape and colour.
        return _Node(link.color, key, value, link.left, link.right)
    if key < link.key:
        return _balance(link.color, link.key, link.value,
                        _insert(link.left, key, value), link.right)
    return _balance(link.color, link.key, link.value,
                    link.left, _insert(link.right, key, value))


def _delete(link: _Link, key: Any) -> _Link:
    if link is None:
        return None
    if key == link.key:
        return _remove(link)
    if key < link.key:
        return _rotate(link.color, link.key, link.value,
                       _delete(link.left, key), link.right)
    return _rotate(link.color, link.key, link.value,
                   link.left, _delete(link.right, key))


def _remove(node: _Node) -> _Link:
    """Splice *node* out of its subtree and return the replacement link."""
    left, right = node.left, node.right
    if left is None and right is None:
        # Removing a black leaf leaves an implicit double‑black empty.
        return None
    if left is None or right is None:
        # A single child is always a red leaf under a black node.
        child = left if right is None else right
        assert child.color == RED and node.color == BLACK, "malformed red-black tree"
        return _Node(BLACK, child.key, child.value, child.left, child.right)
    successor = _minimum_node(right)
    return _rotate(node.color, successor.key, successor.value,
                   left, _delete(right, successor.key))


def _blacken(link: _Link) -> _Link:
    """The root has no parent to hand a red or double‑black colour to."""
    if link is None or link.color == BLACK:
        return link
    return _Node(BLACK, link.key, link.value, link.left, link.right)


def _minimum_node(node: _Node) -> _Node:
    while node.left is not None:
        node = node.left
    return node


def _maximum_node(node: _Node) -> _Node:
    while node.right is not None:
        node = node.right
    return node


class TreeIterator(Generic[K, V]):
    """
    In‑order ``(key, value)`` iterator over a tree snapshot.

    Keeps an explicit stack of ancestors instead of recursing, so its memory
    use is bounded by the tree height.  Like every Python iterator it cannot
    be restarted; ask the tree for a fresh one instead.
    """

    __slots__ = ("_next", "_stack")

    def __init__(self, root: Optional[_Node[K, V]]) -> None:
        self._next = root
        self._stack: List[_Node[K, V]] = []

    def __iter__(self) -> "TreeIterator[K, V]":
        return self

    def __next__(self) -> Tuple[K, V]:
        cur = self._next
        while cur is not None:
            self._stack.append(cur)
            cur = cur.left
        if not self._stack:
            self._next = None
            raise StopIteration
        node = self._stack.pop()
        self._next = node.right
        return node.key, node.value


class PersistentTree(Generic[K, V]):
    """
    An immutable ordered mapping implemented with a red‑black tree.

    ``insert`` and ``delete`` never touch the receiver; they return a new
    ``PersistentTree`` that shares all untouched subtrees with it.  Because no
    node is ever modified, any number of threads may read or derive from the
    same tree without locking.
    """

    __slots__ = ("_root", "_size")

    # ------------------------------------------------------------------
    #   Construction
    # ------------------------------------------------------------------
    def __init__(self, items: Optional[Iterable[Tuple[K, V]]] = None) -> None:
        """
        Create an empty tree or build one from an iterable of
        ``(key, value)`` pairs.

        Parameters
        ----------
        items : iterable of (key, value)   optional
            Each pair is inserted in turn, so a later pair for the same key
            wins.  O(n log n) overall.
        """
        self._root: Optional[_Node[K, V]] = None
        self._size: int = 0

        if items is not None:
            root: Optional[_Node[K, V]] = None
            size = 0
            for key, value in items:
                if _search_node(root, key) is None:
                    size += 1
                root = _blacken(_insert(root, key, value))
            self._root = root
            self._size = size

    @classmethod
    def _from_root(cls, root: Optional[_Node[K, V]], size: int) -> "PersistentTree[K, V]":
        tree = cls.__new__(cls)
        tree._root = root
        tree._size = size
        return tree

    # ------------------------------------------------------------------
    #   Lookup
    # ------------------------------------------------------------------
    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value stored for *key*, or *default* if it is absent."""
        node = _search_node(self._root, key)
        if node is None:
            return default
        return node.value

    def get_by(self, compare: Callable[[K], int]) -> Optional[Tuple[K, V]]:
        """
        Look up an entry with a three‑way comparator instead of a key.

        ``compare(candidate)`` must return a negative number when the wanted
        entry sorts before *candidate*, a positive number when it sorts after
        it, and zero on a match.  This allows probing with a value of a
        different type than the stored keys (e.g. a case‑folded string).
        Returns the stored ``(key, value)`` pair or ``None``.
        """
        cur = self._root
        while cur is not None:
            order = compare(cur.key)
            if order < 0:
                cur = cur.left
            elif order > 0:
                cur = cur.right
            else:
                return cur.key, cur.value
        return None

    def __contains__(self, key: object) -> bool:
        return _search_node(self._root, key) is not None

    def __getitem__(self, key: K) -> V:
        node = _search_node(self._root, key)
        if node is None:
            raise KeyError(key)
        return node.value

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._root is not None

    # ------------------------------------------------------------------
    #   Persistent updates
    # ------------------------------------------------------------------
    def insert(self, key: K, value: V) -> "PersistentTree[K, V]":
        """Return a new tree in which *key* is bound to *value*."""
        size = self._size
        if _search_node(self._root, key) is None:
            size += 1
        return self._from_root(_blacken(_insert(self._root, key, value)), size)

    def delete(self, key: K) -> "PersistentTree[K, V]":
        """Return a new tree without *key*; ``self`` if the key is absent."""
        if _search_node(self._root, key) is None:
            return self
        return self._from_root(_blacken(_delete(self._root, key)), self._size - 1)

    # ------------------------------------------------------------------
    #   Iteration and views
    # ------------------------------------------------------------------
    def iter(self) -> TreeIterator[K, V]:
        """Return a fresh ascending ``(key, value)`` iterator."""
        return TreeIterator(self._root)

    __iter__ = iter

    def keys(self) -> List[K]:
        """Return a list of all keys in sorted order."""
        return [key for key, _ in self.iter()]

    def values(self) -> List[V]:
        """Return a list of all values in key order."""
        return [value for _, value in self.iter()]

    def items(self) -> List[Tuple[K, V]]:
        """Return a list of ``(key, value)`` pairs in sorted order."""
        return list(self.iter())

    def min_item(self) -> Tuple[K, V]:
        """Return the ``(key, value)`` pair with the smallest key."""
        if self._root is None:
            raise ValueError("Tree is empty")
        node = _minimum_node(self._root)
        return node.key, node.value

    def max_item(self) -> Tuple[K, V]:
        """Return the ``(key, value)`` pair with the largest key."""
        if self._root is None:
            raise ValueError("Tree is empty")
        node = _maximum_node(self._root)
        return node.key, node.value

    # ------------------------------------------------------------------
    #   Validation/checking utilities – useful for debugging
    # ------------------------------------------------------------------
    def height(self) -> int:
        """Number of nodes on the longest root‑to‑leaf path (0 when empty)."""
        deepest = 0
        stack = [(self._root, 1)] if self._root is not None else []
        while stack:
            node, depth = stack.pop()
            deepest = max(deepest, depth)
            for child in (node.left, node.right):
                if child is not None:
                    stack.append((child, depth + 1))
        return deepest

    def validate(self) -> int:
        """
        Verify that the tree satisfies all red‑black invariants.
        Raises ``AssertionError`` with a descriptive message if something is
        broken, otherwise returns the black height of the root.
        """
        count = 0

        def dfs(node: Optional[_Node[K, V]], low: Any, high: Any) -> int:
            nonlocal count
            if node is None:
                return 1  # empty links count as black

            assert node.color in (RED, BLACK), f"Unexpected colour on {node!r}"
            if node.color == RED:
                assert _if_red(node.left) is None, f"Red node {node!r} has red left child"
                assert _if_red(node.right) is None, f"Red node {node!r} has red right child"

            # BST ordering against the bounds inherited from the ancestors
            if low is not None:
                assert low[0] < node.key, "BST property violated (key too small)"
            if high is not None:
                assert node.key < high[0], "BST property violated (key too large)"

            count += 1
            left_black = dfs(node.left, low, (node.key,))
            right_black = dfs(node.right, (node.key,), high)
            assert left_black == right_black, f"Black-height mismatch under {node!r}"
            return left_black + (1 if node.color == BLACK else 0)

        black_height = dfs(self._root, None, None)
        assert count == self._size, f"Size mismatch: counted {count}, recorded {self._size}"
        return black_height

    # ------------------------------------------------------------------
    #   String representation
    # ------------------------------------------------------------------
    def __str__(self) -> str:
        return "[" + ", ".join(repr(pair) for pair in self.iter()) + "]"

    def __repr__(self) -> str:
        return f"PersistentTree({self})"


def _search_node(link: _Link, key: Any) -> _Link:
    """Return the node that holds *key* or ``None`` if not found."""
    cur = link
    while cur is not None:
        if key == cur.key:
            return cur
        elif key < cur.key:
            cur = cur.left
        else:
            cur = cur.right
    return None
