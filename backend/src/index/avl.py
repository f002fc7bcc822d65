from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Iterator, Optional, Tuple
import logging

from index import codec
from index.codec import FormatError, StoreIOError

logger = logging.getLogger(__name__)


class Outcome(Enum):
    OK = "OK"
    ALREADY_EXISTS = "Exist"
    NOT_FOUND = "NoSuchWord"


@dataclass
class Node:
    key: str
    value: int
    height: int = 1
    left: Optional[Node] = None
    right: Optional[Node] = None


def normalize(key: str) -> str:
    return key.lower()


# ----------------------------- Balancing -------------------------------------

def _height(n: Optional[Node]) -> int:
    return n.height if n is not None else 0

def _update_height(n: Node) -> None:
    n.height = 1 + max(_height(n.left), _height(n.right))

def _balance_factor(n: Node) -> int:
    return _height(n.right) - _height(n.left)

def _rotate_right(y: Node) -> Node:
    x = y.left
    y.left = x.right
    x.right = y
    _update_height(y); _update_height(x)
    return x

def _rotate_left(x: Node) -> Node:
    y = x.right
    x.right = y.left
    y.left = x
    _update_height(x); _update_height(y)
    return y

def _rebalance(n: Node) -> Node:
    _update_height(n)
    bf = _balance_factor(n)
    if bf < -1:
        if _balance_factor(n.left) > 0:  # LR
            n.left = _rotate_left(n.left)
        return _rotate_right(n)
    if bf > 1:
        if _balance_factor(n.right) < 0:  # RL
            n.right = _rotate_right(n.right)
        return _rotate_left(n)
    return n


# ----------------------------- Recursive ops ---------------------------------

def _insert(n: Optional[Node], key: str, value: int) -> Tuple[Node, bool]:
    """Insert below ``n``. Return (new subtree root, inserted?)."""
    if n is None:
        return Node(key, value), True
    if key < n.key:
        n.left, inserted = _insert(n.left, key, value)
    elif key > n.key:
        n.right, inserted = _insert(n.right, key, value)
    else:
        return n, False
    if not inserted:
        return n, False
    return _rebalance(n), True

def _min_node(n: Node) -> Node:
    while n.left is not None:
        n = n.left
    return n

def _delete_once(n: Optional[Node], key: str) -> Tuple[Optional[Node], bool]:
    """Delete the node holding ``key``. Return (new subtree root, removed?)."""
    if n is None:
        return None, False
    if key < n.key:
        n.left, removed = _delete_once(n.left, key)
    elif key > n.key:
        n.right, removed = _delete_once(n.right, key)
    else:
        if n.left is None or n.right is None:
            return (n.left or n.right), True
        succ = _min_node(n.right)
        n.key, n.value = succ.key, succ.value
        n.right, removed = _delete_once(n.right, succ.key)
    if not removed:
        return n, False
    return _rebalance(n), True

def _search(n: Optional[Node], key: str) -> Optional[Node]:
    while n is not None:
        if key < n.key: n = n.left
        elif key > n.key: n = n.right
        else: return n
    return None

def _count(n: Optional[Node]) -> int:
    if n is None: return 0
    return 1 + _count(n.left) + _count(n.right)

def _inorder(n: Optional[Node]) -> Iterator[Tuple[str, int]]:
    if n is None: return
    yield from _inorder(n.left)
    yield n.key, n.value
    yield from _inorder(n.right)


# ----------------------------- Public API ------------------------------------

class AVLTree:
    """Case-insensitive ordered map from strings to unsigned 64-bit integers.

    Keys are lower-cased on the way in and only that form is kept. Expected
    misses come back as ``Outcome`` values; only snapshot I/O raises
    (``StoreIOError`` / ``FormatError``).
    """

    def __init__(self):
        self.root: Optional[Node] = None

    def insert(self, key: str, value: int) -> Outcome:
        k = normalize(key)
        codec.encode_key(k)
        codec.check_value(value)
        self.root, inserted = _insert(self.root, k, value)
        if not inserted:
            logger.debug("insert %r rejected: key exists", k)
            return Outcome.ALREADY_EXISTS
        logger.debug("inserted %r", k)
        return Outcome.OK

    def remove(self, key: str) -> Outcome:
        k = normalize(key)
        self.root, removed = _delete_once(self.root, k)
        if not removed:
            return Outcome.NOT_FOUND
        logger.debug("removed %r", k)
        return Outcome.OK

    def lookup(self, key: str) -> Optional[int]:
        """Return the value stored under ``key`` or None."""
        node = _search(self.root, normalize(key))
        return node.value if node is not None else None

    def size(self) -> int:
        return _count(self.root)

    # persistence
    def write_to(self, fh: BinaryIO) -> int:
        """Write a snapshot to ``fh``; return the number of bytes written."""
        return codec.write_entries(fh, self.size(), _inorder(self.root))

    def read_from(self, fh: BinaryIO) -> int:
        """Replace the contents with the snapshot in ``fh``; return entries kept.

        The new tree is built aside and swapped in only once the whole
        stream decoded; on error the current contents stay as they were.
        """
        tmp = AVLTree()
        for key, value in codec.read_entries(fh):
            try:
                outcome = tmp.insert(key, value)
            except ValueError as e:
                raise FormatError(f"invalid format: {e}") from e
            if outcome is Outcome.ALREADY_EXISTS:
                logger.warning("snapshot holds duplicate key %r; keeping the first value", key)
        self.root = tmp.root
        return tmp.size()

    def save(self, path: str) -> None:
        try:
            fh = open(path, 'wb')
        except OSError as e:
            raise StoreIOError(f"cannot open file for writing: {path}") from e
        try:
            with fh:
                written = self.write_to(fh)
        except OSError as e:
            # flush on close
            raise StoreIOError(f"write failure: {e}") from e
        logger.debug("saved %d bytes to %s", written, path)

    def load(self, path: str) -> None:
        try:
            fh = open(path, 'rb')
        except OSError as e:
            raise StoreIOError(f"cannot open file for reading: {path}") from e
        with fh:
            n = self.read_from(fh)
        logger.debug("loaded %d entries from %s", n, path)
