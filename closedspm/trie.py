import logging
import threading
from itertools import chain

from closedspm.idlist import IDList
from closedspm.pattern import ItemAbstractionPair, concatenate

logger = logging.getLogger(__name__)


class IdentifierCounter:
    """
    Source of Trie identifiers for one mining run.

    Identifiers are strictly increasing and never reused; they only break ties
    by construction order. Each mining session owns its own counter so that two
    runs in the same process do not interfere.
    """
    __slots__ = ("_next", "_lock")

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next_id(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
        return value

    def peek(self) -> int:
        """Identifier the next Trie will get."""
        return self._next

    def __repr__(self):
        return f"IdentifierCounter(next={self._next})"


class TrieNode:
    """
    One edge of the trie: an ItemAbstractionPair and the Trie it leads to.

    Attr:
        pair: edge label.
        child: owned child Trie, None when nothing hangs below this edge.
    """
    __slots__ = ("pair", "child")

    def __init__(self, pair: ItemAbstractionPair = None, child: "Trie" = None):
        self.pair = pair
        self.child = child

    def clear(self):
        """Drop pair and child. Used by the owning Trie during teardown."""
        self.pair = None
        self.child = None

    def __lt__(self, other):
        return self.pair < other.pair

    def __repr__(self):
        child_id = self.child.id if self.child is not None else None
        return f"<TrieNode pair={self.pair} child={child_id}>"


class Trie:
    """
    Trie level for the pattern spelled by the path from the root to here.

    Besides its children a Trie keeps the id-list of that pattern and caches the
    two aggregates closure checking relies on: support (id-list cardinality) and
    the sum of the sequence identifiers. Parents are not linked; the whole trie is
    walked once, from the root, when closed patterns are collected.

    Children live in two collections. ``nodes`` is filled by the regular
    extension pass; ``alt_nodes`` receives extensions discovered out of band,
    which stay apart until ``merge_alt_children`` is called. Traversal always
    visits ``nodes`` first.

    A Trie goes Building -> Queryable -> Pruned. Once ``remove_all`` ran, the
    aggregates are gone for good and querying them raises RuntimeError.

    Attr:
        id: construction-order identifier, drawn from an IdentifierCounter.
        nodes: primary list of TrieNode.
        alt_nodes: secondary list of TrieNode.
    """
    __slots__ = ("id", "nodes", "alt_nodes", "_id_list", "_support", "_sum_of_identifiers", "_pruned")

    def __init__(self, counter: IdentifierCounter, id_list: IDList = None, nodes=None):
        """
        :param counter: session counter providing this Trie's identifier.
        :param id_list: occurrence set of the pattern this Trie stands for.
        :param nodes: optional initial primary children.
        """
        self.id = counter.next_id()
        self.nodes = [] if nodes is None else list(nodes)
        self.alt_nodes = []
        self._id_list = id_list
        self._support = None
        self._sum_of_identifiers = None
        self._pruned = False

    # ---- insertion ----

    def insert_child(self, node: TrieNode):
        """Append to the primary children."""
        self.nodes.append(self._check_node(node))

    def insert_child_alt(self, node: TrieNode):
        """Append to the secondary children; they are not interleaved with the primary ones."""
        self.alt_nodes.append(self._check_node(node))

    @staticmethod
    def _check_node(node):
        if not isinstance(node, TrieNode):
            raise TypeError(f"Expected TrieNode, got {type(node).__name__}")
        return node

    def sort(self):
        """Sort both child collections independently by pair value."""
        self.nodes.sort()
        self.alt_nodes.sort()

    def merge_alt_children(self):
        """Move the secondary children into the primary collection and sort it."""
        if not self.alt_nodes:
            return
        self.nodes.extend(self.alt_nodes)
        self.alt_nodes = []
        self.nodes.sort()

    # ---- positional access (primary collection) ----

    def _check_index(self, index):
        if not 0 <= index < len(self.nodes):
            raise IndexError(f"Child index {index} out of range for Trie ID={self.id} with {len(self.nodes)} children")

    def node_at(self, index: int) -> TrieNode:
        self._check_index(index)
        return self.nodes[index]

    def set_node_at(self, index: int, node: TrieNode):
        self._check_index(index)
        self.nodes[index] = self._check_node(node)

    def child_at(self, index: int) -> "Trie":
        return self.node_at(index).child

    def set_child_at(self, index: int, child: "Trie"):
        self.node_at(index).child = child

    def pair_at(self, index: int) -> ItemAbstractionPair:
        return self.node_at(index).pair

    def sibling_count(self) -> int:
        return len(self.nodes)

    def alt_sibling_count(self) -> int:
        return len(self.alt_nodes)

    def is_leaf(self) -> bool:
        return not self.nodes and not self.alt_nodes

    @property
    def pruned(self) -> bool:
        return self._pruned

    # ---- removal ----

    def remove_child_subtree(self, index: int) -> bool:
        """
        Tear down the subtree below the primary child at ``index``.

        The node keeps its slot, so the positions of its siblings do not move.

        :return: False if there are no children or the index is out of range, True otherwise.
        """
        if not self.nodes or not 0 <= index < len(self.nodes):
            return False
        child = self.nodes[index].child
        if child is not None:
            child.remove_all()
        logger.debug(f"Removed subtree at index {index} of Trie ID={self.id}")
        return True

    def remove_all(self):
        """
        Release this Trie and every Trie below it.

        Descendants are released before their ancestors; the walk is iterative so
        deep tries do not hit the recursion limit. Children inserted after an
        earlier teardown are released too; a pruned, empty Trie is left as is.
        """
        if self._pruned and self.is_leaf():
            return
        visited = []
        stack = [self]
        while stack:
            trie = stack.pop()
            visited.append(trie)
            for node in chain(trie.nodes, trie.alt_nodes):
                if node.child is not None:
                    stack.append(node.child)
        for trie in reversed(visited):
            trie._release()
        logger.debug(f"Pruned Trie ID={self.id} ({len(visited)} tries released)")

    def _release(self):
        for node in chain(self.nodes, self.alt_nodes):
            node.clear()
        self.nodes.clear()
        self.alt_nodes.clear()
        self._id_list = None
        self._support = None
        self._sum_of_identifiers = None
        self._pruned = True

    # ---- aggregates ----

    @property
    def id_list(self) -> IDList:
        return self._id_list

    @id_list.setter
    def id_list(self, id_list: IDList):
        if self._pruned:
            raise RuntimeError(f"Trie ID={self.id} was pruned; its id-list cannot be replaced")
        self._id_list = id_list
        self.reset_aggregates()

    def reset_aggregates(self):
        """Forget cached support and sum; they are recomputed on the next query."""
        self._support = None
        self._sum_of_identifiers = None

    def _require_id_list(self):
        if self._pruned:
            raise RuntimeError(f"Trie ID={self.id} was pruned; support and identifier sum are gone")
        if self._id_list is None:
            raise RuntimeError(f"Trie ID={self.id} has no id-list; cannot compute support or identifier sum")
        return self._id_list

    def get_support(self) -> int:
        if self._pruned or self._support is None:
            self._support = self._require_id_list().cardinality()
        return self._support

    def set_support(self, support):
        self._support = support

    def get_sum_of_identifiers(self) -> int:
        if self._pruned or self._sum_of_identifiers is None:
            self._sum_of_identifiers = self._require_id_list().sum()
        return self._sum_of_identifiers

    def set_sum_of_identifiers(self, total):
        self._sum_of_identifiers = total

    # ---- traversal ----

    def preorder_traversal(self, prefix=None):
        """
        Lazily walk the trie depth first, rebuilding the pattern of every edge.

        At each level the primary children are visited before the secondary ones,
        and each child's whole subtree is visited before its next sibling.
        The generator is one-shot and reads the trie as it goes, so do not mutate
        the trie while consuming it.

        :param prefix: Pattern spelled by the path above this Trie (None for the root).
        :return: generator of (Pattern, Trie or None) tuples.
        """
        stack = [(prefix, node) for node in reversed(self.nodes + self.alt_nodes)]
        while stack:
            base, node = stack.pop()
            pattern = concatenate(base, node.pair)
            child = node.child
            yield pattern, child
            if child is not None:
                stack.extend((pattern, n) for n in reversed(child.nodes + child.alt_nodes))

    # ---- ordering ----

    def compare_to(self, other: "Trie") -> int:
        """Order by construction identifier only; says nothing about pattern content."""
        return (self.id > other.id) - (self.id < other.id)

    def __lt__(self, other):
        if not isinstance(other, Trie):
            return NotImplemented
        return self.id < other.id

    def __repr__(self):
        primary = ",".join(str(node.pair) for node in self.nodes) or "NULL"
        secondary = ",".join(str(node.pair) for node in self.alt_nodes) or "NULL"
        return f"ID={self.id}[{primary}], [{secondary}]"
