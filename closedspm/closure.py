import logging
import time
from collections import defaultdict
from functools import wraps

import pandas as pd
from tqdm import tqdm

from closedspm.idlist import IDList
from closedspm.pattern import ItemAbstractionPair
from closedspm.trie import IdentifierCounter, Trie, TrieNode

# logging decorator
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logging.basicConfig(level=logging.INFO)


PATTERN_COLUMNS = ["pattern", "pattern_str", "length", "support", "sum_of_identifiers", "trie_id"]


def log_execution(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        logger.info(f"Starting {func.__name__}")
        result = func(*args, **kwargs)
        logger.info(f"Finished {func.__name__}")
        return result

    return wrapper


class MiningSession:
    """
    Owns the identifier counter of one mining run and builds tries from it.

    Attributes
    ----------
    counter : IdentifierCounter
        Shared by every Trie created through this session.
    """
    def __init__(self, start: int = 1):
        self.counter = IdentifierCounter(start)

    def new_trie(self, id_list: IDList = None, nodes=None) -> Trie:
        return Trie(self.counter, id_list=id_list, nodes=nodes)

    def new_node(self, pair: ItemAbstractionPair, id_list: IDList = None) -> TrieNode:
        """Edge labelled ``pair`` leading to a fresh Trie holding ``id_list``."""
        return TrieNode(pair, self.new_trie(id_list))

    def extend(self, parent: Trie, pair: ItemAbstractionPair, id_list: IDList, alt: bool = False) -> Trie:
        """
        Insert the extension ``pair`` under ``parent`` and return the new child Trie.

        :param alt: insert into the secondary children instead of the primary ones.
        """
        node = self.new_node(pair, id_list)
        if alt:
            parent.insert_child_alt(node)
        else:
            parent.insert_child(node)
        return node.child

    def reset(self, start: int = 1):
        """Start a new run; tries created before keep their identifiers."""
        self.counter = IdentifierCounter(start)


def closure_key(trie: Trie):
    """(support, sum of identifiers): equal keys are necessary for equal occurrence sets."""
    return trie.get_support(), trie.get_sum_of_identifiers()


def same_occurrences(first: Trie, second: Trie) -> bool:
    """
    Whether two tries hold the same occurrence set. The full comparison only
    runs when the cheap key already matches.
    """
    if closure_key(first) != closure_key(second):
        return False
    return first.id_list == second.id_list


def _is_strictly_contained(pattern, other) -> bool:
    return len(pattern) < len(other) and pattern.is_subpattern_of(other)


class ClosureIndex:
    """
    Patterns registered during mining, bucketed by closure key.

    The search loop registers every (Pattern, Trie) it stores. Before extending a
    pattern it asks ``prune_if_subsumed``: when an already stored, strictly
    larger pattern has the same occurrence set, the smaller one cannot be closed
    and neither can its extensions, so its Trie is torn down.
    """
    def __init__(self):
        self._groups = defaultdict(list)

    def register(self, pattern, trie: Trie):
        self._groups[closure_key(trie)].append((pattern, trie))

    def __len__(self):
        return sum(len(entries) for entries in self._groups.values())

    def candidates(self, trie: Trie):
        """Registered entries sharing ``trie``'s closure key, pruned ones excluded."""
        return [(p, t) for p, t in self._groups.get(closure_key(trie), []) if not t.pruned]

    def find_superpattern(self, pattern, trie: Trie):
        """
        :return: a registered (Pattern, Trie) strictly containing ``pattern`` with
            the same occurrence set, or None.
        """
        for other_pattern, other_trie in self.candidates(trie):
            if other_trie is trie:
                continue
            if _is_strictly_contained(pattern, other_pattern) and same_occurrences(trie, other_trie):
                return other_pattern, other_trie
        return None

    def prune_if_subsumed(self, pattern, trie: Trie) -> bool:
        """
        Tear down ``trie`` when ``pattern`` is subsumed by a registered superpattern.

        :return: True if the trie was pruned.
        """
        match = self.find_superpattern(pattern, trie)
        if match is None:
            return False
        logger.debug(f"Pruning {pattern} (Trie ID={trie.id}): subsumed by {match[0]} (Trie ID={match[1].id})")
        trie.remove_all()
        self._drop_pruned()
        return True

    def _drop_pruned(self):
        """Forget entries whose Trie was released, descendants of a pruned Trie included."""
        for key in list(self._groups):
            live = [(p, t) for p, t in self._groups[key] if not t.pruned]
            if live:
                self._groups[key] = live
            else:
                del self._groups[key]


@log_execution
def closed_patterns(root: Trie, prefix=None, show_progress: bool = False):
    """
    Collect the closed patterns stored below ``root``.

    Walks the trie once in preorder, buckets every pattern by closure key and
    drops each pattern that a strictly larger pattern with the same occurrence
    set contains. Edges without a child Trie, or whose Trie was pruned or never
    got an id-list, carry no occurrence data and are skipped; so is everything
    below a pruned Trie.

    Parameters
    ----------
    root : Trie
        Trie to collect from (typically the session root).
    prefix : Pattern, optional
        Pattern spelled above ``root``.
    show_progress : bool
        Whether to show a tqdm bar over the closure-key buckets.

    Returns
    -------
    list[tuple[Pattern, Trie]]
        Surviving entries, in traversal order.
    """
    t0 = time.perf_counter()
    entries = []
    skipped = 0
    pruned_depth = None  # length of the pattern of the pruned Trie being skipped
    for pattern, trie in root.preorder_traversal(prefix):
        if pruned_depth is not None and len(pattern) > pruned_depth:
            skipped += 1
            continue
        pruned_depth = None
        if trie is not None and trie.pruned:
            pruned_depth = len(pattern)
        if trie is None or trie.pruned or trie.id_list is None:
            skipped += 1
            continue
        entries.append((pattern, trie))

    groups = defaultdict(list)
    for idx, (_, trie) in enumerate(entries):
        groups[closure_key(trie)].append(idx)

    non_closed = set()
    for members in tqdm(groups.values(), desc="Closure check", disable=not show_progress):
        if len(members) < 2:
            continue
        for i in members:
            pattern_i, trie_i = entries[i]
            for j in members:
                if i == j:
                    continue
                pattern_j, trie_j = entries[j]
                if _is_strictly_contained(pattern_i, pattern_j) and same_occurrences(trie_i, trie_j):
                    non_closed.add(i)
                    break

    result = [entry for idx, entry in enumerate(entries) if idx not in non_closed]
    logger.info(
        f"closed_patterns: visited={len(entries) + skipped} skipped={skipped} "
        f"non_closed={len(non_closed)} closed={len(result)} time={time.perf_counter() - t0:.4f}s"
    )
    return result


def patterns_frame(entries) -> pd.DataFrame:
    """
    Flat table of (Pattern, Trie) entries.

    Columns: pattern, pattern_str, length, support, sum_of_identifiers, trie_id.
    Sorted by length ascending, then support descending.
    """
    records = []
    for pattern, trie in entries:
        records.append({
            "pattern": pattern,
            "pattern_str": str(pattern),
            "length": len(pattern),
            "support": trie.get_support(),
            "sum_of_identifiers": trie.get_sum_of_identifiers(),
            "trie_id": trie.id,
        })
    df = pd.DataFrame.from_records(records, columns=PATTERN_COLUMNS)
    df = df.sort_values(by=["length", "support"], ascending=[True, False], kind="stable").reset_index(drop=True)
    return df
