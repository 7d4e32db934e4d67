class ItemAbstractionPair:
    """
    Edge label of the pattern trie: an item together with its abstraction.

    The abstraction ties the item to the previous pair of the pattern. With the
    default qualitative abstraction, a falsy value means the item opens a new
    itemset and a truthy value means it belongs to the same itemset as the
    previous item. Pairs order lexicographically by (item, abstraction).
    """
    __slots__ = ("item", "abstraction")

    def __init__(self, item, abstraction=False):
        object.__setattr__(self, "item", item)
        object.__setattr__(self, "abstraction", abstraction)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def _key(self):
        return (self.item, self.abstraction)

    def __eq__(self, other):
        if not isinstance(other, ItemAbstractionPair):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __lt__(self, other):
        if not isinstance(other, ItemAbstractionPair):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other):
        if not isinstance(other, ItemAbstractionPair):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other):
        if not isinstance(other, ItemAbstractionPair):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other):
        if not isinstance(other, ItemAbstractionPair):
            return NotImplemented
        return self._key() >= other._key()

    def __repr__(self):
        return f"ItemAbstractionPair({self.item!r}, {self.abstraction!r})"

    def __str__(self):
        return f"{self.item}:{int(bool(self.abstraction))}"


class Pattern:
    """
    Immutable ordered sequence of ItemAbstractionPair.

    Patterns are never stored inside the trie; they are rebuilt from trie paths
    during traversal, one ``concatenate`` per edge, so sibling branches can share
    their prefix safely.
    """
    __slots__ = ("_pairs", "_hash_cache")

    def __init__(self, pairs=()):
        pairs = tuple(pairs)
        for pair in pairs:
            if not isinstance(pair, ItemAbstractionPair):
                raise TypeError(f"Pattern elements must be ItemAbstractionPair, got {type(pair).__name__}")
        self._pairs = pairs
        self._hash_cache = None

    @property
    def pairs(self):
        return self._pairs

    def __len__(self):
        return len(self._pairs)

    def __iter__(self):
        return iter(self._pairs)

    def __getitem__(self, index):
        return self._pairs[index]

    def __eq__(self, other):
        if not isinstance(other, Pattern):
            return NotImplemented
        return self._pairs == other._pairs

    def __hash__(self):
        if self._hash_cache is None:
            self._hash_cache = hash(self._pairs)
        return self._hash_cache

    def __lt__(self, other):
        if not isinstance(other, Pattern):
            return NotImplemented
        return self._pairs < other._pairs

    def itemsets(self):
        """
        Group the pairs into itemsets following their abstractions.

        :return: list of lists of items, e.g. ``[["a", "b"], ["c"]]`` for ``(a b)(c)``.
        """
        groups = []
        for pair in self._pairs:
            if pair.abstraction and groups:
                groups[-1].append(pair.item)
            else:
                groups.append([pair.item])
        return groups

    def is_subpattern_of(self, other: "Pattern") -> bool:
        """
        Sequence containment: every itemset of this pattern is a subset of a
        distinct itemset of ``other``, and the matched itemsets keep their order.
        Greedy earliest matching is enough for itemset sequences.
        """
        mine = [set(s) for s in self.itemsets()]
        theirs = [set(s) for s in other.itemsets()]
        if len(mine) > len(theirs):
            return False
        j = 0
        for itemset in mine:
            while j < len(theirs) and not itemset <= theirs[j]:
                j += 1
            if j == len(theirs):
                return False
            j += 1
        return True

    def __repr__(self):
        return f"Pattern({list(self._pairs)!r})"

    def __str__(self):
        return "".join("(" + " ".join(str(item) for item in itemset) + ")" for itemset in self.itemsets())


EMPTY_PATTERN = Pattern()


def concatenate(prefix, pair):
    """
    Build the pattern ``prefix`` followed by ``pair``. The prefix is not modified.

    :param prefix: Pattern or None (the empty pattern).
    :param pair: ItemAbstractionPair to append.
    :return: new Pattern
    """
    if not isinstance(pair, ItemAbstractionPair):
        raise TypeError(f"Can only append an ItemAbstractionPair, got {type(pair).__name__}")
    if prefix is None:
        return Pattern((pair,))
    return Pattern(prefix.pairs + (pair,))
