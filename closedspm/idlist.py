import numpy as np


class IDList:
    """
    Occurrence set of a pattern: the sequence identifiers in which it appears.

    Identifiers are kept as a sorted, duplicate-free numpy array, so the
    cardinality is O(1) and set algebra between id-lists (what the search loop
    uses to derive a child's id-list from its parents) runs vectorized.

    Attributes
    ----------
    _ids : numpy.ndarray
        Sorted unique int64 identifiers.
    _sum_cache : int or None
        Sum of identifiers, None until computed after the last mutation.
    """
    __slots__ = ("_ids", "_sum_cache")

    def __init__(self, identifiers=()):
        """
        :param identifiers: iterable or array of non-negative sequence identifiers.
            Duplicates are collapsed.
        """
        self._ids = self._normalize(identifiers)
        self._sum_cache = None

    @staticmethod
    def _normalize(identifiers):
        if not isinstance(identifiers, np.ndarray):
            identifiers = list(identifiers)
            if not identifiers:
                return np.empty(0, dtype=np.int64)
            identifiers = np.asarray(identifiers)
        if identifiers.size == 0:
            return np.empty(0, dtype=np.int64)
        if not np.issubdtype(identifiers.dtype, np.integer):
            raise ValueError(f"Sequence identifiers must be integers, got dtype {identifiers.dtype}")
        arr = np.unique(identifiers.astype(np.int64))
        if arr.size and arr[0] < 0:
            raise ValueError(f"Sequence identifiers must be non-negative, got {int(arr[0])}")
        return arr

    @classmethod
    def from_bitset(cls, bits: int) -> "IDList":
        """
        Build an id-list from an integer bitset (bit i set <=> sequence i present).
        """
        if bits < 0:
            raise ValueError(f"Bitset must be a non-negative integer, got {bits}")
        raw = np.frombuffer(bits.to_bytes((bits.bit_length() + 7) // 8, "little"), dtype=np.uint8)
        return cls(np.flatnonzero(np.unpackbits(raw, bitorder="little")))

    def to_bitset(self) -> int:
        if not self._ids.size:
            return 0
        flags = np.zeros(int(self._ids[-1]) + 1, dtype=np.uint8)
        flags[self._ids] = 1
        return int.from_bytes(np.packbits(flags, bitorder="little").tobytes(), "little")

    def to_numpy(self):
        """Read-only view of the identifiers."""
        view = self._ids.view()
        view.flags.writeable = False
        return view

    def cardinality(self) -> int:
        """Number of sequences in the set, i.e. the support of the owning pattern."""
        return int(self._ids.size)

    def sum(self) -> int:
        """
        Sum of all identifiers. Two id-lists with equal cardinality and equal sum
        are only candidates for equality; callers confirm with ``==``.
        """
        if self._sum_cache is None:
            # python ints, no overflow on large databases
            self._sum_cache = sum(self._ids.tolist())
        return self._sum_cache

    def add(self, sid: int):
        if sid < 0:
            raise ValueError(f"Sequence identifiers must be non-negative, got {sid}")
        pos = int(np.searchsorted(self._ids, sid))
        if pos < self._ids.size and self._ids[pos] == sid:
            return
        self._ids = np.insert(self._ids, pos, sid)
        self._sum_cache = None

    def discard(self, sid: int):
        pos = int(np.searchsorted(self._ids, sid))
        if pos < self._ids.size and self._ids[pos] == sid:
            self._ids = np.delete(self._ids, pos)
            self._sum_cache = None

    def update(self, identifiers):
        self._ids = np.union1d(self._ids, self._normalize(identifiers))
        self._sum_cache = None

    def clear(self):
        self._ids = np.empty(0, dtype=np.int64)
        self._sum_cache = None

    def intersection(self, other: "IDList") -> "IDList":
        return IDList(np.intersect1d(self._ids, other._ids, assume_unique=True))

    def union(self, other: "IDList") -> "IDList":
        return IDList(np.union1d(self._ids, other._ids))

    def __len__(self):
        return self.cardinality()

    def __iter__(self):
        return iter(self._ids.tolist())

    def __contains__(self, sid):
        pos = int(np.searchsorted(self._ids, sid))
        return pos < self._ids.size and int(self._ids[pos]) == sid

    def __eq__(self, other):
        if not isinstance(other, IDList):
            return NotImplemented
        return np.array_equal(self._ids, other._ids)

    __hash__ = None  # mutable

    def __repr__(self):
        return f"IDList({self._ids.tolist()})"
