import types

import pytest
from closedspm.closure import MiningSession
from closedspm.idlist import IDList
from closedspm.pattern import ItemAbstractionPair, Pattern
from closedspm.trie import IdentifierCounter, Trie, TrieNode


A = ItemAbstractionPair("A")
B = ItemAbstractionPair("B")
C = ItemAbstractionPair("C")
Z = ItemAbstractionPair("Z")


@pytest.fixture
def session():
    return MiningSession()


@pytest.fixture
def small_trie(session):
    """
    Build:
        root
         ├── A {0, 1} ── (primary) C {1}
         └── B {2, 3}
    """
    root = session.new_trie(IDList([0, 1, 2, 3]))
    trie_a = session.extend(root, A, IDList([0, 1]))
    trie_ac = session.extend(trie_a, C, IDList([1]))
    trie_b = session.extend(root, B, IDList([2, 3]))
    return root, trie_a, trie_ac, trie_b


def test_support_and_sum(session):
    trie = session.new_trie(IDList([1, 4, 7]))
    assert trie.get_support() == 3
    assert trie.get_support() == 3
    assert trie.get_sum_of_identifiers() == 12
    assert trie.get_sum_of_identifiers() == 12


def test_empty_id_list_aggregates(session):
    trie = session.new_trie(IDList())
    assert trie.get_support() == 0
    assert trie.get_sum_of_identifiers() == 0


def test_aggregates_stay_cached_until_reset(session):
    ids = IDList([0, 1])
    trie = session.new_trie(ids)
    assert trie.get_support() == 2
    ids.add(5)
    assert trie.get_support() == 2
    trie.reset_aggregates()
    assert trie.get_support() == 3
    assert trie.get_sum_of_identifiers() == 6


def test_id_list_setter_invalidates(session):
    trie = session.new_trie(IDList([1]))
    assert trie.get_support() == 1
    trie.id_list = IDList([1, 2])
    assert trie.get_support() == 2
    assert trie.get_sum_of_identifiers() == 3


def test_support_overrides(session):
    trie = session.new_trie(IDList([1, 2]))
    trie.set_support(10)
    trie.set_sum_of_identifiers(42)
    assert trie.get_support() == 10
    assert trie.get_sum_of_identifiers() == 42
    trie.set_support(None)
    trie.set_sum_of_identifiers(None)
    assert trie.get_support() == 2
    assert trie.get_sum_of_identifiers() == 3


def test_missing_id_list_raises(session):
    trie = session.new_trie()
    with pytest.raises(RuntimeError, match="no id-list"):
        trie.get_support()
    with pytest.raises(RuntimeError, match="no id-list"):
        trie.get_sum_of_identifiers()


def test_insertion_order_then_sort(session):
    trie = session.new_trie()
    for pair in (C, A, B):
        trie.insert_child(TrieNode(pair))
    assert [trie.pair_at(i) for i in range(3)] == [C, A, B]
    trie.sort()
    assert [trie.pair_at(i) for i in range(3)] == [A, B, C]


def test_sort_keeps_collections_apart(session):
    trie = session.new_trie()
    trie.insert_child(TrieNode(C))
    trie.insert_child(TrieNode(B))
    trie.insert_child_alt(TrieNode(Z))
    trie.insert_child_alt(TrieNode(A))
    trie.sort()
    assert [n.pair for n in trie.nodes] == [B, C]
    assert [n.pair for n in trie.alt_nodes] == [A, Z]
    assert trie.sibling_count() == 2
    assert trie.alt_sibling_count() == 2


def test_merge_alt_children(session):
    trie = session.new_trie()
    trie.insert_child(TrieNode(C))
    trie.insert_child_alt(TrieNode(A))
    trie.merge_alt_children()
    assert [trie.pair_at(i) for i in range(trie.sibling_count())] == [A, C]
    assert trie.alt_sibling_count() == 0


def test_insert_rejects_non_node(session):
    trie = session.new_trie()
    with pytest.raises(TypeError):
        trie.insert_child(A)
    with pytest.raises(TypeError):
        trie.insert_child_alt(session.new_trie())


def test_positional_accessors(small_trie, session):
    root, trie_a, trie_ac, trie_b = small_trie
    assert root.sibling_count() == 2
    assert root.pair_at(0) == A
    assert root.child_at(0) is trie_a
    assert root.node_at(1).child is trie_b

    replacement = session.new_trie(IDList([9]))
    root.set_child_at(1, replacement)
    assert root.child_at(1) is replacement

    node = TrieNode(Z, trie_b)
    root.set_node_at(1, node)
    assert root.node_at(1) is node
    assert root.pair_at(1) == Z


@pytest.mark.parametrize("index", [-1, 2, 10])
def test_out_of_range_access(small_trie, index):
    root = small_trie[0]
    with pytest.raises(IndexError):
        root.child_at(index)
    with pytest.raises(IndexError):
        root.pair_at(index)
    with pytest.raises(IndexError):
        root.node_at(index)
    with pytest.raises(IndexError):
        root.set_node_at(index, TrieNode(Z))
    with pytest.raises(IndexError):
        root.set_child_at(index, None)


def test_leaf(session):
    trie = session.new_trie()
    assert trie.is_leaf()
    assert trie.sibling_count() == 0
    trie.insert_child_alt(TrieNode(A))
    assert not trie.is_leaf()
    assert trie.sibling_count() == 0


def test_traversal_primary_then_secondary(session):
    """root: A -> leaf, B -> trie whose secondary child is C."""
    root = session.new_trie()
    leaf_a = session.extend(root, A, IDList([0]))
    trie_b = session.extend(root, B, IDList([0, 1]))
    leaf_c = session.extend(trie_b, C, IDList([1]), alt=True)

    result = list(root.preorder_traversal())
    assert result == [
        (Pattern([A]), leaf_a),
        (Pattern([B]), trie_b),
        (Pattern([B, C]), leaf_c),
    ]


def test_traversal_depth_first_before_secondary(session):
    root = session.new_trie()
    trie_a = session.extend(root, A, IDList([0]))
    trie_z = session.extend(root, Z, IDList([1]), alt=True)
    trie_ab = session.extend(trie_a, B, IDList([0]))

    patterns = [(str(p), t) for p, t in root.preorder_traversal()]
    assert patterns == [("(A)", trie_a), ("(A)(B)", trie_ab), ("(Z)", trie_z)]


def test_traversal_with_prefix_and_missing_child(session):
    root = session.new_trie()
    root.insert_child(TrieNode(B))  # no child trie
    prefix = Pattern([A])
    assert list(root.preorder_traversal(prefix)) == [(Pattern([A, B]), None)]
    assert len(prefix) == 1


def test_traversal_is_lazy_and_empty_for_leaf(session):
    root = session.new_trie()
    walk = root.preorder_traversal()
    assert isinstance(walk, types.GeneratorType)
    assert list(walk) == []


def test_remove_all_is_idempotent(small_trie):
    root, trie_a, trie_ac, trie_b = small_trie
    root.remove_all()
    assert root.pruned
    assert root.sibling_count() == 0
    assert root.alt_sibling_count() == 0
    assert root.id_list is None
    root.remove_all()
    assert root.sibling_count() == 0
    with pytest.raises(RuntimeError, match="pruned"):
        root.get_support()
    with pytest.raises(RuntimeError, match="pruned"):
        root.get_sum_of_identifiers()


def test_remove_all_releases_descendants(small_trie, session):
    root, trie_a, trie_ac, trie_b = small_trie
    alt_child = session.extend(trie_a, Z, IDList([0]), alt=True)
    node_a = root.node_at(0)
    root.remove_all()
    for trie in (trie_a, trie_ac, trie_b, alt_child):
        assert trie.pruned
        assert trie.is_leaf()
    assert node_a.pair is None
    assert node_a.child is None


def test_pruned_trie_stays_pruned(session):
    trie = session.new_trie(IDList([1]))
    trie.remove_all()
    with pytest.raises(RuntimeError):
        trie.id_list = IDList([2])
    trie.set_support(5)
    with pytest.raises(RuntimeError):
        trie.get_support()


def test_remove_child_subtree_isolates(small_trie):
    root, trie_a, trie_ac, trie_b = small_trie
    assert root.remove_child_subtree(0) is True
    assert trie_a.pruned
    assert trie_ac.pruned
    # slot kept, sibling untouched
    assert root.sibling_count() == 2
    assert root.pair_at(1) == B
    assert root.child_at(1) is trie_b
    assert not trie_b.pruned
    assert trie_b.get_support() == 2
    assert trie_b.get_sum_of_identifiers() == 5
    assert root.get_support() == 4


@pytest.mark.parametrize("index", [-1, 2, 7])
def test_remove_child_subtree_invalid_index(small_trie, index):
    root, trie_a, trie_ac, trie_b = small_trie
    assert root.remove_child_subtree(index) is False
    assert not trie_a.pruned and not trie_b.pruned


def test_remove_child_subtree_on_empty(session):
    assert session.new_trie().remove_child_subtree(0) is False


def test_identifier_monotonicity(session):
    ids = [session.new_trie().id for _ in range(10)]
    assert ids == sorted(ids)
    assert len(set(ids)) == 10
    assert all(b - a == 1 for a, b in zip(ids, ids[1:]))

    trie = session.new_trie(IDList([0]))
    trie.remove_all()
    assert session.new_trie().id == trie.id + 1


def test_sessions_do_not_share_counters():
    first, second = MiningSession(), MiningSession()
    assert first.new_trie().id == 1
    assert second.new_trie().id == 1
    assert first.new_trie().id == 2


def test_counter_start_and_reset():
    counter = IdentifierCounter(start=100)
    assert Trie(counter).id == 100
    assert counter.peek() == 101
    session = MiningSession(start=5)
    assert session.new_trie().id == 5
    session.reset()
    assert session.new_trie().id == 1


def test_compare_by_identifier_only(session):
    first = session.new_trie(IDList([1, 2]))
    second = session.new_trie(IDList([1, 2]))
    assert first.compare_to(second) == -1
    assert second.compare_to(first) == 1
    assert first.compare_to(first) == 0
    assert sorted([second, first]) == [first, second]
    assert first != second


def test_repr(session):
    trie = session.new_trie()
    assert repr(trie) == f"ID={trie.id}[NULL], [NULL]"
    trie.insert_child(TrieNode(A))
    trie.insert_child(TrieNode(B))
    trie.insert_child_alt(TrieNode(C))
    assert repr(trie) == f"ID={trie.id}[A:0,B:0], [C:0]"


def test_remove_all_releases_children_inserted_after_pruning(session):
    root = session.new_trie()
    trie_a = session.extend(root, A, IDList([0, 1]))
    trie_a.remove_all()
    late_child = session.extend(trie_a, B, IDList([1]))
    late_alt = session.extend(late_child, C, IDList([1]), alt=True)
    assert trie_a.sibling_count() == 1

    trie_a.remove_all()
    assert trie_a.sibling_count() == 0
    assert trie_a.alt_sibling_count() == 0
    assert late_child.pruned and late_child.is_leaf()
    assert late_alt.pruned
    with pytest.raises(RuntimeError, match="pruned"):
        late_child.get_support()


def test_remove_all_reaches_children_below_pruned_descendant(small_trie, session):
    root, trie_a, trie_ac, trie_b = small_trie
    trie_ac.remove_all()
    regrown = session.extend(trie_ac, Z, IDList([1]))
    root.remove_all()
    assert regrown.pruned
    assert trie_ac.is_leaf()
