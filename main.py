"""
Running sample: a hand-built trie over a three-sequence database, reduced to its closed patterns.

    S0: (a)(b)(c)
    S1: (a)(b)
    S2: (a b)(c)

The id-lists below are what a search loop would have computed for each extension.
"""


if __name__ == "__main__":
    import pandas as pd

    from closedspm.closure import MiningSession, ClosureIndex, closed_patterns, patterns_frame
    from closedspm.idlist import IDList
    from closedspm.pattern import ItemAbstractionPair, Pattern

    a, b, c = (ItemAbstractionPair(x) for x in "abc")
    b_same = ItemAbstractionPair("b", True)

    # 1. One session per mining run
    session = MiningSession()
    root = session.new_trie()

    # 2. Frequent atoms
    trie_a = session.extend(root, a, IDList([0, 1, 2]))
    trie_b = session.extend(root, b, IDList([0, 1, 2]))
    trie_c = session.extend(root, c, IDList([0, 2]))

    # 3. Extensions; the itemset extension (a b) is found out of band
    trie_ab = session.extend(trie_a, b, IDList([0, 1]))
    session.extend(trie_a, b_same, IDList([2]), alt=True)
    session.extend(trie_a, c, IDList([0, 2]))
    session.extend(trie_b, c, IDList([0, 2]))
    session.extend(trie_ab, c, IDList([0]))

    # 4. Extending (c) would only repeat (a)(c): prune it while mining
    index = ClosureIndex()
    for pattern, trie in root.preorder_traversal():
        if len(pattern) > 1:
            index.register(pattern, trie)
    index.prune_if_subsumed(Pattern([c]), trie_c)

    # 5. Canonical order, then collect the closed patterns
    for _, trie in list(root.preorder_traversal()):
        if trie is not None:
            trie.sort()
    root.sort()

    pd.set_option("display.width", 120)
    print(patterns_frame(closed_patterns(root, show_progress=True)).drop(columns=["pattern"]))
