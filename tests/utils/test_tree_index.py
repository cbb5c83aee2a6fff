"""
测试树索引
"""
from rbac_admin.utils.tree_index import TreeIndex


def build():
    #   a
    #  / \
    # b   c
    # |
    # d
    return TreeIndex([("a", None), ("b", "a"), ("c", "a"), ("d", "b")])


def test_descendants_parent_before_child():
    index = build()
    ordered = index.descendants("a")
    assert set(ordered) == {"a", "b", "c", "d"}
    assert ordered[0] == "a"
    assert ordered.index("b") < ordered.index("d")


def test_descendants_excluding_self_and_unknown_node():
    index = build()
    assert set(index.descendants("b", include_self=False)) == {"d"}
    assert index.descendants("zzz") == []


def test_ancestors_nearest_first():
    assert build().ancestors("d") == ["b", "a"]


def test_is_descendant():
    index = build()
    assert index.is_descendant("d", "a")
    assert index.is_descendant("b", "b")
    assert not index.is_descendant("a", "d")
    assert not index.is_descendant("c", "b")


def test_orphan_treated_as_root():
    index = TreeIndex([("x", "missing"), ("y", "x")])
    assert index.roots() == ["x"]
    assert index.descendants("x") == ["x", "y"]


def test_cycle_walks_terminate():
    """脏数据成环时遍历必须终止"""
    index = TreeIndex([("p", "q"), ("q", "p"), ("r", "q")])
    assert set(index.descendants("p")) == {"p", "q", "r"}
    assert set(index.ancestors("r")) == {"q", "p"}
    assert index.roots() == []


def test_self_loop():
    index = TreeIndex([("s", "s")])
    assert index.descendants("s") == ["s"]
    assert index.ancestors("s") == []
