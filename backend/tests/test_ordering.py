# tests/test_ordering.py — Position allocator
from types import SimpleNamespace

from services.ordering import allocate, clamp_index, is_dense, resequence


def _items(*positions):
    return [SimpleNamespace(name=f"item{i}", position=p) for i, p in enumerate(positions)]


def test_empty_container_gets_zero():
    alloc = allocate([], None)
    assert alloc.value == 0
    assert alloc.affected == []


def test_append_leaves_dense_siblings_untouched():
    siblings = _items(0, 1, 2)
    alloc = allocate(siblings)
    assert alloc.value == 3
    assert alloc.affected == []


def test_insert_at_front_shifts_everyone():
    siblings = _items(0, 1, 2)
    alloc = allocate(siblings, 0)
    assert alloc.value == 0
    assert [(s.name, v) for s, v in alloc.affected] == [("item0", 1), ("item1", 2), ("item2", 3)]


def test_insert_in_middle_shifts_only_the_tail():
    siblings = _items(0, 1, 2, 3)
    alloc = allocate(siblings, 2)
    assert alloc.value == 2
    assert [(s.name, v) for s, v in alloc.affected] == [("item2", 3), ("item3", 4)]


def test_index_is_clamped():
    siblings = _items(0, 1)
    assert allocate(siblings, 99).value == 2
    assert allocate(siblings, -5).value == 0
    assert clamp_index(None, 4) == 4
    assert clamp_index(7, 4) == 4


def test_move_within_column_yields_expected_order():
    # A, B, C with A moved to index 2: siblings are B, C
    b, c = _items(1, 2)
    alloc = allocate([b, c], 2)
    assert alloc.value == 2
    assert dict((s.name, v) for s, v in alloc.affected) == {"item0": 0, "item1": 1}


def test_gapped_siblings_are_repaired():
    siblings = _items(0, 3, 7)
    alloc = allocate(siblings, 1)
    assert alloc.value == 1
    assert [(s.name, v) for s, v in alloc.affected] == [("item1", 2), ("item2", 3)]


def test_resequence_closes_gaps():
    siblings = _items(0, 2, 3)
    assert [(s.name, v) for s, v in resequence(siblings)] == [("item1", 1), ("item2", 2)]
    assert resequence(_items(0, 1, 2)) == []


def test_resequence_custom_attribute():
    siblings = [SimpleNamespace(order=5), SimpleNamespace(order=9)]
    assert [v for _, v in resequence(siblings, attr="order")] == [0, 1]


def test_is_dense():
    assert is_dense([])
    assert is_dense([2, 0, 1])
    assert not is_dense([0, 2])
    assert not is_dense([0, 0, 1])
