from tabtorrent.core.id_allocator import IdAllocator


def test_ids_increase_from_start():
    ids = IdAllocator()

    assert [ids.next() for _ in range(3)] == [1, 2, 3]


def test_custom_start():
    assert IdAllocator(start=7).next() == 7


def test_separate_allocators_are_independent():
    a, b = IdAllocator(), IdAllocator(start=10)
    a.next()

    assert b.next() == 10
    assert a.next() == 2
