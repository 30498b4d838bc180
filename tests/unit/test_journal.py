"""Tests for the undo journal behind host transactions."""

from ammcore.journal import Journal


class _Box:
    def __init__(self) -> None:
        self.value = 1


class TestJournalRecording:
    """Tests for reversible writes."""

    def test_inactive_journal_records_nothing(self):
        journal = Journal()
        data: dict[str, int] = {}
        journal.set_item(data, "a", 1)
        assert data == {"a": 1}
        assert len(journal) == 0
        assert not journal.active

    def test_set_item_restores_old_value_and_removes_new_key(self):
        journal = Journal()
        data = {"a": 1}
        mark = journal.begin()
        journal.set_item(data, "a", 2)
        journal.set_item(data, "b", 3)
        assert data == {"a": 2, "b": 3}

        assert journal.rollback(mark) == 2
        assert data == {"a": 1}

    def test_repeated_writes_unwind_to_first_value(self):
        journal = Journal()
        data = {"a": 1}
        mark = journal.begin()
        for value in (2, 3, 4):
            journal.set_item(data, "a", value)

        journal.rollback(mark)
        assert data == {"a": 1}

    def test_set_attr_and_append(self):
        journal = Journal()
        box = _Box()
        items = [1]
        mark = journal.begin()
        journal.set_attr(box, "value", 5)
        journal.append(items, 2)

        journal.rollback(mark)
        assert box.value == 1
        assert items == [1]


class TestJournalBoundaries:
    """Tests for nesting and commit."""

    def test_inner_rollback_keeps_outer_writes(self):
        journal = Journal()
        data: dict[str, int] = {}
        journal.begin()
        journal.set_item(data, "outer", 1)

        inner = journal.begin()
        journal.set_item(data, "inner", 2)
        journal.rollback(inner)
        journal.end()

        assert data == {"outer": 1}
        assert journal.depth == 1

    def test_outermost_end_commits(self):
        journal = Journal()
        data: dict[str, int] = {}
        journal.begin()
        journal.set_item(data, "a", 1)
        assert len(journal) == 1

        journal.end()
        assert len(journal) == 0
        assert data == {"a": 1}
        assert not journal.active
