"""Tests for sibling ordering."""
from datetime import datetime, timedelta

import pytest

from filtertree.core.constants import SortMode
from filtertree.tree.node import FileNode
from filtertree.tree.sorting import resort_tree, sort_children


def names(nodes):
    return [n.name for n in nodes]


@pytest.fixture
def siblings():
    base = datetime(2024, 1, 1, 12, 0, 0)
    big_dir = FileNode(path="/r/Big", name="Big", is_dir=True, mod_time=base)
    big_dir.set_stats(1000, 2)
    many_dir = FileNode(path="/r/many", name="many", is_dir=True, mod_time=base + timedelta(hours=2))
    many_dir.set_stats(10, 50)
    return [
        FileNode(path="/r/b.txt", name="b.txt", size=300, mod_time=base + timedelta(hours=1)),
        many_dir,
        FileNode(path="/r/A.txt", name="A.txt", size=5, mod_time=base + timedelta(hours=3)),
        big_dir,
        FileNode(path="/r/c.txt", name="c.txt", size=40),
    ]


class TestSortChildren:
    """Tests for sort_children()."""

    def test_name_case_insensitive_dirs_first(self, siblings):
        assert names(sort_children(siblings, SortMode.NAME)) == ["Big", "many", "A.txt", "b.txt", "c.txt"]

    def test_size_descending(self, siblings):
        assert names(sort_children(siblings, SortMode.SIZE)) == ["Big", "many", "b.txt", "c.txt", "A.txt"]

    def test_file_count_descending_files_by_name(self, siblings):
        assert names(sort_children(siblings, SortMode.FILE_COUNT)) == ["many", "Big", "A.txt", "b.txt", "c.txt"]

    def test_last_modified_newest_first_unknown_last(self, siblings):
        assert names(sort_children(siblings, SortMode.LAST_MODIFIED)) == ["many", "Big", "A.txt", "b.txt", "c.txt"]

    def test_sorts_in_place(self, siblings):
        result = sort_children(siblings, SortMode.NAME)
        assert result is siblings


class TestResortTree:
    """Tests for resort_tree()."""

    def test_resorts_every_level(self):
        root = FileNode(path="/r", name="r", is_dir=True)
        sub = FileNode(path="/r/sub", name="sub", is_dir=True, parent=root)
        small = FileNode(path="/r/sub/small", name="small", size=1, parent=sub)
        large = FileNode(path="/r/sub/large", name="large", size=100, parent=sub)
        sub.publish_children([small, large])
        top = FileNode(path="/r/a", name="a", size=5000, parent=root)
        root.publish_children([sub, top])

        resort_tree(root, SortMode.SIZE)

        assert names(sub.children) == ["large", "small"]
        assert names(root.children) == ["sub", "a"]

        resort_tree(root, SortMode.NAME)
        assert names(sub.children) == ["large", "small"]
