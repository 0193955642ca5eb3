"""Tests for the path resolution engine."""

from codablegen.core.paths import (
    DecodingFallback,
    PathConflict,
    PathTrie,
    find_structural_conflicts,
)

F = DecodingFallback


class TestDecodingFallback:
    """Tests for aggregating member fallbacks into a container fallback."""

    def test_empty_throws(self) -> None:
        assert F.aggregate([]) is F.THROW

    def test_any_throw_throws(self) -> None:
        """Test that one required member makes the container required."""
        assert F.aggregate([F.IF_ERROR, F.THROW, F.IF_MISSING]) is F.THROW

    def test_all_if_error(self) -> None:
        assert F.aggregate([F.IF_ERROR, F.IF_ERROR]) is F.IF_ERROR

    def test_mixed_optional(self) -> None:
        assert F.aggregate([F.IF_ERROR, F.IF_MISSING]) is F.IF_MISSING
        assert F.aggregate([F.IF_MISSING]) is F.IF_MISSING


class TestPathTrie:
    """Tests for the container arena."""

    def test_shared_prefix_shares_container(self) -> None:
        """Test that members under the same prefix bind to one container."""
        trie = PathTrie()
        first = trie.insert(("info", "name"), 0)
        second = trie.insert(("info", "age"), 1)

        assert first == second
        assert trie.node(first).members == [0, 1]  # type: ignore[arg-type]
        assert trie.prefix(first) == ("info",)  # type: ignore[arg-type]
        assert len(trie) == 2

    def test_root_members(self) -> None:
        trie = PathTrie()
        assert trie.insert(("name",), 0) == PathTrie.ROOT
        assert trie.has_keyed

    def test_empty_path_is_unkeyed(self) -> None:
        """Test that empty paths bind to the coder itself."""
        trie = PathTrie()
        assert trie.insert((), 3) is None
        assert trie.unkeyed == [3]
        assert not trie.has_keyed

    def test_containers_breadth_first(self) -> None:
        trie = PathTrie()
        trie.insert(("a", "b", "c", "x"), 0)
        trie.insert(("d", "y"), 1)
        trie.insert(("a", "z"), 2)

        prefixes = [trie.prefix(node.index) for node in trie.containers()]
        assert prefixes == [(), ("a",), ("d",), ("a", "b"), ("a", "b", "c")]
        assert trie.containers()[0].is_root

    def test_container_for_is_insert_or_get(self) -> None:
        trie = PathTrie()
        index = trie.container_for(("a", "b"))
        assert trie.container_for(("a", "b")) == index
        assert trie.node(index).depth == 2
        assert trie.node(index).key == "b"

    def test_subtree_fallback(self) -> None:
        """Test that a container's fallback covers nested members only."""
        trie = PathTrie()
        trie.insert(("a", "x"), 0)
        trie.insert(("a", "b", "y"), 1)
        trie.insert(("z",), 2)
        fallbacks = [F.IF_ERROR, F.IF_MISSING, F.THROW]

        a = trie.container_for(("a",))
        assert sorted(trie.subtree_members(a)) == [0, 1]
        assert trie.fallback(a, fallbacks.__getitem__) is F.IF_MISSING
        assert trie.fallback(PathTrie.ROOT, fallbacks.__getitem__) is F.THROW


class TestStructuralConflicts:
    """Tests for scalar-versus-container path conflicts."""

    def test_no_conflict(self) -> None:
        assert find_structural_conflicts([(0, ("a", "b")), (1, ("a", "c"))]) == []

    def test_value_used_as_container(self) -> None:
        """Test that a value position can't also hold nested members."""
        conflicts = find_structural_conflicts([(0, ("a",)), (1, ("a", "b"))])
        assert conflicts == [PathConflict(scalar=0, nested=1, path=("a",))]

    def test_conflict_reported_once_per_member(self) -> None:
        conflicts = find_structural_conflicts(
            [(0, ("a",)), (1, ("a", "b")), (2, ("a", "b", "c"))]
        )
        assert [conflict.nested for conflict in conflicts] == [1, 2]

    def test_same_path_is_not_structural(self) -> None:
        assert find_structural_conflicts([(0, ("a",)), (1, ("a",))]) == []
