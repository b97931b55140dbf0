"""Tests for the flat comment arena and subtree collection"""

from apps.comments.tree import CommentArena


class TestCommentArena:
    def _arena(self):
        # A=1 with replies A1=3, A2=4; B=2 top-level; A1 has reply 5
        return CommentArena([(1, None), (2, None), (3, 1), (4, 1), (5, 3)])

    def test_roots(self):
        assert self._arena().roots() == [1, 2]

    def test_collect_subtree_is_post_order(self):
        """Every reply comes before its parent"""
        assert self._arena().collect_subtree([1, 2]) == [5, 3, 4, 1, 2]

    def test_collect_single_branch(self):
        assert self._arena().collect_subtree([3]) == [5, 3]

    def test_duplicate_roots_visited_once(self):
        assert self._arena().collect_subtree([1, 3, 1]) == [5, 3, 4, 1]

    def test_unknown_ids_are_ignored(self):
        assert self._arena().collect_subtree([42]) == []

    def test_cycle_does_not_loop_forever(self):
        arena = CommentArena([(1, 2), (2, 1)])

        assert sorted(arena.collect_subtree([1])) == [1, 2]

    def test_contains(self):
        arena = self._arena()

        assert 4 in arena
        assert 9 not in arena
