"""Tests for sequence length bookkeeping and sequence methods on views."""
import pytest

from immutable_staging import (
    ArrayInvariantError,
    LENGTH,
    Patch,
    apply_update,
    staging_options,
)
from immutable_staging.array_invariant import (
    effective_length,
    maintain_array_invariant,
    parse_index,
)


class TestMaintainArrayInvariant:
    """Direct tests against a Patch for a three item list."""

    @pytest.fixture
    def patch(self):
        return Patch(['a', 'b', 'c'])

    def test_any_write_sets_sequence_flag(self, patch):
        maintain_array_invariant(patch, 0, 'x')
        assert patch.as_sequence is True

    def test_index_inside_length_keeps_length(self, patch):
        assert maintain_array_invariant(patch, 1, 'x') == 1
        assert LENGTH not in patch
        assert effective_length(patch, patch.node) == 3

    def test_index_past_end_grows_length(self, patch):
        maintain_array_invariant(patch, 6, 'x')
        assert patch[LENGTH] == 7

    def test_string_index_is_normalized(self, patch):
        assert maintain_array_invariant(patch, '4', 'x') == 4
        assert patch[LENGTH] == 5

    def test_shrink_drops_pending_entries(self, patch):
        patch.values.update({1: 'x', 4: 'y', LENGTH: 5})
        maintain_array_invariant(patch, LENGTH, 2)
        assert 4 not in patch
        assert 1 in patch
        assert patch.cutoff == 2

    def test_shrink_from_huge_length_only_visits_pending_entries(self, patch):
        patch.values[2] = 'x'
        maintain_array_invariant(patch, LENGTH, 10 ** 12)
        patch.values[10 ** 12 - 1] = 'far'

        maintain_array_invariant(patch, LENGTH, 1)

        assert patch.values == {LENGTH: 1}
        assert patch.cutoff == 1

    def test_growing_length_keeps_entries(self, patch):
        patch.values[1] = 'x'
        maintain_array_invariant(patch, LENGTH, 10)
        assert patch[1] == 'x'
        assert patch.cutoff is None

    @pytest.mark.parametrize('key', ['name', -1, '-1', 1.5, True])
    def test_non_index_key_raises(self, patch, key):
        with pytest.raises(ArrayInvariantError):
            maintain_array_invariant(patch, key, 'x')

    @pytest.mark.parametrize('value', [-1, 'two', 2.0, None])
    def test_invalid_length_raises(self, patch, value):
        with pytest.raises(ArrayInvariantError):
            maintain_array_invariant(patch, LENGTH, value)


def test_parse_index():
    assert parse_index(0) == 0
    assert parse_index('12') == 12
    assert parse_index(-3) is None
    assert parse_index(False) is None
    assert parse_index('length') is None


class TestSequenceGrowthAndShrink:

    def test_growth_fills_holes(self):
        original = {'items': [1, 2]}

        result = apply_update(original, lambda view: view['items'].write(5, 6))

        assert result['items'] == [1, 2, None, None, None, 6]
        assert original['items'] == [1, 2]

    def test_hole_value_is_configurable(self):
        original = {'items': [1, 2]}

        with staging_options(hole=0):
            result = apply_update(original, lambda view: view['items'].write(4, 5))

        assert result['items'] == [1, 2, 0, 0, 5]

    def test_shrink_drops_tail(self):
        original = {'items': [1, 2, 3, 4]}

        result = apply_update(original, lambda view: view['items'].write(LENGTH, 2))

        assert result['items'] == [1, 2]

    def test_shrunk_items_do_not_reappear_on_regrow(self):
        original = [1, 2, 3, 4]

        def update(view):
            view.write(LENGTH, 1)
            view.write(LENGTH, 3)
            assert view[1] is None

        assert apply_update(original, update) == [1, None, None]

    def test_length_reads_reflect_pending_writes(self):
        def update(view):
            view[9] = 'x'
            assert len(view) == 10
            assert view.read(LENGTH) == 10
            assert view['length'] == 10

        apply_update([], update)

    def test_non_index_write_aborts_update(self, array_state):
        def update(view):
            view['array']['name'] = 'not an index'

        with pytest.raises(ArrayInvariantError):
            apply_update(array_state, update)

        assert len(array_state['array']) == 5


class TestSequenceMethods:
    """List methods on a view record their effects as index/length writes."""

    @pytest.fixture
    def numbers(self):
        return {'numbers': [3, 1, 2], 'other': [9]}

    def _apply(self, state, fn):
        return apply_update(state, lambda view: fn(view['numbers']))

    def test_append_and_extend(self, numbers):
        def fn(seq):
            seq.append(4)
            seq.extend([5, 6])
            seq += [7]

        result = self._apply(numbers, fn)
        assert result['numbers'] == [3, 1, 2, 4, 5, 6, 7]
        assert result['other'] is numbers['other']
        assert numbers['numbers'] == [3, 1, 2]

    def test_insert_shifts_right(self, numbers):
        result = self._apply(numbers, lambda seq: seq.insert(1, 'new'))
        assert result['numbers'] == [3, 'new', 1, 2]

    def test_insert_negative_index(self, numbers):
        result = self._apply(numbers, lambda seq: seq.insert(-1, 'new'))
        assert result['numbers'] == [3, 1, 'new', 2]

    def test_pop_and_remove(self, numbers):
        popped = []

        def fn(seq):
            popped.append(seq.pop())
            popped.append(seq.pop(0))
            seq.remove(1)

        result = self._apply(numbers, fn)
        assert popped == [2, 3]
        assert result['numbers'] == []

    def test_del_index_and_slice(self, numbers):
        def fn(seq):
            seq.extend([4, 5])
            del seq[0]
            del seq[1:3]

        result = self._apply(numbers, fn)
        assert result['numbers'] == [1, 5]

    def test_reverse_and_sort(self, numbers):
        result = self._apply(numbers, lambda seq: seq.reverse())
        assert result['numbers'] == [2, 1, 3]

        result = self._apply(numbers, lambda seq: seq.sort())
        assert result['numbers'] == [1, 2, 3]

        result = self._apply(numbers, lambda seq: seq.sort(reverse=True))
        assert result['numbers'] == [3, 2, 1]

    def test_sort_already_sorted_keeps_identity(self):
        state = {'numbers': [1, 2, 3]}
        result = apply_update(state, lambda view: view['numbers'].sort())
        assert result is state

    def test_clear(self, numbers):
        result = self._apply(numbers, lambda seq: seq.clear())
        assert result['numbers'] == []

    def test_negative_index_assignment(self, numbers):
        def fn(seq):
            seq[-1] = 'last'

        result = self._apply(numbers, fn)
        assert result['numbers'] == [3, 1, 'last']

    def test_negative_index_out_of_range(self, numbers):
        def fn(seq):
            seq[-4] = 'nope'

        with pytest.raises(IndexError):
            self._apply(numbers, fn)

    def test_bool_indices_behave_like_list(self, numbers):
        seen = []

        def fn(seq):
            seen.append(seq[True])
            seq[False] = 'first'

        result = self._apply(numbers, fn)
        assert seen == [1]
        assert result['numbers'] == ['first', 1, 2]

    def test_index_past_end_raises_on_read(self, numbers):
        def fn(seq):
            seq[3]

        with pytest.raises(IndexError):
            self._apply(numbers, fn)

    def test_nested_sequences_move_with_shifts(self):
        inner = ['inner']
        state = [inner, 'b']

        result = apply_update(state, lambda view: view.insert(0, 'a'))

        assert result == ['a', ['inner'], 'b']
        assert result[1] is inner
