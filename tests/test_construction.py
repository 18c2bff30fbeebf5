import pytest
from transformer import Transformer, Keep, SKIP


class TestConstruction:
    """Test building transformers from values and sequences"""

    def test_from_list_round_trip(self):
        """Test that an untransformed transformer yields its source unchanged"""
        for xs in ([], [1], [1, 2, 3], ["a", None, 0, False]):
            result = Transformer.from_list(xs).to_list()
            assert result == xs, f"Expected {xs}, got {result}"

    def test_singleton(self):
        """Test a one-element transformer"""
        assert Transformer.singleton(42).to_list() == [42]
        assert Transformer.singleton(None).to_list() == [None]

    def test_from_iterable_is_materialized(self):
        """Test that generators are captured once and can be consumed repeatedly"""
        t = Transformer.from_list(x * 2 for x in range(4))
        assert t.to_list() == [0, 2, 4, 6]
        assert t.to_list() == [0, 2, 4, 6], "Second consumption should see the same items"

    def test_source_list_mutation_does_not_leak(self):
        """Test that the transformer owns its own copy of the source"""
        source = [1, 2, 3]
        t = Transformer.from_list(source)
        source.append(4)
        assert t.to_list() == [1, 2, 3]

    def test_identity_stage(self):
        """Test that a fresh transformer keeps every element"""
        stage = Transformer.from_list([1]).stage
        assert stage(5) == Keep(5)
        assert stage(None) == Keep(None)

    def test_repr(self):
        t = Transformer.from_list([1, 2, 3]).map(str).filter(bool)
        assert repr(t) == "Transformer(remaining=3, stages=[map, filter])"
        assert "identity" in repr(Transformer.from_list([]))

    def test_repr_labels_removals(self):
        """Test that remove stages are listed as removals"""
        t = Transformer.from_list([1, 2]).remove(bool).map(str)
        assert repr(t) == "Transformer(remaining=2, stages=[remove, map])"


class TestSignal:
    """Test the Keep/Skip signal produced by the stage"""

    def test_keep_equality(self):
        assert Keep(1) == Keep(1)
        assert Keep(1) != Keep(2)
        assert Keep(None) != SKIP

    def test_stage_signals(self):
        """Test that the fused stage reports skipped and kept elements"""
        stage = Transformer.from_list([]).map(lambda x: x + 1).filter(lambda x: x > 1).stage
        assert stage(0) is SKIP
        assert stage(1) == Keep(2)

    def test_keep_is_frozen(self):
        with pytest.raises(Exception):
            Keep(1).value = 2
