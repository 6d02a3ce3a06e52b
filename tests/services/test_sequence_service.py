"""
Tests for SequenceService: monotonic allocation per named counter.
"""

from stock_kernel.services.sequence_service import SequenceService


class TestSequenceService:
    def test_first_value_is_one(self, session):
        seqs = SequenceService(session)
        assert seqs.current_value("test_first") is None
        assert seqs.next_value("test_first") == 1
        assert seqs.current_value("test_first") == 1

    def test_values_strictly_increase(self, session):
        seqs = SequenceService(session)
        values = [seqs.next_value("test_increasing") for _ in range(5)]
        assert values == sorted(set(values))
        assert values[-1] - values[0] == 4

    def test_names_are_independent(self, session):
        seqs = SequenceService(session)
        seqs.next_value("test_a")
        seqs.next_value("test_a")
        assert seqs.next_value("test_b") == 1
