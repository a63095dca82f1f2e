"""Tests for the bounded candle history."""

import random

import pytest

from core.history import HistoryBuffer
from tests.helpers import make_candle


class TestAppend:
    """Tests for HistoryBuffer.append."""

    def test_append_in_order(self):
        buffer = HistoryBuffer(capacity=10)

        assert buffer.append(make_candle(0))
        assert buffer.append(make_candle(1))

        assert len(buffer) == 2
        assert buffer.last_open_time == 300

    def test_duplicate_bucket_rejected(self):
        """A second candle for the same bucket is a no-op."""
        buffer = HistoryBuffer(capacity=10)
        buffer.append(make_candle(0, open_price=100))

        assert buffer.append(make_candle(0, open_price=999)) is False
        assert len(buffer) == 1
        assert buffer.last.open == 100

    def test_late_candle_rejected(self):
        """An older bucket never lands after a newer one."""
        buffer = HistoryBuffer(capacity=10)
        buffer.append(make_candle(5))

        assert buffer.append(make_candle(3)) is False
        assert [c.open_time for c in buffer.snapshot()] == [1500]

    def test_eviction_drops_oldest(self):
        """Exceeding capacity evicts exactly the earliest entries."""
        buffer = HistoryBuffer(capacity=5)
        for i in range(8):
            buffer.append(make_candle(i))

        assert len(buffer) == 5
        assert [c.open_time // 300 for c in buffer.snapshot()] == [3, 4, 5, 6, 7]
        # Evicted buckets no longer count as duplicates
        assert 0 not in buffer

    def test_length_never_exceeds_capacity(self):
        buffer = HistoryBuffer(capacity=50)
        for i in range(500):
            buffer.append(make_candle(i))
            assert len(buffer) <= 50

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            HistoryBuffer(capacity=0)


class TestMerge:
    """Tests for HistoryBuffer.merge (warm-up)."""

    def test_merge_out_of_order_batch(self):
        """A shuffled batch ends up sorted."""
        candles = [make_candle(i) for i in range(20)]
        shuffled = list(candles)
        random.Random(7).shuffle(shuffled)

        buffer = HistoryBuffer(capacity=100)
        inserted = buffer.merge(shuffled)

        assert inserted == 20
        assert list(buffer.snapshot()) == candles

    def test_merge_skips_duplicates(self):
        """Candles already buffered (e.g. from the live stream) are kept as-is."""
        buffer = HistoryBuffer(capacity=100)
        buffer.append(make_candle(10, open_price=555))

        inserted = buffer.merge([make_candle(i) for i in range(5, 12)])

        assert inserted == 6
        assert len(buffer) == 7
        by_time = {c.open_time: c for c in buffer.snapshot()}
        assert by_time[3000].open == 555

    def test_merge_older_than_buffered(self):
        """Warm-up that predates live candles is placed before them."""
        buffer = HistoryBuffer(capacity=100)
        buffer.append(make_candle(50))

        buffer.merge([make_candle(i) for i in range(45, 50)])

        times = [c.open_time for c in buffer.snapshot()]
        assert times == sorted(times)
        assert buffer.last_open_time == 50 * 300

    def test_merge_trims_to_capacity(self):
        buffer = HistoryBuffer(capacity=10)
        buffer.merge([make_candle(i) for i in range(30)])

        assert len(buffer) == 10
        assert buffer.snapshot()[0].open_time == 20 * 300


class TestSnapshot:
    """Tests for HistoryBuffer.snapshot."""

    def test_snapshot_is_immutable_copy(self):
        buffer = HistoryBuffer(capacity=10)
        buffer.append(make_candle(0))
        snap = buffer.snapshot()

        buffer.append(make_candle(1))

        assert isinstance(snap, tuple)
        assert len(snap) == 1
        assert len(buffer.snapshot()) == 2

    def test_get_closes(self):
        buffer = HistoryBuffer(capacity=10)
        buffer.append(make_candle(0, open_price=100, close=101))
        buffer.append(make_candle(1, open_price=101, close=102))

        assert buffer.get_closes() == [101, 102]
