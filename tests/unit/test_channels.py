"""Unit tests for bounded channels and select()."""

from __future__ import annotations

import threading
import time

import pytest

from refwatch.core.channels import Channel, select


class TestChannel:
    def test_offer_then_poll(self):
        ch: Channel[str] = Channel(capacity=1)
        assert ch.offer("x")
        assert ch.poll() == (True, "x")
        assert ch.poll() == (False, None)

    def test_full_channel_drops(self):
        ch: Channel[str] = Channel(capacity=1)
        assert ch.offer("first")
        assert not ch.offer("second")
        assert ch.poll() == (True, "first")

    def test_closed_channel_refuses_offers(self):
        ch: Channel[str] = Channel()
        ch.close()
        assert ch.closed
        assert not ch.offer("x")

    def test_buffered_item_survives_close(self):
        ch: Channel[str] = Channel()
        ch.offer("x")
        ch.close()
        assert ch.poll() == (True, "x")

    def test_drained_closed_channel_is_never_ready(self):
        ch: Channel[str] = Channel()
        ch.close()
        assert select([ch], 0.05) == (None, None)

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            Channel(capacity=0)


class TestSelect:
    def test_timeout_returns_none(self):
        start = time.monotonic()
        ready, item = select([Channel(), Channel()], 0.05)
        assert (ready, item) == (None, None)
        assert time.monotonic() - start >= 0.04

    def test_earlier_channel_wins_ties(self):
        first: Channel[str] = Channel(name="first")
        second: Channel[str] = Channel(name="second")
        second.offer("b")
        first.offer("a")
        ready, item = select([first, second], 1.0)
        assert ready is first
        assert item == "a"

    def test_wakes_on_offer_from_other_thread(self):
        ch: Channel[str] = Channel()
        timer = threading.Timer(0.05, ch.offer, args=("late",))
        timer.start()
        start = time.monotonic()
        ready, item = select([Channel(), ch], 5.0)
        timer.join()
        assert ready is ch
        assert item == "late"
        assert time.monotonic() - start < 2.0

    def test_waiters_are_removed_after_select(self):
        ch: Channel[str] = Channel()
        select([ch], 0.01)
        assert ch._waiters == set()
