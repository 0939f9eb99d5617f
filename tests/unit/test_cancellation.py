"""Unit tests for the kill switch and the cancellation bridge."""

from __future__ import annotations

import threading

from refwatch.core.cancellation import CancellationBridge, KillSwitch, open_bridge
from refwatch.core.channels import select


class TestKillSwitch:
    def test_starts_alive(self, kill_switch: KillSwitch):
        assert not kill_switch.is_killed

    def test_watchers_see_first_edge_only(self, kill_switch: KillSwitch):
        seen: list[tuple[bool, bool]] = []
        kill_switch.add_watch("w", lambda old, new: seen.append((old, new)))
        kill_switch.kill()
        kill_switch.kill()
        assert kill_switch.is_killed
        assert seen == [(False, True)]

    def test_remove_watch(self, kill_switch: KillSwitch):
        seen: list[bool] = []
        kill_switch.add_watch("w", lambda old, new: seen.append(new))
        kill_switch.remove_watch("w")
        kill_switch.kill()
        assert seen == []
        assert kill_switch.watch_keys() == []


class TestCancellationBridge:
    def test_fires_on_kill(self, kill_switch: KillSwitch):
        with CancellationBridge(kill_switch) as bridge:
            assert bridge.channel.poll() == (False, None)
            kill_switch.kill()
            assert select([bridge.channel], 1.0) == (bridge.channel, "killed")
            assert bridge.fired

    def test_fires_immediately_when_already_killed(self, kill_switch: KillSwitch):
        kill_switch.kill()
        bridge = open_bridge(kill_switch)
        try:
            assert select([bridge.channel], 1.0) == (bridge.channel, "killed")
        finally:
            bridge.close()

    def test_fires_at_most_once(self, kill_switch: KillSwitch):
        bridge = open_bridge(kill_switch)
        kill_switch.kill()
        bridge._on_change(False, True)
        assert bridge.channel.poll() == (True, "killed")
        assert bridge.channel.poll() == (False, None)
        bridge.close()

    def test_close_removes_watch_and_is_idempotent(self, kill_switch: KillSwitch):
        bridge = open_bridge(kill_switch)
        assert len(kill_switch.watch_keys()) == 1
        bridge.close()
        bridge.close()
        assert kill_switch.watch_keys() == []
        assert bridge.channel.closed

    def test_kill_after_close_does_not_fire(self, kill_switch: KillSwitch):
        bridge = open_bridge(kill_switch)
        bridge.close()
        kill_switch.kill()
        assert not bridge.fired

    def test_kill_from_another_thread_wakes_taker(self, kill_switch: KillSwitch):
        with CancellationBridge(kill_switch) as bridge:
            threading.Timer(0.05, kill_switch.kill).start()
            assert select([bridge.channel], 5.0) == (bridge.channel, "killed")

    def test_two_bridges_on_one_switch(self, kill_switch: KillSwitch):
        first = open_bridge(kill_switch)
        second = open_bridge(kill_switch)
        kill_switch.kill()
        assert first.channel.poll() == (True, "killed")
        assert second.channel.poll() == (True, "killed")
        first.close()
        second.close()
