"""
Tests for the achievement log monitor state machine.
"""

import asyncio

import pytest

from library_shell.achievements import AchievementTracker, load_document
from library_shell.constants import NEVER_UNLOCKED
from library_shell.log_monitor import (
    AchievementLogMonitor,
    FileLogReader,
    MonitorRegistry,
    MonitorState,
    clear_logs,
)

from conftest import MemoryLogReader


def make_monitor(folder, reader, progress=None, **kwargs):
    tracker = AchievementTracker(
        "Kart Racer", folder,
        on_progress=(lambda unlocked, total: progress.append((unlocked, total))) if progress is not None else None,
    )
    return AchievementLogMonitor(tracker, reader, **kwargs)


class TestDiscovery:
    """Test the AWAITING_LOG_FILE state"""

    @pytest.mark.asyncio
    async def test_found_log_starts_tailing(self, achievement_folder, memory_reader):
        monitor = make_monitor(achievement_folder, memory_reader)
        assert monitor.state == MonitorState.AWAITING_LOG_FILE
        assert await monitor.tick() == MonitorState.TAILING
        assert monitor.log_path == "memory.log"
        assert monitor.offset == 0

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, achievement_folder):
        reader = MemoryLogReader(available=False)
        monitor = make_monitor(achievement_folder, reader, discovery_attempts=3)
        states = [await monitor.tick() for _ in range(3)]
        assert states == [MonitorState.AWAITING_LOG_FILE, MonitorState.AWAITING_LOG_FILE, MonitorState.STOPPED]

    @pytest.mark.asyncio
    async def test_cancel_during_discovery(self, achievement_folder):
        monitor = make_monitor(achievement_folder, MemoryLogReader(available=False))
        await monitor.tick()
        monitor.cancel()
        assert await monitor.tick() == MonitorState.STOPPED


class TestTailing:
    """Test incremental reads and unlocks"""

    @pytest.mark.asyncio
    async def test_single_unlock_recorded_once(self, achievement_folder, memory_reader):
        progress = []
        monitor = make_monitor(achievement_folder, memory_reader, progress)
        memory_reader.append("boot\nRoom: match new lap record\n")

        await monitor.tick()
        await monitor.tick()

        document = load_document(achievement_folder / "Kart Racer.json")
        assert document["Items"][0]["DateUnlocked"] != NEVER_UNLOCKED
        assert progress == [(1, 3)]
        assert monitor.offset == len(memory_reader.data)

    @pytest.mark.asyncio
    async def test_restart_does_not_duplicate_unlock(self, achievement_folder):
        first_reader = MemoryLogReader(path="Ryujinx_1.log")
        first_reader.append("lap record\n")
        first = make_monitor(achievement_folder, first_reader)
        await first.tick()
        await first.tick()
        unlocked_at = load_document(achievement_folder / "Kart Racer.json")["Items"][0]["DateUnlocked"]

        # New session, fresh log containing the same line
        progress = []
        second_reader = MemoryLogReader(path="Ryujinx_2.log")
        second_reader.append("lap record\n")
        second = make_monitor(achievement_folder, second_reader, progress)
        await second.tick()
        await second.tick()

        assert progress == []
        assert load_document(achievement_folder / "Kart Racer.json")["Items"][0]["DateUnlocked"] == unlocked_at
        assert load_document(achievement_folder / "stats.json")["UnlockedCount"] == 1

    @pytest.mark.asyncio
    async def test_offset_unchanged_when_file_has_not_grown(self, achievement_folder, memory_reader):
        monitor = make_monitor(achievement_folder, memory_reader)
        memory_reader.append("nothing interesting\n")
        await monitor.tick()
        await monitor.tick()
        offset, reads = monitor.offset, memory_reader.reads

        await monitor.tick()
        await monitor.tick()

        assert monitor.offset == offset
        assert memory_reader.reads == reads

    @pytest.mark.asyncio
    async def test_partial_line_waits_for_newline(self, achievement_folder, memory_reader):
        monitor = make_monitor(achievement_folder, memory_reader)
        memory_reader.append("lap rec")
        await monitor.tick()
        await monitor.tick()
        assert monitor.offset == 0

        memory_reader.append("ord\n")
        await monitor.tick()
        assert "Speed Demon" in monitor.tracker.unlocked

    @pytest.mark.asyncio
    async def test_resumes_from_persisted_offset(self, achievement_folder, memory_reader):
        memory_reader.append("old line\n")
        first = make_monitor(achievement_folder, memory_reader)
        await first.tick()
        await first.tick()

        memory_reader.append("new line\n")
        second = make_monitor(achievement_folder, memory_reader)
        await second.tick()
        assert second.offset == len("old line\n")

    @pytest.mark.asyncio
    async def test_transient_error_retried_next_tick(self, achievement_folder, memory_reader):
        monitor = make_monitor(achievement_folder, memory_reader)
        memory_reader.append("lap record\n")
        memory_reader.fail_next = 1
        await monitor.tick()

        assert await monitor.tick() == MonitorState.TAILING
        assert monitor.offset == 0

        await monitor.tick()
        assert "Speed Demon" in monitor.tracker.unlocked

    @pytest.mark.asyncio
    async def test_truncated_log_read_from_start(self, achievement_folder, memory_reader):
        monitor = make_monitor(achievement_folder, memory_reader)
        memory_reader.append("a fairly long first line of boot output\n")
        await monitor.tick()
        await monitor.tick()

        memory_reader.data = b"lap record\n"
        await monitor.tick()

        assert monitor.offset == len(b"lap record\n")
        assert "Speed Demon" in monitor.tracker.unlocked

    @pytest.mark.asyncio
    async def test_rotation_moves_to_new_log_and_never_back(self, achievement_folder):
        progress = []
        reader = MemoryLogReader(path="Ryujinx_a.log")
        reader.append("boot\n")
        monitor = make_monitor(achievement_folder, reader, progress)
        await monitor.tick()
        await monitor.tick()
        assert monitor.offset == 5

        reader.rotate("Ryujinx_b.log")
        reader.append("lap record\n")
        await monitor.tick()
        assert monitor.log_path == "Ryujinx_b.log"
        assert monitor.offset == 11
        assert progress == [(1, 3)]

        # A late write makes the old log look newest again
        reader.path = "Ryujinx_a.log"
        reader.append("late shutdown line\n")
        await monitor.tick()
        assert monitor.log_path == "Ryujinx_b.log"
        assert monitor.offset == 11


class TestRunLoop:
    """Test the driver loop with an injected sleep"""

    @pytest.mark.asyncio
    async def test_run_stops_on_cancel(self, achievement_folder, memory_reader):
        sleeps = []

        async def fake_sleep(interval):
            sleeps.append(interval)
            if len(sleeps) == 3:
                monitor.cancel()

        monitor = make_monitor(achievement_folder, memory_reader, poll_interval=0.5, sleep=fake_sleep)
        memory_reader.append("lap record\n")

        assert await monitor.run() == MonitorState.STOPPED
        assert sleeps == [0.5, 0.5, 0.5]
        assert "Speed Demon" in monitor.tracker.unlocked

    @pytest.mark.asyncio
    async def test_run_times_out_silently(self, achievement_folder):
        async def fake_sleep(interval):
            pass

        monitor = make_monitor(
            achievement_folder, MemoryLogReader(available=False),
            discovery_attempts=5, sleep=fake_sleep,
        )
        assert await monitor.run() == MonitorState.STOPPED
        assert monitor.attempts == 5


class TestMonitorRegistry:
    """Test one monitor per title"""

    @pytest.mark.asyncio
    async def test_new_session_cancels_previous(self, achievement_folder):
        registry = MonitorRegistry()
        first = make_monitor(
            achievement_folder, MemoryLogReader(available=False),
            discovery_attempts=10_000, discovery_interval=0.01,
        )
        second = make_monitor(
            achievement_folder, MemoryLogReader(available=False),
            discovery_attempts=10_000, discovery_interval=0.01,
        )

        await registry.start(first)
        await asyncio.sleep(0.05)
        task = await registry.start(second)

        assert first.state == MonitorState.STOPPED
        assert registry.get("kart racer") is second
        assert not task.done()

        await registry.stop_all()
        assert second.state == MonitorState.STOPPED
        assert registry.get("Kart Racer") is None

    @pytest.mark.asyncio
    async def test_concurrent_starts_leave_one_monitor_running(self, achievement_folder):
        registry = MonitorRegistry()
        monitors = [
            make_monitor(
                achievement_folder, MemoryLogReader(available=False),
                discovery_attempts=10_000, discovery_interval=0.01,
            )
            for _ in range(3)
        ]

        await registry.start(monitors[0])
        await asyncio.sleep(0.02)
        tasks = await asyncio.gather(registry.start(monitors[1]), registry.start(monitors[2]))

        running = [m for m in monitors if m.state != MonitorState.STOPPED]
        assert len(running) == 1
        assert registry.get("Kart Racer") is running[0]
        assert sum(1 for t in tasks if not t.done()) == 1

        await registry.stop_all()
        assert all(m.state == MonitorState.STOPPED for m in monitors)


class TestFileLogReader:
    """Test the aiofiles-backed reader"""

    @pytest.mark.asyncio
    async def test_reads_complete_lines_from_offset(self, tmp_path):
        log = tmp_path / "Ryujinx_1.log"
        log.write_bytes(b"one\ntwo\nthr")
        reader = FileLogReader(tmp_path, "Ryujinx_*.log")

        assert await reader.latest_log() == str(log)
        assert await reader.size(str(log)) == 11
        assert await reader.read_from(str(log), 0) == (["one", "two"], 8)
        assert await reader.read_from(str(log), 8) == ([], 8)

    @pytest.mark.asyncio
    async def test_no_logs(self, tmp_path):
        assert await FileLogReader(tmp_path / "missing", "*.log").latest_log() is None

    def test_clear_logs(self, tmp_path):
        (tmp_path / "Ryujinx_1.log").write_text("x", encoding="utf-8")
        (tmp_path / "Ryujinx_2.log").write_text("x", encoding="utf-8")
        (tmp_path / "keep.txt").write_text("x", encoding="utf-8")
        assert clear_logs(tmp_path) == 2
        assert [p.name for p in tmp_path.iterdir()] == ["keep.txt"]
