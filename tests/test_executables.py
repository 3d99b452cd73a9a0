"""
Tests for launch candidate enumeration and launch actions.
"""

import pytest

from library_shell.exclusions import ExclusionRules
from library_shell.executables import (
    ExecutableCandidateEnumerator,
    LaunchAction,
    detect_launch_action,
    parse_store_marker,
    store_launch_pair,
)
from library_shell.models import CandidateKind, ExeCandidate, GameRecord, RepackRecord
from library_shell.platforms import detect_platform

from conftest import make_exe


class TestEnumerate:
    """Test candidate collection"""

    def test_excluded_executables_dropped(self, tmp_path):
        folder = tmp_path / "Games" / "Celeste"
        make_exe(folder / "Celeste.exe")
        make_exe(folder / "UnityCrashHandler64.exe")
        make_exe(folder / "_CommonRedist" / "vcredist_x64.exe")
        rules = ExclusionRules.parse(["Folders:", "_CommonRedist", "Exes:", "UnityCrashHandler64.exe"])

        candidates = ExecutableCandidateEnumerator(rules).enumerate([GameRecord(name="Celeste", folder=str(folder))])

        assert [c.value for c in candidates] == [str(folder / "Celeste.exe")]

    def test_shared_folder_listed_once(self, tmp_path):
        folder = tmp_path / "Games" / "Celeste"
        make_exe(folder / "Celeste.exe")
        instances = [
            GameRecord(name="Celeste", folder=str(folder)),
            GameRecord(name="Celeste", folder=str(folder) + "/"),
        ]
        candidates = ExecutableCandidateEnumerator().enumerate(instances)
        assert len(candidates) == 1

    def test_path_key_is_case_insensitive(self):
        a = ExeCandidate(kind=CandidateKind.EXECUTABLE, value="C:/Games/Celeste/Celeste.exe")
        b = ExeCandidate(kind=CandidateKind.EXECUTABLE, value="c:/games/celeste/CELESTE.EXE")
        assert a.key == b.key

    def test_one_store_pair_for_three_instances(self, tmp_path):
        instances = []
        for volume in ("vol_a", "vol_b", "vol_c"):
            folder = tmp_path / volume / "Games" / "Portal 2"
            make_exe(folder / "portal2.exe")
            instances.append(GameRecord(name="Portal 2", folder=str(folder), store_id="620"))

        candidates = ExecutableCandidateEnumerator(steam_exe="C:/Steam/steam.exe").enumerate(instances)

        store = [c for c in candidates if c.is_store_launch]
        assert [c.kind for c in store] == [CandidateKind.STORE_URI, CandidateKind.STORE_MARKER]
        assert store[0].value == "steam://rungameid/620"
        assert store[1].value == "STEAM_LAUNCH::620::C:/Steam/steam.exe"
        assert len([c for c in candidates if not c.is_store_launch]) == 3

    def test_rom_and_console_instances_get_no_store_pair(self, tmp_path):
        instances = [
            GameRecord(name="Zelda", folder=str(tmp_path / "Roms" / "Switch" / "Zelda"), store_id="1"),
            GameRecord(name="Zelda", folder=str(tmp_path / "Games" / "Zelda"), store_id="2", is_rom=True),
        ]
        candidates = ExecutableCandidateEnumerator().enumerate(instances)
        assert candidates == []

    def test_missing_folder_is_skipped(self, tmp_path):
        instances = [GameRecord(name="Gone", folder=str(tmp_path / "nowhere"))]
        assert ExecutableCandidateEnumerator().enumerate(instances) == []

    @pytest.mark.asyncio
    async def test_async_enumeration_reports_candidates(self, tmp_path):
        folder = tmp_path / "Games" / "Celeste"
        make_exe(folder / "Celeste.exe")
        received = []
        result = await ExecutableCandidateEnumerator().enumerate_async(
            [GameRecord(name="Celeste", folder=str(folder))], on_ready=received.append
        )
        assert received == [result]


class TestStoreMarker:
    """Test the synthetic store-launch entries"""

    def test_marker_round_trip(self):
        _, marker = store_launch_pair("620", "C:/Steam/steam.exe")
        assert parse_store_marker(marker.value) == ("620", "C:/Steam/steam.exe")

    def test_marker_without_client(self):
        _, marker = store_launch_pair("620")
        assert parse_store_marker(marker.value) == ("620", None)

    def test_plain_path_is_not_a_marker(self):
        assert parse_store_marker("C:/Games/a.exe") is None


class TestLaunchAction:
    """Test Play / Install detection"""

    def test_installed_game_plays(self, tmp_path):
        make_exe(tmp_path / "Games" / "Hades" / "Hades.exe")
        make_exe(tmp_path / "Repacks" / "Hades" / "Setup.exe")
        record = RepackRecord(name="Hades", folder=str(tmp_path / "Repacks" / "Hades"))
        assert detect_launch_action(record, [tmp_path]) == LaunchAction.PLAY

    def test_repack_with_setup_installs(self, tmp_path):
        make_exe(tmp_path / "Repacks" / "Hades" / "Setup.exe")
        record = RepackRecord(name="Hades", folder=str(tmp_path / "Repacks" / "Hades"))
        assert detect_launch_action(record, [tmp_path]) == LaunchAction.INSTALL

    def test_repack_without_setup_plays(self, tmp_path):
        make_exe(tmp_path / "Repacks" / "Hades" / "Hades.exe")
        record = RepackRecord(name="Hades", folder=str(tmp_path / "Repacks" / "Hades"))
        assert detect_launch_action(record, [tmp_path]) == LaunchAction.PLAY


class TestPlatforms:
    """Test platform classification"""

    def test_emulator_wins(self):
        record = GameRecord(name="Zelda", folder="D:/Games/Zelda", emulator="D:/Emu/Ryujinx.exe")
        assert detect_platform(record) == "Nintendo - Switch"

    def test_folder_segment(self):
        assert detect_platform(GameRecord(name="Halo", folder="D:/Roms/Xbox 360/Halo")) == "Microsoft - Xbox 360"

    def test_default_is_pc(self):
        assert detect_platform(GameRecord(name="Anything")) == "PC (Windows)"
