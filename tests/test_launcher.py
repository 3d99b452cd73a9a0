"""
Tests for launching candidates through host collaborators.
"""

import pytest

from library_shell.executables import store_launch_pair
from library_shell.launcher import TitleLauncher, split_arguments
from library_shell.models import GameRecord, InvalidTitleError
from library_shell.platforms import detect_platform
from library_shell.playtime import PlaytimeStore
from library_shell.settings_store import save_exe_arguments

from conftest import make_exe


class RecordingLauncher:
    def __init__(self, exit_code=0):
        self.exit_code = exit_code
        self.calls = []

    def __call__(self, path, args, working_dir):
        self.calls.append((path, list(args), working_dir))
        return self.exit_code


class RecordingScript:
    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)
        return self.result


def fake_clock(*times):
    ticks = iter(times)
    return lambda: next(ticks)


class TestStoreLaunch:
    """Test store candidates"""

    def test_marker_opens_store_uri(self):
        uri, marker = store_launch_pair("620", "C:/Steam/steam.exe")
        launch = RecordingLauncher()
        script = RecordingScript()
        launcher = TitleLauncher(launch, script)
        record = GameRecord(name="Portal 2", store_id="620")

        assert launcher.launch(record, marker) == 0
        assert launcher.launch(record, uri) == 0
        assert launch.calls == [("steam://rungameid/620", [], None)] * 2
        assert script.calls == []


class TestExecutableLaunch:
    """Test on-disk executables"""

    def test_saved_arguments_and_working_dir(self, tmp_path):
        exe = make_exe(tmp_path / "Games" / "Hades" / "Hades.exe")
        save_exe_arguments(exe, "-windowed -fps 120")
        launch = RecordingLauncher(exit_code=3)
        record = GameRecord(name="Hades", folder=str(exe.parent))

        assert TitleLauncher(launch).launch(record, str(exe)) == 3
        assert launch.calls == [(str(exe), ["-windowed", "-fps", "120"], str(exe.parent))]

    def test_play_time_recorded(self, tmp_path):
        exe = make_exe(tmp_path / "Games" / "Hades" / "Hades.exe")
        store = PlaytimeStore(tmp_path / "Total.Playtime.txt")
        record = GameRecord(name="Hades", folder=str(exe.parent))
        launcher = TitleLauncher(RecordingLauncher(), playtime=store, clock=fake_clock(100.0, 160.5))

        launcher.launch(record, str(exe))

        assert store.get_seconds("Hades", detect_platform(record)) == 60

    def test_failed_pre_launch_script_cancels(self, tmp_path):
        exe = make_exe(tmp_path / "Hades" / "Hades.exe")
        (exe.parent / "before.script").write_text("exit 1", encoding="utf-8")
        launch = RecordingLauncher()
        script = RecordingScript(result=False)
        record = GameRecord(name="Hades", folder=str(exe.parent))

        assert TitleLauncher(launch, script).launch(record, str(exe)) is None
        assert script.calls == [str(exe.parent / "before.script")]
        assert launch.calls == []

    def test_script_only_runs_when_present(self, tmp_path):
        exe = make_exe(tmp_path / "Hades" / "Hades.exe")
        launch = RecordingLauncher()
        script = RecordingScript(result=False)
        record = GameRecord(name="Hades", folder=str(exe.parent))

        assert TitleLauncher(launch, script).launch(record, str(exe)) == 0
        assert script.calls == []

    def test_missing_executable(self, tmp_path):
        launch = RecordingLauncher()
        record = GameRecord(name="Hades")
        assert TitleLauncher(launch).launch(record, str(tmp_path / "gone.exe")) is None
        assert launch.calls == []

    def test_launch_error_is_logged_not_raised(self, tmp_path):
        exe = make_exe(tmp_path / "Hades" / "Hades.exe")

        def broken(path, args, working_dir):
            raise PermissionError("access denied")

        record = GameRecord(name="Hades", folder=str(exe.parent))
        assert TitleLauncher(broken).launch(record, str(exe)) is None

    def test_missing_title(self):
        with pytest.raises(InvalidTitleError):
            TitleLauncher(RecordingLauncher()).launch(GameRecord(name=""), "steam://rungameid/1")


class TestSplitArguments:
    """Test argument parsing"""

    def test_quoted_argument_kept_together(self):
        args = split_arguments('-profile "My Save" -fast')
        assert len(args) == 3
        assert args[1].strip('"') == "My Save"

    def test_empty(self):
        assert split_arguments("") == []
