"""
Tests for executable exclusion rules.
"""

import os

from library_shell.exclusions import ExclusionRules, get_exclusion_rules


SAMPLE = """
# redistributables and crash reporters
Folders:
_CommonRedist
"Redist"
Exe's:
UnityCrashHandler64.exe
# another comment
unins000.exe
"""


class TestExclusionRules:
    """Test parsing and matching"""

    def test_parse_sections(self):
        rules = ExclusionRules.parse(SAMPLE.splitlines())
        assert rules.folders == frozenset({"_commonredist", "redist"})
        assert rules.exes == frozenset({"unitycrashhandler64.exe", "unins000.exe"})

    def test_exes_header_variant(self):
        rules = ExclusionRules.parse(["Exes:", "Launcher.exe"])
        assert rules.exes == frozenset({"launcher.exe"})

    def test_lines_before_any_header_are_ignored(self):
        rules = ExclusionRules.parse(["stray.exe", "Folders:", "Tools"])
        assert rules.exes == frozenset()
        assert rules.folders == frozenset({"tools"})

    def test_is_excluded_by_name_case_insensitive(self):
        rules = ExclusionRules.parse(SAMPLE.splitlines())
        assert rules.is_excluded("D:/Games/Celeste/UNITYCRASHHANDLER64.EXE")
        assert not rules.is_excluded("D:/Games/Celeste/Celeste.exe")

    def test_is_excluded_by_parent_folder(self):
        rules = ExclusionRules.parse(SAMPLE.splitlines())
        assert rules.is_excluded("D:/Games/Celeste/_CommonRedist/vcredist_x64.exe")

    def test_missing_file_means_no_exclusions(self, tmp_path):
        rules = ExclusionRules.load(tmp_path / "Exclusions.txt")
        assert rules == ExclusionRules()

    def test_cached_rules_reload_after_change(self, tmp_path):
        path = tmp_path / "Exclusions.txt"
        path.write_text("Exes:\na.exe\n", encoding="utf-8")
        first = get_exclusion_rules(path)
        assert first.exes == frozenset({"a.exe"})
        assert get_exclusion_rules(path) is first

        mtime = path.stat().st_mtime
        path.write_text("Exes:\nb.exe\nc.exe\n", encoding="utf-8")
        os.utime(path, (mtime + 10, mtime + 10))
        assert get_exclusion_rules(path).exes == frozenset({"b.exe", "c.exe"})
