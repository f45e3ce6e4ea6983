"""Tests for clipshuffle.common utilities."""

import pytest

from clipshuffle.common import (
    check_pct_range,
    collect_media_paths,
    parse_hex_color,
    report,
    resolve_path_vars,
    silent,
)
from clipshuffle.errors import ClipShuffleError, InvalidRange


class TestParseHexColor:
    def test_with_hash(self):
        assert parse_hex_color("#e04c77") == (224, 76, 119)

    def test_without_hash(self):
        assert parse_hex_color("1A1A1A") == (26, 26, 26)

    def test_black(self):
        assert parse_hex_color("#000000") == (0, 0, 0)

    def test_wrong_length_raises(self):
        with pytest.raises(ValueError, match="Invalid hex color"):
            parse_hex_color("#fff")


class TestResolvePathVars:
    def test_single_var(self):
        result = resolve_path_vars("${videos}/grid1", {"videos": "/data/vids"})
        assert result == "/data/vids/grid1"

    def test_multiple_vars(self):
        paths = {"videos": "/data/vids", "figures": "/data/figs"}
        result = resolve_path_vars("${videos}/a and ${figures}/b", paths)
        assert result == "/data/vids/a and /data/figs/b"

    def test_no_vars(self):
        assert resolve_path_vars("/plain/path", {}) == "/plain/path"

    def test_unknown_var_raises(self):
        with pytest.raises(ValueError, match="Unknown path variable"):
            resolve_path_vars("${missing}/x", {})


class TestCollectMediaPaths:
    def test_explicit_file_kept_whatever_extension(self, tmp_path):
        f = tmp_path / "clip.bin"
        f.touch()
        assert collect_media_paths([f]) == [f]

    def test_directory_scan_is_sorted_and_filtered(self, tmp_path):
        for name in ["c.mkv", "a.mp4", "b.webm", "skip.jpg"]:
            (tmp_path / name).touch()
        found = collect_media_paths([tmp_path])
        assert [p.name for p in found] == ["a.mp4", "b.webm", "c.mkv"]

    def test_directory_scan_is_not_recursive(self, tmp_path):
        sub = tmp_path / "nested"
        sub.mkdir()
        (sub / "deep.mp4").touch()
        (tmp_path / "top.mp4").touch()
        assert [p.name for p in collect_media_paths([tmp_path])] == ["top.mp4"]

    def test_duplicates_dropped(self, tmp_path):
        f = tmp_path / "a.mp4"
        f.touch()
        assert collect_media_paths([tmp_path, f, str(f)]) == [f]

    def test_lists_every_missing_entry(self, tmp_path):
        with pytest.raises(FileNotFoundError) as exc_info:
            collect_media_paths([tmp_path / "x.mp4", tmp_path / "y.mp4"])
        msg = str(exc_info.value)
        assert "Missing 2 input(s)" in msg
        assert "x.mp4" in msg and "y.mp4" in msg


class TestCheckPctRange:
    def test_valid_range(self):
        check_pct_range("clip", 10, 30)

    def test_equal_bounds_allowed(self):
        check_pct_range("clip", 50, 50)

    def test_zero_raises(self):
        with pytest.raises(InvalidRange, match="> 0"):
            check_pct_range("clip", 0, 30)

    def test_inverted_raises(self):
        with pytest.raises(InvalidRange, match="min"):
            check_pct_range("clip", 40, 30)

    def test_above_upper_raises(self):
        with pytest.raises(InvalidRange, match="<= 100"):
            check_pct_range("clip", 10, 120)

    def test_no_upper_bound(self):
        check_pct_range("zoom", 110, 400, upper=None)

    def test_invalid_range_is_value_error(self):
        with pytest.raises(ValueError):
            check_pct_range("clip", 5, 1)
        assert issubclass(InvalidRange, ClipShuffleError)


class TestProgress:
    def test_report_prints_line(self, capsys):
        report("Recording started.")
        assert capsys.readouterr().out == "Recording started.\n"

    def test_silent_prints_nothing(self, capsys):
        silent("Recording started.")
        assert capsys.readouterr().out == ""
