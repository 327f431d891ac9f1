"""Tests for NexusAPI.select_file."""

from datetime import datetime, timezone

import pytest

from salsanow.api import NexusAPI
from salsanow.models import ModFile


def _file(file_id: int, name: str, day: int = 1) -> ModFile:
    return ModFile(
        file_id=file_id,
        file_name=name,
        uploaded_date=datetime(2024, 1, day, tzinfo=timezone.utc),
    )


FILES = [
    _file(1, "ERR-optional-patch.zip", day=5),
    _file(2, "ERR-Main-File.zip", day=3),
    _file(3, "err-main-old.zip", day=1),
    _file(4, "ERR-hotfix.zip", day=9),
]


class TestSelectMain:
    def test_first_main_wins(self):
        assert NexusAPI.select_file(FILES, "main").file_id == 2

    def test_case_insensitive_pattern(self):
        assert NexusAPI.select_file(FILES, "MAIN").file_id == 2

    def test_no_main(self):
        files = [_file(1, "patch.zip"), _file(2, "hotfix.zip")]
        assert NexusAPI.select_file(files, "main") is None


class TestSelectLatest:
    def test_newest(self):
        assert NexusAPI.select_file(FILES, "latest").file_id == 4

    def test_tie_goes_to_first(self):
        files = [_file(1, "a.zip", day=7), _file(2, "b.zip", day=7), _file(3, "c.zip", day=2)]
        assert NexusAPI.select_file(files, "latest").file_id == 1


class TestSelectOther:
    @pytest.mark.parametrize("pattern", ["", "first", "optional", "whatever"])
    def test_unknown_pattern_is_first(self, pattern):
        assert NexusAPI.select_file(FILES, pattern).file_id == 1


class TestSelectEmpty:
    @pytest.mark.parametrize("pattern", ["main", "latest", "other"])
    def test_empty_is_none(self, pattern):
        assert NexusAPI.select_file([], pattern) is None
