import random

import pytest

from samuraicord.exceptions import TableError
from samuraicord.table import (
    SamuraiEntry,
    get_random_samurai_id,
    get_samurai_name,
    read_samurai_csv,
)


@pytest.fixture
def samurai_csv(tmp_path):
    path = tmp_path / "samurai.csv"
    path.write_text(
        "S_No.,Name,Description\n"
        "1,ピタッとハウス侍,\"部屋探しを\nすぐ決める\"\n"
        "2,残業侍,定時を知らない\n"
        "\n"
        "3,短い侍\n",
        encoding="utf-8",
    )
    return path


class TestReadSamuraiCsv:
    def test_reads_columns_by_header_name(self, samurai_csv):
        entries = read_samurai_csv(samurai_csv)
        assert entries == [
            SamuraiEntry("ピタッとハウス侍", "部屋探しを\nすぐ決める"),
            SamuraiEntry("残業侍", "定時を知らない"),
            SamuraiEntry("短い侍", ""),
        ]

    def test_column_order_does_not_matter(self, tmp_path):
        path = tmp_path / "swapped.csv"
        path.write_text("Description,Name\nd,n\n", encoding="utf-8")
        assert read_samurai_csv(path) == [SamuraiEntry("n", "d")]

    def test_strips_byte_order_mark(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_text("\ufeffName,Description\nn,d\n", encoding="utf-8")
        assert read_samurai_csv(path) == [SamuraiEntry("n", "d")]

    @pytest.mark.parametrize("header,missing", [
        ("Name,Notes", "Description"),
        ("Title,Description", "Name"),
    ])
    def test_missing_column(self, tmp_path, header, missing):
        path = tmp_path / "bad.csv"
        path.write_text(f"{header}\na,b\n", encoding="utf-8")
        with pytest.raises(TableError, match=f"'{missing}' column"):
            read_samurai_csv(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("", encoding="utf-8")
        with pytest.raises(TableError):
            read_samurai_csv(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_samurai_csv(tmp_path / "nope.csv")


class TestRandomSelection:
    def test_random_id_in_range(self):
        rng = random.Random(0)
        assert all(0 <= get_random_samurai_id(100, rng) < 100 for _ in range(200))

    def test_formats_entry(self):
        entries = [SamuraiEntry("残業侍", "定時を知らない")]
        assert get_samurai_name(entries) == "0: 残業侍\n定時を知らない"

    def test_picks_every_entry_eventually(self):
        entries = [SamuraiEntry(str(i), "") for i in range(3)]
        rng = random.Random(1)
        seen = {get_samurai_name(entries, rng) for _ in range(100)}
        assert seen == {"0: 0\n", "1: 1\n", "2: 2\n"}

    def test_empty_table(self):
        assert get_samurai_name([]) is None
