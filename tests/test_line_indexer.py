"""Tests for the metadata line indexer."""

from pathlib import Path

import pytest

from pgen_toolkit.utils.io.errors import GenotypeIOError, GenotypeRangeError, MetadataFormatError
from pgen_toolkit.utils.io.line_indexer import PSAM_ID_FIELD, PVAR_ID_FIELD, LineIndexer

from conftest import create_psam_file, create_pvar_file


class TestLineIndexer:
    """Tests for LineIndexer class."""

    def test_single_variant(self, tmp_path: Path) -> None:
        file_path = tmp_path / "one.pvar"
        file_path.write_text("#CHROM\tID\tPOS\n1\tvariant_A\t100\n")

        with LineIndexer(file_path, field_index=PVAR_ID_FIELD) as indexer:
            assert indexer.read_field_range(0, 1) == ["variant_A"]

    def test_full_range(self, tmp_path: Path) -> None:
        """Test [0, N) returns the id field of every record, in order."""
        ids = [f"rs{i}" for i in range(25)]
        file_path = tmp_path / "test.pvar"
        create_pvar_file(file_path, ids)
        lines = file_path.read_text().splitlines()

        with LineIndexer(file_path, field_index=PVAR_ID_FIELD) as indexer:
            values = indexer.read_field_range(0, 25)

        assert values == ids
        assert values == [lines[1 + i].split("\t")[1] for i in range(25)]

    def test_sub_ranges_any_order(self, tmp_path: Path) -> None:
        """Test reads do not depend on where the previous read stopped."""
        ids = [f"S{i}" for i in range(12)]
        file_path = tmp_path / "test.psam"
        create_psam_file(file_path, ids)

        with LineIndexer(file_path, field_index=PSAM_ID_FIELD) as indexer:
            assert indexer.read_field_range(8, 12) == ids[8:12]
            assert indexer.read_field_range(0, 3) == ids[0:3]
            assert indexer.read_field_range(5, 6) == ["S5"]
            assert indexer.read_field(11) == "S11"

    def test_declared_count_bounds_requests(self, tmp_path: Path) -> None:
        """Test the declared count limits reads even if the file has more."""
        file_path = tmp_path / "test.psam"
        create_psam_file(file_path, [f"S{i}" for i in range(6)])

        with LineIndexer(file_path, field_index=0, declared_count=4) as indexer:
            assert len(indexer) == 4
            assert indexer.indexed_count == 6
            assert indexer.read_field_range(0, 4) == ["S0", "S1", "S2", "S3"]
            with pytest.raises(GenotypeRangeError):
                indexer.read_field_range(0, 5)

    @pytest.mark.parametrize("start,end", [(0, 0), (-1, 2), (3, 2), (0, 11)])
    def test_out_of_range(self, tmp_path: Path, start: int, end: int) -> None:
        file_path = tmp_path / "test.pvar"
        create_pvar_file(file_path, [f"rs{i}" for i in range(10)])

        with LineIndexer(file_path, field_index=1) as indexer:
            with pytest.raises(GenotypeRangeError):
                indexer.read_field_range(start, end)

    def test_fewer_records_than_declared(self, tmp_path: Path) -> None:
        file_path = tmp_path / "short.pvar"
        create_pvar_file(file_path, ["rs0", "rs1"])

        with LineIndexer(file_path, field_index=1, declared_count=5) as indexer:
            assert indexer.read_field_range(0, 2) == ["rs0", "rs1"]
            with pytest.raises(MetadataFormatError):
                indexer.read_field_range(0, 3)

    def test_missing_delimiter(self, tmp_path: Path) -> None:
        file_path = tmp_path / "bad.pvar"
        file_path.write_text("#CHROM\tID\n1\trs0\nrs1\n1\trs2\n")

        with LineIndexer(file_path, field_index=1) as indexer:
            assert indexer.read_field_range(0, 1) == ["rs0"]
            assert indexer.read_field(2) == "rs2"
            with pytest.raises(MetadataFormatError):
                indexer.read_field_range(0, 3)

    def test_missing_delimiter_first_field(self, tmp_path: Path) -> None:
        file_path = tmp_path / "bad.psam"
        file_path.write_text("#IID\tSEX\nS0\t1\nS1\n")

        with LineIndexer(file_path, field_index=0) as indexer:
            assert indexer.read_field(0) == "S0"
            with pytest.raises(MetadataFormatError):
                indexer.read_field(1)

    def test_too_few_fields(self, tmp_path: Path) -> None:
        file_path = tmp_path / "bad.pvar"
        file_path.write_text("#CHROM\tID\tPOS\n1\trs0\t100\n")

        with LineIndexer(file_path, field_index=3) as indexer:
            with pytest.raises(MetadataFormatError):
                indexer.read_field(0)

    def test_crlf_and_trailing_blank_lines(self, tmp_path: Path) -> None:
        file_path = tmp_path / "dos.psam"
        file_path.write_bytes(b"#IID\tSEX\r\nS0\t1\r\nS1\t2\r\n\r\n")

        with LineIndexer(file_path, field_index=0) as indexer:
            assert indexer.indexed_count == 2
            assert indexer.read_field_range(0, 2) == ["S0", "S1"]
            assert indexer.columns == ["IID", "SEX"]

    def test_interior_blank_line_is_a_record(self, tmp_path: Path) -> None:
        """Test a blank line mid-file keeps later records on their own line."""
        file_path = tmp_path / "gap.pvar"
        file_path.write_text("#H\n1\trs0\n\n1\trs2\n")

        with LineIndexer(file_path, field_index=1, declared_count=3) as indexer:
            assert indexer.indexed_count == 3
            assert indexer.read_field(0) == "rs0"
            assert indexer.read_field(2) == "rs2"
            with pytest.raises(MetadataFormatError):
                indexer.read_field(1)
            with pytest.raises(MetadataFormatError):
                indexer.read_field_range(0, 2)

    def test_multiple_header_lines(self, tmp_path: Path) -> None:
        file_path = tmp_path / "meta.pvar"
        file_path.write_text("##fileformat=PVARv1.0\n#CHROM\tID\n1\trs0\n1\trs1\n")

        with LineIndexer(file_path, field_index=1, header_lines=2) as indexer:
            assert indexer.columns == ["CHROM", "ID"]
            assert indexer.read_field_range(0, 2) == ["rs0", "rs1"]

    def test_no_header(self, tmp_path: Path) -> None:
        file_path = tmp_path / "plain.psam"
        file_path.write_text("S0\t1\nS1\t2\n")

        with LineIndexer(file_path, field_index=0, header_lines=0) as indexer:
            assert indexer.columns == []
            assert indexer.read_field_range(0, 2) == ["S0", "S1"]

    def test_get_metadata(self, tmp_path: Path) -> None:
        file_path = tmp_path / "test.pvar"
        create_pvar_file(file_path, ["rs0", "rs1", "rs2"])

        with LineIndexer(file_path, field_index=1, declared_count=3) as indexer:
            metadata = indexer.get_metadata()

        assert metadata["record_count"] == 3
        assert metadata["indexed_count"] == 3
        assert metadata["columns"] == ["CHROM", "ID", "POS", "REF", "ALT"]

    def test_closed_reader(self, tmp_path: Path) -> None:
        file_path = tmp_path / "test.pvar"
        create_pvar_file(file_path, ["rs0"])

        indexer = LineIndexer(file_path, field_index=1)
        indexer.close()
        with pytest.raises(GenotypeIOError):
            indexer.read_field(0)

    def test_file_not_found(self) -> None:
        """Test error handling for missing file."""
        with pytest.raises(GenotypeIOError):
            LineIndexer("/nonexistent/path/file.pvar", field_index=1)

    def test_negative_field(self, tmp_path: Path) -> None:
        file_path = tmp_path / "test.pvar"
        create_pvar_file(file_path, ["rs0"])

        with pytest.raises(ValueError):
            LineIndexer(file_path, field_index=-1)
