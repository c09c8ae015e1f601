"""Tests for the kzip writer and readers."""

import hashlib
import io
import json
import zipfile

import pytest

from kzip_tools.rust_project.kzip import (
    KzipError,
    create_kzip,
    encode_unit,
    list_file_digests,
    read_units,
)
from kzip_tools.rust_project.units import CompilationUnit, FileInfo, FileInput, VName


def _unit(label="//a", paths=("a/lib.rs",)):
    inputs = [
        FileInput(
            vname=VName(corpus="fuchsia", language="rust", path=p),
            info=FileInfo(path=p, digest=hashlib.sha256(p.encode()).hexdigest()),
        )
        for p in paths
    ]
    return CompilationUnit(
        vname=VName(corpus="fuchsia", language="rust", root=label),
        required_input=inputs,
        source_file=list(paths),
    )


class TestKzipWriter:
    """Tests for archive layout and content addressing."""

    def test_layout(self, tmp_path):
        """Directory entries come first, then files and units by digest."""
        path = tmp_path / "out.kzip"
        with create_kzip(path) as writer:
            file_digest = writer.add_file(io.BytesIO(b"fn main() {}"))
            unit_digest = writer.add_unit(_unit())

        names = zipfile.ZipFile(path).namelist()

        assert names[:3] == ["root/", "root/files/", "root/units/"]
        assert f"root/files/{file_digest}" in names
        assert f"root/units/{unit_digest}" in names

    def test_file_digest_is_sha256(self, tmp_path):
        """File digests are the SHA-256 hex of the contents."""
        with create_kzip(tmp_path / "out.kzip") as writer:
            digest = writer.add_file(io.BytesIO(b"pub struct S;"))

        assert digest == hashlib.sha256(b"pub struct S;").hexdigest()

    def test_identical_files_stored_once(self, tmp_path):
        """Adding the same contents twice stores one blob."""
        path = tmp_path / "out.kzip"
        with create_kzip(path) as writer:
            first = writer.add_file(io.BytesIO(b"same"))
            second = writer.add_file(io.BytesIO(b"same"))

        assert first == second
        assert list_file_digests(path) == [first]

    def test_unit_digest_is_sha256_of_record(self, tmp_path):
        """Unit entries are named by the digest of their bytes."""
        path = tmp_path / "out.kzip"
        with create_kzip(path) as writer:
            digest = writer.add_unit(_unit())

        data = zipfile.ZipFile(path).read(f"root/units/{digest}")

        assert hashlib.sha256(data).hexdigest() == digest

    def test_identical_units_stored_once(self, tmp_path):
        """Adding one unit twice stores it once."""
        path = tmp_path / "out.kzip"
        with create_kzip(path) as writer:
            writer.add_unit(_unit())
            writer.add_unit(_unit())

        assert len(read_units(path)) == 1

    def test_add_after_close_raises(self, tmp_path):
        """A closed writer rejects further additions."""
        writer = create_kzip(tmp_path / "out.kzip")
        writer.close()

        with pytest.raises(KzipError):
            writer.add_file(io.BytesIO(b"x"))

    def test_same_inputs_give_identical_bytes(self, tmp_path):
        """Writing the same content twice gives byte-identical archives."""
        for name in ("one.kzip", "two.kzip"):
            with create_kzip(tmp_path / name) as writer:
                writer.add_file(io.BytesIO(b"fn a() {}"))
                writer.add_unit(_unit())

        assert (tmp_path / "one.kzip").read_bytes() == (tmp_path / "two.kzip").read_bytes()


class TestCreateKzip:
    """Tests for output replacement."""

    def test_replaces_existing_directory(self, tmp_path):
        """An existing directory at the output path is removed."""
        output = tmp_path / "out"
        (output / "stale").mkdir(parents=True)
        (output / "stale" / "old.txt").write_text("old")

        create_kzip(output).close()

        assert output.is_file()
        assert zipfile.is_zipfile(output)

    def test_replaces_existing_file(self, tmp_path):
        """An existing file at the output path is overwritten."""
        output = tmp_path / "out.kzip"
        output.write_text("not a zip")

        create_kzip(output).close()

        assert zipfile.is_zipfile(output)
        assert read_units(output) == []

    def test_creates_parent_dirs(self, tmp_path):
        """Missing parent directories are created."""
        output = tmp_path / "deep" / "er" / "out.kzip"

        create_kzip(output).close()

        assert output.exists()

    def test_unwritable_location_raises(self, tmp_path):
        """A parent that is a file cannot hold the output."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")

        with pytest.raises(KzipError):
            create_kzip(blocker / "out.kzip")


class TestUnitEncoding:
    """Tests for the JSON record format."""

    def test_proto_json_field_names(self):
        """Records use camelCase proto-JSON names."""
        record = json.loads(encode_unit(_unit()))

        unit = record["unit"]
        assert unit["vName"] == {"corpus": "fuchsia", "root": "//a", "language": "rust"}
        assert unit["sourceFile"] == ["a/lib.rs"]
        assert unit["requiredInput"][0]["vName"]["path"] == "a/lib.rs"
        assert set(unit["requiredInput"][0]["info"]) == {"path", "digest"}
        assert "index" not in record

    def test_empty_fields_omitted(self):
        """A unit without inputs has only its vName."""
        record = json.loads(encode_unit(CompilationUnit(vname=VName(root="//x"))))

        assert record == {"unit": {"vName": {"root": "//x"}}}

    def test_index_included_when_given(self):
        """A non-empty index is stored beside the unit."""
        record = json.loads(encode_unit(_unit(), {"revisions": ["abc"]}))

        assert record["index"] == {"revisions": ["abc"]}

    def test_read_units_returns_digest(self, tmp_path):
        """read_units decodes records and names each by digest."""
        path = tmp_path / "out.kzip"
        with create_kzip(path) as writer:
            digest = writer.add_unit(_unit("//b"))

        (record,) = read_units(path)

        assert record["digest"] == digest
        assert record["unit"]["vName"]["root"] == "//b"

    def test_read_non_zip_raises(self, tmp_path):
        """Reading something that is not a zip raises KzipError."""
        path = tmp_path / "junk.kzip"
        path.write_text("junk")

        with pytest.raises(KzipError):
            read_units(path)
