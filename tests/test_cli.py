from pathlib import Path
from typing import Any, Callable

import pytest
import typer
from typer.testing import CliRunner

from conftest import StubPage
from idn_area_extractor import cli as cli_mod
from idn_area_extractor.cli import app, extract, version_option_callback
from idn_area_extractor.remote import RemoteError


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # No idnxtr.toml from the working directory
    monkeypatch.chdir(tmp_path)


def _extract(**overrides: Any) -> None:
    params: dict[str, Any] = {
        "page_range": None,
        "output": None,
        "save_raw": False,
        "compare": False,
        "reference": None,
        "refresh_reference": False,
        "config_path": None,
        "silent": False,
        "version": None,
    }
    params.update(overrides)
    extract(**params)


def _read_lines(path: Path) -> list[str]:
    return path.read_text(encoding="utf-8").splitlines()


class TestExtractFunction:
    """Integration-ish tests for the public extract() function."""

    def test_extract_regencies_from_txt(self, tmp_path: Path, data_dir: Path):
        dest = tmp_path / "out"
        _extract(entity="regency", file_path=data_dir / "regencies.txt", destination=dest)

        assert _read_lines(dest / "regencies.csv") == [
            "code,province_code,name",
            "1102,11,KABUPATEN ACEH TENGGARA",
            "1103,11,KABUPATEN ACEH TIMUR",
            "1171,11,KOTA BANDA ACEH",
        ]

    def test_extract_villages_with_plural_entity(self, tmp_path: Path, data_dir: Path):
        _extract(
            entity="villages",
            file_path=data_dir / "villages.txt",
            output="desa",
            destination=tmp_path,
        )

        lines = _read_lines(tmp_path / "desa.csv")
        assert lines[0] == "code,district_code,name"
        assert lines[1] == "1101012001,110101,KEUDE BAKONGAN"
        assert len(lines) == 8

    def test_extract_islands_csv_columns(self, tmp_path: Path, data_dir: Path):
        _extract(entity="island", file_path=data_dir / "islands.txt", destination=tmp_path)

        lines = _read_lines(tmp_path / "islands.csv")
        assert lines[0] == "code,regency_code,coordinate,is_populated,is_outermost_small,name"
        assert '130040001,,"00°45\'38.07"" S 099°59\'47.69"" E",0,0,Pulau Bando' in lines
        assert '217140309,2171,"00°37\'37.99"" N 104°05\'28.00"" E",1,0,Pulau Petong' in lines

    def test_extract_from_pdf_and_save_raw(
        self,
        tmp_path: Path,
        sample_pdf_file: Path,
        stub_pdf: Callable[[list[StubPage]], None],
        capsys: pytest.CaptureFixture[str],
    ):
        dest = tmp_path / "out"
        _extract(
            entity="regency",
            file_path=sample_pdf_file,
            output="kabupaten",
            destination=dest,
            save_raw=True,
        )

        assert _read_lines(dest / "kabupaten.csv")[1:] == [
            "1102,11,KABUPATEN ACEH TENGGARA",
            "1103,11,KABUPATEN ACEH TIMUR",
            "1171,11,KOTA BANDA ACEH",
        ]
        raw = (dest / "raw-kabupaten.txt").read_text(encoding="utf-8")
        assert "KOTA BANDA ACEH 9 61,36 Banda Aceh\n11.71 252.899 90" in raw

        out = capsys.readouterr().out
        assert "2/2 pages extracted" in out
        assert "Number of regency rows extracted: 3" in out

    def test_extract_from_pdf_page_range(
        self, tmp_path: Path, sample_pdf_file: Path, stub_pdf: Callable[[list[StubPage]], None]
    ):
        _extract(
            entity="regency",
            file_path=sample_pdf_file,
            page_range="2",
            destination=tmp_path,
        )

        assert _read_lines(tmp_path / "regencies.csv") == [
            "code,province_code,name",
            "1171,11,KOTA BANDA ACEH",
        ]

    @pytest.mark.parametrize("page_range", ["3", "0-1", "1-5"])
    def test_extract_fails_when_range_exceeded(
        self,
        tmp_path: Path,
        sample_pdf_file: Path,
        stub_pdf: Callable[[list[StubPage]], None],
        capsys: pytest.CaptureFixture[str],
        page_range: str,
    ):
        with pytest.raises(typer.Exit) as e:
            _extract(
                entity="regency",
                file_path=sample_pdf_file,
                page_range=page_range,
                destination=tmp_path,
            )
        assert e.value.exit_code == 1
        assert "exceeds the expected range 1-2" in capsys.readouterr().err

    def test_extract_fails_on_unreadable_pdf(self, tmp_path: Path):
        pdf_file = tmp_path / "broken.pdf"
        pdf_file.write_bytes(b"")

        with pytest.raises(typer.Exit) as e:
            _extract(entity="regency", file_path=pdf_file, destination=tmp_path)
        assert e.value.exit_code == 1

    def test_extract_fails_when_no_matching_data(
        self, tmp_path: Path, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ):
        with pytest.raises(typer.Exit) as e:
            _extract(entity="island", file_path=data_dir / "sample.txt", destination=tmp_path)
        assert e.value.exit_code == 1
        assert "No matching data found" in capsys.readouterr().err
        assert _read_lines(tmp_path / "islands.csv") == [
            "code,regency_code,coordinate,is_populated,is_outermost_small,name"
        ]

    def test_extract_silent(
        self, tmp_path: Path, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ):
        _extract(
            entity="district",
            file_path=data_dir / "districts.txt",
            destination=tmp_path,
            silent=True,
        )

        assert capsys.readouterr().out == ""
        assert (tmp_path / "districts.csv").exists()

    def test_extract_uses_config_file(self, tmp_path: Path, data_dir: Path):
        config_path = tmp_path / "custom.toml"
        config_path.write_text('[data.district]\nfilename = "kecamatan"\n', encoding="utf-8")

        _extract(
            entity="district",
            file_path=data_dir / "districts.txt",
            destination=tmp_path,
            config_path=config_path,
        )

        assert len(_read_lines(tmp_path / "kecamatan.csv")) == 5

    def test_extract_fails_on_invalid_config(
        self, tmp_path: Path, data_dir: Path, capsys: pytest.CaptureFixture[str]
    ):
        config_path = tmp_path / "custom.toml"
        config_path.write_text("[data.province]\nbatch_size = 1\n", encoding="utf-8")

        with pytest.raises(typer.Exit) as e:
            _extract(
                entity="district",
                file_path=data_dir / "districts.txt",
                destination=tmp_path,
                config_path=config_path,
            )
        assert e.value.exit_code == 1
        assert "Configuration error" in capsys.readouterr().err


class TestExtractValidation:
    @pytest.mark.parametrize("entity", ["province", "", "desa"])
    def test_rejects_unknown_entity(self, tmp_path: Path, data_dir: Path, entity: str):
        with pytest.raises(typer.Exit) as e:
            _extract(entity=entity, file_path=data_dir / "regencies.txt", destination=tmp_path)
        assert e.value.exit_code == 1

    def test_rejects_unsupported_file(self, tmp_path: Path):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text("code,name")

        with pytest.raises(typer.Exit):
            _extract(entity="regency", file_path=csv_file, destination=tmp_path)

    def test_rejects_range_for_txt(self, tmp_path: Path, data_dir: Path):
        with pytest.raises(typer.Exit):
            _extract(
                entity="regency",
                file_path=data_dir / "regencies.txt",
                page_range="1",
                destination=tmp_path,
            )

    def test_rejects_save_raw_for_txt(self, tmp_path: Path, data_dir: Path):
        with pytest.raises(typer.Exit):
            _extract(
                entity="regency",
                file_path=data_dir / "regencies.txt",
                save_raw=True,
                destination=tmp_path,
            )

    @pytest.mark.parametrize("page_range", ["1,,3", "1-", "-1", "a-b", "1, 2"])
    def test_rejects_invalid_range(self, tmp_path: Path, sample_pdf_file: Path, page_range: str):
        with pytest.raises(typer.Exit):
            _extract(
                entity="regency",
                file_path=sample_pdf_file,
                page_range=page_range,
                destination=tmp_path,
            )

    def test_rejects_whitespace_output(self, tmp_path: Path, data_dir: Path):
        with pytest.raises(typer.Exit) as e:
            _extract(
                entity="regency",
                file_path=data_dir / "regencies.txt",
                output="   ",
                destination=tmp_path,
            )
        assert e.value.exit_code == 1

    @pytest.mark.parametrize("char", list(r'\/:*?"<>|.'))
    def test_rejects_invalid_output_characters(self, tmp_path: Path, data_dir: Path, char: str):
        with pytest.raises(typer.Exit):
            _extract(
                entity="regency",
                file_path=data_dir / "regencies.txt",
                output=f"output{char}name",
                destination=tmp_path,
            )

    def test_rejects_file_as_destination(self, tmp_path: Path, data_dir: Path):
        dest_file = tmp_path / "dest.txt"
        dest_file.write_text("not a directory")

        with pytest.raises(typer.Exit):
            _extract(
                entity="regency",
                file_path=data_dir / "regencies.txt",
                destination=dest_file,
            )


class TestExtractCompare:
    @pytest.fixture
    def reference_dir(self, tmp_path: Path) -> Path:
        reference = tmp_path / "reference"
        reference.mkdir()
        (reference / "districts.csv").write_text(
            "code,regency_code,name\n"
            "110101,1101,BAKONGAN\n"
            "110102,1101,KLUET UTARA\n"
            "110105,1101,SAMADUA\n"
            "120101,1201,BARUS\n",
            encoding="utf-8",
        )
        return reference

    def test_compare_with_local_reference(
        self,
        tmp_path: Path,
        data_dir: Path,
        reference_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ):
        dest = tmp_path / "out"
        _extract(
            entity="district",
            file_path=data_dir / "districts.txt",
            destination=dest,
            compare=True,
            reference=reference_dir,
        )

        diff = _read_lines(dest / "districts.diff")
        assert "+110103,1101,KLUET SELATAN" in diff
        assert "+110104,1101,LABUHANHAJI" in diff
        assert "-110105,1101,SAMADUA" in diff
        assert not any("120101" in line for line in diff)
        assert "2 rows added, 1 rows removed" in capsys.readouterr().out

    def test_compare_downloads_reference(
        self,
        tmp_path: Path,
        data_dir: Path,
        reference_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
    ):
        calls: list[dict[str, bool]] = []

        def _fake_reference_path(**kwargs: bool) -> Path:
            calls.append(kwargs)
            return reference_dir

        monkeypatch.setattr(cli_mod, "get_default_reference_path", _fake_reference_path)

        _extract(
            entity="district",
            file_path=data_dir / "districts.txt",
            destination=tmp_path,
            compare=True,
            refresh_reference=True,
            silent=True,
        )

        assert calls == [{"refresh_cache": True, "show_progress": False}]
        assert (tmp_path / "districts.diff").exists()

    def test_compare_fails_when_reference_unavailable(
        self,
        tmp_path: Path,
        data_dir: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ):
        def _raise(**_: bool) -> Path:
            raise RemoteError("Unable to download reference data: offline")

        monkeypatch.setattr(cli_mod, "get_default_reference_path", _raise)

        with pytest.raises(typer.Exit) as e:
            _extract(
                entity="district",
                file_path=data_dir / "districts.txt",
                destination=tmp_path,
                compare=True,
            )
        assert e.value.exit_code == 1
        assert "Unable to download reference data" in capsys.readouterr().err

    def test_compare_fails_when_reference_file_missing(
        self, tmp_path: Path, data_dir: Path, reference_dir: Path
    ):
        with pytest.raises(typer.Exit) as e:
            _extract(
                entity="village",
                file_path=data_dir / "villages.txt",
                destination=tmp_path,
                compare=True,
                reference=reference_dir,
            )
        assert e.value.exit_code == 1


class TestCommands:
    def test_reference_command(self, monkeypatch: pytest.MonkeyPatch):
        called: list[bool] = []
        monkeypatch.setattr(cli_mod, "show_version_info", lambda: called.append(True))

        result = CliRunner().invoke(app, ["reference"])

        assert result.exit_code == 0
        assert called == [True]

    def test_extract_command(self, tmp_path: Path, data_dir: Path):
        result = CliRunner().invoke(
            app,
            [
                "extract",
                "district",
                str(data_dir / "districts.txt"),
                "--destination",
                str(tmp_path),
                "--output",
                "kecamatan",
            ],
        )

        assert result.exit_code == 0
        assert (tmp_path / "kecamatan.csv").exists()


class TestVersionOptionCallback:
    """Tests for the public version_option_callback function."""

    def test_version_prints_and_exits_successfully(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ):
        def _fake_version(_: str) -> str:
            return "1.2.3"

        monkeypatch.setattr(cli_mod, "version", _fake_version)
        with pytest.raises(typer.Exit) as e:
            version_option_callback(True)
        assert e.value.exit_code == 0
        assert "idn-area-extractor: 1.2.3" in capsys.readouterr().out

    def test_version_handles_missing_package(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ):
        from importlib.metadata import PackageNotFoundError

        def _raise(_: str) -> None:
            raise PackageNotFoundError()

        monkeypatch.setattr(cli_mod, "version", _raise)
        with pytest.raises(typer.Exit) as e:
            version_option_callback(True)
        assert e.value.exit_code == 1
        assert "Version information not available" in capsys.readouterr().out

    def test_version_noop_when_false(self):
        assert version_option_callback(False) is None
