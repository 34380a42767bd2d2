import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from bibflow import cli
from conftest import HOLDINGS_XML

runner = CliRunner()


@pytest.fixture
def works(tmp_path: Path, crossref_jsonl: bytes) -> Path:
    path = tmp_path / "works.jsonl"
    path.write_bytes(crossref_jsonl)
    return path


def test_config_json_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("BIBFLOW_BATCH_SIZE", "17")
    monkeypatch.setenv("BIBFLOW_LOG_LEVEL", "debug")

    result = runner.invoke(cli.app, ["config", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["batch_size"] == 17
    assert payload["log_level"] == "debug"
    assert payload["key_length_limit"] == 250


def test_formats_lists_adapters() -> None:
    result = runner.invoke(cli.app, ["formats"])
    assert result.exit_code == 0
    assert "crossref, genderopen, genios" in result.stdout


def test_convert_writes_json_lines(works: Path, tmp_path: Path) -> None:
    output = tmp_path / "out" / "records.ldj"

    result = runner.invoke(cli.app, ["convert", "crossref", str(works), "--output", str(output)])

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    assert [record["article_title"] for record in records] == [
        "Main Title : A Subtitle",
        "Second : A Subtitle",
    ]
    assert all(record["source_id"] == "49" for record in records)


def test_convert_twice_is_byte_identical(works: Path, tmp_path: Path) -> None:
    outputs = []
    for name in ("first.ldj", "second.ldj"):
        output = tmp_path / name
        result = runner.invoke(
            cli.app, ["convert", "crossref", str(works), "-o", str(output), "-x", "solr5vu3", "--batch-size", "1"]
        )
        assert result.exit_code == 0, result.output
        outputs.append(output.read_bytes())
    assert outputs[0] == outputs[1]


def test_convert_labels_from_holdings(works: Path, tmp_path: Path) -> None:
    holdings = tmp_path / "holdings.xml"
    holdings.write_bytes(HOLDINGS_XML)
    output = tmp_path / "labelled.ldj"

    result = runner.invoke(
        cli.app,
        ["convert", "crossref", str(works), "-o", str(output), "--holdings", str(holdings), "--isil", "DE-14"],
    )

    assert result.exit_code == 0, result.output
    records = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    assert all(record["labels"] == ["DE-14"] for record in records)


def test_convert_missing_holdings_file_exits(works: Path, tmp_path: Path) -> None:
    result = runner.invoke(
        cli.app,
        ["convert", "crossref", str(works), "-o", str(tmp_path / "x.ldj"), "--holdings", str(tmp_path / "nope.xml")],
    )
    assert result.exit_code == 1


def test_convert_malformed_xml_exits_with_error(tmp_path: Path) -> None:
    source = tmp_path / "broken.xml"
    source.write_bytes(b"<Documents><Document ID='1'><Title>x</Tilte></Document></Documents>")

    result = runner.invoke(cli.app, ["convert", "genios", str(source), "-o", str(tmp_path / "o.ldj")])

    assert result.exit_code == 1


def test_convert_unknown_format_exits(works: Path, tmp_path: Path) -> None:
    result = runner.invoke(cli.app, ["convert", "marc21", str(works), "-o", str(tmp_path / "o.ldj")])
    assert result.exit_code == 1


def test_convert_missing_source_exits(tmp_path: Path) -> None:
    result = runner.invoke(
        cli.app, ["convert", "crossref", str(tmp_path / "missing.jsonl"), "-o", str(tmp_path / "o.ldj")]
    )
    assert result.exit_code == 1


def test_convert_rejects_unknown_exporter(works: Path) -> None:
    result = runner.invoke(cli.app, ["convert", "crossref", str(works), "-x", "marcxml"])
    assert result.exit_code != 0


def test_holdings_summary(tmp_path: Path) -> None:
    holdings = tmp_path / "holdings.xml"
    holdings.write_bytes(HOLDINGS_XML)

    result = runner.invoke(cli.app, ["holdings", str(holdings)])

    assert result.exit_code == 0, result.output
    assert "2 holdings, 3 ISSNs" in result.stdout
