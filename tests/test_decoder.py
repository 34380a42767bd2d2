import io

import pytest

from bibflow.errors import StreamFatal
from bibflow.services import StreamDecoder, iter_json_lines, iter_xml_elements
from bibflow.services.decoder import DecodeCounter


def test_json_lines_skip_malformed_units(crossref_jsonl: bytes) -> None:
    counter = DecodeCounter()
    payloads = list(iter_json_lines(io.BytesIO(crossref_jsonl), counter))
    assert len(payloads) == 4
    assert counter.malformed == 2


def test_json_lines_invalid_utf8_is_malformed() -> None:
    counter = DecodeCounter()
    data = b'{"a": 1}\n\xff\xfe\n{"a": 2}\n'
    assert [p["a"] for p in iter_json_lines(io.BytesIO(data), counter)] == [1, 2]
    assert counter.malformed == 1


def test_json_lines_accepts_text_streams() -> None:
    assert list(iter_json_lines(io.StringIO('{"a": 1}'))) == [{"a": 1}]


def test_empty_stream_yields_nothing() -> None:
    assert list(iter_json_lines(io.BytesIO(b""))) == []


def test_xml_elements_match_local_name(genderopen_xml: bytes) -> None:
    identifiers = [
        element[0][0].text for element in iter_xml_elements(io.BytesIO(genderopen_xml), "Record")
    ]
    assert identifiers == ["oai:www.genderopen.de:25595/1"]


def test_xml_elements_nested_same_name_yield_outermost() -> None:
    data = b"<root><Document ID='1'><Document ID='inner'/></Document><Document ID='2'/></root>"
    ids = [element.get("ID") for element in iter_xml_elements(io.BytesIO(data), "Document")]
    assert ids == ["1", "2"]


def test_xml_elements_release_processed_siblings(genios_xml: bytes) -> None:
    states = []
    for element in iter_xml_elements(io.BytesIO(genios_xml), "Document"):
        previous = element.getprevious()
        states.append(None if previous is None else (len(previous), previous.getprevious() is None))
    assert states == [None, (0, True), (0, True)]


def test_malformed_xml_is_fatal() -> None:
    data = b"<root><Document ID='1'></Document><Document ID='2'><Title>x</Tilte></Document></root>"
    with pytest.raises(StreamFatal, match="malformed XML"):
        for _ in iter_xml_elements(io.BytesIO(data), "Document"):
            pass


def test_stream_decoder_selects_strategy(genios_xml: bytes, crossref_jsonl: bytes) -> None:
    xml = StreamDecoder(record_tag="Document")
    assert [el.get("ID") for el in xml.decode(io.BytesIO(genios_xml))] == ["b0604160052", "x1", "x2"]

    lines = StreamDecoder()
    assert len(list(lines.decode(io.BytesIO(crossref_jsonl)))) == 4
    assert lines.malformed == 2
