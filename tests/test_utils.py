from bibflow.utils import (
    classify_identifiers,
    encode_record_id,
    extract_doi,
    find_issns,
    is_valid_issn,
    normalize_issn,
)


def test_extract_doi_from_url() -> None:
    identifier = "https://doi.org/10.1234/Some.Article-Title"
    assert extract_doi(identifier) == "10.1234/some.article-title"


def test_normalize_issn_adds_hyphen_and_uppercases() -> None:
    assert normalize_issn("0948502x") == "0948-502X"
    assert normalize_issn(" 1610-2940 ") == "1610-2940"
    assert normalize_issn("1610-294") is None
    assert normalize_issn("ABCD-EFGH") is None


def test_is_valid_issn() -> None:
    assert is_valid_issn("0340 1030")
    assert not is_valid_issn("0340-103Y")


def test_find_issns_in_free_text_dedupes() -> None:
    text = "ISSN 0340-1030, print 0340-1030; online 1432-2021"
    assert find_issns(text) == ["0340-1030", "1432-2021"]
    assert find_issns("") == []


def test_classify_identifiers_assigns_each_to_one_bucket() -> None:
    identifiers = classify_identifiers(
        [
            "https://www.genderopen.de/handle/25595/1",
            "http://dx.doi.org/10.25595/1",
            "urn:ISSN:0948-5023",
            "urn:ISBN:978-3-89691-",
            "not an identifier",
        ]
    )
    assert identifiers.urls == ["https://www.genderopen.de/handle/25595/1"]
    assert identifiers.dois == ["10.25595/1"]
    assert identifiers.doi == "10.25595/1"
    assert identifiers.issns == ["0948-5023"]


def test_classify_identifiers_drops_invalid_issn() -> None:
    identifiers = classify_identifiers(["urn:ISSN:12", "urn:DOI:10.1000/xyz"])
    assert identifiers.issns == []
    assert identifiers.dois == ["10.1000/xyz"]


def test_encode_record_id_is_urlsafe_and_unpadded() -> None:
    assert encode_record_id("49", "abc") == "ai-49-YWJj"
    assert encode_record_id("49", "ab") == "ai-49-YWI"
    encoded = encode_record_id("48", "BOND__b0604160052?x=~~~")
    assert "+" not in encoded and "/" not in encoded and "=" not in encoded


def test_encode_record_id_is_deterministic() -> None:
    assert encode_record_id("162", "oai:x:1") == encode_record_id("162", "oai:x:1")
