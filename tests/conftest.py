import json

import pytest
import structlog

GENIOS_DOCUMENT = """
  <Document ID="{id}" DB="{db}" IDNAME="{id}">
    <Source>{db}</Source>
    <ISSN>ISSN 0343-7728</ISSN>
    <Publication-Title>Börsen-Zeitung</Publication-Title>
    <Title>{title}</Title>
    <Year>{year}</Year>
    <Date>20150312</Date>
    <Authors><Author>Müller, Hans; N.N.</Author></Authors>
    <Abstract>N.N.</Abstract>
    <Text>{body}</Text>
    <Issue>49</Issue>
    <Volume>N.N.</Volume>
    <Descriptors><Descriptor>Bank; Börse</Descriptor></Descriptors>
    <Modules><Module>WIWI</Module></Modules>
  </Document>"""

GENIOS_BODY = (
    "Die Bank und die Börse sind nicht mit der Politik von den Ländern verbunden, "
    "und der Markt ist für die Anleger nicht mit der Krise von gestern vergleichbar."
)

HOLDINGS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<institution_holdings>
  <holding ezb_id="1">
    <title>Journal of Delays</title>
    <publishers>Example Press</publishers>
    <EZBIssns>
      <p-issn>0098-7484</p-issn>
      <e-issn>15383598</e-issn>
    </EZBIssns>
    <entitlements>
      <entitlement status="subscribed">
        <url>http%3A%2F%2Fexample.org%2Fjournal</url>
        <anchor>natural</anchor>
        <begin><year>2000</year><volume>1</volume></begin>
        <end><delay>-1Y</delay></end>
      </entitlement>
    </entitlements>
  </holding>
  <holding ezb_id="not-a-number">
    <title>Broken</title>
    <EZBIssns><p-issn>1234-5679</p-issn></EZBIssns>
  </holding>
  <holding ezb_id="3">
    <title>Open Ended</title>
    <EZBIssns><p-issn>0340-1030</p-issn></EZBIssns>
    <entitlements>
      <entitlement status="free"><begin><year>1990</year></begin></entitlement>
    </entitlements>
  </holding>
</institution_holdings>
"""


GENDEROPEN_RECORD = """<?xml version="1.0" encoding="UTF-8"?>
<Records xmlns="http://www.openarchives.org/OAI/2.0/">
  <Record>
    <header>
      <identifier>oai:www.genderopen.de:25595/1</identifier>
      <datestamp>2017-11-30T13:54:17Z</datestamp>
    </header>
    <metadata>
      <oai_dc:dc xmlns:oai_dc="http://www.openarchives.org/OAI/2.0/oai_dc/"
                 xmlns:dc="http://purl.org/dc/elements/1.1/">
        <dc:title>Achsen der Ungleichheit</dc:title>
        <dc:creator>Knapp, Gudrun-Axeli</dc:creator>
        <dc:creator>Knapp, Gudrun-Axeli</dc:creator>
        <dc:subject>Geschlecht</dc:subject>
        <dc:subject>Intersektionalität</dc:subject>
        <dc:date>{date}</dc:date>
        <dc:identifier>https://www.genderopen.de/handle/25595/1</dc:identifier>
        <dc:identifier>urn:ISBN:978-3-89691-</dc:identifier>
        <dc:identifier>http://dx.doi.org/10.25595/1</dc:identifier>
        <dc:language>ger</dc:language>
        <dc:publisher>Westfälisches Dampfboot</dc:publisher>
        <dc:source>Knapp, Gudrun-Axeli; Wetterer, Angelika (Hrsg.): Achsen der Differenz. Gesellschaftstheorie und feministische Kritik II (Münster: Westfälisches Dampfboot, 2003), 73-100</dc:source>
      </oai_dc:dc>
    </metadata>
  </Record>
</Records>
"""


def genios_document(
    id: str = "b0604160052",
    db: str = "BOND",
    title: str = "Die Bank und der Markt",
    year: str = "2015",
    body: str = GENIOS_BODY,
) -> str:
    return GENIOS_DOCUMENT.format(id=id, db=db, title=title, year=year, body=body)


def crossref_work(**overrides) -> dict:
    work = {
        "URL": "http://dx.doi.org/10.1001/jama.2015.1",
        "DOI": "10.1001/JAMA.2015.1",
        "issued": {"date-parts": [[2015, 3]]},
        "title": ["Main Title"],
        "subtitle": ["A Subtitle"],
        "container-title": ["JAMA"],
        "ISSN": ["0098-7484", "00987484"],
        "volume": "313",
        "issue": "9",
        "page": "73-100",
        "author": [
            {"given": "Ada", "family": "Lovelace"},
            {"given": "Ada", "family": "Lovelace"},
            {"given": "", "family": ""},
        ],
        "member": "http://id.crossref.org/member/297",
        "publisher": "American Medical Association (AMA)",
        "subject": ["Medicine", "Medicine"],
    }
    work.update(overrides)
    return work


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def genios_xml() -> bytes:
    documents = "".join(
        [
            genios_document(),
            genios_document(id="x1", db="FAZ", title="Zweiter Artikel", year=""),
            genios_document(id="x2", db="NOPE", title="Dritter Artikel"),
        ]
    )
    return f'<?xml version="1.0" encoding="UTF-8"?>\n<Documents>{documents}\n</Documents>'.encode()


@pytest.fixture
def genderopen_xml() -> bytes:
    return GENDEROPEN_RECORD.format(date="2003").encode()


@pytest.fixture
def crossref_jsonl() -> bytes:
    lines = [
        json.dumps(crossref_work()),
        "{not json",
        json.dumps(crossref_work(URL="http://dx.doi.org/10.1001/jama.2015.2", title=["Second"])),
        "",
        json.dumps(crossref_work(URL="")),
        "[1, 2]",
        json.dumps(crossref_work(URL="http://dx.doi.org/10.1001/jama.2015.3", issued={})),
    ]
    return ("\n".join(lines) + "\n").encode()
