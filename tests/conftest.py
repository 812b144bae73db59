"""
Shared fixtures: a tiny SNB dataset laid out like the generator's output.
"""

from pathlib import Path

import pytest


COMMENT_FILE = (
    "id|creationDate|locationIP|browserUsed|content|length\n"
    "1|2010-03-17T23:32:10.447+0000|1.2.3.4|Firefox|hello|5\n"
)

POST_FILE = (
    "id|imageFile|creationDate|locationIP|browserUsed|language|content|length\n"
    "2||2010-03-17T23:32:10.447+0000|1.2.3.4|Chrome|en|hi|2\n"
)

PERSON_FILE = (
    "id|firstName|lastName|gender|birthday|creationDate|locationIP|browserUsed|email|language\n"
    "933|Mahinda|Perera|male|1989-12-04|2010-02-14T15:32:10.447+0000|119.235.7.103|Firefox|a@x.com;b@y.com|si;en\n"
    "1129|Carmen|Lepland|female|1984-02-18|2010-01-28T06:39:58.515+0000|195.20.151.175|Internet Explorer|c@z.com|et\n"
)

HAS_CREATOR_FILE = "Comment.id|Person.id\n1|933\n"
HAS_CREATOR_RIDX_FILE = "Person.id|Comment.id\n933|1\n"
KNOWS_FILE = (
    "Person.id|Person.id|creationDate\n"
    "933|1129|2010-03-17T23:32:10.447+0000\n"
    "1129|933|2010-03-17T23:32:10.447+0000\n"
)


def write_file(directory: Path, name: str, content: str) -> Path:
    """Write a dataset file and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(content.encode("utf-8"))
    return path


@pytest.fixture
def dataset(tmp_path):
    """Base and supplementary directories holding 3 node files and 3 edge files."""
    base = tmp_path / "social_network"
    supp = tmp_path / "supplementary"
    write_file(base, "comment_0_0.csv", COMMENT_FILE)
    write_file(base, "post_0_0.csv", POST_FILE)
    write_file(supp, "person_0_0.csv", PERSON_FILE)
    write_file(base, "comment_hasCreator_person_0_0.csv", HAS_CREATOR_FILE)
    write_file(supp, "comment_hasCreator_person_ridx_0_0.csv", HAS_CREATOR_RIDX_FILE)
    write_file(supp, "person_knows_person_0_0.csv", KNOWS_FILE)
    return base, supp
