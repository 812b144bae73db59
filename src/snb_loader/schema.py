"""
Fixed LDBC SNB schema registry.

Provides:
- PropertyKind: how a raw field is coerced
- SnbEntity: vertex types with id space, label and ordered properties
- SnbRelation: relation files with tail/head entities and edge properties
- SCHEMA_TABLE: field name -> PropertyKind lookup

The schema is fixed by the benchmark, so every table here is a closed set.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class PropertyKind(Enum):
    """Coercion rule applied to a raw delimited field."""
    STRING = "string"
    STRING_LIST = "string[]"
    INT32 = "int"
    DATE = "date"            # yyyy-MM-dd, stored as epoch millis at UTC midnight
    TIMESTAMP = "timestamp"  # yyyy-MM-dd'T'HH:mm:ss.SSSZ, stored as epoch millis


SCHEMA_TABLE: Mapping[str, PropertyKind] = MappingProxyType({
    "birthday": PropertyKind.DATE,
    "browserUsed": PropertyKind.STRING,
    "classYear": PropertyKind.INT32,
    "content": PropertyKind.STRING,
    "creationDate": PropertyKind.TIMESTAMP,
    "email": PropertyKind.STRING_LIST,
    "firstName": PropertyKind.STRING,
    "gender": PropertyKind.STRING,
    "imageFile": PropertyKind.STRING,
    "joinDate": PropertyKind.TIMESTAMP,
    "language": PropertyKind.STRING_LIST,
    "lastName": PropertyKind.STRING,
    "length": PropertyKind.INT32,
    "locationIP": PropertyKind.STRING,
    "name": PropertyKind.STRING,
    "speaks": PropertyKind.STRING_LIST,
    "title": PropertyKind.STRING,
    "type": PropertyKind.STRING,
    "url": PropertyKind.STRING,
    "workFrom": PropertyKind.INT32,
})

# Ids of comments and posts are unique together, queries address either as a message.
MESSAGE_ID_SPACE = 1


class SnbEntity(Enum):
    """
    Vertex types of the SNB dataset.

    Each member carries:
        file_tag: name used in generator file names (``person_0_0.csv``)
        id_space: namespace of the numeric vertex ids
        label: vertex label handed to the graph sink
        properties: property columns in file order
    """

    COMMENT = ("comment", MESSAGE_ID_SPACE, "Comment",
               ("creationDate", "locationIP", "browserUsed", "content", "length"))
    FORUM = ("forum", 2, "Forum", ("title", "creationDate"))
    ORGANISATION = ("organisation", 3, "Organisation", ("type", "name", "url"))
    PERSON = ("person", 4, "Person",
              ("firstName", "lastName", "gender", "birthday", "creationDate",
               "locationIP", "browserUsed", "email", "language"))
    PLACE = ("place", 5, "Place", ("name", "url", "type"))
    POST = ("post", MESSAGE_ID_SPACE, "Post",
            ("imageFile", "creationDate", "locationIP", "browserUsed",
             "language", "content", "length"))
    TAG = ("tag", 6, "Tag", ("name", "url"))
    TAGCLASS = ("tagclass", 7, "TagClass", ("name", "url"))

    def __init__(self, file_tag, id_space, label, properties):
        self.file_tag = file_tag
        self.id_space = id_space
        self.label = label
        self.properties = properties

    def property_kind(self, field_name: str) -> PropertyKind:
        """Coercion rule for a vertex column of this entity."""
        return SCHEMA_TABLE.get(field_name, PropertyKind.STRING)

    @classmethod
    def from_file_tag(cls, file_tag: str) -> "SnbEntity":
        for entity in cls:
            if entity.file_tag == file_tag:
                return entity
        raise KeyError(f"Unknown SNB entity: {file_tag}")


class SnbRelation(Enum):
    """
    Relation files of the SNB dataset, in the generator's naming.

    Each member carries the tail entity, relation name, head entity, whether
    the relation is directed, and its ordered edge properties. Files list
    ``tail|head`` pairs; reverse-indexed files list ``head|tail``.
    """

    COMMENT_HASCREATOR_PERSON = (SnbEntity.COMMENT, "hasCreator", SnbEntity.PERSON)
    COMMENT_HASTAG_TAG = (SnbEntity.COMMENT, "hasTag", SnbEntity.TAG)
    COMMENT_ISLOCATEDIN_PLACE = (SnbEntity.COMMENT, "isLocatedIn", SnbEntity.PLACE)
    COMMENT_REPLYOF_COMMENT = (SnbEntity.COMMENT, "replyOf", SnbEntity.COMMENT)
    COMMENT_REPLYOF_POST = (SnbEntity.COMMENT, "replyOf", SnbEntity.POST)
    FORUM_CONTAINEROF_POST = (SnbEntity.FORUM, "containerOf", SnbEntity.POST)
    FORUM_HASMEMBER_PERSON = (SnbEntity.FORUM, "hasMember", SnbEntity.PERSON,
                              True, ("joinDate",))
    FORUM_HASMODERATOR_PERSON = (SnbEntity.FORUM, "hasModerator", SnbEntity.PERSON)
    FORUM_HASTAG_TAG = (SnbEntity.FORUM, "hasTag", SnbEntity.TAG)
    ORGANISATION_ISLOCATEDIN_PLACE = (SnbEntity.ORGANISATION, "isLocatedIn", SnbEntity.PLACE)
    PERSON_HASINTEREST_TAG = (SnbEntity.PERSON, "hasInterest", SnbEntity.TAG)
    PERSON_ISLOCATEDIN_PLACE = (SnbEntity.PERSON, "isLocatedIn", SnbEntity.PLACE)
    PERSON_KNOWS_PERSON = (SnbEntity.PERSON, "knows", SnbEntity.PERSON,
                           False, ("creationDate",))
    PERSON_LIKES_COMMENT = (SnbEntity.PERSON, "likes", SnbEntity.COMMENT,
                            True, ("creationDate",))
    PERSON_LIKES_POST = (SnbEntity.PERSON, "likes", SnbEntity.POST,
                         True, ("creationDate",))
    PERSON_STUDYAT_ORGANISATION = (SnbEntity.PERSON, "studyAt", SnbEntity.ORGANISATION,
                                   True, ("classYear",))
    PERSON_WORKAT_ORGANISATION = (SnbEntity.PERSON, "workAt", SnbEntity.ORGANISATION,
                                  True, ("workFrom",))
    PLACE_ISPARTOF_PLACE = (SnbEntity.PLACE, "isPartOf", SnbEntity.PLACE)
    POST_HASCREATOR_PERSON = (SnbEntity.POST, "hasCreator", SnbEntity.PERSON)
    POST_HASTAG_TAG = (SnbEntity.POST, "hasTag", SnbEntity.TAG)
    POST_ISLOCATEDIN_PLACE = (SnbEntity.POST, "isLocatedIn", SnbEntity.PLACE)
    TAG_HASTYPE_TAGCLASS = (SnbEntity.TAG, "hasType", SnbEntity.TAGCLASS)
    TAGCLASS_ISSUBCLASSOF_TAGCLASS = (SnbEntity.TAGCLASS, "isSubclassOf", SnbEntity.TAGCLASS)

    def __init__(self, tail, relation_name, head, directed=True, properties=()):
        self.tail = tail
        self.relation_name = relation_name
        self.head = head
        self.directed = directed
        self.properties = properties

    @property
    def file_stem(self) -> str:
        """File name prefix, e.g. ``person_knows_person``."""
        return f"{self.tail.file_tag}_{self.relation_name}_{self.head.file_tag}"

    @property
    def has_properties(self) -> bool:
        return bool(self.properties)

    def describe(self) -> str:
        arrow = "->" if self.directed else "-"
        return f"({self.tail.file_tag})-[{self.relation_name}]{arrow}({self.head.file_tag})"

    @staticmethod
    def property_kind(field_name: str) -> PropertyKind:
        return SCHEMA_TABLE.get(field_name, PropertyKind.STRING)

    @classmethod
    def from_file_stem(cls, stem: str) -> Optional["SnbRelation"]:
        for relation in cls:
            if relation.file_stem == stem:
                return relation
        return None
