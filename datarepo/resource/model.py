"""
The data model for the repository: data resources (DataCite-style metadata records) and the
content information records describing the bitstreams attached to them.

Instances of these classes can be converted to and from plain dictionaries (via ``to_dict()`` and
``from_dict()``) which is the form in which they are persisted by the :py:mod:`datarepo.store`
implementations.
"""
import time, uuid
from datetime import datetime
from enum import Enum
from collections.abc import Mapping
from copy import deepcopy
from typing import List, Optional

from ..auth.permissions import ACLs, AclEntry

__all__ = [ "Unknown", "State", "Identifier", "RelatedIdentifier", "Title", "ResourceType", "Agent",
            "DataResource", "ContentInformation" ]

class Unknown(object):
    """
    placeholder values that stand in for information that is not (yet) available.  These are
    the standard DataCite codes for unknown information.
    """
    TEMPORARILY_INACCESSIBLE = "(:unac)"
    UNALLOWED = "(:unal)"
    NOT_APPLICABLE = "(:unap)"
    VALUE_UNASSIGNED = "(:unas)"
    VALUE_UNAVAILABLE = "(:unav)"
    KNOWN_TO_BE_UNKNOWN = "(:unkn)"
    NEVER_HAD_A_VALUE = "(:none)"
    EXPLICITLY_AND_MEANINGFUL_EMPTY = "(:null)"
    TO_BE_ASSIGNED_OR_ANNOUNCED_LATER = "(:tba)"
    TOO_NUMEROUS_TO_LIST = "(:etal)"

    ALL = frozenset([TEMPORARILY_INACCESSIBLE, UNALLOWED, NOT_APPLICABLE, VALUE_UNASSIGNED,
                     VALUE_UNAVAILABLE, KNOWN_TO_BE_UNKNOWN, NEVER_HAD_A_VALUE,
                     EXPLICITLY_AND_MEANINGFUL_EMPTY, TO_BE_ASSIGNED_OR_ANNOUNCED_LATER,
                     TOO_NUMEROUS_TO_LIST])

    @classmethod
    def is_placeholder(cls, value) -> bool:
        return value in cls.ALL


class State(Enum):
    """
    the lifecycle states of a data resource
    """
    VOLATILE = "VOLATILE"
    FIXED = "FIXED"
    REVOKED = "REVOKED"


class Identifier(object):
    """
    an identifier for a resource, qualified by its type (e.g. DOI or INTERNAL)
    """
    DOI = "DOI"
    INTERNAL = "INTERNAL"
    URL = "URL"
    HANDLE = "HANDLE"
    OTHER = "OTHER"

    def __init__(self, value: str, identifier_type: str=DOI):
        self.value = value
        self.identifier_type = identifier_type

    @classmethod
    def internal(cls, value: str) -> "Identifier":
        return cls(value, cls.INTERNAL)

    @classmethod
    def doi(cls, value: str) -> "Identifier":
        return cls(value, cls.DOI)

    def to_dict(self):
        return { "value": self.value, "identifierType": self.identifier_type }

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('value'), data.get('identifierType', cls.DOI))

    def __eq__(self, other):
        if not isinstance(other, Identifier):
            return NotImplemented
        return self.value == other.value and self.identifier_type == other.identifier_type

    def __hash__(self):
        return hash((self.value, self.identifier_type))

    def __repr__(self):
        return "Identifier({!r}, {})".format(self.value, self.identifier_type)


class RelatedIdentifier(Identifier):
    """
    an identifier for another resource together with the nature of its relation to this one
    """
    IS_PART_OF = "IS_PART_OF"
    HAS_PART = "HAS_PART"
    IS_NEW_VERSION_OF = "IS_NEW_VERSION_OF"
    IS_PREVIOUS_VERSION_OF = "IS_PREVIOUS_VERSION_OF"
    IS_DERIVED_FROM = "IS_DERIVED_FROM"
    IS_SOURCE_OF = "IS_SOURCE_OF"
    IS_METADATA_FOR = "IS_METADATA_FOR"
    HAS_METADATA = "HAS_METADATA"
    REFERENCES = "REFERENCES"
    IS_REFERENCED_BY = "IS_REFERENCED_BY"

    def __init__(self, value: str, identifier_type: str=Identifier.URL, relation_type: str=None):
        super(RelatedIdentifier, self).__init__(value, identifier_type)
        self.relation_type = relation_type

    def to_dict(self):
        out = super(RelatedIdentifier, self).to_dict()
        out['relationType'] = self.relation_type
        return out

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('value'), data.get('identifierType', Identifier.URL),
                   data.get('relationType'))

    def __eq__(self, other):
        if not isinstance(other, RelatedIdentifier):
            return NotImplemented
        return super(RelatedIdentifier, self).__eq__(other) and self.relation_type == other.relation_type

    def __hash__(self):
        return hash((self.value, self.identifier_type, self.relation_type))


class Title(object):
    """
    a title for a resource
    """
    ALTERNATIVE_TITLE = "ALTERNATIVE_TITLE"
    SUBTITLE = "SUBTITLE"
    TRANSLATED_TITLE = "TRANSLATED_TITLE"
    OTHER = "OTHER"

    def __init__(self, value: str, title_type: str=None, lang: str=None):
        self.value = value
        self.title_type = title_type
        self.lang = lang

    def to_dict(self):
        out = { "value": self.value }
        if self.title_type:
            out['titleType'] = self.title_type
        if self.lang:
            out['lang'] = self.lang
        return out

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('value'), data.get('titleType'), data.get('lang'))


class ResourceType(object):
    """
    the type of a resource:  a free-text value qualified by a general type from a controlled list
    """
    DATASET = "DATASET"
    COLLECTION = "COLLECTION"
    IMAGE = "IMAGE"
    MODEL = "MODEL"
    SOFTWARE = "SOFTWARE"
    TEXT = "TEXT"
    OTHER = "OTHER"

    def __init__(self, value: str, type_general: str=DATASET):
        self.value = value
        self.type_general = type_general

    def to_dict(self):
        return { "value": self.value, "typeGeneral": self.type_general }

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('value'), data.get('typeGeneral', cls.DATASET))


class Agent(object):
    """
    a person or organization credited as a creator of a resource
    """
    def __init__(self, given_name: str=None, family_name: str=None, affiliations: List[str]=None):
        self.given_name = given_name
        self.family_name = family_name
        self.affiliations = list(affiliations or [])

    def to_dict(self):
        out = { "givenName": self.given_name, "familyName": self.family_name }
        if self.affiliations:
            out['affiliations'] = list(self.affiliations)
        return out

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('givenName'), data.get('familyName'), data.get('affiliations'))

    def __repr__(self):
        return "Agent({!r}, {!r})".format(self.given_name, self.family_name)


class DataResource(object):
    """
    a DataCite-style metadata record describing a resource managed by the repository.

    A resource is primarily identified by its :py:attr:`identifier` (typically a DOI) but it is
    always keyed internally by the value of its INTERNAL alternate identifier, available via
    :py:attr:`id`.  The primary identifier may hold a placeholder (see :py:class:`Unknown`) until
    a real one is assigned.
    """

    def __init__(self, identifier: Identifier=None, alternate_identifiers: List[Identifier]=None):
        self.identifier = identifier
        self.alternate_identifiers = list(alternate_identifiers or [])
        self.related_identifiers = []
        self.titles = []
        self.resource_type = None
        self.creators = []
        self.publisher = None
        self.publication_year = None
        self.state = None
        self.acls = ACLs()
        self.last_update = None
        self.version = None

    @classmethod
    def new(cls, internal_id: str=None) -> "DataResource":
        """
        create an empty resource keyed by the given internal identifier.  If an identifier is not
        provided, a random one is generated.
        """
        if not internal_id:
            internal_id = str(uuid.uuid4())
        return cls(None, [Identifier.internal(internal_id)])

    @classmethod
    def with_doi(cls, doi: str) -> "DataResource":
        """
        create an empty resource with the given DOI as its primary identifier.  The internal
        identifier is assigned on creation.
        """
        return cls(Identifier.doi(doi))

    @property
    def internal_identifier(self) -> Optional[Identifier]:
        """
        the INTERNAL alternate identifier or None if one has not been set
        """
        for ident in self.alternate_identifiers:
            if ident.identifier_type == Identifier.INTERNAL:
                return ident
        return None

    @property
    def id(self) -> Optional[str]:
        """
        the value of the internal identifier, the durable key for this resource
        """
        ident = self.internal_identifier
        return ident.value if ident else None

    @property
    def primary_id(self) -> Optional[str]:
        return self.identifier.value if self.identifier else None

    @property
    def state_or_default(self) -> State:
        """
        the current state, defaulting to VOLATILE if not set
        """
        return self.state or State.VOLATILE

    @property
    def last_update_date(self) -> str:
        """
        the time of the last update formatted as an ISO string
        """
        if not self.last_update:
            return ""
        return datetime.fromtimestamp(self.last_update).isoformat()

    def touch(self):
        """
        mark this resource as just having been updated
        """
        self.last_update = time.time()
        self.version = (self.version or 0) + 1

    def all_identifier_values(self) -> List[str]:
        out = [i.value for i in self.alternate_identifiers if i.value]
        if self.primary_id and not Unknown.is_placeholder(self.primary_id):
            out.append(self.primary_id)
        return out

    def to_dict(self) -> Mapping:
        return {
            "id": self.id,
            "identifier": self.identifier.to_dict() if self.identifier else None,
            "alternateIdentifiers": [i.to_dict() for i in self.alternate_identifiers],
            "relatedIdentifiers": [i.to_dict() for i in self.related_identifiers],
            "titles": [t.to_dict() for t in self.titles],
            "resourceType": self.resource_type.to_dict() if self.resource_type else None,
            "creators": [c.to_dict() for c in self.creators],
            "publisher": self.publisher,
            "publicationYear": self.publication_year,
            "state": self.state.value if self.state else None,
            "acls": self.acls.to_list(),
            "lastUpdate": self.last_update,
            "version": self.version
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "DataResource":
        out = cls(Identifier.from_dict(data['identifier']) if data.get('identifier') else None,
                  [Identifier.from_dict(i) for i in data.get('alternateIdentifiers', [])])
        out.related_identifiers = [RelatedIdentifier.from_dict(i)
                                   for i in data.get('relatedIdentifiers', [])]
        out.titles = [Title.from_dict(t) for t in data.get('titles', [])]
        if data.get('resourceType'):
            out.resource_type = ResourceType.from_dict(data['resourceType'])
        out.creators = [Agent.from_dict(c) for c in data.get('creators', [])]
        out.publisher = data.get('publisher')
        out.publication_year = data.get('publicationYear')
        if data.get('state'):
            out.state = State(data['state'])
        out.acls = ACLs(AclEntry.from_dict(a) for a in data.get('acls', []))
        out.last_update = data.get('lastUpdate')
        out.version = data.get('version')
        return out

    def copy(self) -> "DataResource":
        return DataResource.from_dict(deepcopy(self.to_dict()))

    def __str__(self):
        return "<DataResource {} ({}): {}>".format(self.id, self.primary_id,
                                                   self.state.value if self.state else "(new)")


class ContentInformation(object):
    """
    a record describing a single bitstream attached to a data resource at a relative path.  Each
    upload to the same path produces a new version.
    """

    def __init__(self, parent_id: str=None, relative_path: str=None, version: int=None):
        self.parent_id = parent_id
        self.relative_path = relative_path
        self.version = version
        self.filename = None
        self.checksum = None
        self.size = -1
        self.media_type = None
        self.content_uri = None
        self.versioning_service = None
        self.version_id = None
        self.upload_date = None
        self.tags = []
        self.metadata = {}

    @property
    def key(self):
        """
        the (parent, path, version) triple that uniquely identifies this record
        """
        return (self.parent_id, self.relative_path, self.version)

    def to_dict(self) -> Mapping:
        return {
            "parentId": self.parent_id,
            "relativePath": self.relative_path,
            "version": self.version,
            "filename": self.filename,
            "hash": self.checksum,
            "size": self.size,
            "mediaType": self.media_type,
            "contentUri": self.content_uri,
            "versioningService": self.versioning_service,
            "versionId": self.version_id,
            "uploadDate": self.upload_date,
            "tags": list(self.tags),
            "metadata": dict(self.metadata)
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "ContentInformation":
        out = cls(data.get('parentId'), data.get('relativePath'), data.get('version'))
        out.filename = data.get('filename')
        out.checksum = data.get('hash')
        out.size = data.get('size', -1)
        out.media_type = data.get('mediaType')
        out.content_uri = data.get('contentUri')
        out.versioning_service = data.get('versioningService')
        out.version_id = data.get('versionId')
        out.upload_date = data.get('uploadDate')
        out.tags = list(data.get('tags') or [])
        out.metadata = dict(data.get('metadata') or {})
        return out

    def __str__(self):
        return "<ContentInformation {}:{} v{}>".format(self.parent_id, self.relative_path, self.version)
