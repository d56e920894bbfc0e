"""
The abstract interface to the persistent store of data resource and content information records.

Records are exchanged with a store as plain dictionaries, in the form produced by
:py:meth:`DataResource.to_dict() <datarepo.resource.model.DataResource.to_dict>` and
:py:meth:`ContentInformation.to_dict() <datarepo.resource.model.ContentInformation.to_dict>`.
The store is responsible for the atomicity of :py:meth:`ResourceStore.insert_if_absent`:  this is
what guarantees the uniqueness of resource identifiers.

Selection of resources is driven by a dictionary of criteria.  The following keys are
recognized; a record must satisfy all the criteria given:

``state``
     (list of str) the record's state must be one of these
``resourceType``
     (str) the value of the record's resource type
``typeGeneral``
     (str) the general type of the record's resource type
``publisher``
     (str) the record's publisher
``publicationYear``
     (str) the record's publication year
``primaryIdentifiers``
     (list of str) the value of the record's primary identifier must be one of these
``relatedIdentifiers``
     (list of str) the value of one of the record's related identifiers must be one of these
``relationType``
     (str) one of the record's related identifiers must have this relation type; if
     ``relatedIdentifiers`` is also given, it is the same related identifier that must match both
"""
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from typing import Iterator, List, Sequence

from ..auth.permissions import Permission
from ..exceptions import InternalServerError
from ..resource.model import Unknown, State

__all__ = [ "ResourceStore", "StoreException", "Page", "matches_criteria", "matches_content",
            "RESOURCES", "HISTORY", "CONTENT" ]

RESOURCES = "resources"
HISTORY = "history"
CONTENT = "content"

class StoreException(InternalServerError):
    """
    an exception indicating a failure interacting with the underlying persistent store
    """
    default_message = "Persistent store failure"


class Page(object):
    """
    a page of results from a larger result set
    """

    def __init__(self, items: List, page: int, size: int, total: int):
        """
        :param list items:  the items on this page
        :param int   page:  the (zero-based) index of this page
        :param int   size:  the maximum number of items per page
        :param int  total:  the total number of items in the full result set
        """
        self.items = items
        self.page = page
        self.size = size
        self.total = total

    @property
    def total_pages(self) -> int:
        if not self.size:
            return 1
        return (self.total + self.size - 1) // self.size

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)


def _primary_value(rec: Mapping) -> str:
    return (rec.get('identifier') or {}).get('value')

def _is_real_identifier(value: str) -> bool:
    return bool(value) and not Unknown.is_placeholder(value)

def matches_criteria(rec: Mapping, criteria: Mapping) -> bool:
    """
    return True if the resource record satisfies all of the given selection criteria (see the
    module documentation for the recognized criteria).
    """
    if not criteria:
        return True
    if criteria.get('state') and (rec.get('state') or State.VOLATILE.value) not in criteria['state']:
        return False

    rtype = rec.get('resourceType') or {}
    if criteria.get('resourceType') and rtype.get('value') != criteria['resourceType']:
        return False
    if criteria.get('typeGeneral') and rtype.get('typeGeneral') != criteria['typeGeneral']:
        return False
    for prop in ('publisher', 'publicationYear'):
        if criteria.get(prop) and rec.get(prop) != criteria[prop]:
            return False

    if criteria.get('primaryIdentifiers') and _primary_value(rec) not in criteria['primaryIdentifiers']:
        return False

    if criteria.get('relatedIdentifiers') or criteria.get('relationType'):
        found = False
        for rel in rec.get('relatedIdentifiers') or []:
            if criteria.get('relatedIdentifiers') and rel.get('value') not in criteria['relatedIdentifiers']:
                continue
            if criteria.get('relationType') and rel.get('relationType') != criteria['relationType']:
                continue
            found = True
            break
        if not found:
            return False

    return True

def _within(rec: Mapping, last_update_from: float, last_update_until: float) -> bool:
    upd = rec.get('lastUpdate') or 0
    if last_update_from is not None and upd < last_update_from:
        return False
    if last_update_until is not None and upd > last_update_until:
        return False
    return True

def _acl_allows(rec: Mapping, sids: Sequence[str], permission: Permission) -> bool:
    if sids is None:
        return True
    permission = Permission.of(permission or Permission.READ)
    for acl in rec.get('acls') or []:
        if acl.get('sid') in sids and Permission.of(acl.get('permission')) >= permission:
            return True
    return False

def matches_content(rec: Mapping, parent_id: str, path: str=None, exact: bool=False,
                    version: int=None, tag: str=None) -> bool:
    """
    return True if a content information record matches the given constraints.  If ``exact`` is
    False, ``path`` matches any record whose relative path contains it.
    """
    if rec.get('parentId') != parent_id:
        return False
    if path:
        rpath = rec.get('relativePath') or ''
        if exact and rpath != path:
            return False
        if not exact and path not in rpath:
            return False
    if version is not None and rec.get('version') != version:
        return False
    if tag and tag not in (rec.get('tags') or []):
        return False
    return True


class ResourceStore(ABC):
    """
    an abstract persistent store of data resource and content information records.

    Implementations of the selection methods need only implement :py:meth:`_iter_resources` and
    :py:meth:`_iter_content`; backends that can do better (e.g. by pushing the query to a
    database) may override :py:meth:`select` and :py:meth:`select_content`.
    """

    def __init__(self, config: Mapping=None):
        self._cfg = config or {}

    @abstractmethod
    def get(self, id: str) -> MutableMapping:
        """
        return the resource record with the given internal identifier or None if it does not exist
        """
        raise NotImplementedError()

    @abstractmethod
    def insert_if_absent(self, resdata: Mapping) -> bool:
        """
        atomically add a new resource record unless a record already exists with the same internal
        identifier or the same (non-placeholder) primary identifier.
        :return:  True if the record was added, False if it conflicts with an existing record
        """
        raise NotImplementedError()

    @abstractmethod
    def update(self, resdata: Mapping) -> bool:
        """
        replace an existing resource record
        :return:  False if no record with the record's internal identifier exists
        """
        raise NotImplementedError()

    @abstractmethod
    def save_history(self, resdata: Mapping):
        """
        save a snapshot of a resource record to its history
        """
        raise NotImplementedError()

    @abstractmethod
    def select_history(self, id: str) -> List[MutableMapping]:
        """
        return the saved snapshots of the resource with the given internal identifier, oldest first
        """
        raise NotImplementedError()

    @abstractmethod
    def insert_content(self, cidata: Mapping) -> bool:
        """
        add a content information record unless one already exists with the same parent, relative
        path, and version
        :return:  True if the record was added
        """
        raise NotImplementedError()

    @abstractmethod
    def _iter_resources(self) -> Iterator[MutableMapping]:
        raise NotImplementedError()

    @abstractmethod
    def _iter_content(self, parent_id: str) -> Iterator[MutableMapping]:
        raise NotImplementedError()

    def find_by_any_identifier(self, ident: str) -> MutableMapping:
        """
        return the resource record identified by the given value, which may be its internal
        identifier, one of its alternate identifiers, or its primary identifier (in that order of
        preference).  None is returned if no such record exists.
        """
        rec = self.get(ident)
        if rec:
            return rec
        byprimary = None
        for rec in self._iter_resources():
            if any(a.get('value') == ident for a in rec.get('alternateIdentifiers') or []):
                return rec
            if not byprimary and _is_real_identifier(ident) and _primary_value(rec) == ident:
                byprimary = rec
        return byprimary

    def conflicts_with(self, resdata: Mapping) -> bool:
        """
        return True if a record exists with the same internal or primary identifier as the given one
        """
        if self.get(resdata['id']):
            return True
        primary = _primary_value(resdata)
        if not _is_real_identifier(primary):
            return False
        return any(_primary_value(r) == primary for r in self._iter_resources())

    def select(self, criteria: Mapping=None, last_update_from: float=None,
               last_update_until: float=None, sids: Sequence[str]=None, permission: Permission=None,
               include_revoked: bool=False) -> Iterator[MutableMapping]:
        """
        return an iterator over the resource records that match the given constraints.
        :param dict criteria:  the selection criteria (see the module documentation)
        :param float last_update_from:   only include records updated at or after this time
        :param float last_update_until:  only include records updated at or before this time
        :param list sids:    if not None, only include records whose ACL grants at least
                             ``permission`` to one of these identities
        :param Permission permission:  the permission required of one of ``sids`` (default: READ)
        :param bool include_revoked:  if False (default), exclude records in the REVOKED state
        """
        for rec in self._iter_resources():
            if not include_revoked and rec.get('state') == State.REVOKED.value:
                continue
            if not _within(rec, last_update_from, last_update_until):
                continue
            if not _acl_allows(rec, sids, permission):
                continue
            if not matches_criteria(rec, criteria):
                continue
            yield rec

    def select_page(self, page: int=0, size: int=20, **constraints) -> Page:
        """
        return a page of the resource records that match the given constraints, ordered by
        internal identifier.  The constraints are those accepted by :py:meth:`select`.
        """
        recs = sorted(self.select(**constraints), key=lambda r: r.get('id') or '')
        if size:
            items = recs[page*size:(page+1)*size]
        else:
            items = recs
        return Page(items, page, size, len(recs))

    def select_content(self, parent_id: str, path: str=None, exact: bool=False, version: int=None,
                       tag: str=None) -> List[MutableMapping]:
        """
        return the content information records of the given resource that match the given
        constraints, ordered by relative path and version.
        """
        out = [r for r in self._iter_content(parent_id)
               if matches_content(r, parent_id, path, exact, version, tag)]
        out.sort(key=lambda r: (r.get('relativePath') or '', r.get('version') or 0))
        return out
