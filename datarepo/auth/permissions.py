"""
Permission levels and the access control lists (ACLs) attached to data resources.

Permissions are totally ordered:  ``NONE < READ < WRITE < ADMINISTRATE``.  Holding a permission
implies holding every lower one, so "at least READ" is satisfied by WRITE and ADMINISTRATE as well.
An ACL is a collection of :py:class:`AclEntry` instances, each granting a permission to a subject
identifier; the subject can be a user or a group.
"""
from enum import IntEnum
from collections.abc import Mapping
from typing import Iterable, Iterator, List, Sequence, Union

__all__ = [ "Permission", "AclEntry", "ACLs", "are_acls_equal" ]

class Permission(IntEnum):
    """
    the ordered set of permission levels a caller can hold on a resource
    """
    NONE = 0
    READ = 1
    WRITE = 2
    ADMINISTRATE = 3

    def at_least(self, required: "Permission") -> bool:
        """
        return True if this permission is equal to or higher than the given one
        """
        return self >= Permission.of(required)

    @classmethod
    def of(cls, value: Union[str, int, "Permission"]) -> "Permission":
        """
        convert a permission name (case-insensitive) or ordinal into a Permission
        :raises ValueError:  if the value does not name a known permission
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError("Unrecognized permission name: "+value)
        return cls(value)


class AclEntry(object):
    """
    a single access control entry granting a permission to a subject (a user or group identifier)
    """
    __slots__ = ('sid', 'permission')

    def __init__(self, sid: str, permission: Union[str, Permission]):
        self.sid = sid
        self.permission = Permission.of(permission)

    def to_dict(self):
        return { "sid": self.sid, "permission": self.permission.name }

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data['sid'], data['permission'])

    def __eq__(self, other):
        if not isinstance(other, AclEntry):
            return NotImplemented
        return self.sid == other.sid and self.permission == other.permission

    def __hash__(self):
        return hash((self.sid, self.permission))

    def __repr__(self):
        return "AclEntry({!r}, {})".format(self.sid, self.permission.name)


def are_acls_equal(first: Sequence[AclEntry], second: Sequence[AclEntry]) -> bool:
    """
    return True if two ACL listings are equivalent.  The listings are considered equal if they
    have the same number of entries and every entry of the first has an entry with the same subject
    and permission in the second.  The order of entries does not matter.

    :raises TypeError:  if either argument is None
    """
    if first is None or second is None:
        raise TypeError("are_acls_equal(): ACL listings must not be None")
    if len(first) != len(second):
        return False
    for entry in first:
        if entry not in second:
            return False
    return True


class ACLs(object):
    """
    the access control list attached to a resource: an unordered collection of
    :py:class:`AclEntry` instances.

    Note that entries are not de-duplicated per subject: a subject may be listed more than once
    with different permissions, in which case the highest one applies.
    """

    def __init__(self, entries: Iterable[AclEntry]=None):
        self._entries = []
        if entries:
            for e in entries:
                if isinstance(e, Mapping):
                    e = AclEntry.from_dict(e)
                self._entries.append(e)

    def __iter__(self) -> Iterator[AclEntry]:
        return iter(self._entries)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, entry):
        return entry in self._entries

    def grant(self, sid: str, permission: Union[str, Permission]) -> AclEntry:
        """
        grant a permission to the given subject.  If the identical entry already exists, nothing
        is added.
        :return:  the entry granting the permission
        """
        entry = AclEntry(sid, permission)
        if entry not in self._entries:
            self._entries.append(entry)
        return entry

    def clear(self):
        self._entries = []

    def max_permission_for(self, idents: Iterable[str]) -> Permission:
        """
        return the highest permission granted to any of the given identities.  Normally, this is a
        list including a user identity and the identities of the groups the user belongs to.  If
        none of the identities appear in the list, NONE is returned.
        """
        idents = set(idents)
        out = Permission.NONE
        for e in self._entries:
            if e.sid in idents and e.permission > out:
                out = e.permission
        return out

    def to_list(self) -> List[Mapping]:
        return [e.to_dict() for e in self._entries]

    def __eq__(self, other):
        if isinstance(other, ACLs):
            other = other._entries
        elif not isinstance(other, (list, tuple)):
            return NotImplemented
        return are_acls_equal(self._entries, list(other))

    def __str__(self):
        return "<ACLs: {}>".format(", ".join("{}={}".format(e.sid, e.permission.name)
                                             for e in self._entries))
