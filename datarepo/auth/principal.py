"""
The identity of a caller requesting access to the repository.

A :py:class:`Principal` is passed explicitly into every operation that needs to check permissions;
it is never looked up from ambient state.  A principal carries:

  *  an identifier (the user or service name),
  *  the identities of the groups the caller is a member of,
  *  the roles granted to the caller (e.g. the system-wide administrator role),
  *  a principal type--USER, SERVICE, or TEMPORARY--indicating how the caller authenticated, and
  *  zero or more :py:class:`ScopedGrant` instances: short-lived permissions on specific resources
     carried by the caller's credential rather than stored with the resource.

Principals are normally created from the claims of an already-issued JSON Web Token via
:py:func:`authenticate_token` or :py:func:`principal_from_claims`.
"""
import logging
from logging import Logger
from collections.abc import Mapping
from typing import Iterable, Union

import jwt

from .permissions import Permission

__all__ = [ "Principal", "ScopedGrant", "ANONYMOUS", "ADMINISTRATOR_ROLE", "USER_ROLE", "GUEST_ROLE",
            "SERVICE_READ_ROLE", "SERVICE_WRITE_ROLE", "SERVICE_ADMINISTRATOR_ROLE",
            "DATA_RESOURCE_TYPE", "principal_from_claims", "authenticate_token", "Unauthenticated" ]

ANONYMOUS = "anonymous"

# user roles
ADMINISTRATOR_ROLE = "ROLE_ADMINISTRATOR"
USER_ROLE = "ROLE_USER"
GUEST_ROLE = "ROLE_GUEST"

# service roles; these only apply to SERVICE principals
SERVICE_READ_ROLE = "ROLE_SERVICE_READ"
SERVICE_WRITE_ROLE = "ROLE_SERVICE_WRITE"
SERVICE_ADMINISTRATOR_ROLE = "ROLE_SERVICE_ADMINISTRATOR"

SERVICE_ROLE_PERMISSIONS = {
    SERVICE_ADMINISTRATOR_ROLE: Permission.ADMINISTRATE,
    SERVICE_WRITE_ROLE: Permission.WRITE,
    SERVICE_READ_ROLE: Permission.READ
}

# the resource type name used in scoped grants referring to data resources
DATA_RESOURCE_TYPE = "DataResource"


class ScopedGrant(object):
    """
    a permission on a single resource carried by a caller's credential
    """
    __slots__ = ('resource_type', 'resource_id', 'permission')

    def __init__(self, resource_type: str, resource_id: str, permission: Union[str, Permission]):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.permission = Permission.of(permission)

    def applies_to(self, resource_type: str, resource_id: str) -> bool:
        """
        return True if this grant names the given resource
        """
        return self.resource_type == resource_type and self.resource_id == resource_id

    @classmethod
    def from_dict(cls, data: Mapping):
        return cls(data.get('resourceType', DATA_RESOURCE_TYPE), data['resourceId'], data['permission'])

    def to_dict(self):
        return { "resourceType": self.resource_type, "resourceId": self.resource_id,
                 "permission": self.permission.name }

    def __repr__(self):
        return "ScopedGrant({!r}, {!r}, {})".format(self.resource_type, self.resource_id,
                                                   self.permission.name)


class Principal(object):
    """
    the authenticated identity of a caller
    """
    USER: str = "user"
    SERVICE: str = "service"
    TEMPORARY: str = "temporary"
    ANONYMOUS: str = ANONYMOUS

    def __init__(self, id: str=ANONYMOUS, ptype: str=USER, roles: Iterable[str]=None,
                 groups: Iterable[str]=None, grants: Iterable[ScopedGrant]=None, **kwargs):
        """
        create the principal
        :param str      id:  the unique identifier of the caller (a user or service name)
        :param str   ptype:  one of USER, SERVICE, or TEMPORARY
        :param list  roles:  the names of the roles granted to the caller
        :param list groups:  the identities of groups the caller is a member of
        :param list grants:  the scoped grants carried by the caller's credential
        :param kwargs:       other properties describing the caller (e.g. ``firstname``,
                             ``lastname``, ``email``)
        """
        if ptype not in (self.USER, self.SERVICE, self.TEMPORARY):
            raise ValueError("Principal: ptype not one of "+str((self.USER, self.SERVICE, self.TEMPORARY)))
        self._id = id or ANONYMOUS
        self._type = ptype
        self._roles = frozenset(roles or [])
        self._groups = frozenset(groups or [])
        self._grants = tuple(grants or [])
        self._md = dict(kwargs)

    @property
    def id(self) -> str:
        """
        the identifier for the caller
        """
        return self._id

    @property
    def principal_type(self) -> str:
        return self._type

    @property
    def roles(self) -> frozenset:
        return self._roles

    @property
    def groups(self) -> frozenset:
        """
        the identities of the groups the caller is a member of
        """
        return self._groups

    @property
    def grants(self) -> tuple:
        return self._grants

    @property
    def identities(self) -> list:
        """
        the identities used to match ACL entries: the caller's id followed by its group identities
        """
        return [self._id] + sorted(self._groups)

    @property
    def is_administrator(self) -> bool:
        """
        True if the caller holds the system-wide administrator role
        """
        return ADMINISTRATOR_ROLE in self._roles

    @property
    def is_anonymous(self) -> bool:
        return self._id == ANONYMOUS

    @property
    def is_service(self) -> bool:
        return self._type == self.SERVICE

    @property
    def firstname(self) -> str:
        return self._md.get('firstname')

    @property
    def lastname(self) -> str:
        return self._md.get('lastname')

    def get_prop(self, propname: str, defval=None):
        """
        return an arbitrary property describing the caller
        """
        return self._md.get(propname, defval)

    def scoped_permission(self, resource_type: str, resource_id: str) -> Permission:
        """
        return the permission ceiling of the scoped grant naming the given resource or None if
        the caller carries no grant for it
        """
        for g in self._grants:
            if g.applies_to(resource_type, resource_id):
                return g.permission
        return None

    def service_permission(self) -> Permission:
        """
        return the permission implied by the caller's service roles or None if the caller is not
        a SERVICE principal or holds no service role.  When several service roles are held, the
        highest permission applies.
        """
        if not self.is_service:
            return None
        for role, perm in SERVICE_ROLE_PERMISSIONS.items():
            if role in self._roles:
                return perm
        return None

    def __str__(self):
        return "Principal({}: {})".format(self._type, self._id)

    @classmethod
    def anonymous(cls) -> "Principal":
        return cls(ANONYMOUS, cls.USER, [GUEST_ROLE])


class Unauthenticated(Exception):
    """
    an exception indicating that a credential was missing or could not be validated and the
    configuration does not allow falling back to the anonymous principal
    """
    pass

_claim_types = { "USER": Principal.USER, "SERVICE": Principal.SERVICE,
                 "TEMPORARY": Principal.TEMPORARY }

def principal_from_claims(claims: Mapping, log: Logger=None) -> Principal:
    """
    create a Principal from a decoded JWT claim set.  The following claims are recognized:

    ``sub`` or ``username``
        the identifier for the caller (``servicename`` for SERVICE tokens)
    ``tokenType``
        one of ``USER`` (default), ``SERVICE``, or ``TEMPORARY``
    ``roles``
        a list of role names
    ``groupid`` or ``groups``
        the caller's group identity or a list of them
    ``permissions``
        for TEMPORARY tokens, a list of objects with ``resourceType``, ``resourceId``, and
        ``permission`` properties, or a mapping of resource identifiers to permission names
    ``firstname``, ``lastname``, ``email``
        descriptive information about the caller

    :param dict claims:  the decoded claim set
    :param Logger  log:  a Logger to record warnings about incomplete claim sets
    """
    if not log:
        log = logging.getLogger("datarepo.auth")

    ptype = _claim_types.get(str(claims.get('tokenType', 'USER')).upper())
    if not ptype:
        log.warning("Unrecognized token type, %s; treating as USER", claims.get('tokenType'))
        ptype = Principal.USER

    subj = claims.get('servicename') if ptype == Principal.SERVICE else None
    if not subj:
        subj = claims.get('username') or claims.get('sub')
    if not subj:
        log.warning("Token is missing subject identifier; defaulting to anonymous")
        subj = ANONYMOUS

    roles = claims.get('roles') or []
    if isinstance(roles, str):
        roles = [roles]

    groups = claims.get('groups') or []
    if isinstance(groups, str):
        groups = [groups]
    groups = list(groups)
    if claims.get('groupid'):
        groups.append(claims['groupid'])

    grants = []
    perms = claims.get('permissions') or []
    if isinstance(perms, Mapping):
        perms = [{"resourceId": k, "permission": v} for k, v in perms.items()]
    for p in perms:
        try:
            grants.append(ScopedGrant.from_dict(p))
        except (KeyError, ValueError) as ex:
            log.warning("Ignoring malformed scoped permission claim (%s): %s", str(p), str(ex))

    md = dict((k, v) for k, v in claims.items()
              if k in ("firstname", "lastname", "email", "exp", "iat"))
    return Principal(subj, ptype, roles, groups, grants, **md)

def authenticate_token(token: str, jwtcfg: Mapping, log: Logger=None) -> Principal:
    """
    decode an already-issued bearer token and return the Principal it describes.

    This function will look for the following properties in the provided configuration dictionary:

    ``key``
        (str) _required_.  The secret key shared with the token issuer.
    ``algorithm``
        (str) _optional_.  The name of the signing algorithm (default: "HS256").
    ``require_expiration``
        (bool) _optional_.  If True (default), a token without an expiration time is rejected.
    ``raise_on_anonymous``, ``raise_on_invalid``
        (bool) _optional_.  If True, a missing or invalid token, respectively, results in an
        :py:class:`Unauthenticated` exception; otherwise, the anonymous principal is returned.

    :param str    token:  the encoded token; None or empty means no token was provided
    :param dict  jwtcfg:  the token decoding configuration (see above)
    :param Logger   log:  the logger to record messages to
    """
    if not log:
        log = logging.getLogger("datarepo.auth")

    if not token:
        if jwtcfg.get('raise_on_anonymous'):
            raise Unauthenticated("JWT token not provided")
        return Principal.anonymous()

    try:
        claims = jwt.decode(token, jwtcfg.get("key", ""),
                            algorithms=[jwtcfg.get("algorithm", "HS256")])
    except jwt.InvalidTokenError as ex:
        log.warning("Invalid token can not be decoded: %s", str(ex))
        if jwtcfg.get('raise_on_invalid'):
            raise Unauthenticated("Undecodable JWT token") from ex
        return Principal.anonymous()

    # expiration itself was checked implicitly by jwt.decode()
    if jwtcfg.get('require_expiration', True) and not claims.get('exp'):
        log.warning("Rejecting non-expiring token for %s", claims.get('sub', "(unknown)"))
        if jwtcfg.get('raise_on_invalid'):
            raise Unauthenticated("Non-expiring JWT token")
        return Principal.anonymous()

    return principal_from_claims(claims, log)
