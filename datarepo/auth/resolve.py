"""
Resolution of the effective permission a caller holds on a data resource.

The effective permission is determined by the first of these rules that applies:

  1. a caller holding the system-wide administrator role has ADMINISTRATE; the resource's ACL is
     not consulted.
  2. a caller presenting a scoped grant naming the resource has the grant's permission.
  3. a SERVICE caller holding a service role has the permission mapped to that role.
  4. otherwise, the highest permission among the ACL entries whose subject is the caller's id or
     one of its group identities; NONE if no entry matches.

Note that this module does not take the resource's lifecycle state into account; see
:py:mod:`datarepo.resource.lifecycle` for the check that combines both.
"""
import logging

from .permissions import Permission
from .principal import Principal, DATA_RESOURCE_TYPE
from ..utils.logging import blab

log = logging.getLogger("datarepo.auth")

__all__ = [ "effective_permission", "has_permission" ]

def effective_permission(resource, caller: Principal) -> Permission:
    """
    return the permission the caller holds on the resource
    :param DataResource resource:  the resource being accessed; only its ``id`` and ``acls``
                                   properties are consulted
    :param Principal      caller:  the identity of the caller
    """
    if caller.is_administrator:
        blab(log, "%s is administrator; granting ADMINISTRATE on %s", caller.id, resource.id)
        return Permission.ADMINISTRATE

    perm = caller.scoped_permission(DATA_RESOURCE_TYPE, resource.id)
    if perm is not None:
        blab(log, "%s holds scoped grant %s on %s", caller.id, perm.name, resource.id)
        return perm

    perm = caller.service_permission()
    if perm is not None:
        blab(log, "service %s holds %s via service role", caller.id, perm.name)
        return perm

    return resource.acls.max_permission_for(caller.identities)

def has_permission(resource, caller: Principal, required: Permission) -> bool:
    """
    return True if the caller's effective permission on the resource is at least the required one
    """
    return effective_permission(resource, caller).at_least(required)
