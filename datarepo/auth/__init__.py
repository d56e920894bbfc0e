"""
auth:  caller identities and the resolution of their permissions on data resources
"""
from .permissions import Permission, AclEntry, ACLs, are_acls_equal
from .principal import (Principal, ScopedGrant, ANONYMOUS, ADMINISTRATOR_ROLE, USER_ROLE, GUEST_ROLE,
                        SERVICE_READ_ROLE, SERVICE_WRITE_ROLE, SERVICE_ADMINISTRATOR_ROLE,
                        DATA_RESOURCE_TYPE, principal_from_claims, authenticate_token, Unauthenticated)
from .resolve import effective_permission, has_permission
