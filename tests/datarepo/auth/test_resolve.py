import os, sys, pdb
import unittest as test

from datarepo.auth.permissions import Permission, AclEntry, ACLs
from datarepo.auth import principal as prin
from datarepo.auth.principal import Principal, ScopedGrant
from datarepo.auth.resolve import effective_permission, has_permission
from datarepo.resource.model import DataResource

class TestEffectivePermission(test.TestCase):

    def setUp(self):
        self.res = DataResource.new("res1")
        self.res.acls = ACLs([AclEntry("ava", Permission.READ), AclEntry("grp1", Permission.WRITE),
                              AclEntry("bob", Permission.ADMINISTRATE)])

    def test_acl(self):
        self.assertIs(effective_permission(self.res, Principal("ava")), Permission.READ)
        self.assertIs(effective_permission(self.res, Principal("ava", groups=["grp1"])), Permission.WRITE)
        self.assertIs(effective_permission(self.res, Principal("bob")), Permission.ADMINISTRATE)
        self.assertIs(effective_permission(self.res, Principal("carl")), Permission.NONE)
        self.assertIs(effective_permission(self.res, Principal.anonymous()), Permission.NONE)

    def test_administrator(self):
        admin = Principal("carl", roles=[prin.ADMINISTRATOR_ROLE])
        self.assertIs(effective_permission(self.res, admin), Permission.ADMINISTRATE)
        self.res.acls.clear()
        self.assertTrue(has_permission(self.res, admin, Permission.ADMINISTRATE))

    def test_scoped_grant(self):
        who = Principal("ava", Principal.TEMPORARY,
                        grants=[ScopedGrant(prin.DATA_RESOURCE_TYPE, "res1", Permission.WRITE)])
        self.assertIs(effective_permission(self.res, who), Permission.WRITE)

        # the grant is a ceiling that overrides the ACL
        who = Principal("bob", Principal.TEMPORARY,
                        grants=[ScopedGrant(prin.DATA_RESOURCE_TYPE, "res1", Permission.READ)])
        self.assertIs(effective_permission(self.res, who), Permission.READ)

        # grants for other resources do not apply
        who = Principal("carl", Principal.TEMPORARY,
                        grants=[ScopedGrant(prin.DATA_RESOURCE_TYPE, "res2", Permission.WRITE)])
        self.assertIs(effective_permission(self.res, who), Permission.NONE)

    def test_service(self):
        svc = Principal("harvester", Principal.SERVICE, [prin.SERVICE_READ_ROLE])
        self.assertIs(effective_permission(self.res, svc), Permission.READ)
        svc = Principal("ingest", Principal.SERVICE, [prin.SERVICE_ADMINISTRATOR_ROLE])
        self.assertIs(effective_permission(self.res, svc), Permission.ADMINISTRATE)

        # a service without a service role falls back to the ACL
        svc = Principal("grp1", Principal.SERVICE, [])
        self.assertIs(effective_permission(self.res, svc), Permission.WRITE)

    def test_has_permission(self):
        self.assertTrue(has_permission(self.res, Principal("ava"), Permission.READ))
        self.assertFalse(has_permission(self.res, Principal("ava"), Permission.WRITE))
        self.assertTrue(has_permission(self.res, Principal("carl"), Permission.NONE))


if __name__ == '__main__':
    test.main()
