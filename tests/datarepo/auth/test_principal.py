import os, sys, pdb, time, logging
import unittest as test

import jwt

from datarepo.auth.permissions import Permission
from datarepo.auth import principal as prin
from datarepo.auth.principal import Principal, ScopedGrant

jwtcfg = { "key": "a-shared-secret-that-is-long-enough-for-hs256", "algorithm": "HS256" }

def make_token(claims, key=jwtcfg["key"]):
    return jwt.encode(claims, key, algorithm="HS256")

class TestScopedGrant(test.TestCase):

    def test_applies_to(self):
        g = ScopedGrant(prin.DATA_RESOURCE_TYPE, "res1", "write")
        self.assertIs(g.permission, Permission.WRITE)
        self.assertTrue(g.applies_to(prin.DATA_RESOURCE_TYPE, "res1"))
        self.assertFalse(g.applies_to(prin.DATA_RESOURCE_TYPE, "res2"))
        self.assertFalse(g.applies_to("Group", "res1"))

    def test_dict(self):
        g = ScopedGrant.from_dict({"resourceId": "res1", "permission": "READ"})
        self.assertEqual(g.resource_type, prin.DATA_RESOURCE_TYPE)
        self.assertEqual(g.to_dict(), {"resourceType": "DataResource", "resourceId": "res1",
                                       "permission": "READ"})

class TestPrincipal(test.TestCase):

    def test_ctor(self):
        who = Principal("ava", Principal.USER, [prin.USER_ROLE], ["grp1", "grp0"], firstname="Ava")
        self.assertEqual(who.id, "ava")
        self.assertEqual(who.principal_type, Principal.USER)
        self.assertEqual(who.identities, ["ava", "grp0", "grp1"])
        self.assertFalse(who.is_administrator)
        self.assertFalse(who.is_anonymous)
        self.assertFalse(who.is_service)
        self.assertEqual(who.firstname, "Ava")
        self.assertIsNone(who.lastname)
        self.assertEqual(who.get_prop("email", "none"), "none")

        with self.assertRaises(ValueError):
            Principal("ava", "robot")

    def test_anonymous(self):
        who = Principal.anonymous()
        self.assertEqual(who.id, "anonymous")
        self.assertTrue(who.is_anonymous)
        self.assertFalse(who.is_administrator)
        self.assertEqual(Principal(None).id, "anonymous")

    def test_administrator(self):
        who = Principal("ava", roles=[prin.ADMINISTRATOR_ROLE])
        self.assertTrue(who.is_administrator)

    def test_service_permission(self):
        svc = Principal("harvester", Principal.SERVICE, [prin.SERVICE_READ_ROLE])
        self.assertIs(svc.service_permission(), Permission.READ)
        svc = Principal("ingester", Principal.SERVICE, [prin.SERVICE_READ_ROLE, prin.SERVICE_WRITE_ROLE])
        self.assertIs(svc.service_permission(), Permission.WRITE)
        svc = Principal("nobody", Principal.SERVICE, [prin.USER_ROLE])
        self.assertIsNone(svc.service_permission())

        # service roles only count for SERVICE principals
        user = Principal("ava", Principal.USER, [prin.SERVICE_ADMINISTRATOR_ROLE])
        self.assertIsNone(user.service_permission())

    def test_scoped_permission(self):
        who = Principal("tmp", Principal.TEMPORARY,
                        grants=[ScopedGrant(prin.DATA_RESOURCE_TYPE, "res1", Permission.READ)])
        self.assertIs(who.scoped_permission(prin.DATA_RESOURCE_TYPE, "res1"), Permission.READ)
        self.assertIsNone(who.scoped_permission(prin.DATA_RESOURCE_TYPE, "res2"))

class TestPrincipalFromClaims(test.TestCase):

    def test_user(self):
        who = prin.principal_from_claims({"sub": "ava", "roles": [prin.USER_ROLE], "groupid": "grp1",
                                          "firstname": "Ava", "lastname": "Ant"})
        self.assertEqual(who.id, "ava")
        self.assertEqual(who.principal_type, Principal.USER)
        self.assertEqual(who.roles, frozenset([prin.USER_ROLE]))
        self.assertEqual(who.groups, frozenset(["grp1"]))
        self.assertEqual(who.lastname, "Ant")

    def test_service(self):
        who = prin.principal_from_claims({"sub": "x", "servicename": "harvester", "tokenType": "SERVICE",
                                          "roles": prin.SERVICE_WRITE_ROLE})
        self.assertEqual(who.id, "harvester")
        self.assertTrue(who.is_service)
        self.assertIs(who.service_permission(), Permission.WRITE)

    def test_temporary(self):
        who = prin.principal_from_claims({"sub": "tmp", "tokenType": "temporary",
                                          "permissions": {"res1": "WRITE"}})
        self.assertEqual(who.principal_type, Principal.TEMPORARY)
        self.assertIs(who.scoped_permission(prin.DATA_RESOURCE_TYPE, "res1"), Permission.WRITE)

        who = prin.principal_from_claims({"sub": "tmp", "tokenType": "TEMPORARY",
                                          "permissions": [{"resourceId": "res1", "permission": "READ"},
                                                          {"permission": "READ"},
                                                          {"resourceId": "res2", "permission": "ALL"}]})
        self.assertEqual(len(who.grants), 1)

    def test_missing_subject(self):
        who = prin.principal_from_claims({"roles": []})
        self.assertTrue(who.is_anonymous)

class TestAuthenticateToken(test.TestCase):

    def test_valid(self):
        token = make_token({"sub": "ava", "exp": int(time.time()) + 600, "roles": [prin.USER_ROLE]})
        who = prin.authenticate_token(token, jwtcfg)
        self.assertEqual(who.id, "ava")
        self.assertIn(prin.USER_ROLE, who.roles)

    def test_no_token(self):
        self.assertTrue(prin.authenticate_token(None, jwtcfg).is_anonymous)
        self.assertTrue(prin.authenticate_token("", jwtcfg).is_anonymous)
        with self.assertRaises(prin.Unauthenticated):
            prin.authenticate_token(None, dict(jwtcfg, raise_on_anonymous=True))

    def test_bad_signature(self):
        token = make_token({"sub": "ava", "exp": int(time.time()) + 600}, "a-different-secret-that-is-long-enough-for-hs256")
        self.assertTrue(prin.authenticate_token(token, jwtcfg).is_anonymous)
        with self.assertRaises(prin.Unauthenticated):
            prin.authenticate_token(token, dict(jwtcfg, raise_on_invalid=True))

    def test_expired(self):
        token = make_token({"sub": "ava", "exp": int(time.time()) - 600})
        self.assertTrue(prin.authenticate_token(token, jwtcfg).is_anonymous)

    def test_require_expiration(self):
        token = make_token({"sub": "ava"})
        self.assertTrue(prin.authenticate_token(token, jwtcfg).is_anonymous)
        who = prin.authenticate_token(token, dict(jwtcfg, require_expiration=False))
        self.assertEqual(who.id, "ava")


if __name__ == '__main__':
    test.main()
