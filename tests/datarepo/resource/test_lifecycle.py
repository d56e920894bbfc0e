import os, sys, pdb
import unittest as test

from datarepo.auth.permissions import Permission, AclEntry, ACLs
from datarepo.auth import principal as prin
from datarepo.auth.principal import Principal
from datarepo.resource.model import DataResource, State
from datarepo.resource import lifecycle
from datarepo.resource.lifecycle import Outcome, decide
from datarepo.exceptions import ResourceNotFound, AccessForbidden, BadArgument

admin = Principal("root", roles=[prin.ADMINISTRATOR_ROLE])
owner = Principal("ava")
writer = Principal("bob")
reader = Principal("carl")
stranger = Principal("dan")

def make_resource(state=None):
    res = DataResource.new("res1")
    res.state = state
    res.acls = ACLs([AclEntry("ava", Permission.ADMINISTRATE), AclEntry("bob", Permission.WRITE),
                     AclEntry("carl", Permission.READ)])
    return res

class TestDecide(test.TestCase):

    def test_table_complete(self):
        self.assertEqual(len(lifecycle.DECISION_TABLE), len(State) * len(Permission) * len(Permission))

    def test_volatile(self):
        for req in Permission:
            for eff in Permission:
                expected = Outcome.ALLOW if eff >= req else Outcome.FORBIDDEN
                self.assertIs(decide(State.VOLATILE, req, eff), expected, "%s/%s" % (req, eff))
                self.assertIs(decide(None, req, eff), expected)

    def test_revoked(self):
        for req in Permission:
            for eff in (Permission.NONE, Permission.READ, Permission.WRITE):
                self.assertIs(decide(State.REVOKED, req, eff), Outcome.NOT_FOUND)
            self.assertIs(decide(State.REVOKED, req, Permission.ADMINISTRATE), Outcome.ALLOW)

    def test_fixed(self):
        self.assertIs(decide(State.FIXED, Permission.READ, Permission.WRITE), Outcome.ALLOW)
        self.assertIs(decide(State.FIXED, Permission.READ, Permission.READ), Outcome.ALLOW)
        self.assertIs(decide(State.FIXED, Permission.READ, Permission.NONE), Outcome.FORBIDDEN)
        self.assertIs(decide(State.FIXED, Permission.WRITE, Permission.WRITE), Outcome.FORBIDDEN)
        self.assertIs(decide(State.FIXED, Permission.WRITE, Permission.ADMINISTRATE), Outcome.ALLOW)
        self.assertIs(decide(State.FIXED, Permission.ADMINISTRATE, Permission.WRITE), Outcome.FORBIDDEN)
        self.assertIs(decide(State.FIXED, Permission.ADMINISTRATE, Permission.ADMINISTRATE),
                      Outcome.ALLOW)

class TestCheckPermission(test.TestCase):

    def test_volatile(self):
        res = make_resource()
        self.assertIs(lifecycle.check_permission(res, owner, Permission.ADMINISTRATE),
                      Permission.ADMINISTRATE)
        self.assertIs(lifecycle.check_permission(res, writer, Permission.WRITE), Permission.WRITE)
        self.assertIs(lifecycle.check_permission(res, reader, Permission.READ), Permission.READ)
        with self.assertRaises(AccessForbidden) as cm:
            lifecycle.check_permission(res, reader, Permission.WRITE)
        self.assertEqual(cm.exception.user_id, "carl")
        with self.assertRaises(AccessForbidden):
            lifecycle.check_permission(res, stranger, Permission.READ)

    def test_admin_ignores_acl(self):
        for state in (None, State.VOLATILE, State.FIXED, State.REVOKED):
            res = make_resource(state)
            res.acls.clear()
            self.assertIs(lifecycle.check_permission(res, admin, Permission.ADMINISTRATE),
                          Permission.ADMINISTRATE)

    def test_revoked(self):
        res = make_resource(State.REVOKED)
        for who in (writer, reader, stranger):
            with self.assertRaises(ResourceNotFound):
                lifecycle.check_permission(res, who, Permission.READ)
            with self.assertRaises(ResourceNotFound):
                lifecycle.check_permission(res, who, Permission.WRITE)
        lifecycle.check_permission(res, owner, Permission.READ)

    def test_fixed(self):
        res = make_resource(State.FIXED)
        with self.assertRaises(AccessForbidden) as cm:
            lifecycle.check_permission(res, writer, Permission.WRITE)
        self.assertIn("fixed", str(cm.exception))
        self.assertIs(lifecycle.check_permission(res, writer, Permission.READ), Permission.WRITE)
        self.assertIs(lifecycle.check_permission(res, owner, Permission.WRITE), Permission.ADMINISTRATE)

class TestTransitions(test.TestCase):

    def test_check_transition(self):
        lifecycle.check_transition(State.VOLATILE, State.FIXED)
        lifecycle.check_transition(State.VOLATILE, State.REVOKED)
        lifecycle.check_transition(None, State.FIXED)
        lifecycle.check_transition(State.FIXED, State.REVOKED)
        lifecycle.check_transition(State.FIXED, State.FIXED)
        with self.assertRaises(BadArgument):
            lifecycle.check_transition(State.FIXED, State.VOLATILE)
        with self.assertRaises(BadArgument):
            lifecycle.check_transition(State.REVOKED, State.VOLATILE)
        with self.assertRaises(BadArgument):
            lifecycle.check_transition(State.REVOKED, State.FIXED)

    def test_transition(self):
        res = make_resource()
        with self.assertRaises(AccessForbidden):
            lifecycle.transition(res, State.FIXED, writer)
        self.assertIsNone(res.state)

        lifecycle.transition(res, State.FIXED, owner)
        self.assertIs(res.state, State.FIXED)
        with self.assertRaises(BadArgument):
            lifecycle.transition(res, State.VOLATILE, owner)
        lifecycle.transition(res, State.REVOKED, admin)
        self.assertIs(res.state, State.REVOKED)


if __name__ == '__main__':
    test.main()
