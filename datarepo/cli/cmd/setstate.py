"""
CLI command that can change the lifecycle state of a data resource.
"""
import argparse

from ...exceptions import RepoException
from ...resource.model import State

default_name = "setstate"
help = "fix or revoke a data resource"
description = \
"""Update the lifecycle state of a data resource.  A VOLATILE resource may be FIXED or REVOKED; a
FIXED resource may only be REVOKED.  A REVOKED resource can no longer change state.  Administrative
permission on the resource is required.
"""

KNOWN_STATES = [ State.FIXED.value, State.REVOKED.value ]

def load_into(subparser: argparse.ArgumentParser):
    p = subparser
    p.add_argument("resid", metavar="ID", type=str,
                   help="an identifier for the resource to change the state of")
    p.add_argument("newstate", metavar="STATE", type=str,
                   help="the desired state, one of 'fixed' or 'revoked'")

def execute(args, session):
    """
    execute this command: change the state of a data resource.  Requesting the state the
    resource is already in is not an error.
    """
    if not args.resid:
        raise session.fail("resource ID not specified", 2)
    if not args.newstate:
        raise session.fail("new desired state not specified", 2)
    newstate = args.newstate.upper()
    if newstate not in KNOWN_STATES:
        raise session.fail("Unrecognized state requested: "+args.newstate, 2)

    ressvc = session.resources
    try:
        res = ressvc.find_by_any_identifier(args.resid)
        if res.state_or_default.value == newstate:
            session.log.info("Resource %s: already in state %s; no change made", res.id, newstate)
            return
        if newstate == State.FIXED.value:
            res = ressvc.fix(res.id, session.who)
        else:
            res = ressvc.revoke(res.id, session.who)
    except RepoException as ex:
        raise session.failure_for(ex, args.resid) from ex

    session.log.info("Resource %s: state set to %s", res.id, res.state.value)
