"""
CLI command that displays a data resource
"""
import argparse, json, sys

from ...exceptions import RepoException

default_name = "show"
help = "display a data resource"
description = \
"""Write the metadata record of a data resource to standard out as JSON.  The resource may be
identified by its internal identifier, any of its alternate identifiers, or its DOI.
"""

def load_into(subparser: argparse.ArgumentParser):
    p = subparser
    p.add_argument("resid", metavar="ID", type=str,
                   help="an identifier for the resource to display")
    p.add_argument("-V", "--version", metavar="N", type=int, dest="version",
                   help="display the N-th saved version of the record rather than the current one")
    p.add_argument("-C", "--content", action="store_true", dest="content",
                   help="also list the content stored with the resource")
    p.add_argument("-H", "--history", action="store_true", dest="history",
                   help="list the versions of the record instead of a single one")

def execute(args, session):
    """
    execute this command: display a data resource
    """
    if not args.resid:
        raise session.fail("resource ID not specified", 2)

    try:
        res = session.resources.get(args.resid, session.who, args.version)
        if args.history:
            out = [r.to_dict() for r in session.resources.find_all_versions(res.id)]
        else:
            out = res.to_dict()
            if args.content:
                out['content'] = [ci.to_dict() for ci in session.contents.find_by_example(res.id)]
    except RepoException as ex:
        raise session.failure_for(ex, args.resid) from ex

    json.dump(out, sys.stdout, indent=2)
    sys.stdout.write("\n")
