"""
CLI command that retrieves a single content element of a data resource
"""
import argparse, os

from ...exceptions import RepoException

default_name = "download"
help = "retrieve a content element of a data resource"
description = \
"""Copy the content stored at a path of a data resource to a local file.  By default, the latest
version of the content is retrieved and saved under its file name in the working directory.
"""

def load_into(subparser: argparse.ArgumentParser):
    p = subparser
    p.add_argument("resid", metavar="ID", type=str,
                   help="an identifier for the resource holding the content")
    p.add_argument("path", metavar="PATH", type=str,
                   help="the path of the content within the resource")
    p.add_argument("-o", "--output", metavar="FILE", type=str, dest="output",
                   help="the file to write the content to")
    p.add_argument("-V", "--version", metavar="N", type=int, dest="version",
                   help="retrieve the N-th version of the content rather than the latest")

def execute(args, session):
    """
    execute this command: retrieve a single content element of a data resource.  No output file
    is left behind if the content cannot be retrieved.
    """
    if not args.resid:
        raise session.fail("resource ID not specified", 2)
    if not args.path or args.path.endswith('/'):
        raise session.fail("content path must refer to a file (use package for folders)", 2)

    dest = session.local_path(args.output or os.path.basename(args.path))
    try:
        res = session.resources.find_by_any_identifier(args.resid)
        with open(dest, 'wb') as fd:
            cis = session.contents.read(res, args.path, args.version, session.who, fd)
    except RepoException as ex:
        if os.path.exists(dest):
            os.remove(dest)
        raise session.failure_for(ex, f"{args.resid}:{args.path}") from ex
    except OSError as ex:
        raise session.fail(f"{dest}: unable to write file: {str(ex)}", 4, ex) from ex

    session.log.info("Saved %s:%s (version %s) to %s",
                     res.id, cis[0].relative_path, cis[0].version, dest)
