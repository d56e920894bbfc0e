"""
CLI command that retrieves the content of a data resource as a zip file
"""
import argparse, os

from ...exceptions import RepoException
from ...storage.collection import ZIP_MEDIA_TYPE

default_name = "package"
help = "retrieve the content of a data resource as a zip file"
description = \
"""Package the latest versions of all content of a data resource, or of the content below a folder
within it, into a single zip file.
"""

def load_into(subparser: argparse.ArgumentParser):
    p = subparser
    p.add_argument("resid", metavar="ID", type=str,
                   help="an identifier for the resource holding the content")
    p.add_argument("folder", metavar="FOLDER", type=str, nargs="?", default="",
                   help="the folder within the resource to package (default: all content)")
    p.add_argument("-o", "--output", metavar="FILE", type=str, dest="output",
                   help="the file to write the package to (default: ID.zip)")
    p.add_argument("-m", "--media-type", metavar="TYPE", type=str, dest="media_type",
                   default=ZIP_MEDIA_TYPE,
                   help="the format of the package (default: "+ZIP_MEDIA_TYPE+")")

def execute(args, session):
    """
    execute this command: package the content of a data resource
    """
    if not args.resid:
        raise session.fail("resource ID not specified", 2)
    folder = args.folder or ""
    if folder and not folder.endswith('/'):
        folder += '/'

    try:
        res = session.resources.find_by_any_identifier(args.resid)
    except RepoException as ex:
        raise session.failure_for(ex, args.resid) from ex

    dest = session.local_path(args.output or res.id.replace('/', '_') + ".zip")
    try:
        with open(dest, 'wb') as fd:
            cis = session.contents.read(res, folder, None, session.who, fd, args.media_type)
    except RepoException as ex:
        if os.path.exists(dest):
            os.remove(dest)
        raise session.failure_for(ex, f"{args.resid}:{folder or '/'}") from ex
    except OSError as ex:
        raise session.fail(f"{dest}: unable to write file: {str(ex)}", 4, ex) from ex

    session.log.info("Packaged %d file(s) from %s into %s", len(cis), res.id, dest)
