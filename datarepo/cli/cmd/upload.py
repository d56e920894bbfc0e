"""
CLI command that stores a file as content of a data resource
"""
import argparse, os, json, sys

from ...exceptions import RepoException
from ...resource.model import ContentInformation

default_name = "upload"
help = "store a file as content of a data resource"
description = \
"""Store the contents of a local file at a path within a data resource.  If content already exists
at that path, the command fails unless --force is given, in which case a new version is stored.
The record describing the stored content is written to standard out as JSON.
"""

def load_into(subparser: argparse.ArgumentParser):
    """
    define this command's arguments into the given parser
    """
    p = subparser
    p.add_argument("resid", metavar="ID", type=str,
                   help="an identifier for the resource to add content to")
    p.add_argument("file", metavar="FILE", type=str,
                   help="the local file to upload")
    p.add_argument("-p", "--path", metavar="PATH", type=str, dest="path",
                   help="the path to store the file at within the resource (default: the file's name)")
    p.add_argument("-m", "--media-type", metavar="TYPE", type=str, dest="media_type",
                   help="the media type of the file (default: determined from its content)")
    p.add_argument("-t", "--tag", metavar="TAG", type=str, dest="tags", action="append",
                   help="a tag to attach to the content (may be repeated)")
    p.add_argument("-f", "--force", action="store_true", dest="force",
                   help="store a new version if content already exists at the path")

def execute(args, session):
    """
    execute this command: store a file as content of a data resource
    """
    if not args.resid:
        raise session.fail("resource ID not specified", 2)
    src = session.local_path(args.file) if args.file else None
    if not src or not os.path.isfile(src):
        raise session.fail(f"{args.file}: file not found", 3)
    path = args.path or os.path.basename(src)

    template = ContentInformation()
    template.filename = os.path.basename(path)
    template.media_type = args.media_type
    template.tags = list(args.tags or [])

    try:
        res = session.resources.find_by_any_identifier(args.resid)
        with open(src, 'rb') as fd:
            ci = session.contents.create(template, res, path, fd, session.who, args.force)
    except RepoException as ex:
        raise session.failure_for(ex, f"{args.resid}:{path}") from ex
    except OSError as ex:
        raise session.fail(f"{args.file}: unable to read file: {str(ex)}", 3, ex) from ex

    session.log.info("Stored %s as %s:%s (version %d)", args.file, res.id, ci.relative_path, ci.version)
    json.dump(ci.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
