"""
CLI command that creates a new data resource.
"""
import argparse, json, sys

from ...exceptions import RepoException
from ...resource.model import DataResource, Identifier, Title, ResourceType

default_name = "create"
help = "create a new data resource"
description = \
"""Create a new data resource with the given title.  The resource is created in the VOLATILE state
with the invoking user as its administrator.  Unless an identifier is given, the internal
identifier is assigned automatically.  The created record is written to standard out as JSON.
"""

TYPES_GENERAL = [ResourceType.DATASET, ResourceType.COLLECTION, ResourceType.IMAGE,
                 ResourceType.MODEL, ResourceType.SOFTWARE, ResourceType.TEXT, ResourceType.OTHER]

def load_into(subparser: argparse.ArgumentParser):
    """
    define this command's arguments into the given parser
    """
    p = subparser
    p.add_argument("title", metavar="TITLE", type=str,
                   help="the title of the new resource")
    p.add_argument("-t", "--type", metavar="TYPE", type=str, dest="restype", default="Dataset",
                   help="the resource type of the new resource (default: 'Dataset')")
    p.add_argument("-T", "--type-general", metavar="GENTYPE", type=str, dest="gentype",
                   default=ResourceType.DATASET,
                   help="the general resource type, one of "+", ".join(TYPES_GENERAL))
    p.add_argument("-d", "--doi", metavar="DOI", type=str, dest="doi",
                   help="the DOI to use as the primary identifier")
    p.add_argument("-i", "--id", metavar="ID", type=str, dest="internal_id",
                   help="the internal identifier to assign to the new resource")
    p.add_argument("-P", "--publisher", metavar="NAME", type=str, dest="publisher",
                   help="the publisher of the resource (default: the invoking user)")
    p.add_argument("-y", "--year", metavar="YEAR", type=str, dest="year",
                   help="the year of publication (default: the current year)")
    p.add_argument("--first-name", metavar="NAME", type=str, dest="first_name",
                   help="the given name of the creator (default: the invoking user)")
    p.add_argument("--last-name", metavar="NAME", type=str, dest="last_name",
                   help="the family name of the creator")

def execute(args, session):
    """
    execute this command: create a new data resource owned by the acting user
    """
    if not args.title:
        raise session.fail("resource title not specified", 2)
    gentype = (args.gentype or ResourceType.DATASET).upper()
    if gentype not in TYPES_GENERAL:
        raise session.fail("Unrecognized general resource type: "+args.gentype, 2)

    res = DataResource.with_doi(args.doi) if args.doi else DataResource()
    if args.internal_id is not None:
        res.alternate_identifiers.append(Identifier.internal(args.internal_id))
    res.titles.append(Title(args.title))
    res.resource_type = ResourceType(args.restype, gentype)
    res.publisher = args.publisher
    res.publication_year = args.year

    try:
        res = session.resources.create(res, session.who, args.first_name, args.last_name)
    except RepoException as ex:
        raise session.failure_for(ex, "Unable to create resource") from ex

    session.log.info("Created resource %s (%s)", res.id, res.primary_id)
    json.dump(res.to_dict(), sys.stdout, indent=2)
    sys.stdout.write("\n")
