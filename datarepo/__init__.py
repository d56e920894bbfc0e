"""
datarepo:  the core of a metadata-and-content repository service.

The repository manages *data resources*--DataCite-style metadata records--together with the binary
content associated with them (*content information*).  This package provides the parts of such a
service that carry its rules:

  *  :py:mod:`~datarepo.auth` -- the caller identity (:py:class:`~datarepo.auth.principal.Principal`)
     and the resolution of the permission a caller holds on a resource
  *  :py:mod:`~datarepo.resource` -- the resource model, the lifecycle guard that ties permissions
     to a resource's state, and the services for creating, finding, and updating resources and
     their content
  *  :py:mod:`~datarepo.storage` -- the mapping of logical content paths to physical storage, the
     pluggable versioning backends, integrity checking of ingested bitstreams, and the packaging
     of multiple content elements into a single archive
  *  :py:mod:`~datarepo.store` -- interchangeable persistence stores for the metadata records

The web transport layer is not part of this package; it is expected to consume the services
exposed here.
"""
try:
    from .version import __version__
except ImportError:
    __version__ = "(unset)"

_REPOSYSNAME = "Data Repository"
_REPOSYSABBREV = "REPO"


class RepoSystem(object):
    """
    a description of the overall repository system and the subsystem being run
    """
    def __init__(self, subsysname="", subsysabbrev=""):
        self.system_name = _REPOSYSNAME
        self.system_abbrev = _REPOSYSABBREV
        self.subsystem_name = subsysname
        self.subsystem_abbrev = subsysabbrev
        self.system_version = __version__

    def __str__(self):
        out = "{} ({})".format(self.system_name, self.system_abbrev)
        if self.subsystem_name:
            out += ": " + self.subsystem_name
        return out + ", version " + self.system_version

system = RepoSystem()
