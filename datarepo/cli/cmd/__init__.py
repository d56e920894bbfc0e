"""
package that provides the implementations of the subcommands of the ``repoadm`` command-line tool.
These commands operate directly on the configured metadata store and content storage.  The
subcommands include:
  - ``create``:   create a new data resource
  - ``show``:     display a data resource and a listing of its content
  - ``upload``:   store a file as content of a data resource
  - ``download``: retrieve a single content element of a data resource
  - ``package``:  retrieve the content of a data resource (or a folder of it) as a zip file
  - ``setstate``: fix or revoke a data resource

(See :py:mod:`datarepo.cli` for the protocol each subcommand module implements.)
"""

__all__ = [ "all_commands" ]

def all_commands():
    """
    return the modules implementing the subcommands of this package
    """
    from . import create, show, upload, download, package, setstate
    return [create, show, upload, download, package, setstate]
