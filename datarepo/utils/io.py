"""
Functions for persisting JSON records to files.

A record file is never rewritten in place:  new content goes to a temporary file in the same
directory which then replaces the old record via :py:func:`os.replace`.  A reader therefore sees
either the previous record or the new one, never a partially written one.
"""
from collections import OrderedDict
import json, os, tempfile, threading

from ..exceptions import InternalServerError
from .logging import blab, utilslog
log = utilslog

__all__ = [ 'record_lock', 'read_json', 'write_json' ]

_record_locks = {}
_registry_lock = threading.Lock()

def record_lock(recfile: str) -> threading.RLock:
    """
    return the lock that serializes updates to the given record file within this process.  The
    same lock is returned for every path that refers to the same file.
    """
    recfile = os.path.abspath(recfile)
    with _registry_lock:
        if recfile not in _record_locks:
            _record_locks[recfile] = threading.RLock()
        return _record_locks[recfile]

def read_json(recfile: str):
    """
    read a JSON record from the given file, preserving the order of its properties

    :raise OSError:     if the file cannot be opened or read
    :raise ValueError:  if the file does not contain valid JSON
    """
    with open(recfile) as fd:
        return json.load(fd, object_pairs_hook=OrderedDict)

def write_json(jsdata, recfile: str, indent: int=4):
    """
    replace the contents of a record file with the given JSON data.  If the data cannot be
    written completely, the previous contents of the file are left untouched.

    :param jsdata:       the JSON-serializable data to save
    :param str recfile:  the path of the record file to (over)write
    :param int indent:   the number of spaces to indent nested values by
    :raise InternalServerError:  if the data could not be written
    """
    destdir = os.path.dirname(os.path.abspath(recfile))
    with record_lock(recfile):
        tmpfile = None
        try:
            fd, tmpfile = tempfile.mkstemp(dir=destdir, suffix=".tmp",
                                           prefix="."+os.path.basename(recfile)+".")
            with os.fdopen(fd, 'w') as fo:
                json.dump(jsdata, fo, indent=indent, separators=(',', ': '))
            os.replace(tmpfile, recfile)
            blab(log, "Replaced record file %s", recfile)
        except (OSError, TypeError, ValueError) as ex:
            if tmpfile and os.path.exists(tmpfile):
                os.remove(tmpfile)
            raise InternalServerError("{0}: Failed to write JSON data to file: {1}"
                                      .format(recfile, str(ex)), cause=ex) from ex
