"""
An implementation of the ResourceStore interface that persists records to JSON files on disk.

The records are organized under a root directory as follows:

``resources/<id>.json``
     the current resource record with internal identifier ``id``
``history/<id>.json``
     a list of the saved snapshots of that record
``content/<id>.json``
     a list of the content information records of that resource
"""
import os, threading
from pathlib import Path
from collections.abc import Mapping, MutableMapping
from typing import Iterator, List
from urllib.parse import quote

from . import base
from ..utils.io import read_json, write_json
from ..config import ConfigurationException

class FSBasedResourceStore(base.ResourceStore):
    """
    an implementation of ResourceStore in which the data is persisted to flat files on disk.
    """
    _locks = {}
    _class_lock = threading.Lock()

    def __init__(self, dbroot: str, config: Mapping=None):
        """
        :param str dbroot:  the root directory for the records; it must exist
        """
        self._root = Path(dbroot)
        if not self._root.is_dir():
            raise ConfigurationException("FSBasedResourceStore: %s: does not exist as a directory" % dbroot)
        super(FSBasedResourceStore, self).__init__(config)
        with self._class_lock:
            self._lock = self._locks.setdefault(str(self._root.resolve()), threading.RLock())

    def _recpath(self, collname, id):
        return self._root / collname / (quote(id, safe='')+".json")

    def _ensure_collection(self, collname):
        collpath = self._root / collname
        if not collpath.exists():
            os.makedirs(collpath, exist_ok=True)

    def _read_rec(self, collname, id):
        recpath = self._recpath(collname, id)
        if not recpath.is_file():
            return None
        try:
            return read_json(str(recpath))
        except ValueError as ex:
            raise base.StoreException(id+": Unable to read record as JSON: "+str(ex), cause=ex) from ex
        except OSError as ex:
            raise base.StoreException(str(recpath)+": file locking error: "+str(ex), cause=ex) from ex

    def _write_rec(self, collname, id, data):
        self._ensure_collection(collname)
        recpath = self._recpath(collname, id)
        exists = recpath.exists()
        write_json(data, str(recpath))
        return not exists

    def get(self, id: str) -> MutableMapping:
        if not id:
            return None
        return self._read_rec(base.RESOURCES, id)

    def insert_if_absent(self, resdata: Mapping) -> bool:
        with self._lock:
            if self.conflicts_with(resdata):
                return False
            self._write_rec(base.RESOURCES, resdata['id'], resdata)
            return True

    def update(self, resdata: Mapping) -> bool:
        with self._lock:
            if not self._recpath(base.RESOURCES, resdata['id']).is_file():
                return False
            self._write_rec(base.RESOURCES, resdata['id'], resdata)
            return True

    def save_history(self, resdata: Mapping):
        with self._lock:
            hist = self._read_rec(base.HISTORY, resdata['id']) or []
            hist.append(resdata)
            self._write_rec(base.HISTORY, resdata['id'], hist)

    def select_history(self, id: str) -> List[MutableMapping]:
        return self._read_rec(base.HISTORY, id) or []

    def insert_content(self, cidata: Mapping) -> bool:
        with self._lock:
            recs = self._read_rec(base.CONTENT, cidata['parentId']) or []
            for rec in recs:
                if rec['relativePath'] == cidata['relativePath'] and rec['version'] == cidata['version']:
                    return False
            recs.append(cidata)
            self._write_rec(base.CONTENT, cidata['parentId'], recs)
            return True

    def _iter_resources(self) -> Iterator[MutableMapping]:
        collpath = self._root / base.RESOURCES
        if not collpath.is_dir():
            return
        for recf in sorted(collpath.iterdir()):
            if recf.suffix == ".json":
                try:
                    yield read_json(str(recf))
                except ValueError as ex:
                    raise base.StoreException(recf.name+": Unable to read record as JSON",
                                              cause=ex) from ex

    def _iter_content(self, parent_id: str) -> Iterator[MutableMapping]:
        return iter(self._read_rec(base.CONTENT, parent_id) or [])
