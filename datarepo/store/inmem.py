"""
An implementation of the ResourceStore interface based on a simple in-memory look-up.

This is provided primarily for testing purposes
"""
import threading
from copy import deepcopy
from collections.abc import Mapping, MutableMapping
from typing import Iterator, List

from . import base

class InMemoryResourceStore(base.ResourceStore):
    """
    an in-memory ResourceStore implementation.  Mutations are serialized with a lock.
    """

    def __init__(self, config: Mapping=None, _dbdata: Mapping=None):
        """
        :param dict  config:  the store configuration (currently unused)
        :param dict _dbdata:  the initial data for the store.  (Note: internal knowledge of the
                              in-memory data structure required to use this input.)
        """
        super(InMemoryResourceStore, self).__init__(config)
        self._lock = threading.RLock()
        self._db = { base.RESOURCES: {}, base.HISTORY: {}, base.CONTENT: {} }
        if _dbdata:
            self._db.update(deepcopy(_dbdata))

    def get(self, id: str) -> MutableMapping:
        with self._lock:
            return deepcopy(self._db[base.RESOURCES].get(id))

    def insert_if_absent(self, resdata: Mapping) -> bool:
        with self._lock:
            if self.conflicts_with(resdata):
                return False
            self._db[base.RESOURCES][resdata['id']] = deepcopy(resdata)
            return True

    def update(self, resdata: Mapping) -> bool:
        with self._lock:
            if resdata['id'] not in self._db[base.RESOURCES]:
                return False
            self._db[base.RESOURCES][resdata['id']] = deepcopy(resdata)
            return True

    def save_history(self, resdata: Mapping):
        with self._lock:
            self._db[base.HISTORY].setdefault(resdata['id'], []).append(deepcopy(resdata))

    def select_history(self, id: str) -> List[MutableMapping]:
        with self._lock:
            return deepcopy(self._db[base.HISTORY].get(id, []))

    def insert_content(self, cidata: Mapping) -> bool:
        with self._lock:
            recs = self._db[base.CONTENT].setdefault(cidata['parentId'], [])
            for rec in recs:
                if rec['relativePath'] == cidata['relativePath'] and rec['version'] == cidata['version']:
                    return False
            recs.append(deepcopy(cidata))
            return True

    def _iter_resources(self) -> Iterator[MutableMapping]:
        with self._lock:
            recs = deepcopy(list(self._db[base.RESOURCES].values()))
        return iter(recs)

    def _iter_content(self, parent_id: str) -> Iterator[MutableMapping]:
        with self._lock:
            recs = deepcopy(self._db[base.CONTENT].get(parent_id, []))
        return iter(recs)
