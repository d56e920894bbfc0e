"""
An implementation of the ResourceStore interface that uses a MongoDB database as its backend store
"""
import re
from collections.abc import Mapping, MutableMapping
from typing import Iterator, List, Sequence

from pymongo import MongoClient, ASCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from . import base
from ..auth.permissions import Permission
from ..resource.model import State, Unknown
from ..config import ConfigurationException

_dburl_re = re.compile(r"^mongodb://(\w+(:\S+)?@)?\w+(\.\w+)*(:\d+)?/\w+(\?\w.*)?$")

# set only for non-placeholder primary identifiers so that a sparse unique index can enforce
# their uniqueness
PRIMARY_KEY = "primaryKey"

class MongoResourceStore(base.ResourceStore):
    """
    an implementation of ResourceStore using a MongoDB database as the backend store.  Identifier
    uniqueness is enforced via unique indexes.

    In addition to the common configuration parameters, this implementation supports:

    ``db_url``
        the URL for the MongoDB connection, of the form,
        ``mongodb://``*[USER*``:``*PASS*``@``*]HOST[*``:``*PORT]*``/``*DBNAME*
    """

    def __init__(self, config: Mapping, dburl: str=None):
        """
        create the store with its connector to the MongoDB database

        :param dict config:  the configuration for the store
        :param str   dburl:  the URL of MongoDB database in the form,
                             'mongodb://USER:PW@HOST:PORT/DBNAME'; if not provided, the value of
                             the ``db_url`` configuration parameter is used.
        :raise ConfigurationException:  if the database's URL is provided neither as an
                             argument nor a configuration parameter.
        :raise ValueError:  if the specified database URL is of an incorrect form
        """
        super(MongoResourceStore, self).__init__(config)
        if not dburl:
            dburl = self._cfg.get("db_url")
            if not dburl:
                raise ConfigurationException("Missing required configuration parameter: db_url")
        if not _dburl_re.match(dburl):
            raise ValueError("MongoResourceStore: Bad dburl format (need "+
                             "'mongodb://[USER:PASS@]HOST[:PORT]/DBNAME'): "+dburl)
        self._dburl = dburl
        self._mngocli = None
        self._native = None

    def connect(self):
        """
        establish a connection to the database and ensure the needed indexes exist.
        """
        self._mngocli = MongoClient(self._dburl)
        self._native = self._mngocli.get_database()
        try:
            self._native[base.RESOURCES].create_index([("id", ASCENDING)], unique=True)
            self._native[base.RESOURCES].create_index([(PRIMARY_KEY, ASCENDING)], unique=True,
                                                      sparse=True)
            self._native[base.CONTENT].create_index([("parentId", ASCENDING),
                                                     ("relativePath", ASCENDING),
                                                     ("version", ASCENDING)], unique=True)
            self._native[base.HISTORY].create_index([("id", ASCENDING)])
        except PyMongoError as ex:
            raise base.StoreException("Failed to initialize database indexes: "+str(ex), cause=ex) from ex

    def disconnect(self):
        """
        close the connection to the database.
        """
        if self._mngocli:
            try:
                self._mngocli.close()
            finally:
                self._mngocli = None
                self._native = None

    @property
    def native(self):
        """
        the native pymongo database object.  Accessing this property will implicitly connect this
        store to the underlying MongoDB database.
        """
        if self._native is None:
            self.connect()
        return self._native

    @staticmethod
    def _for_storage(resdata: Mapping) -> MutableMapping:
        out = dict(resdata)
        primary = (resdata.get('identifier') or {}).get('value')
        out.pop(PRIMARY_KEY, None)
        if primary and not Unknown.is_placeholder(primary):
            out[PRIMARY_KEY] = primary
        return out

    @staticmethod
    def _from_storage(rec: MutableMapping) -> MutableMapping:
        if rec is not None:
            rec.pop(PRIMARY_KEY, None)
        return rec

    def get(self, id: str) -> MutableMapping:
        try:
            return self._from_storage(self.native[base.RESOURCES].find_one({"id": id}, {'_id': False}))
        except PyMongoError as ex:
            raise base.StoreException("Failed to access record with id=%s: %s" % (id, str(ex)),
                                      cause=ex) from ex

    def find_by_any_identifier(self, ident: str) -> MutableMapping:
        try:
            coll = self.native[base.RESOURCES]
            for key in ("id", "alternateIdentifiers.value", PRIMARY_KEY):
                rec = coll.find_one({key: ident}, {'_id': False})
                if rec:
                    return self._from_storage(rec)
            return None
        except PyMongoError as ex:
            raise base.StoreException("Failed to look up identifier %s: %s" % (ident, str(ex)),
                                      cause=ex) from ex

    def insert_if_absent(self, resdata: Mapping) -> bool:
        try:
            self.native[base.RESOURCES].insert_one(self._for_storage(resdata))
            return True
        except DuplicateKeyError:
            return False
        except PyMongoError as ex:
            raise base.StoreException("Failed to insert record with id=%s: %s" %
                                      (resdata.get('id'), str(ex)), cause=ex) from ex

    def update(self, resdata: Mapping) -> bool:
        try:
            result = self.native[base.RESOURCES].replace_one({"id": resdata['id']},
                                                             self._for_storage(resdata))
            return result.matched_count > 0
        except PyMongoError as ex:
            raise base.StoreException("Failed to update record with id=%s: %s" %
                                      (resdata.get('id'), str(ex)), cause=ex) from ex

    def save_history(self, resdata: Mapping):
        try:
            self.native[base.HISTORY].insert_one(dict(resdata))
        except PyMongoError as ex:
            raise base.StoreException("Failed to save history for id=%s: %s" %
                                      (resdata.get('id'), str(ex)), cause=ex) from ex

    def select_history(self, id: str) -> List[MutableMapping]:
        try:
            return list(self.native[base.HISTORY].find({"id": id}, {'_id': False})
                                                 .sort("_id", ASCENDING))
        except PyMongoError as ex:
            raise base.StoreException("Failed to select history for id=%s: %s" % (id, str(ex)),
                                      cause=ex) from ex

    def insert_content(self, cidata: Mapping) -> bool:
        try:
            self.native[base.CONTENT].insert_one(dict(cidata))
            return True
        except DuplicateKeyError:
            return False
        except PyMongoError as ex:
            raise base.StoreException("Failed to insert content record: "+str(ex), cause=ex) from ex

    def _iter_resources(self) -> Iterator[MutableMapping]:
        try:
            for rec in self.native[base.RESOURCES].find({}, {'_id': False}):
                yield self._from_storage(rec)
        except PyMongoError as ex:
            raise base.StoreException("Failed while selecting records: "+str(ex), cause=ex) from ex

    def _iter_content(self, parent_id: str) -> Iterator[MutableMapping]:
        try:
            for rec in self.native[base.CONTENT].find({"parentId": parent_id}, {'_id': False}):
                yield rec
        except PyMongoError as ex:
            raise base.StoreException("Failed while selecting records: "+str(ex), cause=ex) from ex

    @staticmethod
    def _build_filter(criteria: Mapping=None, last_update_from: float=None,
                      last_update_until: float=None, sids: Sequence[str]=None,
                      permission: Permission=None, include_revoked: bool=False) -> Mapping:
        conds = []
        criteria = criteria or {}
        if not include_revoked:
            conds.append({"state": {"$ne": State.REVOKED.value}})
        if criteria.get('state'):
            states = list(criteria['state'])
            if State.VOLATILE.value in states:
                states.append(None)
            conds.append({"state": {"$in": states}})
        for prop, key in (('resourceType', 'resourceType.value'),
                          ('typeGeneral', 'resourceType.typeGeneral'),
                          ('publisher', 'publisher'), ('publicationYear', 'publicationYear')):
            if criteria.get(prop):
                conds.append({key: criteria[prop]})
        if criteria.get('primaryIdentifiers'):
            conds.append({"identifier.value": {"$in": list(criteria['primaryIdentifiers'])}})
        if criteria.get('relatedIdentifiers') or criteria.get('relationType'):
            match = {}
            if criteria.get('relatedIdentifiers'):
                match['value'] = {"$in": list(criteria['relatedIdentifiers'])}
            if criteria.get('relationType'):
                match['relationType'] = criteria['relationType']
            conds.append({"relatedIdentifiers": {"$elemMatch": match}})

        if last_update_from is not None:
            conds.append({"lastUpdate": {"$gte": last_update_from}})
        if last_update_until is not None:
            conds.append({"lastUpdate": {"$lte": last_update_until}})

        if sids is not None:
            permission = Permission.of(permission or Permission.READ)
            allowed = [p.name for p in Permission if p >= permission]
            conds.append({"acls": {"$elemMatch": {"sid": {"$in": list(sids)},
                                                  "permission": {"$in": allowed}}}})

        if not conds:
            return {}
        return {"$and": conds}

    def select(self, criteria: Mapping=None, last_update_from: float=None,
               last_update_until: float=None, sids: Sequence[str]=None, permission: Permission=None,
               include_revoked: bool=False) -> Iterator[MutableMapping]:
        filt = self._build_filter(criteria, last_update_from, last_update_until, sids, permission,
                                  include_revoked)
        try:
            for rec in self.native[base.RESOURCES].find(filt, {'_id': False}):
                yield self._from_storage(rec)
        except PyMongoError as ex:
            raise base.StoreException("Failed while selecting records: "+str(ex), cause=ex) from ex

    def select_page(self, page: int=0, size: int=20, **constraints) -> base.Page:
        filt = self._build_filter(**constraints)
        try:
            coll = self.native[base.RESOURCES]
            total = coll.count_documents(filt)
            cursor = coll.find(filt, {'_id': False}).sort("id", ASCENDING)
            if size:
                cursor = cursor.skip(page*size).limit(size)
            return base.Page([self._from_storage(r) for r in cursor], page, size, total)
        except PyMongoError as ex:
            raise base.StoreException("Failed while selecting records: "+str(ex), cause=ex) from ex

    def select_content(self, parent_id: str, path: str=None, exact: bool=False, version: int=None,
                       tag: str=None) -> List[MutableMapping]:
        filt = {"parentId": parent_id}
        if path:
            filt["relativePath"] = path if exact else {"$regex": re.escape(path)}
        if version is not None:
            filt["version"] = version
        if tag:
            filt["tags"] = tag
        try:
            return list(self.native[base.CONTENT].find(filt, {'_id': False})
                                                 .sort([("relativePath", ASCENDING),
                                                        ("version", ASCENDING)]))
        except PyMongoError as ex:
            raise base.StoreException("Failed while selecting content records: "+str(ex),
                                      cause=ex) from ex
