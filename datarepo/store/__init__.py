"""
store:  the persistent store of data resource and content information records.

Three implementations are available, selected via the ``store.type`` configuration parameter:

``inmem``
    records are kept in memory for the life of the store (the default; useful for testing)
``fsbased``
    records are saved as JSON files below the directory given by ``store.dir``
``mongo``
    records are saved in the MongoDB database given by ``store.db_url``
"""
from collections.abc import Mapping

from .base import ResourceStore, StoreException, Page
from ..config import ConfigurationException

def create_store(config: Mapping) -> ResourceStore:
    """
    create the ResourceStore described by the ``store`` section of the given configuration
    :raises ConfigurationException:  if the store type is unrecognized or required parameters are
                                     missing
    """
    scfg = config.get('store', {})
    stype = scfg.get('type', 'inmem')

    if stype == 'inmem':
        from .inmem import InMemoryResourceStore
        return InMemoryResourceStore(scfg)

    if stype == 'fsbased':
        from .fsbased import FSBasedResourceStore
        if not scfg.get('dir'):
            raise ConfigurationException("Missing required configuration parameter: store.dir")
        return FSBasedResourceStore(scfg['dir'], scfg)

    if stype == 'mongo':
        from .mongo import MongoResourceStore
        return MongoResourceStore(scfg)

    raise ConfigurationException("Unrecognized store type: "+str(stype))
