"""
storage:  the physical storage of the content attached to data resources.  This includes the
resolution of storage locations, the versioning services that store bitstreams, the derivation
of integrity metadata during ingest, and the packaging of multiple bitstreams into archives.
"""
from .paths import get_data_uri, data_uri_for_id, uri_to_path
from .integrity import ingest, sniff_media_type, checksum_of
from .versioning import (VersioningService, VersionInfo, SimpleVersioningService,
                         NoneVersioningService, ZipVersioningService, HashedVersioningService)
from .registry import VersioningServiceRegistry
from .collection import CollectionPackager, ContentElement, PackageSink, ZIP_MEDIA_TYPE
