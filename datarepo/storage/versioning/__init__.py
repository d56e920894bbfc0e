"""
The versioning services:  interchangeable backends for storing the bitstreams attached to data
resources.  The following services are available, keyed by their service names:

``simple``
    plain files in date-partitioned directories with SHA-1 checksums (the default)
``none``
    plain files without checksums, for when versioning is disabled
``zip``
    one zip archive per resource, with each upload to a path appended as a new version
``hashed``
    a content-addressable store keyed by SHA-256 digests
"""
from .base import VersioningService, VersionInfo
from .simple import SimpleVersioningService
from .none import NoneVersioningService
from .archive import ZipVersioningService
from .hashed import HashedVersioningService

SERVICE_CLASSES = {
    SimpleVersioningService.service_name: SimpleVersioningService,
    NoneVersioningService.service_name:   NoneVersioningService,
    ZipVersioningService.service_name:    ZipVersioningService,
    HashedVersioningService.service_name: HashedVersioningService
}
