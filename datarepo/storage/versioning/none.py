"""
A versioning service used when versioning is administratively disabled:  content is passed
through to its storage location without computing a checksum or detecting its media type.
"""
import os, shutil
from collections.abc import Mapping, MutableMapping

from .base import VersionInfo, CONTENT_URI, SIZE
from .simple import SimpleVersioningService
from ...exceptions import InternalServerError

__all__ = [ "NoneVersioningService" ]

class NoneVersioningService(SimpleVersioningService):
    """
    a pass-through versioning service that records no integrity information
    """
    service_name = "none"

    def write(self, resource_id: str, caller_id: str, path: str, stream,
              options: MutableMapping) -> MutableMapping:
        uri, dest = self._prepare_destination(resource_id, path)
        try:
            with open(dest, 'wb') as fd:
                shutil.copyfileobj(stream, fd)
        except (OSError, ValueError) as ex:
            self.log.error("Failed to write content to %s: %s", dest, str(ex))
            self._discard(dest)
            raise InternalServerError("Unable to write content; upload canceled", cause=ex) from ex

        options[CONTENT_URI] = uri
        options[SIZE] = os.path.getsize(dest)
        return options

    def info(self, resource_id: str, path: str, version_id: str, options: Mapping) -> VersionInfo:
        return VersionInfo(resource_id, path, None, [], {CONTENT_URI: options.get(CONTENT_URI)})
