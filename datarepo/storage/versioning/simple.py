"""
The default versioning service:  content is written to a unique, date-partitioned location on
the local filesystem while its SHA-1 checksum, size, and media type are computed.

Each write to the same logical path produces a new physical file (see
:py:mod:`datarepo.storage.paths`); it is up to the caller to remember the ``contentUri`` of each
stored version.
"""
import os
from collections.abc import Mapping, MutableMapping

from .base import (VersioningService, VersionInfo, CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE,
                   FILENAME)
from ..paths import data_uri_for_id, uri_to_path
from ..integrity import ingest, sniff_media_type, format_checksum, DEFAULT_CHUNK_SIZE
from ...exceptions import InternalServerError, ResourceNotFound

__all__ = [ "SimpleVersioningService", "copy_stream" ]

def copy_stream(srcpath: str, destination, chunksize: int=8192):
    """
    copy the contents of a file into a destination stream
    """
    with open(srcpath, 'rb') as fd:
        buf = fd.read(chunksize)
        while buf:
            destination.write(buf)
            buf = fd.read(chunksize)

class SimpleVersioningService(VersioningService):
    """
    a versioning service that stores each upload as a plain file, recording a SHA-1 checksum
    """
    service_name = "simple"
    algorithm = "sha1"

    def _prepare_destination(self, resource_id, path):
        uri = data_uri_for_id(resource_id, path, self._cfg)
        dest = uri_to_path(uri)
        self.log.debug("Preparing destination %s for storing user data", dest)
        try:
            os.makedirs(os.path.dirname(dest), exist_ok=True)
        except OSError as ex:
            self.log.error("Unable to create parent directories for %s: %s", dest, str(ex))
            raise InternalServerError("Unable to prepare storage location", cause=ex) from ex
        return uri, dest

    def _discard(self, dest):
        if os.path.exists(dest):
            try:
                os.remove(dest)
            except OSError as ex:
                self.log.warning("Unable to remove partial content file %s: %s", dest, str(ex))

    def _store(self, stream, dest, algorithm):
        try:
            with open(dest, 'wb') as fd:
                return ingest(stream, fd, algorithm, DEFAULT_CHUNK_SIZE)
        except OSError as ex:
            self.log.error("Failed to write content to %s: %s", dest, str(ex))
            self._discard(dest)
            raise InternalServerError("Unable to write content; upload canceled", cause=ex) from ex
        except BaseException:
            self._discard(dest)
            raise

    def write(self, resource_id: str, caller_id: str, path: str, stream,
              options: MutableMapping) -> MutableMapping:
        uri, dest = self._prepare_destination(resource_id, path)

        self.log.debug("%s: writing content for %s:%s", caller_id, resource_id, path)
        result = self._store(stream, dest, self.algorithm)

        options[CHECKSUM] = format_checksum(self.algorithm, result.digest)
        options[SIZE] = result.size
        options[CONTENT_URI] = uri
        self.log.debug("Assigned hash %s and size %d to %s", options[CHECKSUM], result.size, uri)

        if not options.get(MEDIA_TYPE):
            options[MEDIA_TYPE] = sniff_media_type(result.head, options.get(FILENAME) or path)
            self.log.debug("Assigned media type %s to %s", options[MEDIA_TYPE], uri)

        return options

    def _existing_content(self, options: Mapping) -> str:
        uri = options.get(CONTENT_URI)
        if not uri:
            raise ResourceNotFound("No content location recorded for requested content")
        src = uri_to_path(uri)
        if not os.path.isfile(src):
            self.log.error("Content at URI %s seems not to exist", uri)
            raise ResourceNotFound("The requested content was not found on the server")
        return src

    def read(self, resource_id: str, caller_id: str, path: str, version_id: str, destination,
             options: Mapping):
        src = self._existing_content(options)
        try:
            copy_stream(src, destination)
        except OSError as ex:
            self.log.error("Failed to read content stream from %s: %s", src, str(ex))
            raise InternalServerError("Failed to read content stream", cause=ex) from ex

    def info(self, resource_id: str, path: str, version_id: str, options: Mapping) -> VersionInfo:
        props = dict((k, options[k]) for k in (CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE)
                     if k in options)
        return VersionInfo(resource_id, path, version_id, [version_id] if version_id else [], props)
