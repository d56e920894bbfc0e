"""
A content-addressable versioning service:  each bitstream is stored under its SHA-256 digest,
at ``<basepath>/objects/<aa>/<digest>`` where ``aa`` are the first two characters of the digest.
Identical content uploaded more than once (to any resource or path) is stored only once; the
digest serves as the version identifier.
"""
import os, re, tempfile
from collections.abc import Mapping, MutableMapping
from urllib.request import pathname2url

from .base import (VersioningService, VersionInfo, CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE,
                   FILENAME, VERSION)
from .simple import copy_stream
from ..paths import base_directory, uri_to_path
from ..integrity import ingest, sniff_media_type, format_checksum, DEFAULT_CHUNK_SIZE
from ...exceptions import InternalServerError, ResourceNotFound, BadArgument

__all__ = [ "HashedVersioningService" ]

_digest_re = re.compile(r'^[0-9a-f]{64}$')

class HashedVersioningService(VersioningService):
    """
    a versioning service that stores content by its SHA-256 digest
    """
    service_name = "hashed"
    algorithm = "sha256"

    @property
    def objects_dir(self) -> str:
        return os.path.join(base_directory(self._cfg), "objects")

    def object_path(self, digest: str) -> str:
        """
        return the local path where content with the given digest is stored
        """
        if not _digest_re.match(digest or ''):
            raise BadArgument("Not a valid {} digest: {}".format(self.algorithm, digest))
        return os.path.join(self.objects_dir, digest[:2], digest)

    def _discard(self, tmpfile):
        if tmpfile and os.path.exists(tmpfile):
            try:
                os.remove(tmpfile)
            except OSError as ex:
                self.log.warning("Unable to remove staged file %s: %s", tmpfile, str(ex))

    def write(self, resource_id: str, caller_id: str, path: str, stream,
              options: MutableMapping) -> MutableMapping:
        tmpdir = os.path.join(self.objects_dir, "tmp")
        tmpfile = None
        try:
            os.makedirs(tmpdir, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=tmpdir, delete=False) as fd:
                tmpfile = fd.name
                result = ingest(stream, fd, self.algorithm, DEFAULT_CHUNK_SIZE)
        except OSError as ex:
            self.log.error("Failed to stage content for %s:%s: %s", resource_id, path, str(ex))
            self._discard(tmpfile)
            raise InternalServerError("Unable to write content; upload canceled", cause=ex) from ex
        except InternalServerError:
            self._discard(tmpfile)
            raise

        dest = self.object_path(result.digest)
        try:
            if os.path.exists(dest):
                self.log.debug("%s: content for %s:%s already stored as %s", caller_id, resource_id,
                               path, result.digest)
                os.remove(tmpfile)
            else:
                os.makedirs(os.path.dirname(dest), exist_ok=True)
                os.replace(tmpfile, dest)
        except OSError as ex:
            raise InternalServerError("Unable to store content object", cause=ex) from ex

        options[CHECKSUM] = format_checksum(self.algorithm, result.digest)
        options[SIZE] = result.size
        options[CONTENT_URI] = "file://" + pathname2url(os.path.abspath(dest))
        options[VERSION] = result.digest
        if not options.get(MEDIA_TYPE):
            options[MEDIA_TYPE] = sniff_media_type(result.head, options.get(FILENAME) or path)
        return options

    def _locate(self, version_id, options):
        if version_id:
            return self.object_path(version_id)
        if options.get(CONTENT_URI):
            return uri_to_path(options[CONTENT_URI])
        if options.get(VERSION):
            return self.object_path(options[VERSION])
        raise ResourceNotFound("No content location recorded for requested content")

    def read(self, resource_id: str, caller_id: str, path: str, version_id: str, destination,
             options: Mapping):
        src = self._locate(version_id, options)
        if not os.path.isfile(src):
            self.log.error("Content object %s seems not to exist", src)
            raise ResourceNotFound("The requested content was not found on the server")
        try:
            copy_stream(src, destination)
        except OSError as ex:
            raise InternalServerError("Failed to read content stream", cause=ex) from ex

    def info(self, resource_id: str, path: str, version_id: str, options: Mapping) -> VersionInfo:
        src = self._locate(version_id, options)
        if not os.path.isfile(src):
            raise ResourceNotFound("The requested content was not found on the server")
        digest = os.path.basename(src)
        props = { CHECKSUM: format_checksum(self.algorithm, digest), SIZE: os.path.getsize(src),
                  CONTENT_URI: "file://" + pathname2url(os.path.abspath(src)) }
        return VersionInfo(resource_id, path, digest, [digest], props)
