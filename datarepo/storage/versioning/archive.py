"""
A versioning service that bundles the content of each resource into a single zip archive.

Each resource gets one archive, ``<basepath>/archives/<internal-id>.zip``.  Every write to a path
appends a new entry named ``<path>;<n>`` where ``n`` is the next version number for that path
(starting at 1); earlier versions remain in the archive and can still be read.
"""
import os, tempfile, threading, zipfile
from collections.abc import Mapping, MutableMapping
from typing import List
from urllib.parse import quote
from urllib.request import pathname2url

from .base import (VersioningService, VersionInfo, CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE,
                   FILENAME, VERSION)
from ..paths import base_directory
from ..integrity import ingest, sniff_media_type, format_checksum, DEFAULT_CHUNK_SIZE
from ...exceptions import InternalServerError, ResourceNotFound, BadArgument
from ...utils.logging import blab

__all__ = [ "ZipVersioningService" ]

VERSION_SEP = ';'

class ZipVersioningService(VersioningService):
    """
    a versioning service that stores all versions of a resource's content in one zip archive
    """
    service_name = "zip"
    algorithm = "sha1"
    _lock = threading.RLock()

    def archive_path(self, resource_id: str) -> str:
        """
        return the local path to the archive holding the content of the given resource
        """
        if not resource_id or not resource_id.strip():
            raise InternalServerError("Data resource has no internal identifier")
        return os.path.join(base_directory(self._cfg), "archives", quote(resource_id, safe='') + ".zip")

    @staticmethod
    def _entry_name(path, version):
        return "{}{}{}".format(path.lstrip('/'), VERSION_SEP, version)

    def _versions_in(self, zf: zipfile.ZipFile, path: str) -> List[int]:
        prefix = path.lstrip('/') + VERSION_SEP
        out = []
        for name in zf.namelist():
            if name.startswith(prefix):
                try:
                    out.append(int(name[len(prefix):]))
                except ValueError:
                    continue
        return sorted(out)

    def list_versions(self, resource_id: str, path: str) -> List[int]:
        """
        return the version numbers stored for the given path of a resource, lowest first
        """
        arch = self.archive_path(resource_id)
        if not os.path.isfile(arch):
            return []
        with self._lock:
            try:
                with zipfile.ZipFile(arch) as zf:
                    return self._versions_in(zf, path)
            except zipfile.BadZipFile as ex:
                raise InternalServerError("Corrupted content archive: "+arch, cause=ex) from ex

    def write(self, resource_id: str, caller_id: str, path: str, stream,
              options: MutableMapping) -> MutableMapping:
        if not path:
            raise BadArgument("Content path must not be empty")
        arch = self.archive_path(resource_id)
        staged = None
        try:
            # the upload only enters the archive once it has been received completely
            os.makedirs(os.path.dirname(arch), exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=os.path.dirname(arch), suffix=".part",
                                             delete=False) as fd:
                staged = fd.name
                result = ingest(stream, fd, self.algorithm, DEFAULT_CHUNK_SIZE)

            with self._lock:
                with zipfile.ZipFile(arch, 'a', compression=zipfile.ZIP_DEFLATED) as zf:
                    versions = self._versions_in(zf, path)
                    version = (versions[-1] + 1) if versions else 1
                    entry = self._entry_name(path, version)
                    self.log.debug("%s: adding %s to %s", caller_id, entry, arch)
                    zf.write(staged, entry)
        except zipfile.BadZipFile as ex:
            raise InternalServerError("Corrupted content archive: "+arch, cause=ex) from ex
        except OSError as ex:
            self.log.error("Failed to add content to archive %s: %s", arch, str(ex))
            raise InternalServerError("Unable to write content; upload canceled", cause=ex) from ex
        finally:
            if staged and os.path.exists(staged):
                os.remove(staged)

        options[CHECKSUM] = format_checksum(self.algorithm, result.digest)
        options[SIZE] = result.size
        options[CONTENT_URI] = "file://" + pathname2url(os.path.abspath(arch))
        options[VERSION] = str(version)
        if not options.get(MEDIA_TYPE):
            options[MEDIA_TYPE] = sniff_media_type(result.head, options.get(FILENAME) or path)
        return options

    def _select_version(self, zf, resource_id, path, version_id):
        versions = self._versions_in(zf, path)
        if not versions:
            raise ResourceNotFound("No content found at {}:{}".format(resource_id, path))
        if version_id is None:
            return versions[-1]
        try:
            version = int(version_id)
        except ValueError as ex:
            raise BadArgument("Not a valid version identifier: "+str(version_id), cause=ex) from ex
        if version not in versions:
            raise ResourceNotFound("Version {} of {}:{} not found".format(version, resource_id, path))
        return version

    def read(self, resource_id: str, caller_id: str, path: str, version_id: str, destination,
             options: Mapping):
        if version_id is None:
            version_id = options.get(VERSION)
        arch = self.archive_path(resource_id)
        if not os.path.isfile(arch):
            self.log.error("Content archive %s seems not to exist", arch)
            raise ResourceNotFound("The requested content was not found on the server")

        with self._lock:
            try:
                with zipfile.ZipFile(arch) as zf:
                    version = self._select_version(zf, resource_id, path, version_id)
                    with zf.open(self._entry_name(path, version)) as fd:
                        buf = fd.read(DEFAULT_CHUNK_SIZE)
                        while buf:
                            destination.write(buf)
                            blab(self.log, "extracted %d bytes", len(buf))
                            buf = fd.read(DEFAULT_CHUNK_SIZE)
            except zipfile.BadZipFile as ex:
                raise InternalServerError("Corrupted content archive: "+arch, cause=ex) from ex
            except OSError as ex:
                raise InternalServerError("Failed to read content stream", cause=ex) from ex

    def info(self, resource_id: str, path: str, version_id: str, options: Mapping) -> VersionInfo:
        arch = self.archive_path(resource_id)
        if not os.path.isfile(arch):
            raise ResourceNotFound("No content stored for resource "+resource_id)
        with self._lock:
            try:
                with zipfile.ZipFile(arch) as zf:
                    version = self._select_version(zf, resource_id, path, version_id)
                    zinfo = zf.getinfo(self._entry_name(path, version))
                    versions = self._versions_in(zf, path)
            except zipfile.BadZipFile as ex:
                raise InternalServerError("Corrupted content archive: "+arch, cause=ex) from ex

        props = { SIZE: zinfo.file_size, "modified": "%04d-%02d-%02dT%02d:%02d:%02d" % zinfo.date_time,
                  CONTENT_URI: "file://" + pathname2url(os.path.abspath(arch)) }
        return VersionInfo(resource_id, path, str(version), [str(v) for v in versions], props)
