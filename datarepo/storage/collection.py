"""
Packaging of multiple content elements into a single downloadable archive.

A :py:class:`CollectionPackager` streams the content of each requested element from the
versioning service that stored it directly into an entry of a zip archive written to an output
sink.  Because the archive is streamed, a failure partway through cannot be rolled back; instead,
it is logged and reported by downgrading the sink's status to 500.
"""
import logging, time, zipfile
from collections.abc import Mapping
from logging import Logger
from typing import Iterable, List

from .registry import VersioningServiceRegistry
from .versioning.base import CONTENT_URI, CHECKSUM, SIZE, VERSION
from ..exceptions import UnsupportedMediaType, InternalServerError

__all__ = [ "CollectionPackager", "ContentElement", "PackageSink", "ZIP_MEDIA_TYPE" ]

ZIP_MEDIA_TYPE = "application/zip"

class ContentElement(object):
    """
    a reference to a stored bitstream to be included in a package
    """

    def __init__(self, resource_id: str, relative_path: str, content_uri: str=None,
                 versioning_service: str=None, version: str=None, checksum: str=None,
                 content_length: int=-1):
        self.resource_id = resource_id
        self.relative_path = relative_path
        self.content_uri = content_uri
        self.versioning_service = versioning_service
        self.version = version
        self.checksum = checksum
        self.content_length = content_length

    @classmethod
    def from_content_information(cls, ci) -> "ContentElement":
        """
        create an element referring to the content described by a ContentInformation record
        """
        return cls(ci.parent_id, ci.relative_path, ci.content_uri, ci.versioning_service,
                   ci.version_id, ci.checksum, ci.size)

    def options(self) -> Mapping:
        """
        the properties of the element in the form expected by a versioning service's read()
        """
        out = { CONTENT_URI: self.content_uri, CHECKSUM: self.checksum, SIZE: self.content_length }
        if self.version:
            out[VERSION] = self.version
        return out

    def __repr__(self):
        return "ContentElement({!r}, {!r})".format(self.resource_id, self.relative_path)


class PackageSink(object):
    """
    the destination of a package:  an output stream together with a response status and headers
    that a transport layer can relay to the requester.
    """

    def __init__(self, output, status: int=200):
        self.output = output
        self.status = status
        self.headers = {}

    def set_header(self, name: str, value: str):
        self.headers[name] = value


class CollectionPackager(object):
    """
    a provider of content collections packaged as zip archives
    """
    scheme = "file"

    def __init__(self, registry: VersioningServiceRegistry, log: Logger=None):
        """
        :param VersioningServiceRegistry registry:  the services that can be used to read the
                                                    content of the elements
        """
        self._reg = registry
        if not log:
            log = logging.getLogger("datarepo.storage.collection")
        self.log = log

    @property
    def supported_media_types(self) -> List[str]:
        return [ZIP_MEDIA_TYPE]

    def supports_media_type(self, media_type: str) -> bool:
        """
        return True if this packager can produce packages of the given media type.  Media type
        parameters (e.g. ``;charset=...``) are ignored.
        """
        if not media_type:
            return False
        return media_type.split(';')[0].strip().lower() in self.supported_media_types

    def can_provide(self, scheme: str) -> bool:
        """
        return True if this packager can access content with the given URI scheme
        """
        return bool(scheme) and scheme.lower() == self.scheme

    def provide(self, elements: Iterable[ContentElement], media_type: str, sink: PackageSink):
        """
        write a package containing the content of the given elements to the sink.
        :param list elements:   the elements to include, in order
        :param str media_type:  the requested package format; only application/zip is supported
        :param PackageSink sink:  the destination of the package
        :raises UnsupportedMediaType:  if the requested format is not supported; nothing is
                                       written to the sink
        :raises InternalServerError:   if no versioning services are available; nothing is written
                                       to the sink
        """
        if not self.supports_media_type(media_type):
            raise UnsupportedMediaType(media_type, self.supported_media_types)
        if not self._reg or len(self._reg) == 0:
            self.log.error("No versioning service registered; unable to package content")
            raise InternalServerError("No versioning service available")

        sink.set_header("Content-Type", ZIP_MEDIA_TYPE)
        try:
            with zipfile.ZipFile(sink.output, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
                for elem in elements:
                    svc = self._reg.get(elem.versioning_service)
                    zinfo = zipfile.ZipInfo(elem.relative_path.lstrip('/'),
                                            time.localtime(time.time())[:6])
                    zinfo.compress_type = zipfile.ZIP_DEFLATED
                    if elem.content_length and elem.content_length > 0:
                        zinfo.file_size = elem.content_length
                    self.log.debug("Adding %s:%s to package", elem.resource_id, elem.relative_path)
                    with zf.open(zinfo, 'w') as entry:
                        svc.read(elem.resource_id, None, elem.relative_path, None, entry,
                                 elem.options())
            sink.status = 200
        except Exception as ex:
            # output may already be committed; report via the status only
            self.log.exception("Failed to package content: %s", str(ex))
            sink.status = 500
