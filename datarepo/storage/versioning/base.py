"""
The abstract interface for versioning services:  the pluggable backends that physically store,
retrieve, and describe the bitstreams attached to data resources.

A versioning service is identified by its :py:attr:`~VersioningService.service_name`, which must
be unique among the services registered with a
:py:class:`~datarepo.storage.registry.VersioningServiceRegistry`.  Content information records
remember the name of the service that stored their content so that it can later be read back
through the same service.

Information about stored content is exchanged with a service via a mutable ``options``
dictionary.  The following keys are recognized:

``contentUri``
     (str) the location of the stored content, set by :py:meth:`~VersioningService.write` and
     consulted by :py:meth:`~VersioningService.read`.
``checksum``
     (str) the checksum of the content in the form "algorithm:hexdigest".
``size``
     (int) the number of bytes in the content.
``mediaType``
     (str) the media type of the content; if set prior to a write, it is not overwritten.
``filename``
     (str) a filename hint used when sniffing the media type.
``version``
     (str) the version identifier assigned to the stored content, where the service supports it.
"""
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from logging import Logger
from typing import List

__all__ = [ "VersioningService", "VersionInfo", "CONTENT_URI", "CHECKSUM", "SIZE", "MEDIA_TYPE",
            "FILENAME", "VERSION" ]

CONTENT_URI = "contentUri"
CHECKSUM = "checksum"
SIZE = "size"
MEDIA_TYPE = "mediaType"
FILENAME = "filename"
VERSION = "version"

class VersionInfo(object):
    """
    a description of a stored version of some content
    """

    def __init__(self, resource_id: str, path: str, version_id: str=None, versions: List[str]=None,
                 properties: Mapping=None):
        """
        :param str resource_id:  the identifier of the resource the content belongs to
        :param str path:         the path of the content relative to the resource
        :param str version_id:   the identifier of the version being described (None if the
                                 service does not distinguish versions)
        :param list versions:    the identifiers of all versions available at the path
        :param dict properties:  other service-specific properties of the version
        """
        self.resource_id = resource_id
        self.path = path
        self.version_id = version_id
        self.versions = list(versions or [])
        self.properties = dict(properties or {})

    def to_dict(self):
        return { "resourceId": self.resource_id, "path": self.path, "versionId": self.version_id,
                 "versions": list(self.versions), "properties": dict(self.properties) }

    def __repr__(self):
        return "VersionInfo({!r}, {!r}, {!r})".format(self.resource_id, self.path, self.version_id)


class VersioningService(ABC):
    """
    an abstract backend for storing the bitstreams of data resources.

    All implementations accept the following common configuration parameters:

    ``basepath``
         (str) _required_.  the base location, as a ``file:`` URL, under which content is stored.
    ``storage.pattern``
         (str) _optional_.  the date pattern used to partition content below the base location
         (default: ``@{year}``).
    """

    def __init__(self, config: Mapping=None, log: Logger=None):
        """
        create the service
        :param dict config:  the configuration for the service; if not provided, :py:meth:`configure`
                             must be called before the service is used.
        :param Logger  log:  the logger to use for messages
        """
        if not log:
            log = logging.getLogger("datarepo.storage").getChild(self.service_name or "versioning")
        self.log = log
        self._cfg = {}
        if config is not None:
            self.configure(config)

    service_name: str = None

    def configure(self, config: Mapping):
        """
        (re-)configure this service
        """
        self._cfg = config

    @property
    def config(self) -> Mapping:
        return self._cfg

    @abstractmethod
    def write(self, resource_id: str, caller_id: str, path: str, stream,
              options: MutableMapping) -> MutableMapping:
        """
        store the bytes from the given stream as the content at a path of a resource.
        :param str resource_id:  the internal identifier of the resource the content belongs to
        :param str caller_id:    the identifier of the user requesting the write
        :param str path:         the path of the content relative to its resource
        :param stream:           a readable binary file-like object providing the content
        :param dict options:     the content properties; this is updated in place with the
                                 properties derived while storing the content (see module
                                 documentation).
        :return:  the updated options
        :raises InternalServerError:  if the content could not be stored
        """
        raise NotImplementedError()

    @abstractmethod
    def read(self, resource_id: str, caller_id: str, path: str, version_id: str, destination,
             options: Mapping):
        """
        copy the stored content at a path of a resource into the given destination stream
        :param str resource_id:  the internal identifier of the resource the content belongs to
        :param str caller_id:    the identifier of the user requesting the read
        :param str path:         the path of the content relative to its resource
        :param str version_id:   the version of the content to read; None for the latest one
        :param destination:      a writable binary file-like object
        :param dict options:     the properties of the content as recorded at write time
        :raises ResourceNotFound:     if the requested content does not exist
        :raises InternalServerError:  if the content could not be read
        """
        raise NotImplementedError()

    @abstractmethod
    def info(self, resource_id: str, path: str, version_id: str, options: Mapping) -> VersionInfo:
        """
        describe the stored content at a path of a resource
        """
        raise NotImplementedError()

    def __str__(self):
        return "<{} versioning service>".format(self.service_name)
