"""
The registry of versioning services available to the repository.

A :py:class:`VersioningServiceRegistry` is built once from the configuration (see
:py:meth:`VersioningServiceRegistry.from_config`) and handed to the components that need to
store or retrieve content; there is no global registry.
"""
import logging
from collections.abc import Mapping
from logging import Logger
from typing import Iterator, List

from .versioning import VersioningService, SERVICE_CLASSES
from ..exceptions import InternalServerError
from ..config import ConfigurationException

__all__ = [ "VersioningServiceRegistry", "DEFAULT_SERVICE" ]

DEFAULT_SERVICE = "simple"

class VersioningServiceRegistry(object):
    """
    a lookup of versioning services by their service names
    """

    def __init__(self, services: List[VersioningService]=None, default: str=None):
        """
        :param list services:  the services to register
        :param str   default:  the name of the service to use for new content; if not given, the
                               first registered service is the default.
        """
        self._svcs = {}
        self._default = default
        for svc in (services or []):
            self.register(svc)

    def register(self, service: VersioningService):
        """
        add a service to this registry
        :raises ValueError:  if a service with the same name is already registered
        """
        if service.service_name in self._svcs:
            raise ValueError("Versioning service already registered: "+service.service_name)
        self._svcs[service.service_name] = service
        if not self._default:
            self._default = service.service_name

    def get(self, name: str) -> VersioningService:
        """
        return the service registered with the given name
        :raises InternalServerError:  if no such service is registered
        """
        try:
            return self._svcs[name]
        except KeyError:
            raise InternalServerError("No versioning service registered with name "+str(name))

    @property
    def default_name(self) -> str:
        return self._default

    def active(self) -> VersioningService:
        """
        return the service that should be used to store new content
        :raises InternalServerError:  if the default service is not registered
        """
        if not self._svcs:
            raise InternalServerError("No versioning services registered")
        return self.get(self._default)

    @property
    def names(self) -> List[str]:
        return list(self._svcs.keys())

    def __contains__(self, name):
        return name in self._svcs

    def __iter__(self) -> Iterator[VersioningService]:
        return iter(list(self._svcs.values()))

    def __len__(self):
        return len(self._svcs)

    @classmethod
    def from_config(cls, config: Mapping, log: Logger=None) -> "VersioningServiceRegistry":
        """
        create a registry of configured services.  The ``versioning`` configuration section is
        consulted:

        ``service``
            (str) the name of the service used for new content (default: "simple")
        ``services``
            (list of str) the names of the services to instantiate (default: the active service
            only)

        Each service is configured with the complete given configuration.
        :raises ConfigurationException:  if an unknown service name is requested
        """
        if not log:
            log = logging.getLogger("datarepo.storage")
        vcfg = config.get('versioning', {})
        default = vcfg.get('service', DEFAULT_SERVICE)
        names = list(vcfg.get('services') or [default])
        if default not in names:
            names.append(default)

        out = cls(default=default)
        for name in names:
            if name not in SERVICE_CLASSES:
                raise ConfigurationException("Unknown versioning service requested: "+name)
            out.register(SERVICE_CLASSES[name](config, log.getChild(name)))
        log.debug("Registered versioning services: %s (default: %s)", ", ".join(names), default)
        return out
