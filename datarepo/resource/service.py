"""
The services for creating, finding, and updating data resources and the content attached to them.

These services combine the resource model with the persistent store, the versioning services, and
the lifecycle guard.  Operations that act on behalf of a caller take the caller's
:py:class:`~datarepo.auth.principal.Principal` explicitly.
"""
import logging, os, uuid
from datetime import datetime
from collections.abc import Mapping
from logging import Logger
from typing import List

from ..auth.permissions import Permission, AclEntry, are_acls_equal
from ..auth.principal import Principal
from ..exceptions import (BadArgument, ResourceAlreadyExists, ResourceNotFound, AccessForbidden,
                          InternalServerError)
from ..store.base import ResourceStore, Page
from ..storage.registry import VersioningServiceRegistry
from ..storage.collection import CollectionPackager, ContentElement, PackageSink, ZIP_MEDIA_TYPE
from ..storage.versioning.base import (CONTENT_URI, CHECKSUM, SIZE, MEDIA_TYPE, FILENAME, VERSION)
from .model import (DataResource, ContentInformation, Identifier, Agent, State, Unknown)
from . import lifecycle

__all__ = [ "DataResourceService", "ContentInformationService", "criteria_from_example" ]

def criteria_from_example(example: DataResource) -> Mapping:
    """
    convert an example resource into a set of selection criteria for a
    :py:class:`~datarepo.store.base.ResourceStore`.  Only the properties set on the example are
    used:  its state, resource type, publisher, publication year, primary identifier, and related
    identifiers.
    """
    out = {}
    if example is None:
        return out
    if example.state:
        out['state'] = [example.state.value]
    if example.resource_type:
        if example.resource_type.value:
            out['resourceType'] = example.resource_type.value
        if example.resource_type.type_general:
            out['typeGeneral'] = example.resource_type.type_general
    if example.publisher:
        out['publisher'] = example.publisher
    if example.publication_year:
        out['publicationYear'] = example.publication_year
    if example.primary_id and not Unknown.is_placeholder(example.primary_id):
        out['primaryIdentifiers'] = [example.primary_id]
    if example.related_identifiers:
        vals = [r.value for r in example.related_identifiers if r.value]
        if vals:
            out['relatedIdentifiers'] = vals
        rtypes = set(r.relation_type for r in example.related_identifiers if r.relation_type)
        if len(rtypes) == 1:
            out['relationType'] = rtypes.pop()
    return out


class DataResourceService(object):
    """
    a service for creating and managing data resources
    """

    def __init__(self, store: ResourceStore, config: Mapping=None, log: Logger=None):
        """
        :param ResourceStore store:  the persistent store for resource records
        :param dict config:  the service configuration
        :param Logger log:   the logger to use for messages
        """
        self.store = store
        self.cfg = config or {}
        if not log:
            log = logging.getLogger("datarepo.resource")
        self.log = log

    def create(self, resource: DataResource, caller: Principal, first_name: str=None,
               last_name: str=None) -> DataResource:
        """
        validate, complete, and save a new data resource.  Missing properties are set to defaults:

          *  if no INTERNAL alternate identifier is set, one is assigned:  the DOI if one was
             given as the primary identifier, otherwise a random UUID.
          *  if no primary identifier is set, the to-be-assigned placeholder is used.
          *  the creators default to the caller (named by ``first_name`` and ``last_name``, if
             given); the publisher defaults to the caller's identifier; the publication year
             defaults to the current year.
          *  the caller is always granted ADMINISTRATE permission.

        :param DataResource resource:  the resource to create; it is updated in place
        :param Principal      caller:  the identity of the user creating the resource
        :return:  the created resource
        :raises BadArgument:  if the internal identifier is blank or the resource lacks a title or
                              a resource type
        :raises ResourceAlreadyExists:  if a resource with the same internal or primary identifier
                              already exists
        """
        internal = resource.internal_identifier
        if internal is not None and (not internal.value or not internal.value.strip()):
            raise BadArgument("Internal identifier must not be empty")
        if not resource.titles:
            raise BadArgument("A resource must have at least one title")
        if not resource.resource_type:
            raise BadArgument("A resource must have a resource type")

        if internal is None:
            primary = resource.primary_id
            iid = primary if primary and not Unknown.is_placeholder(primary) else str(uuid.uuid4())
            resource.alternate_identifiers.append(Identifier.internal(iid))
        if not resource.primary_id:
            resource.identifier = Identifier(Unknown.TO_BE_ASSIGNED_OR_ANNOUNCED_LATER, Identifier.DOI)

        if not resource.creators:
            resource.creators = [Agent(first_name or caller.firstname or caller.id,
                                       last_name or caller.lastname)]
        if not resource.publisher:
            resource.publisher = caller.id
        if not resource.publication_year:
            resource.publication_year = str(datetime.now().year)
        if AclEntry(caller.id, Permission.ADMINISTRATE) not in resource.acls:
            resource.acls.grant(caller.id, Permission.ADMINISTRATE)
        if not resource.state:
            resource.state = State.VOLATILE

        resource.touch()
        data = resource.to_dict()
        if not self.store.insert_if_absent(data):
            raise ResourceAlreadyExists("Resource with identifier {} ({}) already exists"
                                        .format(resource.id, resource.primary_id))
        self.store.save_history(data)
        self.log.info("%s: created resource %s", caller.id, resource.id)
        return resource

    def find_by_any_identifier(self, ident: str, version: int=None) -> DataResource:
        """
        return the resource with the given identifier, which may be its internal, alternate, or
        primary identifier.
        :param int version:  the record version to return; if None, the current one is returned
        :raises ResourceNotFound:  if no such resource (or version) exists
        """
        rec = self.store.find_by_any_identifier(ident)
        if not rec:
            raise ResourceNotFound(resid=ident)
        if version is not None and rec.get('version') != version:
            for snap in self.store.select_history(rec['id']):
                if snap.get('version') == version:
                    return DataResource.from_dict(snap)
            raise ResourceNotFound("Version {} of resource {} was not found".format(version, ident),
                                   resid=ident)
        return DataResource.from_dict(rec)

    def get(self, ident: str, caller: Principal, version: int=None) -> DataResource:
        """
        return the resource with the given identifier on behalf of the caller
        :raises ResourceNotFound:  if no such resource exists or it is revoked and hidden from the
                                   caller
        :raises AccessForbidden:   if the caller does not have READ permission
        """
        out = self.find_by_any_identifier(ident, version)
        lifecycle.check_permission(out, caller, Permission.READ)
        return out

    def find_all_versions(self, ident: str) -> List[DataResource]:
        """
        return all the saved versions of the resource with the given identifier, oldest first
        :raises ResourceNotFound:  if no such resource exists
        """
        rec = self.store.find_by_any_identifier(ident)
        if not rec:
            raise ResourceNotFound(resid=ident)
        return [DataResource.from_dict(r) for r in self.store.select_history(rec['id'])]

    def _page(self, page, size, **constraints) -> Page:
        out = self.store.select_page(page, size, **constraints)
        out.items = [DataResource.from_dict(r) for r in out.items]
        return out

    def find_all(self, example: DataResource=None, last_update_from: float=None,
                 last_update_until: float=None, include_revoked: bool=False, page: int=0,
                 size: int=20) -> Page:
        """
        return a page of the resources matching the given example regardless of their ACLs
        """
        return self._page(page, size, criteria=criteria_from_example(example),
                          last_update_from=last_update_from, last_update_until=last_update_until,
                          include_revoked=include_revoked)

    def find_all_filtered(self, example: DataResource=None, last_update_from: float=None,
                          last_update_until: float=None, sids: List[str]=None,
                          permission: Permission=Permission.READ, include_revoked: bool=False,
                          page: int=0, size: int=20) -> Page:
        """
        return a page of the resources matching the given example whose ACLs grant at least the
        given permission to one of the given subject identities
        """
        return self._page(page, size, criteria=criteria_from_example(example),
                          last_update_from=last_update_from, last_update_until=last_update_until,
                          sids=list(sids or []), permission=permission,
                          include_revoked=include_revoked)

    def find_by_example(self, example: DataResource, last_update_from: float=None,
                        last_update_until: float=None, caller: Principal=None, page: int=0,
                        size: int=20) -> Page:
        """
        return a page of the resources matching the given example that are visible to the caller.
        Administrators see all resources, including revoked ones; services holding a service
        role see all resources that are not revoked; all others see only the non-revoked
        resources their identities have READ permission on.
        """
        if not caller:
            caller = Principal.anonymous()
        if caller.is_administrator:
            return self.find_all(example, last_update_from, last_update_until, True, page, size)
        if caller.service_permission() is not None:
            return self.find_all(example, last_update_from, last_update_until, False, page, size)
        return self.find_all_filtered(example, last_update_from, last_update_until,
                                      caller.identities, Permission.READ, False, page, size)

    def _save(self, resource: DataResource, current_version: int):
        resource.version = current_version
        resource.touch()
        data = resource.to_dict()
        if not self.store.update(data):
            raise ResourceNotFound(resid=resource.id)
        self.store.save_history(data)

    def update(self, resource: DataResource, caller: Principal) -> DataResource:
        """
        replace the saved resource with the given updated version.  The caller must have WRITE
        permission; changes to the ACL or the state additionally require ADMINISTRATE.
        :raises ResourceNotFound:  if the resource does not exist (or is hidden from the caller)
        :raises AccessForbidden:   if the caller lacks the needed permission
        :raises BadArgument:       if the update requests an illegal state transition or removes
                                   the title or resource type
        """
        current = self.find_by_any_identifier(resource.id)
        lifecycle.check_permission(current, caller, Permission.WRITE)

        state_changed = resource.state_or_default != current.state_or_default
        if state_changed or not are_acls_equal(list(current.acls), list(resource.acls)):
            lifecycle.check_permission(current, caller, Permission.ADMINISTRATE)
        if state_changed:
            lifecycle.check_transition(current.state, resource.state_or_default)
        if not resource.titles or not resource.resource_type:
            raise BadArgument("A resource must have at least one title and a resource type")

        self._save(resource, current.version)
        self.log.info("%s: updated resource %s", caller.id, resource.id)
        return resource

    def _transition(self, ident: str, target: State, caller: Principal) -> DataResource:
        res = self.find_by_any_identifier(ident)
        lifecycle.transition(res, target, caller)
        self._save(res, res.version)
        return res

    def fix(self, ident: str, caller: Principal) -> DataResource:
        """
        move the resource into the FIXED state; ADMINISTRATE permission is required.
        """
        return self._transition(ident, State.FIXED, caller)

    def revoke(self, ident: str, caller: Principal) -> DataResource:
        """
        move the resource into the REVOKED state; ADMINISTRATE permission is required.
        """
        return self._transition(ident, State.REVOKED, caller)


class ContentInformationService(object):
    """
    a service for storing and retrieving the content attached to data resources
    """

    def __init__(self, store: ResourceStore, registry: VersioningServiceRegistry,
                 config: Mapping=None, log: Logger=None):
        """
        :param ResourceStore store:  the persistent store for content information records
        :param VersioningServiceRegistry registry:  the available versioning services
        :param dict config:  the service configuration; the ``readonly`` parameter is consulted
        :param Logger log:   the logger to use for messages
        """
        self.store = store
        self.registry = registry
        self.cfg = config or {}
        if not log:
            log = logging.getLogger("datarepo.resource.content")
        self.log = log
        self.packager = CollectionPackager(registry, self.log.getChild("package"))

    def create(self, template: ContentInformation, resource: DataResource, path: str, stream,
               caller: Principal, force: bool=False) -> ContentInformation:
        """
        store the content from the given stream at a path of a resource.
        :param ContentInformation template:  properties to apply to the new content record
                                   (filename, media type, tags, metadata); may be None
        :param DataResource resource:  the resource to attach the content to
        :param str path:           the path of the content relative to the resource
        :param stream:             a readable binary file-like object providing the content
        :param Principal caller:   the identity of the user uploading the content
        :param bool force:         if True, a new version is stored when content already exists at
                                   the path; otherwise, this is an error
        :return:  the record describing the stored content
        :raises AccessForbidden:   if the repository is read-only or the caller lacks WRITE
                                   permission on the resource
        :raises ResourceAlreadyExists:  if content exists at the path and ``force`` is False
        :raises BadArgument:       if the path is empty or refers to a folder
        """
        if self.cfg.get('readonly'):
            raise AccessForbidden("Repository is in read-only mode", who=caller.id)
        if not path or not path.strip('/'):
            raise BadArgument("Content path must not be empty")
        if path.endswith('/'):
            raise BadArgument("Content path must not refer to a folder: "+path)
        path = path.lstrip('/')
        lifecycle.check_permission(resource, caller, Permission.WRITE)

        existing = self.store.select_content(resource.id, path, exact=True)
        if existing and not force:
            raise ResourceAlreadyExists("Content already exists at {}:{}".format(resource.id, path))
        version = max(r.get('version') or 0 for r in existing) + 1 if existing else 1

        options = { FILENAME: os.path.basename(path) }
        if template and template.filename:
            options[FILENAME] = template.filename
        if template and template.media_type:
            options[MEDIA_TYPE] = template.media_type

        svc = self.registry.active()
        svc.write(resource.id, caller.id, path, stream, options)

        ci = ContentInformation(resource.id, path, version)
        ci.filename = options[FILENAME]
        ci.checksum = options.get(CHECKSUM)
        ci.size = options.get(SIZE, -1)
        ci.media_type = options.get(MEDIA_TYPE)
        ci.content_uri = options.get(CONTENT_URI)
        ci.version_id = options.get(VERSION)
        ci.versioning_service = svc.service_name
        ci.upload_date = datetime.now().isoformat()
        if template:
            ci.tags = list(template.tags)
            ci.metadata = dict(template.metadata)

        if not self.store.insert_content(ci.to_dict()):
            raise ResourceAlreadyExists("Content already exists at {}:{} (version {})"
                                        .format(resource.id, path, version))
        self.log.info("%s: stored %s:%s (version %d) via %s", caller.id, resource.id, path,
                      version, svc.service_name)
        return ci

    def get_content_information(self, resource_id: str, path: str, version: int=None) -> ContentInformation:
        """
        return the record describing the content at a path of a resource
        :param int version:  the version to describe; if None, the latest one is returned
        :raises ResourceNotFound:  if no such content exists
        """
        recs = self.store.select_content(resource_id, path.lstrip('/'), exact=True, version=version)
        if not recs:
            raise ResourceNotFound("No content found at {}:{}".format(resource_id, path),
                                   resid=resource_id)
        return ContentInformation.from_dict(recs[-1])

    def find_by_example(self, resource_id: str, path: str=None, exact: bool=False, version: int=None,
                        tag: str=None) -> List[ContentInformation]:
        """
        return the records describing the content of a resource that match the given constraints.
        If ``exact`` is False, ``path`` matches all content whose relative path contains it.
        """
        return [ContentInformation.from_dict(r)
                for r in self.store.select_content(resource_id, path, exact, version, tag)]

    @staticmethod
    def _latest_per_path(cis: List[ContentInformation]) -> List[ContentInformation]:
        latest = {}
        for ci in cis:
            if ci.relative_path not in latest or ci.version > latest[ci.relative_path].version:
                latest[ci.relative_path] = ci
        return [latest[p] for p in sorted(latest)]

    def read(self, resource: DataResource, path: str, version: int, caller: Principal, destination,
             media_type: str=ZIP_MEDIA_TYPE) -> List[ContentInformation]:
        """
        write the content at a path of a resource to a destination stream.  If the path refers to
        a folder (i.e. it is empty or ends with "/"), the latest versions of all content below it
        are delivered as a package of the given media type.
        :return:  the records describing the delivered content
        :raises ResourceNotFound:  if no content exists at the path
        :raises AccessForbidden:   if the caller lacks READ permission on the resource
        :raises UnsupportedMediaType:  if a package is requested in an unsupported format
        :raises InternalServerError:   if the content could not be delivered
        """
        lifecycle.check_permission(resource, caller, Permission.READ)
        path = (path or '').lstrip('/')

        if path and not path.endswith('/'):
            ci = self.get_content_information(resource.id, path, version)
            svc = self.registry.get(ci.versioning_service)
            elem = ContentElement.from_content_information(ci)
            svc.read(resource.id, caller.id, ci.relative_path, ci.version_id, destination,
                     elem.options())
            return [ci]

        cis = [ci for ci in self.find_by_example(resource.id) if ci.relative_path.startswith(path)]
        cis = self._latest_per_path(cis)
        if not cis:
            raise ResourceNotFound("No content found below {}:{}".format(resource.id, path or "/"),
                                   resid=resource.id)

        sink = PackageSink(destination)
        self.packager.provide([ContentElement.from_content_information(ci) for ci in cis],
                              media_type, sink)
        if sink.status != 200:
            raise InternalServerError("Failed to package content of "+resource.id)
        return cis
