"""
resource:  the data resource model and the rules governing a resource's lifecycle.  The services
that create and manage resources are in :py:mod:`datarepo.resource.service`.
"""
from .model import (Unknown, State, Identifier, RelatedIdentifier, Title, ResourceType, Agent,
                    DataResource, ContentInformation)
from .lifecycle import check_permission, check_transition, transition, decide, Outcome
