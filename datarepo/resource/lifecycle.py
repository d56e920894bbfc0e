"""
The lifecycle guard for data resources:  the state machine over a resource's states and the
policy that combines a resource's state with the caller's effective permission.

The combined policy is expressed as a decision table keyed on the resource state, the required
permission, and the effective permission of the caller (see :py:func:`decide`).  The table
reflects these rules, applied in order:

  1. a REVOKED resource is hidden (reported as not found) from anyone without ADMINISTRATE;
  2. a FIXED resource cannot be modified (WRITE or above) by anyone without ADMINISTRATE;
  3. otherwise, access is allowed if the effective permission is at least the required one.

A resource whose state is not set is treated as VOLATILE.
"""
import logging
from enum import Enum

from ..auth.permissions import Permission
from ..auth.principal import Principal
from ..auth.resolve import effective_permission
from ..exceptions import AccessForbidden, ResourceNotFound, BadArgument
from .model import State

log = logging.getLogger("datarepo.resource")

__all__ = [ "Outcome", "decide", "check_permission", "check_transition", "transition",
            "ALLOWED_TRANSITIONS" ]

class Outcome(Enum):
    """
    the possible results of an access decision
    """
    ALLOW = "allow"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not found"

def _build_table():
    table = {}
    for state in State:
        for required in Permission:
            for effective in Permission:
                if state == State.REVOKED and effective < Permission.ADMINISTRATE:
                    outcome = Outcome.NOT_FOUND
                elif state == State.FIXED and required >= Permission.WRITE and \
                     effective < Permission.ADMINISTRATE:
                    outcome = Outcome.FORBIDDEN
                elif effective >= required:
                    outcome = Outcome.ALLOW
                else:
                    outcome = Outcome.FORBIDDEN
                table[(state, required, effective)] = outcome
    return table

DECISION_TABLE = _build_table()

# the legal state transitions; REVOKED is terminal
ALLOWED_TRANSITIONS = {
    State.VOLATILE: frozenset([State.FIXED, State.REVOKED]),
    State.FIXED:    frozenset([State.REVOKED]),
    State.REVOKED:  frozenset()
}

def decide(state: State, required: Permission, effective: Permission) -> Outcome:
    """
    look up the outcome of an access request in the decision table
    :param State      state:  the resource's state; None is treated as VOLATILE
    :param Permission required:  the permission needed for the requested operation
    :param Permission effective:  the permission the caller holds on the resource
    """
    return DECISION_TABLE[(state or State.VOLATILE, Permission.of(required), Permission.of(effective))]

def check_permission(resource, caller: Principal, required: Permission) -> Permission:
    """
    ensure that the caller may access the resource at the required permission level, taking the
    resource's state into account.
    :return:  the caller's effective permission on the resource
    :raises ResourceNotFound:  if the resource is revoked and hidden from the caller
    :raises AccessForbidden:   if the caller's permission is insufficient
    """
    required = Permission.of(required)
    effective = effective_permission(resource, caller)
    outcome = decide(resource.state, required, effective)

    if outcome == Outcome.NOT_FOUND:
        log.debug("%s: hiding revoked resource %s", caller.id, resource.id)
        raise ResourceNotFound(resid=resource.id)
    if outcome == Outcome.FORBIDDEN:
        op = "{} resource {}".format(required.name, resource.id)
        if resource.state == State.FIXED and effective.at_least(required):
            op = "modify fixed resource {}".format(resource.id)
        raise AccessForbidden(who=caller.id, op=op)
    return effective

def check_transition(current: State, target: State):
    """
    ensure that a resource may move from its current state to the target one
    :raises BadArgument:  if the transition is not allowed
    """
    current = current or State.VOLATILE
    if target == current:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise BadArgument("Illegal state transition: {} -> {}".format(current.value, target.value))

def transition(resource, target: State, caller: Principal):
    """
    change the state of the resource, requiring ADMINISTRATE permission of the caller.  The
    resource is modified in place; the caller is responsible for persisting it.
    :raises BadArgument:      if the transition is not allowed
    :raises AccessForbidden:  if the caller does not hold ADMINISTRATE
    """
    check_permission(resource, caller, Permission.ADMINISTRATE)
    check_transition(resource.state, target)
    log.info("%s: changing state of %s from %s to %s", caller.id, resource.id,
             resource.state_or_default.value, target.value)
    resource.state = target
