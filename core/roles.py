from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    ADMIN = "admin"
    OFFICE = "office"
    DRIVER = "driver"


class Capability(str, Enum):
    MANAGE_JOBS = "manage_jobs"
    DELETE_JOBS = "delete_jobs"
    VIEW_ALL_JOBS = "view_all_jobs"
    COMPLETE_ANY_JOB = "complete_any_job"
    COMPLETE_ASSIGNED_JOB = "complete_assigned_job"
    MANAGE_CUSTOMERS = "manage_customers"
    MANAGE_PRODUCTS = "manage_products"
    VIEW_USERS = "view_users"
    MANAGE_USERS = "manage_users"


_OFFICE = frozenset({
    Capability.MANAGE_JOBS,
    Capability.VIEW_ALL_JOBS,
    Capability.COMPLETE_ANY_JOB,
    Capability.COMPLETE_ASSIGNED_JOB,
    Capability.MANAGE_CUSTOMERS,
    Capability.MANAGE_PRODUCTS,
    Capability.VIEW_USERS,
})

_CAPABILITIES = {
    Role.ADMIN: frozenset(Capability),
    Role.OFFICE: _OFFICE,
    Role.DRIVER: frozenset({Capability.COMPLETE_ASSIGNED_JOB}),
}


def parse_role(value) -> Role:
    """Coerce a stored role string to ``Role``; raises ``ValueError`` for anything else."""
    if isinstance(value, Role):
        return value
    return Role(str(value).strip().lower())


def capabilities(role) -> FrozenSet[Capability]:
    try:
        return _CAPABILITIES[parse_role(role)]
    except ValueError:
        return frozenset()


def has_capability(role, capability: Capability) -> bool:
    return capability in capabilities(role)
