# Overview: Role/capability model.
# Re-exports the public API so callers import from shoppos.permissions.

from .categories import CapabilityCategory
from .definitions import (
    CAPABILITY_DEFINITIONS,
    MANAGE_USERS,
    VIEW_BUYING_PRICE,
    VIEW_PROFIT,
    MANAGE_PRODUCTS,
    VIEW_REPORTS,
    OVERRIDE_TRANSACTIONS,
    ACCESS_SETTINGS,
    VIEW_ACTIVITY_LOGS,
)
from .roles import (
    SUPER_ADMIN,
    MANAGER,
    CASHIER,
    ROLES,
    ROLE_LABELS,
    ROLE_CAPABILITIES,
    NO_CAPABILITIES,
    CAPABILITY_CODES,
    CapabilitySet,
    permissions_for,
    is_valid_role,
    role_label,
)
from .helpers import (
    get_all_capability_codes,
    get_capabilities_by_category,
    get_capability_definition,
    validate_capability_code,
)

__all__ = [
    "CapabilityCategory",
    "CAPABILITY_DEFINITIONS",
    "MANAGE_USERS",
    "VIEW_BUYING_PRICE",
    "VIEW_PROFIT",
    "MANAGE_PRODUCTS",
    "VIEW_REPORTS",
    "OVERRIDE_TRANSACTIONS",
    "ACCESS_SETTINGS",
    "VIEW_ACTIVITY_LOGS",
    "SUPER_ADMIN",
    "MANAGER",
    "CASHIER",
    "ROLES",
    "ROLE_LABELS",
    "ROLE_CAPABILITIES",
    "NO_CAPABILITIES",
    "CAPABILITY_CODES",
    "CapabilitySet",
    "permissions_for",
    "is_valid_role",
    "role_label",
    "get_all_capability_codes",
    "get_capabilities_by_category",
    "get_capability_definition",
    "validate_capability_code",
]
