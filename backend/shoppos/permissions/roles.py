# Overview: Role -> capability table. Each role row is independent; there is
# no inheritance between roles.

from __future__ import annotations

from dataclasses import dataclass, fields


SUPER_ADMIN = "super_admin"
MANAGER = "manager"
CASHIER = "cashier"

ROLES = (SUPER_ADMIN, MANAGER, CASHIER)

ROLE_LABELS = {
    SUPER_ADMIN: "Super Admin",
    MANAGER: "Manager",
    CASHIER: "Cashier",
}


@dataclass(frozen=True)
class CapabilitySet:
    manage_users: bool = False
    view_buying_price: bool = False
    view_profit: bool = False
    manage_products: bool = False
    view_reports: bool = False
    override_transactions: bool = False
    access_settings: bool = False
    view_activity_logs: bool = False

    def allows(self, code: str) -> bool:
        if code not in CAPABILITY_CODES:
            raise KeyError(f"Unknown capability: {code}")
        return bool(getattr(self, code))

    def granted(self) -> list[str]:
        return [code for code in CAPABILITY_CODES if getattr(self, code)]

    def to_dict(self) -> dict:
        return {code: getattr(self, code) for code in CAPABILITY_CODES}


CAPABILITY_CODES = tuple(f.name for f in fields(CapabilitySet))

NO_CAPABILITIES = CapabilitySet()

ROLE_CAPABILITIES = {
    SUPER_ADMIN: CapabilitySet(
        manage_users=True,
        view_buying_price=True,
        view_profit=True,
        manage_products=True,
        view_reports=True,
        override_transactions=True,
        access_settings=True,
        view_activity_logs=True,
    ),
    MANAGER: CapabilitySet(
        manage_users=False,
        view_buying_price=True,
        view_profit=True,
        manage_products=True,
        view_reports=True,
        override_transactions=False,
        access_settings=False,
        view_activity_logs=False,
    ),
    CASHIER: CapabilitySet(),
}


def permissions_for(role: str | None) -> CapabilitySet:
    """
    Capability set for a role.

    No role (or a role string this table does not know) grants nothing.
    """
    if role is None:
        return NO_CAPABILITIES
    return ROLE_CAPABILITIES.get(role, NO_CAPABILITIES)


def is_valid_role(role: str | None) -> bool:
    return role in ROLE_CAPABILITIES


def role_label(role: str) -> str:
    return ROLE_LABELS[role]
