# Overview: Capability category constants for grouping related capabilities.


class CapabilityCategory:
    """Capability categories for organization and UI display."""
    USERS = "USERS"
    CATALOG = "CATALOG"
    FINANCE = "FINANCE"
    SALES = "SALES"
    SYSTEM = "SYSTEM"

    ALL = (USERS, CATALOG, FINANCE, SALES, SYSTEM)
