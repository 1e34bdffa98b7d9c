# Overview: All capability definitions.
# Each capability is defined as: (code, name, description, category)

from .categories import CapabilityCategory


MANAGE_USERS = "manage_users"
VIEW_BUYING_PRICE = "view_buying_price"
VIEW_PROFIT = "view_profit"
MANAGE_PRODUCTS = "manage_products"
VIEW_REPORTS = "view_reports"
OVERRIDE_TRANSACTIONS = "override_transactions"
ACCESS_SETTINGS = "access_settings"
VIEW_ACTIVITY_LOGS = "view_activity_logs"


CAPABILITY_DEFINITIONS = [
    (
        MANAGE_USERS,
        "Manage Users",
        "List staff, assign roles and remove accounts",
        CapabilityCategory.USERS,
    ),
    (
        VIEW_BUYING_PRICE,
        "View Buying Price",
        "See product cost (buying price) in catalog and sale lines",
        CapabilityCategory.FINANCE,
    ),
    (
        VIEW_PROFIT,
        "View Profit",
        "See line and sale profit figures",
        CapabilityCategory.FINANCE,
    ),
    (
        MANAGE_PRODUCTS,
        "Manage Products",
        "Create and edit products, categories, brands, refills and discounts",
        CapabilityCategory.CATALOG,
    ),
    (
        VIEW_REPORTS,
        "View Reports",
        "Open sales reports and every cashier's sales history",
        CapabilityCategory.FINANCE,
    ),
    (
        OVERRIDE_TRANSACTIONS,
        "Override Transactions",
        "Override completed transactions",
        CapabilityCategory.SALES,
    ),
    (
        ACCESS_SETTINGS,
        "Access Settings",
        "Change store settings",
        CapabilityCategory.SYSTEM,
    ),
    (
        VIEW_ACTIVITY_LOGS,
        "View Activity Logs",
        "Read the staff activity log",
        CapabilityCategory.SYSTEM,
    ),
]
