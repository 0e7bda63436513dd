"""
Permission codes and the fixed role -> permission table.

Permissions are granular (one action per permission) and grouped by
category for display. Roles are not editable at runtime; admin holds every
permission.
"""

# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    INVENTORY = "INVENTORY"
    PARTIES = "PARTIES"
    INVOICES = "INVOICES"
    LEDGER = "LEDGER"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # INVENTORY PERMISSIONS
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View items, stock levels and stock history",
        PermissionCategory.INVENTORY
    ),
    (
        "MANAGE_INVENTORY",
        "Manage Inventory",
        "Create, edit and deactivate inventory items",
        PermissionCategory.INVENTORY
    ),
    (
        "ADJUST_INVENTORY",
        "Adjust Inventory",
        "Correct stock levels outside the invoice flow",
        PermissionCategory.INVENTORY
    ),

    # PARTY / CUSTOMER PERMISSIONS
    (
        "VIEW_PARTIES",
        "View Parties",
        "View suppliers and trade buyers with their balances",
        PermissionCategory.PARTIES
    ),
    (
        "MANAGE_PARTIES",
        "Manage Parties",
        "Create, edit and delete parties",
        PermissionCategory.PARTIES
    ),
    (
        "VIEW_CUSTOMERS",
        "View Customers",
        "View retail customers",
        PermissionCategory.PARTIES
    ),
    (
        "MANAGE_CUSTOMERS",
        "Manage Customers",
        "Create and edit retail customers",
        PermissionCategory.PARTIES
    ),

    # INVOICE PERMISSIONS
    (
        "VIEW_INVOICES",
        "View Invoices",
        "View purchase and sale invoices",
        PermissionCategory.INVOICES
    ),
    (
        "CREATE_INVOICE",
        "Create Invoice",
        "Create purchase and sale invoices",
        PermissionCategory.INVOICES
    ),
    (
        "UPDATE_INVOICE",
        "Update Invoice",
        "Edit invoices (reverses and re-applies stock and balances)",
        PermissionCategory.INVOICES
    ),
    (
        "DELETE_INVOICE",
        "Delete Invoice",
        "Delete invoices (reverses stock and balances)",
        PermissionCategory.INVOICES
    ),

    # LEDGER PERMISSIONS
    (
        "VIEW_LEDGER",
        "View Ledger",
        "View receivables, payables and the ledger summary",
        PermissionCategory.LEDGER
    ),
    (
        "RECORD_SETTLEMENT",
        "Record Settlement",
        "Record payments against ledger entries",
        PermissionCategory.LEDGER
    ),
    (
        "MANAGE_LEDGER",
        "Manage Ledger",
        "Create manual ledger entries",
        PermissionCategory.LEDGER
    ),
    (
        "DELETE_LEDGER",
        "Delete Ledger Entry",
        "Delete manual ledger entries",
        PermissionCategory.LEDGER
    ),
]


# =============================================================================
# DEFAULT ROLE MAPPINGS
# =============================================================================

_SALES = [
    "VIEW_INVENTORY",
    "VIEW_PARTIES",
    "VIEW_CUSTOMERS",
    "VIEW_INVOICES",
    "CREATE_INVOICE",
    "VIEW_LEDGER",
    "RECORD_SETTLEMENT",
]

_MANAGER = _SALES + [
    "MANAGE_INVENTORY",
    "ADJUST_INVENTORY",
    "MANAGE_PARTIES",
    "MANAGE_CUSTOMERS",
    "UPDATE_INVOICE",
    "DELETE_INVOICE",
    "MANAGE_LEDGER",
]

DEFAULT_ROLE_PERMISSIONS = {
    "sales": _SALES,
    "manager": _MANAGER,
    # Admin gets ALL permissions
    "admin": [perm[0] for perm in PERMISSION_DEFINITIONS],
}


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_role_permissions(role: str) -> frozenset[str]:
    return frozenset(DEFAULT_ROLE_PERMISSIONS.get(role, ()))


def role_has_permission(role: str, code: str) -> bool:
    return code in get_role_permissions(role)
