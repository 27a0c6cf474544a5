"""
Permission codes and default role mappings.

Roles are fixed; each user carries one role. Admin (the store owner) has
every permission.
"""


class PermissionCategory:
    DEBTS = "DEBTS"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    EXPENSES = "EXPENSES"


# Each permission is defined as: (code, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_DEBTS", "View debts, balances and payment history", PermissionCategory.DEBTS),
    ("MANAGE_DEBTS", "Create debts", PermissionCategory.DEBTS),
    ("RECORD_PAYMENTS", "Record payments against debts", PermissionCategory.DEBTS),
    ("VIEW_INVENTORY", "View products, device identifiers and sold status", PermissionCategory.INVENTORY),
    ("MANAGE_PRODUCTS", "Create, edit and delete products and device identifiers", PermissionCategory.INVENTORY),
    ("RECORD_SALES", "Mark devices as sold", PermissionCategory.SALES),
    ("VIEW_EXPENSES", "View and search store expenses", PermissionCategory.EXPENSES),
    ("RECORD_EXPENSES", "Record and edit store expenses", PermissionCategory.EXPENSES),
    ("DELETE_EXPENSES", "Delete store expenses (store owner only)", PermissionCategory.EXPENSES),
]

ALL_PERMISSIONS = frozenset(code for code, _, _ in PERMISSION_DEFINITIONS)

ROLE_PERMISSIONS = {
    "admin": ALL_PERMISSIONS,
    "manager": ALL_PERMISSIONS - {"DELETE_EXPENSES"},
    "clerk": frozenset({
        "VIEW_DEBTS",
        "RECORD_PAYMENTS",
        "VIEW_INVENTORY",
        "RECORD_SALES",
        "VIEW_EXPENSES",
        "RECORD_EXPENSES",
    }),
}


def role_has_permission(role: str | None, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(role or "", frozenset())
