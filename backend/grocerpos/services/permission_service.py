# Overview: Role to permission mapping.

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "ADMIN": frozenset({"all"}),
    "MANAGER": frozenset({
        "dashboard", "products", "inventory", "sales", "purchases",
        "suppliers", "customers", "reports", "expenses",
    }),
    "CASHIER": frozenset({"dashboard", "pos", "sales"}),
    "ACCOUNTANT": frozenset({"dashboard", "reports", "expenses", "accounting"}),
}


class PermissionDeniedError(Exception):
    """Raised when a role lacks a permission."""


def has_permission(role: str, permission: str) -> bool:
    permissions = ROLE_PERMISSIONS.get(role, frozenset())
    return "all" in permissions or permission in permissions


def require_permission(role: str, permission: str) -> None:
    if not has_permission(role, permission):
        raise PermissionDeniedError(f"Role {role} lacks permission: {permission}")
