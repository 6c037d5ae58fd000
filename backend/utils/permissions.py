# backend/utils/permissions.py
from typing import Dict

SUPERADMIN = "superadmin"
ADMIN = "admin"
USER = "user"

ROLES = (SUPERADMIN, ADMIN, USER)

CAN_MANAGE_PRODUCTS = "can_manage_products"
CAN_MANAGE_INVENTORY = "can_manage_inventory"
CAN_VIEW_BILLING = "can_view_billing"
CAN_MANAGE_BILLING = "can_manage_billing"

ALL_PERMISSIONS = (
    CAN_MANAGE_PRODUCTS,
    CAN_MANAGE_INVENTORY,
    CAN_VIEW_BILLING,
    CAN_MANAGE_BILLING,
)

# Static capability bundle per role
ROLE_PERMISSIONS = {
    SUPERADMIN: set(ALL_PERMISSIONS),
    ADMIN: {CAN_MANAGE_PRODUCTS, CAN_MANAGE_INVENTORY, CAN_VIEW_BILLING},
    USER: set(),
}


def permissions_for_role(role: str) -> Dict[str, bool]:
    granted = ROLE_PERMISSIONS.get((role or "").lower(), set())
    return {name: name in granted for name in ALL_PERMISSIONS}
