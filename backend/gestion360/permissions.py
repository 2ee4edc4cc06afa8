"""
Staff capability flags.

WHY: A user's access is a closed set of named capabilities. Keeping them as a
Flag enum makes every check exhaustive and lets the set be stored as one
integer column while the wire format stays a boolean map
(permissions{inventory, sales, customers, reports}).
"""
from __future__ import annotations

import enum


ROLE_ADMIN = "admin"
ROLE_STAFF = "staff"


class Capability(enum.Flag):
    NONE = 0
    INVENTORY = 1
    SALES = 2
    CUSTOMERS = 4
    REPORTS = 8
    ALL = INVENTORY | SALES | CUSTOMERS | REPORTS


# Wire key for each capability, in display order
CAPABILITY_KEYS = {
    Capability.INVENTORY: "inventory",
    Capability.SALES: "sales",
    Capability.CUSTOMERS: "customers",
    Capability.REPORTS: "reports",
}


def capabilities_from_map(permissions: dict | None) -> Capability:
    """Build a flag set from a {"inventory": bool, ...} map. Unknown keys are ignored."""
    caps = Capability.NONE
    for cap, key in CAPABILITY_KEYS.items():
        if permissions and permissions.get(key):
            caps |= cap
    return caps


def capabilities_to_map(caps: Capability) -> dict:
    return {key: bool(caps & cap) for cap, key in CAPABILITY_KEYS.items()}
