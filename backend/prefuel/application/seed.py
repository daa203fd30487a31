"""Built-in fixture snapshot used on first start, after a corrupt load, and by admin reset."""

from typing import Any

from prefuel.domain.entities import EntityType

SCHEMA_VERSION = 1

_PROJECT_STEPS = ["Site Survey", "Design & BOM", "Installation", "Net Metering"]


def _steps(*statuses: str) -> list[dict[str, str]]:
    return [{"name": name, "status": status} for name, status in zip(_PROJECT_STEPS, statuses)]


def empty_snapshot() -> dict[str, Any]:
    """A snapshot with every collection present and nothing in it."""
    snapshot: dict[str, Any] = {"schemaVersion": SCHEMA_VERSION}
    for entity_type in EntityType:
        snapshot[entity_type.collection] = []
    snapshot["attendance"] = {"date": "", "present": 0, "absent": 0}
    snapshot["leadSources"] = {}
    snapshot["auditLog"] = []
    snapshot["lastIdToken"] = 0
    return snapshot


def build_seed_snapshot() -> dict[str, Any]:
    """Fresh copy of the demo data set: two leads, three projects, three stock items."""
    snapshot = empty_snapshot()
    stamp = "2025-09-25T10:00:00.000Z"

    snapshot["leads"] = [
        {
            "id": "l1",
            "name": "Anil Kumar",
            "phone": "+91-9000000001",
            "email": "anil@example.com",
            "source": "organic",
            "status": "new",
            "projectSizeKw": 5,
            "createdAt": stamp,
            "updatedAt": stamp,
        },
        {
            "id": "l2",
            "name": "Meera Gupta",
            "phone": "+91-9000000002",
            "email": "meera@example.com",
            "source": "referral",
            "status": "qualified",
            "projectSizeKw": 3,
            "createdAt": "2025-09-28T10:00:00.000Z",
            "updatedAt": "2025-09-28T10:00:00.000Z",
        },
    ]
    snapshot["leadSources"] = {"organic": 1, "referral": 1}

    snapshot["items"] = [
        {"id": "i1", "name": "Solar Panel 500W", "sku": "SP-500", "unit": "pcs",
         "stock": 40, "minStock": 20, "createdAt": stamp, "updatedAt": stamp},
        {"id": "i2", "name": "String Inverter 5kW", "sku": "INV-5K", "unit": "unit",
         "stock": 6, "minStock": 4, "createdAt": stamp, "updatedAt": stamp},
        {"id": "i3", "name": "Mounting Structure", "sku": "MS-SET", "unit": "set",
         "stock": 10, "minStock": 5, "createdAt": stamp, "updatedAt": stamp},
    ]

    snapshot["projects"] = [
        {
            "id": "p1",
            "customerName": "Sharma Residence",
            "siteAddress": "Sector 21, Noida, UP",
            "scheme": "Rooftop Solar Subsidy Scheme (India)",
            "capacityKw": 5,
            "status": "working",
            "installation": {
                "installedItems": [{"item": "Panels", "qty": 10, "unit": "pcs"}],
                "pendingItems": [{"item": "Net Metering", "qty": 1, "unit": "approval"}],
                "scheduledDate": "2025-10-05",
                "installerName": "Ravi Kumar",
                "steps": _steps("done", "done", "in_progress", "pending"),
            },
            "createdAt": stamp,
            "updatedAt": stamp,
        },
        {
            "id": "p2",
            "customerName": "Gupta Apartments",
            "siteAddress": "Baner, Pune, MH",
            "scheme": "Rooftop Solar Subsidy Scheme (India)",
            "capacityKw": 15,
            "status": "completed",
            "installation": {
                "installedItems": [{"item": "Panels", "qty": 30, "unit": "pcs"}],
                "pendingItems": [],
                "scheduledDate": "2025-08-20",
                "installerName": "Pooja Singh",
                "steps": _steps("done", "done", "done", "done"),
            },
            "createdAt": stamp,
            "updatedAt": stamp,
        },
        {
            "id": "p3",
            "customerName": "Patel Villa",
            "siteAddress": "SG Highway, Ahmedabad, GJ",
            "scheme": "Rooftop Solar Subsidy Scheme (India)",
            "capacityKw": 7.5,
            "status": "not_started",
            "installation": {
                "installedItems": [],
                "pendingItems": [{"item": "Site Survey", "qty": 1, "unit": "visit"}],
                "scheduledDate": "2025-10-12",
                "installerName": "To Assign",
                "steps": _steps("pending", "pending", "pending", "pending"),
            },
            "createdAt": stamp,
            "updatedAt": stamp,
        },
    ]
    return snapshot
