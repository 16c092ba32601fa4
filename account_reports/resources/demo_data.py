"""Demo accounts for local runs with the in-memory resource store."""

from datetime import datetime, timedelta, timezone

from account_reports.resources.store import InMemoryResourceStore, RelatedCategory

CONTOSO_ID = "5b0b4b4e-2f7e-4c8e-9a51-3f1f0c2d7a10"
FABRIKAM_ID = "a7c3d9e2-6b14-4f0a-8e2d-91c5b7f4e623"


def seed_demo_accounts(store: InMemoryResourceStore) -> None:
    """Load two accounts with a spread of contacts, opportunities and cases."""
    now = datetime.now(timezone.utc)

    store.add_account({
        "id": CONTOSO_ID,
        "name": "Contoso Ltd.",
        "account_number": "ACC-001234",
        "industry": "Technology",
        "revenue": 1000000.00,
    })
    store.add_account({
        "id": FABRIKAM_ID,
        "name": "Fabrikam Inc.",
        "account_number": "ACC-005678",
        "industry": "Manufacturing",
        "revenue": 250000.00,
    })

    for n in range(1, 9):
        store.add_related(CONTOSO_ID, RelatedCategory.CONTACTS, {
            "id": f"contoso-contact-{n}",
            "full_name": f"Contoso Contact {n}",
            "email": f"contact{n}@contoso.com",
            "is_historical": n > 6,
        })
    stages = ["open", "open", "won", "lost", "won", "open"]
    for n, stage in enumerate(stages, start=1):
        store.add_related(CONTOSO_ID, RelatedCategory.OPPORTUNITIES, {
            "id": f"contoso-opp-{n}",
            "name": f"Contoso deal {n}",
            "estimated_value": 15000.0 * n,
            "probability": {"open": 40, "won": 100, "lost": 0}[stage],
            "stage": stage,
            "is_historical": stage != "open" and n < 4,
        })
    for n, priority in enumerate(["high", "normal", "low", "normal"], start=1):
        store.add_related(CONTOSO_ID, RelatedCategory.CASES, {
            "id": f"contoso-case-{n}",
            "title": f"Contoso support case {n}",
            "priority": priority,
            "state": "resolved" if n % 2 == 0 else "active",
            "created_on": (now - timedelta(days=3 * n)).isoformat(),
            "is_historical": n == 4,
        })

    store.add_related(FABRIKAM_ID, RelatedCategory.CONTACTS, {
        "id": "fabrikam-contact-1",
        "full_name": "Fabrikam Buyer",
        "email": "info@fabrikam.com",
        "is_historical": False,
    })
