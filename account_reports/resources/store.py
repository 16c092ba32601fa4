"""Resource store: the business records report jobs run against.

The job engine only needs two capabilities from it: "does this account
resolve" and "count / fetch the related items of a category".
"""

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from supabase import create_client

logger = logging.getLogger(__name__)


class RelatedCategory(str, Enum):
    CONTACTS = "contacts"
    OPPORTUNITIES = "opportunities"
    CASES = "cases"


class ResourceStore(ABC):
    @abstractmethod
    def exists(self, target_ref: str) -> bool:
        """True if the account resolves and is readable."""
        ...

    @abstractmethod
    def count_related(
        self, target_ref: str, category: RelatedCategory, include_history: bool = False
    ) -> int:
        ...

    @abstractmethod
    def fetch_related(
        self, target_ref: str, category: RelatedCategory, include_history: bool = False
    ) -> List[Dict[str, Any]]:
        ...


class InMemoryResourceStore(ResourceStore):
    """Dict-backed store used for local runs and tests.

    Items flagged ``is_historical`` are only visible when history is requested.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._related: Dict[str, Dict[RelatedCategory, List[Dict[str, Any]]]] = {}

    def add_account(self, account: Dict[str, Any]) -> str:
        account_id = str(account["id"])
        with self._lock:
            self._accounts[account_id] = dict(account)
            self._related.setdefault(account_id, {c: [] for c in RelatedCategory})
        return account_id

    def add_related(
        self, target_ref: str, category: RelatedCategory, item: Dict[str, Any]
    ) -> None:
        with self._lock:
            if target_ref not in self._accounts:
                raise KeyError(f"Unknown account {target_ref}")
            self._related[target_ref][RelatedCategory(category)].append(dict(item))

    def remove_account(self, target_ref: str) -> None:
        with self._lock:
            self._accounts.pop(target_ref, None)
            self._related.pop(target_ref, None)

    def get_account(self, target_ref: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            account = self._accounts.get(target_ref)
            return dict(account) if account else None

    def exists(self, target_ref: str) -> bool:
        with self._lock:
            return target_ref in self._accounts

    def count_related(self, target_ref, category, include_history=False):
        return len(self._visible(target_ref, category, include_history))

    def fetch_related(self, target_ref, category, include_history=False):
        return [dict(item) for item in self._visible(target_ref, category, include_history)]

    def _visible(self, target_ref, category, include_history):
        with self._lock:
            items = self._related.get(target_ref, {}).get(RelatedCategory(category), [])
            return [
                item for item in items
                if include_history or not item.get("is_historical", False)
            ]


class SupabaseResourceStore(ResourceStore):
    """Reads accounts and their related rows from Supabase tables.

    Expected tables: ``accounts`` (``id``) and one table per category with an
    ``account_id`` foreign key and an ``is_historical`` flag.
    """

    def __init__(self, client):
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "SupabaseResourceStore":
        """Connect with the service-role key; reads bypass row-level security."""
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for the supabase backend"
            )
        return cls(create_client(settings.supabase_url, settings.supabase_service_role_key))

    def exists(self, target_ref: str) -> bool:
        response = (
            self._client.table("accounts")
            .select("id")
            .eq("id", target_ref)
            .limit(1)
            .execute()
        )
        return bool(response.data)

    def count_related(self, target_ref, category, include_history=False):
        query = (
            self._client.table(RelatedCategory(category).value)
            .select("id", count="exact")
            .eq("account_id", target_ref)
        )
        if not include_history:
            query = query.eq("is_historical", False)
        response = query.execute()
        if response.count is not None:
            return response.count
        return len(response.data or [])

    def fetch_related(self, target_ref, category, include_history=False):
        query = (
            self._client.table(RelatedCategory(category).value)
            .select("*")
            .eq("account_id", target_ref)
        )
        if not include_history:
            query = query.eq("is_historical", False)
        response = query.execute()
        rows = response.data or []
        logger.debug(
            "Fetched %d %s row(s) for account %s", len(rows), category, target_ref
        )
        return rows
