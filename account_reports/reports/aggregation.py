"""Report aggregation: combine gathered related data and derive summary metrics.

Works purely on data the worker already fetched; never touches a store.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np

from account_reports.resources.store import RelatedCategory


def build_report(
    target_ref: str,
    gathered: Dict[RelatedCategory, List[Dict[str, Any]]],
    include_extended_history: bool = False,
    generated_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Assemble the structured report for one account.

    Returns:
        dict with account id, generation metadata, a ``summary`` block and the
        raw related items per category.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    contacts = gathered.get(RelatedCategory.CONTACTS, [])
    opportunities = gathered.get(RelatedCategory.OPPORTUNITIES, [])
    cases = gathered.get(RelatedCategory.CASES, [])

    summary: Dict[str, Any] = {"contact_count": len(contacts)}
    summary.update(summarize_opportunities(opportunities))
    summary.update(summarize_cases(cases, now=generated_at))

    return {
        "account_id": target_ref,
        "generated_at": generated_at.isoformat(),
        "include_extended_history": include_extended_history,
        "summary": summary,
        "contacts": contacts,
        "opportunities": opportunities,
        "cases": cases,
    }


def summarize_opportunities(opportunities: List[Dict[str, Any]]) -> Dict[str, Any]:
    values = np.array(
        [_as_float(o.get("estimated_value")) for o in opportunities], dtype=float
    )
    probabilities = np.array(
        [_as_float(o.get("probability")) for o in opportunities], dtype=float
    )
    stages = np.array([str(o.get("stage", "open")).lower() for o in opportunities])

    if len(values) == 0:
        return {
            "opportunity_count": 0,
            "total_opportunity_value": 0.0,
            "average_opportunity_value": 0.0,
            "weighted_pipeline_value": 0.0,
            "won_value": 0.0,
            "win_rate": None,
        }

    is_open = stages == "open"
    won = stages == "won"
    lost = stages == "lost"
    decided = int(won.sum() + lost.sum())

    return {
        "opportunity_count": int(len(values)),
        "total_opportunity_value": round(float(values.sum()), 2),
        "average_opportunity_value": round(float(values.mean()), 2),
        # Expected value of what is still open
        "weighted_pipeline_value": round(
            float((values[is_open] * probabilities[is_open] / 100.0).sum()), 2
        ),
        "won_value": round(float(values[won].sum()), 2),
        "win_rate": round(float(won.sum()) / decided, 4) if decided else None,
    }


def summarize_cases(
    cases: List[Dict[str, Any]], now: Optional[datetime] = None
) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    by_priority: Dict[str, int] = {}
    open_ages = []
    resolved = 0

    for case in cases:
        priority = str(case.get("priority") or "normal").lower()
        by_priority[priority] = by_priority.get(priority, 0) + 1
        if str(case.get("state", "active")).lower() == "resolved":
            resolved += 1
            continue
        created_on = _parse_datetime(case.get("created_on"))
        if created_on is not None:
            open_ages.append((now - created_on).total_seconds() / 86400.0)

    ages = np.array(open_ages, dtype=float)
    return {
        "case_count": len(cases),
        "open_case_count": len(cases) - resolved,
        "resolved_case_count": resolved,
        "cases_by_priority": dict(sorted(by_priority.items())),
        "average_open_case_age_days": round(float(ages.mean()), 1) if len(ages) else None,
    }


def _as_float(value: Any) -> float:
    try:
        return float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


def _parse_datetime(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str) and raw:
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
