from typing import Any, Dict, List

import psycopg2
from loguru import logger

from .db import FeedbackStore
from .errors import StorageError
from .schemas import ActionPlanEntry, ProjectStats, StatsResponse

ACTION_THRESHOLD = 4.0

# Checked in this order; one recommendation per dimension below threshold
RECOMMENDATIONS = (
    ('avg_reactivity', 'Responsiveness: define an SLA (e.g., response < 24h), weekly check-in, single channel.'),
    ('avg_deadlines', 'Deadlines: milestones, buffer, regular tracking, risk management.'),
    ('avg_deliverables', 'Deliverables: quality checklist, internal review, templates.'),
    ('avg_professionalism', 'Professionalism/Innovation: monthly retrospective, training, best-practice sharing.'),
)


def month_start(month: str) -> str:
    """'2026-01' -> '2026-01-01'. Malformed input is left for Postgres to reject."""
    return f'{month}-01'


def build_action_plan(rows: List[Dict[str, Any]]) -> List[ActionPlanEntry]:
    plan: List[ActionPlanEntry] = []
    for r in rows:
        recs = [text for key, text in RECOMMENDATIONS if r[key] < ACTION_THRESHOLD]
        if recs:
            plan.append(ActionPlanEntry(project=r['project'], recommendations=recs))
    return plan


def get_monthly_stats(store: FeedbackStore, month: str) -> StatsResponse:
    start = month_start(month)
    try:
        rows = store.monthly_project_stats(start)
    except psycopg2.Error as e:
        logger.error('Monthly stats query failed for month={}: {}', month, e)
        raise StorageError(details=str(e).strip())

    return StatsResponse(
        month=month,
        start=start,
        projects=[ProjectStats(**r) for r in rows],
        action_plan=build_action_plan(rows),
    )
