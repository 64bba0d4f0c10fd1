"""
Dashboard read model: one snapshot of the acting user's business.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from services import statistics

logger = logging.getLogger(__name__)


def build_dashboard(context, now: Optional[datetime] = None, recent_limit: Optional[int] = None) -> Dict:
    """
    Gather the acting user's records and reduce them to dashboard metrics

    Args:
        context: ServiceContext of the signed-in user
        now: Reference time for overdue / upcoming (defaults to the context clock)
        recent_limit: Number of recent jobs (defaults to RECENT_JOBS_LIMIT)

    Returns:
        Dict with job and equipment statistics, total_customers,
        recent_jobs, upcoming_installations, low_stock_equipment,
        overdue_installations and alerts
    """
    moment = now or context.now()
    if recent_limit is None:
        recent_limit = context.config.RECENT_JOBS_LIMIT

    jobs = context.jobs.fetch_all()
    equipment = context.equipment.fetch_all()
    installations = context.installations.fetch_all()

    job_stats = statistics.job_statistics(jobs)
    equipment_stats = statistics.equipment_statistics(equipment)
    upcoming = [i for i in installations if i.scheduled_date >= moment]
    overdue = [i for i in installations if i.is_overdue_at(moment)]

    dashboard = {
        'job_statistics': job_stats,
        'equipment_statistics': equipment_stats,
        'total_customers': context.customers.count(),
        # fetch_all defaults to newest first
        'recent_jobs': jobs[:recent_limit],
        'upcoming_installations': upcoming,
        'low_stock_equipment': equipment_stats['low_stock_items'],
        'overdue_installations': overdue,
        'alerts': statistics.dashboard_alerts(
            equipment_stats['low_stock_count'],
            len(overdue),
            job_stats['total_revenue'],
            revenue_milestone=context.config.REVENUE_MILESTONE,
        ),
    }
    logger.debug(f"Dashboard built for owner {context.owner_id}: {job_stats['total_jobs']} jobs")
    return dashboard
