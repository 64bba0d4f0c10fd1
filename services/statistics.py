"""
Statistics over repository results.

Every function here is a pure reducer: it takes already-fetched records
and returns plain dicts / lists. Ratios and averages go through the
calculations module so an empty input yields 0, never NaN.
"""

from collections import OrderedDict
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from calculations import safe_average, safe_divide, safe_percentage, safe_sum, safe_value
from database.enums import EquipmentCategory, InstallationStatus, JobStatus, LeadStatus
from date_utils import now as current_time

DEFAULT_REVENUE_MILESTONE = 100000


# =============================================================================
# JOBS
# =============================================================================

def job_statistics(jobs: Iterable) -> Dict:
    """
    Summary metrics for a list of jobs

    Returns:
        total_jobs, active_jobs (in progress), completed_jobs, cancelled_jobs,
        total_revenue (completed jobs), pending_revenue (jobs neither
        completed nor cancelled), average_system_size, completion_rate
    """
    jobs = list(jobs)
    completed = [j for j in jobs if j.status == JobStatus.COMPLETED]
    cancelled = [j for j in jobs if j.status == JobStatus.CANCELLED]
    open_jobs = [j for j in jobs if j.status not in (JobStatus.COMPLETED, JobStatus.CANCELLED)]

    return {
        'total_jobs': len(jobs),
        'active_jobs': sum(1 for j in jobs if j.status == JobStatus.IN_PROGRESS),
        'completed_jobs': len(completed),
        'cancelled_jobs': len(cancelled),
        'total_revenue': safe_sum(j.estimated_revenue for j in completed),
        'pending_revenue': safe_sum(j.estimated_revenue for j in open_jobs),
        'average_system_size': safe_average(j.system_size for j in jobs),
        'completion_rate': safe_divide(len(completed), len(jobs)),
    }


def revenue_by_status(jobs: Iterable) -> Dict[str, float]:
    """Estimated revenue summed per job status."""
    totals = OrderedDict((status.value, 0.0) for status in JobStatus)
    for job in jobs:
        totals[job.status] = safe_value(totals.get(job.status, 0.0) + safe_value(job.estimated_revenue))
    return dict(totals)


def average_job_value(jobs: Iterable) -> float:
    return safe_average(j.estimated_revenue for j in jobs)


def jobs_created_since(jobs: Iterable, since: datetime) -> List:
    return [j for j in jobs if j.created_date and j.created_date >= since]


def index_jobs_by_customer(jobs: Iterable) -> Dict[str, List]:
    """Jobs grouped by customer_id (jobs without a customer are left out)."""
    index: Dict[str, List] = {}
    for job in jobs:
        if job.customer_id:
            index.setdefault(job.customer_id, []).append(job)
    return index


def customer_revenue(customer, jobs_by_customer: Dict[str, List]) -> float:
    """Revenue of a customer's completed jobs."""
    return safe_sum(
        j.estimated_revenue for j in jobs_by_customer.get(customer.id, [])
        if j.status == JobStatus.COMPLETED
    )


def top_customers_by_revenue(customers: Iterable, jobs: Iterable, limit: int = 5) -> List[Dict]:
    """Customers ranked by completed-job revenue (ties keep input order)."""
    jobs_by_customer = index_jobs_by_customer(jobs)
    ranked = [
        {'customer': c, 'revenue': customer_revenue(c, jobs_by_customer)}
        for c in customers
    ]
    ranked.sort(key=lambda entry: entry['revenue'], reverse=True)
    return ranked[:limit]


# =============================================================================
# CUSTOMERS
# =============================================================================

def customers_by_lead_status(customers: Iterable) -> Dict[str, int]:
    """Customer count per lead status, every status present."""
    counts = OrderedDict((status.value, 0) for status in LeadStatus)
    for customer in customers:
        counts[customer.lead_status] = counts.get(customer.lead_status, 0) + 1
    return dict(counts)


def customer_statistics(customers: Iterable) -> Dict:
    """
    Summary metrics for a list of customers

    Returns:
        total_customers, one <lead_status> count per stage, by_lead_status
        and conversion_rate (won / total)
    """
    customers = list(customers)
    by_status = customers_by_lead_status(customers)
    stats = {'total_customers': len(customers)}
    stats.update(by_status)
    stats['by_lead_status'] = by_status
    stats['conversion_rate'] = safe_divide(by_status[LeadStatus.WON.value], len(customers))
    return stats


# =============================================================================
# EQUIPMENT
# =============================================================================

def equipment_statistics(items: Iterable) -> Dict:
    """
    Summary metrics for a list of equipment

    Returns:
        total_items, total_value (unit price x quantity), low_stock_count,
        out_of_stock_count and the low_stock_items themselves
    """
    items = list(items)
    low_stock = [item for item in items if item.is_low_stock]
    return {
        'total_items': len(items),
        'total_value': safe_sum(item.total_value for item in items),
        'low_stock_count': len(low_stock),
        'out_of_stock_count': sum(1 for item in items if item.is_out_of_stock),
        'low_stock_items': low_stock,
    }


def equipment_by_category(items: Iterable) -> Dict[str, List]:
    groups = OrderedDict((category.value, []) for category in EquipmentCategory)
    for item in items:
        groups.setdefault(item.category, []).append(item)
    return dict(groups)


def value_by_category(items: Iterable) -> Dict[str, float]:
    return {
        category: safe_sum(item.total_value for item in group)
        for category, group in equipment_by_category(items).items()
    }


def most_valuable_equipment(items: Iterable, limit: Optional[int] = None) -> List:
    ranked = sorted(items, key=lambda item: item.total_value, reverse=True)
    return ranked if limit is None else ranked[:limit]


def equipment_turnover_rate(items: Iterable) -> float:
    """Share of stock value (percent) sitting in low-stock items."""
    items = list(items)
    total = safe_sum(item.total_value for item in items)
    low_stock_value = safe_sum(item.total_value for item in items if item.is_low_stock)
    return safe_percentage(low_stock_value, total)


# =============================================================================
# INSTALLATIONS
# =============================================================================

def installations_by_status(installations: Iterable) -> Dict[str, int]:
    counts = OrderedDict((status.value, 0) for status in InstallationStatus)
    for installation in installations:
        counts[installation.status] = counts.get(installation.status, 0) + 1
    return dict(counts)


def installation_statistics(installations: Iterable, now: Optional[datetime] = None) -> Dict:
    """
    Summary metrics for a list of installations

    Returns:
        total_installations, one <status> count per status, by_status,
        overdue_count and completion_rate (completed / total)
    """
    installations = list(installations)
    moment = now or current_time()
    by_status = installations_by_status(installations)
    stats = {'total_installations': len(installations)}
    stats.update(by_status)
    stats['by_status'] = by_status
    stats['overdue_count'] = sum(1 for i in installations if i.is_overdue_at(moment))
    stats['completion_rate'] = safe_divide(by_status[InstallationStatus.COMPLETED.value], len(installations))
    return stats


# =============================================================================
# ALERTS
# =============================================================================

def dashboard_alerts(low_stock_count: int, overdue_count: int, total_revenue: float,
                     revenue_milestone: float = DEFAULT_REVENUE_MILESTONE) -> List[Dict]:
    """Attention items for the dashboard, most urgent first."""
    alerts = []
    if low_stock_count > 0:
        alerts.append({
            'type': 'low_stock',
            'title': 'Low Stock Alert',
            'message': f"{low_stock_count} items are running low",
            'priority': 'high',
        })
    if overdue_count > 0:
        alerts.append({
            'type': 'overdue_installation',
            'title': 'Overdue Installations',
            'message': f"{overdue_count} installations are overdue",
            'priority': 'high',
        })
    if safe_value(total_revenue) > revenue_milestone:
        alerts.append({
            'type': 'milestone',
            'title': 'Revenue Milestone',
            'message': f"Congratulations! You've reached ${safe_value(total_revenue):,.0f} in revenue",
            'priority': 'medium',
        })
    return alerts
