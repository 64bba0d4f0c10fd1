"""
Tests for statistics reducers
"""
import math
import pytest
from datetime import datetime, timedelta
from database.models import Customer, Equipment, Installation, Job
from services import statistics

NOW = datetime(2025, 6, 11, 10, 0)


def job(status, revenue, size, customer_id=None, created=NOW):
    return Job(status=status, estimated_revenue=revenue, system_size=size,
               customer_id=customer_id, created_date=created)


def item(name, quantity, price, threshold=5, category='solar_panels'):
    return Equipment(name=name, quantity=quantity, unit_price=price,
                     low_stock_threshold=threshold, category=category)


def installation(status, days):
    return Installation(status=status, scheduled_date=NOW + timedelta(days=days))


@pytest.fixture
def jobs():
    return [
        job('completed', 20000, 5, customer_id='c1'),
        job('completed', 10000, 7, customer_id='c2'),
        job('in_progress', 8000, 6, customer_id='c1'),
        job('pending', 5000, 4),
        job('cancelled', 3000, 8, customer_id='c3'),
    ]


@pytest.mark.unit
class TestJobStatistics:
    """Tests for job metrics"""

    def test_job_statistics(self, jobs):
        """Test summary metrics"""
        stats = statistics.job_statistics(jobs)
        assert stats == {
            'total_jobs': 5,
            'active_jobs': 1,
            'completed_jobs': 2,
            'cancelled_jobs': 1,
            'total_revenue': 30000.0,
            'pending_revenue': 13000.0,
            'average_system_size': 6.0,
            'completion_rate': pytest.approx(0.4),
        }

    def test_empty_jobs(self):
        """Test that no jobs gives zeros, not NaN"""
        stats = statistics.job_statistics([])
        assert stats['completion_rate'] == 0.0
        assert stats['average_system_size'] == 0.0
        assert stats['total_revenue'] == 0.0
        assert statistics.average_job_value([]) == 0.0

    def test_nan_revenue_is_ignored(self):
        """Test that a NaN revenue never reaches the totals"""
        stats = statistics.job_statistics([job('completed', math.nan, 5), job('completed', 100, 5)])
        assert stats['total_revenue'] == 100.0

    def test_revenue_by_status(self, jobs):
        """Test revenue per status, every status present"""
        totals = statistics.revenue_by_status(jobs)
        assert totals['completed'] == 30000.0
        assert totals['on_hold'] == 0.0
        assert list(totals) == ['pending', 'approved', 'in_progress', 'on_hold', 'completed', 'cancelled']

    def test_average_job_value(self, jobs):
        """Test the mean estimated revenue"""
        assert statistics.average_job_value(jobs) == 9200.0

    def test_jobs_created_since(self):
        """Test filtering by creation date"""
        old = job('pending', 1, 1, created=NOW - timedelta(days=40))
        recent = job('pending', 1, 1, created=NOW - timedelta(days=2))
        assert statistics.jobs_created_since([old, recent], NOW - timedelta(days=30)) == [recent]


@pytest.mark.unit
class TestCustomerStatistics:
    """Tests for customer metrics"""

    def test_top_customers_by_revenue(self, jobs):
        """Test ranking by completed revenue"""
        customers = [Customer(id=cid, name=cid) for cid in ('c3', 'c2', 'c1', 'c4')]
        ranked = statistics.top_customers_by_revenue(customers, jobs, limit=3)
        assert [(entry['customer'].id, entry['revenue']) for entry in ranked] == [
            ('c1', 20000.0), ('c2', 10000.0), ('c3', 0.0),
        ]

    def test_index_jobs_by_customer(self, jobs):
        """Test grouping skips jobs without a customer"""
        index = statistics.index_jobs_by_customer(jobs)
        assert sorted(index) == ['c1', 'c2', 'c3']
        assert len(index['c1']) == 2

    def test_customer_statistics(self):
        """Test lead status counts and conversion rate"""
        customers = [Customer(lead_status=s) for s in ('won', 'won', 'lost', 'new_lead')]
        stats = statistics.customer_statistics(customers)
        assert stats['total_customers'] == 4
        assert stats['won'] == 2
        assert stats['contacted'] == 0
        assert stats['by_lead_status']['lost'] == 1
        assert stats['conversion_rate'] == 0.5

    def test_no_customers(self):
        """Test that an empty list has a zero conversion rate"""
        assert statistics.customer_statistics([])['conversion_rate'] == 0.0


@pytest.mark.unit
class TestEquipmentStatistics:
    """Tests for equipment metrics"""

    @pytest.fixture
    def items(self):
        return [
            item('Panel', 10, 100),
            item('Inverter', 5, 50, category='inverters'),
            item('Rail', 0, 20, category='mounting'),
        ]

    def test_equipment_statistics(self, items):
        """Test totals and stock counts (threshold inclusive)"""
        stats = statistics.equipment_statistics(items)
        assert stats['total_items'] == 3
        assert stats['total_value'] == 1250.0
        assert stats['low_stock_count'] == 2
        assert stats['out_of_stock_count'] == 1
        assert [i.name for i in stats['low_stock_items']] == ['Inverter', 'Rail']

    def test_value_by_category(self, items):
        """Test stock value per category"""
        values = statistics.value_by_category(items)
        assert values['solar_panels'] == 1000.0
        assert values['inverters'] == 250.0
        assert values['batteries'] == 0.0

    def test_most_valuable(self, items):
        """Test ranking by stock value"""
        assert [i.name for i in statistics.most_valuable_equipment(items, limit=2)] == ['Panel', 'Inverter']

    def test_turnover_rate(self, items):
        """Test the share of value in low stock items"""
        assert statistics.equipment_turnover_rate(items) == pytest.approx(20.0)
        assert statistics.equipment_turnover_rate([]) == 0.0


@pytest.mark.unit
class TestInstallationStatistics:
    """Tests for installation metrics"""

    def test_installation_statistics(self):
        """Test status counts, overdue count and completion rate"""
        installations = [
            installation('scheduled', -2),
            installation('scheduled', 3),
            installation('completed', -5),
            installation('in_progress', -1),
        ]
        stats = statistics.installation_statistics(installations, now=NOW)
        assert stats['total_installations'] == 4
        assert stats['scheduled'] == 2
        assert stats['by_status']['cancelled'] == 0
        assert stats['overdue_count'] == 1
        assert stats['completion_rate'] == 0.25

    def test_empty_installations(self):
        """Test that no installations gives zeros"""
        stats = statistics.installation_statistics([], now=NOW)
        assert stats['completion_rate'] == 0.0
        assert stats['overdue_count'] == 0


@pytest.mark.unit
class TestAlerts:
    """Tests for dashboard alerts"""

    def test_no_alerts(self):
        """Test that a quiet business has no alerts"""
        assert statistics.dashboard_alerts(0, 0, 0) == []

    def test_all_alerts(self):
        """Test alert order and content"""
        alerts = statistics.dashboard_alerts(2, 1, 150000)
        assert [a['type'] for a in alerts] == ['low_stock', 'overdue_installation', 'milestone']
        assert alerts[0]['message'] == "2 items are running low"
        assert alerts[2]['message'] == "Congratulations! You've reached $150,000 in revenue"
        assert alerts[2]['priority'] == 'medium'

    def test_milestone_must_be_exceeded(self):
        """Test that reaching the milestone exactly does not alert"""
        assert statistics.dashboard_alerts(0, 0, 100000) == []
        assert len(statistics.dashboard_alerts(0, 0, 60, revenue_milestone=50)) == 1
