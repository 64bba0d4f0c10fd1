"""
Tests for demo data seeding
"""
import pytest
from database.seed import DEMO_EMAIL, DEMO_PASSWORD, seed_database


@pytest.mark.integration
class TestSeed:
    """Tests for seed_database"""

    def test_seed_creates_demo_account(self, store, app_config):
        """Test that seeding creates the demo user and records"""
        session = seed_database(store, app_config)
        assert session.current_user.email == DEMO_EMAIL

        ctx = session.context()
        assert ctx.customers.count() == 2
        assert ctx.equipment.count() == 2
        assert ctx.installations.count() == 2
        jobs = ctx.jobs.fetch_all()
        assert [j.status for j in jobs] == ['approved', 'approved']
        assert all(j.customer_id for j in jobs)
        assert sorted(i.crew_size for i in ctx.installations.fetch_all()) == [2, 3]

    def test_seed_is_idempotent(self, store, app_config):
        """Test that seeding twice signs in without duplicating records"""
        seed_database(store, app_config)
        session = seed_database(store, app_config)
        assert session.current_user.email == DEMO_EMAIL
        assert session.context().jobs.count() == 2
        assert len(session.users.list_users()) == 1

    def test_demo_credentials(self, store, app_config):
        """Test that the demo password signs in"""
        session = seed_database(store, app_config)
        session.sign_out()
        assert session.sign_in(DEMO_EMAIL, DEMO_PASSWORD).email == DEMO_EMAIL
