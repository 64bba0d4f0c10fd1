"""
Tests for the customer repository
"""
import pytest
from datetime import datetime
from database.enums import LeadStatus
from exceptions import NotFoundError, ValidationError
from services.customer_repository import CustomerSortKey


def make_customers(ctx, customer_data, *overrides):
    return [ctx.customers.create(dict(customer_data, **values)) for values in overrides]


@pytest.mark.integration
class TestCreateCustomer:
    """Tests for customer creation"""

    def test_create_defaults(self, alice_ctx, customer_data, alice):
        """Test that a new customer is a new lead contacted by email"""
        customer = alice_ctx.customers.create(customer_data)
        assert customer.lead_status == LeadStatus.NEW_LEAD
        assert customer.preferred_contact_method == 'email'
        assert customer.owner_id == alice.id
        assert customer.last_contact_date is None

    def test_create_with_lead_status(self, alice_ctx, customer_data):
        """Test that lead status accepts members and names"""
        customer = alice_ctx.customers.create(dict(customer_data, lead_status='QUALIFIED'))
        assert customer.lead_status == 'qualified'

    def test_invalid_customer(self, alice_ctx, customer_data):
        """Test that every invalid field is reported"""
        with pytest.raises(ValidationError) as exc_info:
            alice_ctx.customers.create(dict(customer_data, email='not-an-email', phone='123'))
        assert exc_info.value.fields == ['email', 'phone']
        assert alice_ctx.customers.count() == 0

    def test_short_address(self, alice_ctx, customer_data):
        """Test that an address under 10 characters is rejected"""
        with pytest.raises(ValidationError) as exc_info:
            alice_ctx.customers.create(dict(customer_data, address='1 Elm St'))
        assert exc_info.value.fields == ['address']

    def test_to_dict(self, alice_ctx, customer_data):
        """Test serialization includes the lead status label"""
        data = alice_ctx.customers.create(customer_data).to_dict()
        assert data['lead_status_label'] == 'New Lead'
        assert data['email'] == 'jane@example.com'


@pytest.mark.integration
class TestUpdateCustomer:
    """Tests for customer updates"""

    def test_update_lead_status(self, alice_ctx, customer_data):
        """Test moving through the pipeline"""
        customer = alice_ctx.customers.create(customer_data)
        updated = alice_ctx.customers.update_lead_status(customer.id, LeadStatus.PROPOSAL)
        assert updated.lead_status == 'proposal'
        assert updated.lead.label == 'Proposal Sent'

    def test_invalid_lead_status(self, alice_ctx, customer_data):
        """Test that an unknown lead status is rejected"""
        customer = alice_ctx.customers.create(customer_data)
        with pytest.raises(ValidationError) as exc_info:
            alice_ctx.customers.update_lead_status(customer.id, 'hot')
        assert exc_info.value.fields == ['lead_status']

    def test_record_contact(self, alice_ctx, customer_data, now):
        """Test stamping the last contact date"""
        customer = alice_ctx.customers.create(customer_data)
        assert alice_ctx.customers.record_contact(customer.id).last_contact_date == now
        when = datetime(2025, 6, 1, 15, 30)
        assert alice_ctx.customers.record_contact(customer.id, when).last_contact_date == when

    def test_update_contact_details(self, alice_ctx, customer_data):
        """Test editing email and notes"""
        customer = alice_ctx.customers.create(customer_data)
        alice_ctx.customers.update(customer.id, {'email': 'jane.h@example.com', 'notes': 'Prefers mornings'})
        stored = alice_ctx.customers.fetch_by_id(customer.id)
        assert stored.email == 'jane.h@example.com'
        assert stored.notes == 'Prefers mornings'

    def test_invalid_update_rejected(self, alice_ctx, customer_data):
        """Test that a bad phone number blocks the update"""
        customer = alice_ctx.customers.create(customer_data)
        with pytest.raises(ValidationError):
            alice_ctx.customers.update(customer.id, {'phone': '12'})
        assert alice_ctx.customers.fetch_by_id(customer.id).phone == customer_data['phone']


@pytest.mark.integration
class TestFetchCustomers:
    """Tests for customer listing"""

    def test_default_order_is_name(self, alice_ctx, customer_data):
        """Test that customers are listed by name, ignoring case"""
        make_customers(alice_ctx, customer_data, {'name': 'zoe Park'}, {'name': 'Adam West'}, {'name': 'maya Chen'})
        assert [c.name for c in alice_ctx.customers.fetch_all()] == ['Adam West', 'maya Chen', 'zoe Park']

    def test_sort_by_lead_status_uses_pipeline_order(self, alice_ctx, customer_data):
        """Test that lead status sorts by pipeline position, not alphabetically"""
        make_customers(
            alice_ctx, customer_data,
            {'name': 'Won Customer', 'lead_status': 'won'},
            {'name': 'Contacted Customer', 'lead_status': 'contacted'},
            {'name': 'Lost Customer', 'lead_status': 'lost'},
            {'name': 'New Customer'},
        )
        statuses = [c.lead_status for c in alice_ctx.customers.fetch_all(sort_by=CustomerSortKey.LEAD_STATUS)]
        assert statuses == ['new_lead', 'contacted', 'won', 'lost']
        reverse = [c.lead_status for c in alice_ctx.customers.fetch_all(sort_by='lead_status', ascending=False)]
        assert reverse == ['lost', 'won', 'contacted', 'new_lead']

    def test_filter_by_lead_status(self, alice_ctx, customer_data):
        """Test filtering one pipeline stage"""
        make_customers(alice_ctx, customer_data, {'lead_status': 'won'}, {})
        assert len(alice_ctx.customers.fetch_all(lead_status=LeadStatus.WON)) == 1
        assert len(alice_ctx.customers.fetch_all(lead_status='new_lead')) == 1

    def test_search(self, alice_ctx, customer_data):
        """Test searching name, email, phone and address"""
        make_customers(
            alice_ctx, customer_data,
            {'name': 'Omar Haddad', 'email': 'omar@example.com', 'phone': '555-222-3333'},
            {'name': 'Lena Fischer', 'email': 'lena@solarfans.org', 'address': '8 Birch Lane, Oakdale'},
        )
        assert [c.name for c in alice_ctx.customers.search('HADDAD')] == ['Omar Haddad']
        assert [c.name for c in alice_ctx.customers.search('solarfans')] == ['Lena Fischer']
        assert [c.name for c in alice_ctx.customers.search('222-3333')] == ['Omar Haddad']
        assert [c.name for c in alice_ctx.customers.search('birch')] == ['Lena Fischer']

    def test_find_by_phone_ignores_formatting(self, alice_ctx, customer_data):
        """Test phone lookup by digits"""
        customer = alice_ctx.customers.create(customer_data)
        assert [c.id for c in alice_ctx.customers.find_by_phone('555.123.4567')] == [customer.id]
        assert alice_ctx.customers.find_by_phone('') == []


@pytest.mark.integration
class TestCustomerJobs:
    """Tests for customer/job links and deletion"""

    def test_jobs_for(self, alice_ctx, customer_data, job_data):
        """Test that a customer's jobs are looked up live"""
        customer = alice_ctx.customers.create(customer_data)
        assert alice_ctx.customers.jobs_for(customer.id) == []
        job = alice_ctx.jobs.create(dict(job_data, customer_id=customer.id))
        assert [j.id for j in alice_ctx.customers.jobs_for(customer.id)] == [job.id]

    def test_jobs_for_foreign_customer(self, alice_ctx, bob_ctx, customer_data):
        """Test that another user's customer is not found"""
        customer = bob_ctx.customers.create(customer_data)
        with pytest.raises(NotFoundError):
            alice_ctx.customers.jobs_for(customer.id)

    def test_can_delete(self, alice_ctx, customer_data, job_data):
        """Test that open pending or in-progress jobs block deletion"""
        customer = alice_ctx.customers.create(customer_data)
        assert alice_ctx.customers.can_delete(customer.id) is True

        job = alice_ctx.jobs.create(dict(job_data, customer_id=customer.id))
        assert alice_ctx.customers.can_delete(customer.id) is False

        alice_ctx.jobs.update_status(job.id, 'approved')
        assert alice_ctx.customers.can_delete(customer.id) is True

        alice_ctx.jobs.update_status(job.id, 'in_progress')
        assert alice_ctx.customers.can_delete(customer.id) is False

    def test_delete_keeps_jobs(self, alice_ctx, customer_data, job_data):
        """Test that deleting a customer clears the reference on its jobs"""
        customer = alice_ctx.customers.create(customer_data)
        job = alice_ctx.jobs.create(dict(job_data, customer_id=customer.id))

        alice_ctx.customers.delete(customer.id)

        assert alice_ctx.customers.find(customer.id) is None
        stored = alice_ctx.jobs.fetch_by_id(job.id)
        assert stored.customer_id is None
        assert stored.customer_name == job_data['customer_name']
