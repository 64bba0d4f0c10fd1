"""
Tests for user accounts and the user session
"""
import pytest
from database.models import Customer, Equipment, Installation, Job, User
from exceptions import AuthenticationError, NotFoundError, PreconditionError, ValidationError
from services.user_session import UserSession

SIGN_UP = {
    'email': 'Owner@Example.com',
    'full_name': 'Casey Owner',
    'company_name': 'Bright Roofs',
    'password': 'secret123',
}


@pytest.fixture
def session(store, app_config, clock):
    return UserSession(store, config=app_config, clock=clock)


def populate(ctx, job_data, customer_data, equipment_data, installation_date):
    customer = ctx.customers.create(customer_data)
    job = ctx.jobs.create(dict(job_data, customer_id=customer.id))
    ctx.equipment.create(equipment_data)
    ctx.installations.create({'job_id': job.id, 'scheduled_date': installation_date, 'crew_size': 2})


@pytest.mark.integration
class TestUsersRepository:
    """Tests for account storage"""

    def test_create_user(self, users, now):
        """Test that emails are lower-cased and passwords hashed"""
        user = users.create_user(SIGN_UP)
        assert user.email == 'owner@example.com'
        assert user.password_hash != 'secret123'
        assert user.created_date == now
        assert users.verify_password(user, 'secret123') is True
        assert users.verify_password(user, 'wrong') is False
        assert users.get_user_by_email('OWNER@example.com').id == user.id

    def test_duplicate_email(self, users):
        """Test that an email can only be registered once"""
        users.create_user(SIGN_UP)
        with pytest.raises(ValidationError) as exc_info:
            users.create_user(dict(SIGN_UP, email='owner@EXAMPLE.com'))
        assert exc_info.value.errors[0].code == 'duplicate'
        assert len(users.list_users()) == 1

    def test_invalid_sign_up(self, users):
        """Test sign-up validation"""
        with pytest.raises(ValidationError) as exc_info:
            users.create_user({'email': 'nope', 'full_name': 'C', 'password': '123'})
        assert exc_info.value.fields == ['email', 'full_name', 'password']

    def test_update_profile(self, users, alice, bob):
        """Test profile edits, password changes and duplicate checks"""
        updated = users.update_profile(alice.id, {'company_name': 'Sunny Side', 'password': 'newpass1'})
        assert updated.company_name == 'Sunny Side'
        assert users.verify_password(updated, 'newpass1') is True

        with pytest.raises(ValidationError) as exc_info:
            users.update_profile(alice.id, {'email': bob.email})
        assert exc_info.value.errors[0].code == 'duplicate'

        with pytest.raises(ValidationError):
            users.update_profile(alice.id, {'is_active': False})

        with pytest.raises(NotFoundError):
            users.update_profile('missing', {'full_name': 'Nobody Here'})

    def test_delete_user_cascades(self, users, alice, alice_ctx, bob_ctx, store,
                                  job_data, customer_data, equipment_data, installation_date):
        """Test that deleting a user removes everything they own and nothing else"""
        first = alice_ctx.customers.create(customer_data)
        second = alice_ctx.customers.create(dict(customer_data, name='Omar Haddad', email='omar@example.com'))
        jobs = [
            alice_ctx.jobs.create(dict(job_data, customer_id=first.id)),
            alice_ctx.jobs.create(dict(job_data, customer_id=second.id)),
            alice_ctx.jobs.create(job_data),
        ]
        alice_ctx.equipment.create(equipment_data)
        alice_ctx.installations.create({'job_id': jobs[0].id, 'scheduled_date': installation_date, 'crew_size': 2})
        populate(bob_ctx, job_data, customer_data, equipment_data, installation_date)

        removed = users.delete_user(alice.id)

        assert removed == {'installations': 1, 'jobs': 3, 'customers': 2, 'equipment': 1}
        assert users.get_user(alice.id) is None
        assert alice_ctx.jobs.fetch_all() == []
        assert alice_ctx.customers.fetch_all() == []
        assert alice_ctx.equipment.fetch_all() == []
        assert alice_ctx.installations.fetch_all() == []
        with store.read_session() as db:
            for model in (Installation, Job, Customer, Equipment):
                assert db.query(model).count() == 1
        assert len(bob_ctx.jobs.fetch_all()) == 1

    def test_delete_user_is_atomic(self, users, alice, alice_ctx, monkeypatch, store,
                                   job_data, customer_data, equipment_data, installation_date):
        """Test that a failure part way through deletes nothing"""
        populate(alice_ctx, job_data, customer_data, equipment_data, installation_date)
        real_purge = users._purge

        def failing_purge(db, model, user_id):
            if model is Equipment:
                raise RuntimeError('disk full')
            return real_purge(db, model, user_id)

        monkeypatch.setattr(users, '_purge', failing_purge)

        with pytest.raises(RuntimeError):
            users.delete_user(alice.id)

        with store.read_session() as db:
            assert db.query(User).filter(User.id == alice.id).count() == 1
            for model in (Installation, Job, Customer, Equipment):
                assert db.query(model).count() == 1

    def test_delete_missing_user(self, users):
        """Test that deleting an unknown user is NotFoundError"""
        with pytest.raises(NotFoundError):
            users.delete_user('missing')


@pytest.mark.integration
class TestUserSession:
    """Tests for sign up, sign in and sign out"""

    def test_sign_up_signs_in(self, session, now):
        """Test that signing up leaves the user signed in"""
        user = session.sign_up(SIGN_UP)
        assert session.is_signed_in is True
        assert session.current_user.id == user.id
        assert user.last_sign_in_date == now
        assert session.context().owner_id == user.id

    def test_sign_in_and_out(self, session):
        """Test a full sign in / sign out cycle"""
        session.sign_up(SIGN_UP)
        session.sign_out()
        assert session.is_signed_in is False
        user = session.sign_in('OWNER@example.com', 'secret123')
        assert session.current_user.id == user.id

    @pytest.mark.parametrize('email,password', [
        ('owner@example.com', 'wrong-password'),
        ('nobody@example.com', 'secret123'),
        ('owner@example.com', ''),
        (None, None),
    ])
    def test_sign_in_failures_are_indistinguishable(self, session, email, password):
        """Test that an unknown email and a wrong password fail the same way"""
        session.sign_up(SIGN_UP)
        session.sign_out()
        with pytest.raises(AuthenticationError) as exc_info:
            session.sign_in(email, password)
        assert str(exc_info.value) == "Invalid email or password"
        assert session.is_signed_in is False

    def test_unconfigured_session(self, app_config):
        """Test that a session without a store cannot be used"""
        unconfigured = UserSession(config=app_config)
        with pytest.raises(PreconditionError):
            unconfigured.sign_in('owner@example.com', 'secret123')
        with pytest.raises(PreconditionError):
            unconfigured.context()

    def test_context_requires_sign_in(self, session):
        """Test that a context needs a signed-in user"""
        with pytest.raises(PreconditionError):
            session.context()
        with pytest.raises(PreconditionError):
            session.require_user()

    def test_configure_signs_out(self, session, store):
        """Test that attaching a store resets the session"""
        session.sign_up(SIGN_UP)
        session.configure(store)
        assert session.is_signed_in is False

    def test_update_profile(self, session):
        """Test editing the signed-in user's profile"""
        session.sign_up(SIGN_UP)
        updated = session.update_profile({'full_name': 'Casey Q. Owner'})
        assert updated.full_name == 'Casey Q. Owner'
        assert session.current_user.full_name == 'Casey Q. Owner'

    def test_delete_account(self, session, job_data):
        """Test that deleting the account removes records and signs out"""
        session.sign_up(SIGN_UP)
        session.context().jobs.create(job_data)
        removed = session.delete_account()
        assert removed['jobs'] == 1
        assert session.is_signed_in is False
        with pytest.raises(AuthenticationError):
            session.sign_in(SIGN_UP['email'], SIGN_UP['password'])
