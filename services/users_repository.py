"""
Users Repository - Database access layer for user management.
"""

import logging
from typing import Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from config import Config
from database.models import Customer, Equipment, Installation, Job, User
from date_utils import now as current_time
from exceptions import NotFoundError, ValidationError
from validators import ErrorCode, FieldError, sanitize_string, validate_user

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ('email', 'full_name', 'company_name', 'phone_number')

# Child-before-parent order for account deletion
OWNED_MODELS = (Installation, Job, Customer, Equipment)


class UsersRepository:
    """Repository for user database operations."""

    def __init__(self, store, config=None, clock=None):
        self.store = store
        self.config = config or Config
        self.clock = clock or current_time

    def _now(self):
        return self.clock()

    def _hash(self, password: str) -> str:
        return generate_password_hash(password, method=self.config.PASSWORD_HASH_METHOD)

    @staticmethod
    def normalize_email(email) -> str:
        return sanitize_string(email).lower()

    def list_users(self, active_only: bool = True) -> List[User]:
        """List all users."""
        with self.store.read_session() as session:
            query = session.query(User)
            if active_only:
                query = query.filter(User.is_active == True)  # noqa: E712
            return query.order_by(User.email).all()

    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        with self.store.read_session() as session:
            return session.query(User).filter(User.id == user_id).first()

    def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email (case-insensitive)."""
        with self.store.read_session() as session:
            return session.query(User).filter(User.email == self.normalize_email(email)).first()

    def _duplicate_email(self, session, email: str, exclude_id: str = None) -> bool:
        query = session.query(User.id).filter(User.email == email)
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _duplicate_error():
        return ValidationError([FieldError(
            'email', "An account with this email already exists", ErrorCode.DUPLICATE)])

    def create_user(self, data: Dict) -> User:
        """Create a new user; ValidationError (code duplicate) for a taken email."""
        result = validate_user(data, min_password_length=self.config.MIN_PASSWORD_LENGTH)
        if not result.is_valid:
            raise ValidationError(result.errors)

        email = self.normalize_email(data['email'])
        with self.store.transaction() as session:
            if self._duplicate_email(session, email):
                raise self._duplicate_error()
            user = User(
                email=email,
                full_name=sanitize_string(data['full_name']),
                company_name=sanitize_string(data.get('company_name')),
                phone_number=sanitize_string(data.get('phone_number')),
                password_hash=self._hash(data['password']),
                created_date=self._now(),
                is_active=True
            )
            session.add(user)
            session.flush()
        logger.info(f"Created user: {user.id}")
        return user

    def verify_password(self, user: User, password: str) -> bool:
        """Verify a user's password."""
        if user is None or not password:
            return False
        return check_password_hash(user.password_hash, password)

    def update_last_sign_in(self, user_id: str) -> User:
        """Update user's last sign-in timestamp and mark them active."""
        with self.store.transaction() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError('User', user_id)
            user.last_sign_in_date = self._now()
            user.is_active = True
            session.flush()
        return user

    def update_profile(self, user_id: str, data: Dict) -> User:
        """Update profile fields and, when given, the password."""
        unknown = sorted(set(data) - set(PROFILE_FIELDS) - {'password'})
        if unknown:
            raise ValidationError([
                FieldError(field, f"{field} cannot be updated", ErrorCode.INVALID_FORMAT) for field in unknown
            ])

        with self.store.transaction() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError('User', user_id)

            merged = {'email': user.email, 'full_name': user.full_name, 'phone_number': user.phone_number}
            merged.update(data)
            result = validate_user(
                merged, min_password_length=self.config.MIN_PASSWORD_LENGTH, require_password=False
            ).restricted_to(data)
            if not result.is_valid:
                raise ValidationError(result.errors)

            if 'email' in data:
                email = self.normalize_email(data['email'])
                if self._duplicate_email(session, email, exclude_id=user.id):
                    raise self._duplicate_error()
                user.email = email
            for key in ('full_name', 'company_name', 'phone_number'):
                if key in data:
                    setattr(user, key, sanitize_string(data[key]))
            if data.get('password'):
                user.password_hash = self._hash(data['password'])
            session.flush()
        logger.info(f"Updated user: {user_id}")
        return user

    def _purge(self, session, model, user_id: str) -> int:
        return session.query(model).filter(model.owner_id == user_id).delete(synchronize_session=False)

    def delete_user(self, user_id: str) -> Dict[str, int]:
        """
        Delete a user and everything they own in one transaction

        Installations, jobs, customers and equipment go first, then the user.
        Any failure rolls the whole deletion back.

        Returns:
            Number of deleted rows per table
        """
        removed = {}
        with self.store.transaction() as session:
            user = session.query(User).filter(User.id == user_id).first()
            if not user:
                raise NotFoundError('User', user_id)
            for model in OWNED_MODELS:
                removed[model.__tablename__] = self._purge(session, model, user_id)
            session.delete(user)
        logger.info(f"Deleted user {user_id} and owned records: {removed}")
        return removed
