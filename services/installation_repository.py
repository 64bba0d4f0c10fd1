"""
Installation Repository - Database access layer for installation scheduling.
"""

import enum
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import func, select

from database.enums import InstallationStatus
from database.models import Installation, Job
from date_utils import date_range_for, start_of_day
from exceptions import NotFoundError, ValidationError
from services.base_repository import BaseRepository
from validators import ErrorCode, FieldError, validate_installation

logger = logging.getLogger(__name__)


class InstallationSortKey(str, enum.Enum):
    SCHEDULED_DATE = 'scheduled_date'
    STATUS = 'status'
    CREW_SIZE = 'crew_size'


def derive_crew_size(crew_members: str) -> int:
    """
    Crew size described by a crew_members string

    "Crew 3" (a trailing number) means 3 people; otherwise the
    comma-separated names are counted.
    """
    text = (crew_members or '').strip()
    if not text:
        return 0
    last_token = text.split()[-1]
    if last_token.isdigit():
        return int(last_token)
    return len([name for name in text.split(',') if name.strip()])


class InstallationRepository(BaseRepository):
    """Repository for installation database operations."""

    model = Installation
    entity_name = 'Installation'

    text_fields = ('crew_members', 'notes', 'weather_conditions')
    number_fields = ('estimated_duration', 'completion_percentage')
    integer_fields = ('crew_size',)
    date_fields = ('scheduled_date', 'start_time', 'end_time')
    enum_fields = {'status': InstallationStatus}

    editable_fields = (
        'scheduled_date', 'estimated_duration', 'crew_members', 'crew_size', 'status',
        'notes', 'weather_conditions', 'completion_percentage', 'quality_check_passed',
    )
    search_columns = ('notes', 'crew_members')
    sort_columns = {
        InstallationSortKey.SCHEDULED_DATE: 'scheduled_date',
        InstallationSortKey.STATUS: 'status',
        InstallationSortKey.CREW_SIZE: 'crew_size',
    }
    default_sort = InstallationSortKey.SCHEDULED_DATE
    default_ascending = True

    def validate(self, data: Dict, creating: bool = True):
        return validate_installation(data, now=self.context.now())

    @staticmethod
    def _with_crew(values: Dict) -> Dict:
        """Fill crew_size from crew_members, or crew_members from crew_size."""
        if values.get('crew_size') is None and 'crew_members' in values:
            values['crew_size'] = derive_crew_size(values['crew_members'])
        elif values.get('crew_size') is not None and not values.get('crew_members'):
            values['crew_members'] = f"Crew {values['crew_size']}"
        return values

    def create(self, data: Dict) -> Installation:
        """Schedule an installation for one of the acting user's jobs."""
        job_id = data.get('job_id')
        if not job_id:
            raise ValidationError([FieldError('job_id', "Job is required", ErrorCode.REQUIRED)])
        with self.store.read_session() as session:
            if self.scope.get(session, Job, job_id) is None:
                raise NotFoundError('Job', job_id)

        values = self.normalize(self._pick(data, self.editable_fields))
        values.setdefault('status', InstallationStatus.SCHEDULED.value)
        values.setdefault('estimated_duration', float(self.context.config.DEFAULT_INSTALLATION_DURATION))
        values.setdefault('crew_members', '')
        values = self._with_crew(values)

        self.raise_if_invalid(self.validate(values))

        installation = Installation(job_id=job_id, created_date=self.context.now(), **values)
        return self._insert(installation)

    def update(self, installation_id: str, patch: Dict) -> Installation:
        """Apply a partial update; crew_size follows a changed crew_members."""
        patch = dict(patch)
        if 'crew_members' in patch and 'crew_size' not in patch:
            patch['crew_size'] = derive_crew_size(patch['crew_members'])
        return super().update(installation_id, patch)

    def _before_update(self, session, record, changes: Dict):
        status = changes.get('status')
        if status is not None and status != record.status:
            self._apply_status_effects(record, status)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def fetch_all(self, status=None, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None,
                  job_id: Optional[str] = None, search: Optional[str] = None, sort_by=None,
                  ascending: Optional[bool] = None, limit: Optional[int] = None) -> List[Installation]:
        """List installations with optional status / date range / job filters (by date by default)."""
        return super().fetch_all(
            search=search, sort_by=sort_by, ascending=ascending, limit=limit,
            status=status, start_date=start_date, end_date=end_date, job_id=job_id,
        )

    def _apply_filters(self, session, query, status=None, start_date=None, end_date=None, job_id=None):
        if status is not None:
            query = query.filter(Installation.status == InstallationStatus.coerce(status).value)
        if start_date is not None:
            query = query.filter(Installation.scheduled_date >= start_date)
        if end_date is not None:
            query = query.filter(Installation.scheduled_date <= end_date)
        if job_id is not None:
            query = query.filter(Installation.job_id == job_id)
        return query

    def _search_clauses(self, session, needle: str) -> List:
        clauses = super()._search_clauses(session, needle)
        matching_jobs = select(Job.id).where(
            Job.owner_id == self.scope.owner_id,
            func.lower(Job.customer_name).contains(needle, autoescape=True)
        )
        clauses.append(Installation.job_id.in_(matching_jobs))
        return clauses

    def in_range(self, start_date: datetime, end_date: datetime) -> List[Installation]:
        """Installations scheduled within [start_date, end_date]."""
        return self.fetch_all(start_date=start_date, end_date=end_date)

    def in_preset(self, preset: str) -> List[Installation]:
        """Installations in a named range (today, this_week, next_month, ...)."""
        start, end = date_range_for(preset, self.context.now())
        if start is None:
            return self.fetch_all()
        # Preset ranges are half-open
        return self.fetch_all(start_date=start, end_date=end - timedelta(microseconds=1))

    def for_day(self, day: datetime) -> List[Installation]:
        """Installations scheduled on day's calendar date."""
        start = start_of_day(day)
        with self.store.read_session() as session:
            return self.scope.query(session, Installation).filter(
                Installation.scheduled_date >= start,
                Installation.scheduled_date < start + timedelta(days=1)
            ).order_by(Installation.scheduled_date, Installation.created_seq).all()

    def upcoming(self, days: int = 7, limit: Optional[int] = None) -> List[Installation]:
        """Scheduled installations from now through the next days."""
        moment = self.context.now()
        return self.fetch_all(
            status=InstallationStatus.SCHEDULED,
            start_date=moment,
            end_date=moment + timedelta(days=days),
            limit=limit,
        )

    def overdue(self) -> List[Installation]:
        """Still-scheduled installations whose date has passed."""
        with self.store.read_session() as session:
            return self.scope.query(session, Installation).filter(
                Installation.status == InstallationStatus.SCHEDULED.value,
                Installation.scheduled_date < self.context.now()
            ).order_by(Installation.scheduled_date, Installation.created_seq).all()

    def is_overdue(self, installation: Installation) -> bool:
        return installation.is_overdue_at(self.context.now())

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def _apply_status_effects(self, installation: Installation, status: str):
        moment = self.context.now()
        if status == InstallationStatus.IN_PROGRESS and installation.start_time is None:
            installation.start_time = moment
        elif status == InstallationStatus.COMPLETED:
            installation.end_time = moment
            installation.completion_percentage = 100.0
        logger.info(f"Installation {installation.id} status: {installation.status} -> {status}")

    def update_status(self, installation_id: str, status) -> Installation:
        """Change status, recording start/end times for in-progress and completed."""
        new_status = self.coerce_enum('status', InstallationStatus, status)

        def apply(session, installation):
            self._apply_status_effects(installation, new_status)
            installation.status = new_status

        return self._modify(installation_id, apply, action='Updated status of')

    def update_progress(self, installation_id: str, percentage: float) -> Installation:
        """Set completion (clamped to 0-100); reaching 100 completes an in-progress job."""
        percentage = min(100.0, max(0.0, float(percentage)))

        def apply(session, installation):
            installation.completion_percentage = percentage
            if percentage == 100.0 and installation.status == InstallationStatus.IN_PROGRESS:
                self._apply_status_effects(installation, InstallationStatus.COMPLETED.value)
                installation.status = InstallationStatus.COMPLETED.value

        return self._modify(installation_id, apply, action='Updated progress of')

    def reschedule(self, installation_id: str, new_date) -> Installation:
        """Move to a new date and back to scheduled."""
        changes = self.normalize({'scheduled_date': new_date})

        def apply(session, installation):
            merged = self.snapshot(installation)
            merged.update(changes)
            self.raise_if_invalid(self.validate(merged).restricted_to(['scheduled_date']))
            installation.scheduled_date = changes['scheduled_date']
            installation.status = InstallationStatus.SCHEDULED.value

        return self._modify(installation_id, apply, action='Rescheduled')
