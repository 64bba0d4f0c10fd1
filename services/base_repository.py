"""
Base Repository - shared database access for owner-scoped record kinds.

Subclasses declare their model, field kinds, searchable columns and sort
keys; this class provides scoped reads, atomic writes, input normalization,
stable sorting and free-text search.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import case, func, or_

from calculations import safe_value
from date_utils import parse_datetime
from exceptions import BusinessRuleError, ValidationError
from services.ownership import OwnershipScope
from validators import ErrorCode, FieldError, coerce_number, sanitize_string

logger = logging.getLogger(__name__)


class BaseRepository:
    """Owner-scoped CRUD, filtering, sorting and search for one model."""

    model = None
    entity_name = 'Record'

    # Field kinds used to normalize input before validation and storage
    text_fields = ()
    number_fields = ()
    integer_fields = ()
    date_fields = ()
    enum_fields: Dict[str, type] = {}

    # Fields an update() patch may touch
    editable_fields = ()

    # Columns matched (OR, case-insensitive substring) by search
    search_columns = ()

    # sort key -> column name; enum-valued columns sort by ordinal
    sort_columns: Dict[str, str] = {}
    default_sort = None
    default_ascending = True

    def __init__(self, context):
        self.context = context
        self.store = context.store
        self.scope = OwnershipScope(context)

    # =========================================================================
    # READS
    # =========================================================================

    def fetch_by_id(self, record_id: str):
        """Get an owned record by ID; NotFoundError when missing or not owned."""
        with self.store.read_session() as session:
            return self.scope.get_or_404(session, self.model, record_id)

    def find(self, record_id: str):
        """Get an owned record by ID, or None."""
        with self.store.read_session() as session:
            return self.scope.get(session, self.model, record_id)

    def search(self, query: str, limit: Optional[int] = None) -> List:
        """Records matching query in any searchable field (blank matches all)."""
        return self.fetch_all(search=query, limit=limit)

    def count(self) -> int:
        """Number of owned records."""
        with self.store.read_session() as session:
            return self.scope.query(session, self.model).count()

    def fetch_all(self, search: Optional[str] = None, sort_by=None,
                  ascending: Optional[bool] = None, limit: Optional[int] = None, **filters) -> List:
        """List owned records with optional filters, sort and limit."""
        with self.store.read_session() as session:
            query = self.scope.query(session, self.model)
            query = self._apply_filters(session, query, **filters)
            query = self._apply_search(session, query, search)
            query = self._apply_sort(query, sort_by, ascending)
            query = self._apply_limit(query, limit)
            return query.all()

    def _apply_filters(self, session, query, **filters):
        if filters:
            raise TypeError(f"Unknown filters for {self.entity_name}: {', '.join(sorted(filters))}")
        return query

    def _search_clauses(self, session, needle: str) -> List:
        return [
            func.lower(getattr(self.model, column)).contains(needle, autoescape=True)
            for column in self.search_columns
        ]

    def _apply_search(self, session, query, search: Optional[str]):
        if search is None or not str(search).strip():
            return query
        needle = str(search).strip().lower()
        return query.filter(or_(*self._search_clauses(session, needle)))

    def _sort_expression(self, sort_key):
        column_name = self.sort_columns[sort_key]
        column = getattr(self.model, column_name)
        enum_cls = self.enum_fields.get(column_name)
        if enum_cls is not None:
            ordinals = enum_cls.ordinals()
            return case(ordinals, value=column, else_=len(ordinals))
        if column_name in self.text_fields:
            return func.lower(column)
        return column

    def _apply_sort(self, query, sort_by, ascending: Optional[bool]):
        if sort_by is None:
            sort_by = self.default_sort
            if ascending is None:
                ascending = self.default_ascending
        if ascending is None:
            ascending = True
        sort_key = self._sort_key(sort_by)
        expression = self._sort_expression(sort_key)
        primary = expression.asc() if ascending else expression.desc()
        # Insertion order breaks ties in both directions
        return query.order_by(primary, self.model.created_seq.asc())

    def _sort_key(self, sort_by):
        key_cls = type(self.default_sort)
        try:
            return key_cls(sort_by)
        except ValueError as e:
            raise ValueError(f"Unknown sort key for {self.entity_name}: {sort_by}") from e

    @staticmethod
    def _apply_limit(query, limit: Optional[int]):
        if limit is None:
            return query
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValueError(f"limit must be a non-negative integer, got {limit!r}")
        return query.limit(limit)

    # =========================================================================
    # WRITES
    # =========================================================================

    def _insert(self, record):
        """Attach the owner and an insertion counter, then persist atomically."""
        with self.store.transaction() as session:
            self.scope.attach(record)
            record.created_seq = self.store.next_sequence(session, self.model)
            session.add(record)
            session.flush()
        logger.info(f"Created {self.entity_name.lower()}: {record.id}")
        return record

    def _modify(self, record_id: str, mutate, action: str = 'Updated'):
        """Load an owned record inside a transaction and apply mutate(session, record)."""
        with self.store.transaction() as session:
            record = self.scope.get_or_404(session, self.model, record_id)
            mutate(session, record)
            session.flush()
        logger.info(f"{action} {self.entity_name.lower()}: {record_id}")
        return record

    def update(self, record_id: str, patch: Dict):
        """Apply a partial update; only the patched fields are validated."""
        unknown = sorted(set(patch) - set(self.editable_fields))
        if unknown:
            raise ValidationError([
                FieldError(field, f"{field} cannot be updated", ErrorCode.INVALID_FORMAT)
                for field in unknown
            ])
        changes = self.normalize(patch)

        def apply(session, record):
            merged = self.snapshot(record)
            merged.update(changes)
            result = self.validate(merged, creating=False).restricted_to(changes)
            self.raise_if_invalid(result)
            self._before_update(session, record, changes)
            for field, value in changes.items():
                setattr(record, field, value)
            self._after_update(session, record, changes)

        return self._modify(record_id, apply)

    def delete(self, record_id: str) -> bool:
        """Delete an owned record."""
        with self.store.transaction() as session:
            record = self.scope.get_or_404(session, self.model, record_id)
            self._before_delete(session, record)
            session.delete(record)
        logger.info(f"Deleted {self.entity_name.lower()}: {record_id}")
        return True

    def _before_update(self, session, record, changes: Dict):
        pass

    def _after_update(self, session, record, changes: Dict):
        pass

    def _before_delete(self, session, record):
        pass

    # =========================================================================
    # INPUT HANDLING
    # =========================================================================

    def validate(self, data: Dict, creating: bool = True):
        raise NotImplementedError

    def normalize(self, data: Dict) -> Dict:
        """
        Normalize raw input by field kind

        Text is sanitized, numbers pass through safe_value, dates are parsed
        and enum members are reduced to their stored value. Values that
        cannot be read are left as given so validation reports them.
        """
        values = {}
        for field, value in data.items():
            if field in self.text_fields:
                values[field] = sanitize_string(value) if isinstance(value, str) or value is None else value
            elif field in self.number_fields or field in self.integer_fields:
                number = coerce_number(value)
                if number is None:
                    values[field] = value
                elif field in self.integer_fields:
                    values[field] = int(number)
                else:
                    values[field] = safe_value(number)
            elif field in self.date_fields:
                try:
                    values[field] = parse_datetime(value)
                except ValueError:
                    values[field] = value
            elif field in self.enum_fields:
                try:
                    values[field] = self.enum_fields[field].coerce(value).value
                except ValueError:
                    values[field] = value
            else:
                values[field] = value
        return values

    def snapshot(self, record) -> Dict:
        """Current values of the editable fields."""
        return {field: getattr(record, field) for field in self.editable_fields}

    @staticmethod
    def coerce_enum(field: str, enum_cls, value) -> str:
        """Stored value for an enum input; ValidationError when it is not a member."""
        try:
            return enum_cls.coerce(value).value
        except ValueError as e:
            raise ValidationError([FieldError(field, str(e), ErrorCode.INVALID_FORMAT)]) from e

    @staticmethod
    def coerce_count(field: str, value) -> int:
        """Whole-number input; ValidationError when it is not numeric."""
        number = coerce_number(value)
        if number is None:
            raise ValidationError([FieldError(field, f"{field} must be a number", ErrorCode.INVALID_FORMAT)])
        return int(number)

    @staticmethod
    def raise_if_invalid(result):
        if not result.is_valid:
            raise ValidationError(result.errors)

    @staticmethod
    def raise_business_rule(result):
        if not result.is_valid:
            raise BusinessRuleError(result.errors)

    @staticmethod
    def _pick(data: Dict, fields: Iterable[str]) -> Dict:
        return {field: data[field] for field in fields if field in data}
