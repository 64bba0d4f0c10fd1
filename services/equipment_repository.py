"""
Equipment Repository - Database access layer for the equipment catalog and stock.
"""

import enum
import logging
from typing import Dict, List, Optional

from database.enums import EquipmentCategory
from database.models import Equipment
from exceptions import BusinessRuleError, ValidationError
from services.base_repository import BaseRepository
from validators import (
    ErrorCode, FieldError, MAX_EQUIPMENT_QUANTITY, coerce_number, validate_equipment,
    validate_equipment_usage,
)

logger = logging.getLogger(__name__)


class EquipmentSortKey(str, enum.Enum):
    NAME = 'name'
    QUANTITY = 'quantity'
    UNIT_COST = 'unit_cost'
    CATEGORY = 'category'


class EquipmentRepository(BaseRepository):
    """Repository for equipment database operations."""

    model = Equipment
    entity_name = 'Equipment'

    text_fields = ('name', 'brand', 'model', 'manufacturer', 'description', 'supplier')
    number_fields = ('unit_price', 'unit_cost')
    integer_fields = ('quantity', 'low_stock_threshold', 'minimum_stock', 'warranty_period')
    enum_fields = {'category': EquipmentCategory}

    editable_fields = (
        'name', 'category', 'brand', 'model', 'manufacturer', 'description', 'supplier',
        'quantity', 'unit_price', 'unit_cost', 'low_stock_threshold', 'minimum_stock',
        'warranty_period', 'is_active',
    )
    search_columns = ('name', 'brand', 'model')
    sort_columns = {
        EquipmentSortKey.NAME: 'name',
        EquipmentSortKey.QUANTITY: 'quantity',
        # Ordered by what the item sells for
        EquipmentSortKey.UNIT_COST: 'unit_price',
        EquipmentSortKey.CATEGORY: 'category',
    }
    default_sort = EquipmentSortKey.NAME
    default_ascending = True

    def __init__(self, context):
        super().__init__(context)
        self.low_stock_threshold = context.config.DEFAULT_LOW_STOCK_THRESHOLD
        self.warranty_months = context.config.DEFAULT_WARRANTY_MONTHS

    def validate(self, data: Dict, creating: bool = True):
        return validate_equipment(data, creating=creating)

    def create(self, data: Dict) -> Equipment:
        """
        Create a new equipment item

        unit_cost defaults to unit_price and minimum_stock to the low stock
        threshold. A defaulted minimum_stock is not compared with the quantity.
        """
        values = self.normalize(self._pick(data, self.editable_fields))
        values.setdefault('category', EquipmentCategory.SOLAR_PANELS.value)
        values.setdefault('quantity', 0)
        values.setdefault('unit_price', 0.0)
        values.setdefault('unit_cost', values['unit_price'])
        values.setdefault('low_stock_threshold', self.low_stock_threshold)
        values.setdefault('warranty_period', self.warranty_months)
        values.setdefault('is_active', True)

        self.raise_if_invalid(self.validate(values, creating=True))
        values.setdefault('minimum_stock', values['low_stock_threshold'])

        moment = self.context.now()
        item = Equipment(created_date=moment, last_updated=moment, **values)
        return self._insert(item)

    def fetch_all(self, category=None, low_stock_only: bool = False, active_only: bool = False,
                  search: Optional[str] = None, sort_by=None, ascending: Optional[bool] = None,
                  limit: Optional[int] = None) -> List[Equipment]:
        """List equipment with optional category / low stock / active filters (by name by default)."""
        return super().fetch_all(
            search=search, sort_by=sort_by, ascending=ascending, limit=limit,
            category=category, low_stock_only=low_stock_only, active_only=active_only,
        )

    def _apply_filters(self, session, query, category=None, low_stock_only=False, active_only=False):
        if category is not None:
            query = query.filter(Equipment.category == EquipmentCategory.coerce(category).value)
        if low_stock_only:
            query = query.filter(Equipment.quantity <= Equipment.low_stock_threshold)
        if active_only:
            query = query.filter(Equipment.is_active == True)  # noqa: E712
        return query

    def update(self, equipment_id: str, patch: Dict) -> Equipment:
        """Apply a partial update; a negative quantity is a BusinessRuleError."""
        if 'quantity' in patch:
            quantity = coerce_number(patch['quantity'])
            if quantity is not None and quantity < 0:
                raise BusinessRuleError([FieldError(
                    'quantity', "Stock cannot go below zero", ErrorCode.BUSINESS_RULE)])
        return super().update(equipment_id, patch)

    def _before_update(self, session, record, changes: Dict):
        record.last_updated = self.context.now()

    # =========================================================================
    # STOCK
    # =========================================================================

    def _set_quantity(self, record, quantity: int):
        if quantity < 0:
            raise BusinessRuleError([FieldError(
                'quantity', f"Stock cannot go below zero (would be {quantity})", ErrorCode.BUSINESS_RULE)])
        if quantity > MAX_EQUIPMENT_QUANTITY:
            raise ValidationError([FieldError(
                'quantity', "Quantity cannot exceed 10,000", ErrorCode.OUT_OF_RANGE)])
        record.quantity = quantity
        record.last_updated = self.context.now()

    def adjust_stock(self, equipment_id: str, delta: int) -> Equipment:
        """Add (or remove, when negative) delta units; BusinessRuleError below zero."""
        delta = self.coerce_count('quantity', delta)

        def apply(session, item):
            self._set_quantity(item, item.quantity + delta)

        return self._modify(equipment_id, apply, action=f"Adjusted stock ({delta:+d}) of")

    def update_quantity(self, equipment_id: str, quantity: int) -> Equipment:
        """Set the stock level outright; BusinessRuleError for a negative value."""
        quantity = self.coerce_count('quantity', quantity)

        def apply(session, item):
            self._set_quantity(item, quantity)

        return self._modify(equipment_id, apply, action='Set quantity of')

    def consume(self, equipment_id: str, requested: int) -> Equipment:
        """Take requested units out of stock after checking availability."""

        def apply(session, item):
            result = validate_equipment_usage(item.quantity, requested)
            if not result.is_valid:
                if result.has_code(ErrorCode.BUSINESS_RULE):
                    raise BusinessRuleError(result.errors)
                raise ValidationError(result.errors)
            self._set_quantity(item, item.quantity - int(requested))

        return self._modify(equipment_id, apply, action=f"Consumed {requested} unit(s) of")

    def restock(self, equipment_id: str, quantity: int = 0) -> Equipment:
        """Receive a reorder (defaults to reorder_quantity units)."""
        amount = self.reorder_quantity(self.fetch_by_id(equipment_id), quantity)
        return self.adjust_stock(equipment_id, amount)

    @staticmethod
    def reorder_quantity(item: Equipment, quantity: int = 0) -> int:
        """Units to order: the requested amount, else twice the minimum stock."""
        if quantity > 0:
            return quantity
        return (item.minimum_stock or 0) * 2

    def low_stock_items(self) -> List[Equipment]:
        return self.fetch_all(low_stock_only=True)

    def out_of_stock_items(self) -> List[Equipment]:
        with self.store.read_session() as session:
            return self.scope.query(session, Equipment).filter(
                Equipment.quantity == 0
            ).order_by(Equipment.name, Equipment.created_seq).all()

    def categories(self) -> List[EquipmentCategory]:
        """Categories in use, in category order."""
        with self.store.read_session() as session:
            rows = self.scope.query(session, Equipment).with_entities(Equipment.category).distinct().all()
        return sorted((EquipmentCategory(value) for (value,) in rows), key=lambda c: c.ordinal)

    def can_delete(self, equipment_id: str) -> bool:
        """Only items with nothing left in stock may be deleted."""
        return self.fetch_by_id(equipment_id).quantity == 0
