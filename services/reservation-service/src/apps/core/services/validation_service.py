# services/reservation-service/src/apps/core/services/validation_service.py
"""
Validation Service

Field-level and date-range rules applied before any write. Every rule
runs and all violations are reported together.
"""

import uuid
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, List

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.utils import timezone

from apps.core.models import Reservation

from . import InvalidReservationData

logger = logging.getLogger(__name__)

DETAIL_COUNT_FIELDS = (
    'number_of_adults',
    'number_of_children',
    'number_of_infants',
    'number_of_pets',
    'resource_quantity',
)
DETAIL_TEXT_FIELDS = ('name', 'email', 'phone', 'note', 'currency')
DETAIL_MONEY_FIELDS = ('original_price', 'discount')


@dataclass
class ResourceEntry:
    resource_id: Optional[uuid.UUID]
    price: Decimal = Decimal('0')
    quantity: int = 1
    date: Optional[date] = None
    slug: Optional[str] = None


@dataclass
class ReservationRequest:
    """Normalized creation request."""
    organization_id: uuid.UUID
    start_date: date
    end_date: date
    user_id: Optional[uuid.UUID] = None
    source: str = Reservation.Source.WEB
    resources: List[ResourceEntry] = field(default_factory=list)
    detail: Dict[str, Any] = field(default_factory=dict)
    total_amount: Optional[Decimal] = None
    status_id: Optional[uuid.UUID] = None

    @property
    def resource_ids(self) -> List[uuid.UUID]:
        seen = []
        for entry in self.resources:
            if entry.resource_id is not None and entry.resource_id not in seen:
                seen.append(entry.resource_id)
        return seen


class ValidationService:
    """
    Validates reservation requests and updates.

    Raises InvalidReservationData carrying the complete list of
    violations.
    """

    @property
    def rules(self) -> Dict[str, Any]:
        return settings.RESERVATION

    # ==========================================================================
    # Creation
    # ==========================================================================

    def validate_create(self, data: Dict[str, Any], for_organization: bool = False) -> ReservationRequest:
        errors: List[str] = []

        user_id = self._uuid(data.get('user_id'), 'user_id', errors, required=not for_organization)
        organization_id = self._uuid(data.get('organization_id'), 'organization_id', errors, required=True)
        start_date = self._date(data.get('start_date'), 'start_date', errors)
        end_date = self._date(data.get('end_date'), 'end_date', errors)

        if start_date and end_date:
            self._check_range(start_date, end_date, errors, check_past=True)

        source = Reservation.Source.ORGANIZATION if for_organization else (
            data.get('source') or Reservation.Source.WEB
        )
        if source not in Reservation.Source.values:
            errors.append(f"Unknown source '{source}'")

        resources = self._resources(data.get('resources'), errors, allow_slug=for_organization)

        detail = data.get('detail')
        if detail is None and not for_organization:
            errors.append('detail is required')
        detail = self._detail(detail or {}, errors, require_contact=not for_organization)

        total_amount = None
        status_id = None
        if for_organization:
            total_amount = self._money(data.get('total_amount'), 'total_amount', errors, required=True)
            status_id = self._uuid(data.get('status_id'), 'status_id', errors)

        if errors:
            logger.info(f"Rejected reservation request: {'; '.join(errors)}")
            raise InvalidReservationData(errors)

        return ReservationRequest(
            user_id=user_id,
            organization_id=organization_id,
            start_date=start_date,
            end_date=end_date,
            source=source,
            resources=resources,
            detail=detail,
            total_amount=total_amount,
            status_id=status_id,
        )

    # ==========================================================================
    # Update
    # ==========================================================================

    def validate_update(
        self,
        reservation: Reservation,
        changes: Dict[str, Any],
        for_organization: bool = False
    ) -> Dict[str, Any]:
        """
        Validate mutable fields of an existing reservation.

        Returns only the keys present in ``changes``, normalized.
        """
        errors: List[str] = []
        cleaned: Dict[str, Any] = {}

        start_date = reservation.start_date
        end_date = reservation.end_date
        if 'start_date' in changes:
            start_date = self._date(changes['start_date'], 'start_date', errors)
            cleaned['start_date'] = start_date
        if 'end_date' in changes:
            end_date = self._date(changes['end_date'], 'end_date', errors)
            cleaned['end_date'] = end_date

        dates_changed = (
            cleaned.get('start_date', reservation.start_date) != reservation.start_date
            or cleaned.get('end_date', reservation.end_date) != reservation.end_date
        )
        if start_date and end_date and dates_changed:
            self._check_range(
                start_date,
                end_date,
                errors,
                check_past=cleaned.get('start_date', reservation.start_date) != reservation.start_date,
            )

        if 'total_amount' in changes:
            cleaned['total_amount'] = self._money(changes['total_amount'], 'total_amount', errors, required=True)

        if 'status_id' in changes and changes['status_id'] is not None:
            cleaned['status_id'] = self._uuid(changes['status_id'], 'status_id', errors, required=True)

        if 'is_active' in changes and not for_organization:
            if not isinstance(changes['is_active'], bool):
                errors.append('is_active must be a boolean')
            else:
                cleaned['is_active'] = changes['is_active']

        if changes.get('resource_ids') is not None:
            resource_ids = []
            for value in changes['resource_ids']:
                parsed = self._uuid(value, 'resource_ids', errors, required=True)
                if parsed and parsed not in resource_ids:
                    resource_ids.append(parsed)
            if not resource_ids and not for_organization:
                errors.append('At least one resource is required')
            cleaned['resource_ids'] = resource_ids

        if changes.get('detail') is not None:
            cleaned['detail'] = self._detail(changes['detail'], errors, require_contact=False)

        if errors:
            raise InvalidReservationData(errors)

        return cleaned

    # ==========================================================================
    # Rules
    # ==========================================================================

    def _check_range(self, start_date: date, end_date: date, errors: List[str], check_past: bool):
        today = timezone.now().date()

        if check_past and start_date < today:
            errors.append('Start date cannot be in the past')

        max_start = today + relativedelta(years=self.rules['MAX_ADVANCE_YEARS'])
        if start_date > max_start:
            errors.append(
                f"Start date cannot be more than {self.rules['MAX_ADVANCE_YEARS']} years in the future"
            )

        if end_date <= start_date:
            errors.append('End date must be after start date')
        elif (end_date - start_date).days > self.rules['MAX_DURATION_DAYS']:
            errors.append(
                f"Reservation cannot be longer than {self.rules['MAX_DURATION_DAYS']} days"
            )

    def _resources(self, resources, errors: List[str], allow_slug: bool) -> List[ResourceEntry]:
        if not resources:
            errors.append('At least one resource is required')
            return []
        if not isinstance(resources, (list, tuple)):
            errors.append('resources must be a list')
            return []

        entries = []
        for index, raw in enumerate(resources):
            label = f"resources[{index}]"
            if not isinstance(raw, dict):
                errors.append(f"{label} must be an object")
                continue

            raw_id = raw.get('resource_id', raw.get('id'))
            slug = raw.get('slug') if allow_slug else None
            if raw_id is None and not slug:
                errors.append(f"{label}.resource_id is required")
            resource_id = self._uuid(raw_id, f"{label}.resource_id", errors)

            price = self._money(raw.get('price'), f"{label}.price", errors, required=not allow_slug)

            quantity = raw.get('quantity', 1)
            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                errors.append(f"{label}.quantity must be a positive integer")
                quantity = 1

            entry_date = None
            if raw.get('date'):
                entry_date = self._date(raw['date'], f"{label}.date", errors)

            entries.append(ResourceEntry(
                resource_id=resource_id,
                slug=slug,
                price=price if price is not None else Decimal('0'),
                quantity=quantity,
                date=entry_date,
            ))
        return entries

    def _detail(self, detail, errors: List[str], require_contact: bool) -> Dict[str, Any]:
        if not isinstance(detail, dict):
            errors.append('detail must be an object')
            return {}

        cleaned: Dict[str, Any] = {}
        for name in DETAIL_TEXT_FIELDS:
            if detail.get(name) is not None:
                cleaned[name] = str(detail[name]).strip()

        if require_contact and not cleaned.get('name'):
            errors.append('detail.name is required')

        email = cleaned.get('email')
        if require_contact and not email:
            errors.append('detail.email is required')
        elif email:
            try:
                validate_email(email)
            except ValidationError:
                errors.append(f"detail.email '{email}' is not a valid email address")

        for name in DETAIL_COUNT_FIELDS:
            if detail.get(name) is None:
                continue
            value = detail[name]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(f"detail.{name} must be a non-negative integer")
            else:
                cleaned[name] = value

        for name in DETAIL_MONEY_FIELDS:
            if detail.get(name) is not None:
                value = self._money(detail[name], f"detail.{name}", errors)
                if value is not None:
                    cleaned[name] = value

        return cleaned

    # ==========================================================================
    # Parsers
    # ==========================================================================

    @staticmethod
    def _uuid(value, name: str, errors: List[str], required: bool = False) -> Optional[uuid.UUID]:
        if value is None or value == '':
            if required:
                errors.append(f"{name} is required")
            return None
        if isinstance(value, uuid.UUID):
            return value
        try:
            return uuid.UUID(str(value))
        except ValueError:
            errors.append(f"{name} '{value}' is not a valid identifier")
            return None

    @staticmethod
    def _date(value, name: str, errors: List[str]) -> Optional[date]:
        if value is None or value == '':
            errors.append(f"{name} is required")
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return date_parser.isoparse(str(value)).date()
        except (ValueError, OverflowError):
            errors.append(f"{name} '{value}' is not a valid date")
            return None

    @staticmethod
    def _money(value, name: str, errors: List[str], required: bool = False) -> Optional[Decimal]:
        if value is None or value == '':
            if required:
                errors.append(f"{name} is required")
            return None
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            errors.append(f"{name} '{value}' is not a valid amount")
            return None
        if not amount.is_finite():
            errors.append(f"{name} '{value}' is not a valid amount")
            return None
        if amount < 0:
            errors.append(f"{name} cannot be negative")
            return None
        return amount
