"""
Singleton-Default Record Management

Payment methods, addresses, shipping methods and payment gateways share one
rule: per owner, at most one record is the default, and as soon as the owner
has any record exactly one of them is.

DefaultRecordManager implements create/update/promote/delete for one such
family. Every operation runs inside the caller's session transaction, so the
clear-then-set steps commit or roll back together. The owner's rows are
locked first (FOR UPDATE on PostgreSQL) and a partial unique index on
(owner, is_default) rejects whatever a concurrent writer still gets through.

Example:
    method = await payment_methods.create(db, user.id, fields)
    await payment_methods.promote(db, user.id, other_id)
    new_default = await payment_methods.delete(db, user.id, method.id)
"""

import re
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.commerce.exceptions import NotFoundError, ValidationFailure
from src.database.models import (
    Address,
    CardType,
    PaymentGateway,
    PaymentMethod,
    ShippingMethod,
    User,
)

logger = structlog.get_logger(__name__)

FieldValidator = Callable[[Dict[str, Any]], None]
DefaultChangeHook = Callable[[AsyncSession, uuid.UUID, Optional[Any]], Awaitable[None]]


class DefaultRecordManager:
    """
    Maintains the single-default invariant for one owned entity family.

    Args:
        model: Mapped class with an ``is_default`` flag and ``created_at``
        owner_field: Attribute holding the owner reference
        label: Human readable entity name used in errors and logs
        editable_fields: Attributes callers may set
        validate: Optional check run on incoming fields, raises ValidationFailure
        on_default_change: Optional hook called with the owner's new default
            (or None) whenever the default may have changed
    """

    def __init__(
        self,
        model: type,
        owner_field: str,
        label: str,
        editable_fields: Iterable[str],
        validate: Optional[FieldValidator] = None,
        on_default_change: Optional[DefaultChangeHook] = None,
    ):
        self.model = model
        self.owner_field = owner_field
        self.label = label
        self.editable_fields = frozenset(editable_fields)
        self.validate = validate
        self.on_default_change = on_default_change

    def _owned_by(self, owner_id: uuid.UUID):
        return getattr(self.model, self.owner_field) == owner_id

    def _clean(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        changes = {k: v for k, v in fields.items() if k in self.editable_fields}
        if self.validate is not None:
            self.validate(changes)
        return changes

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list(self, db: AsyncSession, owner_id: uuid.UUID) -> List[Any]:
        """All records of the owner, oldest first."""
        result = await db.execute(
            select(self.model)
            .where(self._owned_by(owner_id))
            .order_by(self.model.created_at, self.model.id)
        )
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, owner_id: uuid.UUID, record_id: uuid.UUID) -> Any:
        """Fetch one record of the owner or raise NotFoundError."""
        result = await db.execute(
            select(self.model).where(
                self.model.id == record_id,
                self._owned_by(owner_id),
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError(self.label, record_id)
        return record

    async def get_default(self, db: AsyncSession, owner_id: uuid.UUID) -> Optional[Any]:
        result = await db.execute(
            select(self.model).where(
                self._owned_by(owner_id),
                self.model.is_default.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def count(self, db: AsyncSession, owner_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(self.model.id)).where(self._owned_by(owner_id))
        )
        return result.scalar() or 0

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _lock_owner_rows(self, db: AsyncSession, owner_id: uuid.UUID) -> None:
        # Ignored by SQLite, which serializes writers anyway
        await db.execute(
            select(self.model.id).where(self._owned_by(owner_id)).with_for_update()
        )

    async def _clear_defaults(self, db: AsyncSession, owner_id: uuid.UUID) -> None:
        await db.execute(
            update(self.model)
            .where(self._owned_by(owner_id), self.model.is_default.is_(True))
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    async def _oldest(self, db: AsyncSession, owner_id: uuid.UUID) -> Optional[Any]:
        result = await db.execute(
            select(self.model)
            .where(self._owned_by(owner_id))
            .order_by(self.model.created_at, self.model.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _default_changed(
        self, db: AsyncSession, owner_id: uuid.UUID, default: Optional[Any]
    ) -> None:
        if self.on_default_change is not None:
            await self.on_default_change(db, owner_id, default)

    async def create(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        fields: Dict[str, Any],
        is_default: bool = False,
    ) -> Any:
        """
        Create a record for the owner.

        The record becomes the default when requested or when it is the
        owner's first record of this family.
        """
        changes = self._clean(fields)

        await self._lock_owner_rows(db, owner_id)
        existing = await self.count(db, owner_id)
        make_default = bool(is_default) or existing == 0

        if make_default:
            await self._clear_defaults(db, owner_id)

        record = self.model(**changes, is_default=make_default)
        setattr(record, self.owner_field, owner_id)
        db.add(record)
        await db.flush()

        logger.info(
            f"Created {self.label}",
            owner_id=str(owner_id),
            record_id=str(record.id),
            existing=existing,
            is_default=make_default,
        )

        if make_default:
            await self._default_changed(db, owner_id, record)
        return record

    async def promote(self, db: AsyncSession, owner_id: uuid.UUID, record_id: uuid.UUID) -> Any:
        """Make the record the owner's only default. Idempotent."""
        await self._lock_owner_rows(db, owner_id)
        record = await self.get(db, owner_id, record_id)

        await self._clear_defaults(db, owner_id)
        record.is_default = True
        await db.flush()

        logger.info(f"Promoted {self.label} to default", owner_id=str(owner_id), record_id=str(record_id))
        await self._default_changed(db, owner_id, record)
        return record

    async def update(
        self,
        db: AsyncSession,
        owner_id: uuid.UUID,
        record_id: uuid.UUID,
        fields: Dict[str, Any],
    ) -> Any:
        """
        Apply field changes to a record.

        ``is_default=True`` in the fields promotes the record; any other value
        leaves the default flag untouched.
        """
        promote = bool(fields.get("is_default"))
        changes = self._clean(fields)

        record = await self.get(db, owner_id, record_id)
        for name, value in changes.items():
            setattr(record, name, value)
        await db.flush()

        logger.info(
            f"Updated {self.label}",
            owner_id=str(owner_id),
            record_id=str(record_id),
            fields=sorted(changes),
            promote=promote,
        )

        if promote:
            return await self.promote(db, owner_id, record_id)
        if record.is_default and changes:
            await self._default_changed(db, owner_id, record)
        return record

    async def delete(self, db: AsyncSession, owner_id: uuid.UUID, record_id: uuid.UUID) -> Optional[Any]:
        """
        Delete a record.

        When the default is deleted the oldest remaining record takes over.

        Returns:
            The record promoted in place of the deleted default, if any
        """
        await self._lock_owner_rows(db, owner_id)
        record = await self.get(db, owner_id, record_id)
        was_default = record.is_default

        await db.delete(record)
        await db.flush()

        successor = None
        if was_default:
            successor = await self._oldest(db, owner_id)
            if successor is not None:
                successor.is_default = True
                await db.flush()
            await self._default_changed(db, owner_id, successor)

        logger.info(
            f"Deleted {self.label}",
            owner_id=str(owner_id),
            record_id=str(record_id),
            was_default=was_default,
            successor_id=str(successor.id) if successor is not None else None,
        )
        return successor


# =============================================================================
# FIELD VALIDATION
# =============================================================================

CARD_TYPES = [card.value for card in CardType]
LAST_FOUR_PATTERN = re.compile(r"^\d{4}$")
EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/([0-9]{2})$")


def validate_card_fields(fields: Dict[str, Any]) -> None:
    """Validate card type, last four digits and MM/YY expiry when present."""
    if "card_type" in fields and fields["card_type"] not in CARD_TYPES:
        raise ValidationFailure(
            f"{fields['card_type']} is not a supported card type! Use one of: {', '.join(CARD_TYPES)}"
        )
    if "last_four" in fields and not LAST_FOUR_PATTERN.match(str(fields["last_four"] or "")):
        raise ValidationFailure(f"{fields['last_four']} is not a valid last 4 digits!")
    if "expiry_date" in fields and not EXPIRY_PATTERN.match(str(fields["expiry_date"] or "")):
        raise ValidationFailure(f"{fields['expiry_date']} is not a valid expiry date! Use format MM/YY")


def _require_text(fields: Dict[str, Any], names: Iterable[str]) -> None:
    for name in names:
        if name in fields and not str(fields[name] or "").strip():
            raise ValidationFailure(f"{name} is required")


def validate_address_fields(fields: Dict[str, Any]) -> None:
    _require_text(fields, ("name", "street", "city", "state", "zip_code"))


def validate_shipping_fields(fields: Dict[str, Any]) -> None:
    _require_text(fields, ("name",))
    if "price" in fields:
        try:
            price = Decimal(str(fields["price"]))
        except (InvalidOperation, ValueError):
            raise ValidationFailure(f"{fields['price']} is not a valid price")
        if price < 0:
            raise ValidationFailure("Shipping price cannot be negative")


def validate_gateway_fields(fields: Dict[str, Any]) -> None:
    _require_text(fields, ("name",))
    credentials = fields.get("credentials")
    if credentials is not None and not all(
        isinstance(k, str) and isinstance(v, str) for k, v in credentials.items()
    ):
        raise ValidationFailure("Gateway credentials must map strings to strings")


async def sync_address_summary(
    db: AsyncSession, owner_id: uuid.UUID, default: Optional[Address]
) -> None:
    """Mirror the user's default address onto ``User.address_summary``."""
    summary = default.summary if default is not None else None
    await db.execute(
        update(User).where(User.id == owner_id).values(address_summary=summary)
    )
    logger.debug("Address summary synchronized", user_id=str(owner_id), cleared=summary is None)


# =============================================================================
# ENTITY FAMILIES
# =============================================================================

payment_methods = DefaultRecordManager(
    PaymentMethod,
    owner_field="user_id",
    label="payment method",
    editable_fields=("card_type", "last_four", "expiry_date"),
    validate=validate_card_fields,
)

addresses = DefaultRecordManager(
    Address,
    owner_field="user_id",
    label="address",
    editable_fields=("name", "street", "city", "state", "zip_code"),
    validate=validate_address_fields,
    on_default_change=sync_address_summary,
)

shipping_methods = DefaultRecordManager(
    ShippingMethod,
    owner_field="settings_id",
    label="shipping method",
    editable_fields=("name", "price", "estimated_delivery"),
    validate=validate_shipping_fields,
)

payment_gateways = DefaultRecordManager(
    PaymentGateway,
    owner_field="settings_id",
    label="payment gateway",
    editable_fields=("name", "enabled", "credentials"),
    validate=validate_gateway_fields,
)
