"""
Unit tests for the single-default record families
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from src.commerce.defaults import (
    addresses,
    payment_gateways,
    payment_methods,
    shipping_methods,
    validate_card_fields,
)
from src.commerce.exceptions import NotFoundError, ValidationFailure
from src.commerce.store import get_store_settings


CARD = {"card_type": "Visa", "last_four": "4242", "expiry_date": "12/29"}
ADDRESS = {
    "name": "Home",
    "street": "1 Fern Lane",
    "city": "Portland",
    "state": "OR",
    "zip_code": "97201",
}


async def count_defaults(db, manager, owner_id) -> int:
    model = manager.model
    result = await db.execute(
        select(func.count(model.id)).where(
            getattr(model, manager.owner_field) == owner_id,
            model.is_default.is_(True),
        )
    )
    return result.scalar()


async def add_cards(db, owner_id, count, start=datetime(2024, 1, 1)):
    """Create cards with strictly increasing creation times"""
    cards = []
    for i in range(count):
        card = await payment_methods.create(db, owner_id, dict(CARD, last_four=f"{1000 + i}"))
        card.created_at = start + timedelta(days=i)
        cards.append(card)
    await db.flush()
    return cards


class TestCreate:
    """Tests for creating records"""

    async def test_first_record_becomes_default(self, db, make_user):
        """The owner's first record is the default even when not requested"""
        user = await make_user()
        card = await payment_methods.create(db, user.id, CARD, is_default=False)

        assert card.is_default is True
        assert await count_defaults(db, payment_methods, user.id) == 1

    async def test_later_records_are_not_default(self, db, make_user):
        user = await make_user()
        first, second = await add_cards(db, user.id, 2)

        assert first.is_default is True
        assert second.is_default is False

    async def test_requested_default_replaces_previous(self, db, make_user):
        """A record created as default takes the flag from the old default"""
        user = await make_user()
        first = await payment_methods.create(db, user.id, CARD)
        second = await payment_methods.create(db, user.id, CARD, is_default=True)

        assert second.is_default is True
        assert first.is_default is False
        assert await count_defaults(db, payment_methods, user.id) == 1

    async def test_owners_do_not_share_defaults(self, db, make_user):
        alice = await make_user()
        bob = await make_user()
        await payment_methods.create(db, alice.id, CARD)
        bob_card = await payment_methods.create(db, bob.id, CARD, is_default=True)

        assert bob_card.is_default is True
        assert await count_defaults(db, payment_methods, alice.id) == 1
        assert await count_defaults(db, payment_methods, bob.id) == 1

    async def test_invalid_fields_are_rejected(self, db, make_user):
        user = await make_user()

        with pytest.raises(ValidationFailure):
            await payment_methods.create(db, user.id, dict(CARD, last_four="42"))

        assert await payment_methods.count(db, user.id) == 0


class TestInvariant:
    """At most one default per owner, and exactly one once any record exists"""

    async def test_default_count_follows_min_one_n(self, db, make_user):
        user = await make_user()
        cards = await add_cards(db, user.id, 4)

        await payment_methods.promote(db, user.id, cards[2].id)
        await payment_methods.create(db, user.id, CARD, is_default=True)
        await payment_methods.delete(db, user.id, cards[1].id)

        remaining = await payment_methods.list(db, user.id)
        assert len(remaining) == 4
        assert await count_defaults(db, payment_methods, user.id) == 1

        for record in remaining:
            await payment_methods.delete(db, user.id, record.id)
            n = await payment_methods.count(db, user.id)
            assert await count_defaults(db, payment_methods, user.id) == min(1, n)


class TestPromote:
    """Tests for promoting a record to default"""

    async def test_promote_moves_default(self, db, make_user):
        user = await make_user()
        first, second, third = await add_cards(db, user.id, 3)

        await payment_methods.promote(db, user.id, third.id)

        assert third.is_default is True
        assert first.is_default is False
        assert second.is_default is False

    async def test_promote_is_idempotent(self, db, make_user):
        user = await make_user()
        first, second = await add_cards(db, user.id, 2)

        await payment_methods.promote(db, user.id, second.id)
        await payment_methods.promote(db, user.id, second.id)

        default = await payment_methods.get_default(db, user.id)
        assert default.id == second.id
        assert await count_defaults(db, payment_methods, user.id) == 1

    async def test_promote_other_owners_record_is_not_found(self, db, make_user):
        owner = await make_user()
        intruder = await make_user()
        (card,) = await add_cards(db, owner.id, 1)

        with pytest.raises(NotFoundError) as exc_info:
            await payment_methods.promote(db, intruder.id, card.id)

        assert exc_info.value.message == "Payment method not found"
        assert card.is_default is True


class TestUpdate:
    """Tests for updating records"""

    async def test_update_changes_fields_only(self, db, make_user):
        user = await make_user()
        first, second = await add_cards(db, user.id, 2)

        updated = await payment_methods.update(db, user.id, second.id, {"expiry_date": "01/30"})

        assert updated.expiry_date == "01/30"
        assert updated.is_default is False
        assert first.is_default is True

    async def test_explicit_false_keeps_default(self, db, make_user):
        """Unsetting the flag through update cannot leave the owner without a default"""
        user = await make_user()
        (card,) = await add_cards(db, user.id, 1)

        await payment_methods.update(db, user.id, card.id, {"is_default": False})

        assert card.is_default is True

    async def test_update_with_default_flag_promotes(self, db, make_user):
        user = await make_user()
        first, second = await add_cards(db, user.id, 2)

        await payment_methods.update(db, user.id, second.id, {"last_four": "9999", "is_default": True})

        assert second.is_default is True
        assert second.last_four == "9999"
        assert first.is_default is False

    async def test_update_missing_record(self, db, make_user):
        user = await make_user()
        other = await make_user()
        (card,) = await add_cards(db, other.id, 1)

        with pytest.raises(NotFoundError):
            await payment_methods.update(db, user.id, card.id, {"last_four": "1111"})


class TestDelete:
    """Tests for deleting records"""

    async def test_oldest_survivor_inherits_default(self, db, make_user):
        user = await make_user()
        cards = await add_cards(db, user.id, 3)
        # Newest card is the default; the oldest remaining one must take over
        await payment_methods.promote(db, user.id, cards[2].id)

        successor = await payment_methods.delete(db, user.id, cards[2].id)

        assert successor.id == cards[0].id
        assert cards[0].is_default is True
        assert cards[1].is_default is False

    async def test_deleting_non_default_keeps_default(self, db, make_user):
        user = await make_user()
        first, second = await add_cards(db, user.id, 2)

        successor = await payment_methods.delete(db, user.id, second.id)

        assert successor is None
        assert first.is_default is True

    async def test_deleting_last_record_leaves_no_default(self, db, make_user):
        user = await make_user()
        (card,) = await add_cards(db, user.id, 1)

        successor = await payment_methods.delete(db, user.id, card.id)

        assert successor is None
        assert await payment_methods.get_default(db, user.id) is None

    async def test_delete_missing_record(self, db, make_user):
        user = await make_user()

        with pytest.raises(NotFoundError):
            await payment_methods.delete(db, user.id, user.id)


class TestAddressSummary:
    """The user's address summary mirrors the default address"""

    async def test_summary_follows_default(self, db, make_user):
        user = await make_user()
        home = await addresses.create(db, user.id, ADDRESS)
        await db.refresh(user)
        assert user.address_summary == "Home, 1 Fern Lane, Portland, OR 97201"

        work = await addresses.create(db, user.id, dict(ADDRESS, name="Work", street="9 Oak St"))
        await db.refresh(user)
        assert user.address_summary == home.summary

        await addresses.promote(db, user.id, work.id)
        await db.refresh(user)
        assert user.address_summary == "Work, 9 Oak St, Portland, OR 97201"

    async def test_editing_default_refreshes_summary(self, db, make_user):
        user = await make_user()
        home = await addresses.create(db, user.id, ADDRESS)

        await addresses.update(db, user.id, home.id, {"city": "Salem"})
        await db.refresh(user)

        assert user.address_summary == "Home, 1 Fern Lane, Salem, OR 97201"

    async def test_summary_cleared_with_last_address(self, db, make_user):
        user = await make_user()
        home = await addresses.create(db, user.id, ADDRESS)

        await addresses.delete(db, user.id, home.id)
        await db.refresh(user)

        assert user.address_summary is None

    async def test_blank_street_rejected(self, db, make_user):
        user = await make_user()

        with pytest.raises(ValidationFailure):
            await addresses.create(db, user.id, dict(ADDRESS, street="  "))


class TestStoreFamilies:
    """Shipping methods and payment gateways are owned by the store settings"""

    async def test_shipping_methods_keep_single_default(self, db):
        settings = await get_store_settings(db)
        standard = await shipping_methods.create(db, settings.id, {"name": "Standard", "price": Decimal("4.99")})
        express = await shipping_methods.create(db, settings.id, {"name": "Express", "price": Decimal("12.99")})

        await shipping_methods.promote(db, settings.id, express.id)

        assert standard.is_default is False
        assert express.is_default is True
        assert await count_defaults(db, shipping_methods, settings.id) == 1

    async def test_negative_shipping_price_rejected(self, db):
        settings = await get_store_settings(db)

        with pytest.raises(ValidationFailure):
            await shipping_methods.create(db, settings.id, {"name": "Free", "price": Decimal("-1")})

    async def test_gateway_delete_promotes_survivor(self, db):
        settings = await get_store_settings(db)
        stripe = await payment_gateways.create(db, settings.id, {"name": "Stripe", "credentials": {"key": "sk"}})
        paypal = await payment_gateways.create(db, settings.id, {"name": "PayPal"})

        successor = await payment_gateways.delete(db, settings.id, stripe.id)

        assert successor.id == paypal.id
        assert paypal.is_default is True

    async def test_settings_row_is_singleton(self, db):
        first = await get_store_settings(db)
        second = await get_store_settings(db)

        assert first.id == second.id
        assert first.store_name == "Botanical Store"


class TestCardValidation:
    """Tests for stored card field validation"""

    @pytest.mark.parametrize("fields, fragment", [
        ({"card_type": "Discover"}, "not a supported card type"),
        ({"last_four": "12a4"}, "not a valid last 4 digits"),
        ({"expiry_date": "13/29"}, "not a valid expiry date"),
        ({"expiry_date": "1/29"}, "not a valid expiry date"),
    ])
    def test_invalid_card_fields(self, fields, fragment):
        with pytest.raises(ValidationFailure) as exc_info:
            validate_card_fields(fields)
        assert fragment in exc_info.value.message

    def test_valid_card_fields(self):
        validate_card_fields(CARD)
