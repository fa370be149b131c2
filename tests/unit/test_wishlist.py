"""
Unit tests for the wishlist
"""
import uuid

import pytest

from src.commerce import wishlist
from src.commerce.exceptions import NotFoundError, ValidationFailure


class TestWishlist:
    """Tests for saving products"""

    async def test_products_listed_in_order_added(self, db, make_user, make_product):
        user = await make_user()
        fern = await make_product("Boston Fern")
        cactus = await make_product("Barrel Cactus")

        await wishlist.add_to_wishlist(db, user.id, fern.id)
        await wishlist.add_to_wishlist(db, user.id, cactus.id)

        saved = await wishlist.list_wishlist(db, user.id)
        assert {p.id for p in saved} == {fern.id, cactus.id}
        assert await wishlist.in_wishlist(db, user.id, fern.id) is True

    async def test_lists_are_per_user(self, db, make_user, make_product):
        alice = await make_user()
        bob = await make_user()
        product = await make_product()

        await wishlist.add_to_wishlist(db, alice.id, product.id)

        assert await wishlist.list_wishlist(db, bob.id) == []
        assert await wishlist.in_wishlist(db, bob.id, product.id) is False

    async def test_duplicate_add(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()
        await wishlist.add_to_wishlist(db, user.id, product.id)

        with pytest.raises(ValidationFailure) as exc_info:
            await wishlist.add_to_wishlist(db, user.id, product.id)

        assert exc_info.value.message == "Product already in wishlist"

    async def test_unknown_product(self, db, make_user):
        user = await make_user()

        with pytest.raises(NotFoundError):
            await wishlist.add_to_wishlist(db, user.id, uuid.uuid4())

    async def test_remove(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()
        await wishlist.add_to_wishlist(db, user.id, product.id)

        await wishlist.remove_from_wishlist(db, user.id, product.id)

        assert await wishlist.list_wishlist(db, user.id) == []

    async def test_remove_missing_entry(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()

        with pytest.raises(ValidationFailure) as exc_info:
            await wishlist.remove_from_wishlist(db, user.id, product.id)

        assert exc_info.value.message == "Product not in wishlist"
