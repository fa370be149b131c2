"""
Unit tests for product reviews and rating recomputation
"""
import uuid
from datetime import datetime

import pytest

from src.commerce import reviews
from src.commerce.exceptions import NotFoundError, PermissionDenied, ValidationFailure


class TestCreateReview:
    """Tests for adding reviews"""

    async def test_rating_is_mean_rounded_to_one_decimal(self, db, make_user, make_product):
        product = await make_product()
        for rating in (5, 4, 4):
            await reviews.create_review(db, await make_user(), product.id, rating, "Lovely plant")

        assert product.reviews_count == 3
        assert product.rating == 4.3

    async def test_author_name_is_stored(self, db, make_user, make_product):
        user = await make_user(first_name="Ana", last_name="Silva")
        product = await make_product()

        review = await reviews.create_review(db, user, product.id, 5, "Arrived healthy")

        assert review.name == "Ana Silva"
        assert review.verified is True

    async def test_one_review_per_product(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()
        await reviews.create_review(db, user, product.id, 5, "Great")

        with pytest.raises(ValidationFailure) as exc_info:
            await reviews.create_review(db, user, product.id, 1, "Changed my mind")

        assert "already reviewed" in exc_info.value.message
        assert product.reviews_count == 1

    @pytest.mark.parametrize("rating", [0, 6, 3.5, "five", None])
    async def test_invalid_rating(self, db, make_user, make_product, rating):
        user = await make_user()
        product = await make_product()

        with pytest.raises(ValidationFailure) as exc_info:
            await reviews.create_review(db, user, product.id, rating, "Nice")

        assert exc_info.value.message == "Rating must be a number between 1 and 5"

    async def test_blank_comment(self, db, make_user, make_product):
        user = await make_user()
        product = await make_product()

        with pytest.raises(ValidationFailure):
            await reviews.create_review(db, user, product.id, 4, "   ")

    async def test_unknown_product(self, db, make_user):
        user = await make_user()

        with pytest.raises(NotFoundError):
            await reviews.create_review(db, user, uuid.uuid4(), 4, "Nice")


class TestChangeReview:
    """Tests for editing and deleting reviews"""

    async def test_update_recomputes_rating(self, db, make_user, make_product):
        author = await make_user()
        product = await make_product()
        review = await reviews.create_review(db, author, product.id, 2, "Drooping")
        await reviews.create_review(db, await make_user(), product.id, 4, "Fine")

        await reviews.update_review(db, author, review.id, 5, "Recovered nicely")

        assert review.rating == 5
        assert product.rating == 4.5

    async def test_only_author_may_edit(self, db, make_user, make_product):
        author = await make_user()
        other = await make_user()
        product = await make_product()
        review = await reviews.create_review(db, author, product.id, 3, "Okay")

        with pytest.raises(PermissionDenied):
            await reviews.update_review(db, other, review.id, 1, "Bad")
        with pytest.raises(PermissionDenied):
            await reviews.delete_review(db, other, review.id)

    async def test_deleting_last_review_resets_rating(self, db, make_user, make_product):
        author = await make_user()
        product = await make_product()
        review = await reviews.create_review(db, author, product.id, 5, "Perfect")

        await reviews.delete_review(db, author, review.id)

        assert product.rating == 0
        assert product.reviews_count == 0

    async def test_missing_review(self, db, make_user):
        user = await make_user()

        with pytest.raises(NotFoundError):
            await reviews.delete_review(db, user, uuid.uuid4())


class TestListing:
    """Tests for review listings"""

    async def test_product_reviews_newest_first(self, db, make_user, make_product):
        product = await make_product()
        first = await reviews.create_review(db, await make_user(), product.id, 4, "First")
        second = await reviews.create_review(db, await make_user(), product.id, 5, "Second")
        first.created_at = datetime(2024, 1, 1)
        await db.flush()

        listed = await reviews.list_product_reviews(db, product.id)

        assert [r.id for r in listed] == [second.id, first.id]

    async def test_recent_reviews_limit(self, db, make_user, make_product):
        product = await make_product()
        for _ in range(5):
            await reviews.create_review(db, await make_user(), product.id, 5, "Great")

        recent = await reviews.recent_reviews(db, limit=3)

        assert len(recent) == 3
        assert all(r.product_id == product.id for r in recent)
