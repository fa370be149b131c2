"""
Admin Statistics Endpoint

Serves the dashboard report, cached in Redis for a short TTL when a Redis
connection is available.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from src.commerce.statistics import AdminStatsReport, StatisticsReporter
from src.config import get_settings
from src.database.connection import get_db_dependency
from src.serving.api.dependencies import require_admin
from src.serving.cache import stats_cache

router = APIRouter(dependencies=[Depends(require_admin)])
logger = structlog.get_logger(__name__)


def get_reporter() -> StatisticsReporter:
    config = get_settings().statistics
    return StatisticsReporter(
        recent_orders_limit=config.recent_orders_limit,
        top_products_limit=config.top_products_limit,
        trend_months=config.trend_months,
    )


@router.get("/stats", response_model=AdminStatsReport)
async def admin_stats(
    reporter: StatisticsReporter = Depends(get_reporter),
    db: AsyncSession = Depends(get_db_dependency),
):
    """
    Dashboard statistics: totals, month-over-month changes, recent orders,
    best sellers, monthly sales trend and category distribution.
    """
    async def build():
        report = await reporter.generate_report(db)
        return report.model_dump(mode="json")

    return await stats_cache.get_or_set("admin", build)
