"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from unit_tracker.adapters.supabase_daily_log_repository import (
    SupabaseDailyLogRepository,
)
from unit_tracker.adapters.supabase_workout_log_repository import (
    SupabaseWorkoutLogRepository,
)
from unit_tracker.config import Settings
from unit_tracker.services.meals import DailyMealsService
from unit_tracker.services.query_cache import QueryCache
from unit_tracker.services.workouts import WorkoutLogService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    query_cache: QueryCache
    daily_meals_service: DailyMealsService
    workout_log_service: WorkoutLogService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    query_cache = QueryCache(
        gc_time_seconds=resolved_settings.cache_gc_time_seconds,
        stale_time_seconds=resolved_settings.cache_stale_time_seconds,
    )
    daily_meals_service = DailyMealsService(
        repository=SupabaseDailyLogRepository(supabase_client),
        cache=query_cache,
        timezone_name=resolved_settings.timezone,
        policy=resolved_settings.unmatched_meal_policy,
    )
    workout_log_service = WorkoutLogService(
        repository=SupabaseWorkoutLogRepository(supabase_client),
        cache=query_cache,
        timezone_name=resolved_settings.timezone,
    )

    async def close_resources() -> None:
        query_cache.clear()

    return AppContainer(
        settings=resolved_settings,
        query_cache=query_cache,
        daily_meals_service=daily_meals_service,
        workout_log_service=workout_log_service,
        close_resources=close_resources,
    )
