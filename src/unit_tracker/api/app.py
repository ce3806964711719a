"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from fastapi import FastAPI, HTTPException, Query, Request, status

from unit_tracker.api.models import AddFoodEntryRequest, AddWorkoutLogRequest
from unit_tracker.app_logging import configure_logging
from unit_tracker.containers import AppContainer
from unit_tracker.domain.errors import (
    DataIntegrityError,
    FoodNotFoundError,
    StoreError,
    UnknownMealCategoryError,
)
from unit_tracker.domain.meals import DailyMeals, LoggedFoodEntry, MealSummary
from unit_tracker.domain.units import FoodCategory
from unit_tracker.domain.workouts import WeeklyWorkouts, WorkoutLogEntry
from unit_tracker.services.units import units_for

_UNPROCESSABLE = 422


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/units")
    async def units(
        calories: float = Query(ge=0), category: FoodCategory = Query()
    ) -> dict[str, object]:
        """Convert calories of a food category to half-units."""
        return {
            "calories": calories,
            "category": category.value,
            "units": units_for(calories, category),
        }

    @app.get("/users/{user_id}/meals")
    async def daily_meals(
        user_id: UUID, request: Request, day: date | None = None, wait: bool = True
    ) -> dict[str, object]:
        """Return the four meal summaries for a day."""
        state_container: AppContainer = request.app.state.container
        try:
            meals = await state_container.daily_meals_service.get_daily_meals(
                user_id, day, wait=wait
            )
        except UnknownMealCategoryError as exc:
            raise HTTPException(
                status_code=_UNPROCESSABLE, detail=str(exc)
            ) from exc
        return _serialize_daily_meals(meals)

    @app.post("/users/{user_id}/meals/items", status_code=status.HTTP_201_CREATED)
    async def add_food_entry(
        user_id: UUID, body: AddFoodEntryRequest, request: Request
    ) -> dict[str, object]:
        """Log a food bank item into a meal."""
        state_container: AppContainer = request.app.state.container
        try:
            entry = await state_container.daily_meals_service.add_food_entry(
                user_id=user_id,
                food_id=body.food_id,
                meal_category=body.meal_category,
                quantity=body.quantity,
                measure_type=body.measure_type,
                day=body.day,
            )
        except UnknownMealCategoryError as exc:
            raise HTTPException(
                status_code=_UNPROCESSABLE, detail=str(exc)
            ) from exc
        except FoodNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND) from exc
        except StoreError as exc:
            logger.exception("Failed to add food entry")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY) from exc
        return _serialize_food_entry(entry)

    @app.delete(
        "/users/{user_id}/meals/items/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
    )
    async def delete_food_entry(user_id: UUID, item_id: UUID, request: Request) -> None:
        """Delete a logged food entry."""
        state_container: AppContainer = request.app.state.container
        try:
            await state_container.daily_meals_service.delete_food_entry(
                user_id, item_id
            )
        except StoreError as exc:
            logger.exception("Failed to delete food entry")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY) from exc

    @app.get("/users/{user_id}/workouts")
    async def weekly_workouts(
        user_id: UUID, request: Request, wait: bool = True
    ) -> dict[str, object]:
        """Return this week's workouts and totals."""
        state_container: AppContainer = request.app.state.container
        try:
            weekly = await state_container.workout_log_service.get_weekly_workouts(
                user_id, wait=wait
            )
        except DataIntegrityError as exc:
            logger.exception("Workout logs failed validation")
            raise HTTPException(
                status_code=_UNPROCESSABLE, detail=str(exc)
            ) from exc
        return _serialize_weekly_workouts(weekly)

    @app.post("/users/{user_id}/workouts", status_code=status.HTTP_201_CREATED)
    async def add_workout_log(
        user_id: UUID, body: AddWorkoutLogRequest, request: Request
    ) -> dict[str, object]:
        """Record a workout."""
        state_container: AppContainer = request.app.state.container
        try:
            entry = await state_container.workout_log_service.add_workout_log(
                user_id=user_id,
                workout_type=body.workout_type,
                amount=body.amount,
                log_date=body.log_date,
            )
        except StoreError as exc:
            logger.exception("Failed to add workout log")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY) from exc
        return _serialize_workout_log(entry)

    @app.delete(
        "/users/{user_id}/workouts/{log_id}", status_code=status.HTTP_204_NO_CONTENT
    )
    async def delete_workout_log(user_id: UUID, log_id: UUID, request: Request) -> None:
        """Delete a workout."""
        state_container: AppContainer = request.app.state.container
        try:
            await state_container.workout_log_service.delete_workout_log(
                user_id, log_id
            )
        except StoreError as exc:
            logger.exception("Failed to delete workout log")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY) from exc

    return app


def _serialize_error(error: Exception | None) -> str | None:
    return str(error) if error else None


def _serialize_daily_meals(meals: DailyMeals) -> dict[str, object]:
    return {
        "day": meals.day,
        "is_loading": meals.is_loading,
        "error": _serialize_error(meals.error),
        "meals": [_serialize_meal(meal) for meal in meals.meals],
    }


def _serialize_meal(meal: MealSummary) -> dict[str, object]:
    return {
        "category": meal.category.value,
        "meal_type": meal.meal_type,
        "total_calories": meal.total_calories,
        "total_protein": meal.total_protein,
        "total_carbs": meal.total_carbs,
        "total_fats": meal.total_fats,
        "total_veg": meal.total_veg,
        "total_fruit": meal.total_fruit,
        "items": [_serialize_food_entry(item) for item in meal.items],
    }


def _serialize_food_entry(entry: LoggedFoodEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "daily_log_id": str(entry.daily_log_id),
        "food_id": entry.food_id,
        "food_name": entry.food.name if entry.food else None,
        "meal_category": entry.meal_category,
        "measure_type": entry.measure_type,
        "quantity": entry.quantity,
        "grams": entry.grams,
        "kcal": entry.kcal,
        "protein_units": entry.protein_units,
        "carb_units": entry.carb_units,
        "fat_units": entry.fat_units,
        "veg_units": entry.veg_units,
        "fruit_units": entry.fruit_units,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }


def _serialize_weekly_workouts(weekly: WeeklyWorkouts) -> dict[str, object]:
    return {
        "week_start": weekly.window.start_date,
        "week_end": weekly.window.end_date,
        "workout_logs": [_serialize_workout_log(log) for log in weekly.workout_logs],
        "strength_logs": [_serialize_workout_log(log) for log in weekly.strength_logs],
        "cardio_logs": [_serialize_workout_log(log) for log in weekly.cardio_logs],
        "total_strength_workouts": weekly.total_strength_workouts,
        "total_cardio_minutes": weekly.total_cardio_minutes,
        "is_loading": weekly.is_loading,
        "is_adding_log": weekly.is_adding_log,
        "error": _serialize_error(weekly.error),
    }


def _serialize_workout_log(entry: WorkoutLogEntry) -> dict[str, object]:
    return {
        "id": str(entry.id),
        "user_id": str(entry.user_id),
        "log_date": entry.log_date.isoformat(),
        "workout_type": entry.workout_type,
        "amount": entry.amount,
        "created_at": entry.created_at.isoformat() if entry.created_at else None,
    }
