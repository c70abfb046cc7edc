# habitflow/routers/habits.py
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_habit_store
from ..errors import NotFoundError
from ..schemas.common import envelope
from ..schemas.habit import (BulkCreateError, CategoryResponse, HabitBulkCreate, HabitCreate, HabitResponse,
                             HabitUpdate, HabitWithStatsResponse)
from ..stores.base import HabitStore

router = APIRouter(
    prefix="/api/habits",
    tags=["Habits"],
)


@router.get("")
def list_habits(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    category: Optional[str] = Query(None, max_length=100),
    with_stats: bool = Query(False, alias="withStats"),
    habits: HabitStore = Depends(get_habit_store),
):
    if with_stats:
        items = [HabitWithStatsResponse.from_stats(item) for item in habits.with_stats()]
    else:
        items = [HabitResponse.model_validate(h) for h in habits.find_all(is_active=is_active, category=category)]
    return envelope(items, count=True)


@router.get("/categories")
def list_categories(habits: HabitStore = Depends(get_habit_store)):
    return envelope([CategoryResponse.model_validate(c) for c in habits.categories()])


@router.get("/{habit_id}")
def get_habit(habit_id: UUID, habits: HabitStore = Depends(get_habit_store)):
    return envelope(HabitResponse.model_validate(habits.require(str(habit_id))))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_habit(body: HabitCreate, habits: HabitStore = Depends(get_habit_store)):
    habit = habits.create(**body.model_dump())
    return envelope(HabitResponse.model_validate(habit), message="Habit created successfully")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
def bulk_create_habits(body: HabitBulkCreate, habits: HabitStore = Depends(get_habit_store)):
    created, errors = habits.bulk_create([item.model_dump() for item in body.habits])
    return envelope(
        [HabitResponse.model_validate(h) for h in created],
        message=f"{len(created)} habits created successfully",
        errors=[BulkCreateError(**e) for e in errors] or None,
    )


@router.put("/{habit_id}")
def update_habit(habit_id: UUID, body: HabitUpdate, habits: HabitStore = Depends(get_habit_store)):
    habit = habits.update(str(habit_id), **body.model_dump(exclude_unset=True))
    if habit is None:
        raise NotFoundError("Habit not found")
    return envelope(HabitResponse.model_validate(habit), message="Habit updated successfully")


@router.delete("/{habit_id}")
def delete_habit(habit_id: UUID, habits: HabitStore = Depends(get_habit_store)):
    habit = habits.soft_delete(str(habit_id))
    if habit is None:
        raise NotFoundError("Habit not found")
    return envelope(HabitResponse.model_validate(habit), message="Habit deleted successfully")


@router.delete("/{habit_id}/destroy")
def destroy_habit(habit_id: UUID, habits: HabitStore = Depends(get_habit_store)):
    if not habits.hard_delete(str(habit_id)):
        raise NotFoundError("Habit not found")
    return envelope(message="Habit permanently deleted")
