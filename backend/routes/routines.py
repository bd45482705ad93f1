"""Daily routines and exercise library. Viewing needs an active subscription, editing needs admin."""
from fastapi import APIRouter, Depends, HTTPException, UploadFile, File
from datetime import datetime, timedelta, timezone
import uuid

from config import db
from models import ExerciseCreate, ExerciseUpdate, RoutineCreate
from auth import require_admin, require_active_subscription
from services.uploads import store_video

router = APIRouter()


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def _load_exercises(ids: list) -> list:
    if not ids:
        return []
    found = await db.exercises.find({"id": {"$in": ids}}, {"_id": 0}).to_list(len(ids))
    by_id = {e["id"]: e for e in found}
    return [by_id[i] for i in ids if i in by_id]


# ── Routines ──

@router.get("/routine/{index}")
async def today_routine(index: int, user: dict = Depends(require_active_subscription)):
    start = datetime.utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    routine = await db.routines.find_one({"day": {"$gte": start, "$lte": end}}, {"_id": 0})
    if not routine:
        raise HTTPException(status_code=404, detail={
            "message": "There is no routine scheduled for today yet, try again later.", "redirect": "/",
        })
    exercises = await _load_exercises(routine.get("exercises", []))
    if exercises and (index < 0 or index >= len(exercises)):
        raise HTTPException(status_code=404, detail={
            "message": "Sorry, that exercise does not exist.", "redirect": "/routine/0",
        })
    routine["exercises"] = exercises
    return {
        "title": "Today's routine",
        "routine": routine,
        "index": index,
        "exercise": exercises[index] if exercises else None,
    }


@router.get("/routines")
async def get_routines(user: dict = Depends(require_active_subscription)):
    routines = await db.routines.find({}, {"_id": 0}).sort("day", -1).to_list(1000)
    return {"routines": routines}


@router.post("/routines")
async def create_routine(data: RoutineCreate, admin: dict = Depends(require_admin)):
    exercises = await _load_exercises(data.exercises)
    if len(exercises) != len(data.exercises):
        raise HTTPException(status_code=400, detail="Routine references unknown exercises")
    now = datetime.utcnow()
    routine = {
        "id": str(uuid.uuid4()), "title": data.title, "description": data.description,
        "day": _naive_utc(data.day), "exercises": data.exercises,
        "created_at": now, "updated_at": now,
    }
    await db.routines.insert_one(routine)
    routine.pop("_id", None)
    return routine


# ── Exercises ──

@router.get("/exercises")
async def get_exercises(user: dict = Depends(require_active_subscription)):
    exercises = await db.exercises.find({}, {"_id": 0}).sort("name", 1).to_list(1000)
    return {"exercises": exercises}


@router.get("/exercises/{exercise_id}")
async def get_exercise(exercise_id: str, user: dict = Depends(require_active_subscription)):
    exercise = await db.exercises.find_one({"id": exercise_id}, {"_id": 0})
    if not exercise:
        raise HTTPException(status_code=404, detail={"message": "The exercise cannot be found.", "redirect": "/exercises"})
    return exercise


@router.post("/exercises")
async def create_exercise(data: ExerciseCreate, admin: dict = Depends(require_admin)):
    now = datetime.utcnow()
    exercise = {
        "id": str(uuid.uuid4()), "name": data.name, "description": data.description,
        "video": data.video.model_dump(), "created_at": now, "updated_at": now,
    }
    await db.exercises.insert_one(exercise)
    exercise.pop("_id", None)
    return exercise


@router.put("/exercises/{exercise_id}")
async def update_exercise(exercise_id: str, data: ExerciseUpdate, admin: dict = Depends(require_admin)):
    updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
    updates["updated_at"] = datetime.utcnow()
    result = await db.exercises.update_one({"id": exercise_id}, {"$set": updates})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail={"message": "The exercise cannot be found.", "redirect": "/exercises"})
    return await db.exercises.find_one({"id": exercise_id}, {"_id": 0})


@router.post("/exercises/{exercise_id}/video")
async def upload_exercise_video(exercise_id: str, file: UploadFile = File(...), admin: dict = Depends(require_admin)):
    if not await db.exercises.find_one({"id": exercise_id}):
        raise HTTPException(status_code=404, detail={"message": "The exercise cannot be found.", "redirect": "/exercises"})
    stored = await store_video(file)
    await db.exercises.update_one(
        {"id": exercise_id},
        {"$set": {f"video.{stored['format']}": stored["url"], "updated_at": datetime.utcnow()}},
    )
    return stored
