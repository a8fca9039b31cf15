"""Weekly planner operations.

A week is a plain dict in the same camelCase shape the JSON API stores and
returns (``dailyTasks``, ``weeklyGoals``, ``habitCompletions``,
``futureTasks``, ``weekLocked``). Every operation here returns a new week
and leaves its argument untouched, so callers can compare the state before
and after a change.
"""
from __future__ import annotations

import time
from datetime import date, timedelta
from typing import TypedDict

DAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

EARLY = "early"
ON_TIME = "on_time"
LATE = "late"

FIRST_DAY = date.min + timedelta(weeks=2)
LAST_DAY = date.max - timedelta(weeks=2)


class PlannerError(ValueError):
    pass


class Task(TypedDict):
    id: int
    text: str
    completed: bool
    originalDay: str
    completionStatus: str | None


class Goal(TypedDict):
    id: int
    text: str
    completed: bool


class WeekData(TypedDict):
    dailyTasks: dict[str, list[Task]]
    weeklyGoals: list[Goal]
    habitCompletions: dict[str, dict[str, bool]]
    futureTasks: list[Task]
    weekLocked: bool


# -------------------- week keys --------------------


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def week_key(day: date) -> str:
    monday = week_start(day)
    return f"{monday.month}/{monday.day}/{monday.year}"


def parse_week_key(key: str) -> date:
    """Accept ``M/D/YYYY`` or ISO ``YYYY-MM-DD``."""
    key = (key or "").strip()
    try:
        if "/" in key:
            month, day, year = (int(part) for part in key.split("/"))
            parsed = date(year, month, day)
        else:
            parsed = date.fromisoformat(key)
    except ValueError as exc:
        raise PlannerError(f"Invalid week key: {key!r}") from exc
    # Neighbouring weeks must stay inside the date range.
    if not FIRST_DAY <= parsed <= LAST_DAY:
        raise PlannerError(f"Week key out of range: {key!r}")
    return parsed


def canonical_week_key(key: str) -> str:
    return week_key(parse_week_key(key))


def current_week_key() -> str:
    return week_key(date.today())


def shift_week(key: str, weeks: int) -> str:
    try:
        return week_key(parse_week_key(key) + timedelta(weeks=weeks))
    except OverflowError as exc:
        raise PlannerError(f"Cannot shift week {key!r} by {weeks}") from exc


def week_display(key: str) -> str:
    monday = week_start(parse_week_key(key))
    return f"{monday.month}/{monday.day} Week"


def week_sort_key(key: str) -> date:
    try:
        return parse_week_key(key)
    except PlannerError:
        return date.min


# -------------------- normalisation --------------------


def empty_week() -> WeekData:
    return {
        "dailyTasks": {},
        "weeklyGoals": [],
        "habitCompletions": {},
        "futureTasks": [],
        "weekLocked": False,
    }


def _normalize_task(raw: dict, day: str | None) -> Task:
    status = raw.get("completionStatus")
    return {
        "id": raw.get("id"),
        "text": str(raw.get("text") or ""),
        "completed": bool(raw.get("completed", False)),
        "originalDay": raw.get("originalDay") or day,
        "completionStatus": status if status in (EARLY, ON_TIME, LATE) else None,
    }


def normalize_week(data: dict | None) -> WeekData:
    """Fill in missing week fields with empty defaults."""
    week = empty_week()
    if not data:
        return week

    daily_tasks = data.get("dailyTasks")
    if isinstance(daily_tasks, dict):
        for day, tasks in daily_tasks.items():
            if isinstance(tasks, list):
                week["dailyTasks"][day] = [
                    _normalize_task(task, day) for task in tasks if isinstance(task, dict)
                ]

    goals = data.get("weeklyGoals")
    if isinstance(goals, list):
        week["weeklyGoals"] = [
            {
                "id": goal.get("id"),
                "text": str(goal.get("text") or ""),
                "completed": bool(goal.get("completed", False)),
            }
            for goal in goals
            if isinstance(goal, dict)
        ]

    completions = data.get("habitCompletions")
    if isinstance(completions, dict):
        week["habitCompletions"] = {
            str(habit_id): {day: bool(done) for day, done in days.items()}
            for habit_id, days in completions.items()
            if isinstance(days, dict)
        }

    future = data.get("futureTasks")
    if isinstance(future, list):
        week["futureTasks"] = [
            _normalize_task(task, None) for task in future if isinstance(task, dict)
        ]

    week["weekLocked"] = bool(data.get("weekLocked", False))
    _repair_ids(week)
    return week


def _valid_id(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _repair_ids(week: WeekData) -> None:
    """Number items whose id is missing or unusable after the highest good id.

    The numbering only depends on the stored items, so a week read twice gets
    the same ids both times.
    """
    items = [task for tasks in week["dailyTasks"].values() for task in tasks]
    items += week["futureTasks"]
    items += week["weeklyGoals"]
    highest = max((item["id"] for item in items if _valid_id(item["id"])), default=0)
    for item in items:
        if not _valid_id(item["id"]):
            highest += 1
            item["id"] = highest


def _copy(week: WeekData) -> WeekData:
    # normalize_week builds fresh containers all the way down.
    return normalize_week(week)


def _check_day(day: str) -> None:
    if day not in DAYS:
        raise PlannerError(f"Unknown day: {day!r}")


def _check_unlocked(week: WeekData) -> None:
    if week.get("weekLocked"):
        raise PlannerError("Week is locked")


def next_item_id(week: WeekData) -> int:
    ids = [task["id"] for tasks in week["dailyTasks"].values() for task in tasks]
    ids += [task["id"] for task in week["futureTasks"]]
    ids += [goal["id"] for goal in week["weeklyGoals"]]
    highest = max((i for i in ids if _valid_id(i)), default=0)
    return max(int(time.time() * 1000), highest + 1)


def _find_item(items: list, item_id: int) -> int:
    for index, item in enumerate(items):
        if item["id"] == item_id:
            return index
    raise PlannerError(f"Item {item_id} not found")


# -------------------- tasks --------------------


def classify_completion(original_day: str, completed_day: str) -> str:
    """Compare the day a task was finished on with the day it was planned for."""
    _check_day(completed_day)
    if original_day not in DAYS:
        return ON_TIME
    planned = DAYS.index(original_day)
    actual = DAYS.index(completed_day)
    if actual < planned:
        return EARLY
    if actual > planned:
        return LATE
    return ON_TIME


def add_task(week: WeekData, day: str, text: str) -> WeekData:
    _check_day(day)
    if not text.strip():
        raise PlannerError("Task text is required")
    week = _copy(week)
    _check_unlocked(week)
    task: Task = {
        "id": next_item_id(week),
        "text": text.strip(),
        "completed": False,
        "originalDay": day,
        "completionStatus": None,
    }
    week["dailyTasks"].setdefault(day, []).append(task)
    return week


def toggle_task(week: WeekData, day: str, task_id: int) -> WeekData:
    _check_day(day)
    week = _copy(week)
    tasks = week["dailyTasks"].get(day, [])
    task = tasks[_find_item(tasks, task_id)]
    task["completed"] = not task["completed"]
    if task["completed"]:
        task["completionStatus"] = classify_completion(task["originalDay"], day)
    else:
        task["completionStatus"] = None
    return week


def move_task(week: WeekData, from_day: str, task_id: int, to_day: str) -> WeekData:
    """Reschedule a task onto another day, keeping the day it was planned for."""
    _check_day(from_day)
    _check_day(to_day)
    week = _copy(week)
    _check_unlocked(week)
    if from_day == to_day:
        return week
    source = week["dailyTasks"].get(from_day, [])
    task = source.pop(_find_item(source, task_id))
    if task["completed"]:
        task["completionStatus"] = classify_completion(task["originalDay"], to_day)
    week["dailyTasks"].setdefault(to_day, []).append(task)
    return week


def delete_task(week: WeekData, day: str, task_id: int) -> WeekData:
    _check_day(day)
    week = _copy(week)
    tasks = week["dailyTasks"].get(day, [])
    tasks.pop(_find_item(tasks, task_id))
    return week


def add_future_task(week: WeekData, text: str) -> WeekData:
    if not text.strip():
        raise PlannerError("Task text is required")
    week = _copy(week)
    _check_unlocked(week)
    week["futureTasks"].append(
        {
            "id": next_item_id(week),
            "text": text.strip(),
            "completed": False,
            "originalDay": None,
            "completionStatus": None,
        }
    )
    return week


def schedule_future_task(week: WeekData, task_id: int, day: str) -> WeekData:
    _check_day(day)
    week = _copy(week)
    _check_unlocked(week)
    task = week["futureTasks"].pop(_find_item(week["futureTasks"], task_id))
    task["originalDay"] = day
    task["completed"] = False
    task["completionStatus"] = None
    week["dailyTasks"].setdefault(day, []).append(task)
    return week


def delete_future_task(week: WeekData, task_id: int) -> WeekData:
    week = _copy(week)
    week["futureTasks"].pop(_find_item(week["futureTasks"], task_id))
    return week


# -------------------- goals --------------------


def add_goal(week: WeekData, text: str) -> WeekData:
    if not text.strip():
        raise PlannerError("Goal text is required")
    week = _copy(week)
    week["weeklyGoals"].append({"id": next_item_id(week), "text": text.strip(), "completed": False})
    return week


def toggle_goal(week: WeekData, goal_id: int) -> WeekData:
    week = _copy(week)
    goal = week["weeklyGoals"][_find_item(week["weeklyGoals"], goal_id)]
    goal["completed"] = not goal["completed"]
    return week


def delete_goal(week: WeekData, goal_id: int) -> WeekData:
    week = _copy(week)
    week["weeklyGoals"].pop(_find_item(week["weeklyGoals"], goal_id))
    return week


# -------------------- habits and lock --------------------


def toggle_habit(week: WeekData, habit_id: int, day: str) -> WeekData:
    _check_day(day)
    week = _copy(week)
    days = week["habitCompletions"].setdefault(str(habit_id), {})
    days[day] = not days.get(day, False)
    return week


def habit_done(week: WeekData, habit_id: int, day: str) -> bool:
    return bool(week["habitCompletions"].get(str(habit_id), {}).get(day, False))


def habit_week_count(week: WeekData, habit_id: int) -> int:
    return sum(1 for day in DAYS if habit_done(week, habit_id, day))


def set_week_locked(week: WeekData, locked: bool) -> WeekData:
    week = _copy(week)
    week["weekLocked"] = bool(locked)
    return week
