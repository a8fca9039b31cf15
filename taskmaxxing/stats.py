from __future__ import annotations

from .planner import DAYS, habit_done, normalize_week, week_display, week_sort_key

GOOD_WEEK_DAYS = 5


def _count_tasks(week: dict) -> tuple[int, int]:
    total = 0
    completed = 0
    for tasks in week["dailyTasks"].values():
        total += len(tasks)
        completed += sum(1 for task in tasks if task["completed"])
    return total, completed


def _count_goals(week: dict) -> tuple[int, int]:
    goals = week["weeklyGoals"]
    return len(goals), sum(1 for goal in goals if goal["completed"])


def _habit_days(week: dict, habit_id: int) -> int:
    return sum(1 for day in DAYS if habit_done(week, habit_id, day))


def _safe_display(key: str) -> str:
    try:
        return week_display(key)
    except ValueError:
        return key


def _overall(total_tasks, completed_tasks, total_goals, completed_goals, habit_rows) -> dict:
    average = (
        sum(row["completionRate"] for row in habit_rows) / len(habit_rows) if habit_rows else 0
    )
    return {
        "totalTasks": total_tasks,
        "completedTasks": completed_tasks,
        "totalGoals": total_goals,
        "completedGoals": completed_goals,
        "averageHabitCompletion": average,
    }


def current_streak(all_weeks: dict[str, dict], habit_id: int) -> int:
    """Consecutive good weeks counted back from the most recent stored week."""
    streak = 0
    for key in sorted(all_weeks, key=week_sort_key, reverse=True):
        week = normalize_week(all_weeks[key])
        if _habit_days(week, habit_id) >= GOOD_WEEK_DAYS:
            streak += 1
        else:
            break
    return streak


def calculate_all_time_stats(all_weeks: dict[str, dict], habits: list[dict]) -> dict:
    total_tasks = completed_tasks = total_goals = completed_goals = 0
    habit_totals = {habit["id"]: {"total": 0, "completed": 0} for habit in habits}

    week_rows = []
    for key in sorted(all_weeks, key=week_sort_key):
        week = normalize_week(all_weeks[key])
        week_total, week_completed = _count_tasks(week)
        goals_total, goals_completed = _count_goals(week)

        week_habits = {}
        for habit in habits:
            done = _habit_days(week, habit["id"])
            week_habits[habit["id"]] = done
            habit_totals[habit["id"]]["completed"] += done
            habit_totals[habit["id"]]["total"] += len(DAYS)

        total_tasks += week_total
        completed_tasks += week_completed
        total_goals += goals_total
        completed_goals += goals_completed
        week_rows.append(
            {
                "weekKey": key,
                "weekDisplay": _safe_display(key),
                "totalTasks": week_total,
                "completedTasks": week_completed,
                "totalGoals": goals_total,
                "completedGoals": goals_completed,
                "habitCompletions": week_habits,
            }
        )

    habit_rows = []
    for habit in habits:
        counts = habit_totals[habit["id"]]
        habit_rows.append(
            {
                "name": habit["name"],
                "totalDays": counts["total"],
                "completedDays": counts["completed"],
                "completionRate": (
                    counts["completed"] / counts["total"] * 100 if counts["total"] else 0
                ),
                "streak": current_streak(all_weeks, habit["id"]),
            }
        )

    return {
        "weeklyStats": week_rows,
        "habitStats": habit_rows,
        "overallStats": _overall(
            total_tasks, completed_tasks, total_goals, completed_goals, habit_rows
        ),
    }


def calculate_week_stats(week_key: str, week_data: dict | None, habits: list[dict]) -> dict:
    if week_data is None:
        return {
            "weeklyStats": [],
            "habitStats": [],
            "overallStats": _overall(0, 0, 0, 0, []),
        }

    week = normalize_week(week_data)
    total_tasks, completed_tasks = _count_tasks(week)
    total_goals, completed_goals = _count_goals(week)

    habit_rows = []
    for habit in habits:
        done = _habit_days(week, habit["id"])
        habit_rows.append(
            {
                "name": habit["name"],
                "totalDays": len(DAYS),
                "completedDays": done,
                "completionRate": done / len(DAYS) * 100,
                "streak": 1 if done >= GOOD_WEEK_DAYS else 0,
            }
        )

    week_row = {
        "weekKey": week_key,
        "weekDisplay": _safe_display(week_key),
        "totalTasks": total_tasks,
        "completedTasks": completed_tasks,
        "totalGoals": total_goals,
        "completedGoals": completed_goals,
        "habitCompletions": {habit["id"]: _habit_days(week, habit["id"]) for habit in habits},
    }
    return {
        "weeklyStats": [week_row],
        "habitStats": habit_rows,
        "overallStats": _overall(
            total_tasks, completed_tasks, total_goals, completed_goals, habit_rows
        ),
    }


def percent(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0


def progress_color(percentage: float) -> str:
    if percentage >= 80:
        return "green"
    if percentage >= 60:
        return "blue"
    if percentage >= 40:
        return "yellow"
    return "red"
