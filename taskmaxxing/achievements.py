"""Achievement badges earned from a single week's numbers.

Badges are recalculated on demand and never stored.
"""
from __future__ import annotations

from typing import TypedDict

from .planner import DAYS, EARLY


class Achievement(TypedDict):
    key: str
    name: str
    description: str
    emoji: str
    rarity: str


ACHIEVEMENTS: list[Achievement] = [
    {"key": "chad", "name": "Chad", "description": "Absolute dominance achieved", "emoji": "🗿", "rarity": "legendary"},
    {"key": "blitzkrieg", "name": "Blitzkrieg", "description": "Lightning warfare tactics employed", "emoji": "⚡", "rarity": "epic"},
    {"key": "napoleon", "name": "Napoleon", "description": "Strategic brilliance displayed", "emoji": "🎩", "rarity": "rare"},
    {"key": "stakhanov", "name": "Stakhanov", "description": "Socialist labor hero status achieved", "emoji": "⛏️", "rarity": "epic"},
    {"key": "swiss_watch", "name": "Swiss Watch", "description": "Precision timing mastered", "emoji": "⌚", "rarity": "common"},
    {"key": "chernobyl", "name": "Chernobyl", "description": "Not great, not terrible", "emoji": "☢️", "rarity": "legendary"},
    {"key": "known_unknowns", "name": "Known Unknowns", "description": "Rumsfeld would be proud", "emoji": "🤔", "rarity": "rare"},
    {"key": "mission_accomplished", "name": "Mission Accomplished", "description": "Banner deployed successfully", "emoji": "🏴", "rarity": "epic"},
    {"key": "stakeholder", "name": "Stakeholder", "description": "Synergized the deliverables", "emoji": "📊", "rarity": "common"},
    {"key": "five_year_plan", "name": "Five Year Plan", "description": "Comrade Stalin approves", "emoji": "🏭", "rarity": "epic"},
    {"key": "rasputin", "name": "Rasputin", "description": "Unkillable determination", "emoji": "🧙‍♂️", "rarity": "legendary"},
    {"key": "machiavelli", "name": "Machiavelli", "description": "The ends justify the means", "emoji": "👑", "rarity": "rare"},
    {"key": "florida_man", "name": "Florida Man", "description": "Chaotic energy harnessed", "emoji": "🐊", "rarity": "rare"},
    {"key": "rookie", "name": "Rookie", "description": "Welcome to the big leagues", "emoji": "🌱", "rarity": "common"},
    {"key": "comeback_kid", "name": "Comeback Kid", "description": "Clinton-esque resilience", "emoji": "🎷", "rarity": "rare"},
    {"key": "stonks", "name": "Stonks", "description": "Number go up", "emoji": "📈", "rarity": "common"},
    {"key": "galaxy_brain", "name": "Galaxy Brain", "description": "Transcendent planning", "emoji": "🧠", "rarity": "legendary"},
]

RARITY_CLASSES = {
    "common": "rarity-common",
    "rare": "rarity-rare",
    "epic": "rarity-epic",
    "legendary": "rarity-legendary",
}


def get_achievement(key: str) -> Achievement | None:
    return next((a for a in ACHIEVEMENTS if a["key"] == key), None)


def rarity_class(rarity: str) -> str:
    return RARITY_CLASSES.get(rarity, RARITY_CLASSES["common"])


def task_stats(daily_tasks: dict | None) -> dict:
    total = 0
    completed = 0
    early = 0
    for tasks in (daily_tasks or {}).values():
        for task in tasks:
            total += 1
            if task.get("completed"):
                completed += 1
                if task.get("completionStatus") == EARLY:
                    early += 1
    return {
        "totalTasks": total,
        "completedTasks": completed,
        "earlyTasks": early,
        "allCompleted": total > 0 and completed == total,
    }


def habit_stats(habit_completions: dict | None, habits: list[dict] | None = None) -> dict:
    """Count the days on which every tracked habit was ticked.

    Tracked habits are the active ``habits`` when given, otherwise every
    habit that has a row in ``habit_completions``.
    """
    completions = habit_completions or {}
    if habits:
        tracked = [str(habit["id"]) for habit in habits]
    else:
        tracked = [str(habit_id) for habit_id in completions]

    perfect_days = 0
    if tracked:
        for day in DAYS:
            if all(completions.get(habit_id, {}).get(day) for habit_id in tracked):
                perfect_days += 1
    return {
        "perfectDays": perfect_days,
        "perfectWeek": perfect_days == len(DAYS),
    }


def goal_stats(weekly_goals: list | None) -> dict:
    goals = weekly_goals or []
    completed = sum(1 for goal in goals if goal.get("completed"))
    return {
        "totalGoals": len(goals),
        "completedGoals": completed,
        "allCompleted": len(goals) > 0 and completed == len(goals),
    }


def check_achievements(
    week_key: str,
    daily_tasks: dict | None,
    weekly_goals: list | None,
    habit_completions: dict | None,
    all_weeks_data: dict | None,
    habits: list[dict] | None,
) -> list[str]:
    tasks = task_stats(daily_tasks)
    habit = habit_stats(habit_completions, habits)
    goals = goal_stats(weekly_goals)

    earned: list[str] = []
    if tasks["earlyTasks"] >= 5:
        earned.append("blitzkrieg")
    if tasks["earlyTasks"] >= 10:
        earned.append("napoleon")
    if habit["perfectDays"] >= 7:
        earned.append("swiss_watch")
    if tasks["allCompleted"] and habit["perfectWeek"] and goals["allCompleted"]:
        earned.append("mission_accomplished")
    if tasks["totalTasks"] >= 20:
        earned.append("stakeholder")
    if goals["allCompleted"]:
        earned.append("machiavelli")
    if len(all_weeks_data or {}) == 1:
        earned.append("rookie")
    return earned


def check_week(week_key: str, week: dict, all_weeks_data: dict, habits: list[dict]) -> list[str]:
    return check_achievements(
        week_key,
        week.get("dailyTasks"),
        week.get("weeklyGoals"),
        week.get("habitCompletions"),
        all_weeks_data,
        habits,
    )


def new_achievements(before: list[str], after: list[str]) -> list[Achievement]:
    """Entries for keys present in ``after`` but not in ``before``."""
    earned = []
    for key in after:
        if key in before:
            continue
        achievement = get_achievement(key)
        if achievement is not None:
            earned.append(achievement)
    return earned
