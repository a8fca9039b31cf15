import unittest

from taskmaxxing import achievements
from taskmaxxing.planner import DAYS


def tasks(count, completed=True, status="on_time", day="Monday"):
    return {
        day: [
            {
                "id": i,
                "text": f"task {i}",
                "completed": completed,
                "originalDay": day,
                "completionStatus": status if completed else None,
            }
            for i in range(count)
        ]
    }


def every_day(*habit_ids):
    return {str(habit_id): {day: True for day in DAYS} for habit_id in habit_ids}


ONE_WEEK = {"7/28/2025": {}}
TWO_WEEKS = {"7/28/2025": {}, "8/4/2025": {}}


class CheckAchievementsTests(unittest.TestCase):
    def check(self, daily=None, goals=None, habits_done=None, weeks=TWO_WEEKS, habits=None):
        return achievements.check_achievements(
            "7/28/2025", daily or {}, goals or [], habits_done or {}, weeks, habits or []
        )

    def test_empty_week_earns_nothing(self):
        self.assertEqual(self.check(), [])

    def test_early_task_thresholds(self):
        self.assertEqual(self.check(daily=tasks(4, status="early")), [])
        self.assertEqual(self.check(daily=tasks(5, status="early")), ["blitzkrieg"])
        self.assertEqual(
            self.check(daily=tasks(10, status="early")), ["blitzkrieg", "napoleon"]
        )

    def test_incomplete_early_tasks_do_not_count(self):
        self.assertEqual(self.check(daily=tasks(6, completed=False, status="early")), [])

    def test_stakeholder_counts_all_tasks(self):
        earned = self.check(daily=tasks(20, completed=False))
        self.assertEqual(earned, ["stakeholder"])

    def test_machiavelli_needs_every_goal(self):
        goals = [{"id": 1, "text": "a", "completed": True}, {"id": 2, "text": "b", "completed": False}]
        self.assertEqual(self.check(goals=goals), [])
        goals[1]["completed"] = True
        self.assertEqual(self.check(goals=goals), ["machiavelli"])

    def test_perfect_week(self):
        habits = [{"id": 1, "name": "Read"}, {"id": 2, "name": "Run"}]
        earned = self.check(
            daily=tasks(3),
            goals=[{"id": 9, "text": "Ship", "completed": True}],
            habits_done=every_day(1, 2),
            habits=habits,
        )
        self.assertEqual(earned, ["swiss_watch", "mission_accomplished", "machiavelli"])

    def test_missing_habit_day_breaks_perfect_week(self):
        habits_done = every_day(1, 2)
        habits_done["2"]["Sunday"] = False
        stats = achievements.habit_stats(habits_done)
        self.assertEqual(stats["perfectDays"], 6)
        self.assertFalse(stats["perfectWeek"])

    def test_active_habits_decide_perfect_days(self):
        # habit 3 was ticked once and later deleted, so it no longer counts
        habits_done = every_day(1)
        habits_done["3"] = {"Monday": True}
        self.assertEqual(achievements.habit_stats(habits_done)["perfectDays"], 1)
        self.assertEqual(
            achievements.habit_stats(habits_done, [{"id": 1, "name": "Read"}])["perfectDays"], 7
        )

    def test_no_habits_means_no_perfect_days(self):
        self.assertEqual(achievements.habit_stats({})["perfectDays"], 0)

    def test_rookie_only_for_a_single_week(self):
        self.assertEqual(self.check(weeks=ONE_WEEK), ["rookie"])
        self.assertEqual(self.check(weeks={}), [])


class CatalogueTests(unittest.TestCase):
    def test_keys_are_unique(self):
        keys = [a["key"] for a in achievements.ACHIEVEMENTS]
        self.assertEqual(len(keys), 17)
        self.assertEqual(len(set(keys)), 17)

    def test_get_achievement(self):
        self.assertEqual(achievements.get_achievement("rookie")["name"], "Rookie")
        self.assertIsNone(achievements.get_achievement("nope"))

    def test_rarity_class_falls_back_to_common(self):
        self.assertEqual(achievements.rarity_class("epic"), "rarity-epic")
        self.assertEqual(achievements.rarity_class("mythic"), "rarity-common")

    def test_new_achievements_only_reports_additions(self):
        unlocked = achievements.new_achievements(["rookie"], ["blitzkrieg", "rookie"])
        self.assertEqual([a["key"] for a in unlocked], ["blitzkrieg"])


if __name__ == "__main__":
    unittest.main()
