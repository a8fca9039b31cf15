import unittest

from taskmaxxing import stats
from taskmaxxing.planner import DAYS

HABITS = [{"id": 1, "name": "Read"}, {"id": 2, "name": "Run"}]


def week(habit_days=None, tasks_done=0, tasks_open=0, goals_done=0, goals_open=0):
    task_list = [{"id": i, "text": "t", "completed": True} for i in range(tasks_done)]
    task_list += [{"id": 100 + i, "text": "t", "completed": False} for i in range(tasks_open)]
    goals = [{"id": i, "text": "g", "completed": True} for i in range(goals_done)]
    goals += [{"id": 100 + i, "text": "g", "completed": False} for i in range(goals_open)]
    return {
        "dailyTasks": {"Monday": task_list},
        "weeklyGoals": goals,
        "habitCompletions": {
            str(habit_id): {day: True for day in DAYS[:count]}
            for habit_id, count in (habit_days or {}).items()
        },
    }


class AllTimeStatsTests(unittest.TestCase):
    def test_weeks_are_ordered_by_date_not_text(self):
        weeks = {"10/6/2025": week(), "9/29/2025": week(), "9/8/2025": week()}
        result = stats.calculate_all_time_stats(weeks, HABITS)
        self.assertEqual(
            [row["weekKey"] for row in result["weeklyStats"]],
            ["9/8/2025", "9/29/2025", "10/6/2025"],
        )
        self.assertEqual(result["weeklyStats"][0]["weekDisplay"], "9/8 Week")

    def test_totals_and_rates(self):
        weeks = {
            "9/29/2025": week({1: 7, 2: 0}, tasks_done=2, tasks_open=1, goals_done=1),
            "10/6/2025": week({1: 0, 2: 7}, tasks_done=1, goals_open=1),
        }
        result = stats.calculate_all_time_stats(weeks, HABITS)
        overall = result["overallStats"]
        self.assertEqual(overall["totalTasks"], 4)
        self.assertEqual(overall["completedTasks"], 3)
        self.assertEqual(overall["totalGoals"], 2)
        self.assertEqual(overall["completedGoals"], 1)
        self.assertAlmostEqual(overall["averageHabitCompletion"], 50.0)

        read, run = result["habitStats"]
        self.assertEqual((read["completedDays"], read["totalDays"]), (7, 14))
        self.assertEqual(read["streak"], 0)
        self.assertEqual(run["streak"], 1)

    def test_no_weeks(self):
        result = stats.calculate_all_time_stats({}, HABITS)
        self.assertEqual(result["weeklyStats"], [])
        self.assertEqual(result["habitStats"][0]["completionRate"], 0)


class StreakTests(unittest.TestCase):
    def test_streak_counts_back_from_latest_week(self):
        weeks = {
            "9/15/2025": week({1: 6}),
            "9/22/2025": week({1: 2}),
            "9/29/2025": week({1: 5}),
            "10/6/2025": week({1: 7}),
        }
        self.assertEqual(stats.current_streak(weeks, 1), 2)

    def test_streak_zero_when_latest_week_is_weak(self):
        weeks = {"9/29/2025": week({1: 7}), "10/6/2025": week({1: 4})}
        self.assertEqual(stats.current_streak(weeks, 1), 0)


class WeekStatsTests(unittest.TestCase):
    def test_missing_week_gives_empty_stats(self):
        result = stats.calculate_week_stats("10/6/2025", None, HABITS)
        self.assertEqual(result["weeklyStats"], [])
        self.assertEqual(result["overallStats"]["totalTasks"], 0)

    def test_single_week(self):
        result = stats.calculate_week_stats("10/6/2025", week({1: 5, 2: 1}, tasks_done=1), HABITS)
        read, run = result["habitStats"]
        self.assertEqual(read["totalDays"], 7)
        self.assertEqual(read["streak"], 1)
        self.assertEqual(run["streak"], 0)
        self.assertEqual(result["weeklyStats"][0]["habitCompletions"], {1: 5, 2: 1})


class ProgressColorTests(unittest.TestCase):
    def test_thresholds(self):
        self.assertEqual(stats.progress_color(80), "green")
        self.assertEqual(stats.progress_color(79.9), "blue")
        self.assertEqual(stats.progress_color(60), "blue")
        self.assertEqual(stats.progress_color(40), "yellow")
        self.assertEqual(stats.progress_color(39), "red")


if __name__ == "__main__":
    unittest.main()
