import unittest

from taskmaxxing import finance

CONSTANTS = {
    "biweekly_paycheck": 3012.89,
    "rent": 2300.0,
    "savings": 1000.0,
    "credit_card_limit": 2000.0,
}


class MonthTests(unittest.TestCase):
    def test_validate_month(self):
        self.assertTrue(finance.validate_month("2025-07"))
        for bad in ["2025-7", "2025-13", "2025-00", "July", "", None]:
            self.assertFalse(finance.validate_month(bad))

    def test_shift_month_wraps_years(self):
        self.assertEqual(finance.shift_month("2025-12", 1), "2026-01")
        self.assertEqual(finance.shift_month("2025-01", -1), "2024-12")

    def test_month_display(self):
        self.assertEqual(finance.month_display("2025-07"), "July 2025")

    def test_parse_bill(self):
        self.assertEqual(finance.parse_bill("12.50"), 12.5)
        self.assertEqual(finance.parse_bill(0), 0.0)
        self.assertIsNone(finance.parse_bill("lots"))
        self.assertIsNone(finance.parse_bill(None))
        self.assertIsNone(finance.parse_bill(True))
        for value in ["nan", "inf", "-inf", float("nan"), 10**400]:
            self.assertIsNone(finance.parse_bill(value))


class FinanceStatsTests(unittest.TestCase):
    entries = [
        {"month": "2025-06", "creditCardBill": 1500.0},
        {"month": "2025-07", "creditCardBill": 2100.0},
    ]

    def test_stored_month(self):
        stats = finance.calculate_finance_stats(self.entries, "2025-07", None, **CONSTANTS)
        self.assertEqual(stats["currentBillAmount"], 2100.0)
        self.assertEqual(stats["remainingBudget"], -100.0)
        self.assertTrue(stats["isOverBudget"])
        self.assertEqual(stats["trend"], 600.0)
        self.assertEqual(stats["totalExpenses"], 5400.0)
        self.assertAlmostEqual(stats["budgetProgress"], 105.0)
        self.assertAlmostEqual(stats["monthlyIncome"], 3012.89 * 26 / 12)
        self.assertAlmostEqual(stats["remainingIncome"], 3012.89 * 26 / 12 - 5400.0)

    def test_entered_bill_used_when_month_not_stored(self):
        stats = finance.calculate_finance_stats(self.entries, "2025-08", 800, **CONSTANTS)
        self.assertEqual(stats["currentBillAmount"], 800)
        self.assertFalse(stats["isOverBudget"])
        self.assertEqual(stats["trend"], 800 - 2100.0)

    def test_no_history(self):
        stats = finance.calculate_finance_stats([], "2025-07", None, **CONSTANTS)
        self.assertEqual(stats["currentBillAmount"], 0)
        self.assertEqual(stats["trend"], 0)
        self.assertEqual(stats["budgetProgress"], 0)


if __name__ == "__main__":
    unittest.main()
