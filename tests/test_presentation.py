"""
tests/test_presentation.py
--------------------------
Unit tests for allocation view models and profile labels.
"""

import unittest

from stack16.portfolio.presentation import (
    allocation_rows, allocation_view, calculation_cards, humanize_industry_exclusions,
    humanize_investor_experience, humanize_profile, humanize_regions,
    humanize_risk_tolerance,
)
from stack16.scoring.allocation import ProfileInput, calculate_allocation
from stack16.scoring.questionnaire import InvestorScores


class TestAllocationView(unittest.TestCase):

    def test_zero_cash_and_other_hidden(self):
        rows = allocation_rows({"equity": 60, "bonds": 40, "cash": 0, "other": 0}, cap_applied=False)
        self.assertEqual([r["key"] for r in rows], ["equity", "bonds"])
        self.assertEqual(rows[0]["display"], "60.00%")
        self.assertIsNone(rows[0]["badge"])

    def test_nonzero_cash_shown(self):
        rows = allocation_rows({"equity": 55, "bonds": 40, "cash": 5, "other": 0}, cap_applied=False)
        self.assertEqual([r["key"] for r in rows], ["equity", "bonds", "cash"])

    def test_capped_badge(self):
        rows = allocation_rows({"equity": 60, "bonds": 40}, cap_applied=True)
        self.assertEqual(rows[0]["badge"], "Capped")
        self.assertIsNone(rows[1]["badge"])

    def test_cards_for_capped_long_horizon(self):
        result = calculate_allocation(ProfileInput(100, 20, "low", "expert"))
        cards = calculation_cards(result.allocation_metadata)
        self.assertEqual(
            [c["title"] for c in cards],
            [
                "1. Base Allocation (Risk Tolerance)",
                "2. Investment Horizon Adjustment",
                "3. Risk Capacity Constraint",
            ],
        )
        self.assertEqual(cards[1]["lines"], ["Long-term horizon: +20% equity"])

    def test_short_horizon_skips_adjustment_card(self):
        result = calculate_allocation(ProfileInput(33, 3, "high", "beginner"))
        titles = [c["title"] for c in calculation_cards(result.allocation_metadata)]
        self.assertNotIn("2. Investment Horizon Adjustment", titles)
        self.assertIn("Boundary Interpolation", titles)

    def test_view_shape(self):
        result = calculate_allocation(ProfileInput(50, 10, "medium", "intermediate"))
        view = allocation_view(result.percentages(), result.holdings_count, result.allocation_metadata)
        self.assertEqual(view["title"], "Your Asset Allocation")
        self.assertEqual(view["holdings_count"], 3)
        self.assertEqual(len(view["rows"]), 2)


class TestProfileLabels(unittest.TestCase):

    def test_risk_tolerance_labels(self):
        self.assertEqual(humanize_risk_tolerance(33), "Conservative")
        self.assertEqual(humanize_risk_tolerance(34), "Moderate")
        self.assertEqual(humanize_risk_tolerance(67), "Aggressive")

    def test_experience_labels(self):
        self.assertEqual(humanize_investor_experience(25), "Beginner")
        self.assertEqual(humanize_investor_experience(26), "Some Experience")
        self.assertEqual(humanize_investor_experience(100), "Advanced")

    def test_regions(self):
        self.assertEqual(humanize_regions([]), "No regions selected")
        self.assertEqual(humanize_regions(["US"]), "United States")
        self.assertEqual(humanize_regions(["NL", "US"]), "Netherlands and United States")
        self.assertEqual(
            humanize_regions(["NL", "US", "EM"]),
            "Netherlands, United States, and Emerging Markets",
        )

    def test_exclusions(self):
        self.assertEqual(humanize_industry_exclusions([]), "No exclusions")
        self.assertEqual(humanize_industry_exclusions(["TOBACCO"]), "Excludes Tobacco")
        self.assertEqual(humanize_industry_exclusions(["TOBACCO", "GAMBLING"]), "2 exclusions")

    def test_full_profile(self):
        labels = humanize_profile(InvestorScores(70, 100, 59, 40, ["US"], ["ADULT"]))
        self.assertEqual(labels["risk_tolerance"], "Aggressive")
        self.assertEqual(labels["risk_capacity"], "Strong")
        self.assertEqual(labels["investment_horizon"], "Medium-term (5-15 years)")
        self.assertEqual(labels["excluded_industries_list"], ["Adult Entertainment"])


if __name__ == "__main__":
    unittest.main()
