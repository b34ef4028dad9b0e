"""
tests/test_questionnaire.py
---------------------------
Unit tests for questionnaire scoring.

Test coverage:
    Defaults for missing / unknown answers
    Score bounds at both extremes
    Emergency-fund capacity override
    Region and industry code mapping
    Answer validation errors
"""

import unittest

from stack16.scoring.questionnaire import (
    QuestionnaireError, answer_codes, compute_investor_profile, map_industries,
    map_regions, round_half_up, validate_questionnaire_answers,
)


CONSERVATIVE_ANSWERS = {
    "life_stage": "retired",
    "risk_tolerance": "conservative",
    "time_horizon": "under-3-years",
    "geographic_focus": ["netherlands"],
    "esg_exclusions": [],
    "income_stability": "unstable",
    "emergency_fund": "no",
    "debt_level": "high",
    "investment_experience": "none",
    "investment_knowledge": "beginner",
    "dividend_vs_growth": "dividend-focus",
    "behavioral_reaction": "sell-all",
    "income_range": "<50k",
    "net_worth_range": "<100k",
}

AGGRESSIVE_ANSWERS = {
    "life_stage": "early-career",
    "risk_tolerance": "aggressive",
    "time_horizon": "over-seven-years",
    "geographic_focus": ["united-states", "emerging-markets"],
    "esg_exclusions": ["tobacco"],
    "income_stability": "very-stable",
    "emergency_fund": "yes",
    "debt_level": "low-none",
    "investment_experience": "advanced",
    "investment_knowledge": "advanced",
    "dividend_vs_growth": "growth-focus",
    "behavioral_reaction": "buy-more",
    "income_range": "250k+",
    "net_worth_range": "1M+",
}


# ===========================================================================
# 1. Answer codes
# ===========================================================================

class TestAnswerCodes(unittest.TestCase):

    def test_missing_answers_use_defaults(self):
        codes = answer_codes({})
        self.assertEqual(codes["q1"], "B")
        self.assertEqual(codes["q10"], "A")
        self.assertEqual(codes["q12"], "C")

    def test_unknown_value_uses_default(self):
        codes = answer_codes({"risk_tolerance": "yolo"})
        self.assertEqual(codes["q2"], "B")

    def test_known_values_map(self):
        codes = answer_codes(AGGRESSIVE_ANSWERS)
        self.assertEqual(codes["q2"], "C")
        self.assertEqual(codes["q9"], "D")
        self.assertEqual(codes["q14"], "D")

    def test_round_half_up(self):
        self.assertEqual(round_half_up(4.5), 5)
        self.assertEqual(round_half_up(5.5), 6)
        self.assertEqual(round_half_up(4.49), 4)


# ===========================================================================
# 2. Scores
# ===========================================================================

class TestInvestorProfile(unittest.TestCase):

    def test_default_profile(self):
        profile = compute_investor_profile({})
        self.assertEqual(profile.risk_tolerance, 70)
        self.assertEqual(profile.risk_capacity, 100)
        self.assertEqual(profile.investment_horizon, 59)
        self.assertEqual(profile.investor_experience, 40)
        self.assertEqual(profile.regions_selected, [])
        self.assertEqual(profile.industry_exclusions, [])

    def test_conservative_profile_floors_at_zero(self):
        profile = compute_investor_profile(CONSERVATIVE_ANSWERS)
        self.assertEqual(profile.risk_tolerance, 0)
        self.assertEqual(profile.risk_capacity, 0)
        self.assertEqual(profile.investment_horizon, 0)
        self.assertEqual(profile.investor_experience, 20)

    def test_aggressive_profile_caps_at_hundred(self):
        profile = compute_investor_profile(AGGRESSIVE_ANSWERS)
        self.assertEqual(profile.risk_tolerance, 100)
        self.assertEqual(profile.risk_capacity, 100)
        self.assertEqual(profile.investment_horizon, 100)
        self.assertEqual(profile.investor_experience, 100)

    def test_no_emergency_fund_zeroes_capacity(self):
        answers = dict(AGGRESSIVE_ANSWERS, emergency_fund="no")
        profile = compute_investor_profile(answers)
        self.assertEqual(profile.risk_capacity, 0)
        self.assertEqual(profile.risk_tolerance, 100)

    def test_horizon_blends_life_stage_and_timeframe(self):
        answers = {"life_stage": "mid-career", "time_horizon": "under-3-years",
                   "dividend_vs_growth": "dividend-focus"}
        # 0.3 * 80 + 0.7 * 0 - 10
        self.assertEqual(compute_investor_profile(answers).investment_horizon, 14)

    def test_scores_within_bounds(self):
        for answers in ({}, CONSERVATIVE_ANSWERS, AGGRESSIVE_ANSWERS):
            d = compute_investor_profile(answers).to_dict()
            for key in ("risk_tolerance", "risk_capacity", "investment_horizon", "investor_experience"):
                self.assertGreaterEqual(d[key], 0)
                self.assertLessEqual(d[key], 100)

    def test_regions_and_exclusions_carried(self):
        profile = compute_investor_profile(AGGRESSIVE_ANSWERS)
        self.assertEqual(profile.regions_selected, ["US", "EM"])
        self.assertEqual(profile.industry_exclusions, ["TOBACCO"])


# ===========================================================================
# 3. Region / industry mapping
# ===========================================================================

class TestCodeMapping(unittest.TestCase):

    def test_unknown_regions_dropped(self):
        self.assertEqual(map_regions(["united-states", "mars", "netherlands"]), ["US", "NL"])

    def test_non_list_is_empty(self):
        self.assertEqual(map_regions("united-states"), [])
        self.assertEqual(map_industries(None), [])

    def test_industries(self):
        self.assertEqual(
            map_industries(["gambling", "non-esg-funds"]),
            ["GAMBLING", "NO_ESG_SCREEN"],
        )


# ===========================================================================
# 4. Validation
# ===========================================================================

class TestValidation(unittest.TestCase):

    def test_valid_answers_pass(self):
        validate_questionnaire_answers(AGGRESSIVE_ANSWERS)

    def test_missing_geographic_focus(self):
        answers = dict(AGGRESSIVE_ANSWERS)
        del answers["geographic_focus"]
        with self.assertRaisesRegex(QuestionnaireError, "geographic_focus must be an array"):
            validate_questionnaire_answers(answers)

    def test_exclusions_must_be_list(self):
        answers = dict(AGGRESSIVE_ANSWERS, esg_exclusions="tobacco")
        with self.assertRaisesRegex(QuestionnaireError, "esg_exclusions must be an array"):
            validate_questionnaire_answers(answers)

    def test_empty_region_selection(self):
        answers = dict(AGGRESSIVE_ANSWERS, geographic_focus=[])
        with self.assertRaisesRegex(QuestionnaireError, "at least one geographic region"):
            validate_questionnaire_answers(answers)

    def test_error_is_value_error(self):
        self.assertTrue(issubclass(QuestionnaireError, ValueError))


if __name__ == "__main__":
    unittest.main()
