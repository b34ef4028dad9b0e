"""
tests/test_server.py
--------------------
API tests against the FastAPI app with a fresh in-memory store per test.

Test coverage:
    Questionnaire submission and derived records
    Investor profile / allocation endpoints and ownership checks
    Portfolio generation, the default portfolio and the optimised portfolio
    Chat streaming (server-sent events) and message management
    ETF catalog, comparison and risk levels
"""

import json
import unittest

from fastapi.testclient import TestClient

from fakes import FakeAnthropicClient
from stack16.app.server import STATE, app
from stack16.llm.advisor import PortfolioAdvisor
from stack16.storage.store import Store

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}

AGGRESSIVE_US = {
    "life_stage": "early-career",
    "risk_tolerance": "aggressive",
    "time_horizon": "over-seven-years",
    "geographic_focus": ["united-states"],
    "esg_exclusions": [],
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

PROFILE = {
    "risk_tolerance": 50,
    "investment_horizon": 10,
    "risk_capacity": "medium",
    "experience_level": "intermediate",
}


def _events(body: str) -> list:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


class APITestCase(unittest.TestCase):

    def setUp(self):
        STATE["store"] = Store()
        STATE["advisor"] = PortfolioAdvisor(api_key="")
        self.client = TestClient(app)

    def submit_assessment(self, headers=ALICE, **overrides):
        return self.client.post("/api/risk-assessment", json=dict(AGGRESSIVE_US, **overrides), headers=headers)


# ===========================================================================
# 1. Risk assessment
# ===========================================================================

class TestRiskAssessment(APITestCase):

    def test_health(self):
        res = self.client.get("/api/health")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(res.json()["chat_enabled"])

    def test_submit_derives_everything(self):
        res = self.submit_assessment()
        self.assertEqual(res.status_code, 200)
        body = res.json()
        self.assertEqual(body["investor_profile"]["risk_tolerance"], 100)
        self.assertEqual(body["investor_profile"]["regions_selected"], ["US"])
        self.assertIsNotNone(body["portfolio_id"])

        allocation = self.client.get("/api/asset-allocations/user/alice/current").json()
        self.assertEqual(allocation["id"], body["asset_allocation_id"])
        self.assertAlmostEqual(allocation["equity_percent"], 100.0)
        self.assertEqual(allocation["holdings_count"], 3)

        portfolio = self.client.get("/api/portfolio", headers=ALICE).json()
        self.assertEqual(portfolio["id"], body["portfolio_id"])
        self.assertEqual(
            {a["ticker"]: a["percentage"] for a in portfolio["allocations"]},
            {"VTI": 90, "QQQ": 10},
        )

    def test_missing_regions_rejected(self):
        answers = dict(AGGRESSIVE_US)
        del answers["geographic_focus"]
        res = self.client.post("/api/risk-assessment", json=answers, headers=ALICE)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "geographic_focus must be an array")

    def test_empty_regions_rejected(self):
        res = self.submit_assessment(geographic_focus=[])
        self.assertEqual(res.status_code, 400)
        self.assertIn("Q4", res.json()["message"])

    def test_single_region_string_coerced(self):
        res = self.submit_assessment(geographic_focus="netherlands")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["investor_profile"]["regions_selected"], ["NL"])

    def test_null_exclusions_treated_as_none_selected(self):
        res = self.submit_assessment(esg_exclusions=None)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["answers"]["esg_exclusions"], [])

    def test_null_regions_rejected_as_empty(self):
        res = self.submit_assessment(geographic_focus=None)
        self.assertEqual(res.status_code, 400)
        self.assertIn("Q4", res.json()["message"])

    def test_get_assessment_and_labels(self):
        self.assertIsNone(self.client.get("/api/risk-assessment", headers=ALICE).json())
        self.assertEqual(self.client.get("/api/risk-assessment/profile", headers=ALICE).status_code, 404)

        self.submit_assessment()
        body = self.client.get("/api/risk-assessment/profile", headers=ALICE).json()
        self.assertEqual(body["labels"]["risk_tolerance"], "Aggressive")
        self.assertEqual(body["labels"]["regions"], "United States")
        self.assertEqual(body["risk_level"]["level"], "aggressive")
        # Expert experience adds two ETFs on top of the formula's ten
        self.assertEqual(body["optimization_params"]["max_etfs"], 12)
        self.assertEqual(body["optimization_params"]["region_penalty"], 20.0)


# ===========================================================================
# 2. Investor profiles & allocations
# ===========================================================================

class TestAllocations(APITestCase):

    def create_profile(self, headers=ALICE, **overrides):
        res = self.client.post("/api/investor-profiles", json=dict(PROFILE, **overrides), headers=headers)
        self.assertEqual(res.status_code, 200)
        return res.json()

    def test_profile_validation(self):
        res = self.client.post("/api/investor-profiles", json=dict(PROFILE, risk_tolerance=150), headers=ALICE)
        self.assertEqual(res.status_code, 422)
        res = self.client.post("/api/investor-profiles", json=dict(PROFILE, risk_capacity="huge"), headers=ALICE)
        self.assertEqual(res.status_code, 422)

    def test_get_profile_by_user(self):
        profile = self.create_profile()
        self.assertEqual(self.client.get("/api/investor-profiles/user/alice").json()["id"], profile["id"])
        self.assertEqual(self.client.get("/api/investor-profiles/user/nobody").status_code, 404)

    def test_allocation_created_once(self):
        profile = self.create_profile()
        first = self.client.post("/api/asset-allocations", json={"investor_profile_id": profile["id"]}, headers=ALICE)
        second = self.client.post("/api/asset-allocations", json={"investor_profile_id": profile["id"]}, headers=ALICE)
        self.assertEqual(first.status_code, 200)
        self.assertEqual(first.json()["id"], second.json()["id"])
        self.assertAlmostEqual(first.json()["equity_percent"], 60.3)
        self.assertAlmostEqual(first.json()["bonds_percent"], 39.7)

    def test_allocation_unknown_profile(self):
        res = self.client.post("/api/asset-allocations", json={"investor_profile_id": "nope"}, headers=ALICE)
        self.assertEqual(res.status_code, 404)

    def test_allocation_other_users_profile(self):
        profile = self.create_profile(headers=BOB)
        res = self.client.post("/api/asset-allocations", json={"investor_profile_id": profile["id"]}, headers=ALICE)
        self.assertEqual(res.status_code, 403)

    def test_history(self):
        for rt in (20, 40, 60):
            profile = self.create_profile(risk_tolerance=rt)
            self.client.post("/api/asset-allocations", json={"investor_profile_id": profile["id"]}, headers=ALICE)
        body = self.client.get("/api/asset-allocations/user/alice", params={"limit": 2}).json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(len(body["allocations"]), 2)
        self.assertEqual(body["limit"], 2)
        self.assertEqual(body["offset"], 0)

    def test_no_current_allocation(self):
        self.assertEqual(self.client.get("/api/asset-allocations/user/alice/current").status_code, 404)

    def test_view_and_summary(self):
        profile = self.create_profile()
        allocation = self.client.post(
            "/api/asset-allocations", json={"investor_profile_id": profile["id"]}, headers=ALICE,
        ).json()

        view = self.client.get(f"/api/asset-allocations/{allocation['id']}/view").json()
        self.assertEqual([r["key"] for r in view["view"]["rows"]], ["equity", "bonds"])
        self.assertIn("stress_tests", view["analytics"])

        summary = self.client.get(f"/api/asset-allocations/{allocation['id']}/summary").json()
        self.assertIn("60% stocks", summary["summary"])

        self.assertEqual(self.client.get("/api/asset-allocations/missing/view").status_code, 404)


# ===========================================================================
# 3. Portfolio & chat
# ===========================================================================

class TestPortfolio(APITestCase):

    def test_default_portfolio(self):
        body = self.client.get("/api/portfolio", headers=ALICE).json()
        self.assertIsNone(body["id"])
        self.assertEqual({a["ticker"] for a in body["allocations"]}, {"BND", "VTI", "VXUS", "VNQ"})

    def test_generate_requires_assessment(self):
        res = self.client.post("/api/portfolio/generate", headers=ALICE)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "Please complete risk assessment first")

    def test_generate_creates_new_portfolio(self):
        first = self.submit_assessment().json()["portfolio_id"]
        res = self.client.post("/api/portfolio/generate", headers=ALICE)
        self.assertEqual(res.status_code, 200)
        self.assertNotEqual(res.json()["id"], first)
        self.assertEqual(sum(a["percentage"] for a in res.json()["allocations"]), 100)

    def test_optimized_requires_assessment(self):
        res = self.client.get("/api/portfolio/optimized", headers=ALICE)
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "Please complete risk assessment first")

    def test_optimized_follows_profile(self):
        self.submit_assessment()
        res = self.client.get("/api/portfolio/optimized", headers=ALICE)
        self.assertEqual(res.status_code, 200)
        body = res.json()

        params = body["optimization_params"]
        self.assertEqual(params["max_etfs"], 12)
        self.assertEqual(params["region_penalty"], 20.0)
        self.assertEqual(sum(a["percentage"] for a in body["allocations"]), 100)
        self.assertLessEqual(len(body["allocations"]), params["max_etfs"])
        self.assertTrue(all(w <= params["max_weight"] + 1e-4 for w in body["weights"].values()))
        # US-only answers keep the portfolio in US funds
        self.assertGreater(body["region_exposure"]["US"], 0.9)

    def test_optimized_respects_exclusions(self):
        self.submit_assessment(esg_exclusions=["fossil-fuels", "defense-industry"])
        body = self.client.get("/api/portfolio/optimized", headers=ALICE).json()
        self.assertEqual(body["optimization_params"]["industry_exclusions"], ["FOSSIL_FUELS", "DEFENSE"])
        self.assertFalse({"VOO", "VTI"} & set(body["weights"]))
        self.assertNotIn("VTI", body["constraints"]["eligible_funds"])


class TestChat(APITestCase):

    def setUp(self):
        super().setUp()
        self.portfolio_id = self.submit_assessment().json()["portfolio_id"]

    def post_message(self, content="How diversified am I?", portfolio_id=None, headers=ALICE):
        return self.client.post(
            f"/api/portfolio/{portfolio_id or self.portfolio_id}/messages",
            json={"content": content}, headers=headers,
        )

    def test_not_configured(self):
        res = self.post_message()
        self.assertEqual(res.status_code, 503)
        self.assertEqual(res.json()["message"], "AI chat service is not configured")
        self.assertEqual(self.client.get(f"/api/portfolio/{self.portfolio_id}/messages").json(), [])

    def test_wrong_portfolio(self):
        STATE["advisor"] = PortfolioAdvisor(api_key="", client=FakeAnthropicClient(chunks=["hi"]))
        res = self.post_message(portfolio_id="someone-elses")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.json()["message"], "Portfolio not found")

    def test_blank_content(self):
        self.assertEqual(self.post_message(content="   ").status_code, 422)

    def test_stream(self):
        STATE["advisor"] = PortfolioAdvisor(api_key="", client=FakeAnthropicClient(chunks=["You are ", "well spread."]))
        res = self.post_message()
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.headers["content-type"].startswith("text/event-stream"))

        events = _events(res.text)
        self.assertEqual([e["type"] for e in events], ["userMessage", "chunk", "chunk", "complete"])
        self.assertEqual(events[0]["data"]["sender"], "user")
        self.assertEqual(events[-1]["data"]["content"], "You are well spread.")

        messages = self.client.get(f"/api/portfolio/{self.portfolio_id}/messages").json()
        self.assertEqual([m["sender"] for m in messages], ["user", "ai"])

    def test_stream_failure(self):
        STATE["advisor"] = PortfolioAdvisor(api_key="", client=FakeAnthropicClient(error=RuntimeError("down")))
        events = _events(self.post_message().text)
        self.assertEqual([e["type"] for e in events], ["userMessage", "error"])
        messages = self.client.get(f"/api/portfolio/{self.portfolio_id}/messages").json()
        self.assertEqual([m["sender"] for m in messages], ["user"])

    def test_delete_messages(self):
        STATE["advisor"] = PortfolioAdvisor(api_key="", client=FakeAnthropicClient(chunks=["ok"]))
        self.post_message()
        self.assertEqual(self.client.delete(f"/api/portfolio/{self.portfolio_id}/messages", headers=BOB).status_code, 403)

        res = self.client.delete(f"/api/portfolio/{self.portfolio_id}/messages", headers=ALICE)
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["deleted"], 2)
        self.assertEqual(self.client.get(f"/api/portfolio/{self.portfolio_id}/messages").json(), [])


# ===========================================================================
# 4. ETF catalog
# ===========================================================================

class TestCatalog(APITestCase):

    def test_list_and_filter(self):
        self.assertEqual(self.client.get("/api/etfs").json()["total"], 11)
        body = self.client.get("/api/etfs", params={"is_esg": "true", "sort_by": "ticker"}).json()
        self.assertEqual([e["ticker"] for e in body["etfs"]], ["ESGD", "ESGV", "SUSB"])

    def test_bad_sort(self):
        self.assertEqual(self.client.get("/api/etfs", params={"sort_by": "price"}).status_code, 400)

    def test_detail(self):
        self.assertEqual(self.client.get("/api/etfs/qqq").json()["ticker"], "QQQ")
        self.assertEqual(self.client.get("/api/etfs/XYZ").status_code, 404)

    def test_compare(self):
        body = self.client.get("/api/etfs/compare", params={"tickers": "VTI,BND"}).json()
        self.assertEqual(body["tickers"], ["VTI", "BND"])
        self.assertIn("category", body["differences"])
        self.assertNotIn("is_esg", body["differences"])
        self.assertEqual(body["attributes"]["asset_type"], {"VTI": "US Equity", "BND": "Bonds"})

    def test_compare_limits(self):
        self.assertEqual(self.client.get("/api/etfs/compare", params={"tickers": "VTI"}).status_code, 400)
        res = self.client.get("/api/etfs/compare", params={"tickers": "VTI,BND,QQQ,VNQ,VIG"})
        self.assertEqual(res.status_code, 400)
        self.assertIn("up to 4", res.json()["message"])

    def test_risk_levels(self):
        levels = self.client.get("/api/risk-levels").json()
        self.assertEqual([level["level"] for level in levels], ["conservative", "moderate", "aggressive"])


if __name__ == "__main__":
    unittest.main()
