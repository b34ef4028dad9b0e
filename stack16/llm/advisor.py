"""
Stack16 - Portfolio Chat Assistant

Answers user questions about their portfolio through the Anthropic API.
The LLM only explains: every number in the prompt was computed by the
scoring and allocation layers. Also produces a plain-English summary of
an asset allocation, with a template fallback when the API is unavailable.
"""

import json
import logging
from typing import Iterator, List, Optional

from stack16.config.settings import (
    ANTHROPIC_API_KEY, LLM_MAX_TOKENS, LLM_MODEL, LLM_TEMPERATURE,
)

logger = logging.getLogger(__name__)

ADVISOR_SYSTEM_PROMPT = """You are Stack16, a professional AI financial co-pilot.

Rules:
- You ONLY answer questions about the user's portfolio, investments and financial planning.
  If a question is unrelated, politely decline and steer back to the portfolio.
- Ground every answer in the allocations and figures provided. Do not invent numbers.
- Explain reasoning and trade-offs in plain English. Round sensibly ("about 15%").
- Be conservative with claims.
- You are not a licensed advisor: end with a one-sentence disclaimer saying so."""

SUMMARY_SYSTEM_PROMPT = """You translate a rule-based asset allocation into a short,
client-friendly explanation. Every number was computed by the allocation engine;
you are a translator, not an analyst. Write exactly 2 short paragraphs."""


class AdvisorUnavailableError(RuntimeError):
    """The LLM backend is not configured or failed."""


def build_portfolio_context(
    portfolio: dict,
    allocation: Optional[dict] = None,
    analytics: Optional[dict] = None,
) -> str:
    """Render the portfolio (and the asset allocation, when known) for the prompt."""
    holdings = [
        {k: a[k] for k in ("ticker", "name", "percentage", "asset_type")}
        for a in portfolio.get("allocations", [])
    ]
    parts = [
        f"ETF HOLDINGS:\n{json.dumps(holdings, indent=2)}",
        f"TOTAL VALUE: ${portfolio.get('total_value', 0)}",
    ]

    if allocation:
        parts.append(
            "RECOMMENDED ASSET ALLOCATION:\n"
            f"- Equity: {allocation['equity_percent']:.2f}%\n"
            f"- Bonds: {allocation['bonds_percent']:.2f}%\n"
            f"- Cash: {allocation['cash_percent']:.2f}%\n"
            f"- Other: {allocation['other_percent']:.2f}%\n"
            f"- Recommended holdings: {allocation['holdings_count']}"
        )
    if analytics:
        parts.append(
            "ALLOCATION ANALYTICS (capital-market assumptions):\n"
            f"- Expected return: {analytics['expected_return']:.1%}\n"
            f"- Volatility: {analytics['annual_vol']:.1%}\n"
            f"- Sharpe ratio: {analytics['sharpe_ratio']:.2f}\n"
            f"- Stress tests: {json.dumps(analytics.get('stress_tests', {}))}"
        )
    return "\n\n".join(parts)


def build_chat_prompt(question: str, context: str) -> str:
    return f"Context:\n{context}\n\nUser asked: {question}\n\nProvide helpful, professional advice."


class PortfolioAdvisor:
    """
    Thin wrapper around the Anthropic messages API.

    The client is created lazily from the API key; tests pass their own
    client object exposing ``messages.create`` and ``messages.stream``.
    """

    def __init__(self, api_key: str = None, client=None, model: str = LLM_MODEL,
                 max_tokens: int = LLM_MAX_TOKENS, temperature: float = LLM_TEMPERATURE):
        self.api_key = api_key if api_key is not None else ANTHROPIC_API_KEY
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise AdvisorUnavailableError("AI chat service is not configured")
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def stream_portfolio_advice(self, question: str, context: str) -> Iterator[str]:
        """Yield the answer text fragment by fragment."""
        client = self._get_client()
        messages: List[dict] = [{"role": "user", "content": build_chat_prompt(question, context)}]
        try:
            with client.messages.stream(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=ADVISOR_SYSTEM_PROMPT,
                messages=messages,
            ) as stream:
                for text in stream.text_stream:
                    if text:
                        yield text
        except Exception as e:
            logger.error("LLM streaming call failed: %s", e, exc_info=True)
            raise AdvisorUnavailableError("Failed to generate AI response") from e

    def complete(self, system: str, prompt: str) -> str:
        client = self._get_client()
        try:
            response = client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
            return response.content[0].text
        except Exception as e:
            logger.error("LLM API call failed: %s", e, exc_info=True)
            raise AdvisorUnavailableError("Failed to generate AI response") from e

    def summarize_allocation(self, allocation: dict, analytics: dict) -> str:
        """LLM summary of an allocation; falls back to a template."""
        if self.configured:
            try:
                prompt = (
                    "Explain this asset allocation to the client.\n\n"
                    f"{json.dumps(allocation, indent=2, default=str)}\n\n"
                    f"ANALYTICS:\n{json.dumps(analytics, indent=2)}"
                )
                return self.complete(SUMMARY_SYSTEM_PROMPT, prompt)
            except AdvisorUnavailableError as e:
                logger.warning("Allocation summary via LLM failed: %s - using template fallback", e)
        return template_allocation_summary(allocation, analytics)


def template_allocation_summary(allocation: dict, analytics: dict) -> str:
    """Template-based fallback when the API is unavailable."""
    meta = allocation["allocation_metadata"]
    equity = allocation["equity_percent"]
    bonds = allocation["bonds_percent"]

    para1 = (
        f"Your recommended mix is {equity:.0f}% stocks and {bonds:.0f}% bonds"
    )
    extras = [f"{allocation[k]:.0f}% {label}" for k, label in
              (("cash_percent", "cash"), ("other_percent", "other assets")) if allocation[k] > 0]
    para1 += (", plus " + " and ".join(extras) + ". ") if extras else ". "
    para1 += (
        f"It starts from {meta['base_allocation']['equity']:.0f}% equity for your risk tolerance"
    )
    increase = meta["horizon_adjustment"]["equity_increase"]
    if increase > 0:
        para1 += f", adds {increase:.0f}% for your {meta['horizon_adjustment']['horizon_category']}-term horizon"
    cap = meta["capacity_constraint"]
    if cap["cap_applied"]:
        para1 += f", and is capped at {cap['capped_equity']:.0f}% equity because of your {cap['capacity_level']} risk capacity"
    para1 += "."

    worst_name, worst_loss = min(analytics["stress_tests"].items(), key=lambda x: x[1])
    para2 = (
        f"Under long-run market assumptions this mix targets about {analytics['expected_return']:.1%} "
        f"a year with roughly {analytics['annual_vol']:.0%} volatility. "
        f"In a {worst_name.replace('_', ' ')} scenario it would have fallen about {abs(worst_loss):.0%}. "
        f"We suggest spreading it across about {allocation['holdings_count']} holdings."
    )
    return f"{para1}\n\n{para2}"
