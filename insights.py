"""
AI-generated budget analyses.

Prompts are built from summarized figures only (income, fixed and variable
spending, active expenses, the purchase target). The language model is asked
to answer with a JSON object; the first ``{...}`` block of its reply is
parsed. Any failure (missing key, HTTP error, no JSON, bad JSON) raises
``AnalysisError``, which callers surface as a recoverable message.
"""

import json
import logging
import os
import re
import threading
from typing import Iterable, List, Optional

import requests
from dotenv import load_dotenv
from pydantic import ValidationError

from models import Expense, PlanAnalysis, SavingsPlan

load_dotenv()

logger = logging.getLogger(__name__)

GEMINI_API_URL = os.getenv(
    "GEMINI_API_URL",
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent",
)
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", 60))

JSON_BLOCK = re.compile(r"\{[\s\S]*\}")
JSON_ONLY = "Reply ONLY with valid JSON, no markdown and no extra text."


class AnalysisError(Exception):
    """The AI service could not produce a usable analysis."""


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _expense_lines(expenses: Iterable[Expense]) -> str:
    return "\n".join(
        f"- {e.name}: {_money(e.value)} ({e.category.value})" for e in expenses
    )


# --- Transport ---

def generate_text(prompt: str, session=None) -> str:
    """Send ``prompt`` to the language model and return its text reply."""
    api_key = os.getenv("GEMINI_API_KEY", "")
    if not api_key:
        raise AnalysisError("GEMINI_API_KEY is not configured")

    http = session or requests
    try:
        response = http.post(
            GEMINI_API_URL,
            params={"key": api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=AI_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.RequestException as e:
        raise AnalysisError(f"AI service request failed: {e}") from e
    except ValueError as e:
        raise AnalysisError("AI service returned a non-JSON response") from e

    try:
        return data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""


def extract_json(text: str) -> dict:
    match = JSON_BLOCK.search(text or "")
    if not match:
        raise AnalysisError("AI response does not contain JSON")
    try:
        parsed = json.loads(match.group(0))
    except ValueError as e:
        raise AnalysisError(f"AI response JSON could not be parsed: {e}") from e
    if not isinstance(parsed, dict):
        raise AnalysisError("AI response JSON is not an object")
    return parsed


def ask_for_json(prompt: str, session=None) -> dict:
    return extract_json(generate_text(prompt, session=session))


# --- Prompts ---

def savings_plan_prompt(plan: SavingsPlan, expenses: Iterable[Expense], monthly_income: float,
                        fixed_expenses: float, variable_expenses: float) -> str:
    active = [e for e in expenses if e.is_active]
    return f"""Analyze this purchase plan.

USER FIGURES:
- Monthly income: {_money(monthly_income)}
- Fixed expenses: {_money(fixed_expenses)}
- Variable expenses (average): {_money(variable_expenses)}
- Monthly surplus: {_money(plan.monthly_surplus)}

GOAL:
- Item: {plan.item}
- Price: {_money(plan.target_amount)}
- Months needed: {plan.months_needed}
- Monthly saving: {_money(plan.monthly_saving)}

CURRENT FIXED EXPENSES:
{_expense_lines(active) or 'No fixed expenses recorded'}

Return a JSON object:
{{
  "viability": {{
    "isRealistic": boolean,
    "successProbability": number (0-100),
    "risks": [string],
    "reasoning": string,
    "suggestedAmount": number (optional),
    "alternatives": [string] (optional)
  }},
  "accelerationOptions": [
    {{"scenario": "light" | "moderate" | "intense", "monthsReduced": number,
      "additionalMonthlySaving": number, "suggestions": [string], "description": string}}
  ],
  "tips": [string]
}}

{JSON_ONLY}"""


def expenses_prompt(expenses: List[Expense], monthly_income: Optional[float] = None) -> str:
    total = sum(e.value for e in expenses)
    income_line = f"Income: {_money(monthly_income)}/month\n" if monthly_income else ""
    return f"""Analyze these monthly fixed expenses:

{_expense_lines(expenses)}

Total: {_money(total)}/month
{income_line}
Return a JSON object with:
1. overallAssessment: {{ idealPercent: number, actualPercent: number, status: string }}
2. topOptimizations: [{{ description: string, potentialSavings: number, priority: string }}]
3. annualSavingsPotential: number
4. actionPriorities: [{{ action: string, impact: string }}]

{JSON_ONLY}"""


def waste_prompt(expenses: List[Expense]) -> str:
    return f"""Find waste in these fixed expenses:

{_expense_lines(expenses)}

For each problem found, return JSON:
{{
  "waste": [
    {{"expenseName": string, "issue": string, "potentialSavings": number, "recommendation": string}}
  ]
}}

{JSON_ONLY}"""


def cut_plans_prompt(expenses: List[Expense], target_savings: float) -> str:
    return f"""Goal: cut {_money(target_savings)}/month

Current expenses:
{_expense_lines(expenses)}

Build three plans as JSON:
{{
  "plans": [
    {{"level": "gentle", "items": [string], "totalSavings": number, "description": string}},
    {{"level": "moderate", "items": [string], "totalSavings": number, "description": string}},
    {{"level": "aggressive", "items": [string], "totalSavings": number, "description": string}}
  ]
}}

{JSON_ONLY}"""


def negotiation_prompt(expense: Expense) -> str:
    return f"""Write a negotiation script to lower the cost of:

Name: {expense.name}
Current value: {_money(expense.value)}
Category: {expense.category.value}

Return JSON:
{{
  "script": {{
    "arguments": [string],
    "conversation": string,
    "competitorPrices": [string],
    "reductionTarget": number
  }}
}}

{JSON_ONLY}"""


# --- Analyses ---

def analyze_savings_plan(plan: SavingsPlan, expenses: Iterable[Expense], monthly_income: float,
                         fixed_expenses: float, variable_expenses: float, session=None) -> PlanAnalysis:
    prompt = savings_plan_prompt(plan, expenses, monthly_income, fixed_expenses, variable_expenses)
    data = ask_for_json(prompt, session=session)
    try:
        return PlanAnalysis.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(f"AI analysis has an unexpected shape: {e}") from e


def analyze_expenses(expenses: List[Expense], monthly_income: Optional[float] = None, session=None) -> dict:
    return ask_for_json(expenses_prompt(expenses, monthly_income), session=session)


def detect_waste(expenses: List[Expense], session=None) -> dict:
    return ask_for_json(waste_prompt(expenses), session=session)


def create_cut_plans(expenses: List[Expense], target_savings: float, session=None) -> dict:
    return ask_for_json(cut_plans_prompt(expenses, target_savings), session=session)


def negotiation_script(expense: Expense, session=None) -> dict:
    return ask_for_json(negotiation_prompt(expense), session=session)


class PlanAdvisor:
    """
    Runs savings-plan analyses and keeps only the newest result.

    Each call takes a generation number; when a newer call has started by the
    time a response arrives, that response is dropped. Failures end up in
    ``error`` instead of propagating.
    """

    def __init__(self, session=None):
        self.session = session
        self.loading = False
        self.error: Optional[str] = None
        self.latest: Optional[PlanAnalysis] = None
        self._generation = 0
        self._lock = threading.Lock()

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def analyze(self, plan: SavingsPlan, expenses: Iterable[Expense], monthly_income: float,
                fixed_expenses: float, variable_expenses: float) -> Optional[PlanAnalysis]:
        with self._lock:
            self._generation += 1
            generation = self._generation
        self.loading = True
        self.error = None

        try:
            result = analyze_savings_plan(
                plan, expenses, monthly_income, fixed_expenses, variable_expenses,
                session=self.session,
            )
        except AnalysisError as e:
            logger.error("Savings plan analysis failed: %s", e)
            if self._is_current(generation):
                self.error = str(e)
                self.loading = False
            return None

        if not self._is_current(generation):
            logger.info("Discarding stale analysis for %s (request %d)", plan.item, generation)
            return None

        self.latest = result
        self.loading = False
        return result
