"""
AI Agents for Smart Wallet

CRITICAL BOUNDARIES:

1. SMS PARSING AGENT:
   - CAN: Read a bank SMS and suggest amount, vendor, type and pillar
   - CANNOT: Commit anything to the ledger
   - MUST: Return a usable suggestion even when the model fails

2. FINANCIAL ADVICE AGENT:
   - CAN: Turn a short numeric summary into a one-line tip
   - CANNOT: See individual transactions

A suggestion only becomes a transaction after the user confirms it
through the wallet service. The model is an assistant, not a bookkeeper.
"""

import json
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from smart_wallet.config import get_settings
from smart_wallet.models.ledger import LifePillar, TransactionDraft, TransactionType


UNKNOWN_VENDOR = "Unknown transaction"
DEFAULT_VENDOR = "Bank transaction"
VENDOR_MAX_LENGTH = 40

DEFAULT_ADVICE = "Keep your spending balanced to reach your financial goals."
FALLBACK_ADVICE = "Keep tracking your budget closely for steady finances."

_AMOUNT_PATTERN = re.compile(r"\d[\d,]*(?:\.\d+)?")
_INCOME_PATTERN = re.compile(r"deposit|credited|إيداع|تم إضافة", re.IGNORECASE)


class TransactionSuggestion(BaseModel):
    """What the model (or the fallback) read out of a bank message."""

    amount: Decimal = Field(default=Decimal("0"), ge=0)
    vendor: str = Field(default=DEFAULT_VENDOR, max_length=VENDOR_MAX_LENGTH)
    type: TransactionType = TransactionType.EXPENSE
    suggested_pillar_id: Optional[str] = None
    date: datetime = Field(default_factory=datetime.now)
    from_fallback: bool = False

    def to_draft(
        self,
        pillar_id: Optional[str] = None,
        sub_category_id: Optional[str] = None,
    ) -> TransactionDraft:
        """
        Build an uncommitted draft. The caller's pillar choice wins over
        the suggested one; one of the two is required.
        """
        pillar = pillar_id or self.suggested_pillar_id
        if not pillar:
            raise ValueError("No pillar was suggested; pass pillar_id to build a draft")
        return TransactionDraft(
            amount=self.amount,
            type=self.type,
            date=self.date,
            description=self.vendor,
            pillar_id=pillar,
            sub_category_id=sub_category_id,
        )


def _extract_json(text: str) -> Optional[dict[str, Any]]:
    """Find the JSON object in a model response, fenced or not."""
    cleaned = text.replace("```json", "").replace("```", "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    data = json.loads(cleaned[start:end])
    return data if isinstance(data, dict) else None


def guess_amount(text: str) -> Decimal:
    """First number in the text, thousands separators dropped. 0 if none."""
    match = _AMOUNT_PATTERN.search(text)
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return Decimal("0")


def guess_type(text: str) -> TransactionType:
    if _INCOME_PATTERN.search(text):
        return TransactionType.INCOME
    return TransactionType.EXPENSE


class SmsParsingAgent:
    """
    AI agent that turns a pasted bank SMS into a transaction suggestion.

    BOUNDARIES:
    - NEVER commits the suggestion
    - NEVER raises on model failure; falls back to pattern matching
    - ALWAYS proposes a pillar that actually exists (or none)
    """

    def __init__(self, model: Any = None):
        self._logger = structlog.get_logger()
        if model is not None:
            self._model = model
        else:
            self._settings = get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    async def parse_bank_sms(
        self,
        text: str,
        pillars: list[LifePillar],
    ) -> TransactionSuggestion:
        """
        Extract amount, vendor, type and a pillar from a bank message.

        The amount is always returned as an absolute value and the vendor
        is cut to 40 characters.
        """
        pillar_ids = [p.id for p in pillars]
        default_pillar = pillar_ids[0] if pillar_ids else None
        choices = json.dumps([{"id": p.id, "name": p.name} for p in pillars], ensure_ascii=False)

        prompt = f"""You are reading a bank SMS for a personal finance app.

Message: "{text}"

Available pillars: {choices}

Respond with ONLY a JSON object in this exact format:
{{"amount": 123.45, "vendor": "who was paid or who paid", "type": "EXPENSE", "suggestedPillarId": "pillar id"}}

- type is "EXPENSE" for purchases and withdrawals, "INCOME" for deposits
- suggestedPillarId must be one of the ids listed above"""

        try:
            response = await self._model.generate_content_async(prompt)
            data = _extract_json(response.text or "{}")
            if data is None:
                raise ValueError("No JSON object in model response")

            amount = abs(Decimal(str(data.get("amount") or 0)))
            vendor = str(data.get("vendor") or DEFAULT_VENDOR)[:VENDOR_MAX_LENGTH]
            try:
                tx_type = TransactionType(str(data.get("type", "EXPENSE")).upper())
            except ValueError:
                tx_type = TransactionType.EXPENSE

            pillar_id = data.get("suggestedPillarId") or data.get("suggested_pillar_id")
            if pillar_id not in pillar_ids:
                pillar_id = default_pillar

            return TransactionSuggestion(
                amount=amount,
                vendor=vendor,
                type=tx_type,
                suggested_pillar_id=pillar_id,
            )
        except Exception as e:
            self._logger.warning("advisory_parse_failed", error=str(e))

        # Fallback: pattern matching on the raw message
        return TransactionSuggestion(
            amount=guess_amount(text),
            vendor=UNKNOWN_VENDOR,
            type=guess_type(text),
            suggested_pillar_id=default_pillar,
            from_fallback=True,
        )


class FinancialAdviceAgent:
    """One short, motivating tip based on a summary of the wallet."""

    def __init__(self, model: Any = None):
        self._logger = structlog.get_logger()
        if model is not None:
            self._model = model
        else:
            self._settings = get_settings().gemini
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=(
                "You are a smart financial advisor. Give exactly one piece of "
                "advice, very short (under 20 words) and direct."
            ),
            generation_config={
                "temperature": 0.7,
                "max_output_tokens": 128,
            }
        )

    async def get_advice(self, summary: str) -> str:
        prompt = f"Based on the following financial data, give one focused, motivating tip: {summary}"
        try:
            response = await self._model.generate_content_async(prompt)
            advice = (response.text or "").strip()
            return advice or DEFAULT_ADVICE
        except Exception as e:
            self._logger.warning("advisory_advice_failed", error=str(e))
            return FALLBACK_ADVICE
