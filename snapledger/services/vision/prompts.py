"""
Prompts for the screenshot extraction request.

The JSON shape below is advisory: the model is asked for it, but the
recovery parser never assumes it was followed.
"""

from datetime import date
from typing import Sequence

from snapledger.models.ledger import CategoryIcon


RESPONSE_SCHEMA = """{
  "items": [
    {
      "name": "merchant or item name",
      "amount": 12000,
      "date": "YYYY-MM-DD",
      "type": "income" or "expense",
      "category": "category name",
      "isNewCategory": true or false,
      "suggestedIcon": "Lucide icon name (new categories only)",
      "suggestedColor": "hsl(h, s%, l%) (new categories only)"
    }
  ]
}"""

USER_INSTRUCTION = "Extract every transaction from this payment screenshot."


def build_system_prompt(
    expense_categories: Sequence[str],
    income_categories: Sequence[str],
    today: date,
) -> str:
    """System instruction for one analysis, with the user's categories and today's date."""
    icons = ", ".join(icon.value for icon in CategoryIcon)

    return f"""You are an assistant that analyzes screenshots of payment history.
Extract **every transaction** shown in the image. If the image contains several transactions, extract all of them.

For each transaction extract:
1. The merchant or item name
2. The amount (a number only, always positive)
3. The date (YYYY-MM-DD; if no date is visible use today's date: {today.isoformat()})
4. The transaction type (income: money received, expense: money spent)
5. The most fitting category

Expense categories: {", ".join(expense_categories)}
Income categories: {", ".join(income_categories)}

How to tell the transaction type:
- "deposit", "received", "transfer in", "salary", "payroll", "refund" mean income
- "withdrawal", "payment", "transfer out", "purchase", "spent" mean expense
- An amount prefixed with "+" or shown in blue or green is income
- An amount prefixed with "-" or shown in red is expense

If no existing category fits, propose a new one and set isNewCategory to true.
When proposing a new category also suggest a Lucide icon name and an HSL color.

Available Lucide icons: {icons}

Respond with JSON only, in exactly this format:
{RESPONSE_SCHEMA}"""
