import csv
import re
from io import StringIO
from typing import Sequence

from aggregation import FeedEntry


def sanitize_csv_value(value: str) -> str:
    """
    Prefix values that a spreadsheet would evaluate as formulas with a tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^\.",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def format_cents(cents: int) -> str:
    return f"{cents / 100:.2f}"


def export_feed(entries: Sequence[FeedEntry]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(["Date", "Kind", "Amount", "Category", "Description"])
    for entry in entries:
        writer.writerow(
            [
                entry.date.isoformat(timespec="minutes"),
                entry.kind.value,
                format_cents(entry.amount_cents),
                sanitize_csv_value(entry.category),
                sanitize_csv_value(entry.description or ""),
            ]
        )
    return output.getvalue()
