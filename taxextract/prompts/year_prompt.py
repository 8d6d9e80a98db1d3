"""Prompt for the tax-year detection call (page 1 only)."""

YEAR_PROMPT = (
    "What tax year is this document for? Respond with ONLY the 4-digit year "
    "(e.g., 2023). If you cannot determine the year, respond with 'UNKNOWN'."
)
