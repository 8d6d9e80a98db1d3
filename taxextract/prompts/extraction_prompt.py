"""Prompt for structured tax return extraction.

Sent with every chunk. The response is constrained to the TaxReturnRecord
JSON schema, so the prompt only has to explain what goes where.
"""

EXTRACTION_PROMPT = """Extract the tax return data from this PDF into the provided JSON schema.

The PDF may be only part of a longer return. Extract what these pages show and
leave lists empty when a section is not present. Never invent figures.

Fields:
- year: the tax year of the return (not the filing date)
- name: primary taxpayer name as printed on Form 1040
- filingStatus: one of single, married_filing_jointly, married_filing_separately,
  head_of_household, qualifying_surviving_spouse
- dependents: every dependent listed, with relationship
- income.items: one entry per income line (wages, interest, dividends, business
  income, capital gains, rental and partnership income, retirement distributions)
- income.total: total income as reported on the return
- federal: AGI, each deduction (standard or itemized components), taxable income,
  tax, additional taxes from Schedule 2, each credit, each payment (withholding,
  estimated payments, amount applied from prior year), refund or amount owed
- states: one entry per state return, using the full state name
- summary: federal refund/owed, each state's refund/owed, and the net of all of them
- rates: marginal and effective rates only if the return or its worksheets state them

Conventions:
- All amounts are plain numbers in dollars, no currency symbols or commas
- refundOrOwed and summary amounts: positive = refund, negative = amount owed
- Losses are negative amounts
- Use the line description as the label, e.g. "Wages, salaries, tips" or "Qualified dividends"
- Use each label once per list"""
