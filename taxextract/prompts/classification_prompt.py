"""Prompt for per-page form classification.

The classifier sees the whole document once and answers in free text; the
JSON array inside the answer is located by response_parsing.find_json_array.
"""

CLASSIFICATION_PROMPT = """Classify each page of this tax return PDF. For each page, identify the form type.

Classification categories:
- 1040_main: Form 1040 pages 1-2 (the main federal return with income, deductions, tax)
- schedule_1: Schedule 1 - Additional Income and Adjustments
- schedule_2: Schedule 2 - Additional Taxes
- schedule_3: Schedule 3 - Additional Credits and Payments
- schedule_a: Schedule A - Itemized Deductions
- schedule_b: Schedule B - Interest and Dividends
- schedule_c: Schedule C - Business Income
- schedule_d: Schedule D - Capital Gains and Losses
- schedule_e: Schedule E - Supplemental Income (rentals, royalties, partnerships, S corps)
- k1_summary: Schedule K-1 first page (contains income amounts)
- k1_detail: Schedule K-1 continuation pages, footnotes or instructions
- state_main: State return main pages (Form 540 for CA, IT-201 for NY, etc.)
- state_schedule: State return supporting schedules
- worksheet: Calculation worksheets (tax computation, AMT, etc.)
- supporting_doc: W-2, 1099, or other source document copies
- cover_letter: Preparer transmittal letters, engagement letters, "Dear Client" letters
- direct_deposit: Direct deposit/debit reports showing bank routing and account numbers
- carryover_summary: Carryovers to next year, loss carryforward summaries
- efiling_auth: E-file authorization forms (Form 8879, state equivalents, e-file jurat/disclosure)
- crypto_detail: Cryptocurrency transaction details, lot-by-lot disposal reports
- other: Any other pages not fitting above categories

Clues that separate preparer documents from actual tax forms:
- Cover letters usually open with "Dear [Name]" and mention the preparer's firm
- Direct deposit pages show routing and account numbers in a table
- Carryover summaries have "Carryovers to [Year]" in the title
- E-file authorization pages mention "penalties of perjury", "ERO Declaration", "Taxpayer PIN"
- The actual Form 1040 says "U.S. Individual Income Tax Return" and has numbered lines

Respond with a JSON array where each element has:
- "page": page number (1-indexed)
- "type": one of the classification categories above

Example response format:
[
  {"page": 1, "type": "cover_letter"},
  {"page": 2, "type": "carryover_summary"},
  {"page": 3, "type": "1040_main"}
]

Classify ALL pages in the document."""
