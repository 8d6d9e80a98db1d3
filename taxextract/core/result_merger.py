"""Merge per-chunk partial extractions into one canonical record.

The merge is a left fold over partials in chunk order. Earlier chunks hold the
primary 1040 pages and are trusted over later ones, so the result depends on
input order: merge_partials([a, b]) and merge_partials([b, a]) can differ.

Rules applied at each fold step:
- Labeled lists (income items, federal deductions, additional taxes, credits,
  payments, and each state's deductions/adjustments/payments): first label
  seen wins, new labels are appended in order
- income.total: replaced only by a strictly larger total, since a chunk that
  saw fewer pages under-reports
- States: matched by name; an unseen state is appended whole
- Dependents: deduplicated by name
- Rates: adopted wholesale from the first partial that has them
"""

import logging
from functools import reduce

from taxextract.core.errors import NoPartialsToMerge
from taxextract.pydantic_models.tax_return import LabeledAmount, StateReturn, TaxReturnRecord

logger = logging.getLogger(__name__)


def merge_labeled_amounts(
    existing: list[LabeledAmount],
    incoming: list[LabeledAmount],
) -> list[LabeledAmount]:
    """Merge two labeled lists, first-seen label wins.

    Output order: labels of ``existing`` in their original order, then labels
    only found in ``incoming`` in order of first appearance. Duplicate labels
    within either list collapse to their first occurrence.

    Example:
        existing: [Wages 100, Interest 5]
        incoming: [Interest 7, Dividends 12]
        result:   [Wages 100, Interest 5, Dividends 12]
    """
    merged: dict[str, LabeledAmount] = {}
    for item in [*existing, *incoming]:
        if item.label not in merged:
            merged[item.label] = item
    return list(merged.values())


def _merge_state(existing: StateReturn, incoming: StateReturn) -> None:
    existing.deductions = merge_labeled_amounts(existing.deductions, incoming.deductions)
    existing.adjustments = merge_labeled_amounts(existing.adjustments, incoming.adjustments)
    existing.payments = merge_labeled_amounts(existing.payments, incoming.payments)


def _fold_partial(acc: TaxReturnRecord, chunk: TaxReturnRecord) -> TaxReturnRecord:
    """One fold step: merge ``chunk`` into the accumulator and return it."""
    acc.income.items = merge_labeled_amounts(acc.income.items, chunk.income.items)
    if chunk.income.total > acc.income.total:
        logger.debug(f"Income total raised {acc.income.total} -> {chunk.income.total}")
        acc.income.total = chunk.income.total

    fed = acc.federal
    fed.deductions = merge_labeled_amounts(fed.deductions, chunk.federal.deductions)
    fed.additional_taxes = merge_labeled_amounts(fed.additional_taxes, chunk.federal.additional_taxes)
    fed.credits = merge_labeled_amounts(fed.credits, chunk.federal.credits)
    fed.payments = merge_labeled_amounts(fed.payments, chunk.federal.payments)

    states_by_name = {state.name: state for state in acc.states}
    for chunk_state in chunk.states:
        existing = states_by_name.get(chunk_state.name)
        if existing is not None:
            _merge_state(existing, chunk_state)
        else:
            new_state = chunk_state.model_copy(deep=True)
            acc.states.append(new_state)
            states_by_name[new_state.name] = new_state

    known_dependents = {d.name for d in acc.dependents}
    for dependent in chunk.dependents:
        if dependent.name not in known_dependents:
            acc.dependents.append(dependent.model_copy())
            known_dependents.add(dependent.name)

    if acc.rates is None and chunk.rates is not None:
        acc.rates = chunk.rates.model_copy(deep=True)

    return acc


def merge_partials(partials: list[TaxReturnRecord]) -> TaxReturnRecord:
    """Fold partial extractions, in chunk order, into one record.

    Args:
        partials: One record per chunk, in the order the chunks were extracted.

    Returns:
        The single partial itself when there is only one; otherwise a new
        record. Inputs are never mutated.

    Raises:
        NoPartialsToMerge: If ``partials`` is empty.
    """
    if not partials:
        raise NoPartialsToMerge("No partial extractions to merge", phase="merge")

    if len(partials) == 1:
        return partials[0]

    # Deep copy so the fold can mutate the accumulator freely
    base = partials[0].model_copy(deep=True)
    merged = reduce(_fold_partial, partials[1:], base)

    logger.info(
        f"Merged {len(partials)} partials: {len(merged.income.items)} income items, "
        f"{len(merged.states)} states, {len(merged.dependents)} dependents"
    )
    return merged
