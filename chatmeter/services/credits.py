"""Credit cost of one exchange."""

from decimal import Decimal


def compute_credits(
    input_tokens: int,
    output_tokens: int,
    input_weight: Decimal | float,
    output_weight: Decimal | float,
) -> Decimal:
    """
    ``input_tokens * input_weight + output_tokens * output_weight``.

    Negative token counts count as zero, so the result is never negative
    for non-negative weights.
    """
    billable_input = max(0, int(input_tokens))
    billable_output = max(0, int(output_tokens))
    return billable_input * Decimal(str(input_weight)) + billable_output * Decimal(
        str(output_weight)
    )
