"""Human-facing order numbers: ``HF-<year>-<counter>``, counter reset yearly."""

from protean.fields import Integer

from commerce.domain import commerce
from commerce.shared.clock import utc_now
from commerce.shared.storage import find, persist


@commerce.aggregate
class OrderSequence:
    year = Integer(required=True)
    value = Integer(default=0, min_value=0)

    def advance(self) -> int:
        self.value = (self.value or 0) + 1
        return self.value


def format_order_number(year: int, counter: int) -> str:
    return f"HF-{year:04d}-{counter:06d}"


def next_order_number(now=None) -> str:
    year = (now or utc_now()).year
    sequence_id = f"orders-{year}"
    sequence = find(OrderSequence, sequence_id, operation="next_order_number")
    if sequence is None:
        sequence = OrderSequence(id=sequence_id, year=year, value=0)
    counter = sequence.advance()
    persist(sequence, operation="next_order_number")
    return format_order_number(year, counter)
