"""Token and cost bookkeeping."""

from dataclasses import dataclass


@dataclass
class Usage:
    """Running totals of tokens and dollars spent."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    def add(self, other) -> "Usage":
        """Fold in another Usage or a ModelCallResult."""
        self.input_tokens += other.input_tokens
        self.output_tokens += other.output_tokens
        self.cost += other.cost
        return self

    def __str__(self) -> str:
        return f"Input {self.input_tokens}, Output {self.output_tokens}, Cost ${self.cost:.6f}"
