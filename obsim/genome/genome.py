from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Mutation:
    """A single substitution recorded on the path from the reference."""

    position: int
    original: str
    new: str
    time: float

    def encode(self) -> str:
        return f"{self.position}:{self.original}>{self.new}@{float(self.time)!r}"

    @classmethod
    def decode(cls, text: str) -> "Mutation":
        try:
            site, rest = text.split(":", 1)
            change, when = rest.rsplit("@", 1)
            original, new = change.split(">", 1)
            return cls(position=int(site), original=original, new=new, time=float(when))
        except ValueError as exc:
            raise ValueError(f"Malformed mutation {text!r}") from exc


def encode_mutations(mutations: Iterable[Mutation]) -> str:
    return ";".join(m.encode() for m in mutations)


def decode_mutations(text: str) -> Tuple[Mutation, ...]:
    if not text:
        return ()
    return tuple(Mutation.decode(part) for part in text.split(";"))


@dataclass(frozen=True)
class Genome:
    """Immutable symbol sequence plus the mutations that produced it."""

    sequence: str
    mutations: Tuple[Mutation, ...] = field(default=())

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def mutation_count(self) -> int:
        return len(self.mutations)

    def snps(self, other: "Genome") -> int:
        """Count sites that differ from another genome of the same length."""
        if len(self) != len(other):
            raise ValueError(
                f"Cannot compare genomes of different lengths ({len(self)} and {len(other)})"
            )
        return sum(a != b for a, b in zip(self.sequence, other.sequence))
