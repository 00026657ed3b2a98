"""Batch (multi-point) proposal strategies."""

from .strategies import (
    ConstantLiar,
    MultiPointStrategy,
    Proposal,
    ProposalContext,
    QConfidenceBound,
    make_multipoint,
    propose_point,
)

__all__ = [
    "MultiPointStrategy",
    "ConstantLiar",
    "QConfidenceBound",
    "Proposal",
    "ProposalContext",
    "make_multipoint",
    "propose_point",
]
