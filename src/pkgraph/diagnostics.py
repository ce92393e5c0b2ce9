# src/pkgraph/diagnostics.py
"""
Per-call diagnostics context.

The concentration formulas run at thousands of grid points per accumulation,
so a warning about an unusual branch (ka ~ ke fallback, solver not converging)
is logged once per context instead of once per evaluation. Callers create a
fresh Diagnostics for each accumulate / generate_milestones call; nothing is
kept at module level.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

FALLBACK_PARENT = "fallback.parent"
FALLBACK_METABOLITE = "fallback.metabolite"
SOLVER_NOT_CONVERGED = "solver.not_converged"
SOLVER_NOT_BRACKETED = "solver.not_bracketed"


@dataclass
class Diagnostics:
    """
    warned   : keys that have already produced a log record
    counts   : how many times each key was hit (logged or not)
    records  : (key, message, context) for every first occurrence
    """
    warned: set[str] = field(default_factory=set)
    counts: Counter = field(default_factory=Counter)
    records: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)

    def warn_once(self, key: str, message: str, **context: Any) -> bool:
        """Count `key` and log `message` the first time it is seen. Returns True when logged."""
        self.counts[key] += 1
        if key in self.warned:
            return False
        self.warned.add(key)
        self.records.append((key, message, dict(context)))
        if context:
            logger.warning("%s %s", message, context)
        else:
            logger.warning("%s", message)
        return True

    def seen(self, key: str) -> bool:
        return key in self.warned


def ensure(diagnostics: Diagnostics | None) -> Diagnostics:
    """Return the caller's context, or a fresh one scoped to this call."""
    return diagnostics if diagnostics is not None else Diagnostics()
