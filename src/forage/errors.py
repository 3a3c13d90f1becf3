"""Error taxonomy for the forage engine.

ConfigError     -- bad construction parameters; the simulation never starts
InvariantError  -- a world/board invariant was broken; always fatal

Blocked moves and "nothing to claim" are ordinary values (MoveResult.BLOCKED,
None from ResourceBoard.claim_nearest), not exceptions.
"""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid simulation parameters.  ``errors`` lists every problem found."""

    def __init__(self, errors: list[str] | str) -> None:
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvariantError(AssertionError):
    """Raised by audits when resource conservation or claim rules are violated."""
