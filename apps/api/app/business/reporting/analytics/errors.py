from __future__ import annotations


class InvalidActionError(ValueError):
    """Raised when the requested analytics action is not one we dispatch."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Unknown analytics action '{action}'")
