"""Mutationsaktionen (Fiches, Matières, Universités, UI-Zustand)."""

from actions.mutations import ActionResult, Actions, parse_tristate

__all__ = ["ActionResult", "Actions", "parse_tristate"]
