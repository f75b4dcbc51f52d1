"""Gate context: hidden gestures in front of the admin login."""

from .machine import GateStateMachine, GateVisitStore, PressTimer

__all__ = ["GateStateMachine", "GateVisitStore", "PressTimer"]
