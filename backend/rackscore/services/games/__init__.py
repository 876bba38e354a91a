"""Game domain services: the cup scoring state machine.

This package contains pure(ish) domain logic that should be imported by
HTTP routes and socket handlers, keeping transport concerns separated
from core game mechanics. The shot log is the only source of truth;
GameState rows are a projection rebuilt from it on demand.
"""
