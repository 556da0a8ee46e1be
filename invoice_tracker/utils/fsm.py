from __future__ import annotations
"""Finite state machine utility for enforcing allowed status transitions.

Usage:
    from invoice_tracker.utils.fsm import TransitionValidator
    FSM = TransitionValidator({
        'pending': {'approved', 'rejected'},
        'approved': {'paid'},
        'paid': set(),
    })
    FSM.assert_can_transition(current_status, target_status)

Aborts with 400 if the transition is not declared. Re-applying the current
state is accepted when allow_noop is set (generic edits resubmit the status).
"""
from typing import Dict, Iterable, Set
from flask import abort


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status', allow_noop: bool = True):
        self.graph = graph
        self.field_name = field_name
        self.allow_noop = allow_noop

    @property
    def states(self) -> Iterable[str]:
        return self.graph.keys()

    def allowed_targets(self, current: str) -> Set[str]:
        return set(self.graph.get(current, set()))

    def can_transition(self, current: str, target: str) -> bool:
        if self.allow_noop and current == target and current in self.graph:
            return True
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: str, target: str):
        if not self.can_transition(current, target):
            abort(400, description=f"Invalid {self.field_name} transition {current} -> {target}")
        return True

    def is_terminal(self, state: str) -> bool:
        return not self.graph.get(state)

__all__ = ['TransitionValidator']
