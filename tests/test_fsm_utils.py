from invoice_tracker.utils.fsm import TransitionValidator
from invoice_tracker.services.workflow import INVOICE_FSM, transitions_map
import pytest
from werkzeug.exceptions import BadRequest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(BadRequest) as exc:
        fsm.assert_can_transition('A', 'C')
    assert 'A -> C' in exc.value.description


def test_noop_transition_allowed_unless_disabled():
    assert TransitionValidator({'A': set()}).can_transition('A', 'A')
    assert not TransitionValidator({'A': set()}, allow_noop=False).can_transition('A', 'A')


def test_invoice_fsm_paid_is_terminal():
    assert INVOICE_FSM.is_terminal('paid')
    assert not INVOICE_FSM.can_transition('paid', 'pending')
    assert INVOICE_FSM.can_transition('rejected', 'pending')
    assert not INVOICE_FSM.can_transition('rejected', 'paid')


def test_transitions_map_lists_every_status():
    m = transitions_map()
    assert set(m) == {'pending', 'assigned_to_supply_chain', 'sent_to_finance', 'approved', 'rejected', 'paid'}
    assert m['paid'] == []
    assert m['rejected'] == ['pending']
