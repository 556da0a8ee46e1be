from __future__ import annotations
"""Invoice lifecycle: declared transitions and the named workflow actions.

All status changes go through INVOICE_FSM, including generic edits, so a paid
invoice cannot be reverted by a plain update.
"""
import logging
from datetime import date
from typing import Optional
from flask import abort
from invoice_tracker.models.invoice import Invoice
from invoice_tracker.services.policy import AuthSession
from invoice_tracker.utils.fsm import TransitionValidator
from invoice_tracker.utils.validation import validate_status

logger = logging.getLogger(__name__)

INVOICE_FSM = TransitionValidator({
    Invoice.STATUS_PENDING: {Invoice.STATUS_ASSIGNED, Invoice.STATUS_SENT_TO_FINANCE, Invoice.STATUS_APPROVED, Invoice.STATUS_REJECTED, Invoice.STATUS_PAID},
    Invoice.STATUS_ASSIGNED: {Invoice.STATUS_SENT_TO_FINANCE, Invoice.STATUS_PENDING, Invoice.STATUS_REJECTED, Invoice.STATUS_PAID},
    Invoice.STATUS_SENT_TO_FINANCE: {Invoice.STATUS_ASSIGNED, Invoice.STATUS_APPROVED, Invoice.STATUS_REJECTED, Invoice.STATUS_PAID},
    Invoice.STATUS_APPROVED: {Invoice.STATUS_SENT_TO_FINANCE, Invoice.STATUS_REJECTED, Invoice.STATUS_PAID},
    Invoice.STATUS_REJECTED: {Invoice.STATUS_PENDING},
    Invoice.STATUS_PAID: set(),
})


def transition(invoice: Invoice, target: str, auth: AuthSession) -> Invoice:
    validate_status(target, Invoice.ALL_STATUSES)
    INVOICE_FSM.assert_can_transition(invoice.status, target)
    if invoice.status != target:
        logger.info('invoice %s status %s -> %s by user %s (%s)', invoice.id, invoice.status, target, auth.user_id, auth.role)
    invoice.status = target
    return invoice


def assign_to_supply_chain(invoice: Invoice, auth: AuthSession, assigned_to_person: Optional[str], supply_chain_notes: Optional[str] = None) -> Invoice:
    if not assigned_to_person or not assigned_to_person.strip():
        abort(400, description='assigned_to_person required')
    transition(invoice, Invoice.STATUS_ASSIGNED, auth)
    invoice.assigned_to_person = assigned_to_person
    if supply_chain_notes is not None:
        invoice.supply_chain_notes = supply_chain_notes
    return invoice


def send_to_finance(invoice: Invoice, auth: AuthSession, supply_chain_notes: Optional[str] = None) -> Invoice:
    transition(invoice, Invoice.STATUS_SENT_TO_FINANCE, auth)
    if supply_chain_notes is not None:
        invoice.supply_chain_notes = supply_chain_notes
    return invoice


def mark_paid(invoice: Invoice, auth: AuthSession, payment_date: Optional[date], finance_notes: Optional[str] = None) -> Invoice:
    if payment_date is None:
        abort(400, description='payment_date required')
    transition(invoice, Invoice.STATUS_PAID, auth)
    invoice.payment_date = payment_date
    if finance_notes is not None:
        invoice.finance_notes = finance_notes
    return invoice


def approve(invoice: Invoice, auth: AuthSession) -> Invoice:
    return transition(invoice, Invoice.STATUS_APPROVED, auth)


def reject(invoice: Invoice, auth: AuthSession) -> Invoice:
    return transition(invoice, Invoice.STATUS_REJECTED, auth)


def transitions_map():
    return {state: sorted(INVOICE_FSM.allowed_targets(state)) for state in INVOICE_FSM.states}


__all__ = ['INVOICE_FSM', 'transition', 'assign_to_supply_chain', 'send_to_finance', 'mark_paid', 'approve', 'reject', 'transitions_map']
