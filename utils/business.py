"""
Speaker business records: inbound leads, bookings and invoices.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from config.settings import settings
from db.models import Booking, Invoice, Lead, Opportunity, OpportunityScore, Profile
from models import (
    InvoiceStatus,
    LeadStatus,
    NotFound,
    PaymentStatus,
    PipelineStage,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


# ─── Leads ───────────────────────────────────────────────────────────────────

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
_TAG_RE = re.compile(r"<[^>]*>")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

SPAM_PATTERNS = [
    re.compile(r"\b(viagra|cialis|casino|lottery|winner|click here|buy now)\b", re.I),
    re.compile(r"\[url=", re.I),
    re.compile(r"https?://\S*https?://", re.I),
    re.compile(r"<script", re.I),
]


def sanitize(value: Optional[str], max_length: int) -> Optional[str]:
    """Strip HTML tags and whitespace, truncate; empty becomes None."""
    if not value:
        return None
    cleaned = _TAG_RE.sub("", str(value)).strip()
    return cleaned[:max_length] or None


def validate_event_date(value: Optional[str], today: Optional[date] = None) -> Optional[date]:
    """YYYY-MM-DD strings in the future; anything else is dropped."""
    if not value or not _ISO_DATE_RE.match(str(value)):
        return None
    try:
        parsed = date.fromisoformat(str(value))
    except ValueError:
        return None
    return parsed if parsed > (today or date.today()) else None


def is_spammy(message: Optional[str], name: str) -> bool:
    if not message:
        return False
    combined = f"{name} {message}"
    return any(p.search(combined) for p in SPAM_PATTERNS)


def submit_lead(
    session: Session,
    speaker_id: int,
    data: Dict[str, Any],
    today: Optional[date] = None,
) -> Optional[Lead]:
    """
    Public inquiry form. Returns the stored Lead, or None when the message
    was classified as spam and silently dropped.
    """
    name = data.get("name")
    email = (data.get("email") or "").strip()
    if not name or not str(name).strip():
        raise ValidationFailed("Name is required")
    if not email or not EMAIL_RE.match(email) or len(email) > settings.MAX_FIELD_LENGTH:
        raise ValidationFailed("Valid email is required")

    clean_name = sanitize(name, settings.MAX_NAME_LENGTH)
    message = sanitize(data.get("message"), settings.MAX_MESSAGE_LENGTH)
    if is_spammy(message, clean_name or ""):
        logger.warning(f"Dropped spam inquiry for speaker {speaker_id}")
        return None

    speaker = (
        session.query(Profile)
        .filter(Profile.profile_id == speaker_id, Profile.is_public.is_(True))
        .one_or_none()
    )
    if speaker is None:
        raise NotFound("Speaker not found")

    field_max = settings.MAX_FIELD_LENGTH
    lead = Lead(
        profile_id=speaker_id,
        name=clean_name,
        email=email.lower(),
        phone=sanitize(data.get("phone"), 50),
        company=sanitize(data.get("company"), field_max),
        event_name=sanitize(data.get("event_name"), field_max),
        event_type=sanitize(data.get("event_type"), field_max),
        event_date=validate_event_date(data.get("event_date"), today),
        estimated_audience=sanitize(data.get("estimated_audience"), field_max),
        budget_range=sanitize(data.get("budget_range"), field_max),
        message=message,
        source="widget",
        status=LeadStatus.NEW.value,
    )
    session.add(lead)
    session.flush()
    logger.info(f"📥 New lead {lead.lead_id} for speaker {speaker_id}")
    return lead


def list_leads(session: Session, profile_id: int, status: Optional[str] = None) -> List[Lead]:
    query = session.query(Lead).filter(Lead.profile_id == profile_id)
    if status:
        query = query.filter(Lead.status == status)
    return query.order_by(Lead.created_at.desc(), Lead.lead_id.desc()).all()


def update_lead_status(
    session: Session,
    profile_id: int,
    lead_id: int,
    status: str,
    notes: Optional[str] = None,
) -> Lead:
    try:
        status = LeadStatus(status)
    except ValueError:
        raise ValidationFailed(f"Unknown lead status '{status}'")
    lead = (
        session.query(Lead)
        .filter(Lead.lead_id == lead_id, Lead.profile_id == profile_id)
        .one_or_none()
    )
    if lead is None:
        raise NotFound(f"Lead {lead_id} not found")
    lead.status = status.value
    if notes is not None:
        lead.notes = notes
    session.flush()
    return lead


# ─── Bookings ────────────────────────────────────────────────────────────────

_BOOKING_FIELDS = (
    "event_name", "event_date", "confirmed_fee", "amount_paid", "expenses",
    "fee_currency", "payment_status", "payment_date", "notes",
)


def derive_payment_status(confirmed_fee: float, amount_paid: float) -> PaymentStatus:
    if confirmed_fee and amount_paid >= confirmed_fee:
        return PaymentStatus.PAID
    if amount_paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def _apply_booking_fields(booking: Booking, data: Dict[str, Any]) -> None:
    for key in _BOOKING_FIELDS:
        if key in data and data[key] is not None:
            setattr(booking, key, data[key])
    for money in ("confirmed_fee", "amount_paid", "expenses"):
        if (getattr(booking, money) or 0) < 0:
            raise ValidationFailed(f"{money} cannot be negative")

    if "payment_status" in data and data["payment_status"] is not None:
        try:
            booking.payment_status = PaymentStatus(data["payment_status"]).value
        except ValueError:
            raise ValidationFailed(f"Unknown payment status '{data['payment_status']}'")
    elif booking.payment_status != PaymentStatus.CANCELLED.value:
        booking.payment_status = derive_payment_status(
            booking.confirmed_fee or 0, booking.amount_paid or 0
        ).value


def create_booking(session: Session, profile_id: int, data: Dict[str, Any]) -> Booking:
    if not (data.get("event_name") or "").strip():
        raise ValidationFailed("Event name is required")
    booking = Booking(
        profile_id=profile_id,
        match_id=data.get("match_id"),
        confirmed_fee=0.0,
        amount_paid=0.0,
        expenses=0.0,
        payment_status=PaymentStatus.PENDING.value,
    )
    _apply_booking_fields(booking, data)
    session.add(booking)
    session.flush()
    logger.info(f"Booking {booking.booking_id} created: {booking.event_name}")
    return booking


def get_booking(session: Session, profile_id: int, booking_id: int) -> Booking:
    booking = (
        session.query(Booking)
        .filter(Booking.booking_id == booking_id, Booking.profile_id == profile_id)
        .one_or_none()
    )
    if booking is None:
        raise NotFound(f"Booking {booking_id} not found")
    return booking


def update_booking(session: Session, profile_id: int, booking_id: int, data: Dict[str, Any]) -> Booking:
    booking = get_booking(session, profile_id, booking_id)
    _apply_booking_fields(booking, data)
    session.flush()
    return booking


def list_bookings(session: Session, profile_id: int) -> List[Booking]:
    return (
        session.query(Booking)
        .filter(Booking.profile_id == profile_id)
        .order_by(Booking.event_date.desc(), Booking.booking_id.desc())
        .all()
    )


def accept_to_booking(
    session: Session,
    profile_id: int,
    match_id: int,
    confirmed_fee: Optional[float] = None,
) -> Booking:
    """Booking for an accepted match; returns the existing one if already booked."""
    match = (
        session.query(OpportunityScore)
        .filter(OpportunityScore.score_id == match_id, OpportunityScore.profile_id == profile_id)
        .one_or_none()
    )
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    if match.pipeline_stage not in (PipelineStage.ACCEPTED.value, PipelineStage.COMPLETED.value):
        raise ValidationFailed("Only accepted opportunities can be booked")

    existing = session.query(Booking).filter(Booking.match_id == match_id).first()
    if existing is not None:
        return existing

    opp: Opportunity = match.opportunity
    fee = confirmed_fee if confirmed_fee is not None else (
        opp.fee_estimate_max or opp.fee_estimate_min or 0.0
    )
    return create_booking(session, profile_id, {
        "match_id": match_id,
        "event_name": opp.event_name,
        "event_date": opp.event_date,
        "confirmed_fee": fee,
    })


# ─── Invoices ────────────────────────────────────────────────────────────────


def generate_invoice_number(session: Session, issue_date: date) -> str:
    """INV-YYYYMM-NNNN, numbered sequentially within the month."""
    prefix = f"INV-{issue_date:%Y%m}-"
    taken = (
        session.query(Invoice.invoice_number)
        .filter(Invoice.invoice_number.like(f"{prefix}%"))
        .all()
    )
    highest = 0
    for (number,) in taken:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:04d}"


def normalize_line_items(line_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    if not line_items:
        raise ValidationFailed("An invoice needs at least one line item")
    items = []
    for item in line_items:
        description = (item.get("description") or "").strip()
        quantity = float(item.get("quantity", 1) or 0)
        rate = float(item.get("rate", 0) or 0)
        if not description:
            raise ValidationFailed("Line item description is required")
        if quantity <= 0 or rate < 0:
            raise ValidationFailed("Line item quantity must be positive and rate non-negative")
        items.append({
            "description": description,
            "quantity": quantity,
            "rate": rate,
            "amount": round(quantity * rate, 2),
        })
    return items


def compute_invoice_totals(line_items: List[Dict[str, Any]], tax_rate: float = 0.0) -> Dict[str, float]:
    """tax_rate is a percentage (8.25 → 8.25%)."""
    if tax_rate < 0:
        raise ValidationFailed("Tax rate cannot be negative")
    subtotal = round(sum(i["amount"] for i in line_items), 2)
    tax_amount = round(subtotal * tax_rate / 100, 2)
    return {"subtotal": subtotal, "tax_amount": tax_amount, "total": round(subtotal + tax_amount, 2)}


def create_invoice(
    session: Session,
    profile_id: int,
    line_items: List[Dict[str, Any]],
    tax_rate: float = 0.0,
    issue_date: Optional[date] = None,
    due_date: Optional[date] = None,
    booking_id: Optional[int] = None,
    notes: Optional[str] = None,
) -> Invoice:
    issue_date = issue_date or date.today()
    due_date = due_date or issue_date + timedelta(days=30)
    if due_date < issue_date:
        raise ValidationFailed("Due date cannot be before the issue date")
    if booking_id is not None:
        get_booking(session, profile_id, booking_id)

    items = normalize_line_items(line_items)
    totals = compute_invoice_totals(items, tax_rate)
    invoice = Invoice(
        profile_id=profile_id,
        booking_id=booking_id,
        invoice_number=generate_invoice_number(session, issue_date),
        issue_date=issue_date,
        due_date=due_date,
        line_items=items,
        tax_rate=tax_rate,
        status=InvoiceStatus.DRAFT.value,
        notes=notes,
        **totals,
    )
    session.add(invoice)
    session.flush()
    logger.info(f"🧾 Invoice {invoice.invoice_number} created: total {invoice.total:.2f}")
    return invoice


def get_invoice(session: Session, profile_id: int, invoice_id: int) -> Invoice:
    invoice = (
        session.query(Invoice)
        .filter(Invoice.invoice_id == invoice_id, Invoice.profile_id == profile_id)
        .one_or_none()
    )
    if invoice is None:
        raise NotFound(f"Invoice {invoice_id} not found")
    return invoice


def list_invoices(session: Session, profile_id: int, status: Optional[str] = None) -> List[Invoice]:
    query = session.query(Invoice).filter(Invoice.profile_id == profile_id)
    if status:
        query = query.filter(Invoice.status == status)
    return query.order_by(Invoice.issue_date.desc(), Invoice.invoice_id.desc()).all()


def update_invoice_status(
    session: Session,
    profile_id: int,
    invoice_id: int,
    status: str,
    now: Optional[datetime] = None,
) -> Invoice:
    now = now or datetime.utcnow()
    try:
        status = InvoiceStatus(status)
    except ValueError:
        raise ValidationFailed(f"Unknown invoice status '{status}'")

    invoice = get_invoice(session, profile_id, invoice_id)
    invoice.status = status.value
    if status == InvoiceStatus.SENT and invoice.sent_at is None:
        invoice.sent_at = now
    elif status == InvoiceStatus.PAID:
        invoice.paid_at = now
        if invoice.sent_at is None:
            invoice.sent_at = now
    session.flush()
    return invoice


def mark_overdue_invoices(session: Session, today: Optional[date] = None) -> int:
    """Sent invoices past their due date become overdue."""
    today = today or date.today()
    rows = (
        session.query(Invoice)
        .filter(Invoice.status == InvoiceStatus.SENT.value, Invoice.due_date < today)
        .all()
    )
    for invoice in rows:
        invoice.status = InvoiceStatus.OVERDUE.value
    session.flush()
    if rows:
        logger.info(f"Marked {len(rows)} invoices overdue")
    return len(rows)
