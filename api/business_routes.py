"""
FastAPI Route Handlers
NextMic: inbound leads, bookings, invoices, revenue
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.deps import domain_errors, get_current_profile, require_admin
from api.schemas import (
    AcceptToBookingRequest, BookingCreate, BookingResponse, BookingUpdate,
    InvoiceCreate, InvoiceResponse, InvoiceStatusUpdate, LeadResponse, LeadStatusUpdate,
    LeadSubmit, MonthlyRevenueResponse, RevenueStatsResponse,
)
from db.database import get_db_dependency
from db.models import Profile
from utils import business, revenue

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Leads ───────────────────────────────────────────────────────────────────

@router.post("/leads/submit", tags=["Leads"])
def submit_lead(request: LeadSubmit, db: Session = Depends(get_db_dependency)):
    """Public booking-inquiry widget. Spam is accepted and dropped without feedback."""
    with domain_errors():
        business.submit_lead(db, request.speaker_id, request.model_dump(exclude={"speaker_id"}))
    return {"success": True}


@router.get("/leads", response_model=List[LeadResponse], tags=["Leads"])
def list_leads(
    status: Optional[str] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return business.list_leads(db, profile.profile_id, status)


@router.patch("/leads/{lead_id}", response_model=LeadResponse, tags=["Leads"])
def update_lead(
    lead_id: int,
    request: LeadStatusUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.update_lead_status(db, profile.profile_id, lead_id, request.status, request.notes)


# ─── Bookings ────────────────────────────────────────────────────────────────

@router.get("/bookings", response_model=List[BookingResponse], tags=["Bookings"])
def list_bookings(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db_dependency)):
    return business.list_bookings(db, profile.profile_id)


@router.post("/bookings", response_model=BookingResponse, status_code=201, tags=["Bookings"])
def create_booking(
    request: BookingCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.create_booking(db, profile.profile_id, request.model_dump())


@router.patch("/bookings/{booking_id}", response_model=BookingResponse, tags=["Bookings"])
def update_booking(
    booking_id: int,
    request: BookingUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.update_booking(
            db, profile.profile_id, booking_id, request.model_dump(exclude_unset=True)
        )


@router.post("/matches/{match_id}/booking", response_model=BookingResponse, status_code=201, tags=["Bookings"])
def book_accepted_match(
    match_id: int,
    request: Optional[AcceptToBookingRequest] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.accept_to_booking(
            db, profile.profile_id, match_id,
            confirmed_fee=request.confirmed_fee if request else None,
        )


# ─── Invoices ────────────────────────────────────────────────────────────────

@router.get("/invoices", response_model=List[InvoiceResponse], tags=["Invoices"])
def list_invoices(
    status: Optional[str] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return business.list_invoices(db, profile.profile_id, status)


@router.post("/invoices", response_model=InvoiceResponse, status_code=201, tags=["Invoices"])
def create_invoice(
    request: InvoiceCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.create_invoice(
            db,
            profile.profile_id,
            [item.model_dump() for item in request.line_items],
            tax_rate=request.tax_rate,
            issue_date=request.issue_date,
            due_date=request.due_date,
            booking_id=request.booking_id,
            notes=request.notes,
        )


@router.post("/invoices/mark-overdue", tags=["Admin"])
def mark_overdue(admin: Profile = Depends(require_admin), db: Session = Depends(get_db_dependency)):
    return {"marked_overdue": business.mark_overdue_invoices(db)}


@router.post("/invoices/{invoice_id}/status", response_model=InvoiceResponse, tags=["Invoices"])
def update_invoice_status(
    invoice_id: int,
    request: InvoiceStatusUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return business.update_invoice_status(db, profile.profile_id, invoice_id, request.status)


# ─── Revenue ─────────────────────────────────────────────────────────────────

@router.get("/revenue/stats", response_model=RevenueStatsResponse, tags=["Revenue"])
def revenue_stats(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db_dependency)):
    with domain_errors():
        stats = revenue.revenue_stats(db, profile.profile_id)
    return RevenueStatsResponse(
        total_confirmed=stats.total_confirmed,
        total_received=stats.total_received,
        pipeline_value=stats.pipeline_value,
        win_rate=stats.win_rate,
        average_fee=stats.average_fee,
        bookings_this_year=stats.bookings_this_year,
        goal=stats.goal,
        goal_year=stats.goal_year,
        goal_progress=stats.goal_progress,
    )


@router.get("/revenue/monthly", response_model=List[MonthlyRevenueResponse], tags=["Revenue"])
def monthly_revenue(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db_dependency)):
    return revenue.monthly_revenue(db, profile.profile_id)
