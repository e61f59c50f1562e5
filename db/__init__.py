from .database import init_db, get_db, get_db_dependency, session_scope, engine, SessionLocal
from .models import (
    Base, Profile, Opportunity, OpportunityScore, PipelineTag,
    FollowUpReminder, OutreachActivity, Pitch, Lead, Booking, Invoice,
    SavedSearch, ScrapingLog
)

__all__ = [
    "init_db", "get_db", "get_db_dependency", "session_scope", "engine", "SessionLocal",
    "Base", "Profile", "Opportunity", "OpportunityScore", "PipelineTag",
    "FollowUpReminder", "OutreachActivity", "Pitch", "Lead", "Booking", "Invoice",
    "SavedSearch", "ScrapingLog",
]
