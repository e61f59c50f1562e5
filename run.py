#!/usr/bin/env python3
"""
Quick CLI runner for the NextMic speaker pipeline.

Usage:
    python run.py                                # Demo with mock listings
    python run.py --mode api                     # Start FastAPI server
    python run.py --mode scrape --sources mock   # Run scrapers
    python run.py --mode rank --profile 1        # AI-rank opportunities for a speaker
    python run.py --mode reminders --profile 1   # Print follow-ups due
    python run.py --mode daily                   # Saved-search check + overdue invoices
"""

import sys
import os
import argparse
import logging
from datetime import date

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run")


def print_reminders(session, profile_id: int):
    from utils.reminders import bucket_reminders, list_open_reminders

    today = date.today()
    buckets = bucket_reminders(list_open_reminders(session, profile_id, today), today)
    print(f"\n  🔔 Follow-ups due ({buckets.total})")
    for label, items in (("Overdue", buckets.overdue), ("Today", buckets.due_today),
                         ("Upcoming", buckets.upcoming)):
        for r in items:
            print(f"   [{label:<8}] {r.event_name:<40} {r.reminder_type:<7} due {r.due_date}")
    if not buckets.total:
        print("   Nothing due this week.")


def demo():
    """Scrape mock listings, walk a few through the pipeline and print the board."""
    from agents.scraper import scrape_all_sources
    from config.settings import settings
    from db.database import init_db, get_db
    from db.models import Opportunity, Profile
    from utils.pipeline import apply_action, pipeline_board

    init_db()

    print("\n" + "="*70)
    print("  🎤 NEXTMIC SPEAKER PIPELINE — DEMO RUN")
    print("="*70 + "\n")

    with get_db() as session:
        profile = session.query(Profile).filter(Profile.email == "demo@nextmic.dev").first()
        if profile is None:
            profile = Profile(
                name="Demo Speaker",
                email="demo@nextmic.dev",
                headline="Engineering leader and keynote speaker",
                bio="Fifteen years building cloud platforms; speaks on DevOps and leadership.",
                topics=["DevOps", "Leadership", "AI"],
                fee_range_min=3000,
                fee_range_max=10000,
                is_public=True,
                is_admin=True,
            )
            session.add(profile)
            session.flush()

        print("🤖 Scraping mock listings...\n")
        for r in scrape_all_sources(session, ["mock"], delay=0):
            print(f"   {r.source}: {r.found} found, {r.inserted} new, {r.updated} refreshed")

        opps = session.query(Opportunity).filter(Opportunity.source == "mock").all()
        for opp, action in zip(opps, ["apply", "apply", "save", "pass"]):
            apply_action(session, profile.profile_id, opp.opportunity_id, action)

        if settings.LLM_API_KEY:
            from agents.scorer import OpportunityRankingAgent
            result = OpportunityRankingAgent(session).execute(profile.profile_id)
            print(f"\n   {result.summary()}")
        else:
            print("\n   (LLM_API_KEY not set, skipping AI ranking)")

        print("\n" + "─"*70)
        print("  📋 PIPELINE BOARD")
        print("─"*70)
        for stage, matches in pipeline_board(session, profile.profile_id).items():
            if matches:
                names = ", ".join(m.opportunity.event_name for m in matches)
                print(f"   {stage:<12} {len(matches):>2}  {names}")

        print_reminders(session, profile.profile_id)

    print("\n" + "="*70)
    print(f"  ✅ Demo complete!")
    print(f"  🔌 Start API:       uvicorn api.main:app --reload --port 8000")
    print("="*70 + "\n")


def scrape(sources):
    from agents.scraper import scrape_all_sources
    from db.database import init_db, get_db

    init_db()
    with get_db() as session:
        for r in scrape_all_sources(session, sources):
            status = "✅" if r.success else f"❌ {r.error}"
            print(f"{r.source:<15} found={r.found:<4} inserted={r.inserted:<4} updated={r.updated:<4} {status}")


def rank(profile_id: int):
    from agents.scorer import OpportunityRankingAgent
    from db.database import init_db, get_db

    init_db()
    with get_db() as session:
        result = OpportunityRankingAgent(session).execute(profile_id)
    if not result.success:
        print(f"\n❌ Ranking failed: {result.error}")
        sys.exit(1)
    print(f"\n✅ {result.data.message} ({len(result.data.failed)} failed)")


def reminders(profile_id: int):
    from db.database import init_db, get_db

    init_db()
    with get_db() as session:
        print_reminders(session, profile_id)


def daily():
    from db.database import init_db, get_db
    from utils.business import mark_overdue_invoices
    from utils.matching import check_saved_search_matches

    init_db()
    with get_db() as session:
        matches = check_saved_search_matches(session)
        overdue = mark_overdue_invoices(session)
    for m in matches:
        print(f"🔎 '{m.search_name}' (profile {m.profile_id}): {m.new_matches} new matches")
    print(f"🧾 {overdue} invoices marked overdue")


def start_api():
    import uvicorn
    from config.settings import settings
    uvicorn.run(
        "api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=True,
    )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="NextMic Speaker Pipeline")
    parser.add_argument(
        "--mode",
        choices=["demo", "api", "scrape", "rank", "reminders", "daily"],
        default="demo",
        help="Run mode: demo | api | scrape | rank | reminders | daily",
    )
    parser.add_argument("--profile", type=int, help="Speaker profile id (rank, reminders)")
    parser.add_argument("--sources", nargs="*", help="Scraping sources (default: all live sources)")
    args = parser.parse_args()

    if args.mode in ("rank", "reminders") and args.profile is None:
        parser.error(f"--profile is required for --mode {args.mode}")

    if args.mode == "demo":
        demo()
    elif args.mode == "api":
        start_api()
    elif args.mode == "scrape":
        scrape(args.sources)
    elif args.mode == "rank":
        rank(args.profile)
    elif args.mode == "reminders":
        reminders(args.profile)
    elif args.mode == "daily":
        daily()
