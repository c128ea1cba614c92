"""CLI commands for replaying feeds, live tracking and serving the API."""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

from hunttrack.collector.collector import Collector
from hunttrack.config.logging import get_logger, setup_logging
from hunttrack.config.preferences import load_preferences
from hunttrack.config.settings import Settings
from hunttrack.core.clock import ManualClock
from hunttrack.core.events import LogEvent
from hunttrack.core.session import Session
from hunttrack.core.stats import SessionStats, calculate_session_stats, top_skills
from hunttrack.data.equipment_db import EQUIPMENT_TYPES, EquipmentDB
from hunttrack.db.connection import Database
from hunttrack.db.repository import Repository
from hunttrack.parser.event_parser import parse_event_line
from hunttrack.parser.feed_tailer import FeedTailer
from hunttrack.sync.markup_sync import MarkupSyncClient, refresh_library, update_equipment_files
from hunttrack.tracker.session_tracker import SessionTracker


def _format_duration(seconds: float) -> str:
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:d}:{minutes:02d}:{secs:02d}"


def _print_report(session: Session, stats: SessionStats) -> None:
    """Print a session report to console."""
    print(f"\n=== {session.name} ({session.state.value}) ===")
    print(f"  Id:        {session.id}")
    print(f"  Started:   {session.started_at:%Y-%m-%d %H:%M:%S}")
    print(f"  Duration:  {_format_duration(stats.duration)}")
    print(f"  Events:    {session.event_count}")

    print("\nCombat")
    print(f"  Shots {stats.shots}  hits {stats.hits}  misses {stats.misses}  crits {stats.criticals}")
    print(f"  Hit rate {stats.hit_rate:.1f}%  crit rate {stats.crit_rate:.1f}%")
    print(f"  Damage dealt {stats.damage_dealt:.1f}  taken {stats.damage_taken:.1f}  healed {stats.healed:.1f}")
    print(f"  DPS {stats.dps:.2f}  DPP {stats.dpp:.2f}  K/D {stats.kd_ratio:.2f}")
    print(f"  Kills {stats.kills}  deaths {stats.deaths}")

    print("\nEconomy (PED)")
    print(f"  Loot       {stats.loot_value:10.4f}  ({stats.loot_count} drops)")
    print(f"  Spend      {stats.total_spend:10.4f}")
    print(f"  Expenses   {stats.armor_cost + stats.fap_cost + stats.misc_cost:10.4f}")
    print(f"  Decay      {stats.decay:10.4f}")
    print(f"  Profit     {stats.profit:10.4f}")
    print(f"  Net profit {stats.net_profit:10.4f}")
    print(f"  Return     {stats.return_rate:9.1f}%")
    if stats.markup_enabled:
        print(f"  With markup: loot {stats.loot_value_with_markup:.4f}  "
              f"return {stats.return_rate_with_markup:.1f}%")

    if stats.loadout_breakdown:
        print("\nLoadouts")
        for entry in stats.loadout_breakdown:
            print(f"  {entry.loadout_name}: {entry.shots} shots, spend {entry.spend:.4f}, "
                  f"loot {entry.loot_value:.4f}, return {entry.return_rate:.1f}%")

    skills = top_skills(stats, limit=5)
    if skills:
        print(f"\nSkills ({stats.skill_gains:.4f} total)")
        for skill in skills:
            print(f"  {skill.skill_name}: {skill.total_gain:.4f} ({skill.gain_count} gains)")

    if stats.global_count or stats.hof_count:
        print(f"\nGlobals {stats.global_count}  HoFs {stats.hof_count}")


def _open_repository(settings: Settings) -> tuple[Database, Repository]:
    db = Database(settings.db_path)
    db.connect()
    return db, Repository(db)


def _stats_for(repo: Repository, session: Session) -> SessionStats:
    return calculate_session_stats(
        session,
        session.ended_at or session.paused_at or session.started_at,
        loadout=repo.get_active_loadout(),
        library=repo.load_markup_library(),
        markup_config=repo.get_markup_config(),
    )


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize database and report what it holds."""
    settings = Settings.from_args(db_path=args.db, portable=args.portable)

    print(f"Initializing database at: {settings.db_path}")
    db, repo = _open_repository(settings)

    print(f"  {len(repo.list_sessions())} sessions in database")
    print(f"  {len(repo.list_loadouts())} loadouts in database")
    print(f"  {len(repo.load_markup_library().items)} markup items in database")

    if settings.equipment_dir and settings.equipment_dir.exists():
        equipment = EquipmentDB()
        count = equipment.load_directory(settings.equipment_dir)
        print(f"  {count} equipment records in {settings.equipment_dir}")

    db.close()
    print("Done.")
    return 0


def _read_feed(path: Path) -> list[LogEvent]:
    events = []
    for line in FeedTailer(path).read_from_start():
        event = parse_event_line(line)
        if event is not None:
            events.append(event)
    return events


def cmd_replay(args: argparse.Namespace) -> int:
    """Fold a recorded event feed into a new session and print the report."""
    settings = Settings.from_args(db_path=args.db, portable=args.portable)
    feed = Path(args.file)
    if not feed.exists():
        print(f"Error: Event feed not found: {feed}")
        return 1

    events = _read_feed(feed)
    if not events:
        print(f"Error: No events in {feed}")
        return 1

    logger = get_logger()
    db, repo = _open_repository(settings)
    try:
        if args.loadout:
            if repo.get_loadout(args.loadout) is None:
                print(f"Error: Loadout not found: {args.loadout}")
                return 1
            repo.set_active_loadout_id(args.loadout)

        # Session time follows the feed's own timestamps
        clock = ManualClock(events[0].timestamp)
        player_name = args.player or load_preferences().player_name
        tracker = SessionTracker(repo, clock=clock, player_name=player_name)
        tracker.reload_markup()
        tracker.start(name=args.name or f"Replay {feed.name}")

        for event in events:
            if event.timestamp > clock.now():
                clock.set(event.timestamp)
            tracker.add_event(event)

        session = tracker.stop()
        logger.info(f"Replayed {len(events)} events from {feed} into session {session.id}")
        _print_report(session, _stats_for(repo, session))
    finally:
        db.close()
    return 0


def cmd_tail(args: argparse.Namespace) -> int:
    """Live tail the event feed into the active session."""
    settings = Settings.from_args(
        db_path=args.db,
        events_path=args.file,
        portable=args.portable,
    )

    if not settings.events_path.exists():
        print(f"Error: Event feed not found: {settings.events_path}")
        return 1

    print(f"Tailing: {settings.events_path}")
    print(f"Database: {settings.db_path}")
    print("Press Ctrl+C to stop\n")

    db, repo = _open_repository(settings)
    prefs = load_preferences()
    tracker = SessionTracker(
        repo,
        player_name=prefs.player_name,
        save_debounce_seconds=settings.save_debounce_seconds,
        stats_throttle_seconds=settings.stats_throttle_seconds,
    )
    tracker.reload_markup()
    if tracker.restore() is None:
        session = tracker.start(name=args.name)
        print(f"Started session: {session.name}")
    else:
        print(f"Resumed session: {tracker.session.name}")

    def on_event(event: LogEvent, recorded: bool) -> None:
        marker = "+" if recorded else " "
        print(f"  {marker} {event.timestamp:%H:%M:%S} {event.kind.value}")

    collector = Collector(tracker, settings.events_path, on_event=on_event)
    collector.initialize()

    def signal_handler(sig, frame):
        print("\nStopping...")
        collector.stop()

    signal.signal(signal.SIGINT, signal_handler)

    try:
        collector.tail(poll_interval=settings.poll_interval)
    except KeyboardInterrupt:
        pass
    finally:
        tracker.flush()
        db.close()
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the web server with a background collector."""
    from hunttrack.version import __version__

    logger = get_logger()
    logger.info(f"HuntTrack v{__version__} starting...")

    import uvicorn

    from hunttrack.api.app import create_app

    settings = Settings.from_args(
        db_path=args.db,
        events_path=args.file,
        portable=args.portable,
    )
    for error in settings.validate():
        logger.warning(error)
    logger.info(f"Database: {settings.db_path}")

    # Shared by the API and the collector thread
    db, repo = _open_repository(settings)
    prefs = load_preferences()
    tracker = SessionTracker(
        repo,
        player_name=prefs.player_name,
        save_debounce_seconds=settings.save_debounce_seconds,
        stats_throttle_seconds=settings.stats_throttle_seconds,
    )
    tracker.reload_markup()
    tracker.restore()

    # Saves must land even when no feed drives the collector
    stop_polling = threading.Event()
    poller = threading.Thread(
        target=tracker.run_poller,
        args=(settings.poll_interval, stop_polling),
        daemon=True,
    )
    poller.start()

    collector = None
    collector_thread = None
    if settings.events_path.exists():
        collector = Collector(tracker, settings.events_path)
        collector.initialize()

        def run_collector():
            try:
                collector.tail(poll_interval=settings.poll_interval)
            except Exception as e:
                logger.error(f"Collector stopped: {e}")

        collector_thread = threading.Thread(target=run_collector, daemon=True)
        collector_thread.start()
        logger.info(f"Collecting from: {settings.events_path}")
    else:
        logger.warning(f"Event feed not found, collector disabled: {settings.events_path}")

    app = create_app(
        db,
        tracker=tracker,
        events_path=settings.events_path,
        collector_running=collector is not None,
    )

    try:
        uvicorn.run(app, host=args.host, port=args.port, log_level="warning")
    finally:
        if collector is not None:
            collector.stop()
            collector_thread.join(timeout=2)
        stop_polling.set()
        poller.join(timeout=2)
        tracker.flush()
        db.close()
        logger.info("Shutdown complete")
    return 0


def cmd_sessions(args: argparse.Namespace) -> int:
    """List stored sessions."""
    settings = Settings.from_args(db_path=args.db, portable=args.portable)
    db, repo = _open_repository(settings)

    summaries = repo.list_sessions(limit=args.limit)
    if not summaries:
        print("No sessions recorded")
    for summary in summaries:
        if summary.ended_at:
            state = "ended"
        elif summary.paused_at:
            state = "paused"
        else:
            state = "active"
        tags = f" [{', '.join(summary.tags)}]" if summary.tags else ""
        print(f"{summary.id}  {summary.started_at:%Y-%m-%d %H:%M}  {state:<6}  "
              f"{summary.event_count:6d} events  {summary.name}{tags}")

    db.close()
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Print the report of one stored session."""
    settings = Settings.from_args(db_path=args.db, portable=args.portable)
    db, repo = _open_repository(settings)
    try:
        session = repo.load_session(args.session_id)
        if session is None:
            print(f"Error: Session not found: {args.session_id}")
            return 1
        _print_report(session, _stats_for(repo, session))
    finally:
        db.close()
    return 0


def cmd_equipment(args: argparse.Namespace) -> int:
    """Search the equipment data files."""
    settings = Settings.from_args(
        db_path=args.db,
        equipment_dir=args.dir,
        portable=args.portable,
    )
    equipment = EquipmentDB()
    equipment.load_directory(settings.equipment_dir)
    if not len(equipment):
        print(f"No equipment data in {settings.equipment_dir} (run sync-markup --equipment)")
        return 1

    results = equipment.search(args.query, args.type, limit=args.limit)
    for record in results:
        economy = record.equipment.economy
        print(f"{record.name:<40} decay {economy.decay:.4f} PED  ammo {economy.ammo_burn:g}")
    if not results:
        print(f"No {args.type} matching '{args.query}'")
    return 0


def cmd_sync_markup(args: argparse.Namespace) -> int:
    """Refresh the markup library (and optionally equipment files) from the item API."""
    settings = Settings.from_args(
        db_path=args.db,
        equipment_dir=args.dir,
        portable=args.portable,
    )
    prefs = load_preferences()
    client = MarkupSyncClient(api_base=args.url or prefs.markup_sync_url)

    fetched = client.fetch_library()
    if fetched is None:
        print(f"Error: Markup sync failed: {client.last_error}")
        return 1

    db, repo = _open_repository(settings)
    try:
        library = refresh_library(repo.load_markup_library(), fetched)
        count = repo.save_markup_library(library)
        print(f"Markup library updated: {count} items")
    finally:
        db.close()

    if args.equipment:
        written = update_equipment_files(client, settings.equipment_dir)
        for equipment_type, count in written.items():
            print(f"  {count} {equipment_type} records")
        if len(written) < len(EQUIPMENT_TYPES):
            print(f"Warning: some equipment downloads failed: {client.last_error}")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="hunttrack",
        description="Hunting session tracker and analytics",
    )
    parser.add_argument(
        "--db",
        type=str,
        help="Database file path",
    )
    parser.add_argument(
        "--portable",
        action="store_true",
        help="Use portable mode (data in ./data)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log debug output to the console",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database")

    # replay command
    replay_parser = subparsers.add_parser("replay", help="Replay an event feed into a new session")
    replay_parser.add_argument("file", type=str, help="JSON-lines event feed")
    replay_parser.add_argument("--name", type=str, help="Session name")
    replay_parser.add_argument("--loadout", type=str, help="Loadout id to price shots with")
    replay_parser.add_argument("--player", type=str, help="Player name for global filtering")

    # tail command
    tail_parser = subparsers.add_parser("tail", help="Live tail the event feed")
    tail_parser.add_argument(
        "file",
        type=str,
        nargs="?",
        help="Event feed to tail (default: events.jsonl in the data directory)",
    )
    tail_parser.add_argument("--name", type=str, help="Name for a new session")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start web server")
    serve_parser.add_argument(
        "file",
        type=str,
        nargs="?",
        help="Event feed to monitor (default: events.jsonl in the data directory)",
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )

    # sessions command
    sessions_parser = subparsers.add_parser("sessions", help="List recorded sessions")
    sessions_parser.add_argument(
        "--limit",
        type=int,
        default=20,
        help="Number of sessions to show (default: 20)",
    )

    # show command
    show_parser = subparsers.add_parser("show", help="Show a session report")
    show_parser.add_argument("session_id", type=str, help="Session id")

    # equipment command
    equipment_parser = subparsers.add_parser("equipment", help="Search equipment data")
    equipment_parser.add_argument("query", type=str, help="Name substring")
    equipment_parser.add_argument(
        "--type",
        choices=EQUIPMENT_TYPES,
        default="weapon",
        help="Equipment type (default: weapon)",
    )
    equipment_parser.add_argument("--limit", type=int, default=20)
    equipment_parser.add_argument("--dir", type=str, help="Equipment data directory")

    # sync-markup command
    sync_parser = subparsers.add_parser("sync-markup", help="Refresh markup library from the item API")
    sync_parser.add_argument("--url", type=str, help="Item API base URL")
    sync_parser.add_argument(
        "--equipment",
        action="store_true",
        help="Also download equipment data files",
    )
    sync_parser.add_argument("--dir", type=str, help="Equipment data directory")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    setup_logging(
        portable=args.portable,
        console=args.verbose or args.command == "serve",
        level=logging.DEBUG if args.verbose else logging.INFO,
    )

    commands = {
        "init": cmd_init,
        "replay": cmd_replay,
        "tail": cmd_tail,
        "serve": cmd_serve,
        "sessions": cmd_sessions,
        "show": cmd_show,
        "equipment": cmd_equipment,
        "sync-markup": cmd_sync_markup,
    }

    cmd_func = commands.get(args.command)
    if cmd_func is None:
        print(f"Unknown command: {args.command}")
        return 1

    return cmd_func(args)


if __name__ == "__main__":
    sys.exit(main())
