"""
Command-line interface for pressdesk.

Usage:
    python -m pressdesk.cli generate bundle.json --language zh --mode creative -o report.json
    python -m pressdesk.cli publish report.json --data bundle.json
    python -m pressdesk.cli list
    python -m pressdesk.cli export-settings -o settings.json
    python -m pressdesk.cli import-settings settings.json

``bundle.json`` is a ``reportData`` export (entries, event context, draft).
"""

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Optional

from .config import get_config
from .logging_utils import configure_logging, log
from .services.errors import EmptyInputError
from .session import Session, SessionError
from .storage import ReportStore

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _write_json(data: Any, output: Optional[Path]) -> None:
    text = json.dumps(data, ensure_ascii=False, indent=2)
    if output is None:
        print(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        f.write(text + "\n")
    log(f"Wrote {output}")


def _open_session(db: Optional[Path]) -> Session:
    config = get_config()
    path = db or Path((config.get("storage") or {}).get("path", "data/pressdesk.db"))
    return Session(store=ReportStore(path), config=config)


def cmd_generate(session: Session, parsed: argparse.Namespace) -> int:
    session.import_report_data(_read_json(parsed.bundle))
    report = session.generate(parsed.language, parsed.mode)
    _write_json(report.to_dict(), parsed.output)
    if parsed.publish:
        published = session.publish()
        log(f"Published report {published.id}")
    return 0


def cmd_publish(session: Session, parsed: argparse.Namespace) -> int:
    if parsed.data:
        session.import_report_data(_read_json(parsed.data))
    session.update_report(_read_json(parsed.report))
    published = session.publish()
    print(published.id)
    return 0


def cmd_list(session: Session, parsed: argparse.Namespace) -> int:
    for report in session.list_reports():
        date = datetime.fromtimestamp(report.publish_date / 1000).strftime("%Y-%m-%d %H:%M")
        print(f"{report.id}\t{date}\t{report.title.prefer(parsed.language, 'en', 'zh')}")
    return 0


def cmd_export_settings(session: Session, parsed: argparse.Namespace) -> int:
    _write_json(session.export_settings(), parsed.output)
    return 0


def cmd_import_settings(session: Session, parsed: argparse.Namespace) -> int:
    settings = session.import_settings(_read_json(parsed.file))
    log(f"Imported settings for brand {settings.brand_name or '(unnamed)'}")
    return 0


def main(args: Optional[Iterable[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Bilingual PR report generator")
    parser.add_argument("--db", type=Path, help="Report store path (defaults to storage.path in config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("generate", help="Generate a report from a reportData bundle")
    p.add_argument("bundle", type=Path, help="reportData JSON export")
    p.add_argument("--language", choices=["en", "zh", "both"], default="en")
    p.add_argument("--mode", choices=["creative", "zh_to_en", "en_to_zh"], default="creative")
    p.add_argument("-o", "--output", type=Path, help="Write the report here instead of stdout")
    p.add_argument("--publish", action="store_true", help="Also publish the generated report")
    p.set_defaults(func=cmd_generate)

    p = sub.add_parser("publish", help="Publish a generated report JSON file")
    p.add_argument("report", type=Path, help="Generated report JSON")
    p.add_argument("--data", type=Path, help="reportData bundle supplying entry images")
    p.set_defaults(func=cmd_publish)

    p = sub.add_parser("list", help="List published reports, newest first")
    p.add_argument("--language", choices=["en", "zh"], default="en")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("export-settings", help="Export the aiContext settings bundle")
    p.add_argument("-o", "--output", type=Path)
    p.set_defaults(func=cmd_export_settings)

    p = sub.add_parser("import-settings", help="Import an aiContext (or legacy settings) bundle")
    p.add_argument("file", type=Path)
    p.set_defaults(func=cmd_import_settings)

    parsed = parser.parse_args(args=args)
    configure_logging(logging.DEBUG if parsed.verbose else logging.INFO)

    try:
        return parsed.func(_open_session(parsed.db), parsed)
    except (SessionError, EmptyInputError, ValueError, OSError) as e:
        logger.error(f"{parsed.command} failed: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
