#!/usr/bin/env python3
"""
Import a meet file from the command line.

Runs the same importer as the API against Snowflake (credentials from
.env) or, with --mock, against an in-memory database.

Usage:
    python scripts/import_meet_file.py results.csv --kind results
    python scripts/import_meet_file.py results.xlsx --kind results --apply-records
    python scripts/import_meet_file.py meet.sd3 --kind entries
    python scripts/import_meet_file.py meet.sd3 --kind roster --source sd3
    python scripts/import_meet_file.py results.csv --kind results --mock --roster meet.sd3

Requires:
    - .env file with Snowflake credentials (unless --mock)
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from meet_import.api.dependencies import build_importer, snowflake_config_from_settings
from meet_import.config.settings import get_settings
from meet_import.core.ingestion.importer import (
    MeetImporter,
    UnsupportedFileError,
    decode_upload,
)
from meet_import.core.ingestion.workbook import WorkbookImportError
from meet_import.infrastructure.snowflake.client import (
    SnowflakeConnectionError,
    create_snowflake_connection,
)


def _print_problems(unmatched, parse_errors) -> None:
    if unmatched:
        print(f"\nUnmatched swimmers ({len(unmatched)}):")
        for row in unmatched:
            suffix = f" -> candidates {', '.join(row.candidate_ids)}" if row.candidate_ids else ""
            print(f"  [{row.reason}] {row.raw_name}{suffix}")
    if parse_errors:
        print(f"\nSkipped lines ({len(parse_errors)}):")
        for error in parse_errors:
            print(f"  line {error.line}: {error.message}")


def import_results(importer: MeetImporter, path: Path, meet_date, apply_records: bool) -> None:
    report = importer.import_results_file(path.name, path.read_bytes(), default_meet_date=meet_date)

    print(f"Imported: {report.imported_count}")
    print(f"Duplicates skipped: {report.duplicate_count}")
    _print_problems(report.unmatched, report.parse_errors)

    if not report.record_breaks:
        print("\nNo new team records.")
        return

    print(f"\nTeam records ({len(report.record_breaks)}):")
    for rb in report.record_breaks:
        previous = f"was {rb.previous_time_display} by {rb.previous_holder}" if rb.previous_holder else "first record"
        print(f"  {rb.gender} {rb.age_group} {rb.event}: {rb.swimmer_name} {rb.new_time_display} ({previous})")

    if apply_records:
        applied = importer.apply_record_breaks(report.record_breaks)
        print(
            f"\nApplied: {len(applied.applied)}, stale: {len(applied.stale)}, "
            f"rejected: {len(applied.rejected)}"
        )
    else:
        print("\nRe-run with --apply-records to write them.")


def import_entries(importer: MeetImporter, path: Path) -> None:
    report = importer.import_meet_entries(decode_upload(path.read_bytes()))

    if report.meet:
        print(f"Meet: {report.meet.name} ({report.meet.start_date} - {report.meet.end_date})")
    if report.team:
        print(f"Team: {report.team.code} {report.team.name}")
    print(f"Swimmers in file: {report.unique_swimmers}")
    print(f"Imported entries: {report.imported_count}")
    print(f"Duplicates skipped: {report.duplicate_count}")
    _print_problems(report.unmatched, report.parse_errors)


def import_roster(importer: MeetImporter, path: Path, source: str) -> None:
    report = importer.import_roster(decode_upload(path.read_bytes()), source=source)

    print(f"Added swimmers: {report.added_count}")
    for swimmer in report.added:
        print(f"  {swimmer.full_name} ({swimmer.external_id or 'no id'})")
    print(f"Already on roster: {report.existing_count}")
    _print_problems([], report.parse_errors)


def main():
    parser = argparse.ArgumentParser(description='Import a meet file')
    parser.add_argument('file', help='File to import')
    parser.add_argument('--kind', choices=['results', 'entries', 'roster'], required=True)
    parser.add_argument('--source', choices=['sd3', 'csv'], default='sd3', help='Roster file type')
    parser.add_argument('--meet-date', type=date.fromisoformat, help='Date for results rows without one (YYYY-MM-DD)')
    parser.add_argument('--apply-records', action='store_true', help='Write proposed team records')
    parser.add_argument('--mock', action='store_true', help='Use an in-memory database')
    parser.add_argument('--roster', help='Roster file to load first (useful with --mock)')
    parser.add_argument('--roster-source', choices=['sd3', 'csv'], default='sd3')

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=settings.log_level.upper(),
    )

    path = Path(args.file)
    if not path.exists():
        print(f"ERROR: Cannot find {args.file}")
        sys.exit(1)

    mock_mode = args.mock or settings.snowflake_mock_mode
    if not mock_mode:
        missing = settings.validate_required_fields()
        if missing:
            print(f"ERROR: Missing {', '.join(missing)}")
            sys.exit(1)

    config = None if mock_mode else snowflake_config_from_settings(settings)

    try:
        with create_snowflake_connection(config=config, mock_mode=mock_mode) as conn:
            importer = build_importer(conn, settings)

            if args.roster:
                roster_path = Path(args.roster)
                print(f"Loading roster from: {roster_path}")
                import_roster(importer, roster_path, args.roster_source)
                print()

            print(f"Importing {args.kind} from: {path}")
            if args.kind == 'results':
                import_results(importer, path, args.meet_date, args.apply_records)
            elif args.kind == 'entries':
                import_entries(importer, path)
            else:
                import_roster(importer, path, args.source)

    except (UnsupportedFileError, WorkbookImportError) as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except SnowflakeConnectionError as e:
        print(f"ERROR connecting to Snowflake: {e}")
        sys.exit(1)

    sys.exit(0)


if __name__ == '__main__':
    main()
