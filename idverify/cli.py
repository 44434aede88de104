"""Command-line interface for verifying ID documents.

Provides subcommands to verify a scanned ID against a loan application,
to parse a document's identity fields, and to load application records
into the SQLite store.
"""

import argparse
import json
import sys
from pathlib import Path

from idverify.models import ApplicationIdentityRecord
from idverify.ocr.text_extractor import TextExtractor
from idverify.parsing.id_parser import IDDocumentParser
from idverify.storage.stores import SqliteStore
from idverify.utils.config import AppConfig, load_config
from idverify.utils.logger import get_logger, setup_logging
from idverify.verification.service import VerificationService

logger = get_logger(__name__)


def verify_document(
    file_path: Path,
    application_id: int,
    config: AppConfig,
    db_path: Path | None = None,
) -> dict[str, object]:
    """Verify one document and return the serialized result.

    Args:
        file_path: Path to the scanned ID (image or PDF).
        application_id: Loan application the document belongs to.
        config: Application configuration.
        db_path: SQLite database overriding the configured one.

    Returns:
        The verification result as a JSON-ready dictionary.
    """
    store = SqliteStore(db_path or config.storage.database_path)
    service = VerificationService.from_config(config, store, store)
    try:
        result = service.process_document_sync(application_id, file_path)
    finally:
        service.extractor.shutdown()
    return result.to_dict()


def parse_document(file_path: Path, config: AppConfig) -> dict[str, object]:
    """Run OCR and field parsing on one document without verifying it.

    Args:
        file_path: Path to the scanned ID (image or PDF).
        config: Application configuration.

    Returns:
        Dictionary with the filename, success flag and extracted fields.
    """
    ocr = TextExtractor(config.ocr).extract(file_path)
    if not ocr.success or not ocr.text:
        return {"filename": file_path.name, "success": False, "error": ocr.error}

    data = IDDocumentParser.from_config(config.parsing).parse(ocr.text)
    return {
        "filename": file_path.name,
        "success": True,
        "extractedData": data.to_dict(),
    }


def import_applications(json_path: Path, store: SqliteStore) -> int:
    """Load application records from a JSON file into the store.

    The file holds a list of objects with an ``id`` and the identity fields
    ``full_name``, ``date_of_birth``, ``street``, ``city``, ``state`` and
    ``zip_code``.

    Args:
        json_path: Path to the JSON file.
        store: Destination store.

    Returns:
        Number of records imported.
    """
    records = json.loads(json_path.read_text())
    for item in records:
        store.add_application(
            int(item["id"]),
            ApplicationIdentityRecord(
                full_name=item["full_name"],
                date_of_birth=item.get("date_of_birth"),
                street=item["street"],
                city=item["city"],
                state=item["state"],
                zip_code=str(item["zip_code"]),
            ),
        )
    logger.info("Imported %d application(s) from %s", len(records), json_path)
    return len(records)


def _emit(payload: dict[str, object], output: Path | None) -> None:
    output_str = json.dumps(payload, indent=2)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(output_str)
        print(f"Output written to {output}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="ID Document Verification",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    verify_parser = subparsers.add_parser(
        "verify", help="Verify an ID document against a loan application"
    )
    verify_parser.add_argument("file", type=Path, help="Scanned ID document")
    verify_parser.add_argument(
        "-a", "--application-id", type=int, required=True, help="Loan application id"
    )
    verify_parser.add_argument("--db", type=Path, help="SQLite database path")
    verify_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    parse_parser = subparsers.add_parser(
        "parse", help="Extract identity fields from an ID document"
    )
    parse_parser.add_argument("file", type=Path, help="Scanned ID document")
    parse_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    import_parser = subparsers.add_parser(
        "import-applications", help="Load application records from JSON"
    )
    import_parser.add_argument("file", type=Path, help="JSON list of applications")
    import_parser.add_argument("--db", type=Path, help="SQLite database path")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command in ("verify", "parse", "import-applications"):
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)

    if args.command == "verify":
        result = verify_document(args.file, args.application_id, config, args.db)
        _emit(result, args.output)
        if not result["success"]:
            sys.exit(2)
    elif args.command == "parse":
        _emit(parse_document(args.file, config), args.output)
    elif args.command == "import-applications":
        store = SqliteStore(args.db or config.storage.database_path)
        count = import_applications(args.file, store)
        print(f"Imported {count} application(s)")
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
