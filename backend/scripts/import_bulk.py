import argparse
import glob
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from app.core.logging import setup_logging  # noqa: E402
from app.db.session import SessionLocal  # noqa: E402
from app.services.errors import ImportValidationError  # noqa: E402
from app.services.import_runner import run_import  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Bulk import transaction CSV files.")
    parser.add_argument("--path", required=True, help="Glob path for transaction CSV files.")
    parser.add_argument("--user-id", required=True, help="Owner of the imported transactions.")
    parser.add_argument("--amount-field", default="amount")
    parser.add_argument("--date-field", default="date")
    parser.add_argument("--type-field", default=None)
    parser.add_argument("--category-field", default=None)
    parser.add_argument("--note-field", default=None)
    parser.add_argument(
        "--negative-type",
        choices=("income", "expense"),
        default=None,
        help="Type assigned to negative amounts when no type column is mapped.",
    )
    args = parser.parse_args()

    load_dotenv()
    setup_logging("INFO")

    files = [Path(path) for path in sorted(glob.glob(args.path))]
    if not files:
        raise SystemExit(f"No files matched: {args.path}")

    mapping = {
        "amountField": args.amount_field,
        "dateField": args.date_field,
        "typeField": args.type_field,
        "categoryField": args.category_field,
        "noteField": args.note_field,
    }

    with SessionLocal() as session:
        for file_path in files:
            try:
                outcome = run_import(
                    session,
                    args.user_id,
                    file_path.read_bytes(),
                    mapping,
                    source_filename=file_path.name,
                    negative_type=args.negative_type,
                )
            except ImportValidationError as exc:
                print(f"Skipping {file_path.name}: {exc}")
                continue

            batch = outcome.batch
            print(
                f"{file_path.name}: {batch.status} "
                f"({batch.success_rows}/{batch.total_rows} imported, "
                f"{batch.failed_rows} failed, "
                f"{outcome.categories_created} categories created)"
            )


if __name__ == "__main__":
    main()
