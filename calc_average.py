"""One-off utility: compute the weighted overall average from a saved JSON export.

The file may hold a plain list of subject records or any payload shape the
grade-service client recognizes (`subjects`, `currentPeriod.subjects`, ...).
"""

from __future__ import annotations

import argparse
import json
import sys

from errors import SubjectDataNotFound
from grade_client import extract_subject_list
from models import AverageResult, normalize_subjects


def format_value(value) -> str:
    return "-" if value is None else f"{value:g}"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute the weighted average of a subjects JSON file")
    parser.add_argument("data_file", help="Path to the JSON file with subject records")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    args = parser.parse_args(argv)

    try:
        with open(args.data_file, "r", encoding="utf-8") as f:
            payload = json.load(f)
        subjects = extract_subject_list(payload)
    except (OSError, ValueError, SubjectDataNotFound) as e:
        print(f"[calc_average] cannot read {args.data_file}: {e}", file=sys.stderr)
        return 1

    result = AverageResult.from_records(normalize_subjects(subjects))

    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0

    for record in result.details:
        print(f"{record.name:<30} {format_value(record.average):>8} x{format_value(record.coefficient)}")
    print(f"[calc_average] overall average: {format_value(result.overall_average)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
