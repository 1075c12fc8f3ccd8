import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from insights.database import SessionLocal
from insights.services.aggregator import DataAggregator, default_aggregator_registry
from insights.services.errors import ReportingError
from insights.services.report_generator import ReportGenerator


def main() -> int:
    parser = argparse.ArgumentParser(description="Regenerate stored reports for a questionnaire")
    parser.add_argument("--questionnaire-id", required=True)
    parser.add_argument("--template-id", default=None, help="Only this template; default is every active template")
    parser.add_argument("--force", action="store_true", help="Recompute even when a report already exists")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    generator = ReportGenerator(DataAggregator(default_aggregator_registry().freeze()))

    with SessionLocal() as db:
        try:
            if args.template_id:
                report = generator.generate(db, args.questionnaire_id, args.template_id, force=args.force)
                failed = 1 if report.get("status") == "error" else 0
                result = {
                    "generated": 1 - failed,
                    "failed": failed,
                    "reports": [report],
                    "errors": [{"templateId": args.template_id, "error": report.get("error_message")}] if failed else [],
                }
            else:
                result = generator.generate_all(db, args.questionnaire_id, force=args.force)
        except ReportingError as exc:
            print(json.dumps({"error": str(exc)}, indent=2))
            return 1

    print(json.dumps(result, indent=2, default=str))
    return 0 if result["failed"] == 0 else 2


if __name__ == "__main__":
    sys.exit(main())
