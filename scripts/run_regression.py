#!/usr/bin/env python
"""
Regression Test Runner
Reconcile a set of "golden" bons and verify the rows match expected results.

Each bon is a JSON file in data/regression/; an optional .txt file with the
same stem holds its OCR text. Expected rows live in data/regression/expected.json.
Usage: python scripts/run_regression.py [--update]
"""

import sys
import json
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from recon.bon_mapper import map_bon_to_items
from recon.reconciler import OrderReconciler

# Directory configuration
REGRESSION_DIR = project_root / "data" / "regression"
EXPECTED_FILE = REGRESSION_DIR / "expected.json"

# Configure logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def load_expected_results() -> Dict[str, Any]:
    """Load expected results from JSON"""
    if not EXPECTED_FILE.exists():
        return {}
    with open(EXPECTED_FILE, 'r', encoding='utf-8') as f:
        return json.load(f)


def save_expected_results(results: Dict[str, Any]):
    """Save results as new expected values"""
    with open(EXPECTED_FILE, 'w', encoding='utf-8') as f:
        json.dump(results, f, indent=2, sort_keys=True, ensure_ascii=False)
    print(f"Saved {len(results)} results to {EXPECTED_FILE}")


def row_signature(rows) -> List[str]:
    """Compact, order-independent view of reconciled rows"""
    return sorted(
        f"{row.reference_ocr}|{row.size_or_code_raw or ''}|{row.quantity_raw}|"
        f"{'R' if row.needs_review else ''}{'D' if row.discovered_in_text else ''}"
        for row in rows
    )


def run_regression(update_baseline: bool = False):
    """Run regression tests"""
    if not REGRESSION_DIR.exists():
        print(f"Error: Regression directory not found: {REGRESSION_DIR}")
        print("Create it and add some bons!")
        return

    bon_files = sorted(p for p in REGRESSION_DIR.glob("*.json") if p != EXPECTED_FILE)
    if not bon_files:
        print(f"No bons found in {REGRESSION_DIR}")
        return

    print(f"Found {len(bon_files)} test bons.")

    reconciler = OrderReconciler.from_path()
    reconciler.warm_up()

    expected = load_expected_results()
    current_results = {}

    passed = 0
    failed = 0
    new = 0

    print("\n" + "=" * 80)
    print(f"{'FILENAME':<30} | {'STATUS':<8} | {'ROWS':<6} | {'REVIEW':<6} | {'DIFF':<20}")
    print("-" * 80)

    for bon_path in bon_files:
        filename = bon_path.name

        try:
            with open(bon_path, 'r', encoding='utf-8') as f:
                mapped = map_bon_to_items(json.load(f))
        except (OSError, ValueError) as e:
            print(f"{filename:<30} | ERROR    | N/A    | N/A    | {str(e)[:20]}")
            failed += 1
            continue

        ocr_text = mapped.ocr_text
        text_path = bon_path.with_suffix('.txt')
        if text_path.exists():
            ocr_text = text_path.read_text(encoding='utf-8')

        rows = reconciler.reconcile(mapped.items, ocr_text)
        signature = row_signature(rows)
        review = sum(1 for row in rows if row.needs_review)
        current_results[filename] = signature

        diff = ""
        if filename in expected:
            missing = set(expected[filename]) - set(signature)
            extra = set(signature) - set(expected[filename])
            if not missing and not extra:
                status = "PASS"
                passed += 1
            else:
                status = "FAIL"
                failed += 1
                diff = f"-{len(missing)} +{len(extra)}"
        else:
            status = "NEW"
            new += 1

        print(f"{filename:<30} | {status:<8} | {len(rows):<6} | {review:<6} | {diff:<20}")

    print("=" * 80)
    print(f"Summary: {passed} Passed, {failed} Failed, {new} New")

    if update_baseline:
        save_expected_results(current_results)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run reconciliation regression tests")
    parser.add_argument("--update", action="store_true", help="Update baseline expected results")
    args = parser.parse_args()

    run_regression(update_baseline=args.update)
