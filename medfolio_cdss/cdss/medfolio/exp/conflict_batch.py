import argparse
import logging
import os
import time

import pandas as pd
import requests
from tqdm import tqdm

from ..profile_mapping import looks_conflict_free

logger = logging.getLogger(__name__)

# Sheet column -> request field
REQUEST_COLUMNS = {
    "current_prescriptions": "currentPrescriptions",
    "past_medications": "pastMedications",
    "allergies": "allergies",
    "health_conditions": "healthConditions",
    "new_medication": "newMedication",
}


def build_payload(row: pd.Series) -> dict:
    missing = [c for c in REQUEST_COLUMNS if c not in row.index]
    if missing:
        raise KeyError(f"Missing columns: {', '.join(missing)}")
    return {field: str(row[col]) for col, field in REQUEST_COLUMNS.items()}


def run_batch(df: pd.DataFrame, url: str, token: str, session=None, timeout: float = 60) -> pd.DataFrame:
    """
    Post every row of the sheet to the conflict check endpoint.

    Failed rows are kept with their status and error; nothing is retried.
    """
    http = session or requests.Session()
    headers = {"Authorization": f"Bearer {token}"}
    results = []

    for _, row in tqdm(df.iterrows(), total=len(df), desc="Checking conflicts..."):
        result_row = row.to_dict()
        result_row.update({"conflicts": None, "conflict_free": None, "status": None, "error": None})

        start_time = time.time()
        try:
            response = http.post(url, json=build_payload(row), headers=headers, timeout=timeout)
            result_row["status"] = response.status_code
            if response.status_code == 200:
                conflicts = response.json()["conflicts"]
                result_row["conflicts"] = conflicts
                result_row["conflict_free"] = looks_conflict_free(conflicts)
            else:
                result_row["error"] = response.json().get("detail", response.text)
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.warning("Row %s failed: %s", row.name, e)
            result_row["error"] = str(e)
        result_row["timing"] = time.time() - start_time

        results.append(result_row)

    return pd.DataFrame(results)


def main():
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Run the medication conflict check on a sheet of cases.")
    parser.add_argument("--file", default="conflict_cases.xlsx", help="Path to the cases sheet.")
    parser.add_argument("--out", default="conflict_results.xlsx", help="Output file.")
    parser.add_argument("--url", default="http://localhost:8000/api/conflict-check", help="Conflict check endpoint.")
    parser.add_argument("--token", default=os.environ.get("MEDFOLIO_TOKEN", ""), help="Session token of a doctor or chemist.")
    args = parser.parse_args()

    df = pd.read_excel(args.file, dtype=str).fillna("None")
    results_df = run_batch(df, args.url, args.token)
    results_df.to_excel(args.out, index=False)
    logger.info("Results saved to %s", args.out)


if __name__ == "__main__":
    main()
