#!/usr/bin/env python3
"""Generate a synthetic leads CSV for manual runs and performance tests.

The file uses "export style" headers (Full Name, Email Address, ...) so the
column mapper's fuzzy matching is exercised, and a configurable share of rows
is deliberately broken:

- blank name (hard failure)
- malformed email (hard failure)
- unknown status value (soft failure, coerced to New)
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

HEADERS = ["Full Name", "Email Address", "Mobile", "Lead Source", "Status", "Company Name", "Notes"]
SOURCES = ["Website", "Referral", "Trade Show", "Cold Call", "Partner"]
STATUSES = ["New", "Contacted", "Qualified", "Converted", "Lost"]


def generate_leads_dataframe(rows: int, error_ratio: float = 0.1, seed: int = 42) -> pd.DataFrame:
    """Build ``rows`` synthetic leads; about ``error_ratio`` of them are broken.

    Broken rows cycle through blank name / bad email / bad status.
    """
    rng = np.random.default_rng(seed)
    ids = np.arange(1, rows + 1)
    df = pd.DataFrame(
        {
            "Full Name": [f"Lead {i}" for i in ids],
            "Email Address": [f"lead{i}@example.com" for i in ids],
            "Mobile": [f"+1555{n:07d}" for n in rng.integers(0, 10_000_000, rows)],
            "Lead Source": rng.choice(SOURCES, rows),
            "Status": rng.choice(STATUSES, rows),
            "Company Name": [f"Company {n}" for n in rng.integers(1, 500, rows)],
            "Notes": ["imported, synthetic" for _ in ids],
        },
        columns=HEADERS,
    )

    broken = rng.random(rows) < error_ratio
    for k, idx in enumerate(np.flatnonzero(broken)):
        kind = k % 3
        if kind == 0:
            df.at[idx, "Full Name"] = ""
        elif kind == 1:
            df.at[idx, "Email Address"] = "not-an-email"
        else:
            df.at[idx, "Status"] = "Bogus"
    return df


def write_leads_csv(output_path: Path, rows: int, error_ratio: float = 0.1, seed: int = 42) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    generate_leads_dataframe(rows, error_ratio, seed).to_csv(output_path, index=False)
    return output_path


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Generate a synthetic leads CSV")
    p.add_argument("output", type=Path)
    p.add_argument("--rows", type=int, default=1000)
    p.add_argument("--error-ratio", type=float, default=0.1)
    p.add_argument("--seed", type=int, default=42)
    args = p.parse_args(argv)
    if args.rows < 1:
        print("--rows must be >= 1", file=sys.stderr)
        return 1
    path = write_leads_csv(args.output, args.rows, args.error_ratio, args.seed)
    print(f"wrote {args.rows} rows to {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
