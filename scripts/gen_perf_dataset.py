#!/usr/bin/env python3
"""Workbook generator for import performance checks.

Writes synthetic lead or property sheets in the layout the importer expects
(first row = headers, data from row 2). Optional knobs inject duplicate
keys and structurally broken rows so the reconciliation and error paths get
exercised too.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

SOURCES = ["Website", "Walk-in", "Referral", "MagicBricks", "99acres", "Facebook"]
LOCATIONS = ["Sangli", "Miraj", "Kupwad", "Kolhapur", "Pune", "Satara"]
PROPERTY_TYPES = ["Residential", "Commercial", "Plot"]


def generate_leads(rows: int, seed: int = 42, duplicate_ratio: float = 0.0, broken_ratio: float = 0.0) -> pd.DataFrame:
    """Lead sheet with the human-typed template headers.

    ``duplicate_ratio`` of the rows reuse an earlier row's email (import turns
    them into updates); ``broken_ratio`` of the rows lose their phone number.
    """
    rng = np.random.default_rng(seed)
    data: dict[str, list[Any]] = {
        "Name": [f"Lead {i}" for i in range(1, rows + 1)],
        "Phone": [f"98{i:08d}" for i in range(1, rows + 1)],
        "Email": [f"lead{i}@example.com" for i in range(1, rows + 1)],
        "Source": rng.choice(SOURCES, rows).tolist(),
        "Budget": (rng.integers(10, 200, rows) * 100_000).tolist(),
        "Preferred Location": rng.choice(LOCATIONS, rows).tolist(),
        "next follow up": [
            ts.strftime("%d-%m-%Y %H:%M")
            for ts in pd.Timestamp("2025-01-01") + pd.to_timedelta(rng.integers(0, 365 * 24, rows), unit="h")
        ],
    }
    frame = pd.DataFrame(data)
    if rows > 1 and duplicate_ratio > 0:
        picks = rng.choice(np.arange(1, rows), size=int(rows * duplicate_ratio), replace=False)
        for idx in picks:
            frame.at[idx, "Email"] = frame.at[int(rng.integers(0, idx)), "Email"]
    if broken_ratio > 0:
        picks = rng.choice(np.arange(rows), size=int(rows * broken_ratio), replace=False)
        frame.loc[picks, "Phone"] = None
    return frame


def generate_properties(rows: int, seed: int = 42, owners: int = 50) -> pd.DataFrame:
    """Property sheet in the brokerage export layout (PropertyName, CustomerMobile, ...)."""
    rng = np.random.default_rng(seed)
    owner_idx = rng.integers(1, max(owners, 1) + 1, rows)
    carpet = rng.integers(400, 2500, rows)
    return pd.DataFrame({
        "PropertyName": [f"Property {i}" for i in range(1, rows + 1)],
        "PropertyTypeName": rng.choice(PROPERTY_TYPES, rows).tolist(),
        "LocationName": rng.choice(LOCATIONS, rows).tolist(),
        "ExpectedPrice": (rng.integers(15, 300, rows) * 100_000).tolist(),
        "CarpetAreaName": carpet.tolist(),
        "BuiltAreaName": (carpet + 100).tolist(),
        "CodeNo": [f"P-{i:06d}" for i in range(1, rows + 1)],
        "CustomerFullName": [f"Owner {o}" for o in owner_idx],
        "CustomerMobile": [f"97{o:08d}" for o in owner_idx],
    })


def write_workbook(output_path: Path, frame: pd.DataFrame, sheet_name: str = "Sheet1") -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate synthetic lead/property workbooks for import performance checks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s leads.xlsx --rows 10000
  %(prog)s leads.xlsx --rows 5000 --duplicates 0.1 --broken 0.02
  %(prog)s properties.xlsx --entity property --rows 2000 --owners 300
        """,
    )
    parser.add_argument("output", type=Path, help="Output .xlsx path")
    parser.add_argument("--entity", choices=["lead", "property"], default="lead")
    parser.add_argument("--rows", type=int, default=10_000, help="Data rows (default: 10,000)")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--duplicates", type=float, default=0.0, help="Lead rows reusing an earlier email (0-1)")
    parser.add_argument("--broken", type=float, default=0.0, help="Lead rows without a phone number (0-1)")
    parser.add_argument("--owners", type=int, default=50, help="Distinct owners for property sheets")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    for name in ("duplicates", "broken"):
        if not 0.0 <= getattr(args, name) < 1.0:
            print(f"Error: --{name} must be in [0, 1)", file=sys.stderr)
            return 1

    if args.entity == "lead":
        frame = generate_leads(args.rows, args.seed, args.duplicates, args.broken)
    else:
        frame = generate_properties(args.rows, args.seed, args.owners)

    try:
        write_workbook(args.output, frame, sheet_name=args.entity)
    except OSError as e:
        print(f"Error writing {args.output}: {e}", file=sys.stderr)
        return 1
    print(f"Created {args.output}: {args.entity} x {args.rows:,} rows")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
