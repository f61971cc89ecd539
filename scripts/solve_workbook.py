"""
Command-line utility to solve an assortment planning workbook.

Usage:
    python scripts/solve_workbook.py input.xlsx [output.xlsx] [options]

Examples:
    # Solve with the default solver (APPSI HiGHS) and a 60s budget
    python scripts/solve_workbook.py data/store.xlsx

    # Solve with CBC, 5 minute budget, 1% gap, and export the plan
    python scripts/solve_workbook.py data/store.xlsx plan.xlsx --solver cbc --time-limit 300 --gap 0.01

    # Write the LP file for inspection without solving
    python scripts/solve_workbook.py data/store.xlsx --write-lp store.lp
"""

import argparse
import logging
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from assortment_planning import (
    AssortmentPricingModel,
    ExcelParser,
    ModelOptions,
    PlanningError,
    SolverConfig,
)


def main():
    """Main entry point for the workbook solver CLI."""
    parser = argparse.ArgumentParser(
        description="Solve an assortment, pricing and inventory planning workbook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/solve_workbook.py store.xlsx
    python scripts/solve_workbook.py store.xlsx plan.xlsx --time-limit 300
    python scripts/solve_workbook.py store.xlsx --write-lp store.lp
        """,
    )

    parser.add_argument("input_file", type=str, help="Planning workbook (.xlsx or .xlsm)")
    parser.add_argument(
        "output_file",
        type=str,
        nargs="?",
        help="Excel file for the plan (optional, default: no export)",
    )
    parser.add_argument("--solver", type=str, default=None, help="Solver name (default: best available)")
    parser.add_argument("--time-limit", type=float, default=60.0, help="Time budget in seconds (default: 60)")
    parser.add_argument("--gap", type=float, default=None, help="Relative MIP gap (default: 1e-6)")
    parser.add_argument(
        "--no-tighten-caps",
        action="store_true",
        help="Keep input price caps instead of capping at the highest reservation price",
    )
    parser.add_argument(
        "--no-reservation-cap",
        action="store_true",
        help="Omit the optional choice_price <= reservation price tightening",
    )
    parser.add_argument("--write-lp", type=str, default=None, help="Write the model to this file and exit")
    parser.add_argument("--tee", action="store_true", help="Stream solver output")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose (DEBUG) logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("solve_workbook")

    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        problem = ExcelParser(input_path).parse_all()
        print(problem.summary())

        config_kwargs = {"solver_name": args.solver, "time_limit_seconds": args.time_limit, "tee": args.tee}
        if args.gap is not None:
            config_kwargs["mip_gap"] = args.gap
        options = ModelOptions(
            tighten_price_caps=not args.no_tighten_caps,
            add_reservation_price_cap=not args.no_reservation_cap,
        )
        model = AssortmentPricingModel(problem, SolverConfig(**config_kwargs), options)

        if args.write_lp:
            model.write_model(args.write_lp)
            print(f"Model written to {args.write_lp}")
            return 0

        result = model.solve()
        print(result)
        result.raise_for_status()
        solution = model.get_solution()
    except (PlanningError, ValueError) as e:
        logger.error(str(e))
        return 1

    print(f"\nAssorted products: {', '.join(solution.assorted_products) or '(none)'}")
    print(f"Total profit: {solution.total_profit:,.2f}")
    print()
    print(solution.schedule_frame().to_string(index=False))

    if args.output_file:
        output_path = solution.to_excel(args.output_file)
        print(f"\nPlan written to {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
