#!/usr/bin/env python3
"""
Sweep one policy parameter and tabulate the adoption threshold.

Runs the threshold search once per value and writes an Excel table with the
optimal emissions, violation levels and indifference interval of each run.

Usage:
    python run_sensitivity_sweep.py <config_file> <parameter> <value> [<value> ...]

Example:
    python run_sensitivity_sweep.py config_baseline.json rho 0 0.5 1 2 5 10
"""

import sys
from parameters import load_configuration
from sensitivity import run_sensitivity, create_sensitivity_xlsx, SWEEPABLE_PARAMETERS


def main():
    if len(sys.argv) < 4:
        print("Usage: python run_sensitivity_sweep.py <config_file> <parameter> <value> [<value> ...]")
        print(f"\nParameters: {', '.join(SWEEPABLE_PARAMETERS)}")
        print("\nExample:")
        print("  python run_sensitivity_sweep.py config_baseline.json rho 0 0.5 1 2 5 10")
        sys.exit(1)

    config_file = sys.argv[1]
    parameter_name = sys.argv[2]
    values = [float(v) for v in sys.argv[3:]]

    config = load_configuration(config_file)

    print(f"Running {parameter_name} sweep on: {config_file}")
    print(f"Testing {len(values)} values: {values}")
    print("=" * 80)

    df = run_sensitivity(config, parameter_name, values, verbose=True)

    print("\n" + "=" * 80)
    print(df.to_string(index=False))
    print("=" * 80)

    n_exhausted = int((df['status'] == 'exhausted').sum())
    if n_exhausted:
        print(f"\nWarning: {n_exhausted} search(es) found no threshold within the ceiling.")

    output_path = f"sensitivity_{config.run_name}_{parameter_name}.xlsx"
    create_sensitivity_xlsx(df, parameter_name, output_path)


if __name__ == '__main__':
    main()
