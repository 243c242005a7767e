#!/usr/bin/env python3
"""
Find the investment cost at which a firm adopts the cleaner technology.

Loads a configuration, runs the backward investment-cost search, prints the
report and saves the trace, summary, plots and configuration copy.

Usage:
    python run_threshold.py <config_file> [--section.key value ...]

Example:
    python run_threshold.py config_baseline.json --policy_parameters.rho 10 --run_name rho10
"""

import sys
import time
from parameters import load_configuration, parse_overrides
from threshold_search import ThresholdSearch, SearchExhaustedError
from output import save_results


def print_header(text):
    """Print formatted section header."""
    print(f"\n{'=' * 80}")
    print(f"  {text}")
    print(f"{'=' * 80}\n")


def print_report(result):
    """Print the reported quantities (double precision, four decimals)."""
    old = result['old']
    new = result['new']
    print(f"Old technology optimal emissions e0*:   {old['e_star']:.4f}")
    print(f"New technology optimal emissions e1*:   {new['e_star']:.4f}")
    print(f"Old technology violation Vo:            {old['V']:.4f}")
    print(f"New technology violation Vn:            {new['V']:.4f}")
    print(f"Indifference interval:                  [{result['threshold_lower']}, {result['threshold_upper']})")
    print(f"Candidates evaluated:                   {result['n_iterations']}")
    if result['at_ceiling']:
        print("\nWarning: crossover at the search ceiling; the threshold may lie above it.")
    if result['n_fallbacks'] > 0:
        print(f"\nWarning: {result['n_fallbacks']} declaration(s) had no root in [0, e*] "
              f"and used the boundary fallback.")


def main():
    """Main execution function."""
    start_time = time.time()

    if len(sys.argv) < 2:
        print("Usage: python run_threshold.py <config_file> [--section.key value ...]")
        print("\nExample:")
        print("  python run_threshold.py config_baseline.json")
        sys.exit(1)

    config_path = sys.argv[1]
    overrides = parse_overrides(sys.argv[2:])
    config = load_configuration(config_path, overrides)
    policy = config.policy_params

    print_header("TECHNOLOGY ADOPTION THRESHOLD")
    print(f"Configuration file: {config_path}")
    print(f"Run name: {config.run_name}")
    print(f"  pi = {policy.pi}")
    print(f"  tau = {policy.tau}")
    print(f"  rho = {policy.rho}")
    print(f"  f = {policy.f}")
    print(f"  sanction_quadratic = {policy.sanction_quadratic}")
    print(f"  search ceiling = {config.search_params.ceiling}, step = {config.search_params.step}")

    print_header("SEARCH")
    search = ThresholdSearch(config)
    try:
        result = search.search(verbose=True)
    except SearchExhaustedError as e:
        print(f"\nSEARCH EXHAUSTED: {e}")
        print("No report written.")
        sys.exit(2)

    print_header("RESULTS")
    print_report(result)

    print_header("SAVING RESULTS")
    output_paths = save_results(result, config.run_name, config_path)
    print(f"  Output directory: {output_paths['output_dir']}")
    print(f"  Search trace CSV: {output_paths['trace_file']}")
    print(f"  Summary CSV:      {output_paths['summary_file']}")
    print(f"  Plots PDF:        {output_paths['pdf_file']}")
    print(f"  Configuration:    {output_paths['config_file']}")

    elapsed_time = time.time() - start_time
    print(f"\nTotal runtime: {elapsed_time:.2f} seconds")


if __name__ == '__main__':
    main()
