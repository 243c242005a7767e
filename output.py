"""
Output functions for the technology-adoption threshold model.

Creates CSV files and PDF plots of search results in timestamped directories.
"""

import os
import csv
import shutil
from datetime import datetime
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages


TRACE_COLUMNS = ['i', 'D_new', 'D_old', 'log_D_new', 'log_D_old', 'gap', 'r_new', 'V_new', 'status_new']


def create_output_directory(run_name, base_dir=os.path.join('data', 'output')):
    """
    Create timestamped output directory.

    Parameters
    ----------
    run_name : str
        Name of the model run
    base_dir : str
        Parent directory for all run directories

    Returns
    -------
    str
        Path to created output directory

    Notes
    -----
    Directory format: {base_dir}/{run_name}_YYYYMMDD-HHMMSS
    """
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    output_dir = os.path.join(base_dir, f'{run_name}_{timestamp}')
    os.makedirs(output_dir, exist_ok=True)
    return output_dir


def write_trace_csv(trace, output_dir, filename='search_trace.csv'):
    """
    Write the per-candidate search trace to CSV.

    Each row is one evaluated candidate investment cost, in search order.
    Floats are written with full repr precision.
    """
    csv_path = os.path.join(output_dir, filename)

    with open(csv_path, 'w', newline='') as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(TRACE_COLUMNS)
        for row in trace:
            writer.writerow([row[column] for column in TRACE_COLUMNS])

    return csv_path


def summary_rows(result):
    """Reported quantities of a search result as (name, value) pairs."""
    old = result['old']
    new = result['new']
    return [
        ('e_star_old', old['e_star']),
        ('e_star_new', new['e_star']),
        ('r_old', old['r']),
        ('r_new', new['r']),
        ('V_old', old['V']),
        ('V_new', new['V']),
        ('D_old', old['D']),
        ('D_new', new['D']),
        ('log_D_old', old['log_D']),
        ('log_D_new', new['log_D']),
        ('threshold_lower', result['threshold_lower']),
        ('threshold_upper', result['threshold_upper']),
        ('at_ceiling', result['at_ceiling']),
        ('n_iterations', result['n_iterations']),
        ('n_fallbacks', result['n_fallbacks']),
        ('status_old', old['status']),
        ('status_new', new['status']),
    ]


def write_threshold_summary(result, output_dir, filename='threshold_summary.csv'):
    """
    Write the reported quantities of a search to a two-column CSV.

    Returns
    -------
    str
        Path to created CSV file
    """
    csv_path = os.path.join(output_dir, filename)

    with open(csv_path, 'w', newline='') as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(['Quantity', 'Value'])
        for name, value in summary_rows(result):
            writer.writerow([name, value])

    return csv_path


def plot_search_pdf(result, run_name, output_dir, filename='search_plots.pdf'):
    """
    Create PDF with disutility and violation plots against the investment cost.

    Parameters
    ----------
    result : dict
        Result dictionary from ThresholdSearch.search()
    run_name : str
        Name of the model run, shown in the figure title
    output_dir : str
        Directory to write PDF file
    filename : str
        Name of PDF file

    Returns
    -------
    str
        Path to created PDF file
    """
    pdf_path = os.path.join(output_dir, filename)

    trace = result['trace']
    i_vals = np.array([row['i'] for row in trace], dtype=float)
    log_D_new = np.array([row['log_D_new'] for row in trace])
    gap = np.array([row['gap'] for row in trace])
    V_new = np.array([row['V_new'] for row in trace])
    lower = result['threshold_lower']

    with PdfPages(pdf_path) as pdf:
        fig, axes = plt.subplots(1, 3, figsize=(15, 5))
        fig.suptitle(f'{run_name} - Investment Cost Search', fontsize=14, fontweight='bold')

        ax = axes[0]
        ax.plot(i_vals, log_D_new, 'b.-', linewidth=1.5, label='New technology')
        ax.axhline(result['old']['log_D'], color='red', linewidth=1.5, label='Old technology')
        ax.axvline(lower, color='gray', linestyle='--', linewidth=1)
        ax.set_xlabel('Investment cost i', fontsize=11)
        ax.set_ylabel('Log expected disutility ln D', fontsize=11)
        ax.set_title('Disutility by Technology', fontsize=12, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=9)

        ax = axes[1]
        ax.plot(i_vals, gap, 'k.-', linewidth=1.5)
        ax.axhline(0.0, color='gray', linewidth=1)
        ax.axvline(lower, color='gray', linestyle='--', linewidth=1)
        ax.set_xlabel('Investment cost i', fontsize=11)
        ax.set_ylabel('(Do - Dn) / Do', fontsize=11)
        ax.set_title('Relative Disutility Gap', fontsize=12, fontweight='bold')
        ax.grid(True, alpha=0.3)

        ax = axes[2]
        ax.plot(i_vals, V_new, 'g.-', linewidth=1.5, label='New technology')
        ax.axhline(result['old']['V'], color='red', linewidth=1.5, label='Old technology')
        ax.set_xlabel('Investment cost i', fontsize=11)
        ax.set_ylabel('Violation e* - r', fontsize=11)
        ax.set_title('Violation Level', fontsize=12, fontweight='bold')
        ax.grid(True, alpha=0.3)
        ax.legend(fontsize=9)

        plt.tight_layout()
        pdf.savefig(fig)
        plt.close(fig)

    return pdf_path


def copy_config_file(config_path, output_dir):
    """Copy the configuration file into the output directory."""
    destination = os.path.join(output_dir, os.path.basename(config_path))
    shutil.copyfile(config_path, destination)
    return destination


def save_results(result, run_name, config_path=None, base_dir=os.path.join('data', 'output')):
    """
    Save search results to CSV and PDF in timestamped directory.

    Parameters
    ----------
    result : dict
        Result dictionary from ThresholdSearch.search()
    run_name : str
        Name of the model run
    config_path : str, optional
        Configuration file to copy alongside the results
    base_dir : str
        Parent directory for the run directory

    Returns
    -------
    dict
        Dictionary with paths:
        - 'output_dir': path to output directory
        - 'trace_file': per-candidate trace CSV
        - 'summary_file': threshold summary CSV
        - 'pdf_file': path to PDF file
        - 'config_file': copied configuration (only if config_path given)
    """
    output_dir = create_output_directory(run_name, base_dir)

    paths = {
        'output_dir': output_dir,
        'trace_file': write_trace_csv(result['trace'], output_dir),
        'summary_file': write_threshold_summary(result, output_dir),
        'pdf_file': plot_search_pdf(result, run_name, output_dir),
    }
    if config_path is not None:
        paths['config_file'] = copy_config_file(config_path, output_dir)

    return paths
