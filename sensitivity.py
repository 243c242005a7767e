"""
Utilities for sensitivity sweeps over a single policy parameter.

Provides functions for:
- Re-running the threshold search across values of one policy parameter
- Collecting the reported quantities into a DataFrame
- Writing an Excel sensitivity table
"""

import dataclasses
import pandas as pd
import openpyxl
from openpyxl.styles import Font, Alignment, PatternFill
from openpyxl.utils import get_column_letter
from threshold_search import ThresholdSearch, SearchExhaustedError


SWEEPABLE_PARAMETERS = ('pi', 'tau', 'rho', 'f', 'sanction_quadratic')

SENSITIVITY_COLUMNS = [
    'value', 'e_star_old', 'e_star_new', 'V_old', 'V_new',
    'threshold_lower', 'threshold_upper', 'at_ceiling', 'status', 'n_fallbacks',
]


def configuration_with(config, parameter_name, value):
    """
    Copy of a configuration with one policy parameter replaced.

    Parameters
    ----------
    config : ModelConfiguration
        Base configuration
    parameter_name : str
        One of SWEEPABLE_PARAMETERS
    value : float
        New parameter value

    Returns
    -------
    ModelConfiguration
        New configuration; run_name gets a '_{parameter_name}{value}' suffix
    """
    if parameter_name not in SWEEPABLE_PARAMETERS:
        raise ValueError(
            f"Unknown policy parameter '{parameter_name}'. Choose from {SWEEPABLE_PARAMETERS}"
        )
    policy_params = dataclasses.replace(config.policy_params, **{parameter_name: value})
    return dataclasses.replace(
        config,
        run_name=f"{config.run_name}_{parameter_name}{value}",
        policy_params=policy_params,
    )


def run_sensitivity(config, parameter_name, values, verbose=False):
    """
    Run the threshold search for each value of one policy parameter.

    Parameters
    ----------
    config : ModelConfiguration
        Base configuration
    parameter_name : str
        Policy parameter to vary
    values : list of float
        Values to evaluate, in the order given
    verbose : bool
        Print one line per value

    Returns
    -------
    pd.DataFrame
        One row per value with columns SENSITIVITY_COLUMNS. Searches that
        exhaust the range are recorded with status 'exhausted' and missing
        threshold and new-technology values.

    Examples
    --------
    >>> df = run_sensitivity(config, 'rho', [0.0, 1.0, 2.0, 5.0, 10.0])
    """
    rows = []
    for value in values:
        search = ThresholdSearch(configuration_with(config, parameter_name, value))
        row = {
            'value': value,
            'e_star_old': search.old_outcome['e_star'],
            'e_star_new': search.new_prepared['e_star'],
            'V_old': search.old_outcome['V'],
        }
        try:
            result = search.search()
        except SearchExhaustedError:
            row.update({
                'V_new': None,
                'threshold_lower': None,
                'threshold_upper': None,
                'at_ceiling': False,
                'status': 'exhausted',
                'n_fallbacks': None,
            })
        else:
            row.update({
                'V_new': result['new']['V'],
                'threshold_lower': result['threshold_lower'],
                'threshold_upper': result['threshold_upper'],
                'at_ceiling': result['at_ceiling'],
                'status': 'at_ceiling' if result['at_ceiling'] else 'crossover',
                'n_fallbacks': result['n_fallbacks'],
            })
        rows.append(row)

        if verbose:
            print(f"  {parameter_name} = {value}: status = {row['status']}, "
                  f"interval = [{row['threshold_lower']}, {row['threshold_upper']})")

    return pd.DataFrame(rows, columns=SENSITIVITY_COLUMNS)


def create_sensitivity_xlsx(df, parameter_name, output_path):
    """
    Create Excel workbook with the sensitivity table.

    Parameters
    ----------
    df : pd.DataFrame
        Output of run_sensitivity()
    parameter_name : str
        Name of the varied parameter, used as header of the first column
    output_path : Path or str
        Output Excel file path

    Notes
    -----
    Workbook structure:
    - Sheet "Sensitivity": one row per parameter value, one column per
      reported quantity, with a styled header row and auto-sized columns.
    """
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = 'Sensitivity'

    headers = [parameter_name] + SENSITIVITY_COLUMNS[1:]
    for col_idx, header in enumerate(headers, start=1):
        cell = ws.cell(1, col_idx, header)
        cell.font = Font(bold=True)
        cell.fill = PatternFill(start_color='CCCCCC', end_color='CCCCCC', fill_type='solid')
        cell.alignment = Alignment(horizontal='center')

    for row_idx, record in enumerate(df.itertuples(index=False), start=2):
        for col_idx, value in enumerate(record, start=1):
            if pd.isna(value):
                continue
            cell = ws.cell(row_idx, col_idx)
            if isinstance(value, float):
                cell.value = value
                cell.number_format = '0.0000'
            elif isinstance(value, (bool, int, str)):
                cell.value = value
            else:
                cell.value = value.item() if hasattr(value, 'item') else str(value)

    for column in ws.columns:
        max_length = 0
        column_letter = get_column_letter(column[0].column)
        for cell in column:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[column_letter].width = max_length + 2

    wb.save(output_path)
    wb.close()
    print(f"Sensitivity Excel workbook saved to: {output_path}")
