"""
Parameter definitions and configurations for the technology-adoption threshold model.

This module provides three categories of parameters:
1. Policy parameters - monitoring, taxation, risk aversion and sanctions
2. Technologies - abatement-cost functions of one variable
3. Search control parameters - ceiling and step of the investment-cost search

Cost and sanction functions are polynomials, so every function carries a
programmatically paired derivative (Polynomial.deriv) instead of a
hand-derived constant.

Configuration is loaded from a JSON file that specifies all parameter values
and the run name (used for output directory naming).
"""

import json
import copy
from dataclasses import dataclass
from numpy.polynomial import Polynomial
from constants import DEFAULT_SEARCH_CEILING, DEFAULT_SEARCH_STEP


# =============================================================================
# Function Factories
# =============================================================================

def create_polynomial(coefficients):
    """
    Create a polynomial function of one variable.

    Parameters
    ----------
    coefficients : array_like
        Coefficients in ascending order of degree

    Returns
    -------
    Polynomial
        Callable p(x) = sum_k coefficients[k] * x**k, with p.deriv()
        giving the paired derivative

    Examples
    --------
    >>> c = create_polynomial([0.0, 100.0, -1.0])   # c(e) = 100 e - e^2
    """
    coefficients = [float(c) for c in coefficients]
    if not coefficients:
        raise ValueError("Polynomial requires at least one coefficient.")
    return Polynomial(coefficients)


def create_quadratic_abatement_cost(e_bar, scale=1.0):
    """
    Create the quadratic abatement cost c(e) = scale * (e_bar - e) * e.

    Parameters
    ----------
    e_bar : float
        Emission level at which the cost vanishes again
    scale : float
        Multiplicative cost scale

    Returns
    -------
    Polynomial
        c(e) = scale * e_bar * e - scale * e^2

    Examples
    --------
    Old and new technology of the baseline parametrization:
    >>> c0 = create_quadratic_abatement_cost(100.0)
    >>> c1 = create_quadratic_abatement_cost(50.0)
    """
    return create_polynomial([0.0, scale * e_bar, -scale])


def create_sanction(quadratic, linear):
    """
    Create the sanction function F(v) = quadratic * v^2 + linear * v.

    Parameters
    ----------
    quadratic : float
        Coefficient of the squared violation
    linear : float
        Fixed-fine coefficient f, charged per unit of violation

    Returns
    -------
    Polynomial
        F(v); F.deriv() is the marginal sanction F'(v) = 2 q v + f

    Notes
    -----
    F(0) = 0, so a compliant declaration is never sanctioned.
    """
    return create_polynomial([0.0, linear, quadratic])


# =============================================================================
# Parameter Dataclasses
# =============================================================================

@dataclass(frozen=True)
class PolicyParameters:
    """
    Policy and behavioral parameters, fixed for one run.

    Attributes
    ----------
    pi : float
        Monitoring (audit) probability, 0 <= pi <= 1
    tau : float
        Emission tax rate (> 0)
    rho : float
        Risk-aversion exponent (>= 0); disutility is convex of order rho + 1
    f : float
        Fixed-fine coefficient (>= 0), the linear term of the sanction
    sanction_quadratic : float
        Quadratic coefficient of the sanction (>= 0)
    """
    pi: float
    tau: float
    rho: float
    f: float
    sanction_quadratic: float

    def __post_init__(self):
        if not (0.0 <= self.pi <= 1.0):
            raise ValueError(f"pi must be in [0,1]. Invalid value: {self.pi}")
        if self.tau <= 0:
            raise ValueError(f"tau must be > 0. Invalid value: {self.tau}")
        if self.rho < 0:
            raise ValueError(f"rho must be >= 0. Invalid value: {self.rho}")
        if self.f < 0:
            raise ValueError(f"f must be >= 0. Invalid value: {self.f}")
        if self.sanction_quadratic < 0:
            raise ValueError(f"sanction_quadratic must be >= 0. Invalid value: {self.sanction_quadratic}")


@dataclass(frozen=True)
class Technology:
    """
    An abatement technology.

    Attributes
    ----------
    name : str
        Label used in reports and error messages
    abatement_cost : Polynomial
        Abatement cost c(e) as a function of the emission level
    """
    name: str
    abatement_cost: Polynomial


@dataclass(frozen=True)
class SearchParameters:
    """
    Parameters controlling the backward investment-cost search.

    Attributes
    ----------
    ceiling : int
        First (largest) candidate investment cost
    step : int
        Decrement between successive candidates
    """
    ceiling: int = DEFAULT_SEARCH_CEILING
    step: int = DEFAULT_SEARCH_STEP

    def __post_init__(self):
        if isinstance(self.ceiling, bool) or not isinstance(self.ceiling, int) or self.ceiling < 0:
            raise ValueError(f"ceiling must be a non-negative integer. Invalid value: {self.ceiling}")
        if isinstance(self.step, bool) or not isinstance(self.step, int) or self.step < 1:
            raise ValueError(f"step must be a positive integer. Invalid value: {self.step}")


@dataclass(frozen=True)
class ModelConfiguration:
    """
    Complete model configuration bundling all parameters.

    Attributes
    ----------
    run_name : str
        Name for this run (used for output directory naming)
    policy_params : PolicyParameters
        Monitoring, taxation, risk aversion and sanction parameters
    old_technology : Technology
        Incumbent technology (no investment cost)
    new_technology : Technology
        Cleaner technology whose adoption costs the investment i
    search_params : SearchParameters
        Ceiling and step of the investment-cost search
    """
    run_name: str
    policy_params: PolicyParameters
    old_technology: Technology
    new_technology: Technology
    search_params: SearchParameters

    def sanction(self):
        """Sanction F(v) implied by the policy parameters."""
        return create_sanction(self.policy_params.sanction_quadratic, self.policy_params.f)


# =============================================================================
# Configuration Loading from JSON
# =============================================================================

def _create_cost_function(func_spec):
    """
    Create an abatement-cost function from JSON specification.

    Parameters
    ----------
    func_spec : dict
        Dictionary with 'type' key and type-specific parameters

    Returns
    -------
    Polynomial
        Abatement-cost function
    """
    func_type = func_spec['type']

    if func_type == 'quadratic':
        return create_quadratic_abatement_cost(
            func_spec['e_bar'],
            func_spec.get('scale', 1.0)
        )
    elif func_type == 'polynomial':
        return create_polynomial(func_spec['coefficients'])
    raise ValueError(f"Unknown abatement cost type: {func_type}")


def _create_technology(label, tech_spec):
    return Technology(
        name=tech_spec.get('name', label),
        abatement_cost=_create_cost_function(tech_spec['abatement_cost']),
    )


def parse_overrides(args):
    """
    Parse dotted command-line overrides into a dictionary.

    Parameters
    ----------
    args : list of str
        Alternating keys and values, e.g.
        ['--policy_parameters.rho', '10', '--run_name', 'rho10']

    Returns
    -------
    dict
        {'policy_parameters.rho': 10, 'run_name': 'rho10'}

    Notes
    -----
    Values are decoded as JSON when possible, otherwise kept as strings.
    """
    if len(args) % 2 != 0:
        raise ValueError(f"Overrides must come in '--key value' pairs, got: {args}")

    overrides = {}
    for key, raw_value in zip(args[0::2], args[1::2]):
        if not key.startswith('--'):
            raise ValueError(f"Override key must start with '--': {key}")
        try:
            value = json.loads(raw_value)
        except json.JSONDecodeError:
            value = raw_value
        overrides[key[2:]] = value
    return overrides


def apply_overrides(config_data, overrides):
    """
    Return a copy of raw configuration data with dotted-key overrides applied.

    Parameters
    ----------
    config_data : dict
        Raw configuration as read from JSON
    overrides : dict
        Mapping of dotted keys ('policy_parameters.rho') to new values

    Returns
    -------
    dict
        Updated deep copy of config_data
    """
    updated = copy.deepcopy(config_data)
    for dotted_key, value in overrides.items():
        keys = dotted_key.split('.')
        node = updated
        for key in keys[:-1]:
            if key not in node or not isinstance(node[key], dict):
                raise ValueError(f"Unknown configuration section in override: {dotted_key}")
            node = node[key]
        node[keys[-1]] = value
    return updated


def configuration_from_dict(config_data):
    """
    Build a ModelConfiguration from raw configuration data.

    Parameters
    ----------
    config_data : dict
        Raw configuration with keys 'run_name', 'policy_parameters',
        'technologies' ('old' and 'new') and optionally 'search_parameters'

    Returns
    -------
    ModelConfiguration
        Validated, immutable model configuration
    """
    policy_params = PolicyParameters(**config_data['policy_parameters'])

    technologies = config_data['technologies']
    old_technology = _create_technology('old', technologies['old'])
    new_technology = _create_technology('new', technologies['new'])

    search_params = SearchParameters(**config_data.get('search_parameters', {}))

    return ModelConfiguration(
        run_name=config_data['run_name'],
        policy_params=policy_params,
        old_technology=old_technology,
        new_technology=new_technology,
        search_params=search_params,
    )


def load_configuration(config_path, overrides=None):
    """
    Load model configuration from JSON file.

    Parameters
    ----------
    config_path : str
        Path to JSON configuration file
    overrides : dict, optional
        Dotted-key overrides applied before validation

    Returns
    -------
    ModelConfiguration
        Complete model configuration loaded from file

    Notes
    -----
    The JSON file must contain:
    - run_name: string identifier for this run
    - policy_parameters: dict with pi, tau, rho, f, sanction_quadratic
    - technologies: dict with 'old' and 'new', each holding an
      'abatement_cost' spec ('quadratic' or 'polynomial')
    - search_parameters (optional): dict with ceiling and step

    See config_baseline.json for an example.
    """
    with open(config_path, 'r') as f:
        config_data = json.load(f)

    if overrides:
        config_data = apply_overrides(config_data, overrides)

    return configuration_from_dict(config_data)
