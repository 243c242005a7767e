"""
Functions for optimal emissions, declared emissions and expected disutility.

This module implements the firm-level model of a taxed, audited polluter:
welfare-optimal emissions from the marginal abatement cost, the privately
optimal emissions report balancing tax savings against the expected sanction,
and the risk-adjusted expected disutility of the resulting outcome.
"""

import math
import numpy as np
from scipy.optimize import root_scalar
from constants import EPSILON, LOOSE_EPSILON, MAX_LOG_FLOAT


class ModelMisconfigurationError(ValueError):
    """The abatement-cost function is incompatible with the tax rate."""


# --- Optimal emissions ---

def solve_optimal_emissions(abatement_cost, tau, name='technology'):
    """
    Solve c'(e) + tau = 0 for the welfare-optimal emission level.

    Parameters
    ----------
    abatement_cost : Polynomial
        Abatement cost c(e) of the technology
    tau : float
        Emission tax rate
    name : str
        Technology label used in error messages

    Returns
    -------
    float
        The unique real root e*

    Raises
    ------
    ModelMisconfigurationError
        If the marginal condition has no real root, more than one distinct
        real root, or is identically constant.
    """
    marginal = abatement_cost.deriv() + tau
    coefficients = np.trim_zeros(marginal.coef, 'b')
    if len(coefficients) <= 1:
        raise ModelMisconfigurationError(
            f"{name}: marginal condition c'(e) + tau is constant; no unique optimal emission level."
        )

    roots = np.atleast_1d(marginal.roots())
    scale = np.maximum(1.0, np.abs(roots))
    real_roots = np.sort(np.real(roots[np.abs(np.imag(roots)) <= LOOSE_EPSILON * scale]))

    if len(real_roots) == 0:
        raise ModelMisconfigurationError(
            f"{name}: c'(e) + tau = 0 has no real root for tau = {tau}."
        )
    if real_roots[-1] - real_roots[0] > LOOSE_EPSILON * max(1.0, abs(real_roots[-1])):
        raise ModelMisconfigurationError(
            f"{name}: c'(e) + tau = 0 has multiple real roots {real_roots.tolist()} for tau = {tau}."
        )

    return float(np.mean(real_roots))


def prepare_technology(technology, policy_params):
    """
    Compute the cost-independent quantities of a technology.

    Returns a dict with 'name', 'e_star' and 'fixed_cost' = c(e*).
    Raises ModelMisconfigurationError if e* or c(e*) is negative.
    """
    e_star = solve_optimal_emissions(technology.abatement_cost, policy_params.tau, technology.name)
    if e_star < 0:
        raise ModelMisconfigurationError(
            f"{technology.name}: optimal emission level {e_star} is negative; "
            f"no admissible declaration exists."
        )
    fixed_cost = float(technology.abatement_cost(e_star))
    if fixed_cost < 0:
        raise ModelMisconfigurationError(
            f"{technology.name}: abatement cost c(e*) = {fixed_cost} at e* = {e_star} is negative."
        )
    return {
        'name': technology.name,
        'e_star': e_star,
        'fixed_cost': fixed_cost,
    }


# --- Declared emissions ---

def declaration_condition(r, e_star, fixed_cost, investment_cost, sanction, sanction_derivative, policy_params):
    """
    Residual of the declared-emissions first-order condition at report r.

    The condition

        (rho+1)(A+F)^rho pi F' / [(1-pi)(rho+1)A^rho + pi(rho+1)(A+F)^rho] = tau,

    with A = c(e*) + tau r + i and F = F(e* - r), is evaluated after dividing
    numerator and denominator by (rho+1)(A+F)^rho:

        pi F' / [(1-pi)(A/(A+F))^rho + pi] - tau.

    The residual is non-increasing in r for convex sanctions: positive means
    the expected marginal sanction exceeds the marginal tax saving.
    """
    pi = policy_params.pi
    rho = policy_params.rho
    v = e_star - r

    clean = fixed_cost + policy_params.tau * r + investment_cost
    audited = clean + float(sanction(v))

    if audited == clean:
        ratio = 1.0
    else:
        ratio = (clean / audited) ** rho

    return pi * float(sanction_derivative(v)) / ((1.0 - pi) * ratio + pi) - policy_params.tau


def solve_declared_emissions(e_star, fixed_cost, investment_cost, sanction, sanction_derivative, policy_params):
    """
    Solve the profit-maximizing emissions report on [0, e*].

    Parameters
    ----------
    e_star : float
        Optimal (actual) emission level of the technology
    fixed_cost : float
        Abatement cost at the optimal level, c(e*)
    investment_cost : float
        Investment cost i (zero for the old technology)
    sanction : Polynomial
        Sanction F(v) as a function of the violation v = e* - r
    sanction_derivative : Polynomial
        Marginal sanction F'(v)
    policy_params : PolicyParameters
        Monitoring probability, tax rate and risk aversion

    Returns
    -------
    dict
        - 'r': declared emissions, 0 <= r <= e*
        - 'status': 'interior', 'boundary_root', 'fallback_compliant'
          or 'fallback_noncompliant'

    Notes
    -----
    Roots outside [0, e*] are never returned: the root is bracketed on the
    admissible interval and found with Brent's method. A residual within
    EPSILON * max(1, tau) at an endpoint counts as a root there. Without a
    sign change on the interval the report falls back to whichever boundary
    gives the smaller disutility (r = e* fully compliant, r = 0 fully
    non-compliant).
    """
    def condition(r):
        return declaration_condition(
            r, e_star, fixed_cost, investment_cost, sanction, sanction_derivative, policy_params
        )

    if e_star == 0:
        return {'r': 0.0, 'status': 'boundary_root'}

    tol = EPSILON * max(1.0, policy_params.tau)
    g_low = condition(0.0)
    g_high = condition(e_star)

    if abs(g_high) <= tol:
        return {'r': float(e_star), 'status': 'boundary_root'}
    if abs(g_low) <= tol:
        return {'r': 0.0, 'status': 'boundary_root'}

    if np.sign(g_low) != np.sign(g_high):
        sol = root_scalar(condition, bracket=[0.0, e_star], method='brentq', xtol=EPSILON)
        if not sol.converged:
            raise RuntimeError(f"root_scalar did not converge for declared emissions: {sol.flag}")
        r = min(max(sol.root, 0.0), e_star)
        return {'r': float(r), 'status': 'interior'}

    compliant = evaluate_declaration(
        e_star, e_star, fixed_cost, investment_cost, sanction, policy_params
    )
    noncompliant = evaluate_declaration(
        0.0, e_star, fixed_cost, investment_cost, sanction, policy_params
    )
    if compliant['log_D'] <= noncompliant['log_D']:
        return {'r': float(e_star), 'status': 'fallback_compliant'}
    return {'r': 0.0, 'status': 'fallback_noncompliant'}


# --- Disutility ---

def calculate_disutility(abatement_cost, taxes, investment_cost, sanction_value, pi, rho):
    """
    Expected disutility over the unaudited and audited outcomes.

        D = (1-pi) (C+T+I)^(rho+1) + pi (C+T+I+F)^(rho+1)

    Parameters
    ----------
    abatement_cost : float
        Abatement cost C = c(e*)
    taxes : float
        Taxes paid on the report, T = tau r
    investment_cost : float
        Investment cost I
    sanction_value : float
        Sanction F(e* - r) paid when audited
    pi : float
        Monitoring probability
    rho : float
        Risk-aversion exponent

    Returns
    -------
    float
        Expected disutility D, or inf if D exceeds the double range
    """
    clean, audited = _outcome_costs(abatement_cost, taxes, investment_cost, sanction_value)
    if audited > 0 and (rho + 1.0) * math.log(audited) >= MAX_LOG_FLOAT:
        return math.inf
    return (1.0 - pi) * clean ** (rho + 1.0) + pi * audited ** (rho + 1.0)


def calculate_log_disutility(abatement_cost, taxes, investment_cost, sanction_value, pi, rho):
    """
    Natural logarithm of the expected disutility, finite for any rho.

        log D = (rho+1) log(C+T+I+F) + log[(1-pi) ((C+T+I)/(C+T+I+F))^(rho+1) + pi]

    Used to compare disutilities whose direct evaluation would overflow.
    Returns -inf when D = 0.
    """
    clean, audited = _outcome_costs(abatement_cost, taxes, investment_cost, sanction_value)
    if audited == 0:
        return -math.inf
    weight = (1.0 - pi) * (clean / audited) ** (rho + 1.0) + pi
    if weight == 0:
        return -math.inf
    return (rho + 1.0) * math.log(audited) + math.log(weight)


def _outcome_costs(abatement_cost, taxes, investment_cost, sanction_value):
    clean = abatement_cost + taxes + investment_cost
    audited = clean + sanction_value
    if clean < 0 or audited < 0:
        raise ValueError(
            f"Outcome costs must be non-negative, got clean={clean}, audited={audited}"
        )
    return clean, audited


def evaluate_declaration(r, e_star, fixed_cost, investment_cost, sanction, policy_params):
    """
    Cost components and disutility of declaring r.

    Returns a dict with 'r', 'V', 'C', 'T', 'I', 'F', 'D' and 'log_D'; D and
    log_D are computed from exactly the stored components.
    """
    V = e_star - r
    C = fixed_cost
    T = policy_params.tau * r
    I = float(investment_cost)
    F = float(sanction(V))
    D = calculate_disutility(C, T, I, F, policy_params.pi, policy_params.rho)
    log_D = calculate_log_disutility(C, T, I, F, policy_params.pi, policy_params.rho)
    return {'r': r, 'V': V, 'C': C, 'T': T, 'I': I, 'F': F, 'D': D, 'log_D': log_D}


def evaluate_technology(prepared, investment_cost, sanction, sanction_derivative, policy_params):
    """
    Declared emissions, violation and disutility of a prepared technology.

    Parameters
    ----------
    prepared : dict
        Output of prepare_technology()
    investment_cost : float
        Investment cost i
    sanction, sanction_derivative : Polynomial
        Sanction F(v) and F'(v)
    policy_params : PolicyParameters
        Policy parameters of the run

    Returns
    -------
    dict
        'name', 'e_star', 'status' and the components of
        evaluate_declaration()
    """
    e_star = prepared['e_star']
    fixed_cost = prepared['fixed_cost']

    declaration = solve_declared_emissions(
        e_star, fixed_cost, investment_cost, sanction, sanction_derivative, policy_params
    )
    outcome = evaluate_declaration(
        declaration['r'], e_star, fixed_cost, investment_cost, sanction, policy_params
    )
    outcome.update({
        'name': prepared['name'],
        'e_star': e_star,
        'status': declaration['status'],
    })
    return outcome
