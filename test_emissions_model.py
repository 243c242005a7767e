"""
Unit Tests for the Firm-Level Emissions Model

Validates optimal emissions, declared emissions and expected disutility:

1. Optimal emissions satisfy c'(e*) + tau = 0 and are unique
2. Misconfigured cost functions are rejected with the technology name
3. Paired derivatives match numerical differentiation
4. Declared emissions stay in [0, e*] for all investment costs
5. Stronger monitoring never increases the violation level
6. Disutility evaluation is bit-identical on repetition
7. Boundary roots and boundary fallbacks
8. The declaration condition agrees with an 80-digit mpmath evaluation

Usage:
    python test_emissions_model.py
"""

import mpmath as mp
import numpy as np

from parameters import (
    PolicyParameters,
    Technology,
    create_polynomial,
    create_quadratic_abatement_cost,
    create_sanction,
)
from emissions_model import (
    ModelMisconfigurationError,
    solve_optimal_emissions,
    prepare_technology,
    declaration_condition,
    solve_declared_emissions,
    calculate_disutility,
    calculate_log_disutility,
    evaluate_technology,
)

mp.mp.dps = 80


def baseline_policy(**changes):
    values = {'pi': 0.5, 'tau': 20.0, 'rho': 1.0, 'f': 0.0, 'sanction_quadratic': 1.0}
    values.update(changes)
    return PolicyParameters(**values)


def solve_old_technology(policy, investment_cost=0.0):
    prepared = prepare_technology(
        Technology('old', create_quadratic_abatement_cost(100.0)), policy
    )
    sanction = create_sanction(policy.sanction_quadratic, policy.f)
    return evaluate_technology(prepared, investment_cost, sanction, sanction.deriv(), policy)


# ============================================================================
# Optimal emissions
# ============================================================================

def test_optimal_emissions_satisfy_marginal_condition():
    """c'(e*) + tau = 0 for quadratic and quartic costs."""
    print("=" * 80)
    print("Test: Optimal Emissions Satisfy c'(e*) + tau = 0")
    print("=" * 80)

    cases = [
        ('old', create_quadratic_abatement_cost(100.0), 20.0, 60.0),
        ('new', create_quadratic_abatement_cost(50.0), 20.0, 35.0),
        ('scaled', create_quadratic_abatement_cost(80.0, scale=2.0), 10.0, 42.5),
    ]
    for name, cost, tau, expected in cases:
        e_star = solve_optimal_emissions(cost, tau, name)
        residual = cost.deriv()(e_star) + tau
        print(f"  {name:8s} tau={tau:5.1f}  e* = {e_star:.10f}  residual = {residual:.2e}")
        assert abs(e_star - expected) < 1e-10
        assert abs(residual) < 1e-9

    # c'(e) + tau = 30 - e - e^3 has the single real root e = 3
    cost = create_polynomial([0.0, 30.0 - 5.0, -0.5, 0.0, -0.25])
    e_star = solve_optimal_emissions(cost, 5.0, 'quartic')
    residual = cost.deriv()(e_star) + 5.0
    print(f"  quartic  e* = {e_star:.10f}  residual = {residual:.2e}")
    assert abs(e_star - 3.0) < 1e-9
    assert abs(residual) < 1e-9
    print()


def test_misconfigured_costs_are_rejected():
    """No real root, multiple roots, constant marginal cost and negative e* or c(e*) all raise."""
    print("=" * 80)
    print("Test: Misconfigured Cost Functions")
    print("=" * 80)

    cases = [
        # c'(e) + tau = e^2 + 1 has no real root
        ('no_root', create_polynomial([0.0, 1.0 - 20.0, 0.0, 1.0 / 3.0])),
        # c'(e) + tau = (e - 1)(e - 2) has two real roots
        ('two_roots', create_polynomial([0.0, 2.0 - 20.0, -1.5, 1.0 / 3.0])),
        # linear cost: c'(e) + tau is constant
        ('linear', create_polynomial([5.0, 3.0])),
    ]
    for name, cost in cases:
        try:
            solve_optimal_emissions(cost, 20.0, name)
        except ModelMisconfigurationError as e:
            print(f"  {name:10s} rejected: {e}")
            assert name in str(e)
        else:
            raise AssertionError(f"{name} should have been rejected")

    # c'(e) + tau = -9 - 2e for tau = 1 gives e* = -4.5
    try:
        prepare_technology(Technology('negative', create_polynomial([0.0, -10.0, -1.0])), baseline_policy(tau=1.0))
    except ModelMisconfigurationError as e:
        print(f"  negative   rejected: {e}")
    else:
        raise AssertionError("negative optimal emissions should have been rejected")

    # c(e) = -3000 + 100e - e^2 gives e* = 60 with c(e*) = -600
    try:
        prepare_technology(
            Technology('negative_cost', create_polynomial([-3000.0, 100.0, -1.0])), baseline_policy(rho=0.5)
        )
    except ModelMisconfigurationError as e:
        print(f"  negative_cost rejected: {e}")
        assert 'negative_cost' in str(e)
    else:
        raise AssertionError("negative abatement cost at e* should have been rejected")

    assert issubclass(ModelMisconfigurationError, ValueError)
    print()


def test_paired_derivatives_match_numerical_differentiation():
    """Polynomial.deriv() agrees with central differences for costs and sanctions."""
    print("=" * 80)
    print("Test: Paired Derivatives vs Central Differences")
    print("=" * 80)

    functions = {
        'cost_old': create_quadratic_abatement_cost(100.0),
        'cost_new': create_quadratic_abatement_cost(50.0, scale=1.5),
        'sanction_f0': create_sanction(1.0, 0.0),
        'sanction_f40': create_sanction(1.0, 40.0),
        'cubic': create_polynomial([1.0, -2.0, 0.5, -0.1]),
    }
    h = 1e-5
    for name, func in functions.items():
        derivative = func.deriv()
        for x in [0.0, 0.5, 3.0, 17.25, 40.0]:
            numeric = (func(x + h) - func(x - h)) / (2.0 * h)
            error = abs(numeric - derivative(x)) / max(1.0, abs(derivative(x)))
            assert error < 1e-6, f"{name} at x={x}: error {error:.2e}"
        print(f"  {name:14s} ✓")
    print()


# ============================================================================
# Declared emissions
# ============================================================================

def test_declared_emissions_within_admissible_interval():
    """0 <= r <= e* for a range of investment costs and policies."""
    print("=" * 80)
    print("Test: Declared Emissions in [0, e*]")
    print("=" * 80)

    policies = [
        baseline_policy(),
        baseline_policy(rho=10.0),
        baseline_policy(f=40.0),
        baseline_policy(pi=0.05),
        baseline_policy(pi=0.0),
        baseline_policy(pi=1.0, rho=0.0),
    ]
    for policy in policies:
        for investment_cost in [0.0, 1.0, 100.0, 2374.0, 2375.0, 10000.0]:
            outcome = solve_old_technology(policy, investment_cost)
            assert 0.0 <= outcome['r'] <= outcome['e_star']
            assert outcome['V'] >= 0.0
        print(f"  pi={policy.pi:4.2f} rho={policy.rho:4.1f} f={policy.f:4.1f}  "
              f"V = {outcome['V']:.6f}  status = {outcome['status']}")
    print()


def test_violation_non_increasing_in_monitoring():
    """Raising pi never raises the violation level e* - r."""
    print("=" * 80)
    print("Test: Violation Monotone in Monitoring Probability")
    print("=" * 80)

    for rho in [0.0, 1.0, 10.0]:
        previous = None
        for pi in np.linspace(0.0, 1.0, 21):
            V = solve_old_technology(baseline_policy(pi=float(pi), rho=rho))['V']
            if previous is not None:
                assert V <= previous + 1e-9, f"rho={rho}, pi={pi}: V={V} > {previous}"
            previous = V
        print(f"  rho={rho:4.1f}: V(pi=1) = {previous:.6f} ✓")
    print()


def test_interior_root_solves_condition():
    """An interior report makes the declaration condition vanish."""
    policy = baseline_policy()
    outcome = solve_old_technology(policy)
    assert outcome['status'] == 'interior'

    sanction = create_sanction(1.0, 0.0)
    residual = declaration_condition(
        outcome['r'], outcome['e_star'], outcome['C'], 0.0, sanction, sanction.deriv(), policy
    )
    assert abs(residual) < 1e-8
    assert abs(outcome['V'] - 18.9926) < 5e-4


def test_large_fine_deters_all_violation():
    """With pi * f = tau the compliant report r = e* solves the condition."""
    policy = baseline_policy(f=40.0)
    outcome = solve_old_technology(policy)
    print(f"  f=40: r = {outcome['r']}, V = {outcome['V']}, status = {outcome['status']}")
    assert outcome['status'] == 'boundary_root'
    assert outcome['V'] == 0.0
    assert outcome['F'] == 0.0


def test_weak_monitoring_falls_back_to_noncompliance():
    """No root on [0, e*] and the disutility-minimizing boundary is r = 0."""
    policy = baseline_policy(pi=0.05)
    outcome = solve_old_technology(policy)
    assert outcome['status'] == 'fallback_noncompliant'
    assert outcome['r'] == 0.0
    assert outcome['V'] == outcome['e_star']

    sanction = create_sanction(1.0, 0.0)
    result = solve_declared_emissions(
        60.0, 2400.0, 0.0, sanction, sanction.deriv(), policy
    )
    assert result == {'r': 0.0, 'status': 'fallback_noncompliant'}


def test_strong_fine_falls_back_to_compliance():
    """A marginal fine above tau / pi everywhere gives the compliant fallback."""
    policy = baseline_policy(f=100.0)
    outcome = solve_old_technology(policy)
    assert outcome['status'] == 'fallback_compliant'
    assert outcome['r'] == outcome['e_star']
    assert outcome['V'] == 0.0


def test_condition_matches_high_precision_reference():
    """Double-precision residual agrees with an 80-digit evaluation of the unreduced condition."""
    print("=" * 80)
    print("Test: Declaration Condition vs 80-digit Reference")
    print("=" * 80)

    sanction = create_sanction(1.0, 0.0)
    for rho in [0.0, 1.0, 10.0]:
        policy = baseline_policy(rho=rho)
        outcome = solve_old_technology(policy)

        pi = mp.mpf(policy.pi)
        tau = mp.mpf(policy.tau)
        rho_mp = mp.mpf(rho)
        r = mp.mpf(outcome['r'])
        v = mp.mpf(outcome['e_star']) - r
        A = mp.mpf(outcome['C']) + tau * r
        F = v ** 2
        F_prime = 2 * v
        lhs = ((rho_mp + 1) * (A + F) ** rho_mp * pi * F_prime) / (
            (1 - pi) * (rho_mp + 1) * A ** rho_mp + pi * (rho_mp + 1) * (A + F) ** rho_mp
        )
        reference = float(lhs - tau)
        double = declaration_condition(
            outcome['r'], outcome['e_star'], outcome['C'], 0.0, sanction, sanction.deriv(), policy
        )
        print(f"  rho={rho:4.1f}  reference = {reference:.3e}  double = {double:.3e}")
        assert abs(reference) < 1e-8
        assert abs(reference - double) < 1e-8
    print()


# ============================================================================
# Disutility
# ============================================================================

def test_disutility_formula_and_idempotence():
    """D matches the closed form and is bit-identical on repetition."""
    D1 = calculate_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, 1.0)
    D2 = calculate_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, 1.0)
    assert D1 == D2
    assert D1 == 0.5 * 3220.0 ** 2 + 0.5 * 3581.0 ** 2

    # rho = 0: risk neutral expected cost
    assert calculate_disutility(100.0, 20.0, 5.0, 50.0, 0.25, 0.0) == 0.75 * 125.0 + 0.25 * 175.0

    outcome_a = solve_old_technology(baseline_policy(rho=10.0))
    outcome_b = solve_old_technology(baseline_policy(rho=10.0))
    assert outcome_a['D'] == outcome_b['D']
    assert outcome_a['D'] == calculate_disutility(
        outcome_a['C'], outcome_a['T'], outcome_a['I'], outcome_a['F'], 0.5, 10.0
    )


def test_log_disutility_beyond_double_range():
    """log D stays finite and exact when D itself exceeds the double range."""
    print("=" * 80)
    print("Test: Log Disutility at Large Risk Aversion")
    print("=" * 80)

    # Small rho: log D agrees with the direct evaluation
    D = calculate_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, 1.0)
    log_D = calculate_log_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, 1.0)
    assert abs(log_D - np.log(D)) < 1e-12 * abs(log_D)

    for rho in [100.0, 200.0]:
        assert calculate_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, rho) == np.inf
        log_D = calculate_log_disutility(2400.0, 820.0, 0.0, 361.0, 0.5, rho)
        reference = mp.log(
            mp.mpf('0.5') * mp.mpf(3220) ** (rho + 1) + mp.mpf('0.5') * mp.mpf(3581) ** (rho + 1)
        )
        print(f"  rho={rho:5.1f}  log D = {log_D:.10f}  reference = {float(reference):.10f}")
        assert np.isfinite(log_D)
        assert abs(log_D - float(reference)) < 1e-10 * abs(log_D)

    outcome = solve_old_technology(baseline_policy(rho=100.0))
    assert outcome['status'] == 'interior'
    assert outcome['D'] == np.inf
    assert np.isfinite(outcome['log_D'])

    assert calculate_log_disutility(0.0, 0.0, 0.0, 0.0, 0.5, 1.0) == -np.inf
    print()


def test_negative_outcome_cost_is_rejected():
    try:
        calculate_disutility(-100.0, 20.0, 0.0, 0.0, 0.5, 1.0)
    except ValueError:
        pass
    else:
        raise AssertionError("negative outcome cost should raise ValueError")


def run_all_tests():
    """Run all emissions-model tests."""
    print("\n" + "=" * 80)
    print("EMISSIONS MODEL VALIDATION")
    print("=" * 80)
    print()

    test_optimal_emissions_satisfy_marginal_condition()
    test_misconfigured_costs_are_rejected()
    test_paired_derivatives_match_numerical_differentiation()
    test_declared_emissions_within_admissible_interval()
    test_violation_non_increasing_in_monitoring()
    test_interior_root_solves_condition()
    test_large_fine_deters_all_violation()
    test_weak_monitoring_falls_back_to_noncompliance()
    test_strong_fine_falls_back_to_compliance()
    test_condition_matches_high_precision_reference()
    test_disutility_formula_and_idempotence()
    test_log_disutility_beyond_double_range()
    test_negative_outcome_cost_is_rejected()

    print("=" * 80)
    print("ALL EMISSIONS MODEL TESTS PASSED")
    print("=" * 80)


if __name__ == "__main__":
    run_all_tests()
