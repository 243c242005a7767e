"""
Backward search for the investment cost that makes a firm switch technology.

This module compares the expected disutility of keeping the old technology
with that of adopting the new one at decreasing candidate investment costs,
and reports the band in which the firm becomes indifferent.
"""

import math

from emissions_model import prepare_technology, evaluate_technology
from constants import LOOSE_EPSILON, MAX_LOG_FLOAT


class SearchExhaustedError(RuntimeError):
    """No candidate investment cost down to zero makes adoption worthwhile."""


def candidate_costs(ceiling, step):
    """
    Candidate investment costs from the ceiling down to zero.

    Parameters
    ----------
    ceiling : int
        First candidate
    step : int
        Decrement between candidates

    Returns
    -------
    list of int
        [ceiling, ceiling - step, ...], always ending with 0
    """
    candidates = list(range(ceiling, -1, -step))
    if candidates[-1] != 0:
        candidates.append(0)
    return candidates


class ThresholdSearch:
    """
    Indifference-threshold search over the new technology's investment cost.

    The old technology's optimal emissions, report and disutility do not
    depend on the investment cost and are computed once at construction.
    The new technology's optimal emission level is also computed once; only
    its report and disutility are re-solved per candidate.

    Parameters
    ----------
    config : ModelConfiguration
        Complete model configuration
    """

    def __init__(self, config):
        self.config = config
        self.policy_params = config.policy_params
        self.sanction = config.sanction()
        self.sanction_derivative = self.sanction.deriv()

        self.old_prepared = prepare_technology(config.old_technology, self.policy_params)
        self.new_prepared = prepare_technology(config.new_technology, self.policy_params)

        self.old_outcome = evaluate_technology(
            self.old_prepared, 0.0, self.sanction, self.sanction_derivative, self.policy_params
        )

    def evaluate_candidate(self, investment_cost):
        """New-technology outcome at a candidate investment cost."""
        return evaluate_technology(
            self.new_prepared, investment_cost, self.sanction, self.sanction_derivative, self.policy_params
        )

    def disutility_gap(self, new_outcome):
        """
        Relative gap (Do - Dn) / Do, positive when adopting the new technology
        is preferred.

        Computed from log-disutilities as 1 - exp(log Dn - log Do), so it stays
        finite when Do and Dn themselves exceed the double range.
        """
        log_D_old = self.old_outcome['log_D']
        log_D_new = new_outcome['log_D']
        if log_D_old == -math.inf:
            return 0.0 if log_D_new == -math.inf else -math.inf
        difference = log_D_new - log_D_old
        if difference >= MAX_LOG_FLOAT:
            return -math.inf
        return -math.expm1(difference)

    def search(self, verbose=False):
        """
        Search candidates downward for the first one favoring adoption.

        Parameters
        ----------
        verbose : bool
            Print progress and the result summary

        Returns
        -------
        dict
            - 'threshold_lower': first candidate i with Do - Dn(i) > 0
            - 'threshold_upper': previous candidate (i + step at the ceiling);
              the indifference band is [threshold_lower, threshold_upper)
            - 'at_ceiling': True if the crossover is at the first candidate,
              in which case the true threshold may lie above the ceiling
            - 'old': old-technology outcome
            - 'new': new-technology outcome at threshold_lower
            - 'n_iterations': number of candidates evaluated
            - 'n_fallbacks': number of boundary-fallback reports (old + new)
            - 'trace': list of per-candidate dicts

        Raises
        ------
        SearchExhaustedError
            If no candidate down to 0 satisfies the stopping condition.

        Notes
        -----
        The stopping condition is a relative gap (Do - Dn) / Do above
        LOOSE_EPSILON, so that exact ties, which floating point may resolve
        either way, are not mistaken for a crossover. The gap is taken on
        log-disutilities and is valid for any rho.
        """
        ceiling = self.config.search_params.ceiling
        step = self.config.search_params.step
        D_old = self.old_outcome['D']
        log_D_old = self.old_outcome['log_D']

        if verbose:
            print(f"Searching investment costs from {ceiling} down to 0 (step {step})...")
            print(f"  Old technology: e* = {self.old_outcome['e_star']:.4f}, "
                  f"V = {self.old_outcome['V']:.4f}, log D = {log_D_old:.6f}")

        n_fallbacks = int(self.old_outcome['status'].startswith('fallback'))
        trace = []
        upper = ceiling + step

        for n_iterations, investment_cost in enumerate(candidate_costs(ceiling, step), start=1):
            new_outcome = self.evaluate_candidate(investment_cost)
            gap = self.disutility_gap(new_outcome)
            if new_outcome['status'].startswith('fallback'):
                n_fallbacks += 1

            trace.append({
                'i': investment_cost,
                'D_new': new_outcome['D'],
                'D_old': D_old,
                'log_D_new': new_outcome['log_D'],
                'log_D_old': log_D_old,
                'gap': gap,
                'r_new': new_outcome['r'],
                'V_new': new_outcome['V'],
                'status_new': new_outcome['status'],
            })

            if gap > LOOSE_EPSILON:
                result = {
                    'threshold_lower': investment_cost,
                    'threshold_upper': upper,
                    'at_ceiling': investment_cost == ceiling,
                    'old': self.old_outcome,
                    'new': new_outcome,
                    'n_iterations': n_iterations,
                    'n_fallbacks': n_fallbacks,
                    'trace': trace,
                }
                if verbose:
                    print(f"  Crossover after {n_iterations} candidates: "
                          f"[{investment_cost}, {upper})")
                return result

            upper = investment_cost

        raise SearchExhaustedError(
            f"No threshold found within search ceiling {ceiling}: new-technology disutility "
            f"does not fall below old-technology disutility for any investment cost down to 0 "
            f"(gap at 0 = {trace[-1]['gap']:.6e})."
        )
