
import logging
from typing import List, Dict, Sequence, Tuple
import numpy as np
import numpy_financial as npf
from .utils import ProjectParameters, CashFlowPoint, SensitivityPoint, FinancialResult, InvalidParameter
from .technologies import TECHNOLOGY_PROFILES

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365
SENSITIVITY_DELTAS = (-0.2, -0.1, 0.0, 0.1, 0.2)
SENSITIVITY_VARIABLES = {
    'energy_price': 'Energy Price',
    'capital_cost': 'Capital Cost',
    'operating_cost': 'Operating Cost',
}


def annual_operations(p: ProjectParameters) -> Dict[str, float]:
    """Flat yearly operating figures for the plant described by ``p``."""
    profile = TECHNOLOGY_PROFILES[p.technology]
    tons = p.capacity_tpd * DAYS_PER_YEAR
    energy = tons * profile.mwh_per_ton  # MWh/yr
    revenue = energy * p.energy_price
    opex = p.operating_cost + tons * profile.processing_cost
    return {
        'processed_tons': tons,
        'generated_energy': energy,
        'revenue': revenue,
        'operating_cost': opex,
        'profit': revenue - opex,
        'carbon_reduction': energy * profile.carbon_factor,
    }


def build_cash_flows(p: ProjectParameters) -> Tuple[List[float], List[CashFlowPoint]]:
    profit = annual_operations(p)['profit']
    cash_flows = [-p.capital_cost] + [profit] * p.lifetime_years
    series = []
    cum = 0.0
    for year, cf in enumerate(cash_flows):
        cum += cf
        series.append(CashFlowPoint(year=year, period_cash_flow=cf, cumulative_cash_flow=cum))
    return cash_flows, series


def npv(cash_flows: Sequence[float], rate: float) -> float:
    # numpy-financial discounts the first entry at t=0
    return float(npf.npv(rate, list(cash_flows)))


def irr_scan(cash_flows: Sequence[float], lower: float = 0.0, upper: float = 1.0, step: float = 0.01) -> float:
    """Approximate IRR in percent by stepping the rate until NPV turns non-positive.

    The last rate scanned before the sign change is reported, so the answer
    is only good to one ``step`` and always rounds down. Returns ``nan``
    when NPV at ``lower`` is already non-positive or never crosses zero
    below ``upper``.
    """
    if step <= 0 or upper <= lower:
        raise InvalidParameter(f'invalid IRR scan range [{lower}, {upper}) step {step}')
    if npv(cash_flows, lower) <= 0:
        return float('nan')
    n_steps = int(round((upper - lower) / step))
    for k in range(1, n_steps):
        r = lower + k * step
        if npv(cash_flows, r) <= 0:
            return (r - step) * 100.0
    return float('nan')


def irr_refined(cash_flows: Sequence[float]) -> float:
    try:
        irr = float(npf.irr(list(cash_flows)))
    except Exception:
        irr = float('nan')
    return irr * 100.0 if np.isfinite(irr) else float('nan')


IRR_METHODS = {
    'scan': irr_scan,
    'refined': irr_refined,
}


def payback_period(capital_cost: float, annual_profit: float) -> float:
    if annual_profit <= 0:
        return float('inf')
    return max(capital_cost, 0.0) / annual_profit


def _perturb(p: ProjectParameters, variable: str, delta: float) -> Tuple[ProjectParameters, float]:
    value = getattr(p, variable) * (1.0 + delta)
    return p.replace(**{variable: value}), value


def sensitivity(p: ProjectParameters, variable: str = 'energy_price', deltas: Sequence[float] = SENSITIVITY_DELTAS) -> List[SensitivityPoint]:
    if variable not in SENSITIVITY_VARIABLES:
        raise InvalidParameter(f'unsupported sensitivity variable: {variable!r}')
    rows = []
    for d in sorted(deltas):
        p_d, value = _perturb(p, variable, d)
        cfs, _ = build_cash_flows(p_d)
        label = 'Base Case' if d == 0 else f"{d*100:+.0f}% {SENSITIVITY_VARIABLES[variable]}"
        rows.append(SensitivityPoint(label=label, variable=variable, delta=d, value=value, npv=npv(cfs, p.rate)))
    return rows


def compute_financials(p: ProjectParameters, irr_method: str = 'scan', sensitivity_deltas: Sequence[float] = SENSITIVITY_DELTAS) -> FinancialResult:
    if irr_method not in IRR_METHODS:
        raise InvalidParameter(f'unknown IRR method: {irr_method!r}')
    ops = annual_operations(p)
    profit = ops['profit']
    cash_flows, series = build_cash_flows(p)
    npv_value = npv(cash_flows, p.rate)
    if profit <= 0:
        logger.warning('Annual profit %.2f is not positive for %s; IRR and payback undefined',
                       profit, p.technology.value)
        irr = float('nan')
    else:
        irr = IRR_METHODS[irr_method](cash_flows)
        if not np.isfinite(irr):
            logger.info('IRR not found in scanned range for %s', p.technology.value)
    tons = ops['processed_tons']
    result = FinancialResult(
        annual_revenue=ops['revenue'],
        annual_operating_cost=ops['operating_cost'],
        annual_profit=profit,
        npv=npv_value,
        irr=irr,
        payback_period=payback_period(p.capital_cost, profit),
        cash_flow_series=series,
        generated_energy=ops['generated_energy'],
        estimated_emission_reduction=ops['carbon_reduction'],
        cost_per_ton=ops['operating_cost'] / tons if tons else 0.0,
        lifetime_years=p.lifetime_years,
        sensitivity=sensitivity(p, 'energy_price', sensitivity_deltas),
    )
    logger.debug('%s: npv=%.0f irr=%s payback=%.2f', p.technology.value, npv_value, irr, result.payback_period)
    return result


def monte_carlo(p: ProjectParameters, n: int = 2000, price_sigma=0.15, capex_sigma=0.15, opex_sigma=0.10, rate_sigma=0.02, seed: int = 42):
    """NPV distribution under lognormal price/cost shocks and a normal rate shock."""
    rng = np.random.default_rng(seed)
    results = np.empty(n)
    for i in range(n):
        rate = min(max(0.0, rng.normal(p.rate, rate_sigma)), 0.99)
        p_mc = p.replace(
            energy_price=p.energy_price * rng.lognormal(mean=0, sigma=price_sigma),
            capital_cost=p.capital_cost * rng.lognormal(mean=0, sigma=capex_sigma),
            operating_cost=p.operating_cost * rng.lognormal(mean=0, sigma=opex_sigma),
            discount_rate=rate,
        )
        cfs, _ = build_cash_flows(p_mc)
        results[i] = npv(cfs, rate)
    return results


def breakeven_price(p: ProjectParameters, target_npv=0.0, tol=1e-4, max_iter=200) -> float:
    """Energy price (currency/MWh) at which NPV equals ``target_npv``, by bisection."""
    if annual_operations(p)['generated_energy'] <= 0:
        return float('nan')

    def npv_at(price):
        cfs, _ = build_cash_flows(p.replace(energy_price=price))
        return npv(cfs, p.rate)

    low, high = 0.0, max(5*p.energy_price, 1.0)
    for _ in range(60):
        if npv_at(high) >= target_npv:
            break
        high *= 2
    mid = high
    for _ in range(max_iter):
        mid = 0.5*(low+high)
        value = npv_at(mid)
        if abs(value-target_npv) < tol:
            return mid
        if value < target_npv:
            low = mid
        else:
            high = mid
    return mid
