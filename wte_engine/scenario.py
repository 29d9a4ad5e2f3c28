
import logging
from .utils import Technology, ScenarioOutcome, InvalidParameter, check_number, round_half_up
from .technologies import SCENARIO_PROFILES, SCENARIO_REVENUE_PER_MWH

logger = logging.getLogger(__name__)


def _pct(name, value):
    v = check_number(name, value)
    if not 0 <= v <= 100:
        raise InvalidParameter(f'{name} must be within [0, 100], got {v}')
    return v / 100.0


def simulate_scenario(waste_volume, organic_pct, recyclable_pct, efficiency_pct, technology) -> ScenarioOutcome:
    """Yearly outcome of routing a municipal waste stream through one technology.

    Organic and recyclable fractions are split off first; what is left is
    residual waste. Thermal routes burn the residual stream, digestion takes
    the organic one.
    """
    tech = Technology.coerce(technology)
    volume = check_number('waste_volume', waste_volume)
    if volume < 0:
        raise InvalidParameter(f'waste_volume must be >= 0, got {volume}')
    organic_f = _pct('organic_pct', organic_pct)
    recyclable_f = _pct('recyclable_pct', recyclable_pct)
    if organic_f + recyclable_f > 1.0:
        raise InvalidParameter('organic and recyclable shares exceed 100% of the waste stream')
    efficiency = _pct('efficiency_pct', efficiency_pct)

    organic = volume * organic_f
    recyclable = volume * recyclable_f
    residual = volume - organic - recyclable

    profile = SCENARIO_PROFILES[tech]
    feedstock = residual if profile.feedstock == 'residual' else organic
    energy = feedstock * profile.energy_yield * efficiency
    outcome = ScenarioOutcome(
        technology=tech,
        feedstock=feedstock,
        energy_output=round_half_up(energy),
        carbon_reduction=round_half_up(energy * profile.carbon_per_mwh),
        operational_cost=round_half_up(energy * profile.cost_per_mwh),
        landfill_diversion=round_half_up((organic + residual) * efficiency),
        revenue_estimate=round_half_up(energy * SCENARIO_REVENUE_PER_MWH),
    )
    logger.debug('scenario %s: %s', tech.value, outcome)
    return outcome
