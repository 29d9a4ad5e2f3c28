"""Technology catalogue and default inputs for the decision-support engine.

Figures follow the planning assumptions used for the municipal WtE study:
conversion factor and energy density give net electricity per ton of waste,
processing cost is the variable O&M on top of fixed O&M, and the carbon
factor is the displaced grid/landfill emission per MWh exported.
"""
from dataclasses import dataclass
from typing import Dict

from .utils import Technology, ProjectParameters, TechnologyScores


@dataclass(frozen=True)
class TechnologyProfile:
    conversion_factor: float  # fraction of feed converted
    energy_density: float  # kWh per ton
    processing_cost: float  # currency per ton
    carbon_factor: float  # tCO2e avoided per MWh

    @property
    def mwh_per_ton(self) -> float:
        return self.conversion_factor * self.energy_density / 1000.0


TECHNOLOGY_PROFILES: Dict[Technology, TechnologyProfile] = {
    Technology.GASIFICATION: TechnologyProfile(0.8, 800.0, 20.0, 0.6),
    Technology.ANAEROBIC_DIGESTION: TechnologyProfile(0.5, 350.0, 15.0, 0.8),
    Technology.INCINERATION: TechnologyProfile(0.7, 550.0, 25.0, 0.5),
}

DEFAULT_PARAMETERS = ProjectParameters(
    technology=Technology.GASIFICATION,
    capacity_tpd=200.0,
    capital_cost=25_000_000.0,
    operating_cost=1_800_000.0,
    energy_price=120.0,
    discount_rate=8.0,
    lifetime_years=20,
)

CRITERIA = ('economic', 'environmental', 'social', 'technical', 'regulatory')

CRITERIA_DESCRIPTIONS = {
    'economic': 'Capital cost, ROI, O&M costs',
    'environmental': 'Emissions, resource recovery',
    'social': 'Public acceptance, job creation',
    'technical': 'Reliability, scalability, waste compatibility',
    'regulatory': 'Permitting process, compliance requirements, legal risks',
}

DEFAULT_WEIGHTS = {
    'economic': 20,
    'environmental': 30,
    'social': 15,
    'technical': 20,
    'regulatory': 15,
}


def _scores(name, economic, environmental, social, technical, regulatory):
    return TechnologyScores(name, dict(zip(CRITERIA, (economic, environmental, social, technical, regulatory))))


DEFAULT_TECHNOLOGIES = [
    _scores('Gasification', 7.5, 8.2, 6.8, 7.8, 7.0),
    _scores('Anaerobic Digestion', 7.2, 8.8, 8.5, 7.0, 8.5),
    _scores('Incineration', 8.0, 6.0, 5.5, 8.5, 6.0),
    _scores('Pyrolysis', 6.8, 7.5, 6.5, 7.0, 6.5),
    _scores('RDF', 7.0, 7.2, 7.0, 7.5, 7.2),
]


@dataclass(frozen=True)
class ScenarioProfile:
    feedstock: str  # 'residual' or 'organic'
    energy_yield: float  # MWh per ton of feedstock at 100% efficiency
    carbon_per_mwh: float
    cost_per_mwh: float


SCENARIO_PROFILES: Dict[Technology, ScenarioProfile] = {
    Technology.GASIFICATION: ScenarioProfile('residual', 0.8, 0.6, 0.4),
    Technology.ANAEROBIC_DIGESTION: ScenarioProfile('organic', 0.5, 0.7, 0.3),
    Technology.INCINERATION: ScenarioProfile('residual', 0.65, 0.45, 0.35),
}

# revenue per MWh used by the scenario simulator
SCENARIO_REVENUE_PER_MWH = 1.2
