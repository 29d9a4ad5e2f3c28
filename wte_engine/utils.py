
import math
from dataclasses import dataclass, field, asdict, replace as dc_replace
from enum import Enum
from numbers import Real
from typing import List, Dict, Any, Optional


class InvalidParameter(ValueError):
    """Raised when an input is malformed rather than merely unusual."""


class Technology(str, Enum):
    GASIFICATION = 'gasification'
    ANAEROBIC_DIGESTION = 'anaerobic_digestion'
    INCINERATION = 'incineration'

    @classmethod
    def coerce(cls, value) -> 'Technology':
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower().replace('-', '_').replace(' ', '_')
            if key == 'anaerobic':
                return cls.ANAEROBIC_DIGESTION
            for tech in cls:
                if key in (tech.value, tech.name.lower()):
                    return tech
        raise InvalidParameter(f'unknown technology: {value!r}')

    @property
    def label(self) -> str:
        return self.value.replace('_', ' ').title()


def round_half_up(x: float) -> int:
    # slider/dashboard rounding: 6.5 -> 7, unlike round()
    return int(math.floor(x + 0.5))


def check_number(name: str, value) -> float:
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidParameter(f'{name} must be a number, got {value!r}')
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        raise InvalidParameter(f'{name} must be finite, got {value!r}')
    return value


@dataclass(frozen=True)
class ProjectParameters:
    technology: Technology
    capacity_tpd: float  # tons/day
    capital_cost: float
    operating_cost: float  # annual fixed O&M
    energy_price: float  # currency/MWh
    discount_rate: float  # fraction (0.08) or percent (8)
    lifetime_years: int

    def __post_init__(self):
        object.__setattr__(self, 'technology', Technology.coerce(self.technology))
        for name in ('capacity_tpd', 'capital_cost', 'operating_cost', 'energy_price', 'discount_rate'):
            object.__setattr__(self, name, check_number(name, getattr(self, name)))
        years = check_number('lifetime_years', self.lifetime_years)
        if years != int(years):
            raise InvalidParameter(f'lifetime_years must be an integer, got {self.lifetime_years!r}')
        if years < 0:
            raise InvalidParameter(f'lifetime_years must be >= 0, got {years}')
        object.__setattr__(self, 'lifetime_years', int(years))
        if self.rate <= -1.0:
            raise InvalidParameter(f'discount_rate must be above -100%, got {self.discount_rate}')

    @property
    def rate(self) -> float:
        """Discount rate as a fraction; values >= 1 are read as percentages."""
        r = self.discount_rate
        return r / 100.0 if abs(r) >= 1.0 else r

    def replace(self, **changes) -> 'ProjectParameters':
        return dc_replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectParameters':
        try:
            return cls(**data)
        except TypeError as e:
            raise InvalidParameter(str(e)) from e


@dataclass(frozen=True)
class CashFlowPoint:
    year: int
    period_cash_flow: float
    cumulative_cash_flow: float


@dataclass(frozen=True)
class SensitivityPoint:
    label: str
    variable: str
    delta: float  # fractional perturbation, e.g. -0.1
    value: float  # perturbed input value
    npv: float


def _json_number(x: float) -> Optional[float]:
    return x if math.isfinite(x) else None


@dataclass
class FinancialResult:
    annual_revenue: float
    annual_operating_cost: float
    annual_profit: float
    npv: float
    irr: float  # percent, nan when undefined
    payback_period: float  # years, inf when annual profit <= 0
    cash_flow_series: List[CashFlowPoint]
    generated_energy: float  # MWh/yr
    estimated_emission_reduction: float  # tCO2e/yr
    cost_per_ton: float
    lifetime_years: int
    sensitivity: List[SensitivityPoint] = field(default_factory=list)

    @property
    def irr_defined(self) -> bool:
        return math.isfinite(self.irr)

    @property
    def payback_defined(self) -> bool:
        return math.isfinite(self.payback_period)

    @property
    def feasible(self) -> bool:
        return self.payback_defined and self.payback_period < self.lifetime_years

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['irr'] = _json_number(self.irr)
        d['payback_period'] = _json_number(self.payback_period)
        d['feasible'] = self.feasible
        return d


@dataclass(frozen=True)
class TechnologyScores:
    name: str
    scores: Dict[str, float]  # criterion -> raw score in [0, 10]


@dataclass(frozen=True)
class RankedResult:
    technology_name: str
    weighted: Dict[str, float]
    total_score: float
    rank: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScenarioOutcome:
    technology: Technology
    feedstock: float  # tons/yr fed to the plant
    energy_output: int  # MWh/yr
    carbon_reduction: int  # tCO2e/yr
    operational_cost: int
    landfill_diversion: int  # tons/yr
    revenue_estimate: int
