
from typing import List, Dict, Tuple
from .utils import ProjectParameters
from .finance import annual_operations

def annual_carbon(p: ProjectParameters) -> List[Dict[str, float]]:
    """Return list of dict per year with energy exported and avoided emissions."""
    ops = annual_operations(p)
    rows = []
    cumulative = 0.0
    for t in range(1, p.lifetime_years+1):
        avoided = ops['carbon_reduction']
        cumulative += avoided
        rows.append({
            'year': t,
            'energy_mwh': ops['generated_energy'],
            'avoided_tCO2e': avoided,
            'cumulative_avoided_tCO2e': cumulative,
        })
    return rows


def totals(rows: List[Dict]) -> Tuple[float, float]:
    co2e_avoided_total = sum(r['avoided_tCO2e'] for r in rows)
    energy_total = sum(r['energy_mwh'] for r in rows)
    return co2e_avoided_total, energy_total
