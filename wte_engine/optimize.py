
from typing import Dict, List, Tuple
from sklearn.preprocessing import MinMaxScaler
import numpy as np
from .utils import ProjectParameters, Technology
from .finance import compute_financials


def compare_technologies(base: ProjectParameters, weights: Tuple[float,float]=(0.5,0.5)) -> Tuple[Dict, List[Dict]]:
    """Run the same site through every technology.
    Rank by weighted normalized (NPV, tCO2e avoided per year). Returns best row and all rows.
    """
    rows = []
    for tech in Technology:
        res = compute_financials(base.replace(technology=tech))
        rows.append({
            'technology': tech.value,
            'npv': res.npv,
            'irr': res.irr,
            'payback': res.payback_period,
            'co2': res.estimated_emission_reduction,
            'energy': res.generated_energy,
            'feasible': res.feasible,
        })

    npvs = np.array([r['npv'] for r in rows]).reshape(-1,1)
    co2s = np.array([r['co2'] for r in rows]).reshape(-1,1)
    npvs_n = MinMaxScaler().fit_transform(npvs).flatten()
    co2s_n = MinMaxScaler().fit_transform(co2s).flatten()

    w1, w2 = weights
    scores = w1*npvs_n + w2*co2s_n
    for r, s in zip(rows, scores):
        r['score'] = float(s)
    best_idx = int(np.argmax(scores))
    return rows[best_idx], rows
