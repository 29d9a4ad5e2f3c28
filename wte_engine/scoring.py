"""Weighted multi-criteria scoring of WtE technologies and slider weight rebalancing."""
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
import pandas as pd
from .technologies import CRITERIA
from .utils import InvalidParameter, RankedResult, TechnologyScores, check_number, round_half_up

logger = logging.getLogger(__name__)

MIN_WEIGHT = 5
MAX_WEIGHT = 50
TOTAL_WEIGHT = 100
MAX_SCORE = 10.0

TechnologyInput = Union[TechnologyScores, Mapping[str, Any]]


def validate_weights(weights: Mapping[str, float], require_total=True, integral=False) -> Dict[str, float]:
    if not isinstance(weights, Mapping):
        raise InvalidParameter(f'weights must be a mapping, got {type(weights).__name__}')
    unknown = sorted(set(weights) - set(CRITERIA))
    missing = [c for c in CRITERIA if c not in weights]
    if unknown or missing:
        raise InvalidParameter(f'weights must cover {list(CRITERIA)}; unknown={unknown} missing={missing}')
    out = {}
    for c in CRITERIA:
        w = check_number(f'weight[{c}]', weights[c])
        if not 0 <= w <= TOTAL_WEIGHT:
            raise InvalidParameter(f'weight[{c}] must be within [0, {TOTAL_WEIGHT}], got {w}')
        if integral:
            if w != int(w):
                raise InvalidParameter(f'weight[{c}] must be a whole percentage, got {w}')
            w = int(w)
        out[c] = w
    if require_total and sum(out.values()) != TOTAL_WEIGHT:
        raise InvalidParameter(f'weights must total {TOTAL_WEIGHT}, got {sum(out.values())}')
    return out


def _clamp_others(new: Dict[str, int], others: List[str]):
    # clip, then freed units go to the smallest weight, missing ones come from the largest
    for c in others:
        new[c] = min(max(new[c], MIN_WEIGHT), MAX_WEIGHT)
    excess = TOTAL_WEIGHT - sum(new.values())
    while excess > 0:
        c = min((c for c in others if new[c] < MAX_WEIGHT), key=lambda k: new[k])
        new[c] += 1
        excess -= 1
    while excess < 0:
        c = max((c for c in others if new[c] > MIN_WEIGHT), key=lambda k: new[k])
        new[c] -= 1
        excess += 1


def rebalance(current: Mapping[str, int], changed: str, new_value: float, strict=True) -> Dict[str, int]:
    """Set one weight and scale the other four so the vector still totals 100.

    Scaled weights round half up; a positive rounding error goes to the
    largest untouched weight, a negative one is taken a unit at a time from
    whichever untouched weight is largest. ``strict`` keeps every weight in
    [5, 50]; without it large edits can leave that range. Returns a new dict.
    """
    weights = validate_weights(current, require_total=True, integral=True)
    if changed not in CRITERIA:
        raise InvalidParameter(f'unknown criterion: {changed!r}')
    v = check_number('new_value', new_value)
    if not 0 <= v <= TOTAL_WEIGHT:
        raise InvalidParameter(f'new_value must be within [0, {TOTAL_WEIGHT}], got {v}')
    v = round_half_up(v)
    if strict:
        v = min(max(v, MIN_WEIGHT), MAX_WEIGHT)

    old = weights[changed]
    if v == old:
        return dict(weights)

    others = [c for c in CRITERIA if c != changed]
    others_sum = TOTAL_WEIGHT - old
    remaining = TOTAL_WEIGHT - v
    new = {changed: v}
    if others_sum > 0:
        # multiply before dividing so exact halves stay exact
        for c in others:
            new[c] = round_half_up(weights[c] * remaining / others_sum)
    else:
        share, extra = divmod(remaining, len(others))
        for i, c in enumerate(others):
            new[c] = share + (1 if i < extra else 0)

    error = TOTAL_WEIGHT - sum(new.values())
    if error > 0:
        new[max(others, key=lambda k: new[k])] += error
    while error < 0:
        # others total more than remaining >= 0, so the largest is above zero
        new[max(others, key=lambda k: new[k])] -= 1
        error += 1
    if strict:
        _clamp_others(new, others)
    return {c: new[c] for c in CRITERIA}


def _coerce_technology(item: TechnologyInput) -> TechnologyScores:
    if isinstance(item, TechnologyScores):
        name, raw = item.name, item.scores
    elif isinstance(item, Mapping) and 'name' in item:
        name = item['name']
        raw = item['scores'] if 'scores' in item else {c: item.get(c) for c in CRITERIA}
    else:
        raise InvalidParameter(f'technology record must have a name and scores, got {item!r}')
    if not isinstance(raw, Mapping):
        raise InvalidParameter(f'scores for {name!r} must be a mapping')
    scores = {}
    for c in CRITERIA:
        if c not in raw:
            raise InvalidParameter(f'{name!r} is missing a {c} score')
        s = check_number(f'{name}.{c}', raw[c])
        if not 0 <= s <= MAX_SCORE:
            raise InvalidParameter(f'{name}.{c} must be within [0, {MAX_SCORE:g}], got {s}')
        scores[c] = s
    return TechnologyScores(str(name), scores)


def score(technologies: Iterable[TechnologyInput], weights: Mapping[str, float]) -> List[RankedResult]:
    """Weighted totals per technology, best first; ties keep their input order."""
    w = validate_weights(weights, require_total=False)
    if sum(w.values()) != TOTAL_WEIGHT:
        logger.warning('Scoring with weights totalling %s instead of %d', sum(w.values()), TOTAL_WEIGHT)

    rows = []
    for tech in map(_coerce_technology, technologies):
        weighted = {c: tech.scores[c] * (w[c] / 100.0) for c in CRITERIA}
        rows.append((tech.name, weighted, sum(weighted[c] for c in CRITERIA)))

    ranked = sorted(rows, key=lambda r: r[2], reverse=True)
    return [
        RankedResult(technology_name=name, weighted=weighted, total_score=total, rank=i)
        for i, (name, weighted, total) in enumerate(ranked, start=1)
    ]


def strengths(tech: TechnologyInput, top: int = 3) -> List[str]:
    """Criteria on which ``tech`` scores highest, best first."""
    t = _coerce_technology(tech)
    return sorted(CRITERIA, key=lambda c: t.scores[c], reverse=True)[:top]


def recommend(ranked: List[RankedResult], technologies: Iterable[TechnologyInput]) -> Optional[Dict[str, Any]]:
    if not ranked:
        return None
    best = ranked[0]
    by_name = {t.name: t for t in map(_coerce_technology, technologies)}
    tech = by_name.get(best.technology_name)
    return {
        'technology': best.technology_name,
        'total_score': best.total_score,
        'max_score': MAX_SCORE,
        'strengths': strengths(tech) if tech is not None else [],
    }


def ranking_table(ranked: List[RankedResult]) -> pd.DataFrame:
    records = []
    for r in ranked:
        row = {'rank': r.rank, 'technology': r.technology_name}
        row.update(r.weighted)
        row['total'] = r.total_score
        records.append(row)
    return pd.DataFrame(records, columns=['rank', 'technology', *CRITERIA, 'total'])
