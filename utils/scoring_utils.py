# backend/utils/scoring_utils.py


def clamp_score(score, default=50.0, min_val=0.0, max_val=100.0):
    """
    Coerces a model-provided score into the [min_val, max_val] range.
    Non-numeric values fall back to `default`.
    """
    try:
        value = float(score)
    except (TypeError, ValueError):
        return float(default)

    if value != value:  # NaN
        return float(default)

    return max(min_val, min(max_val, value))


def weighted_average(scores, weights):
    """
    Computes a weighted average of the scores that are present.
    Example:
        scores = {'technical': 80, 'communication': 70}
        weights = {'technical': 0.5, 'communication': 0.3, 'confidence': 0.2}
    """
    present = {k: v for k, v in scores.items() if v is not None}
    total_weight = sum(weights.get(k, 0) for k in present)
    if not total_weight:
        return None
    final_score = sum(present[k] * weights.get(k, 0) for k in present) / total_weight
    return round(final_score, 1)


def ats_compatibility(score):
    """
    Maps a 0-100 ATS score to the High/Medium/Low label used in reports.
    """
    if score >= 80:
        return "High"
    elif score >= 60:
        return "Medium"
    else:
        return "Low"
