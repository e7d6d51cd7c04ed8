import math

from app.utils.errors import ValidationError

MIN_SCORE = 0
MAX_SCORE = 100


def resolve_final_score(auto_score, manual_score):
    """Manual score wins over the automatic one; None when neither is set."""
    if manual_score is not None:
        return manual_score
    return auto_score


def validate_score(value, field='score'):
    """Coerce an optional score to a number in 0..100, raising ValidationError otherwise."""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be a number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number')
    if not math.isfinite(number) or not MIN_SCORE <= number <= MAX_SCORE:
        raise ValidationError(f'{field} must be between {MIN_SCORE} and {MAX_SCORE}')
    return int(number) if number.is_integer() else number
