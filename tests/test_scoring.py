import pytest

from app.utils.errors import ValidationError
from app.utils.scoring import resolve_final_score, validate_score


@pytest.mark.parametrize('auto, manual, expected', [
    (5, 8, 8),
    (5, None, 5),
    (None, None, None),
    (None, 0, 0),
    (90, 0, 0),
])
def test_manual_score_wins(auto, manual, expected):
    assert resolve_final_score(auto, manual) == expected


@pytest.mark.parametrize('value, expected', [(None, None), ('', None), (0, 0), ('75', 75), (99.5, 99.5), (100, 100)])
def test_validate_score_accepts(value, expected):
    assert validate_score(value) == expected


@pytest.mark.parametrize('value', [-1, 101, 'abc', True, float('nan'), [1]])
def test_validate_score_rejects(value):
    with pytest.raises(ValidationError):
        validate_score(value, 'manual_score')
