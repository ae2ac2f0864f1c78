import pytest
from peerreview.errors import ValidationError
from peerreview.models.review import ReviewDisposition
from peerreview.services.rubric_scorer import RubricScorer, present_score


def scores(functionality=None, code_quality=None, best_practices=None, documentation=None):
    return {
        'functionality': functionality,
        'code_quality': code_quality,
        'best_practices': best_practices,
        'documentation': documentation
    }


class TestRubricScorer:
    """Test weighted rubric scoring"""

    def test_weighted_overall_score(self):
        """Scores 90/85/80/70 give 84.5 and are approved"""
        result = RubricScorer().score(scores(90, 85, 80, 70))

        assert result.overall_score == pytest.approx(84.5, abs=1e-9)
        assert result.disposition == ReviewDisposition.APPROVED

    @pytest.mark.parametrize('missing', ['functionality', 'code_quality', 'best_practices', 'documentation'])
    def test_missing_sub_score_is_pending(self, missing):
        """Any absent sub-score means no overall score"""
        values = scores(90, 85, 80, 70)
        values[missing] = None

        result = RubricScorer().score(values)
        assert result.overall_score is None
        assert result.disposition == ReviewDisposition.PENDING

    def test_omitted_keys_count_as_missing(self):
        result = RubricScorer().score({'functionality': 100})
        assert result.overall_score is None
        assert result.disposition == ReviewDisposition.PENDING

    @pytest.mark.parametrize('value, expected', [
        (0, ReviewDisposition.CHANGES_REQUESTED),
        (59.99, ReviewDisposition.CHANGES_REQUESTED),
        (60, ReviewDisposition.COMPLETED),
        (79.99, ReviewDisposition.COMPLETED),
        (80, ReviewDisposition.APPROVED),
        (100, ReviewDisposition.APPROVED),
    ])
    def test_thresholds(self, value, expected):
        """Uniform scores make the overall equal the sub-score"""
        result = RubricScorer().score(scores(value, value, value, value))

        assert result.overall_score == pytest.approx(value, abs=1e-9)
        assert result.disposition == expected

    def test_zero_overall_requests_changes(self):
        result = RubricScorer().score(scores(0, 0, 0, 0))
        assert result.overall_score == 0
        assert result.disposition == ReviewDisposition.CHANGES_REQUESTED

    def test_functionality_dominates(self):
        """Functionality carries the heaviest weight"""
        result = RubricScorer().score(scores(100, 50, 50, 50))
        assert result.overall_score == pytest.approx(70.0, abs=1e-9)
        assert result.disposition == ReviewDisposition.COMPLETED

    @pytest.mark.parametrize('bad', [-1, 100.5, 'ninety', True, float('nan')])
    def test_out_of_range_scores_rejected(self, bad):
        with pytest.raises(ValidationError):
            RubricScorer().score(scores(bad, 85, 80, 70))

    def test_unknown_dimension_rejected(self):
        values = scores(90, 85, 80, 70)
        values['style'] = 50
        with pytest.raises(ValidationError):
            RubricScorer().score(values)

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValidationError):
            RubricScorer(weights={
                'functionality': 0.5,
                'code_quality': 0.3,
                'best_practices': 0.2,
                'documentation': 0.1
            })

    def test_weights_must_name_every_dimension(self):
        with pytest.raises(ValidationError):
            RubricScorer(weights={'functionality': 0.7, 'code_quality': 0.3})

    def test_overall_keeps_full_precision(self):
        """Rounding only happens when presenting the score"""
        result = RubricScorer().score(scores(91, 77, 63, 55))
        expected = 0.4 * 91 + 0.3 * 77 + 0.2 * 63 + 0.1 * 55

        assert result.overall_score == pytest.approx(expected, abs=1e-9)
        assert result.overall_score != round(result.overall_score)
        assert present_score(result.overall_score) == 78

    def test_present_score(self):
        assert present_score(None) is None
        assert present_score(84.5) == 85
        assert present_score(84.49) == 84
