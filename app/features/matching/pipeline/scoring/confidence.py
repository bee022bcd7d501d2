from app.models.domain.match_domain import ConfidenceLevel

HIGH_CONFIDENCE_THRESHOLD = 85
MEDIUM_CONFIDENCE_THRESHOLD = 65


def classify_confidence(match_score: int) -> ConfidenceLevel:
    if match_score >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if match_score >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.EXPERIMENTAL
