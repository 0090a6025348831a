# matching.py
import logging

from models import Designer, Match

logger = logging.getLogger(__name__)

BASE_SCORE = 50
MAX_SCORE = 95
TOP_MATCHES = 3
UNAVAILABLE = ('busy', 'unavailable')


def _lower_list(values):
    return [v.lower() for v in (values or []) if isinstance(v, str)]


def score_designer(designer, brief):
    """Calculate match score 50-95 and the reasons behind it"""

    score = BASE_SCORE
    reasons = []

    # 1. Industry match (20 points)
    brief_industry = (brief.industry or '').strip().lower()
    if brief_industry and any(
        ind in brief_industry or brief_industry in ind
        for ind in _lower_list(designer.industries)
    ):
        score += 20
        reasons.append('Industry expertise match')

    # 2. Style match (15 points)
    designer_styles = _lower_list(designer.styles)
    matching_styles = [
        style for style in (brief.styles or [])
        if any(style.lower() in d_style for d_style in designer_styles)
    ]
    if matching_styles:
        score += 15
        reasons.append(f"Matching design styles: {', '.join(matching_styles)}")

    # 3. Experience (10 points)
    years = designer.years_experience or 0
    if years >= 5:
        score += 10
        reasons.append(f'{years} years of experience')

    # 4. Rating (5 points)
    rating = designer.rating or 0
    if rating >= 4.5:
        score += 5
        reasons.append(f'High rating: {rating}/5')

    if not reasons:
        reasons.append('Available for new projects')
        reasons.append('Verified designer')

    return min(MAX_SCORE, score), reasons


class SimpleMatcher:
    """Rule-based scorer over the approved designer pool"""

    def __init__(self, limit=TOP_MATCHES):
        self.limit = limit

    def eligible_designers(self, brief):
        designers = Designer.query.filter(
            Designer.is_verified.is_(True),
            Designer.is_approved.is_(True),
            Designer.availability.notin_(UNAVAILABLE),
        ).order_by(Designer.id).all()

        if not designers:
            logger.info('No available designers found')
            return []

        # Never offer the same designer to a client twice
        if brief.client_id:
            excluded = {
                row.designer_id
                for row in Match.query.with_entities(Match.designer_id).filter_by(client_id=brief.client_id)
            }
            designers = [d for d in designers if d.id not in excluded]
            if not designers:
                logger.info('All designers already matched with client %s', brief.client_id)

        return designers

    def find_matches(self, brief):
        """Return the top designers for a brief, best first"""

        designers = self.eligible_designers(brief)
        logger.info('Scoring %d designers for brief %s', len(designers), brief.id)

        ranked = []
        for designer in designers:
            score, reasons = score_designer(designer, brief)
            ranked.append({
                'designer': designer,
                'score': score,
                'reasons': reasons,
            })

        # Sort by match score descending
        ranked.sort(key=lambda x: x['score'], reverse=True)

        return ranked[:self.limit]
