import json
import logging
import re

from groq import Groq

from ai_queue import RequestQueue, is_retryable_error, with_retry
from match_cache import MatchCache

logger = logging.getLogger(__name__)

JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)


class AIProviderError(Exception):
    pass


class MatchNarrator:
    """Writes the client-facing explanation of a designer/brief match with Groq."""

    def __init__(self, app=None):
        self.client = None
        self.model = None
        self.max_retries = 2
        self.queue = RequestQueue()
        self.cache = MatchCache()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        config = app.config
        self.model = config['GROQ_MODEL']
        self.max_retries = config['AI_MAX_RETRIES']
        self.queue.configure(
            rate_limit=config['AI_RATE_LIMIT_PER_MINUTE'],
            min_delay=config['AI_DELAY_BETWEEN_REQUESTS'],
        )
        self.cache.configure(
            ttl_seconds=config['MATCH_CACHE_TTL'],
            max_size=config['MATCH_CACHE_MAX_SIZE'],
        )
        self.cache.clear()

        api_key = config.get('GROQ_API_KEY')
        self.client = Groq(api_key=api_key) if api_key else None
        if self.client:
            logger.info('Groq match narrative enabled (%s)', self.model)
        else:
            logger.info('GROQ_API_KEY not set, match narrative disabled')

        app.extensions['match_narrator'] = self

    @property
    def enabled(self):
        return self.client is not None

    def build_prompt(self, designer, brief):
        return f"""Explain why this designer fits this client project. Return ONLY valid JSON.

PROJECT:
Project Type: {brief.project_type}
Industry: {brief.industry}
Budget: {brief.budget or 'Not specified'}
Timeline: {brief.timeline}
Styles: {', '.join(brief.styles or []) or 'Not specified'}
Requirements: {(brief.requirements or 'None specified')[:600]}
Inspiration: {(brief.inspiration or 'None provided')[:300]}

DESIGNER:
Title: {designer.title or 'Designer'}
Experience: {designer.years_experience or 0} years
Location: {designer.city or 'Unknown'}, {designer.country or 'Unknown'}
Styles: {', '.join(designer.styles or [])}
Industries: {', '.join(designer.industries or [])}
Project Types: {', '.join(designer.project_types or [])}
Rating: {designer.rating or 'Unrated'}/5 over {designer.total_projects or 0} projects
Bio: {(designer.bio or '')[:400]}

Return exactly:
{{
  "summary": "2 sentences, honest",
  "reasons": ["specific reason 1", "specific reason 2", "specific reason 3"],
  "strengths": ["strength 1", "strength 2"],
  "risk_level": "low/medium/high"
}}"""

    def parse_response(self, text):
        text = (text or '').replace('```json', '').replace('```', '').strip()
        found = JSON_OBJECT.search(text)
        if not found:
            raise AIProviderError('No JSON found in AI response')

        try:
            data = json.loads(found.group(0))
        except ValueError as e:
            raise AIProviderError(f'Invalid JSON in AI response: {e}') from e

        if not isinstance(data, dict) or not data.get('summary'):
            raise AIProviderError('AI response is missing a summary')

        return {
            'summary': str(data['summary']).strip(),
            'reasons': [str(r) for r in data.get('reasons') or []][:5],
            'strengths': [str(s) for s in data.get('strengths') or []][:5],
            'risk_level': data.get('risk_level') if data.get('risk_level') in ('low', 'medium', 'high') else 'medium',
        }

    def _complete(self, prompt):
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": "Design matchmaker. Be specific and realistic. Return only JSON, no markdown."},
                {"role": "user", "content": prompt}
            ],
            temperature=0.2,
            max_tokens=500
        )
        return response.choices[0].message.content

    def explain(self, designer, brief):
        """Narrative dict for the pairing, or None when unavailable"""

        if not self.enabled:
            return None

        cached = self.cache.get(designer.id, brief.id)
        if cached is not None:
            return cached

        prompt = self.build_prompt(designer, brief)
        try:
            text = with_retry(
                lambda: self.queue.add(self._complete, prompt),
                max_retries=self.max_retries,
                retry_condition=is_retryable_error,
            )
            narrative = self.parse_response(text)
        except Exception as e:
            logger.warning('AI narrative failed for designer %s / brief %s: %s', designer.id, brief.id, e)
            return None

        self.cache.set(designer.id, brief.id, narrative)
        return narrative

    def enrich(self, matches, brief):
        """Attach narrative to matcher results in place"""

        for match in matches:
            narrative = self.explain(match['designer'], brief)
            match['ai_summary'] = narrative['summary'] if narrative else None
            match['personalized_reasons'] = narrative['reasons'] if narrative else []
        return matches


match_narrator = MatchNarrator()
