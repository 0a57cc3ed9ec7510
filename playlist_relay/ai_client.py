"""
AI Client: song suggestions from OpenAI for the AI Playlist Relay.

The model gets a plain-text prompt listing the user's tracks and answers
with one "Song Name - Artist" per line; recommendation_parser turns that
text into Tracks. One call per request, no retries.
"""

import logging

from openai import OpenAI, OpenAIError

from .errors import NotConfiguredError, UpstreamCompletionError
from .recommendation_parser import parse_recommendations

log = logging.getLogger(__name__)

DEFAULT_MODEL = 'gpt-4'
DEFAULT_COUNT = 5

PROMPT_FORMAT_HINT = (
    'Answer with one song per line in the form "Song Name - Artist" '
    'and nothing else.'
)


def build_prompt(tracks, count=DEFAULT_COUNT):
    """Build the recommendation prompt. Track order is kept as given."""
    listing = ', '.join(t.descriptor for t in tracks)
    return (f'Based on these songs: {listing}, suggest {count} similar tracks '
            f'for a new playlist. {PROMPT_FORMAT_HINT}')


class AIClient:
    """OpenAI chat-completions client for playlist suggestions."""

    def __init__(self, openai_api_key=None, model=DEFAULT_MODEL,
                 suggestion_count=DEFAULT_COUNT, openai_client=None):
        self.model = model
        self.suggestion_count = suggestion_count
        self.openai_client = openai_client
        if self.openai_client is None and openai_api_key:
            self.openai_client = OpenAI(api_key=openai_api_key, max_retries=0)

    @classmethod
    def from_settings(cls, settings, **kwargs):
        return cls(
            openai_api_key=settings.openai_api_key or None,
            model=settings.openai_model,
            suggestion_count=settings.suggestion_count,
            **kwargs,
        )

    def complete(self, prompt):
        """Send one prompt and return the raw text of the first choice."""
        if not self.openai_client:
            raise NotConfiguredError('No AI provider configured')
        try:
            response = self.openai_client.chat.completions.create(
                model=self.model,
                messages=[{'role': 'user', 'content': prompt}],
            )
        except OpenAIError as e:
            log.error(f'OpenAI completion failed: {e}')
            raise UpstreamCompletionError() from e

        if not response.choices or response.choices[0].message.content is None:
            log.error('OpenAI completion returned no content')
            raise UpstreamCompletionError()

        usage = getattr(response, 'usage', None)
        if usage:
            log.info(f'Token usage: in={usage.prompt_tokens}, '
                     f'out={usage.completion_tokens}, total={usage.total_tokens}')
        return response.choices[0].message.content

    def request_recommendations(self, prompt):
        """Ask the model for suggestions and parse them into Tracks."""
        tracks = parse_recommendations(self.complete(prompt))
        log.info(f'AI suggested {len(tracks)} tracks')
        return tracks

    def recommend(self, tracks, count=None):
        """Build a prompt from the given tracks and request suggestions."""
        prompt = build_prompt(tracks, count or self.suggestion_count)
        return self.request_recommendations(prompt)
