"""Gemini client for AI question suggestions (google-genai SDK).

The API key is optional for the service as a whole. Its absence is only
reported when a suggestion is actually requested, and the route turns it
into 503 Service Unavailable.
"""

from functools import lru_cache

from google import genai
from app.config import get_settings


@lru_cache(maxsize=1)
def _client_for(api_key: str) -> genai.Client:
    # One client per key; it owns an HTTP connection pool
    return genai.Client(api_key=api_key)


def get_gemini_client() -> genai.Client:
    """Return the Gemini client for the configured GEMINI_API_KEY.

    Raises:
        ValueError: If GEMINI_API_KEY is not set.

    Example:
        >>> client = get_gemini_client()
        >>> response = client.models.generate_content(
        ...     model="gemini-3-flash-preview",
        ...     contents=["Generate 1 professional exam questions for Class 10 Mathematics."]
        ... )
    """
    api_key = get_settings().gemini_api_key
    if not api_key:
        raise ValueError(
            "GEMINI_API_KEY not set. AI question suggestions are disabled; "
            "set the variable in .env or the environment to enable them."
        )
    return _client_for(api_key)
