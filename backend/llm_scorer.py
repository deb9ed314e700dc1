import json
import os
import sys
import threading

from openai import OpenAI

from prompt_builder import SYSTEM_PROMPT, build_prompt
from relevance import lexical_relevance


def get_openai_client() -> OpenAI:
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY not set in environment")
    return OpenAI(api_key=api_key)


def _parse_score(raw: str) -> float:
    raw = (raw or "").strip()
    # Strip markdown code fences if the model wraps the JSON
    if raw.startswith("```"):
        lines = raw.splitlines()
        raw = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    parsed = json.loads(raw)
    score = float(parsed["score"])
    return max(0.0, min(10.0, score))


class OpenAIRelevanceScorer:
    """
    Relevance hook backed by a chat-completion call.

    Scores are memoized per (course code, interests) so repeated generations
    with the same inputs see the same numbers. Any API or parse failure falls
    back to the lexical score for that course.
    """

    def __init__(self, client: OpenAI | None = None, model: str | None = None):
        self._client = client
        self.model = model or os.environ.get("OPENAI_MODEL", "gpt-4o-mini")
        self._cache: dict[tuple, float] = {}
        self._lock = threading.Lock()

    def _score_remote(self, course: dict, interests: list[str]) -> float:
        if self._client is None:
            self._client = get_openai_client()
        response = self._client.chat.completions.create(
            model=self.model,
            max_tokens=20,
            temperature=0,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(course, interests)},
            ],
        )
        return _parse_score(response.choices[0].message.content)

    def __call__(self, course: dict, interests) -> float:
        interests = [interests] if isinstance(interests, str) else list(interests or [])
        key = (course.get("course_code"), tuple(interests))
        with self._lock:
            if key in self._cache:
                return self._cache[key]
        try:
            score = self._score_remote(course, interests)
        except Exception as exc:
            print(
                f"[WARN] Relevance scoring failed for {course.get('course_code')}; "
                f"using lexical score: {exc}",
                file=sys.stderr,
            )
            score = lexical_relevance(course, interests)
        with self._lock:
            self._cache.setdefault(key, score)
            return self._cache[key]


def get_scorer(name: str | None = None):
    """Scorer selected by name or RELEVANCE_SCORER env: 'lexical' (default) or 'openai'."""
    name = (name or os.environ.get("RELEVANCE_SCORER", "lexical")).strip().lower()
    if name == "openai":
        return OpenAIRelevanceScorer()
    return lexical_relevance
