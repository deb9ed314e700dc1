import re

# Words that carry no signal about a career interest.
STOPWORDS = {
    "a", "an", "and", "the", "of", "in", "to", "for", "on", "with", "by",
    "at", "or", "as", "is", "be", "into", "from", "intro", "introduction",
    "course", "courses", "study", "studies", "topics", "i", "ii", "iii",
    "students", "including", "principles", "fundamentals",
}

_WORD_RE = re.compile(r"[a-z0-9]+")

# A tag hit counts more than a title/description hit.
TAG_WEIGHT = 2.0
TEXT_WEIGHT = 1.0


def tokenize(text: str) -> set[str]:
    """Lowercased content words, with a naive plural fold ('systems' -> 'system')."""
    words = set()
    for w in _WORD_RE.findall(str(text or "").lower()):
        if w in STOPWORDS or len(w) < 2:
            continue
        if len(w) > 3 and w.endswith("s") and not w.endswith("ss"):
            w = w[:-1]
        words.add(w)
    return words


def interest_tokens(interests) -> set[str]:
    if isinstance(interests, str):
        interests = [interests]
    tokens: set[str] = set()
    for phrase in interests or []:
        tokens |= tokenize(phrase)
    return tokens


def lexical_relevance(course: dict, interests) -> float:
    """
    Default relevance score: overlap between interest keywords and the
    course's subject tags (weighted) plus title and description words.

    Deterministic; higher is better; 0 when nothing overlaps.
    """
    wanted = interest_tokens(interests)
    if not wanted:
        return 0.0
    tag_words: set[str] = set()
    for tag in course.get("tags", []) or []:
        tag_words |= tokenize(str(tag).replace("_", " ").replace("-", " "))
    text_words = tokenize(course.get("course_title", "")) | tokenize(course.get("description", ""))

    score = 0.0
    for token in wanted:
        if token in tag_words:
            score += TAG_WEIGHT
        elif token in text_words:
            score += TEXT_WEIGHT
    return score
