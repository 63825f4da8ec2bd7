"""
Keyword tagger for book and thread text.

Maps free text (titles, descriptions, subject headings) onto the fixed
vocabularies the catalogue filters on: tone, themes, pace, professions and
"best for" audiences. Matching is case-insensitive substring matching with no
stemming, weighting or negation handling; several tags may fire for the same
text and that is expected.

The vocabularies live in an immutable ``TaggerVocabulary`` so that callers
(and tests) can swap in a smaller one.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple
import logging
import re

from chapterone.models import Pace

logger = logging.getLogger(__name__)

# Open Library subjects look like "Fiction -- Science Fiction", Google categories like "Fiction / Fantasy"
SUBJECT_SEPARATOR = re.compile(r"--|/")

FAST_PAGE_LIMIT = 300
SLOW_PAGE_LIMIT = 600


# Each tone fires on any of its cues; the tone word itself is always the first cue
DEFAULT_TONES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Humorous", ("humorous", "humor")),
    ("Dark", ("dark",)),
    ("Lighthearted", ("lighthearted",)),
    ("Serious", ("serious",)),
    ("Emotional", ("emotional",)),
    ("Inspirational", ("inspirational",)),
    ("Romantic", ("romantic",)),
    ("Suspenseful", ("suspenseful", "suspense")),
    ("Mysterious", ("mysterious", "mystery")),
    ("Thoughtful", ("thoughtful",)),
    ("Uplifting", ("uplifting",)),
    ("Philosophical", ("philosophical",)),
    ("Dramatic", ("dramatic",)),
    ("Intense", ("intense",)),
    ("Comforting", ("comforting",)),
    ("Melancholic", ("melancholic",)),
    ("Hopeful", ("hopeful",)),
    ("Scientific", ("scientific",)),
)

DEFAULT_THEMES: Tuple[str, ...] = (
    "Love", "Friendship", "Family", "Coming of Age", "Identity",
    "Social Issues", "Politics", "Philosophy", "Science", "Nature",
    "Adventure", "Mystery", "Fantasy", "Science Fiction", "History",
    "Travel", "Self-Discovery", "Courage", "Loss", "Redemption",
    "Technology", "Magic", "Survival", "War", "Peace", "Justice",
)

DEFAULT_PROFESSION_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Product Management", ("product", "user experience", "customer", "market", "roadmap", "innovation", "feature", "strategy", "prioritization", "agile")),
    ("UX/UI Design", ("design", "user interface", "ux", "ui", "usability", "creative", "visual", "prototype", "accessibility", "wireframe")),
    ("Sales", ("sales", "negotiation", "customer", "pitch", "closing", "persuasion", "client", "revenue", "deal", "objection")),
    ("Marketing", ("marketing", "brand", "campaign", "strategy", "social media", "audience", "messaging", "content", "analytics", "promotion")),
    ("Software Engineering", ("software", "engineer", "code", "development", "programming", "technical", "architecture", "algorithm", "debugging", "testing")),
    ("Data Science", ("data", "analytics", "statistics", "machine learning", "ai", "artificial intelligence", "model", "prediction", "visualization", "insight")),
    ("Leadership", ("leadership", "management", "team", "vision", "inspiration", "strategy", "executive", "coach", "decision", "influence")),
    ("Project Management", ("project", "management", "timeline", "deadline", "resources", "planning", "coordination", "risk", "delivery", "milestone")),
    ("Finance", ("finance", "investment", "capital", "budget", "money", "valuation", "accounting", "risk", "portfolio", "profit")),
    ("Human Resources", ("human resources", "hr", "talent", "hiring", "recruitment", "culture", "people", "training", "performance", "benefit")),
    ("Entrepreneurship", ("startup", "entrepreneur", "founder", "venture", "business model", "innovation", "risk", "growth", "scaling", "disruption")),
    ("Consulting", ("consulting", "advisory", "problem-solving", "strategy", "analysis", "recommendation", "stakeholder", "framework", "client", "business")),
)

DEFAULT_SUBJECT_PROFESSIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("business", ("Leadership", "Entrepreneurship", "Marketing", "Sales", "Finance")),
    ("leadership", ("Leadership", "Project Management")),
    ("management", ("Leadership", "Project Management", "Human Resources")),
    ("economics", ("Finance", "Consulting")),
    ("technology", ("Software Engineering", "Data Science", "Product Management")),
    ("computer science", ("Software Engineering", "Data Science")),
    ("design", ("UX/UI Design", "Product Management")),
    ("psychology", ("Human Resources", "Leadership", "Sales", "Marketing")),
    ("self-help", ("Leadership", "Entrepreneurship")),
    ("science", ("Data Science", "Software Engineering")),
    ("innovation", ("Product Management", "Entrepreneurship")),
    ("startups", ("Entrepreneurship", "Product Management")),
    ("marketing", ("Marketing",)),
    ("sales", ("Sales",)),
    ("finance", ("Finance",)),
    ("human resources", ("Human Resources",)),
)

# Evaluated top to bottom; the first pattern found in the search term wins
DEFAULT_PROFESSION_TERM_RULES: Tuple[Tuple[str, str], ...] = (
    ("product", "Product Management"),
    ("pm", "Product Management"),
    ("product manager", "Product Management"),
    ("design", "UX/UI Design"),
    ("designer", "UX/UI Design"),
    ("ux", "UX/UI Design"),
    ("ui", "UX/UI Design"),
    ("user experience", "UX/UI Design"),
    ("user interface", "UX/UI Design"),
    ("sales", "Sales"),
    ("selling", "Sales"),
    ("marketing", "Marketing"),
    ("market", "Marketing"),
    ("engineering", "Software Engineering"),
    ("developer", "Software Engineering"),
    ("programming", "Software Engineering"),
    ("software", "Software Engineering"),
    ("data", "Data Science"),
    ("analytics", "Data Science"),
    ("machine learning", "Data Science"),
    ("leadership", "Leadership"),
    ("leader", "Leadership"),
    ("management", "Leadership"),
    ("project", "Project Management"),
    ("project manager", "Project Management"),
    ("finance", "Finance"),
    ("financial", "Finance"),
    ("hr", "Human Resources"),
    ("human resources", "Human Resources"),
    ("entrepreneur", "Entrepreneurship"),
    ("startup", "Entrepreneurship"),
    ("business", "Entrepreneurship"),
    ("consulting", "Consulting"),
    ("consultant", "Consulting"),
    ("advisory", "Consulting"),
)


@dataclass(frozen=True)
class TaggerVocabulary:
    """Immutable keyword tables driving ``LexicalTagger``."""
    tones: Tuple[Tuple[str, Tuple[str, ...]], ...] = DEFAULT_TONES
    themes: Tuple[str, ...] = DEFAULT_THEMES
    profession_keywords: Tuple[Tuple[str, Tuple[str, ...]], ...] = DEFAULT_PROFESSION_KEYWORDS
    subject_professions: Tuple[Tuple[str, Tuple[str, ...]], ...] = DEFAULT_SUBJECT_PROFESSIONS
    profession_term_rules: Tuple[Tuple[str, str], ...] = DEFAULT_PROFESSION_TERM_RULES
    children_subject_cues: Tuple[str, ...] = ("juvenile", "children")
    young_adult_cues: Tuple[str, ...] = ("young adult",)
    children_text_cues: Tuple[str, ...] = ("children",)


DEFAULT_VOCABULARY = TaggerVocabulary()


@dataclass
class TaggedResult:
    """Tags attached to one provider record before it becomes a book."""
    pace: Pace = Pace.MODERATE
    tone: List[str] = field(default_factory=list)
    themes: List[str] = field(default_factory=list)
    professions: List[str] = field(default_factory=list)
    best_for: List[str] = field(default_factory=list)


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _lower(text: Optional[str]) -> str:
    return text.lower() if text else ""


class LexicalTagger:
    """Substring classifier over a ``TaggerVocabulary``. Pure; safe to share."""

    def __init__(self, vocabulary: TaggerVocabulary = DEFAULT_VOCABULARY):
        self.vocabulary = vocabulary

    def tone(self, text: Optional[str]) -> List[str]:
        lowered = _lower(text)
        if not lowered:
            return []
        return _unique(
            tone for tone, cues in self.vocabulary.tones
            if any(cue.lower() in lowered for cue in cues)
        )

    def themes(self, subjects: Optional[Iterable[str]] = None, text: Optional[str] = None) -> List[str]:
        found: List[str] = []
        for subject in subjects or []:
            if not isinstance(subject, str):
                continue
            head = SUBJECT_SEPARATOR.split(subject, maxsplit=1)[0].strip()
            if head:
                found.append(head)

        lowered = _lower(text)
        if lowered:
            found.extend(theme for theme in self.vocabulary.themes if theme.lower() in lowered)

        return _unique(found)

    def pace(self, page_count: Optional[int] = None) -> Pace:
        if not page_count:
            return Pace.MODERATE
        if page_count < FAST_PAGE_LIMIT:
            return Pace.FAST
        if page_count < SLOW_PAGE_LIMIT:
            return Pace.MODERATE
        return Pace.SLOW

    def professions(self, text: Optional[str] = None, subjects: Optional[Iterable[str]] = None) -> List[str]:
        found: List[str] = []

        lowered = _lower(text)
        if lowered:
            for profession, keywords in self.vocabulary.profession_keywords:
                if any(keyword.lower() in lowered for keyword in keywords):
                    found.append(profession)

        for subject in subjects or []:
            if not isinstance(subject, str):
                continue
            subject_lower = subject.lower()
            for key, professions in self.vocabulary.subject_professions:
                if key in subject_lower:
                    found.extend(professions)

        return _unique(found)

    def best_for(
        self,
        subjects: Optional[Iterable[str]] = None,
        page_count: Optional[int] = None,
        text: Optional[str] = None,
    ) -> List[str]:
        vocab = self.vocabulary
        subject_list = [s.lower() for s in (subjects or []) if isinstance(s, str)]
        lowered = _lower(text)
        audiences: List[str] = []

        if any(cue in s for s in subject_list for cue in vocab.children_subject_cues):
            audiences.append("Children")
        if any(cue in s for s in subject_list for cue in vocab.young_adult_cues):
            audiences.append("Young Adults")

        if page_count:
            if page_count < FAST_PAGE_LIMIT:
                audiences.append("Casual Readers")
            elif page_count > SLOW_PAGE_LIMIT:
                audiences.append("Avid Readers")

        if lowered:
            if any(cue in lowered for cue in vocab.children_text_cues):
                audiences.append("Children")
            if any(cue in lowered for cue in vocab.young_adult_cues):
                audiences.append("Young Adults")

        return _unique(audiences)

    def tag(
        self,
        text: Optional[str] = None,
        subjects: Optional[Iterable[str]] = None,
        page_count: Optional[int] = None,
    ) -> TaggedResult:
        subject_list = list(subjects or [])
        return TaggedResult(
            pace=self.pace(page_count),
            tone=self.tone(text),
            themes=self.themes(subject_list, text),
            professions=self.professions(text, subject_list),
            best_for=self.best_for(subject_list, page_count, text),
        )

    @staticmethod
    def format_search_term(term: str) -> str:
        """Capitalize the first letter and lowercase the rest ("dark ACADEMIA" -> "Dark academia")."""
        term = term.strip()
        return term[:1].upper() + term[1:].lower()

    def profession_for_term(self, term: str) -> str:
        """Map a free-text search term onto a profession bucket name."""
        term = term.strip()
        term_lower = term.lower()
        for pattern, profession in self.vocabulary.profession_term_rules:
            if pattern in term_lower:
                return profession
        return term[:1].upper() + term[1:]


default_tagger = LexicalTagger()
