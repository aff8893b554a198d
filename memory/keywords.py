import re

STOP_WORDS = frozenset("the and or but is are was were a an this that these those".split())
MAX_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 3

MEMORY_TYPES: dict[str, str] = {
    "goal": "Personal Goals & Objectives",
    "fact": "Facts & Information",
    "preference": "Personal Preferences",
    "quirk": "Personal Quirks & Habits",
    "context": "Contextual Information",
    "insight": "Personal Insights",
    "reminder": "Reminders & Tasks",
    "experience": "Life Experiences",
    "relationship": "People & Relationships",
    "learning": "Learning & Knowledge",
}

PRIORITY_LEVELS: dict[str, str] = {
    "critical": "Critical - Always Remember",
    "high": "High Priority",
    "medium": "Medium Priority",
    "low": "Low Priority",
    "archive": "Archived",
}

CONTEXT_TAGS: dict[str, str] = {
    "work": "Work Related",
    "personal": "Personal Life",
    "health": "Health & Wellness",
    "creative": "Creative Projects",
    "learning": "Learning & Growth",
    "relationships": "Social & Relationships",
    "finance": "Financial",
    "travel": "Travel & Adventure",
    "hobbies": "Hobbies & Interests",
    "goals": "Goals & Aspirations",
}

COMMAND_PREFIX = re.compile(r"^(remember|store|save|note|record)\s*", re.IGNORECASE)


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[str]:
    words = re.sub(r"[^\w\s]", "", text.lower()).split()
    keywords = [w for w in words if w not in STOP_WORDS and len(w) >= MIN_KEYWORD_LENGTH]
    return list(dict.fromkeys(keywords))[:limit]


def summarize_content(text: str) -> str:
    sentences = [s.strip() for s in re.split(r"[.!?]", text) if s.strip()]
    if len(sentences) <= 2:
        return text
    return f"{sentences[0]}. {sentences[1]}. (Content summary - {len(sentences)} sentences total)"


def detect_memory_type(content: str) -> str | None:
    lowered = content.lower()
    for name, label in MEMORY_TYPES.items():
        if name in lowered or label.lower().split(" ")[0] in lowered:
            return name
    return None


def detect_priority(content: str) -> str | None:
    lowered = content.lower()
    for name in PRIORITY_LEVELS:
        if name in lowered:
            return name
    return None


def extract_tags(content: str) -> list[str]:
    hashtags = re.findall(r"#(\w+)", content)
    mentions = re.findall(r"@(\w+)", content)
    lowered = content.lower()
    context = [tag for tag in CONTEXT_TAGS if tag in lowered]
    return list(dict.fromkeys(hashtags + mentions + context))


def clean_content(content: str) -> str:
    content = re.sub(r"#\w+", "", content)
    content = re.sub(r"@\w+", "", content)
    content = re.sub(r"!\w+", "", content)
    return re.sub(r"\s{2,}", " ", content).strip()


def parse_memory_input(text: str) -> dict:
    """Split a free-text "remember ..." command into content and metadata.

    Type and priority are None when the text does not name one, so callers
    can apply their own defaults.
    """
    content = COMMAND_PREFIX.sub("", text.strip())
    return {
        "content": clean_content(content),
        "type": detect_memory_type(content),
        "priority": detect_priority(content),
        "tags": extract_tags(content),
    }
