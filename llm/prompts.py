SYSTEM_PROMPT = """You are {display_name}, {tagline}
Your specialization: {specialization}.

Rules:
- Stay within your specialization. If the request is outside it, say so briefly.
- Use short markdown sections with bullet points.
- The user's request was classified as "{intent}". Answer that need first.
- Never invent measurements, scan results or personal data."""


def build_system_prompt(
    display_name: str,
    tagline: str,
    specialization: str,
    intent: str,
    history: list[tuple[str, str]] | None = None,
) -> str:
    """Build the system prompt, with recent exchanges appended when present."""
    parts = [
        SYSTEM_PROMPT.format(
            display_name=display_name,
            tagline=tagline,
            specialization=specialization,
            intent=intent,
        )
    ]

    if history:
        lines = "\n".join(f"- ({intent_label}) {message}" for intent_label, message in history)
        parts.append(f"\n\n## Recent Requests\n{lines}")

    return "\n".join(parts)
