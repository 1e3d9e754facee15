from typing import Iterable

from backend import TurnEntry


def speaker_label(entry: TurnEntry) -> str:
    return f"{entry.speaker_name or entry.speaker} ({entry.speaker})"


def render_turn_feedback(game_type: str, speaker_name: str, content: str) -> str:
    return f"""You are an expert AI game master and creative writing coach for collaborative storytelling games.

Current game theme: {game_type}

Player {speaker_name} just contributed: "{content}"

Provide concise, encouraging feedback focusing on:
1. STAR RATING: Creativity and originality (1-5 stars ⭐)
2. What worked well in their contribution
3. ONE specific suggestion for improvement
4. How to build on the story effectively

Keep response under 3 sentences. Format:
"[⭐⭐⭐⭐⭐] Great continuation! [Positive feedback]. [Improvement suggestion]. Keep building the narrative!"

Example responses:
"[⭐⭐⭐⭐] Nice world-building detail! Your description of the ancient temple adds atmosphere. Try developing the characters' emotions in response to discoveries. Continue the adventure!"
"[⭐⭐⭐] Good plot twist! The unexpected alliance creates intrigue. Add more sensory details to immerse readers. What happens next?\""""


def render_moderation_report(history: Iterable[TurnEntry], flagged: Iterable[TurnEntry]) -> str:
    conversation_log = "\n".join(f"{speaker_label(entry)}: {entry.content}" for entry in history)
    flagged = list(flagged)
    if flagged:
        violations = "\n".join(
            f'{i}. Player {speaker_label(entry)}: "{entry.content}" - Explicit language violation'
            for i, entry in enumerate(flagged, start=1)
        )
    else:
        violations = "None found"

    return f"""You are an advanced behavioral analyst and conversation moderator for a collaborative storytelling game.

Review this conversation for inappropriate content and collaboration quality:

{conversation_log or "(no turns yet)"}

Provide a structured analysis:

OVERALL COLLABORATION RATING: [Excellent/Good/Fair/Poor]

VIOLATIONS DETECTED:
{violations}

BEHAVIORAL ANALYSIS:
- Individual player engagement and creativity
- Respectful communication patterns
- Narrative building collaboration
- Any concerning behavioral patterns

RECOMMENDATIONS:
- Specific suggestions for improved collaboration
- Guidance on appropriate content and language
- Tips for better creative storytelling"""


def format_warning(violations: int, threshold: int) -> str:
    return f"[⚠️ WARNING: Inappropriate language detected - Violation {violations} of {threshold}]\n\n"
