"""
Elora Assistant: Instruction Builder

Every prompt has two messages:
1. system: formatting rules + disclosure rule for this attempt + context
2. user:   action-specific framing + the learner's message (+ image)

Deterministic. Same context in, same messages out.
"""

from typing import Any, Dict, List

from elora.config import MAX_ATTEMPT
from elora.tutor.context import Action, TutoringContext
from elora.tutor.disclosure import disclosure_prohibited


ELORA_BASE = """You are Elora, a calm and precise teaching assistant.

FORMAT RULES (STRICT):
- Plain text only. No Markdown: no headings, no bold, no italics, no bullets with asterisks, no code blocks, no links.
- No LaTeX or math markup. Write math the way a person types it: "5 divided by 4 = 1.25", "3 × 4 = 12", "sqrt(16) = 4", "x^2".
- Short paragraphs. Numbered steps are fine ("1.", "2.").

TONE:
- Be direct. No hedging: never say "I think", "maybe", "it might be", "I'm not sure", "as an AI".
- If information you need is missing, ask exactly ONE short clarifying question and stop.
"""

IMAGE_RULES = """
IMAGE:
- The learner attached an image. First, briefly describe what the image shows (one or two sentences).
- If the image is unreadable or unclear, ask at most ONE clarifying question about it.
"""

REWRITE_DIRECTIVE = """
REWRITE TASK:
The reply below broke the disclosure rule. Rewrite it.
- Remove any final answer and any final-answer phrasing ("the answer is", "final answer", "= <number>", a line with just the result).
- Keep only hints: point at the next step to check and ask the learner to try it.
- Keep the first line exactly as it is if it is "Correct" or "Not quite".
- Plain text only.
"""


def get_disclosure_instruction(ctx: TutoringContext) -> str:
    """Disclosure rule for this attempt. Only check-mode students are gated."""
    if disclosure_prohibited(ctx):
        return f"""
DISCLOSURE (attempt {ctx.attempt} of {MAX_ATTEMPT}):
- Do NOT state the final answer or the final result, in any form.
- Give hints only. Identify the FIRST step that went wrong and say what to look at next.
- Never write "the answer is", "final answer", or "= <number>" for the final result.
- End by inviting the learner to try the next step themselves.
"""
    if ctx.effective_action == Action.CHECK and ctx.attempt >= MAX_ATTEMPT:
        return f"""
DISCLOSURE (attempt {ctx.attempt} of {MAX_ATTEMPT}):
- The learner has tried enough. You may now state the final result, with the short working that leads to it.
"""
    return ""


def get_context_block(ctx: TutoringContext) -> str:
    parts = [f"Role: {ctx.role.value}"]
    for label, value in (
        ("Country", ctx.country),
        ("Level", ctx.level),
        ("Subject", ctx.subject),
        ("Topic", ctx.topic),
    ):
        if value:
            parts.append(f"{label}: {value}")
    return "\n\nCONTEXT:\n" + "\n".join(parts)


def build_system_prompt(ctx: TutoringContext) -> str:
    content = ELORA_BASE
    content += get_disclosure_instruction(ctx)
    if ctx.has_image:
        content += IMAGE_RULES
    content += get_context_block(ctx)
    return content


# ─── User Instructions per Action ────────────────────────────────────────────

ACTION_INSTRUCTIONS = {
    Action.CHECK: (
        'Check the learner\'s answer. The FIRST line of your reply must be exactly "Correct" or "Not quite". '
        "Then give short numbered steps."
    ),
    Action.EXPLAIN: (
        "Explain this in short numbered steps suited to the learner's level. "
        "End with one optional quick question to check understanding."
    ),
    Action.LESSON: (
        "Write a structured lesson plan: lesson objectives, a warm-up or hook, main teaching points "
        "with an example each, guided practice, independent practice, and an exit ticket."
    ),
    Action.WORKSHEET: (
        "Write a practice worksheet: Section A core skills, Section B application, "
        "Section C challenge, then an answer key with clear step-by-step answers."
    ),
    Action.ASSESSMENT: (
        "Write an assessment: Part A multiple choice, Part B short answer, "
        "Part C extended response, then a marking guide with marks per question."
    ),
    Action.SLIDES: (
        "Write a slide-by-slide outline of about 10 slides: title and objectives, hook, key ideas with examples, "
        "guided practice, common mistakes, and an exit ticket."
    ),
    Action.CUSTOM: (
        "Respond to the request in short numbered steps. "
        "End with one optional quick question to check understanding."
    ),
}


def build_user_text(ctx: TutoringContext) -> str:
    instruction = ACTION_INSTRUCTIONS.get(ctx.effective_action, ACTION_INSTRUCTIONS[Action.EXPLAIN])
    message = ctx.message or "(No text. Use the attached image.)"
    return f"{instruction}\n\nLearner message:\n{message}"


def build_user_content(ctx: TutoringContext) -> Any:
    """Plain string, or a text+image composite when an image is attached."""
    text = build_user_text(ctx)
    if not ctx.has_image:
        return text
    return [
        {"type": "text", "text": text},
        {"type": "image_url", "image_url": {"url": ctx.image_data_url}},
    ]


def build_prompt(ctx: TutoringContext) -> List[Dict[str, Any]]:
    """The model exchange for the primary completion."""
    return [
        {"role": "system", "content": build_system_prompt(ctx)},
        {"role": "user", "content": build_user_content(ctx)},
    ]


def build_rewrite_prompt(messages: List[Dict[str, Any]], previous_reply: str) -> List[Dict[str, Any]]:
    """Primary system prompt + rewrite directive, with the leaking reply as input."""
    system = messages[0]["content"] if messages and messages[0]["role"] == "system" else ""
    return [
        {"role": "system", "content": system + REWRITE_DIRECTIVE},
        {"role": "user", "content": f"Reply to rewrite:\n{previous_reply}"},
    ]
