"""
Elora Assistant: Output Cleaner
Converts Markdown, LaTeX and echoed internal tags to plain readable text.
The chat UI renders replies as-is, so anything the model formats would
show up as literal asterisks and backslashes.

This is a PURE FUNCTION: no side effects, no imports beyond stdlib.
Idempotent: clean_model_output(clean_model_output(x)) == clean_model_output(x)
"""

import re


# ─── Hidden / Internal Spans ─────────────────────────────────────────────────

_HIDDEN_TAGS = r"(?:internal|hidden|analysis|thinking|think|scratchpad|system|reasoning)"
_HIDDEN_BLOCK_RE = re.compile(
    rf"<\s*({_HIDDEN_TAGS})\b[^>]*>.*?<\s*/\s*\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_HIDDEN_TAG_RE = re.compile(rf"<\s*/?\s*{_HIDDEN_TAGS}\b[^>]*>", re.IGNORECASE)
_HTML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_INLINE_HTML_RE = re.compile(r"<\s*/?\s*(?:b|i|u|em|strong|ins|mark|s|del|span|sup|sub)\s*>", re.IGNORECASE)
_BR_RE = re.compile(r"<\s*br\s*/?\s*>", re.IGNORECASE)


# ─── LaTeX ───────────────────────────────────────────────────────────────────

# \times → ×, \div → ÷, \cdot → × (dot product reads as multiplication here)
LATEX_SYMBOLS = {
    "times": "×",
    "div": "÷",
    "cdot": "×",
    "pm": "±",
    "leq": "≤",
    "le": "≤",
    "geq": "≥",
    "ge": "≥",
    "neq": "≠",
    "ne": "≠",
    "approx": "≈",
    "pi": "π",
    "degree": "°",
    "infty": "infinity",
}

_FRAC_RE = re.compile(r"\\[dt]?frac\s*\{([^{}]*)\}\s*\{([^{}]*)\}")
_SQRT_RE = re.compile(r"\\sqrt\s*\{([^{}]*)\}")
_NTH_ROOT_RE = re.compile(r"\\sqrt\s*\[([^\[\]]*)\]\s*\{([^{}]*)\}")
_TEXT_WRAPPER_RE = re.compile(
    r"\\(?:text|mathrm|mathbf|mathit|textbf|textit|operatorname|boxed)\s*\{([^{}]*)\}"
)
_SUPERSCRIPT_RE = re.compile(r"\^\s*\{([^{}]*)\}")
_SUBSCRIPT_RE = re.compile(r"_\s*\{([^{}]*)\}")
_SYMBOL_RE = re.compile(r"\\(" + "|".join(sorted(LATEX_SYMBOLS, key=len, reverse=True)) + r")(?![A-Za-z])")
_SPACING_RE = re.compile(r"\\(?:left|right|quad|qquad|displaystyle|,|;|!|:)(?![A-Za-z])")
_ANY_COMMAND_RE = re.compile(r"\\[A-Za-z]+")
_MATH_DELIMS_RE = re.compile(r"\$\$|\$|\\\(|\\\)|\\\[|\\\]")


# ─── Markdown ────────────────────────────────────────────────────────────────

_FENCE_RE = re.compile(r"```[\w+\-.]*[ \t]*\n?")
_IMAGE_LINK_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_HEADING_RE = re.compile(r"^[ \t]*#{1,6}[ \t]*", re.MULTILINE)
_BLOCKQUOTE_RE = re.compile(r"^[ \t]*(?:>[ \t]?)+", re.MULTILINE)
_RULE_RE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.MULTILINE)
_BULLET_RE = re.compile(r"^([ \t]*)[*+•][ \t]+", re.MULTILINE)
_BOLD_RE = re.compile(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1", re.DOTALL)
_STRIKE_RE = re.compile(r"~~(.+?)~~", re.DOTALL)
_ITALIC_STAR_RE = re.compile(r"(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<![\w_])_(?=\S)([^_\n]+?)(?<=\S)_(?![\w_])")
_STRAY_MARKERS_RE = re.compile(r"\*\*|__|~~")


def _strip_hidden(text: str) -> str:
    text = _HTML_COMMENT_RE.sub("", text)
    text = _HIDDEN_BLOCK_RE.sub("", text)
    text = _HIDDEN_TAG_RE.sub("", text)
    text = _BR_RE.sub("\n", text)
    return _INLINE_HTML_RE.sub("", text)


def _strip_markdown(text: str) -> str:
    # Code fences and inline code: keep the code, drop the markers
    text = _FENCE_RE.sub("", text)
    text = text.replace("`", "")

    text = _IMAGE_LINK_RE.sub(r"\1", text)
    text = _LINK_RE.sub(r"\1", text)

    text = _RULE_RE.sub("", text)
    text = _HEADING_RE.sub("", text)
    text = _BLOCKQUOTE_RE.sub("", text)
    text = _BULLET_RE.sub(r"\1- ", text)

    text = _BOLD_RE.sub(r"\2", text)
    text = _STRIKE_RE.sub(r"\1", text)
    text = _ITALIC_STAR_RE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
    return _STRAY_MARKERS_RE.sub("", text)


def _superscript(m: re.Match) -> str:
    # x^{2} → x^2, x^{n+1} → x^(n+1)
    exponent = m.group(1)
    return "^" + (exponent if len(exponent) <= 1 else f"({exponent})")


def _unwrap_braced(text: str) -> str:
    """
    Unwrap brace groups innermost first until none are left.
    Each round removes at least one pair of braces, so this terminates
    and nesting depth doesn't matter.
    """
    while True:
        before = text
        text = _FRAC_RE.sub(r"\1/\2", text)
        text = _NTH_ROOT_RE.sub(r"root \1 of (\2)", text)
        text = _SQRT_RE.sub(r"sqrt(\1)", text)
        text = _TEXT_WRAPPER_RE.sub(r"\1", text)
        text = _SUPERSCRIPT_RE.sub(_superscript, text)
        text = _SUBSCRIPT_RE.sub(r"_\1", text)
        if text == before:
            return text


def _latex_to_plain(text: str) -> str:
    text = _MATH_DELIMS_RE.sub("", text)
    text = _unwrap_braced(text)
    text = _SYMBOL_RE.sub(lambda m: LATEX_SYMBOLS[m.group(1)], text)
    text = _SPACING_RE.sub(" ", text)
    text = text.replace("\\\\", "\n")
    return text


def _finish(text: str) -> str:
    """Remaining commands and braces go, whitespace is collapsed."""
    text = _ANY_COMMAND_RE.sub("", text)
    text = text.replace("{", "").replace("}", "")

    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"[ \t]+\n", "\n", text)
    # Three or more blank lines → two
    text = re.sub(r"\n{4,}", "\n\n\n", text)
    return text.strip()


def _clean_once(text: str) -> str:
    text = _strip_hidden(text)
    text = _strip_markdown(text)
    text = _latex_to_plain(text)
    return _finish(text)


def clean_model_output(text: str) -> str:
    """
    Clean raw model text for the chat UI.

    Examples:
        "**Step 1:** add" → "Step 1: add"
        "$\\frac{5}{4} = 1.25$" → "5/4 = 1.25"
        "3 \\times 4" → "3 × 4"
        "[Khan Academy](https://...)" → "Khan Academy"
        "<internal>plan</internal>Hi" → "Hi"
    """
    if not text:
        return ""

    # Repeat to a fixed point. Every change consumes markup that no rewrite
    # produces again, so this settles after a few passes.
    result = _clean_once(text)
    while True:
        cleaned = _clean_once(result)
        if cleaned == result:
            return result
        result = cleaned
