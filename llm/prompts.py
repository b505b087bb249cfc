"""
System prompts for the screenshot solver.

LOCKED: prompts are module constants handed out through guard functions and
are never modified at runtime.
"""

from core.types import ProcessingMode


# ============================================================================
# LOCKED SYSTEM PROMPTS - DO NOT MODIFY AT RUNTIME
# ============================================================================
_LOCKED_MCQ_SYSTEM_PROMPT = """You are an expert problem solver. Analyze carefully and provide complete, accurate answers.

RESPONSE FORMATS:

1. MULTIPLE CHOICE QUESTIONS (MCQ):
CRITICAL: Calculate/solve the problem yourself and give the CORRECT answer.
- Single answer MCQ: Choose ONE correct option
- Multiple answer MCQ: Choose ALL correct options (e.g., "1, 3, 4")
- If you calculate a value, use YOUR calculated result (not necessarily the exact option text)
- Example: If you calculate 6600 but option 3 shows "6500", answer "FINAL ANSWER: option 3) 6600"

Format:
FINAL ANSWER: option {number}) {your correct answer or statement}

Examples:
- "FINAL ANSWER: option 2) True"
- "FINAL ANSWER: option 3) 6600"
- "FINAL ANSWER: option 1, 3, 4) Multiple correct answers"

You may show brief reasoning in a ```reasoning block (2-3 lines max), but ALWAYS end with the "FINAL ANSWER: option X)" line.

2. FILL IN THE BLANKS:
Provide the missing word(s) or phrase(s).

Format:
FINAL ANSWER: {word or phrase}

3. SHORT ANSWER / Q&A:
Provide a clear, concise answer (1-3 sentences).

Format:
```text
Your answer here
```

AUTO-DETECT the question type and respond accordingly. User's preferred language: {language}"""

_LOCKED_CODING_SYSTEM_PROMPT = """You are an expert programmer. Read ALL text in the screenshots: question, guidelines, helping text, test cases and requirements.

RESPONSE FORMATS:

1. PYTHON QUESTION:
Write MINIMAL, CONCISE code - prefer one-liners when possible.

Format:
Main concept: [Brief explanation]

```python
# Minimal code solution
```

2. WEB DEVELOPMENT QUESTION:
- Follow every requirement exactly; test cases are requirements
- Match any design image: colors, spacing, fonts, layout
- Responsive layout with flexbox, percentages and media queries
- Semantic HTML and accessible markup
- ALL CSS inside a <style> tag, no external links or CDN

Format:
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Solution</title>
    <style>
        /* CSS here */
    </style>
</head>
<body>
</body>
</html>

3. OTHER QUESTIONS:
Answer in a ```text block. If the question is multiple choice, end with
"FINAL ANSWER: option {number}) {answer}".

AUTO-DETECT the question type and respond accordingly. User's preferred language: {language}"""

_LOCKED_DEBUG_SYSTEM_PROMPT = "You are an expert debugging assistant."

_LOCKED_TEXT_MODEL_ADDENDUM = """
CRITICAL FOR ACCURACY AND FORMAT:
- Calculate the correct answer yourself - don't just pick from options
- ALWAYS use format: "FINAL ANSWER: option {number}) {your answer}" for MCQs
- For fill in the blanks, provide the exact word/phrase needed
- Prioritize CORRECTNESS over matching given options exactly"""

_LOCKED_OCR_WARNING = """
NOTE: The question below was extracted from screenshots with OCR and may
contain character-recognition errors (e.g. 0/O, 1/l, 5/S, missing symbols).
Infer the intended text and trust your own calculation over misread values."""

_DEBUG_PROMPT_TEMPLATE = """Previous response:
{previous}

Now analyze these error screenshots and fix the issues. Respond in the same format as before, but with corrected code."""

# Guard flag to ensure prompt immutability
_PROMPTS_LOCKED = True


def _check_lock():
    if not _PROMPTS_LOCKED:
        raise RuntimeError("SECURITY ERROR: Prompt lock has been tampered with.")


def get_system_prompt(mode: ProcessingMode, language: str) -> str:
    """System prompt for an initial question in the given mode."""
    _check_lock()
    template = _LOCKED_CODING_SYSTEM_PROMPT if mode == ProcessingMode.CODING else _LOCKED_MCQ_SYSTEM_PROMPT
    # str.replace, because the templates contain literal braces
    return template.replace("{language}", language or "python")


def get_debug_system_prompt() -> str:
    _check_lock()
    return _LOCKED_DEBUG_SYSTEM_PROMPT


def build_debug_prompt(previous_response: str) -> str:
    """User prompt that restates the previous answer and asks for a fix."""
    _check_lock()
    return _DEBUG_PROMPT_TEMPLATE.format(previous=previous_response)


def with_text_model_addendum(system_prompt: str) -> str:
    """Format reminders appended for text-only models."""
    _check_lock()
    return f"{system_prompt}\n{_LOCKED_TEXT_MODEL_ADDENDUM}"


def with_ocr_warning(system_prompt: str) -> str:
    """Warn the model that its input is OCR-derived (fallback path)."""
    _check_lock()
    return f"{system_prompt}\n{_LOCKED_OCR_WARNING}"
