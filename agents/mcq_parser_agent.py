"""
MCQ Parser Agent
Extracts the final answer and reasoning from multiple-choice, fill-in-the-blank
and other "FINAL ANSWER:" style responses.
"""

import re
from typing import Optional

from core.types import MultipleChoiceSolution


ANSWER_NOT_FOUND = "Answer not found"
FINAL_ANSWER_MARKER = "FINAL ANSWER:"

# Answer cascade, most specific first. "\**" tolerates "**FINAL ANSWER:**".
_OPTION_ANSWER = re.compile(r"FINAL ANSWER:\**\s*option\s+([\d,\s]+)\)\s*(.+?)$", re.IGNORECASE | re.MULTILINE)
_LETTER_ANSWER = re.compile(
    r"(?i:FINAL ANSWER:)\**\s*([A-D](?:\s*,\s*[A-D])*)(?=[\s).:,]|$)[\s).:,\-]*(.*)$", re.MULTILINE
)
_BARE_ANSWER = re.compile(r"FINAL ANSWER:\**\s*(.+?)$", re.IGNORECASE | re.MULTILINE)
_OPTION_ANYWHERE = re.compile(r"option\s+([\d,\s]+)\)\s*(.*)$", re.IGNORECASE | re.MULTILINE)

_REASONING_BLOCK = re.compile(r"```(?:reasoning|markdown)\s*([\s\S]*?)```")
_MARKER_POSITION = re.compile(r"\**FINAL ANSWER:", re.IGNORECASE)

# Prompt echo that some models repeat before answering; only the first match is stripped
PROMPT_ECHO_PATTERNS = [
    re.compile(r"1\. MULTIPLE CHOICE QUESTIONS[\s\S]*?FINAL ANSWER:", re.IGNORECASE),
    re.compile(r"RESPONSE FORMATS:[\s\S]*?(?=The question|Question:|FINAL ANSWER:)", re.IGNORECASE),
    re.compile(r"You are an expert[\s\S]*?(?=The question|Question:|FINAL ANSWER:)", re.IGNORECASE),
]
_QUESTION_START = re.compile(r"(?:The question|Question:|Options?:|Which|What|How|Why|When|Where)", re.IGNORECASE)

MIN_REASONING_LENGTH = 10


def _clean(value: str) -> str:
    """Trim whitespace and a wrapping markdown bold marker; a single "*" is content."""
    value = value.strip()
    if value.startswith("**"):
        value = value[2:]
    if value.endswith("**"):
        value = value[:-2]
    return value.strip()


class MCQParserAgent:
    """
    Parses multiple-choice style responses.

    The answer is never an error: when no pattern matches the answer is the
    literal "Answer not found".
    """

    def extract_answer(self, response: str) -> str:
        """
        Answer cascade:
        1. FINAL ANSWER: option 1, 3) value
        2. FINAL ANSWER: B value
        3. FINAL ANSWER: value          (fill in the blank)
        4. option 2) value anywhere     (last resort)
        """
        match = _OPTION_ANSWER.search(response)
        if match:
            return f"option {match.group(1).strip()}) {_clean(match.group(2))}"

        match = _LETTER_ANSWER.search(response)
        if match:
            choices = match.group(1).upper()
            value = _clean(match.group(2) or "")
            return f"{choices} {value}" if value else choices

        match = _BARE_ANSWER.search(response)
        if match and _clean(match.group(1)):
            return _clean(match.group(1))

        match = _OPTION_ANYWHERE.search(response)
        if match:
            return f"option {match.group(1).strip()}) {_clean(match.group(2))}"

        return ANSWER_NOT_FOUND

    def strip_prompt_echo(self, response: str) -> str:
        """Remove an echoed system prompt from the start of the response."""
        actual = response
        for pattern in PROMPT_ECHO_PATTERNS:
            if pattern.search(actual):
                actual = pattern.sub("", actual, count=1)
                break

        # Still carrying the prompt: jump to where the question starts
        if "MULTIPLE CHOICE QUESTIONS" in actual:
            start = _QUESTION_START.search(actual)
            if start and start.start() > 0:
                actual = actual[start.start():]

        return actual

    def _text_before_marker(self, text: str) -> Optional[str]:
        match = _MARKER_POSITION.search(text)
        if not match:
            return None
        return text[:match.start()].strip()

    def parse(self, response: str) -> MultipleChoiceSolution:
        answer = self.extract_answer(response)
        actual = self.strip_prompt_echo(response)

        block = _REASONING_BLOCK.search(response)
        reasoning = block.group(1).strip() if block else actual.strip()

        if len(reasoning) < MIN_REASONING_LENGTH:
            preceding = self._text_before_marker(actual)
            if preceding:
                reasoning = preceding

        code = actual.strip()
        if FINAL_ANSWER_MARKER not in code.upper():
            code = f"{code}\n\n**{FINAL_ANSWER_MARKER}** {answer}".strip()

        return MultipleChoiceSolution(
            answer=answer,
            reasoning=reasoning,
            code=code,
            thoughts=[reasoning] if reasoning else [],
            final_answer_highlight=answer,
        )
