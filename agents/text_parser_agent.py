"""
Text Parser Agent
Fallback parser for short answers and free prose.
"""

import re

from core.types import TextSolution


_TEXT_BLOCK = re.compile(r"```text\s*([\s\S]*?)```")


class TextParserAgent:
    """Uses a fenced text block when present, otherwise the response verbatim."""

    def parse(self, response: str) -> TextSolution:
        block = _TEXT_BLOCK.search(response)
        text = block.group(1).strip() if block else response

        return TextSolution(
            code=text,
            thoughts=[text] if text else [],
            explanation=text,
        )
