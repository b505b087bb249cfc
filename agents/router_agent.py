"""
Router Agent
Classifies a raw model response and routes it to the matching parser.

Detection order is a contract, first match wins:
1. Multiple choice ("option N)" or "FINAL ANSWER:")
2. Web development (full or partial <html> / <!DOCTYPE html>)
3. Python (```python fence)
4. Plain text

MCQ answers may embed example code, so a FINAL ANSWER marker must win over
code fences; web answers may carry fenced snippets, so HTML wins over Python.
The order is mode-independent: a coding answer that happens to contain
"FINAL ANSWER:" is routed to the MCQ parser.
"""

import re
from typing import Callable, List, Tuple

from core.types import ParsedSolution
from .mcq_parser_agent import MCQParserAgent
from .web_dev_parser_agent import WebDevParserAgent, HTML_OPENING
from .python_parser_agent import PythonParserAgent
from .text_parser_agent import TextParserAgent


_OPTION_MARKER = re.compile(r"option\s+\d+\)", re.IGNORECASE)
_FINAL_ANSWER_MARKER = re.compile(r"FINAL ANSWER:", re.IGNORECASE)


def is_multiple_choice(text: str) -> bool:
    return bool(_OPTION_MARKER.search(text) or _FINAL_ANSWER_MARKER.search(text))


def is_web_dev(text: str) -> bool:
    return bool(HTML_OPENING.search(text))


def is_python(text: str) -> bool:
    return "```python" in text


def always(text: str) -> bool:
    return True


class RouterAgent:
    """
    Ordered (predicate, parser) dispatch. Deterministic, no I/O.
    """

    def __init__(self):
        self.routes: List[Tuple[Callable[[str], bool], object]] = [
            (is_multiple_choice, MCQParserAgent()),
            (is_web_dev, WebDevParserAgent()),
            (is_python, PythonParserAgent()),
            (always, TextParserAgent()),
        ]

    def select_parser(self, raw_text: str):
        for predicate, parser in self.routes:
            if predicate(raw_text):
                return parser
        # Unreachable while the last route is the catch-all
        raise LookupError("No parser matched the response")

    def classify(self, raw_text: str) -> ParsedSolution:
        """
        Parse a raw model response into a typed solution.

        Args:
            raw_text: Model output, unmodified

        Returns:
            One of the four solution variants
        """
        raw_text = raw_text or ""
        return self.select_parser(raw_text).parse(raw_text)


_default_router = RouterAgent()


def classify(raw_text: str) -> ParsedSolution:
    return _default_router.classify(raw_text)
