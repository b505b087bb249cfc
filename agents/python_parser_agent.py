"""
Python Parser Agent
Splits Python answers into explanation, concept and code.
"""

import re

from core.types import PythonSolution


PLACEHOLDER = "Python solution"

_PYTHON_BLOCK = re.compile(r"```python\s*([\s\S]*?)```")
_CONCEPT_LINE = re.compile(r"Main concept:\s*(.+?)(?=\n|```|$)", re.IGNORECASE)


class PythonParserAgent:
    """
    The first fenced python block is the code and the prose before it is the
    explanation. Without a block the whole response is treated as code.
    """

    def parse(self, response: str) -> PythonSolution:
        concept_match = _CONCEPT_LINE.search(response)
        concept = concept_match.group(1).strip() if concept_match else PLACEHOLDER

        block = _PYTHON_BLOCK.search(response)
        if block:
            code = block.group(1).strip()
            explanation = response[:block.start()].strip() or concept
        else:
            code = response
            explanation = PLACEHOLDER

        return PythonSolution(
            code=code,
            concept=concept,
            thoughts=[concept],
            explanation=explanation,
        )
