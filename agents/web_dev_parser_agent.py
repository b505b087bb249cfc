"""
Web Dev Parser Agent
Extracts the HTML document and its CSS from web-development answers.
"""

import re

from core.types import WebDevSolution


_DOCTYPE_BLOCK = re.compile(r"<!DOCTYPE html>[\s\S]*?</html>", re.IGNORECASE)
_HTML_BLOCK = re.compile(r"<html[\s\S]*?</html>", re.IGNORECASE)
# Opening of a document whose closing tag never arrived (truncated output)
HTML_OPENING = re.compile(r"<!DOCTYPE html|<html[\s>]", re.IGNORECASE)
_STYLE_BLOCK = re.compile(r"<style[^>]*>([\s\S]*?)</style>", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"\n?```\s*$")
_LEADING_FENCES = re.compile(r"^(?:```[a-zA-Z]*\s*)+")


class WebDevParserAgent:
    """Parses HTML/CSS answers. CSS inside <style> wins over trailing CSS."""

    def extract_html(self, response: str):
        """
        Returns:
            (html, end_index) where end_index is where the text after the
            document starts
        """
        for pattern in (_DOCTYPE_BLOCK, _HTML_BLOCK):
            match = pattern.search(response)
            if match:
                return match.group(0), match.end()

        opening = HTML_OPENING.search(response)
        if opening:
            partial = _TRAILING_FENCE.sub("", response[opening.start():]).strip()
            return partial, len(response)

        return "", len(response)

    def extract_css(self, html: str, trailing: str) -> str:
        blocks = [m.group(1).strip() for m in _STYLE_BLOCK.finditer(html) if m.group(1).strip()]
        if blocks:
            return "\n\n".join(blocks)

        # Legacy layout: CSS after the document, possibly fenced
        remainder = trailing.strip()
        # Leading fences: the one closing the HTML block and/or a ```css opener
        remainder = _LEADING_FENCES.sub("", remainder)
        remainder = re.sub(r"```\s*$", "", remainder).strip()

        if remainder and "<" not in remainder:
            return remainder
        return ""

    def parse(self, response: str) -> WebDevSolution:
        html, end = self.extract_html(response)
        css = self.extract_css(html, response[end:]) if html else ""

        code = html + ("\n\n" + css if css else "")

        return WebDevSolution(
            code=code,
            html=html,
            css=css,
            thoughts=["Web development solution generated"],
            explanation="HTML and CSS code generated",
        )
