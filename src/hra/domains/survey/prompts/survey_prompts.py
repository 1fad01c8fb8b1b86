"""MCP Prompts — interaction templates for survey analysis."""

from __future__ import annotations

from fastmcp import FastMCP


def register_survey_prompts(mcp: FastMCP) -> None:
    """Register survey domain MCP prompts."""

    @mcp.prompt()
    def lifestyle_survey_prompt() -> str:
        """Prompt template for collecting a lifestyle survey and analyzing it."""
        return """I'd like a lifestyle health risk check. Please ask me about:

1. My age and, if I know it, my BMI
2. Whether I smoke
3. How often I exercise (rarely, sometimes, regularly)
4. My diet (high sugar, balanced, healthy)
5. My alcohol use, sleep hours and stress level

Then run analyze_survey on my answers and explain the risk level,
the main factors and the recommendations in plain language."""

    @mcp.prompt()
    def ocr_survey_prompt(scanned_text: str = "") -> str:
        """Prompt template for analyzing a scanned paper survey."""
        return f"""Here is the text scanned from my paper lifestyle survey:

{scanned_text}

Please run analyze_survey with is_ocr=true. If the scan is rejected or
fields are missing, tell me which answers to re-enter."""
