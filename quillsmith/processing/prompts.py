"""
Centralized Prompt Templates for content scoring and improvement.

Uses Python string formatting; placeholders are documented per template.
"""

import json

# =============================================================================
# SCORING PROMPTS
# Placeholder: {content}
# =============================================================================

_RESPONSE_FORMAT = """You MUST respond in this exact format:

SCORE: [number from 0-10]
REASONING: [2-3 sentences explaining the score]
SUGGESTIONS:
- [Specific actionable suggestion 1]
- [Specific actionable suggestion 2]
- [Specific actionable suggestion 3]"""

_SCORING_TEMPLATE = """{intro}

{response_format}

Score meanings:
{scale}

Content to analyze:
{{content}}
"""


def _scoring_prompt(intro: str, scale: str) -> str:
    return _SCORING_TEMPLATE.format(
        intro=intro, response_format=_RESPONSE_FORMAT, scale=scale
    )


DIMENSION_PROMPTS = {
    "readability": _scoring_prompt(
        "Analyze the following content for readability. Consider sentence structure, "
        "vocabulary level, paragraph organization, transitions, and clarity.",
        "0-3: Difficult to read, needs major revision\n"
        "4-6: Somewhat readable but needs improvement\n"
        "7-8: Good readability with minor issues\n"
        "9-10: Excellent, clear and engaging",
    ),
    "seoScore": _scoring_prompt(
        "Evaluate the following content for SEO effectiveness. Consider keyword usage, "
        "header structure, content length, and search intent alignment.",
        "0-3: Poor SEO optimization, needs major improvements\n"
        "4-6: Basic SEO with significant room for improvement\n"
        "7-8: Good SEO optimization with minor gaps\n"
        "9-10: Excellent SEO optimization",
    ),
    "technicalAccuracy": _scoring_prompt(
        "Review the following content for technical accuracy. Consider factual "
        "correctness, code examples, terminology usage, and up-to-date information.",
        "0-3: Contains significant technical errors\n"
        "4-6: Some technical inaccuracies need fixing\n"
        "7-8: Generally accurate with minor issues\n"
        "9-10: Highly accurate and well-researched",
    ),
    "engagement": _scoring_prompt(
        "Evaluate the content's engagement level. Consider writing style, examples, "
        "reader interaction elements, and storytelling.",
        "0-3: Dry and unengaging, needs major improvements\n"
        "4-6: Somewhat engaging but significant room for improvement\n"
        "7-8: Good engagement level with minor enhancements needed\n"
        "9-10: Highly engaging and compelling",
    ),
    "contentDepth": _scoring_prompt(
        "Analyze the content's depth and comprehensiveness. Consider topic coverage, "
        "supporting evidence, explanation thoroughness, and advanced concepts.",
        "0-3: Surface level only, needs significant depth\n"
        "4-6: Basic coverage with some depth, needs expansion\n"
        "7-8: Good depth with most aspects covered\n"
        "9-10: Comprehensive and thorough coverage",
    ),
}


# =============================================================================
# IMPROVEMENT PROMPT
# Placeholders: {analysis}, {content}, {content_length}
# =============================================================================

IMPROVEMENT_PROMPT = """TASK: Improve the provided content based on the quality analysis while keeping its full length and coverage.

QUALITY ANALYSIS:
{analysis}

ORIGINAL CONTENT TO IMPROVE:
{content}

MANDATORY OUTPUT REQUIREMENTS - VIOLATIONS WILL BE REJECTED:

1. LENGTH: Your output must be 80-120% of the length of the original content
   - Original length: approximately {content_length} characters
   - Do not truncate, summarize or condense
   - Include every section, example and detail

2. COMPLETENESS:
   - Return the entire improved content, never partial content
   - Never write placeholders such as "[Continue with remaining sections...]"

3. NO COMMENTARY:
   - Start immediately with the frontmatter or the first content line
   - No preamble such as "I'll analyze..." or "Here's the improved..."
   - No explanatory text before or after the content

4. STRUCTURE PRESERVATION:
   - Preserve all frontmatter exactly (YAML between --- delimiters)
   - Keep every code block, example and technical detail
   - Keep the same document structure and format
   - Preserve all MDX/JSX components

Focus on the lowest-scoring dimensions in the analysis. Keep technical accuracy
and the original meaning while improving presentation.
"""


def build_scoring_prompt(dimension: str, content: str) -> str:
    return DIMENSION_PROMPTS[dimension].format(content=content)


def build_improvement_prompt(content: str, analysis: dict) -> str:
    return IMPROVEMENT_PROMPT.format(
        analysis=json.dumps(analysis, indent=2, default=str),
        content=content,
        content_length=len(content),
    )
