"""Default Prompts — static fallback for every configurable generative call.

Invariants:
    - Every PromptFunction has a default (the provider can never come back empty)
    - Defaults are version 0; stored prompts start at version 1
    - interpolate() replaces {name} placeholders only for the variables supplied;
      other braces (JSON examples in templates) are left untouched
"""

from dataclasses import dataclass

from toolfinder.core.domain_types import PromptFunction


@dataclass(frozen=True)
class PromptConfig:
    """System instruction + user template pair with its version."""
    system_prompt: str
    user_prompt_template: str
    version: int


_MATCH_PROBLEM = PromptConfig(
    system_prompt=(
        "You are a precise problem-solver matcher. Only match tools that solve "
        "the EXACT problem. Return valid JSON only."
    ),
    user_prompt_template="""A user is facing this problem:

"{problemDescription}"

Here are existing tools in our database:
{toolsList}

Find tools that solve this EXACT same problem. Be HYPER SPECIFIC - only match if the tool solves the precise problem, not a related one.

Return the 1-based indices (from the list above) of the matching tools. If no tools match precisely, return an empty list.

Format: {"matches": [1, 3, 5]} (just the indices, no tool names)

Return ONLY valid JSON. No markdown, no code blocks, no explanations.""",
    version=0,
)

_SUGGEST_TOOLS = PromptConfig(
    system_prompt=(
        "You are a precise tool finder. Only suggest tools that solve the EXACT "
        "problem described. Return valid JSON only - either a list of tools or null."
    ),
    user_prompt_template="""A user is facing this specific problem:

"{problemDescription}"

Your task is to find or suggest tools that can solve this EXACT problem. Be HYPER SPECIFIC - the tool must solve this precise problem, not a vague related problem.

Requirements:
1. The tool must solve the EXACT problem described above
2. Be very specific about what problem the tool solves - it must match the user's problem precisely
3. If you cannot find or suggest a tool that solves this exact problem, return null
4. Do not suggest vague or generic tools
5. Suggest at most {maxSuggestions} tools

If you can find tools that solve this exact problem, return {"tools": [...]} where each tool has:
- title: Name of the tool
- description: What the tool does (2-3 sentences)
- tag: A single relevant tag
- category: The category this tool belongs to
- problem_solves: The EXACT problem this tool solves (must match the user's problem)
- who_can_use: Who should use this tool
- url: If you know a URL, provide it. Otherwise omit this field.

If NO tool exists that solves this exact problem, return: {"tools": null}

Return ONLY valid JSON. No markdown, no code blocks, no explanations.""",
    version=0,
)

_VALIDATE_RELEVANCE = PromptConfig(
    system_prompt=(
        "You are a strict validator. Only accept B2B SaaS, B2C SaaS, or AI tools. "
        "Reject everything else. Return valid JSON only."
    ),
    user_prompt_template="""You are a strict validator for a B2B/B2C SaaS and AI tools database.

Website URL: {url}
Website content (first 8000 chars):
{websiteContent}

Determine if this website is:
1. **B2B SaaS** - Software as a Service for businesses (e.g., CRM, project management, analytics tools for businesses)
2. **B2C SaaS** - Software as a Service for consumers (e.g., personal productivity apps, consumer apps with subscription)
3. **AI Tool** - AI-powered software/service (e.g., AI writing assistants, AI image generators, AI code tools)

REJECT if it is:
- Shopping/e-commerce website (Amazon, eBay, online stores)
- Content/blog/news website (unless it's a SaaS tool for creating content)
- Social media platform (unless it's a SaaS tool for managing social media)
- Entertainment/media website
- Educational course platform (unless it's a SaaS tool for creating courses)
- Any non-SaaS website

Be STRICT. Only accept if it's clearly a SaaS tool or AI tool that solves a specific problem.

Return ONLY a valid JSON object:
{
  "isRelevant": true/false,
  "reason": "Brief explanation",
  "toolType": "B2B SaaS" | "B2C SaaS" | "AI Tool" | "Not Relevant"
}""",
    version=0,
)

_EXTRACT_TOOL_INFO = PromptConfig(
    system_prompt=(
        "You are a precise tool analyzer. Extract structured information from "
        "websites. Always return valid JSON only."
    ),
    user_prompt_template="""You are analyzing a website/tool at this URL: {url}

Website content (first 8000 chars):
{textContent}

Extract the following information about this tool/website. Be VERY SPECIFIC and PRECISE:

1. **Title**: The exact name/title of the tool or website
2. **Description**: A clear, concise description of what this tool does (2-3 sentences)
3. **Tag**: A single relevant tag/keyword (e.g., "productivity", "design", "development", "marketing")
4. **Category**: The primary category this tool belongs to (e.g., "Design Tools", "Development Tools", "Marketing", "Analytics")
5. **Problem it solves**: Be HYPER SPECIFIC. What exact, precise problem does this tool solve? (e.g., "Converts Figma designs to React components automatically" not "helps with design")
6. **Who can use this**: Be specific about the target audience (e.g., "React developers working with Figma")

Return ONLY a valid JSON object with these exact keys (no markdown, no code blocks):
{
  "title": "...",
  "description": "...",
  "tag": "...",
  "category": "...",
  "problem_solves": "...",
  "who_can_use": "..."
}""",
    version=0,
)

DEFAULT_PROMPTS: dict[PromptFunction, PromptConfig] = {
    PromptFunction.MATCH_PROBLEM: _MATCH_PROBLEM,
    PromptFunction.SUGGEST_TOOLS: _SUGGEST_TOOLS,
    PromptFunction.VALIDATE_RELEVANCE: _VALIDATE_RELEVANCE,
    PromptFunction.EXTRACT_TOOL_INFO: _EXTRACT_TOOL_INFO,
}


def default_prompt(function_name: str) -> PromptConfig:
    """Default for a function name; unknown names get the match-problem prompt."""
    try:
        return DEFAULT_PROMPTS[PromptFunction(function_name)]
    except ValueError:
        return _MATCH_PROBLEM


def interpolate(template: str, variables: dict[str, object]) -> str:
    result = template
    for key, value in variables.items():
        result = result.replace("{" + key + "}", str(value))
    return result
