# riskcenter/risk_agent/prompt_builder.py
# Purpose: Turn issue text + reference corpus into a generation instruction

"""
Prompt Builder - deterministic instruction assembly.

Same issue text and corpus always give the same Instruction; nothing
time- or random-dependent goes into the prompt.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping

from .report_contract import ReportContract


SYSTEM_PROMPT = (
    "You are an expert K-12 risk assessment analyst and legal advisor. "
    "Your tone is professional, clear, and authoritative. "
    "You respond with a single JSON object and nothing else."
)

REPORT_PROMPT = """Role: You are an expert K-12 risk assessment analyst and legal advisor. Your function is to analyze a scenario and populate a JSON object based on provided source materials. Your tone is professional, clear, and authoritative.

Task: Read the User-Provided Scenario and the Source Materials. Populate a JSON object that strictly follows the provided schema.

Formatting & Content Rules:
1. Your entire response MUST be only the populated JSON object, conforming to the schema. No other text, no Markdown fences.
2. The 'title' property for each step is a plain string (e.g., "Classify the Issue").
3. For Steps 1, 2, 3: the 'content' MUST be an array of objects, each with a 'header' key (e.g., "Issue Type:") and a 'text' key (e.g., "Parent Complaint"). Never leave a header or text blank.
4. For Steps 4 and 5: the 'content' MUST be an object with exactly the keys "optionA", "optionB", "optionC". Step 4 options carry title, suggestedLanguage, policyMatch, riskScore, legalReference, recommendation. Step 5 options carry title, likelyResponse, schoolRisk, legalReference.
5. For Step 6: the 'content' MUST be an object with 'recommendationSummary' and 'implementationSteps'. Emphasize text by wrapping it in double asterisks, like **Recommended Option:**.
6. 'implementationSteps' MUST be an array of plain strings, each a complete sentence for a single step, prefixed with its number (e.g., "1. Do this first.").
7. Derive answers, especially for Steps 2 and 4, directly from the Source Materials. For legal references, cite plausible, specific case law relevant to education.

--- START OF SOURCE MATERIALS ---
{source_materials}
--- END OF SOURCE MATERIALS ---


User-Provided Scenario: "{issue}"
"""


@dataclass(frozen=True)
class Instruction:
    """What the generation service receives."""

    system: str
    prompt: str
    schema: Dict[str, Any]

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.prompt},
        ]


def format_source_materials(corpus: Mapping[str, str]) -> str:
    return "\n\n".join(f"--- Section: {title} ---\n{text}" for title, text in corpus.items())


class PromptBuilder:
    def __init__(self, contract: ReportContract = None):
        self.contract = contract or ReportContract()

    def build(self, issue_text: str, corpus: Mapping[str, str]) -> Instruction:
        prompt = REPORT_PROMPT.format(
            source_materials=format_source_materials(corpus),
            issue=issue_text.strip(),
        )
        return Instruction(
            system=SYSTEM_PROMPT,
            prompt=prompt,
            schema=self.contract.schema_descriptor(),
        )


__all__ = ["Instruction", "PromptBuilder", "format_source_materials", "REPORT_PROMPT", "SYSTEM_PROMPT"]
