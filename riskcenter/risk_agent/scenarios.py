# riskcenter/risk_agent/scenarios.py
# Purpose: Canned walkthrough reports, built through the same contract as live output

"""
Canned Scenarios

Each scenario is stored in wire form and validated by ReportContract the
first time it is loaded, so demo reports and live reports share one model.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List

from .errors import NotFound, Result
from .report_contract import ReportContract


logger = logging.getLogger(__name__)


STEP_TITLES = {
    1: "Classify the Issue",
    2: "Match Handbook & Policies",
    3: "Initial Risk Assessment",
    4: "Administrator Response Options",
    5: "Projected Complainant Reactions",
    6: "Final Recommendation & Action Plan",
}


def _kv(*pairs) -> List[Dict[str, str]]:
    return [{"header": header, "text": text} for header, text in pairs]


_PARENT_COMPLAINT: Dict[str, Any] = {
    "id": "scenario-parentComplaint",
    "title": "Parent complaint about unfair suspension without notice",
    "issueText": "Parent complaint about unfair suspension without notice",
    "createdAt": "2025-08-12",
    "scenarioKey": "parentComplaint",
    "step1": {"title": STEP_TITLES[1], "content": _kv(
        ("Issue Type:", "Parent Complaint"),
        ("Summary:", "Parent feels blindsided by disciplinary action (suspension). Requests policy change and apology."),
        ("Stakeholders:", "Parent, Student, Faculty, Admin Team"),
    )},
    "step2": {"title": STEP_TITLES[2], "content": _kv(
        ("Relevant Section:", "Section 4.3 – Student Discipline Procedure"),
        ("Text Excerpt:", "\"Disciplinary action may be taken in the best interest of the school community. "
                          "Parents will be contacted as appropriate.\""),
        ("Policy Gap:", "No clear mandate about timing of parental notification. No explicit appeal process defined."),
    )},
    "step3": {"title": STEP_TITLES[3], "content": _kv(
        ("Risk Tier:", "Moderate"),
        ("Justification:", "Policy ambiguity + use of legal language by parent (e.g. \"violates rights\"). "
                           "High potential for reputational or legal escalation without documentation."),
    )},
    "step4": {"title": STEP_TITLES[4], "content": {
        "optionA": {
            "title": "Option A – Supportive & Investigative",
            "suggestedLanguage": "We are actively reviewing this matter to ensure all disciplinary steps align with our "
                                 "handbook. We appreciate your patience and will provide a full review soon.",
            "policyMatch": "Section 4.3 – Student Discipline Procedure",
            "riskScore": "Low",
            "legalReference": "In Smith v. Westbrook Charter (2020), courts emphasized that prompt review and "
                              "acknowledgment of parental concerns significantly reduced liability exposure.",
            "recommendation": "Proceed. No legal escalation needed.",
        },
        "optionB": {
            "title": "Option B – Procedural + Soft Acknowledgment",
            "suggestedLanguage": "Our current disciplinary policy allows administrative discretion. While no violation "
                                 "occurred, we recognize communication could be improved.",
            "policyMatch": "Section 4.3 – Student Discipline Procedure",
            "riskScore": "Moderate",
            "legalReference": "In Mason v. Eastside Prep (2021), ambiguity in school policy and failure to proactively "
                              "address parent concerns resulted in the issue escalating to the board and gaining "
                              "media attention.",
            "recommendation": "Use cautiously. Consider offering a follow-up to reduce friction.",
        },
        "optionC": {
            "title": "Option C – Firm & Final",
            "suggestedLanguage": "The suspension followed established policy and is final. No further action is "
                                 "required by the school.",
            "policyMatch": "Section 4.3 – General Interpretation",
            "riskScore": "High",
            "legalReference": "In Parent v. Beacon Hill Christian (2020), a rigid response without acknowledgment of "
                              "parental concern resulted in negative publicity and a costly settlement due to failure "
                              "to follow communication best practices.",
            "recommendation": "Not advised. May escalate tensions and introduce legal or reputational risk.",
        },
    }},
    "step5": {"title": STEP_TITLES[5], "content": {
        "optionA": {
            "title": "Option A",
            "likelyResponse": "Parent appreciates the acknowledgment and feels heard. May request a brief meeting for "
                              "clarity, but escalation is unlikely.",
            "schoolRisk": "Low – Positive tone and willingness to investigate usually results in resolution without "
                          "further action.",
            "legalReference": "Doe v. Heritage Academy (2019) – School protected after showing procedural review in "
                              "response to parental concern.",
        },
        "optionB": {
            "title": "Option B",
            "likelyResponse": "Parent feels partially heard but remains concerned. May request documentation or a "
                              "policy review meeting. Possible follow-up to school board.",
            "schoolRisk": "Moderate – While language is neutral, absence of apology or proactive follow-up could be "
                          "perceived as dismissive. Reputation risk increases with repeat complaints.",
            "legalReference": "Mason v. Eastside Prep (2021) – Lack of communication clarity contributed to prolonged "
                              "parent conflict and board involvement.",
        },
        "optionC": {
            "title": "Option C",
            "likelyResponse": "Parent views this as stonewalling. Likely to escalate to school board or external legal "
                              "advisory. May take issue to social media or local press, claiming rights were ignored.",
            "schoolRisk": "High – This tone invites resistance, lacks empathy, and contradicts best practices for "
                          "early-stage resolution. Serious PR and legal exposure possible.",
            "legalReference": "Parent v. Beacon Hill Christian (2020) – Firm denial without engagement led to "
                              "settlement due to public backlash and lack of documentation.",
        },
    }},
    "step6": {"title": STEP_TITLES[6], "content": {
        "recommendationSummary": (
            "**Recommended Option:** Option A\n"
            "**Why:** Demonstrates due diligence, protects school reputation, and aligns with a restorative tone. "
            "Legal precedent supports early review and acknowledgment of parental concerns.\n"
            "**Confidence Level:** High\n"
            "**Legal Review Advised:** Not required unless the parent submits a formal complaint or legal threat."
        ),
        "implementationSteps": [
            "1. **Acknowledge:** Immediately contact the parent to acknowledge receipt of their complaint and inform "
            "them that a review is underway.",
            "2. **Investigate:** Interview all relevant staff and review any documentation related to the suspension.",
            "3. **Document:** Create a timeline of events and a summary of findings from the investigation.",
            "4. **Communicate:** Schedule a follow-up meeting with the parent to discuss the findings and the "
            "school's position.",
            "5. **Policy Review:** Flag the 'Student Discipline Procedure' for the next handbook review to add "
            "clarity regarding parental notification timelines.",
        ],
    }},
}


_FACULTY_LEAVE: Dict[str, Any] = {
    "id": "scenario-facultyLeave",
    "title": "Non-renewed faculty member wants to use sick days as vacation",
    "issueText": "Non-renewed faculty member wants to use sick days as vacation before departure.",
    "createdAt": "2025-08-10",
    "scenarioKey": "facultyLeave",
    "step1": {"title": STEP_TITLES[1], "content": _kv(
        ("Issue Type:", "Employee Leave/Separation Inquiry"),
        ("Summary:", "A non-renewed faculty member requests to use accrued sick days as vacation prior to their "
                     "final day of employment."),
        ("Stakeholders:", "Faculty Member, Head of School, Director of Finance/HR."),
    )},
    "step2": {"title": STEP_TITLES[2], "content": _kv(
        ("Relevant Sections:", "5.7 (Leave from Work), 5.6 (Vacation Time), 4.3 (Separation from Employment)"),
        ("Text Excerpts:", "\"Faculty members are not entitled to vacation time.\" \"Employees will not be paid for "
                           "any unused sick leave upon termination or retirement...\" \"Included in the definition "
                           "of sick leave are absences for reasons clearly beyond the control of the employee: "
                           "personal illness, illness or death of an immediate family member...\""),
        ("Policy Clarity:", "The policy is clear. Sick leave is for specific, approved reasons and is not a cash "
                            "benefit or interchangeable with vacation, which faculty do not receive."),
    )},
    "step3": {"title": STEP_TITLES[3], "content": _kv(
        ("Risk Tier:", "Low to Moderate"),
        ("Justification:", "The policy is clear, reducing legal risk. However, the employee is being non-renewed, "
                           "creating a sensitive situation. A poorly handled response could lead to a baseless "
                           "wrongful termination claim or negative sentiment. The risk is primarily in relationship "
                           "management."),
    )},
    "step4": {"title": STEP_TITLES[4], "content": {
        "optionA": {
            "title": "Option A – Firm, Policy-Based, & Supportive",
            "suggestedLanguage": "Thank you for your inquiry. Per our employee handbook (Section 5.7), sick leave is "
                                 "designated for illness and other specified emergencies and is not convertible to "
                                 "vacation time. Additionally, the handbook states that unused sick leave is not paid "
                                 "out upon separation. We can, however, schedule a meeting to discuss your final pay "
                                 "and benefits transition to ensure a smooth departure.",
            "policyMatch": "Section 5.7, 4.3",
            "riskScore": "Low",
            "legalReference": "Cites *Johnson v. Independent School District No. 4*, where courts upheld an employer's "
                              "right to enforce clear, written leave policies, especially when distinguishing between "
                              "sick and vacation leave. Emphasizes the importance of consistent policy application.",
            "recommendation": "Proceed. This is the most direct and legally sound approach.",
        },
        "optionB": {
            "title": "Option B – Accommodating / Exception-Based",
            "suggestedLanguage": "While our policy doesn't typically allow for this, we can make an exception in this "
                                 "case and allow you to use a portion of your sick leave before your departure.",
            "policyMatch": "N/A - Contradicts policy",
            "riskScore": "High",
            "legalReference": "Cites *Davis v. Charter School Partners*, where making an exception for one employee "
                              "created a precedent that the school was later forced to honor for others, leading to "
                              "significant unplanned costs. Inconsistent policy application creates risk of "
                              "discrimination claims.",
            "recommendation": "Not advised. Creates a dangerous precedent and undermines the handbook.",
        },
        "optionC": {
            "title": "Option C – Vague & Deferring",
            "suggestedLanguage": "We will need to review your request with the business office and will get back to "
                                 "you at a later date.",
            "policyMatch": "N/A",
            "riskScore": "Moderate",
            "legalReference": "In *Chen v. Academy of Arts*, delaying a clear answer on a separation-related matter "
                              "was interpreted as evasive, increasing employee frustration and contributing to a "
                              "constructive discharge claim (though ultimately unsuccessful, it was costly to defend).",
            "recommendation": "Not advised. Delays a clear answer and can create false hope, leading to more "
                              "frustration.",
        },
    }},
    # Step 5 legal references point back at the cases cited in step 4.
    "step5": {"title": STEP_TITLES[5], "content": {
        "optionA": {
            "title": "Option A",
            "likelyResponse": "Employee may be disappointed but understands the decision is based on established "
                              "policy, not personal animus. Escalation is unlikely as the policy is clear.",
            "schoolRisk": "Low – The decision is defensible and based on consistent application of written policy.",
            "legalReference": "Johnson v. Independent School District No. 4 – Consistent enforcement of a clear, "
                              "written leave policy was upheld.",
        },
        "optionB": {
            "title": "Option B",
            "likelyResponse": "Employee is satisfied. However, this may create morale issues with other staff who "
                              "were not granted similar exceptions. Sets a precedent for future requests upon "
                              "separation.",
            "schoolRisk": "High – Future employees could claim discrimination if not offered the same benefit, "
                          "undermining the handbook.",
            "legalReference": "Davis v. Charter School Partners – A one-off exception became a precedent the school "
                              "was later forced to honor for others.",
        },
        "optionC": {
            "title": "Option C",
            "likelyResponse": "Employee becomes anxious and frustrated by the delay. May begin to feel they are being "
                              "treated unfairly, increasing the likelihood of consulting legal counsel or complaining "
                              "to other staff.",
            "schoolRisk": "Moderate – The ambiguity and delay can be perceived as weakness or unfair treatment, "
                          "potentially escalating the situation.",
            "legalReference": "Chen v. Academy of Arts – A delayed answer on a separation matter was read as evasive "
                              "and contributed to a costly constructive discharge claim.",
        },
    }},
    "step6": {"title": STEP_TITLES[6], "content": {
        "recommendationSummary": (
            "**Recommended Option:** Option A\n"
            "**Why:** It is clear, consistent, and directly supported by the employee handbook. It respects the "
            "employee by providing a direct answer while protecting the school from the significant risks of "
            "inconsistent policy application.\n"
            "**Confidence Level:** High\n"
            "**Legal Review Advised:** Not required unless the employee threatens legal action or alleges the "
            "policy is being applied in a discriminatory manner."
        ),
        "implementationSteps": [
            "1. **Draft Communication:** Prepare a clear, supportive email based on the language in Option A.",
            "2. **Send Email:** Send the communication to the faculty member promptly.",
            "3. **Schedule Meeting:** Proactively offer to schedule a meeting with HR/Finance to discuss their "
            "final pay and benefits.",
            "4. **Document:** Place a copy of the communication in the employee's official file.",
        ],
    }},
}


SCENARIOS: Dict[str, Dict[str, Any]] = {
    "parentComplaint": _PARENT_COMPLAINT,
    "facultyLeave": _FACULTY_LEAVE,
}

SCENARIO_TITLES = {key: data["title"] for key, data in SCENARIOS.items()}


def scenario_keys() -> List[str]:
    return list(SCENARIOS)


def load_scenario(key: str) -> Result:
    """Validated StructuredReport for ``key``, or NotFound."""
    if key not in SCENARIOS:
        return Result.fail(NotFound(f"Unknown scenario '{key}'"))
    return _validated_scenario(key)


# Only ever called with keys of SCENARIOS
@lru_cache(maxsize=len(SCENARIOS))
def _validated_scenario(key: str) -> Result:
    result = ReportContract().validate(SCENARIOS[key])
    if not result.success:
        # Canned data is part of the package; a failure here is a bug
        raise ValueError(f"Scenario '{key}' violates the report contract: {result.error.message}")
    logger.debug(f"Loaded scenario {key}")
    return result


__all__ = ["SCENARIOS", "SCENARIO_TITLES", "STEP_TITLES", "scenario_keys", "load_scenario"]
