# Prompt templates for the five analysis views.
# Every template carries a {json_data} placeholder that build_prompt
# replaces with the raw analysis produced by the external video model.
import json

from errors import ValidationError

ANALYSIS_TYPES = (
    "executive_summary",
    "strengths_failures",
    "timewise_analysis",
    "action_fixes",
    "visualizations",
)

# Types whose output is a JSON document rather than prose.
JSON_OUTPUT_TYPES = frozenset({"visualizations"})

_OUTPUT_RULES = (
    "**CRITICAL OUTPUT RULES:**\n"
    "- Start IMMEDIATELY with \"{heading}\"\n"
    "- Do NOT include any introductory statements like \"Here is your analysis\" or \"Based on the data\"\n"
    "- Do NOT include any closing statements, suggestions, or questions after {last_part}\n"
    "- Provide ONLY the main body content following the structure above\n"
    "- Stop immediately after {last_part} - no additional text"
)

ANALYSIS_PROMPTS = {
    "executive_summary": (
        "You are analyzing a public speaking presentation. You will receive structured JSON data "
        "from an external AI analysis.\n\n"
        "**Analysis Mode: Global Summary**\n\n"
        "**SECTION A - GLOBAL METRICS & SUMMARY (Multimodal Evaluation)**\n\n"
        "1. **Final Composite Score (Audio + Visual + Fusion)**: a score out of 100 with a rating "
        "(e.g. \"71 / 100 - Rating: Marginally Effective\") and a 2-3 sentence assessment.\n"
        "2. **Primary Strengths** (3-5 bullet points) with specific evidence from the data.\n"
        "3. **Primary Weaknesses** (3-5 bullet points), specific and honest.\n"
        "4. **Judge-Style One-Line Verdict**: one memorable sentence capturing the performance.\n\n"
        "**Input Data (JSON):**\n{json_data}\n\n"
        "**Instructions:**\n"
        "- Fuse audio and visual insights for a multimodal evaluation\n"
        "- Be honest but constructive and use specific metrics from the data\n"
        "- If specific data is missing, work with what's available and note limitations\n"
        "- Do NOT ask clarifying questions\n\n"
        + _OUTPUT_RULES.format(
            heading="SECTION A - GLOBAL METRICS & SUMMARY (Multimodal Evaluation)",
            last_part="the Judge-Style One-Line Verdict",
        )
    ),
    "strengths_failures": (
        "You are analyzing a public speaking presentation. You will receive structured JSON data "
        "from an external AI analysis.\n\n"
        "**Analysis Mode: Strengths & Failures**\n\n"
        "**SECTION B - STRENGTHS & FAILURES (HARSH + ENCOURAGING)**\n\n"
        "1. **WHERE YOU ARE DOING WELL (DO NOT LOSE THIS)**: 4-5 specific strengths, bold key phrases, "
        "end with why this foundation matters.\n"
        "2. **WHERE YOU ARE FAILING**: 4-5 specific failures focused on impact, end with the core problem.\n"
        "3. **BLUNT TRUTH**: a 2-3 sentence harsh but fair assessment.\n"
        "4. **WHY THIS IS FIXABLE**: end on an encouraging, honest note.\n\n"
        "**Input Data (JSON):**\n{json_data}\n\n"
        "**Instructions:**\n"
        "- Be HARSH but ENCOURAGING\n"
        "- Use bold formatting (**text**) to emphasize key phrases\n"
        "- Tie everything to actual performance data, avoid generic advice\n\n"
        + _OUTPUT_RULES.format(
            heading="### SECTION B - STRENGTHS & FAILURES (HARSH + ENCOURAGING)",
            last_part="the \"WHY THIS IS FIXABLE\" section",
        )
    ),
    "timewise_analysis": (
        "You are analyzing a public speaking presentation. You will receive structured JSON data "
        "from an external AI analysis.\n\n"
        "**Analysis Mode: Timewise Analysis**\n\n"
        "**SECTION C - FULL MULTI-UTTERANCE TIMELINE (FUSED, 5-SECOND WINDOWS)**\n\n"
        "For each 5-second window provide:\n"
        "1. **[Timestamp Range]** formatted [MM:SS-MM:SS]\n"
        "2. **Transcript:** quote or paraphrase what was said\n"
        "3. **Audio state:** speaking quality, pace, affect, emphasis\n"
        "4. **Visual state:** body language, hand energy, facial expression\n"
        "5. **Fusion result:** how audio and visual combine\n"
        "6. **Correction:** a specific fix for this moment\n\n"
        "**Input Data (JSON):**\n{json_data}\n\n"
        "**Instructions:**\n"
        "- Skip silent intervals\n"
        "- Identify moments where delivery does not match content weight\n"
        "- If the transcript is unavailable, describe the speaking mode\n\n"
        + _OUTPUT_RULES.format(
            heading="### SECTION C - FULL MULTI-UTTERANCE TIMELINE (FUSED, 5-SECOND WINDOWS)",
            last_part="the last timestamp correction",
        )
    ),
    "action_fixes": (
        "You are analyzing a public speaking presentation. You will receive structured JSON data "
        "from an external AI analysis.\n\n"
        "**Analysis Mode: Action Fixes**\n\n"
        "**SECTION D - ACTIONABLE PRESCRIPTIVE CORRECTIONS (FINAL)**\n\n"
        "Provide 5-7 numbered fix rules, each with:\n"
        "1. **Title**: what must change\n"
        "2. **Problem statement**: 1-2 sentences on what is wrong now\n"
        "3. **Fix rule**: concrete instructions with minimum standards\n"
        "4. **Key principle**: a memorable one-liner\n"
        "Finish with \"Summary in one sentence\".\n\n"
        "**Input Data (JSON):**\n{json_data}\n\n"
        "**Instructions:**\n"
        "- NO MORE EVALUATION, only prescriptive fixes\n"
        "- Be direct and commanding (\"You must\", \"Stop\", \"Never\", \"Always\")\n"
        "- Prioritize fixes by impact and map each to a detected issue\n\n"
        + _OUTPUT_RULES.format(
            heading="### SECTION D - ACTIONABLE PRESCRIPTIVE CORRECTIONS (FINAL)",
            last_part="the summary sentence",
        )
    ),
    "visualizations": (
        "SYSTEM INSTRUCTION: You are a JSON API. You must respond with ONLY valid JSON. "
        "No other text is allowed.\n\n"
        "INPUT DATA:\n{json_data}\n\n"
        "REQUIRED OUTPUT FORMAT - Return this exact structure with real data:\n"
        "{{\n"
        "\"mismatchTimeline\": [{{\"time\": \"00:00\", \"timeSeconds\": 0, \"expected\": 0.7, \"actual\": 0.4, "
        "\"gap\": 0.3, \"status\": \"weak_gap\", \"transcript\": \"opening statement\"}}],\n"
        "\"energyFusion\": [{{\"time\": \"00:00\", \"timeSeconds\": 0, \"audioEnergy\": 0.5, \"bodyEnergy\": 0.3, "
        "\"faceEnergy\": 0.4, \"handEnergy\": 0.2}}],\n"
        "\"opportunityMap\": [{{\"time\": \"00:00\", \"expected\": 0.7, \"actual\": 0.4, \"gap\": 0.3, "
        "\"status\": \"weak_gap\", \"quadrant\": \"Missed Opportunities\", \"transcript\": \"opening\"}}],\n"
        "\"interpretation\": \"Summary of performance insights in 2-3 sentences.\"\n"
        "}}\n\n"
        "PROCESSING RULES:\n"
        "For each 5-second window in the input data:\n"
        "1. expected_impact: start at 0.3, add 0.1 for keywords (never/always/must/critical/important/"
        "everyone/nobody/everything/nothing), add 0.05 for questions, add 0.05 if the sentence has more "
        "than 15 words, maximum 1.0\n"
        "2. actual_impact: average of available normalized metrics (audio_energy, pitch_std, face_energy, "
        "hand_energy, body_energy)\n"
        "3. gap: expected_impact minus actual_impact\n"
        "4. status: \"aligned\" if gap < 0.15, \"weak_gap\" if 0.15 <= gap <= 0.35, \"mismatch\" if gap > 0.35\n"
        "5. quadrant: \"Strong Moments\" if both > 0.5, \"Missed Opportunities\" if expected > 0.5 and "
        "actual <= 0.5, \"Over-delivery\" if expected <= 0.5 and actual > 0.5, \"Neutral\" otherwise\n"
        "6. transcript: first 50 characters of what was said in that window\n\n"
        "CRITICAL: Your entire response must be valid JSON starting with {{ and ending with }}. "
        "Do not add any explanatory text, markdown formatting, or headers."
    ),
}

ANALYSIS_LABELS = {
    "executive_summary": {
        "label": "Global Summary",
        "description": "High-level verdict with key metrics and overall assessment",
    },
    "strengths_failures": {
        "label": "Strengths & Failures",
        "description": "What works well and what needs improvement",
    },
    "timewise_analysis": {
        "label": "Timewise Analysis",
        "description": "5-second breakdown of your presentation timeline",
    },
    "action_fixes": {
        "label": "Action Fixes",
        "description": "Specific, actionable steps to improve your delivery",
    },
    "visualizations": {
        "label": "Visualizations",
        "description": "Performance patterns and impact analysis",
    },
}


def is_valid_analysis_type(value) -> bool:
    return isinstance(value, str) and value in ANALYSIS_PROMPTS


def wants_json(analysis_type: str) -> bool:
    return analysis_type in JSON_OUTPUT_TYPES


def build_prompt(analysis_type: str, data) -> str:
    """
    Return the prompt for ``analysis_type`` with ``data`` embedded.

    ``data`` is pretty-printed as JSON unless it is already a string.
    Raises ValidationError for an unknown analysis type.
    """
    if not is_valid_analysis_type(analysis_type):
        raise ValidationError(f"Invalid analysis type: {analysis_type}")

    json_string = data if isinstance(data, str) else json.dumps(data, indent=2, ensure_ascii=False)
    # literal braces in the templates are written as {{ }}
    return ANALYSIS_PROMPTS[analysis_type].format(json_data=json_string)
