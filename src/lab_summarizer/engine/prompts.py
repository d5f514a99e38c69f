"""Prompt templates for the MedGemma lab report summarization pipeline.

Templates are rendered with ``str.format``; literal JSON braces are doubled.
The report under analysis is always wrapped in ``<report>`` tags.
"""

RECOGNIZE_PROMPT = (
    "Transcribe ALL text visible in this lab report image, line by line, "
    "preserving test names, values, units, reference ranges and flags exactly as printed. "
    "Do not interpret or correct anything. "
    "Also estimate how legible the image was as a confidence between 0.0 and 1.0. "
    "Respond ONLY with valid JSON in this exact format: "
    '{{"text": "<transcribed text>", "confidence": <0.0-1.0>}}. '
    "Do not include any text outside the JSON."
)

NORMALIZE_PROMPT = (
    "Structure the lab test results contained in the report below. "
    "For each test provide: name (exactly as written in the report), value (number when numeric, "
    "otherwise the text as written), unit (empty string if none), "
    'status ("low", "high" or "normal", as flagged or implied by the reference range), '
    "and ref_range ({{\"low\": number, \"high\": number}}, or null when the report shows none). "
    "Only include tests that appear in the report. Never add tests that are not written there. "
    "Also give your confidence between 0.0 and 1.0 that the structure is complete and correct.\n\n"
    "Example input:\n"
    "CBC panel\n"
    "WBC 12.4 x10^3/uL (4.5-11.0) H\n"
    "Platelets 250 x10^3/uL (150-400)\n"
    "HIV screen Negative\n\n"
    "Example output:\n"
    '{{"tests": ['
    '{{"name": "WBC", "value": 12.4, "unit": "x10^3/uL", "status": "high", "ref_range": {{"low": 4.5, "high": 11.0}}}}, '
    '{{"name": "Platelets", "value": 250, "unit": "x10^3/uL", "status": "normal", "ref_range": {{"low": 150, "high": 400}}}}, '
    '{{"name": "HIV screen", "value": "Negative", "unit": "", "status": "normal", "ref_range": null}}'
    '], "confidence": 0.95}}\n\n'
    "<report>\n{report_text}\n</report>\n\n"
    "Respond ONLY with valid JSON matching the example output structure. "
    "Do not include any text outside the JSON."
)

JUDGE_PROMPT = (
    "You are auditing an automated lab report parser. "
    "The disputed test names below were produced by the parser but do not appear verbatim in the report. "
    "For each disputed name decide whether the report genuinely contains that test under a synonym, "
    'abbreviation or alternate spelling (for example "Hb" for "Hemoglobin"), '
    "or whether the name was fabricated. Answer true only when the test is really in the report.\n\n"
    "<report>\n{report_text}\n</report>\n\n"
    "Disputed names: {disputed_json}\n\n"
    "Respond ONLY with valid JSON in this exact format: "
    '{{"verdicts": {{"<disputed name>": true|false}}}}. '
    "Include every disputed name. Do not include any text outside the JSON."
)

SUMMARIZE_PROMPT = (
    "You are a patient educator who explains lab results in plain, warm language. "
    "You never diagnose, never name a disease the patient has, and never recommend "
    "treatments, medications or dosage changes. Encourage discussing results with a clinician.\n"
    "Write one short paragraph summarizing the results, then one explanation bullet for each "
    "test whose status is not normal, in the same order as the input.\n\n"
    "Example input:\n"
    '[{{"name": "Glucose", "value": 92, "unit": "mg/dL", "status": "normal"}}, '
    '{{"name": "LDL", "value": 162, "unit": "mg/dL", "status": "high"}}]\n\n'
    "Example output:\n"
    '{{"summary": "Most of your results are within the expected range. Your blood sugar looks '
    "typical. One cholesterol measurement is above the usual range, which is common and worth "
    'talking through with your doctor at your next visit.", '
    '"explanations": ["LDL (162 mg/dL) is higher than the usual range. LDL is often called '
    "'bad' cholesterol because it can build up in blood vessels over time; your doctor can "
    'explain what this means for you."]}}\n\n'
    "Input:\n{tests_json}\n\n"
    "Respond ONLY with valid JSON matching the example output structure. "
    "Do not include any text outside the JSON."
)
