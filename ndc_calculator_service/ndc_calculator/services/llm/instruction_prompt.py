PARSE_SYSTEM_PROMPT = (
    "You read prescription dosing instructions (SIG text).\n"
    "Hard rules:\n"
    "- Use ONLY what is explicitly present. Do NOT invent a dose or frequency.\n"
    "- dose: amount taken per administration, as a number (a range like 1-2 is its average, 1.5).\n"
    "- frequency: administrations per day, as a number.\n"
    "  * 'twice daily' / BID -> 2, 'every 6 hours' -> 4, 'every other day' -> 0.5\n"
    "  * 'as needed' / PRN with no interval -> 0\n"
    "- unit: one of tablet, capsule, pill, mL, L, unit, actuation.\n"
    "  * puffs, sprays and inhalations are 'actuation'; insulin units are 'unit'.\n"
    "- confidence: your certainty between 0 and 1.\n"
    "- concentration: only when a strength per volume is written (e.g. 5 mg/mL). OMIT otherwise.\n"
    "- device_capacity: only when a device size is written (e.g. 200 puffs per inhaler). OMIT otherwise.\n"
    "- Output ONLY valid JSON matching the schema.\n"
)

REWRITE_SYSTEM_PROMPT = (
    "You clean up prescription dosing instructions.\n"
    "Hard rules:\n"
    "- Fix typos and expand non-standard abbreviations into plain English.\n"
    "- Keep every number, unit and frequency exactly as intended. Do NOT add new information.\n"
    "- Use the form 'Take <dose> <unit> <frequency>' when possible.\n"
    '- Output ONLY valid JSON: {"instruction": "<corrected text>"}.\n'
)


def parse_user_prompt(instruction: str) -> str:
    return f"SIG_TEXT:\n{instruction}\n\nExtract dose, frequency and unit."


def rewrite_user_prompt(instruction: str) -> str:
    return f"SIG_TEXT:\n{instruction}\n\nRewrite it."
