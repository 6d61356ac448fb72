# ndc_calculator/services/llm/instruction_schema.py
from ndc_calculator.schemas.models import VALID_UNITS

INSTRUCTION_SCHEMA = {
    "title": "ParsedInstruction",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "dose": {"type": "number"},
        "frequency": {"type": "number"},
        "unit": {"type": "string", "enum": list(VALID_UNITS)},
        "confidence": {"type": "number"},
        # optional (omit if unknown)
        "concentration": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "amount": {"type": "number"},
                "unit": {"type": "string"},
                "volume": {"type": "number"},
                "volume_unit": {"type": "string"},
            },
            "required": ["amount", "volume"],
        },
        "device_capacity": {"type": "integer"},
    },
    "required": ["dose", "frequency", "unit", "confidence"],
}

REWRITE_SCHEMA = {
    "title": "InstructionRewrite",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "instruction": {"type": "string"},
    },
    "required": ["instruction"],
}
