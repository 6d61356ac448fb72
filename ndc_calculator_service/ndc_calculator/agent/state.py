from typing import Any, Dict, List, Optional, TypedDict

class ParseState(TypedDict, total=False):
    # inputs (instruction is replaced by the rewritten text on a second pass)
    instruction: str
    original_key: str
    depth: int

    # outputs
    parsed: Optional[Dict[str, Any]]   # ParsedInstruction dict
    source: str                        # cache | matcher | fallback
    rewritten: Optional[str]
    audit: List[Dict[str, Any]]
