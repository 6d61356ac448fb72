import re
from typing import List, Literal, Optional

from ndc_calculator.core.settings import NDC_PAD_TEN_DIGIT

InputType = Literal["ndc", "drug", "unknown"]

_ALLOWED_RE = re.compile(r"^[\d\s-]+$")
_PRODUCT_RE = re.compile(r"^\d{4,5}-\d{3,4}$")


def _format(labeler: str, product: str, package: str) -> Optional[str]:
    labeler, product, package = labeler.zfill(5), product.zfill(4), package.zfill(2)
    if len(labeler) != 5 or len(product) != 4 or len(package) != 2:
        return None
    return f"{labeler}-{product}-{package}"


def normalize_ndc(ndc: Optional[str], pad_ten_digit: bool = NDC_PAD_TEN_DIGIT) -> Optional[str]:
    """
    Any 4-4-2, 5-3-2, 5-4-1 or 11-digit form -> 'XXXXX-XXXX-XX'.

    A bare 10-digit string is ambiguous; with pad_ten_digit it is read as
    4-4-2 and the labeler gets a leading zero, otherwise it is rejected.
    """
    if not ndc or not isinstance(ndc, str) or not _ALLOWED_RE.match(ndc.strip()):
        return None

    cleaned = re.sub(r"\s", "", ndc)
    digits = cleaned.replace("-", "")
    if not 7 <= len(digits) <= 11:
        return None

    if "-" in cleaned:
        parts = [p for p in cleaned.split("-") if p]
        if len(parts) == 3:
            return _format(*parts)
        if len(parts) == 2:
            head, tail = parts
            if len(head) <= 5 and len(tail) >= 6:
                return _format(head, tail[:4], tail[4:])
            if len(head) == 9 and len(tail) <= 2:
                return _format(head[:5], head[5:], tail)
        return None

    if len(digits) == 11:
        return _format(digits[:5], digits[5:9], digits[9:])
    if len(digits) == 10:
        if not pad_ten_digit:
            return None
        return _format(digits[:4], digits[4:8], digits[8:])
    padded = digits.zfill(11)
    return _format(padded[:5], padded[5:9], padded[9:])


def same_ndc(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_ndc(a), normalize_ndc(b)
    if na is not None and nb is not None:
        return na == nb
    return bool(a) and bool(b) and re.sub(r"\D", "", a) == re.sub(r"\D", "", b)


def is_product_ndc(value: Optional[str]) -> bool:
    """Labeler-product only, e.g. "0071-0155", as typed."""
    return bool(value) and bool(_PRODUCT_RE.match(value.strip()))


def product_ndc(ndc: str) -> Optional[str]:
    """Labeler-product segment of a normalized NDC ('XXXXX-XXXX')."""
    normalized = normalize_ndc(ndc)
    return normalized.rsplit("-", 1)[0] if normalized else None


def product_ndc_variants(ndc: str) -> List[str]:
    """
    Product NDC in the 10-digit layouts openFDA stores (5-4, 4-4, 5-3).
    Only layouts the leading zeros allow are returned.
    """
    if is_product_ndc(ndc):
        labeler, code = ndc.strip().split("-")
        labeler, code = labeler.zfill(5), code.zfill(4)
    else:
        product = product_ndc(ndc)
        if product is None:
            return []
        labeler, code = product.split("-")
    product = f"{labeler}-{code}"
    variants = [product]
    if labeler.startswith("0"):
        variants.append(f"{labeler[1:]}-{code}")
    if code.startswith("0"):
        variants.append(f"{labeler}-{code[1:]}")
    return variants


def detect_input_type(value: Optional[str]) -> InputType:
    if not value or not isinstance(value, str) or not value.strip():
        return "unknown"

    s = value.strip()
    if s[0].isdigit():
        # "5-fu" style names start with digits but carry letters
        if re.search(r"[A-Za-z]", s):
            return "drug"
        return "ndc"
    if s[0].isalpha():
        return "drug"
    if re.search(r"\d", s) and "-" in s:
        return "ndc"
    return "unknown"
