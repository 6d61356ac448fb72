import re

_WS_RE = re.compile(r"\s+")
# keeps digits, letters, decimal points, ranges and ratios ("1-2", "5mg/ml")
_PUNCT_RE = re.compile(r"[^\w\s./-]")
_DANGLING_DOT_RE = re.compile(r"(?<!\d)\.|\.(?!\d)")
_NOT_NDC_RE = re.compile(r"[^\d-]")


def normalize_key(text: str) -> str:
    """Case-fold, strip non-semantic punctuation and collapse whitespace."""
    s = (text or "").casefold()
    s = _PUNCT_RE.sub(" ", s)
    s = _DANGLING_DOT_RE.sub("", s)
    return _WS_RE.sub(" ", s).strip()


def _digits(ndc: str) -> str:
    return re.sub(r"\D", "", ndc or "")


def sig_parse_key(sig: str) -> str:
    return f"sig:parse:{normalize_key(sig)}"


def llm_parse_key(sig: str) -> str:
    return f"llm:parse:{normalize_key(sig)}"


def llm_rewrite_key(sig: str) -> str:
    return f"llm:rewrite:{normalize_key(sig)}"


def rxnorm_name_key(drug_name: str) -> str:
    return f"rxnorm:name:{normalize_key(drug_name)}"


def rxnorm_suggestions_key(drug_name: str) -> str:
    return f"rxnorm:suggest:{normalize_key(drug_name)}"


def rxnorm_properties_key(rxcui: str) -> str:
    return f"rxnorm:properties:{rxcui.strip()}"


def fda_rxcui_packages_key(rxcui: str) -> str:
    return f"fda:packages:rxcui:{rxcui.strip()}"


def fda_product_packages_key(product_ndc: str) -> str:
    return f"fda:packages:product:{_digits(product_ndc)}"


def fda_generic_packages_key(generic_name: str) -> str:
    return f"fda:packages:generic:{normalize_key(generic_name)}"


def fda_generic_prefix_key(prefix: str) -> str:
    return f"fda:autocomplete:generic:{normalize_key(prefix)}"


def fda_ndc_prefix_key(prefix: str) -> str:
    # dash positions change the search, so they stay in the key
    return f"fda:autocomplete:ndc:{_NOT_NDC_RE.sub('', prefix or '')}"
