"""Text normalization helpers for headers, categories and descriptions."""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")

# Separators read as spaces in category and sheet names
_CATEGORY_SEPARATORS = re.compile(r"[-/_&+]")

# Characters without a Unicode decomposition that still need ASCII folding
_EXTRA_FOLDS = str.maketrans({"ı": "i", "ø": "o", "ß": "ss", "æ": "ae", "đ": "d", "ł": "l"})

# Legal-entity suffixes dropped when shortening merchant names (folded form)
MERCHANT_STOP_WORDS = {
    "UR", "TUR", "VE", "INS", "SAN", "TIC", "DIS", "LTD", "STI", "AS",
    "ANONIM", "SIRKETI", "LIMITED", "LIMITEDI",
    "INC", "LLC", "CO", "CORP", "GMBH",
}

# Words that describe the kind of business; kept together with the brand
MERCHANT_KEY_WORDS = {
    "PETROL", "ECZANE", "LOKANTA", "MARKET", "OFIS",
    "PHARMACY", "RESTAURANT", "OFFICE",
}

# Description fragments carrying a vehicle plate
_PLATE_TOKENS = ("plaka", "plate")


def normalize_spaces(text: str) -> str:
    """Collapse runs of whitespace and strip the ends."""
    return _WHITESPACE.sub(" ", text or "").strip()


def strip_diacritics(text: str) -> str:
    """Remove diacritics, e.g. "AÇIKLAMA" -> "ACIKLAMA", "Gün" -> "Gun"."""
    decomposed = unicodedata.normalize("NFKD", (text or "").translate(_EXTRA_FOLDS))
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def fold_upper(text: str) -> str:
    """Case- and diacritic-insensitive comparison key (upper case)."""
    return normalize_spaces(strip_diacritics(text)).upper()


def fold_lower(text: str) -> str:
    """Case- and diacritic-insensitive comparison key (lower case)."""
    return normalize_spaces(strip_diacritics(text)).lower()


def turkish_upper(text: str) -> str:
    """Upper-case text with Turkish dotted/dotless i rules, keeping diacritics."""
    return (text or "").replace("i", "İ").replace("ı", "I").upper()


def normalize_category(category: str) -> str:
    """Normalize a category label for display and lookup.

    Upper-cases with Turkish i rules, drops ".", reads "-", "/", "_", "&"
    and "+" as spaces and collapses whitespace. Diacritics are kept.
    """
    text = turkish_upper(category or "").replace(".", "")
    return normalize_spaces(_CATEGORY_SEPARATORS.sub(" ", text))


def category_key(category: str) -> str:
    """Diacritic-free lookup key for a category or sheet name."""
    return fold_upper(normalize_category(category))


def cell_text(value: object) -> str:
    """Render a cell value as comparable text ("" for empty cells)."""
    if value is None:
        return ""
    return str(value)


def shorten_merchant(raw: str) -> str:
    """Reduce a merchant's legal title to a short label.

    Keeps the brand plus a business keyword when present
    ("OPET PETROL ÜRÜNLERİ A.Ş." -> "OPET PETROL"), otherwise the first two
    words after legal suffixes are dropped.

    Args:
        raw: Merchant text, possibly followed by "|"-separated extras.

    Returns:
        Short upper-case label, or "" for blank input.
    """
    head = (raw or "").strip().split("|")[0].strip()
    if not head:
        return ""

    cleaned = re.sub(r"[()]", " ", head)
    cleaned = re.sub(r"[.,;:_\-]+", " ", cleaned)
    words = [
        w for w in normalize_spaces(turkish_upper(cleaned)).split(" ")
        if w and fold_upper(w) not in MERCHANT_STOP_WORDS
    ]

    key_idx = next(
        (i for i, w in enumerate(words) if fold_upper(w) in MERCHANT_KEY_WORDS),
        -1,
    )
    if key_idx >= 1:
        keep = words[: min(key_idx + 1, 3)]
    else:
        keep = words[:2]
    return " ".join(keep).strip()


def shorten_description(description: str) -> str:
    """Shorten a transaction description for a detail row.

    "SHELL PETROL LTD | Plaka: 34 ABC 12 | 40L" -> "SHELL PETROL | Plaka: 34 ABC 12"

    Args:
        description: Full description, "|"-separated.

    Returns:
        Shortened description, or the original text when nothing usable remains.
    """
    text = (description or "").strip()
    if not text:
        return ""

    parts = [p.strip() for p in text.split("|") if p.strip()]
    if not parts:
        return text

    merchant = shorten_merchant(parts[0])
    plate_part = next(
        (p for p in parts if any(tok in fold_lower(p) for tok in _PLATE_TOKENS)),
        None,
    )
    if plate_part:
        return f"{merchant} | {plate_part}"
    return merchant or text
