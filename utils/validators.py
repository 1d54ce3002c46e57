"""Input extraction and validation utilities for stock queries."""

import re
from typing import List, Optional


# Uppercase words that look like tickers but almost never are in a question
NON_TICKER_WORDS = {
    "I", "A", "VS", "ETF", "ETFS", "CEO", "CFO", "IPO", "USD", "FAQ", "OK",
}

# Common company names mapped to their primary listing
COMPANY_TICKERS = {
    "apple": "AAPL",
    "microsoft": "MSFT",
    "google": "GOOGL",
    "alphabet": "GOOGL",
    "amazon": "AMZN",
    "tesla": "TSLA",
    "meta": "META",
    "nvidia": "NVDA",
    "netflix": "NFLX",
    "uber": "UBER",
    "spotify": "SPOT",
    "amd": "AMD",
    "intel": "INTC",
    "ford": "F",
    "ford motor": "F",
    "general motors": "GM",
    "general electric": "GE",
    "berkshire": "BRK.B",
    "jpmorgan": "JPM",
    "bank of america": "BAC",
    "walmart": "WMT",
    "coca cola": "KO",
    "pepsi": "PEP",
    "mcdonalds": "MCD",
    "disney": "DIS",
    "adobe": "ADBE",
    "salesforce": "CRM",
    "nike": "NKE",
    "boeing": "BA",
}

# Names worth a symbol lookup even when they are not in COMPANY_TICKERS
KNOWN_COMPANY_NAMES = sorted(
    set(COMPANY_TICKERS) | {
        "palantir", "coinbase", "home depot", "lowes", "target", "costco",
        "starbucks",
    },
    key=len,
    reverse=True,
)

_COMPANY_TICKER_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(name) for name in sorted(COMPANY_TICKERS, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

_KNOWN_COMPANY_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(name) for name in KNOWN_COMPANY_NAMES) + r")\b",
    re.IGNORECASE,
)

# "<name> Inc", "<name> Technologies", ... with at most three name words
_COMPANY_SUFFIX_PATTERNS = [
    re.compile(
        r"\b((?:[a-z0-9&.'-]+\s+){0,2}[a-z0-9&.'-]+)\s+"
        r"(?:inc|corp|corporation|company|co|llc|ltd|limited)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b((?:[a-z0-9&.'-]+\s+){0,2}[a-z0-9&.'-]+)\s+"
        r"(?:technologies|tech|systems|solutions|group|holdings|industries)\b",
        re.IGNORECASE,
    ),
]

# Leading words that get swept into a suffix match but are not part of a name
_FILLER_WORDS = {
    "what", "whats", "is", "the", "a", "an", "of", "for", "about", "show",
    "me", "get", "give", "find", "search", "price", "quote", "stock", "shares",
    "on", "in", "and", "how", "does", "do", "look", "up", "tell",
}

_SYMBOL_TOKEN = re.compile(r"\b[A-Z]{1,5}\b")
_TICKER_TOKEN = re.compile(r"\b[A-Z]{3,5}\b")
_INTEGER = re.compile(r"\d+")

_SEARCH_TRIGGER = re.compile(
    r"^\s*(?:please\s+)?"
    r"(?:(?:search|find|look\s*up)\b(?:\s+for\b)?(?:\s+(?:the\s+)?(?:symbols?|tickers?)\b)?"
    r"|(?:symbols?|tickers?)\b)"
    r"(?:\s+(?:for|of)\b)?\s*",
    re.IGNORECASE,
)


def find_symbol_token(text: str) -> Optional[str]:
    """
    Return the first 1-5 letter uppercase token that can be a ticker.
    
    Examples:
        'What is AAPL trading at' -> 'AAPL'
        'Should I buy MSFT' -> 'MSFT'
        'apple stock' -> None
    """
    for match in _SYMBOL_TOKEN.finditer(text):
        token = match.group(0)
        if token not in NON_TICKER_WORDS:
            return token
    return None


def extract_ticker_tokens(text: str) -> List[str]:
    """Extract explicit 3-5 letter uppercase tickers, in order, without duplicates."""
    tickers = []
    for match in _TICKER_TOKEN.finditer(text):
        token = match.group(0)
        if token not in NON_TICKER_WORDS and token not in tickers:
            tickers.append(token)
    return tickers


def match_company_tickers(text: str) -> List[str]:
    """Map every known company name in text to its ticker, in order of appearance."""
    tickers = []
    for match in _COMPANY_TICKER_PATTERN.finditer(text):
        ticker = COMPANY_TICKERS[match.group(1).lower()]
        if ticker not in tickers:
            tickers.append(ticker)
    return tickers


def lookup_company_ticker(text: str) -> Optional[str]:
    """Return the ticker of the most specific (longest) company name in text."""
    names = [match.group(1).lower() for match in _COMPANY_TICKER_PATTERN.finditer(text)]
    if not names:
        return None
    return COMPANY_TICKERS[max(names, key=len)]


def extract_company_candidates(text: str) -> List[str]:
    """
    Extract candidate company names for a symbol lookup.
    
    Bare known names come first, then names carrying a corporate suffix
    such as 'Inc' or 'Technologies'.
    """
    candidates = [match.group(1) for match in _KNOWN_COMPANY_PATTERN.finditer(text)]
    
    for pattern in _COMPANY_SUFFIX_PATTERNS:
        for match in pattern.finditer(text):
            words = match.group(1).split()
            while words and words[0].lower() in _FILLER_WORDS:
                words.pop(0)
            name = " ".join(words)
            if len(name) > 2:
                candidates.append(name)
    
    unique = []
    seen = set()
    for name in candidates:
        key = name.strip().lower()
        if key not in seen:
            seen.add(key)
            unique.append(name.strip())
    return unique


def extract_count(text: str, default: int) -> int:
    """Return the first integer literal in text, or the default."""
    match = _INTEGER.search(text)
    return int(match.group(0)) if match else default


def strip_search_triggers(text: str) -> str:
    """
    Strip leading search phrases from a query.
    
    Examples:
        'search for Palantir' -> 'Palantir'
        'find ticker for coinbase' -> 'coinbase'
        'search' -> 'search'
    """
    stripped = _SEARCH_TRIGGER.sub("", text, count=1).strip()
    return stripped or text.strip()


def extract_mentioned_symbols(text: str) -> List[str]:
    """
    Collect every symbol mentioned by company name or explicit ticker.
    
    Symbols are ordered by where they appear in the text, tickers and
    company names interleaved, so comparisons start from the first one named.
    
    Examples:
        'compare Apple and Microsoft' -> ['AAPL', 'MSFT']
        'TSLA vs ford' -> ['TSLA', 'F']
        'compare TSLA and Apple' -> ['TSLA', 'AAPL']
    """
    found = []
    for match in _COMPANY_TICKER_PATTERN.finditer(text):
        found.append((match.start(), COMPANY_TICKERS[match.group(1).lower()]))
    for match in _TICKER_TOKEN.finditer(text):
        if match.group(0) not in NON_TICKER_WORDS:
            found.append((match.start(), match.group(0)))
    
    symbols = []
    for _, symbol in sorted(found, key=lambda item: item[0]):
        if symbol not in symbols:
            symbols.append(symbol)
    return symbols
