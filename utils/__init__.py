from .logger import setup_logger, intercept_stdlib_logging, logger
from .helpers import (
    repair_json_object,
    repair_json_array,
    parse_tool_payload,
    utc_timestamp,
    truncate_text,
)
from .validators import (
    find_symbol_token,
    extract_ticker_tokens,
    extract_mentioned_symbols,
    match_company_tickers,
    lookup_company_ticker,
    extract_company_candidates,
    extract_count,
    strip_search_triggers,
)

__all__ = [
    "setup_logger",
    "intercept_stdlib_logging",
    "logger",
    "repair_json_object",
    "repair_json_array",
    "parse_tool_payload",
    "utc_timestamp",
    "truncate_text",
    "find_symbol_token",
    "extract_ticker_tokens",
    "extract_mentioned_symbols",
    "match_company_tickers",
    "lookup_company_ticker",
    "extract_company_candidates",
    "extract_count",
    "strip_search_triggers",
]
