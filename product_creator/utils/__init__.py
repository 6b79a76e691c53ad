"""Utility modules: logging, errors, lenient parsing, text helpers and formatters."""
